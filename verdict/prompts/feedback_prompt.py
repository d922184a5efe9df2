"""Correction feedback prompts for the self-correction loop.

Each failing audit check becomes one numbered block telling the extraction
source which section of the document to re-read and what to look for. The
blocks are generic per check type; the specifics (expected vs found values)
come from the check itself.
"""

from verdict.core.config import ChecksumConfig, VatConfig
from verdict.core.value_helpers import format_rate
from verdict.pydantic_models import AuditCheck, CheckType


VALID_RATES_TEXT = ", ".join(f"{format_rate(r)}%" for r in VatConfig.VALID_RATES)

FEEDBACK_FOOTER = """IMPORTANT: Focus ONLY on the fields mentioned above. Keep every other field exactly as before.
Do not guess: if a value is genuinely unreadable, return null for that field."""


def _expected_found(check: AuditCheck) -> list[str]:
    lines = []
    if check.expected is not None:
        lines.append(f"Expected: {check.expected}")
    if check.actual is not None:
        lines.append(f"Found: {check.actual}")
    return lines


def _math_block(check: AuditCheck) -> list[str]:
    return [
        f"MATH ERROR in '{check.field}'",
        f"Problem: {check.message}",
        *_expected_found(check),
        "SPECIFIC ACTION: Re-read the TOTALS section (subtotal, VAT amount, total).",
        "Common causes: misread digits (1↔7, 0↔6, 5↔S, 8↔3), a misplaced decimal "
        "point, or a line total taken for the grand total.",
    ]


def _ogm_block(check: AuditCheck) -> list[str]:
    return [
        f"OGM CHECKSUM FAILED in '{check.field}'",
        f"Problem: {check.message}",
        *_expected_found(check),
        "SPECIFIC ACTION: Re-read the PAYMENT SECTION and copy the structured "
        "communication character by character.",
        "Format: +++XXX/XXXX/XXXXX+++ (12 digits, the last 2 are check digits).",
        f"OCR pairs to double-check: {ChecksumConfig.OCR_PAIRS_TEXT}.",
    ]


def _iban_block(check: AuditCheck) -> list[str]:
    return [
        f"IBAN CHECKSUM FAILED in '{check.field}'",
        f"Problem: {check.message}",
        *_expected_found(check),
        "SPECIFIC ACTION: Re-read the BANK DETAILS (usually at the bottom of the page).",
        "Belgian IBAN format: BE + 2 check digits + 12 digits = 16 characters.",
        "Example: BE68 5390 0754 7034",
    ]


def _vat_rate_block(check: AuditCheck) -> list[str]:
    return [
        f"UNUSUAL VAT RATE in '{check.field}'",
        f"Problem: {check.message}",
        *_expected_found(check),
        f"Belgian standard VAT rates are: {VALID_RATES_TEXT}.",
        "SPECIFIC ACTION: Re-check the VAT rate, the VAT amount and the subtotal in "
        "the TOTALS section.",
    ]


def _vat_breakdown_block(check: AuditCheck) -> list[str]:
    return [
        f"VAT BREAKDOWN MISMATCH in '{check.field}'",
        f"Problem: {check.message}",
        *_expected_found(check),
        "SPECIFIC ACTION: Re-read the VAT summary table. Extract one row per rate "
        "with its taxable base and VAT amount.",
    ]


def _company_exists_block(check: AuditCheck) -> list[str]:
    return [
        f"COMPANY NOT FOUND for '{check.field}'",
        f"Problem: {check.message}",
        "SPECIFIC ACTION: Re-read the VAT number.",
        "Belgian VAT format: BE + 10 digits (e.g., BE0123456789).",
    ]


def _company_name_block(check: AuditCheck) -> list[str]:
    return [
        f"COMPANY NAME MISMATCH in '{check.field}'",
        f"Problem: {check.message}",
        *_expected_found(check),
        "SPECIFIC ACTION: Re-read the company name in the document header or footer.",
    ]


_BLOCK_BUILDERS = {
    CheckType.MATH: _math_block,
    CheckType.CHECKSUM_OGM: _ogm_block,
    CheckType.CHECKSUM_IBAN: _iban_block,
    CheckType.VAT_RATE: _vat_rate_block,
    CheckType.VAT_BREAKDOWN: _vat_breakdown_block,
    CheckType.COMPANY_EXISTS: _company_exists_block,
    CheckType.COMPANY_NAME: _company_name_block,
}


def build_check_feedback(check: AuditCheck) -> str:
    """Feedback block for one failing check, ending with the auditor's hint."""
    lines = _BLOCK_BUILDERS[check.check_type](check)
    if check.hint:
        lines.append(f"Hint: {check.hint}")
    return "\n".join(lines)


def build_feedback_prompt(failures: list[AuditCheck], attempt: int, max_retries: int) -> str:
    """Build the feedback instruction for one retry.

    Args:
        failures: Failing checks (CRITICAL first, then WARNING).
        attempt: 0-based attempt index.
        max_retries: Total attempts allowed.

    Returns:
        Prompt text passed to the extraction provider as feedback context.
    """
    header = f"CORRECTION REQUIRED (Attempt {attempt + 1} of {max_retries})"
    if attempt == max_retries - 1:
        header += " - FINAL attempt, be extra careful"

    parts = [
        header,
        "",
        f"Your previous extraction failed {len(failures)} validation check(s). Fix the fields below.",
    ]
    for index, check in enumerate(failures, 1):
        parts.append("")
        parts.append(f"{index}. [{check.severity.value.upper()}] {build_check_feedback(check)}")

    parts.append("")
    parts.append(FEEDBACK_FOOTER)
    return "\n".join(parts)


def build_correction_summary(failures: list[AuditCheck]) -> str:
    """One-line summary of failing fields grouped by check, for notes and logs.

    Example:
        "Mathematical Verification: total_amount; IBAN Bank Account: iban"
    """
    if not failures:
        return "no failures"

    grouped: dict[str, list[str]] = {}
    for check in failures:
        fields = grouped.setdefault(check.check_type.display_name, [])
        if check.field not in fields:
            fields.append(check.field)

    return "; ".join(f"{name}: {', '.join(fields)}" for name, fields in grouped.items())
