"""Compliance auditor - deterministic checks against a canonical record.

Checks:
- MATH: subtotal + VAT = total (CRITICAL), plus line-item arithmetic (WARNING)
- CHECKSUM_OGM: structured payment reference mod 97, with OCR letter mapping
- CHECKSUM_IBAN: ISO 7064 mod 97, Belgian IBANs exactly 16 characters
- VAT_RATE: rate is a valid Belgian rate on the document date
- VAT_BREAKDOWN: per-rate rows are internally consistent and add up
- COMPANY_EXISTS / COMPANY_NAME: advisory registry lookups (WARNING at most)

Missing data is never a failure: a check without inputs reports INFO
"incomplete" and passes. Every failing check carries a ``hint`` that the
correction loop feeds back to the extraction source.
"""

import logging
from datetime import date
from decimal import Decimal

from rapidfuzz import fuzz

from verdict.core.checksums import (
    IbanStatus,
    OgmStatus,
    is_valid_belgian_vat,
    validate_iban,
    validate_ogm,
)
from verdict.core.config import ChecksumConfig, CompanyConfig, MathConfig, VatConfig
from verdict.core.errors import PipelineErrors, registry_error
from verdict.core.providers import CompanyRegistry
from verdict.core.value_helpers import (
    format_amount,
    format_rate,
    is_blank,
    normalize_identifier,
    normalize_text,
    parse_amount,
    parse_date,
    parse_rate,
    round_cents,
)
from verdict.pydantic_models import AuditCheck, AuditReport, CheckType, ExtractionRecord

logger = logging.getLogger(__name__)

MATH_OCR_PAIRS = "1↔7, 0↔6, 5↔S, 8↔3"


def is_horeca(category: str | None) -> bool:
    """True when the category names a Horeca activity."""
    text = normalize_text(category)
    if not text:
        return False
    return any(keyword in text for keyword in VatConfig.HORECA_KEYWORDS)


def valid_vat_rates(category: str | None, document_date: date | None) -> tuple[Decimal, ...]:
    """Rates valid for a document.

    Horeca documents dated before the reform date may not use the Horeca
    rate. Undated Horeca documents get the full set, since the rule cannot be
    evaluated without a date.
    """
    rates = VatConfig.VALID_RATES
    if (
        is_horeca(category)
        and document_date is not None
        and document_date < VatConfig.HORECA_REFORM_DATE
    ):
        return tuple(r for r in rates if r != VatConfig.HORECA_RATE)
    return rates


def _rates_text(rates: tuple[Decimal, ...]) -> str:
    return ", ".join(f"{format_rate(r)}%" for r in rates)


class ComplianceAuditor:
    """Runs the enabled checks against one record.

    Routing (which checks apply to which document type, which VAT number
    identifies the counterparty) is decided by the caller and passed in.
    """

    def __init__(
        self,
        registry: CompanyRegistry | None = None,
        tolerance: Decimal = MathConfig.TOLERANCE,
    ):
        self.registry = registry
        self.tolerance = tolerance

    async def audit(
        self,
        record: ExtractionRecord,
        checks: frozenset[CheckType],
        *,
        company_vat_field: str | None = None,
        company_name_field: str | None = None,
        require_vat_breakdown: bool = False,
        errors: PipelineErrors | None = None,
    ) -> AuditReport:
        """Audit a record.

        Args:
            record: Canonical extraction record.
            checks: Checks to run.
            company_vat_field: Record field holding the counterparty VAT number.
            company_name_field: Record field holding the counterparty name.
            require_vat_breakdown: A missing breakdown is a warning.
            errors: Collector for registry outages.

        Returns:
            AuditReport with one or more AuditCheck per executed check.
        """
        results: list[AuditCheck] = []

        if CheckType.MATH in checks:
            results.extend(self.check_math(record))
        if CheckType.CHECKSUM_OGM in checks:
            results.append(self.check_ogm(record))
        if CheckType.CHECKSUM_IBAN in checks:
            results.append(self.check_iban(record))
        if CheckType.VAT_RATE in checks:
            results.append(self.check_vat_rate(record))
        if CheckType.VAT_BREAKDOWN in checks:
            results.extend(self.check_vat_breakdown(record, required=require_vat_breakdown))
        if CheckType.COMPANY_EXISTS in checks and company_vat_field:
            results.extend(
                await self.check_company(
                    record,
                    company_vat_field,
                    company_name_field,
                    check_name=CheckType.COMPANY_NAME in checks,
                    errors=errors,
                )
            )

        report = AuditReport(checks=results)
        logger.debug(
            "Audit: %d checks, %d critical, %d warnings",
            len(results),
            len(report.critical_failures),
            len(report.warnings),
        )
        return report

    # =========================================================================
    # MATH
    # =========================================================================

    def check_math(self, record: ExtractionRecord) -> list[AuditCheck]:
        results = [self._check_totals(record)]
        results.extend(self._check_line_items(record))
        return results

    def _check_totals(self, record: ExtractionRecord) -> AuditCheck:
        subtotal = parse_amount(record.subtotal)
        vat = parse_amount(record.vat_amount)
        total = parse_amount(record.total_amount)

        if subtotal is None or vat is None or total is None:
            return AuditCheck.incomplete(
                CheckType.MATH, "total_amount", "subtotal, VAT amount and total are all needed"
            )

        expected = subtotal + vat
        difference = abs(expected - total)
        if difference <= self.tolerance:
            return AuditCheck.passed_check(
                CheckType.MATH,
                "total_amount",
                f"{format_amount(subtotal)} + {format_amount(vat)} = {format_amount(total)}",
            )

        return AuditCheck.critical(
            CheckType.MATH,
            "total_amount",
            message=(
                f"Subtotal {format_amount(subtotal)} + VAT {format_amount(vat)} = "
                f"{format_amount(expected)}, but total is {format_amount(total)} "
                f"(off by {format_amount(difference)})"
            ),
            hint=(
                f"Re-read the TOTALS section. Expected total {format_amount(expected)} but found "
                f"{format_amount(total)}. Watch for misread digit pairs ({MATH_OCR_PAIRS}) "
                f"and a misplaced decimal point."
            ),
            expected=format_amount(expected),
            actual=format_amount(total),
        )

    def _check_line_items(self, record: ExtractionRecord) -> list[AuditCheck]:
        if not record.line_items:
            return []

        results: list[AuditCheck] = []
        line_totals: list[Decimal] = []

        for index, item in enumerate(record.line_items):
            line_total = parse_amount(item.total)
            if line_total is not None:
                line_totals.append(line_total)

            quantity = parse_amount(item.quantity)
            unit_price = parse_amount(item.unit_price)
            if quantity is None or unit_price is None or line_total is None:
                continue

            expected = round_cents(quantity * unit_price)
            if abs(expected - line_total) > MathConfig.LINE_ITEM_TOLERANCE:
                results.append(AuditCheck.warning(
                    CheckType.MATH,
                    f"line_items[{index}]",
                    message=(
                        f"Line {index + 1}: {item.quantity} x {item.unit_price} = "
                        f"{format_amount(expected)}, but line total is {format_amount(line_total)}"
                    ),
                    hint=f"Re-read line {index + 1} of the item table (quantity, unit price, line total).",
                    expected=format_amount(expected),
                    actual=format_amount(line_total),
                ))

        subtotal = parse_amount(record.subtotal)
        total = parse_amount(record.total_amount)
        if subtotal is None or len(line_totals) != len(record.line_items):
            return results

        lines_sum = sum(line_totals, Decimal("0"))
        matches_net = abs(lines_sum - subtotal) <= self.tolerance
        # Receipts often print VAT-inclusive lines
        matches_gross = total is not None and abs(lines_sum - total) <= self.tolerance
        if not (matches_net or matches_gross):
            results.append(AuditCheck.warning(
                CheckType.MATH,
                "line_items",
                message=(
                    f"Line items sum to {format_amount(lines_sum)}, "
                    f"but subtotal is {format_amount(subtotal)}"
                ),
                hint="Re-read the item table; a line may be missing, duplicated or misread.",
                expected=format_amount(subtotal),
                actual=format_amount(lines_sum),
            ))
        return results

    # =========================================================================
    # CHECKSUM_OGM
    # =========================================================================

    def check_ogm(self, record: ExtractionRecord) -> AuditCheck:
        result = validate_ogm(record.payment_reference)

        if result.status == OgmStatus.BLANK:
            return AuditCheck.incomplete(CheckType.CHECKSUM_OGM, "payment_reference", "no payment reference")
        if result.status == OgmStatus.NOT_OGM:
            return AuditCheck.passed_check(
                CheckType.CHECKSUM_OGM,
                "payment_reference",
                "Not a structured reference (OGM), checksum not applicable",
            )
        if result.status == OgmStatus.VALID:
            return AuditCheck.passed_check(
                CheckType.CHECKSUM_OGM, "payment_reference", f"Valid OGM {result.formatted()}"
            )
        if result.status == OgmStatus.OCR_CORRECTED:
            swaps = ", ".join(f"{letter}->{digit}" for letter, digit in result.substitutions)
            return AuditCheck.passed_check(
                CheckType.CHECKSUM_OGM,
                "payment_reference",
                f"Valid OGM {result.formatted()} after OCR correction applied ({swaps})",
            )

        expected = f"{result.expected_check:02d}"
        found = f"{result.found_check:02d}"
        return AuditCheck.critical(
            CheckType.CHECKSUM_OGM,
            "payment_reference",
            message=f"OGM check digits should be {expected} but found {found}",
            hint=(
                f"Re-read the PAYMENT section. The structured reference {result.formatted()} fails "
                f"mod 97: expected check digits {expected}, found {found}. "
                f"Common OCR pairs: {ChecksumConfig.OCR_PAIRS_TEXT}."
            ),
            expected=expected,
            actual=found,
        )

    # =========================================================================
    # CHECKSUM_IBAN
    # =========================================================================

    def check_iban(self, record: ExtractionRecord) -> AuditCheck:
        result = validate_iban(record.iban)

        if result.status == IbanStatus.BLANK:
            return AuditCheck.incomplete(CheckType.CHECKSUM_IBAN, "iban", "no IBAN")
        if result.is_valid:
            return AuditCheck.passed_check(CheckType.CHECKSUM_IBAN, "iban", f"Valid IBAN {result.normalized}")

        if result.status == IbanStatus.WRONG_LENGTH and result.is_belgian:
            hint = (
                f"Re-read the BANK DETAILS section. Belgian IBAN must be "
                f"{ChecksumConfig.BELGIAN_IBAN_LENGTH} characters (BE + 2 check digits + 12 digits); "
                f"found {len(result.normalized)}."
            )
        else:
            hint = (
                "Re-read the BANK DETAILS section and re-extract the IBAN character by character. "
                f"Common OCR pairs: {ChecksumConfig.OCR_PAIRS_TEXT}."
            )

        return AuditCheck.critical(
            CheckType.CHECKSUM_IBAN,
            "iban",
            message=result.reason,
            hint=hint,
            actual=result.normalized,
        )

    # =========================================================================
    # VAT_RATE
    # =========================================================================

    def check_vat_rate(self, record: ExtractionRecord) -> AuditCheck:
        document_date = parse_date(record.issue_date)
        valid = valid_vat_rates(record.category, document_date)

        rate = parse_rate(record.vat_rate)
        origin = "stated"
        if rate is None:
            rate = self._implied_rate(record)
            origin = "implied"
        if rate is None:
            return AuditCheck.incomplete(CheckType.VAT_RATE, "vat_rate", "no rate and no subtotal/VAT pair")

        if rate in valid:
            return AuditCheck.passed_check(
                CheckType.VAT_RATE, "vat_rate", f"VAT rate {format_rate(rate)}% ({origin}) is valid"
            )

        when = f" on {document_date.isoformat()}" if document_date else ""
        horeca_note = ""
        if rate == VatConfig.HORECA_RATE and is_horeca(record.category):
            horeca_note = (
                f" The {format_rate(VatConfig.HORECA_RATE)}% Horeca rate applies only from "
                f"{VatConfig.HORECA_REFORM_DATE.isoformat()}."
            )
        return AuditCheck.warning(
            CheckType.VAT_RATE,
            "vat_rate",
            message=f"VAT rate {format_rate(rate)}% ({origin}) is not a valid Belgian rate{when}.{horeca_note}",
            hint=(
                f"Valid Belgian VAT rates: {_rates_text(valid)}. Re-check subtotal, "
                f"VAT amount and total in the TOTALS section."
            ),
            expected=_rates_text(valid),
            actual=f"{format_rate(rate)}%",
        )

    @staticmethod
    def _implied_rate(record: ExtractionRecord) -> Decimal | None:
        """Rate implied by vat_amount / subtotal, snapped to a known rate when close."""
        subtotal = parse_amount(record.subtotal)
        vat = parse_amount(record.vat_amount)
        if subtotal is None or vat is None or subtotal == 0:
            return None
        implied = vat / subtotal * 100
        nearest = min(VatConfig.VALID_RATES, key=lambda r: abs(implied - r))
        if abs(implied - nearest) <= VatConfig.IMPLIED_RATE_TOLERANCE:
            return nearest
        return round_cents(implied)

    # =========================================================================
    # VAT_BREAKDOWN
    # =========================================================================

    def check_vat_breakdown(self, record: ExtractionRecord, required: bool = False) -> list[AuditCheck]:
        if not record.vat_breakdown:
            if not required:
                return []
            return [AuditCheck.warning(
                CheckType.VAT_BREAKDOWN,
                "vat_breakdown",
                message="VAT breakdown is required but missing",
                hint="Re-read the VAT summary table and extract one row per rate (rate, base, VAT amount).",
            )]

        results: list[AuditCheck] = []
        base_sum = Decimal("0")
        amount_sum = Decimal("0")

        for index, entry in enumerate(record.vat_breakdown):
            rate = parse_rate(entry.rate)
            base = parse_amount(entry.base)
            amount = parse_amount(entry.amount)
            field = f"vat_breakdown[{index}]"

            if rate is None or base is None or amount is None:
                results.append(AuditCheck.warning(
                    CheckType.VAT_BREAKDOWN,
                    field,
                    message=f"VAT breakdown row {index + 1} has unreadable values",
                    hint=f"Re-read row {index + 1} of the VAT summary table.",
                    actual=f"{entry.rate} / {entry.base} / {entry.amount}",
                ))
                continue

            base_sum += base
            amount_sum += amount
            expected = round_cents(base * rate / 100)
            if abs(expected - amount) > self.tolerance:
                results.append(AuditCheck.warning(
                    CheckType.VAT_BREAKDOWN,
                    field,
                    message=(
                        f"{format_rate(rate)}% of {format_amount(base)} is {format_amount(expected)}, "
                        f"but row says {format_amount(amount)}"
                    ),
                    hint=f"Re-read row {index + 1} of the VAT summary table (rate, base, VAT amount).",
                    expected=format_amount(expected),
                    actual=format_amount(amount),
                ))

        subtotal = parse_amount(record.subtotal)
        if subtotal is not None and abs(base_sum - subtotal) > self.tolerance:
            results.append(AuditCheck.warning(
                CheckType.VAT_BREAKDOWN,
                "subtotal",
                message=f"VAT bases sum to {format_amount(base_sum)}, but subtotal is {format_amount(subtotal)}",
                hint="Re-read the VAT summary table and the subtotal in the TOTALS section.",
                expected=format_amount(base_sum),
                actual=format_amount(subtotal),
            ))

        vat_amount = parse_amount(record.vat_amount)
        if vat_amount is not None and abs(amount_sum - vat_amount) > self.tolerance:
            results.append(AuditCheck.warning(
                CheckType.VAT_BREAKDOWN,
                "vat_amount",
                message=f"VAT rows sum to {format_amount(amount_sum)}, but VAT total is {format_amount(vat_amount)}",
                hint="Re-read the VAT summary table and the VAT total in the TOTALS section.",
                expected=format_amount(amount_sum),
                actual=format_amount(vat_amount),
            ))

        if not results:
            results.append(AuditCheck.passed_check(
                CheckType.VAT_BREAKDOWN,
                "vat_breakdown",
                f"{len(record.vat_breakdown)} VAT row(s) consistent with totals",
            ))
        return results

    # =========================================================================
    # COMPANY_EXISTS / COMPANY_NAME
    # =========================================================================

    async def check_company(
        self,
        record: ExtractionRecord,
        vat_field: str,
        name_field: str | None,
        check_name: bool = True,
        errors: PipelineErrors | None = None,
    ) -> list[AuditCheck]:
        """Registry checks. Never worse than WARNING: the registry is advisory."""
        raw_vat = getattr(record, vat_field)
        if is_blank(raw_vat):
            return [AuditCheck.incomplete(CheckType.COMPANY_EXISTS, vat_field, "no VAT number")]

        vat = normalize_identifier(raw_vat)
        if vat[:2].isdigit():
            vat = "BE" + vat
        if not vat.startswith("BE"):
            return [AuditCheck.passed_check(
                CheckType.COMPANY_EXISTS, vat_field, f"Non-Belgian VAT number {vat}, registry check skipped"
            )]

        if not is_valid_belgian_vat(vat):
            return [AuditCheck.warning(
                CheckType.COMPANY_EXISTS,
                vat_field,
                message=f"VAT number {vat} is not a valid Belgian enterprise number",
                hint="Re-read the VAT number. Belgian VAT format: BE + 10 digits (e.g. BE0123456749).",
                actual=vat,
            )]

        if self.registry is None:
            return []

        try:
            lookup = await self.registry.lookup(vat)
        except Exception as e:
            logger.warning("Company registry unavailable for %s: %s", vat, e)
            if errors is not None:
                errors.add(registry_error("company registry unavailable, company checks skipped", vat, e))
            return [AuditCheck.passed_check(
                CheckType.COMPANY_EXISTS, vat_field, "registry unavailable, check skipped"
            )]

        if not lookup.exists:
            return [AuditCheck.warning(
                CheckType.COMPANY_EXISTS,
                vat_field,
                message=f"VAT number {vat} not found in the company registry",
                hint="Re-read the VAT number. Belgian VAT format: BE + 10 digits.",
                actual=vat,
            )]

        results = [AuditCheck.passed_check(CheckType.COMPANY_EXISTS, vat_field, f"{vat} found in registry")]

        extracted_name = getattr(record, name_field) if name_field else None
        if not check_name or is_blank(extracted_name) or is_blank(lookup.official_name):
            return results

        score = fuzz.token_sort_ratio(normalize_text(extracted_name), normalize_text(lookup.official_name))
        if score >= CompanyConfig.NAME_MATCH_THRESHOLD:
            results.append(AuditCheck.passed_check(
                CheckType.COMPANY_NAME, name_field, f"Name matches registry ({score:.0f}%)"
            ))
        else:
            results.append(AuditCheck.warning(
                CheckType.COMPANY_NAME,
                name_field,
                message=f"Name '{extracted_name}' differs from registry name '{lookup.official_name}'",
                hint="Re-read the company name in the document header; it may be a trade name.",
                expected=lookup.official_name,
                actual=extracted_name,
            ))
        return results
