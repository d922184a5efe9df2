"""Checksum algorithms for Belgian payment identifiers.

- OGM / structured communication: 10-digit base + 2 check digits,
  check = base mod 97 (a remainder of 0 becomes 97).
- IBAN: ISO 7064 mod 97-10, the rearranged numeric string mod 97 must be 1.
- Belgian VAT / enterprise number: 97 - (first 8 digits mod 97) equals the
  last 2 digits.

All functions are pure and never raise on bad input; they return a result
object that says what went wrong.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from verdict.core.config import ChecksumConfig, CompanyConfig
from verdict.core.value_helpers import is_blank, normalize_identifier

logger = logging.getLogger(__name__)

_IBAN_SHAPE = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]+$")
_BELGIAN_VAT = re.compile(CompanyConfig.BELGIAN_VAT_PATTERN)


# =============================================================================
# OGM
# =============================================================================


class OgmStatus(Enum):
    VALID = "valid"
    OCR_CORRECTED = "ocr_corrected"   # Valid once confusable letters were mapped
    INVALID = "invalid"               # OGM-shaped, checksum mismatch
    NOT_OGM = "not_ogm"               # Free-text reference, nothing to check
    BLANK = "blank"


@dataclass(frozen=True)
class OgmResult:
    status: OgmStatus
    digits: str | None = None               # 12 digits after any OCR mapping
    expected_check: int | None = None
    found_check: int | None = None
    substitutions: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return self.status in (OgmStatus.VALID, OgmStatus.OCR_CORRECTED)

    def formatted(self) -> str | None:
        """Canonical +++XXX/XXXX/XXXXX+++ rendering of the digits."""
        if not self.digits:
            return None
        d = self.digits
        return f"+++{d[:3]}/{d[3:7]}/{d[7:]}+++"


def ogm_check_digits(base: str) -> int:
    """Check digits for a 10-digit OGM base. Remainder 0 maps to 97."""
    remainder = int(base) % 97
    return 97 if remainder == 0 else remainder


def _strip_ogm(candidate: str) -> str:
    return "".join(ch for ch in candidate.upper() if ch not in ChecksumConfig.OGM_SEPARATORS)


def _is_ogm_shaped(text: str) -> bool:
    if len(text) != ChecksumConfig.OGM_LENGTH:
        return False
    letters = [ch for ch in text if not ch.isdigit()]
    if len(letters) > ChecksumConfig.OGM_MAX_OCR_LETTERS:
        return False
    return all(ch in ChecksumConfig.OCR_CONFUSABLES for ch in letters)


def validate_ogm(candidate: str | None) -> OgmResult:
    """Validate a structured payment reference.

    Confusable letters (O, I, B, S, G) are mapped to their digit twin before
    the checksum is computed. Each letter has exactly one twin and OGMs are
    all digits, so this yields a single deterministic candidate.

    Args:
        candidate: Raw reference as extracted, e.g. "+++012/3456/78939+++".

    Returns:
        OgmResult describing the outcome.
    """
    if is_blank(candidate):
        return OgmResult(status=OgmStatus.BLANK)

    text = _strip_ogm(candidate)
    if not _is_ogm_shaped(text):
        return OgmResult(status=OgmStatus.NOT_OGM)

    substitutions = tuple(
        (ch, ChecksumConfig.OCR_CONFUSABLES[ch]) for ch in text if not ch.isdigit()
    )
    digits = "".join(ChecksumConfig.OCR_CONFUSABLES.get(ch, ch) for ch in text)

    expected = ogm_check_digits(digits[:10])
    found = int(digits[10:])

    if expected != found:
        return OgmResult(
            status=OgmStatus.INVALID,
            digits=digits,
            expected_check=expected,
            found_check=found,
            substitutions=substitutions,
        )

    if substitutions:
        logger.debug("OGM valid after OCR correction: %s -> %s", candidate, digits)
        return OgmResult(
            status=OgmStatus.OCR_CORRECTED,
            digits=digits,
            expected_check=expected,
            found_check=found,
            substitutions=substitutions,
        )

    return OgmResult(
        status=OgmStatus.VALID,
        digits=digits,
        expected_check=expected,
        found_check=found,
    )


# =============================================================================
# IBAN
# =============================================================================


class IbanStatus(Enum):
    VALID = "valid"
    BLANK = "blank"
    INVALID_FORMAT = "invalid_format"
    WRONG_LENGTH = "wrong_length"
    CHECKSUM_MISMATCH = "checksum_mismatch"


@dataclass(frozen=True)
class IbanResult:
    status: IbanStatus
    normalized: str | None = None
    reason: str = ""

    @property
    def is_valid(self) -> bool:
        return self.status == IbanStatus.VALID

    @property
    def is_belgian(self) -> bool:
        return bool(self.normalized) and self.normalized.startswith("BE")


def iban_remainder(iban: str) -> int:
    """ISO 7064 remainder of a normalized IBAN.

    The first four characters move to the end and letters become numbers
    (A=10 ... Z=35) before taking the remainder.
    """
    rearranged = iban[4:] + iban[:4]
    numeric = "".join(str(int(ch, 36)) for ch in rearranged)
    return int(numeric) % 97


def validate_iban(raw: str | None) -> IbanResult:
    """Validate an IBAN. Belgian IBANs must be exactly 16 characters."""
    if is_blank(raw):
        return IbanResult(status=IbanStatus.BLANK)

    iban = normalize_identifier(raw)
    if not _IBAN_SHAPE.match(iban):
        return IbanResult(
            status=IbanStatus.INVALID_FORMAT,
            normalized=iban,
            reason="IBAN must be 2 letters, 2 check digits, then letters or digits only",
        )

    if iban.startswith("BE") and len(iban) != ChecksumConfig.BELGIAN_IBAN_LENGTH:
        return IbanResult(
            status=IbanStatus.WRONG_LENGTH,
            normalized=iban,
            reason=f"Belgian IBAN must be {ChecksumConfig.BELGIAN_IBAN_LENGTH} characters, got {len(iban)}",
        )

    if not ChecksumConfig.IBAN_MIN_LENGTH <= len(iban) <= ChecksumConfig.IBAN_MAX_LENGTH:
        return IbanResult(
            status=IbanStatus.WRONG_LENGTH,
            normalized=iban,
            reason=(
                f"IBAN length {len(iban)} outside "
                f"{ChecksumConfig.IBAN_MIN_LENGTH}-{ChecksumConfig.IBAN_MAX_LENGTH}"
            ),
        )

    if iban_remainder(iban) != 1:
        return IbanResult(
            status=IbanStatus.CHECKSUM_MISMATCH,
            normalized=iban,
            reason="IBAN checksum (mod 97) does not equal 1",
        )

    return IbanResult(status=IbanStatus.VALID, normalized=iban)


# =============================================================================
# Belgian VAT number
# =============================================================================


def is_valid_belgian_vat(raw: str | None) -> bool:
    """BE + 10 digits whose last two digits are 97 - (first eight mod 97)."""
    vat = normalize_identifier(raw)
    if not vat:
        return False
    if vat[:2].isdigit():
        vat = "BE" + vat
    if not _BELGIAN_VAT.match(vat):
        return False
    digits = vat[2:]
    return 97 - int(digits[:8]) % 97 == int(digits[8:])
