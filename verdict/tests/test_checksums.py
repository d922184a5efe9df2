"""Tests for verdict.core.checksums module.

Tests the Belgian identifier algorithms:
- OGM structured communication (mod 97, OCR letter mapping)
- IBAN (ISO 7064 mod 97, Belgian length)
- Belgian VAT / enterprise number
"""

from verdict.core.checksums import (
    IbanStatus,
    OgmStatus,
    iban_remainder,
    is_valid_belgian_vat,
    ogm_check_digits,
    validate_iban,
    validate_ogm,
)


# =============================================================================
# OGM tests
# =============================================================================


class TestOgmCheckDigits:
    """Tests for ogm_check_digits()."""

    def test_regular_remainder(self):
        assert ogm_check_digits("0123456789") == 39

    def test_zero_remainder_maps_to_97(self):
        """A base divisible by 97 gets check digits 97, never 00."""
        assert ogm_check_digits("0000000097") == 97
        assert ogm_check_digits("0000000000") == 97


class TestValidateOgm:
    """Tests for validate_ogm()."""

    def test_formatted_reference_passes(self):
        result = validate_ogm("+++012/3456/78939+++")
        assert result.status == OgmStatus.VALID
        assert result.is_valid
        assert result.digits == "012345678939"

    def test_plain_digits_pass(self):
        assert validate_ogm("012345678939").status == OgmStatus.VALID

    def test_asterisk_separators_pass(self):
        assert validate_ogm("***012/3456/78939***").is_valid

    def test_letter_o_is_ocr_corrected(self):
        """'O' misread for '0' still validates, flagged as OCR corrected."""
        result = validate_ogm("+++O12/3456/78939+++")
        assert result.status == OgmStatus.OCR_CORRECTED
        assert result.is_valid
        assert result.substitutions == (("O", "0"),)
        assert result.digits == "012345678939"

    def test_several_letters_corrected(self):
        result = validate_ogm("O1234S678939")
        assert result.status == OgmStatus.OCR_CORRECTED
        assert result.substitutions == (("O", "0"), ("S", "5"))

    def test_non_confusable_letter_is_free_text(self):
        assert validate_ogm("O1234S6789E9").status == OgmStatus.NOT_OGM

    def test_wrong_check_digits_fail(self):
        result = validate_ogm("+++012/3456/78999+++")
        assert result.status == OgmStatus.INVALID
        assert not result.is_valid
        assert result.expected_check == 39
        assert result.found_check == 99

    def test_blank(self):
        assert validate_ogm(None).status == OgmStatus.BLANK
        assert validate_ogm("   ").status == OgmStatus.BLANK

    def test_free_text_reference_is_not_ogm(self):
        assert validate_ogm("Invoice 2026-001").status == OgmStatus.NOT_OGM

    def test_wrong_length_is_not_ogm(self):
        assert validate_ogm("12345").status == OgmStatus.NOT_OGM

    def test_too_many_letters_is_not_ogm(self):
        assert validate_ogm("OOOOOBBBBB39").status == OgmStatus.NOT_OGM

    def test_formatted_rendering(self):
        assert validate_ogm("012345678939").formatted() == "+++012/3456/78939+++"


# =============================================================================
# IBAN tests
# =============================================================================


class TestValidateIban:
    """Tests for validate_iban()."""

    def test_valid_belgian_iban(self):
        result = validate_iban("BE68539007547034")
        assert result.status == IbanStatus.VALID
        assert result.is_belgian

    def test_spaces_and_case_ignored(self):
        assert validate_iban("be68 5390 0754 7034").is_valid

    def test_wrong_last_digit_fails_checksum(self):
        result = validate_iban("BE68539007547035")
        assert result.status == IbanStatus.CHECKSUM_MISMATCH

    def test_short_belgian_iban_fails_length(self):
        result = validate_iban("BE6853900754")
        assert result.status == IbanStatus.WRONG_LENGTH
        assert "Belgian" in result.reason
        assert "16 characters" in result.reason

    def test_valid_foreign_iban(self):
        assert validate_iban("NL91ABNA0417164300").is_valid
        assert validate_iban("DE89370400440532013000").is_valid

    def test_invalid_characters(self):
        assert validate_iban("BE68-5390-0754-703!").status == IbanStatus.INVALID_FORMAT

    def test_blank(self):
        assert validate_iban("").status == IbanStatus.BLANK

    def test_remainder_of_valid_iban_is_one(self):
        assert iban_remainder("BE68539007547034") == 1


# =============================================================================
# Belgian VAT number tests
# =============================================================================


class TestBelgianVat:
    """Tests for is_valid_belgian_vat()."""

    def test_valid_numbers(self):
        assert is_valid_belgian_vat("BE0123456749")
        assert is_valid_belgian_vat("BE 0417.497.106")

    def test_missing_prefix_accepted(self):
        assert is_valid_belgian_vat("0123456749")

    def test_bad_check_digits(self):
        assert not is_valid_belgian_vat("BE0123456789")

    def test_wrong_shape(self):
        assert not is_valid_belgian_vat("BE123")
        assert not is_valid_belgian_vat("NL123456789B01")
        assert not is_valid_belgian_vat(None)
