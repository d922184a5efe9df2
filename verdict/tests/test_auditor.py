"""Tests for verdict.core.auditor module.

Tests each compliance check and the aggregated AuditReport:
- MATH (totals and line items)
- CHECKSUM_OGM / CHECKSUM_IBAN
- VAT_RATE including the Horeca rule
- VAT_BREAKDOWN
- COMPANY_EXISTS / COMPANY_NAME with a fake registry
"""

from datetime import date
from decimal import Decimal

import pytest

from verdict.core.auditor import ComplianceAuditor, is_horeca, valid_vat_rates
from verdict.core.config import ALL_CHECKS
from verdict.core.errors import ErrorCategory, PipelineErrors
from verdict.pydantic_models import (
    AuditSeverity,
    AuditStatus,
    CheckType,
    LineItem,
    VatBreakdownEntry,
)


@pytest.fixture
def auditor():
    return ComplianceAuditor()


# =============================================================================
# MATH
# =============================================================================


class TestMathCheck:
    """Tests for the subtotal + VAT = total check."""

    def test_consistent_totals_pass(self, auditor, record_factory):
        [check] = auditor.check_math(record_factory())
        assert check.passed
        assert check.check_type == CheckType.MATH

    def test_wrong_total_is_critical(self, auditor, record_factory):
        [check] = auditor.check_math(record_factory(total_amount="120.00"))
        assert not check.passed
        assert check.severity == AuditSeverity.CRITICAL
        assert check.field == "total_amount"
        assert check.expected == "121.00"
        assert check.actual == "120.00"
        assert "121.00" in check.message
        assert "TOTALS" in check.hint
        assert "1↔7" in check.hint

    def test_within_tolerance_passes(self, auditor, record_factory):
        [check] = auditor.check_math(record_factory(total_amount="121.02"))
        assert check.passed

    def test_european_number_format(self, auditor, record_factory):
        record = record_factory(subtotal="1.000,00", vat_amount="210,00", total_amount="1.210,00")
        [check] = auditor.check_math(record)
        assert check.passed

    def test_missing_input_is_incomplete(self, auditor, record_factory):
        [check] = auditor.check_math(record_factory(vat_amount=None))
        assert check.passed
        assert check.severity == AuditSeverity.INFO
        assert check.message.startswith("incomplete")

    def test_line_item_arithmetic_warning(self, auditor, record_factory):
        record = record_factory(line_items=[
            LineItem(description="Widget", quantity="2", unit_price="30.00", total="60.00"),
            LineItem(description="Gadget", quantity="1", unit_price="40.00", total="45.00"),
        ])
        checks = auditor.check_math(record)
        failing = [c for c in checks if not c.passed]
        fields = {c.field for c in failing}
        assert "line_items[1]" in fields
        assert all(c.severity == AuditSeverity.WARNING for c in failing)

    def test_line_items_summing_to_subtotal_pass(self, auditor, record_factory):
        record = record_factory(line_items=[
            LineItem(description="Widget", quantity="2", unit_price="30.00", total="60.00"),
            LineItem(description="Gadget", quantity="1", unit_price="40.00", total="40.00"),
        ])
        assert all(c.passed for c in auditor.check_math(record))

    def test_line_items_not_summing_warns(self, auditor, record_factory):
        record = record_factory(line_items=[
            LineItem(description="Widget", total="60.00"),
            LineItem(description="Gadget", total="30.00"),
        ])
        failing = [c for c in auditor.check_math(record) if not c.passed]
        assert [c.field for c in failing] == ["line_items"]
        assert failing[0].expected == "100.00"
        assert failing[0].actual == "90.00"

    def test_vat_inclusive_lines_accepted(self, auditor, record_factory):
        """Receipt lines that add up to the total (VAT included) are fine."""
        record = record_factory(line_items=[
            LineItem(description="Coffee", total="21.00"),
            LineItem(description="Lunch", total="100.00"),
        ])
        assert all(c.passed for c in auditor.check_math(record))


# =============================================================================
# CHECKSUM_OGM / CHECKSUM_IBAN
# =============================================================================


class TestOgmCheck:
    """Tests for the structured payment reference check."""

    def test_valid_reference(self, auditor, record_factory):
        check = auditor.check_ogm(record_factory())
        assert check.passed

    def test_ocr_corrected_reference_passes_with_note(self, auditor, record_factory):
        check = auditor.check_ogm(record_factory(payment_reference="+++O12/3456/78939+++"))
        assert check.passed
        assert "OCR correction applied" in check.message

    def test_bad_check_digits_critical(self, auditor, record_factory):
        check = auditor.check_ogm(record_factory(payment_reference="+++012/3456/78999+++"))
        assert not check.passed
        assert check.severity == AuditSeverity.CRITICAL
        assert "Re-read" in check.hint
        assert "0↔O, 1↔I, 8↔B, 5↔S, 6↔G" in check.hint
        assert check.expected == "39"
        assert check.actual == "99"

    def test_missing_reference_incomplete(self, auditor, record_factory):
        check = auditor.check_ogm(record_factory(payment_reference=None))
        assert check.passed
        assert check.message.startswith("incomplete")

    def test_free_text_reference_passes(self, auditor, record_factory):
        check = auditor.check_ogm(record_factory(payment_reference="Invoice 2026-001"))
        assert check.passed
        assert check.severity == AuditSeverity.INFO


class TestIbanCheck:
    """Tests for the IBAN check."""

    def test_valid_iban(self, auditor, record_factory):
        assert auditor.check_iban(record_factory()).passed

    def test_checksum_mismatch_critical(self, auditor, record_factory):
        check = auditor.check_iban(record_factory(iban="BE68539007547035"))
        assert not check.passed
        assert check.severity == AuditSeverity.CRITICAL
        assert "BANK DETAILS" in check.hint

    def test_short_belgian_iban_hint(self, auditor, record_factory):
        check = auditor.check_iban(record_factory(iban="BE6853900754"))
        assert not check.passed
        assert check.severity == AuditSeverity.CRITICAL
        assert "Belgian" in check.hint
        assert "16 characters" in check.hint

    def test_missing_iban_incomplete(self, auditor, record_factory):
        check = auditor.check_iban(record_factory(iban=None))
        assert check.passed
        assert check.severity == AuditSeverity.INFO


# =============================================================================
# VAT_RATE
# =============================================================================


class TestVatRateCheck:
    """Tests for the VAT rate check."""

    @pytest.mark.parametrize("rate", ["0", "6", "12", "21", "21%", "21.00", "0.21"])
    def test_valid_rates(self, auditor, record_factory, rate):
        assert auditor.check_vat_rate(record_factory(vat_rate=rate)).passed

    def test_invalid_rate_warns_with_valid_set(self, auditor, record_factory):
        check = auditor.check_vat_rate(record_factory(vat_rate="19"))
        assert not check.passed
        assert check.severity == AuditSeverity.WARNING
        assert check.actual == "19%"
        assert "0%, 6%, 12%, 21%" in check.hint

    def test_implied_rate_used_when_missing(self, auditor, record_factory):
        check = auditor.check_vat_rate(record_factory(vat_rate=None))
        assert check.passed
        assert "implied" in check.message

    def test_implied_rate_snaps_within_tolerance(self, auditor, record_factory):
        record = record_factory(vat_rate=None, subtotal="33.06", vat_amount="6.94", total_amount="40.00")
        assert auditor.check_vat_rate(record).passed

    def test_implied_rate_outside_known_rates_warns(self, auditor, record_factory):
        record = record_factory(vat_rate=None, subtotal="100.00", vat_amount="15.00", total_amount="115.00")
        check = auditor.check_vat_rate(record)
        assert not check.passed
        assert check.actual == "15%"

    def test_no_rate_and_no_amounts_incomplete(self, auditor, record_factory):
        record = record_factory(vat_rate=None, subtotal=None)
        check = auditor.check_vat_rate(record)
        assert check.passed
        assert check.message.startswith("incomplete")

    def test_horeca_12_percent_before_reform_warns(self, auditor, record_factory):
        record = record_factory(vat_rate="12", category="Restaurant", issue_date="2026-02-15")
        check = auditor.check_vat_rate(record)
        assert not check.passed
        assert "2026-03-01" in check.message

    def test_horeca_12_percent_after_reform_passes(self, auditor, record_factory):
        record = record_factory(vat_rate="12", category="Restaurant", issue_date="01/03/2026")
        assert auditor.check_vat_rate(record).passed

    def test_non_horeca_12_percent_always_valid(self, auditor, record_factory):
        record = record_factory(vat_rate="12", category="Office supplies", issue_date="2025-06-01")
        assert auditor.check_vat_rate(record).passed


class TestVatRateHelpers:
    """Tests for is_horeca() and valid_vat_rates()."""

    def test_is_horeca(self):
        assert is_horeca("HORECA")
        assert is_horeca("Hotel stay")
        assert not is_horeca("Fuel")
        assert not is_horeca(None)

    def test_valid_rates_before_reform(self):
        rates = valid_vat_rates("horeca", date(2026, 2, 28))
        assert Decimal("12") not in rates
        assert Decimal("21") in rates

    def test_valid_rates_undated_horeca(self):
        assert Decimal("12") in valid_vat_rates("horeca", None)


# =============================================================================
# VAT_BREAKDOWN
# =============================================================================


class TestVatBreakdownCheck:
    """Tests for the per-rate VAT breakdown check."""

    def test_absent_and_not_required_records_nothing(self, auditor, record_factory):
        assert auditor.check_vat_breakdown(record_factory()) == []

    def test_absent_and_required_warns(self, auditor, record_factory):
        [check] = auditor.check_vat_breakdown(record_factory(), required=True)
        assert not check.passed
        assert check.severity == AuditSeverity.WARNING

    def test_consistent_breakdown_passes(self, auditor, record_factory):
        record = record_factory(
            subtotal="150.00",
            vat_amount="24.00",
            total_amount="174.00",
            vat_rate=None,
            vat_breakdown=[
                VatBreakdownEntry(rate="21", base="100.00", amount="21.00"),
                VatBreakdownEntry(rate="6", base="50.00", amount="3.00"),
            ],
        )
        checks = auditor.check_vat_breakdown(record)
        assert len(checks) == 1
        assert checks[0].passed

    def test_row_amount_mismatch_warns(self, auditor, record_factory):
        record = record_factory(vat_breakdown=[
            VatBreakdownEntry(rate="21", base="100.00", amount="12.00"),
        ])
        checks = auditor.check_vat_breakdown(record)
        fields = {c.field for c in checks if not c.passed}
        assert "vat_breakdown[0]" in fields
        assert "vat_amount" in fields

    def test_bases_not_matching_subtotal_warns(self, auditor, record_factory):
        record = record_factory(vat_breakdown=[
            VatBreakdownEntry(rate="21", base="90.00", amount="18.90"),
        ])
        failing = [c for c in auditor.check_vat_breakdown(record) if not c.passed]
        assert any(c.field == "subtotal" for c in failing)
        assert all(c.severity == AuditSeverity.WARNING for c in failing)


# =============================================================================
# COMPANY_EXISTS / COMPANY_NAME
# =============================================================================


class TestCompanyChecks:
    """Tests for the registry-backed checks."""

    @pytest.mark.asyncio
    async def test_known_company_passes(self, registry, record_factory):
        auditor = ComplianceAuditor(registry=registry)
        checks = await auditor.check_company(record_factory(), "customer_vat_number", "customer_name")
        assert [c.check_type for c in checks] == [CheckType.COMPANY_EXISTS, CheckType.COMPANY_NAME]
        assert all(c.passed for c in checks)
        assert registry.lookups == ["BE0123456749"]

    @pytest.mark.asyncio
    async def test_unknown_company_warns(self, registry_factory, record_factory):
        auditor = ComplianceAuditor(registry=registry_factory({}))
        [check] = await auditor.check_company(record_factory(), "customer_vat_number", "customer_name")
        assert not check.passed
        assert check.severity == AuditSeverity.WARNING

    @pytest.mark.asyncio
    async def test_name_mismatch_warns(self, registry_factory, record_factory):
        auditor = ComplianceAuditor(registry=registry_factory({"BE0123456749": "Totally Different SA"}))
        checks = await auditor.check_company(record_factory(), "customer_vat_number", "customer_name")
        name_check = checks[-1]
        assert name_check.check_type == CheckType.COMPANY_NAME
        assert not name_check.passed
        assert name_check.expected == "Totally Different SA"

    @pytest.mark.asyncio
    async def test_name_word_order_tolerated(self, registry_factory, record_factory):
        auditor = ComplianceAuditor(registry=registry_factory({"BE0123456749": "NV Client Company"}))
        checks = await auditor.check_company(record_factory(), "customer_vat_number", "customer_name")
        assert all(c.passed for c in checks)

    @pytest.mark.asyncio
    async def test_registry_unavailable_degrades(self, registry_factory, record_factory):
        auditor = ComplianceAuditor(registry=registry_factory(unavailable=True))
        errors = PipelineErrors()
        [check] = await auditor.check_company(
            record_factory(), "customer_vat_number", "customer_name", errors=errors
        )
        assert check.passed
        assert check.severity == AuditSeverity.INFO
        assert "registry unavailable" in check.message
        assert errors.warnings[0].category == ErrorCategory.REGISTRY

    @pytest.mark.asyncio
    async def test_malformed_vat_warns_without_lookup(self, registry, record_factory):
        auditor = ComplianceAuditor(registry=registry)
        [check] = await auditor.check_company(
            record_factory(customer_vat_number="BE0123456789"), "customer_vat_number", "customer_name"
        )
        assert not check.passed
        assert "BE + 10 digits" in check.hint
        assert registry.lookups == []

    @pytest.mark.asyncio
    async def test_foreign_vat_skipped(self, registry, record_factory):
        auditor = ComplianceAuditor(registry=registry)
        [check] = await auditor.check_company(
            record_factory(customer_vat_number="NL123456789B01"), "customer_vat_number", "customer_name"
        )
        assert check.passed
        assert registry.lookups == []

    @pytest.mark.asyncio
    async def test_no_registry_skips_lookup(self, auditor, record_factory):
        checks = await auditor.check_company(record_factory(), "customer_vat_number", "customer_name")
        assert checks == []


# =============================================================================
# Full audit
# =============================================================================


class TestAudit:
    """Tests for ComplianceAuditor.audit()."""

    @pytest.mark.asyncio
    async def test_clean_record_passes(self, registry, record_factory):
        auditor = ComplianceAuditor(registry=registry)
        report = await auditor.audit(
            record_factory(),
            ALL_CHECKS,
            company_vat_field="customer_vat_number",
            company_name_field="customer_name",
        )
        assert report.status == AuditStatus.PASSED
        assert report.failures == []

    @pytest.mark.asyncio
    async def test_only_requested_checks_run(self, auditor, record_factory):
        report = await auditor.audit(record_factory(), frozenset({CheckType.MATH}))
        assert {c.check_type for c in report.checks} == {CheckType.MATH}

    @pytest.mark.asyncio
    async def test_critical_failure_fails_report(self, auditor, record_factory):
        report = await auditor.audit(
            record_factory(total_amount="120.00", vat_rate="19"),
            frozenset({CheckType.MATH, CheckType.VAT_RATE}),
        )
        assert report.status == AuditStatus.FAILED
        assert len(report.critical_failures) == 1
        assert len(report.warnings) == 1
        assert report.failures[0].check_type == CheckType.MATH

    @pytest.mark.asyncio
    async def test_warnings_only_still_pass(self, auditor, record_factory):
        report = await auditor.audit(record_factory(vat_rate="19"), frozenset({CheckType.VAT_RATE}))
        assert report.passed
        assert len(report.warnings) == 1
