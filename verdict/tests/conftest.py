"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- Sample extraction records (clean Belgian invoice, receipt, expense)
- A scripted fake extraction provider
- A fake company registry
- A mock pipeline logger
"""

from unittest.mock import MagicMock

import pytest

from verdict.core.errors import ProviderError, RegistryUnavailable
from verdict.core.providers import CompanyLookup
from verdict.pydantic_models import ExtractionRecord, SourceSelector


# Valid identifiers used throughout the tests
VALID_IBAN = "BE68539007547034"
VALID_OGM = "+++012/3456/78939+++"
VALID_CUSTOMER_VAT = "BE0123456749"
VALID_SUPPLIER_VAT = "BE0417497106"


def make_record(**overrides) -> ExtractionRecord:
    """A clean invoice record that passes every check."""
    data = {
        "document_number": "INV-2026-001",
        "issue_date": "2026-04-15",
        "due_date": "2026-05-15",
        "currency": "EUR",
        "supplier_name": "Acme Supplies BV",
        "supplier_vat_number": VALID_SUPPLIER_VAT,
        "customer_name": "Client Company NV",
        "customer_vat_number": VALID_CUSTOMER_VAT,
        "subtotal": "100.00",
        "vat_amount": "21.00",
        "total_amount": "121.00",
        "vat_rate": "21",
        "iban": VALID_IBAN,
        "payment_reference": VALID_OGM,
        "confidence": 0.92,
    }
    data.update(overrides)
    return ExtractionRecord(**data)


@pytest.fixture
def clean_record() -> ExtractionRecord:
    return make_record()


@pytest.fixture
def record_factory():
    """Factory for records with overrides: record_factory(total_amount="120.00")."""
    return make_record


# =============================================================================
# Fake Extraction Provider
# =============================================================================


class FakeProvider:
    """Extraction provider returning scripted results.

    ``script`` maps a source to a list of results consumed in order; the last
    entry is repeated once the list runs out. A result that is an exception
    instance is raised instead of returned. Every call is recorded.
    """

    def __init__(self, script: dict[SourceSelector, list] | None = None, default=None):
        self.script = {source: list(results) for source, results in (script or {}).items()}
        self.default = default
        self.calls: list[dict] = []

    async def extract(self, document_text, source, feedback=None, *, document_type=None, provenance=False):
        self.calls.append({
            "source": source,
            "feedback": feedback,
            "document_type": document_type,
            "provenance": provenance,
        })
        results = self.script.get(source)
        if results:
            result = results.pop(0) if len(results) > 1 else results[0]
        else:
            result = self.default
        if isinstance(result, BaseException):
            raise result
        if result is None:
            raise ProviderError(f"no scripted result for {source.value}")
        return result

    @property
    def retry_calls(self) -> list[dict]:
        return [c for c in self.calls if c["feedback"] is not None]


@pytest.fixture
def provider_factory():
    return FakeProvider


# =============================================================================
# Fake Company Registry
# =============================================================================


class FakeRegistry:
    """Company registry backed by a dict of VAT number -> official name."""

    def __init__(self, companies: dict[str, str] | None = None, unavailable: bool = False):
        self.companies = companies or {}
        self.unavailable = unavailable
        self.lookups: list[str] = []

    async def lookup(self, vat_number: str) -> CompanyLookup:
        self.lookups.append(vat_number)
        if self.unavailable:
            raise RegistryUnavailable("registry down")
        name = self.companies.get(vat_number)
        return CompanyLookup(exists=name is not None, official_name=name)


@pytest.fixture
def registry():
    return FakeRegistry({
        VALID_CUSTOMER_VAT: "Client Company NV",
        VALID_SUPPLIER_VAT: "Acme Supplies BV",
    })


@pytest.fixture
def registry_factory():
    return FakeRegistry


# =============================================================================
# Mock Logger
# =============================================================================


@pytest.fixture
def mock_logger():
    """MagicMock standing in for PipelineLogger (no console output)."""
    return MagicMock()
