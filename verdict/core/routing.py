"""Per-document-type routing.

Each document family takes its own path through the audit and judgment:
- invoice family (invoice, credit note, pro-forma): every check; the
  counterparty VAT number is the customer's
- bill: supplier VAT checks; no structured payment reference
- receipt: no payment-reference or bank-account checks
- expense: like a receipt, and a missing subtotal is derived from
  total - VAT before auditing
"""

from dataclasses import dataclass

from verdict.core.value_helpers import format_amount, is_blank, parse_amount
from verdict.pydantic_models import CheckType, DocumentType, ExtractionRecord


@dataclass(frozen=True)
class DocumentRoute:
    """Audit and judgment path for one document family.

    Attributes:
        checks: Checks routed for this family (intersected with the
            configured enabled checks at run time).
        company_vat_field: Record field holding the counterparty VAT number.
        company_name_field: Record field holding the counterparty name.
        essential_fields: Fields that must be present for a verdict.
        derive_subtotal: Fill a missing subtotal from total - VAT.
    """

    checks: frozenset[CheckType]
    company_vat_field: str | None
    company_name_field: str | None
    essential_fields: tuple[str, ...]
    derive_subtotal: bool = False


_INVOICE_ROUTE = DocumentRoute(
    checks=frozenset(CheckType),
    company_vat_field="customer_vat_number",
    company_name_field="customer_name",
    essential_fields=("total_amount", "supplier_name"),
)

_BILL_ROUTE = DocumentRoute(
    checks=frozenset(CheckType) - {CheckType.CHECKSUM_OGM},
    company_vat_field="supplier_vat_number",
    company_name_field="supplier_name",
    essential_fields=("total_amount", "supplier_name"),
)

_RECEIPT_ROUTE = DocumentRoute(
    checks=frozenset(CheckType) - {CheckType.CHECKSUM_OGM, CheckType.CHECKSUM_IBAN},
    company_vat_field="supplier_vat_number",
    company_name_field="supplier_name",
    essential_fields=("total_amount", "supplier_name"),
)

_EXPENSE_ROUTE = DocumentRoute(
    checks=frozenset(CheckType) - {CheckType.CHECKSUM_OGM, CheckType.CHECKSUM_IBAN},
    company_vat_field="supplier_vat_number",
    company_name_field="supplier_name",
    essential_fields=("total_amount",),
    derive_subtotal=True,
)

# UNKNOWN never reaches the audit in practice (judgment rejects it), but it
# still gets a route so the pipeline can record what it saw.
_UNKNOWN_ROUTE = DocumentRoute(
    checks=frozenset({CheckType.MATH}),
    company_vat_field=None,
    company_name_field=None,
    essential_fields=("total_amount",),
)

ROUTES: dict[DocumentType, DocumentRoute] = {
    DocumentType.INVOICE: _INVOICE_ROUTE,
    DocumentType.CREDIT_NOTE: _INVOICE_ROUTE,
    DocumentType.PRO_FORMA: _INVOICE_ROUTE,
    DocumentType.BILL: _BILL_ROUTE,
    DocumentType.RECEIPT: _RECEIPT_ROUTE,
    DocumentType.EXPENSE: _EXPENSE_ROUTE,
    DocumentType.UNKNOWN: _UNKNOWN_ROUTE,
}


def route_for(document_type: DocumentType) -> DocumentRoute:
    return ROUTES[document_type]


def missing_essential_fields(record: ExtractionRecord, document_type: DocumentType) -> list[str]:
    """Essential fields of the document type that are blank in the record."""
    return [
        name
        for name in route_for(document_type).essential_fields
        if is_blank(getattr(record, name))
    ]


def prepare_record(record: ExtractionRecord, document_type: DocumentType) -> ExtractionRecord:
    """Apply route-specific derivations before the audit.

    Expenses often print only the total and the VAT; the subtotal is
    derived so the math check has something to verify against.
    """
    route = route_for(document_type)
    if not route.derive_subtotal or not is_blank(record.subtotal):
        return record

    total = parse_amount(record.total_amount)
    vat = parse_amount(record.vat_amount)
    if total is None or vat is None:
        return record
    return record.model_copy(update={"subtotal": format_amount(total - vat)})
