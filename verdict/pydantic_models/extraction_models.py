"""Pydantic schemas for extraction records.

An ExtractionRecord is what one extraction source returns for one document.
It is a fixed schema of optional fields so that every stage downstream
(consensus, audit, judgment) can address fields by name without guessing.

Amounts and rates are kept as the exact decimal strings the source produced
("1.234,56", "121.00", "21%"); parsing into Decimal happens at comparison
time in core/value_helpers.py.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocumentType(Enum):
    """Document families the pipeline knows how to route."""
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    PRO_FORMA = "pro_forma"
    BILL = "bill"
    RECEIPT = "receipt"
    EXPENSE = "expense"
    UNKNOWN = "unknown"


class SourceSelector(Enum):
    """Which extraction source produced a record.

    FAST is source A (cheap model), EXPERT is source B (stronger model).
    """
    FAST = "fast"
    EXPERT = "expert"


class DocumentClassification(BaseModel):
    """Classifier verdict for a document."""

    model_config = ConfigDict(frozen=True)

    document_type: DocumentType = Field(description="Detected document family")
    confidence: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Classifier confidence, 0.0 to 1.0",
    )
    reasoning: str = Field(default="", description="Why this type was chosen")


class SourceSpan(BaseModel):
    """Where in the document a field value was read."""

    model_config = ConfigDict(frozen=True)

    page: int | None = Field(default=None, description="1-based page number")
    quote: str | None = Field(default=None, description="Exact text the value came from")
    start: int | None = Field(default=None, description="Character offset of the quote")
    end: int | None = Field(default=None, description="Character offset after the quote")


class LineItem(BaseModel):
    """One line on an invoice or receipt."""

    model_config = ConfigDict(frozen=True)

    description: str | None = None
    quantity: str | None = Field(default=None, description="Decimal string, e.g. '2' or '1.5'")
    unit_price: str | None = Field(default=None, description="Decimal string, excl. VAT")
    total: str | None = Field(default=None, description="Line total excl. VAT")
    vat_rate: str | None = Field(default=None, description="Percentage, e.g. '21'")


class VatBreakdownEntry(BaseModel):
    """One row of a per-rate VAT summary table."""

    model_config = ConfigDict(frozen=True)

    rate: str = Field(description="VAT rate as a percentage, e.g. '21' or '6%'")
    base: str = Field(description="Taxable base for this rate")
    amount: str = Field(description="VAT due on this base")


class ExtractionRecord(BaseModel):
    """Typed result of one extraction attempt.

    Attributes:
        document_number: Invoice/receipt number as printed
        issue_date: Issue date as printed (ISO or dd/mm/yyyy)
        due_date: Payment due date
        currency: ISO currency code
        supplier_name: Seller / vendor / merchant
        supplier_vat_number: Seller VAT number (BE0123456789)
        customer_name: Buyer name
        customer_vat_number: Buyer VAT number
        subtotal: Amount excluding VAT
        vat_amount: Total VAT
        total_amount: Amount including VAT
        vat_rate: Single VAT rate when the document uses one
        vat_breakdown: Per-rate VAT rows
        line_items: Individual lines
        iban: Beneficiary bank account
        bic: Beneficiary bank BIC
        payment_reference: Structured (OGM) or free payment communication
        category: Expense category or sector label (e.g. "horeca")
        confidence: Source's overall confidence, 0.0 to 1.0
        provenance: Optional per-field source spans
    """

    model_config = ConfigDict(frozen=True)

    document_number: str | None = None
    issue_date: str | None = None
    due_date: str | None = None
    currency: str | None = None

    supplier_name: str | None = None
    supplier_vat_number: str | None = None
    customer_name: str | None = None
    customer_vat_number: str | None = None

    subtotal: str | None = None
    vat_amount: str | None = None
    total_amount: str | None = None
    vat_rate: str | None = None
    vat_breakdown: list[VatBreakdownEntry] = Field(default_factory=list)
    line_items: list[LineItem] = Field(default_factory=list)

    iban: str | None = None
    bic: str | None = None
    payment_reference: str | None = None

    category: str | None = None

    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    provenance: dict[str, SourceSpan] = Field(default_factory=dict)

    def without_provenance(self) -> "ExtractionRecord":
        """Copy with source spans dropped (provenance not requested)."""
        if not self.provenance:
            return self
        return self.model_copy(update={"provenance": {}})

    def is_empty(self) -> bool:
        """True when no scalar field and no list carries data."""
        for name in SCALAR_FIELDS:
            value = getattr(self, name)
            if value is not None and str(value).strip():
                return False
        return not self.line_items and not self.vat_breakdown


SCALAR_FIELDS: tuple[str, ...] = (
    "document_number",
    "issue_date",
    "due_date",
    "currency",
    "supplier_name",
    "supplier_vat_number",
    "customer_name",
    "customer_vat_number",
    "subtotal",
    "vat_amount",
    "total_amount",
    "vat_rate",
    "iban",
    "bic",
    "payment_reference",
    "category",
)
"""Scalar fields compared one by one during consensus, in report order."""
