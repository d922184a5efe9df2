"""Interfaces of the external collaborators the pipeline calls.

The pipeline never performs extraction or registry lookups itself. Callers
plug in objects that satisfy these protocols; tests use in-memory fakes.
"""

from dataclasses import dataclass
from typing import Protocol

from verdict.pydantic_models import (
    DocumentClassification,
    DocumentType,
    ExtractionRecord,
    SourceSelector,
)


class ExtractionProvider(Protocol):
    """Produces an ExtractionRecord from document text.

    Must be safe to call repeatedly for the same document (the correction
    loop re-extracts with feedback). With ``provenance`` set, the source
    should fill ExtractionRecord.provenance with per-field spans; otherwise
    any spans it returns are dropped. Raise any exception on failure.
    """

    async def extract(
        self,
        document_text: str,
        source: SourceSelector,
        feedback: str | None = None,
        *,
        document_type: DocumentType = DocumentType.INVOICE,
        provenance: bool = False,
    ) -> ExtractionRecord:
        ...


@dataclass(frozen=True)
class CompanyLookup:
    """Registry answer for one VAT number."""

    exists: bool
    official_name: str | None = None


class CompanyRegistry(Protocol):
    """Looks up companies by VAT number.

    Raise verdict.core.errors.RegistryUnavailable (or any exception) when the
    registry cannot be reached; the audit degrades instead of failing.
    """

    async def lookup(self, vat_number: str) -> CompanyLookup:
        ...


class DocumentClassifier(Protocol):
    """Decides the document family when the caller does not know it."""

    async def classify(self, document_text: str) -> DocumentClassification:
        ...
