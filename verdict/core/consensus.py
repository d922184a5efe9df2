"""Consensus engine - merges two extraction records into one canonical record.

Disagreement between two independent sources is a signal, not noise: it
points at exactly the fields a reviewer (or a retry) should look at. The
engine therefore records every disagreement as a FieldConflict while still
producing a usable canonical record.

Resolution per scalar field:
1. Agreement after normalization - keep the common value, no conflict
2. One side missing - take the other side, no conflict
3. Disagreement - apply the field's policy (PREFER_SOURCE_A,
   PREFER_SOURCE_B, REQUIRE_MATCH) and record a conflict. REQUIRE_MATCH
   nulls the field and always yields a CRITICAL conflict.

Normalization by field kind:
- amounts and rates: exact Decimal ("100.00" == "100")
- identifiers: uppercase, whitespace and separators removed
- dates: calendar dates ("2026-03-01" == "01/03/2026")
- free text: whitespace-collapsed, case-insensitive
"""

import logging
from enum import Enum
from typing import Any, Callable

from verdict.core.config import ConsensusConfig
from verdict.core.value_helpers import (
    format_amount,
    is_blank,
    normalize_identifier,
    normalize_text,
    parse_amount,
    parse_date,
    parse_rate,
)
from verdict.pydantic_models import (
    SCALAR_FIELDS,
    ConflictReport,
    ConflictSeverity,
    ConsensusMode,
    ConsensusOutcome,
    ExtractionRecord,
    FieldConflict,
    FieldPolicy,
    SourceSelector,
)

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    AMOUNT = "amount"
    RATE = "rate"
    IDENTIFIER = "identifier"
    DATE = "date"
    TEXT = "text"


FIELD_KINDS: dict[str, FieldKind] = {
    "subtotal": FieldKind.AMOUNT,
    "vat_amount": FieldKind.AMOUNT,
    "total_amount": FieldKind.AMOUNT,
    "vat_rate": FieldKind.RATE,
    "document_number": FieldKind.IDENTIFIER,
    "currency": FieldKind.IDENTIFIER,
    "supplier_vat_number": FieldKind.IDENTIFIER,
    "customer_vat_number": FieldKind.IDENTIFIER,
    "iban": FieldKind.IDENTIFIER,
    "bic": FieldKind.IDENTIFIER,
    "payment_reference": FieldKind.IDENTIFIER,
    "issue_date": FieldKind.DATE,
    "due_date": FieldKind.DATE,
}
"""Comparison kind per field. Anything not listed is compared as TEXT."""

_NORMALIZERS: dict[FieldKind, Callable[[Any], Any]] = {
    FieldKind.AMOUNT: parse_amount,
    FieldKind.RATE: parse_rate,
    FieldKind.IDENTIFIER: normalize_identifier,
    FieldKind.DATE: parse_date,
    FieldKind.TEXT: normalize_text,
}


def _normalized(field_name: str, value: Any) -> Any:
    """Comparable form of a raw value, falling back to text comparison
    when the value does not parse as its declared kind."""
    kind = FIELD_KINDS.get(field_name, FieldKind.TEXT)
    normalized = _NORMALIZERS[kind](value)
    if normalized is None:
        return ("unparsed", normalize_text(value))
    return normalized


def values_agree(field_name: str, value_a: Any, value_b: Any) -> bool:
    """True when two raw values are equal after normalization."""
    return _normalized(field_name, value_a) == _normalized(field_name, value_b)


def merged_confidence(confidence_a: float, confidence_b: float, conflict_count: int) -> float:
    """Weighted mean favouring the expert source, minus a conflict penalty."""
    weight = ConsensusConfig.EXPERT_WEIGHT
    base = (confidence_a + weight * confidence_b) / (1 + weight)
    penalty = min(ConsensusConfig.CONFLICT_PENALTY * conflict_count, ConsensusConfig.MAX_CONFLICT_PENALTY)
    return max(0.0, min(1.0, base - penalty))


class ConsensusEngine:
    """Field-by-field merge of a fast (A) and an expert (B) extraction.

    Usage:
        engine = ConsensusEngine(policies={"total_amount": FieldPolicy.REQUIRE_MATCH})
        outcome = engine.merge(record_a, record_b)
        outcome.record        # canonical ExtractionRecord
        outcome.report        # ConflictReport
    """

    def __init__(
        self,
        policies: dict[str, FieldPolicy] | None = None,
        default_policy: FieldPolicy = FieldPolicy.PREFER_SOURCE_B,
        critical_fields: frozenset[str] = ConsensusConfig.CRITICAL_FIELDS,
    ):
        self.policies = dict(policies or {})
        self.default_policy = default_policy
        self.critical_fields = critical_fields

    def policy_for(self, field_name: str) -> FieldPolicy:
        return self.policies.get(field_name, self.default_policy)

    def merge(
        self,
        record_a: ExtractionRecord | None,
        record_b: ExtractionRecord | None,
    ) -> ConsensusOutcome:
        """Merge two records. Either may be None when its source failed.

        Returns:
            ConsensusOutcome. NO_DATA when both are missing, SINGLE_SOURCE
            when one is, else UNANIMOUS or WITH_CONFLICTS.
        """
        if record_a is None and record_b is None:
            return self.no_data("no extraction source produced a record")
        if record_a is None:
            return self.single_source(
                record_b, SourceSelector.EXPERT, "fast source unavailable, using expert source only"
            )
        if record_b is None:
            return self.single_source(
                record_a, SourceSelector.FAST, "expert source unavailable, using fast source only"
            )

        conflicts: list[FieldConflict] = []
        merged: dict[str, Any] = {}
        for field_name in SCALAR_FIELDS:
            value, conflict = self._resolve_field(
                field_name, getattr(record_a, field_name), getattr(record_b, field_name)
            )
            merged[field_name] = value
            if conflict:
                conflicts.append(conflict)

        merged["line_items"] = list(record_b.line_items or record_a.line_items)
        merged["vat_breakdown"] = list(record_b.vat_breakdown or record_a.vat_breakdown)
        merged["provenance"] = {**record_a.provenance, **record_b.provenance}
        merged["confidence"] = merged_confidence(record_a.confidence, record_b.confidence, len(conflicts))

        record = ExtractionRecord(**merged)
        report = ConflictReport(conflicts=conflicts)

        if conflicts:
            logger.info(
                "Consensus: %d conflict(s), %d critical",
                len(conflicts),
                len(report.critical_conflicts),
            )
            return ConsensusOutcome(record=record, report=report, mode=ConsensusMode.WITH_CONFLICTS)

        logger.debug("Consensus: sources agree on every field")
        return ConsensusOutcome(record=record, report=report, mode=ConsensusMode.UNANIMOUS)

    def _resolve_field(
        self,
        field_name: str,
        value_a: str | None,
        value_b: str | None,
    ) -> tuple[str | None, FieldConflict | None]:
        a_missing = is_blank(value_a)
        b_missing = is_blank(value_b)

        if a_missing and b_missing:
            return None, None
        if a_missing:
            return self._canonical(field_name, value_b), None
        if b_missing:
            return self._canonical(field_name, value_a), None

        if values_agree(field_name, value_a, value_b):
            return self._canonical(field_name, value_b), None

        policy = self.policy_for(field_name)
        if policy == FieldPolicy.REQUIRE_MATCH:
            chosen, source = None, None
            severity = ConflictSeverity.CRITICAL
        else:
            if policy == FieldPolicy.PREFER_SOURCE_A:
                chosen, source = value_a, SourceSelector.FAST
            else:
                chosen, source = value_b, SourceSelector.EXPERT
            severity = (
                ConflictSeverity.CRITICAL
                if field_name in self.critical_fields
                else ConflictSeverity.WARNING
            )

        conflict = FieldConflict(
            field=field_name,
            value_from_source_a=value_a,
            value_from_source_b=value_b,
            chosen_value=chosen,
            chosen_source=source,
            severity=severity,
        )
        logger.debug("Conflict on %s: %s", field_name, conflict.describe())
        return chosen, conflict

    @staticmethod
    def _canonical(field_name: str, value: str) -> str:
        """Agreed amounts are written in two-decimal form."""
        if FIELD_KINDS.get(field_name) == FieldKind.AMOUNT:
            amount = parse_amount(value)
            if amount is not None:
                return format_amount(amount)
        return value

    # -- Fallback outcomes --

    @staticmethod
    def single_source(record: ExtractionRecord, source: SourceSelector, note: str) -> ConsensusOutcome:
        return ConsensusOutcome(
            record=record,
            report=ConflictReport(),
            mode=ConsensusMode.SINGLE_SOURCE,
            source=source,
            note=note,
        )

    @staticmethod
    def no_data(note: str) -> ConsensusOutcome:
        return ConsensusOutcome(record=None, mode=ConsensusMode.NO_DATA, note=note)


def resolve_conflicts(
    record_a: ExtractionRecord | None,
    record_b: ExtractionRecord | None,
    policies: dict[str, FieldPolicy] | None = None,
) -> ConsensusOutcome:
    """Convenience wrapper around ConsensusEngine.merge()."""
    return ConsensusEngine(policies=policies).merge(record_a, record_b)
