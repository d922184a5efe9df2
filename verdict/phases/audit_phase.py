"""Audit phase - deterministic compliance checks on the canonical record."""

from verdict.phases.phase_base import PhaseRunner
from verdict.pydantic_models import AuditReport


class AuditPhase(PhaseRunner[AuditReport]):
    """Phase 2: Compliance audit along the document's route."""

    name = "Audit"

    async def run(self) -> AuditReport:
        self.start()
        ctx = self.context
        report = await ctx.audit_record(ctx.state.record)
        ctx.state.audit_report = report

        for check in report.failures:
            self.log(f"{check.check_type.display_name} [{check.field}]: {check.message}", "debug")

        self.logger.phase_result(
            "audit",
            report.status.value,
            checks=len(report.checks),
            critical=len(report.critical_failures),
            warnings=len(report.warnings),
        )
        self.end()
        return report
