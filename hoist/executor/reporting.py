from __future__ import annotations

from typing import Any, Protocol, TextIO

from hoist.environment.models import RecoveryReport
from hoist.logging import log_event

from .contracts import ScriptDescriptor

SKIP_REASON_PREDICATE = "skip_predicate"
SKIP_REASON_MIGRATION = "migration_complete"


class RunReporter(Protocol):
    def recovery_completed(self, report: RecoveryReport) -> None:
        ...

    def script_started(self, descriptor: ScriptDescriptor) -> None:
        ...

    def script_skipped(self, descriptor: ScriptDescriptor, reason: str) -> None:
        ...

    def script_succeeded(self, descriptor: ScriptDescriptor, result: Any) -> None:
        ...

    def script_failed(self, descriptor: ScriptDescriptor, error: BaseException) -> None:
        ...


class LogEventReporter:
    """Default reporter: one structured log event per lifecycle point."""

    def recovery_completed(self, report: RecoveryReport) -> None:
        if report.is_empty:
            return
        level = "warning" if report.failed or report.still_pending else "info"
        log_event("run_recovery", level=level, **report.summary())

    def script_started(self, descriptor: ScriptDescriptor) -> None:
        log_event("script_started", path=str(descriptor.path))

    def script_skipped(self, descriptor: ScriptDescriptor, reason: str) -> None:
        log_event("script_skipped", path=str(descriptor.path), reason=reason)

    def script_succeeded(self, descriptor: ScriptDescriptor, result: Any) -> None:
        log_event("script_succeeded", path=str(descriptor.path), migration=result is True)

    def script_failed(self, descriptor: ScriptDescriptor, error: BaseException) -> None:
        log_event("script_failed", level="error", path=str(descriptor.path), error=repr(error))


class ConsoleReporter(LogEventReporter):
    """Human-readable progress for the CLI, on top of the log events."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def recovery_completed(self, report: RecoveryReport) -> None:
        super().recovery_completed(report)
        for name in report.promoted:
            self._write(f"recovered pending deployment '{name}'")
        for name in report.still_pending:
            self._write(f"deployment '{name}' is still pending")
        for failure in report.failed:
            self._write(f"pending deployment '{failure.name}' failed ({failure.reason}): {failure.tx_hash}")

    def script_started(self, descriptor: ScriptDescriptor) -> None:
        super().script_started(descriptor)
        self._write(f"- Executing {descriptor.name}")

    def script_skipped(self, descriptor: ScriptDescriptor, reason: str) -> None:
        super().script_skipped(descriptor, reason)
        self._write(f"  skipping {descriptor.name} ({reason})")

    def script_failed(self, descriptor: ScriptDescriptor, error: BaseException) -> None:
        super().script_failed(descriptor, error)
        self._write(f"  failed {descriptor.name}: {error}")
