from __future__ import annotations

import inspect
from pathlib import Path
from typing import Any, Optional

from .contracts import RunSet, ScriptDescriptor
from .migrations import MigrationsLedger
from .reporting import SKIP_REASON_MIGRATION, SKIP_REASON_PREDICATE, LogEventReporter, RunReporter


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ScriptRunner:
    """
    Executes a RunSet strictly in order against one environment.

    Any failure aborts the rest of the run; nothing is retried. Errors raised by a
    script propagate as they are, with a note naming the script file.
    """

    def __init__(
        self,
        environment: Any,
        *,
        ledger: Optional[MigrationsLedger] = None,
        reporter: Optional[RunReporter] = None,
    ) -> None:
        self.environment = environment
        self.ledger = ledger
        self.reporter = reporter or LogEventReporter()
        self.executed: list[Path] = []
        self.skipped: list[Path] = []

    async def run(self, run_set: RunSet, args: Any = None) -> None:
        for descriptor in run_set.ordered():
            await self.run_one(descriptor, args)

    async def run_one(self, descriptor: ScriptDescriptor, args: Any = None) -> None:
        self.reporter.script_started(descriptor)

        if self.ledger is not None and self.ledger.is_complete(descriptor):
            self._skip(descriptor, SKIP_REASON_MIGRATION)
            return

        if descriptor.skip is not None:
            try:
                should_skip = await _maybe_await(descriptor.skip(self.environment, args))
            except Exception as exc:
                exc.add_note(f"raised by skip() of {descriptor.path}")
                self.reporter.script_failed(descriptor, exc)
                raise
            if should_skip:
                self._skip(descriptor, SKIP_REASON_PREDICATE)
                return

        try:
            result = await _maybe_await(descriptor.func(self.environment, args))
        except Exception as exc:
            exc.add_note(f"raised by deploy script {descriptor.path}")
            self.reporter.script_failed(descriptor, exc)
            raise

        if result is True and self.ledger is not None:
            await self.ledger.record(descriptor)
        self.executed.append(descriptor.path)
        self.reporter.script_succeeded(descriptor, result)

    def _skip(self, descriptor: ScriptDescriptor, reason: str) -> None:
        self.skipped.append(descriptor.path)
        self.reporter.script_skipped(descriptor, reason)
