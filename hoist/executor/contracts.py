from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

ScriptResult = Any
ScriptFunction = Callable[[Any, Any], Union[ScriptResult, Awaitable[ScriptResult]]]
SkipPredicate = Callable[[Any, Any], Union[bool, Awaitable[bool]]]


class DeployScriptModule(Protocol):
    """What a script file exports: a callable carrying scheduling metadata."""

    tags: Any
    dependencies: Any
    skip: Optional[SkipPredicate]
    run_at_the_end: bool
    id: Optional[str]
    provided_context: Any

    def __call__(self, env: Any, args: Any = None) -> Union[ScriptResult, Awaitable[ScriptResult]]:
        ...


@dataclass(frozen=True, eq=False)
class ScriptDescriptor:
    """One loaded script. Identity is its absolute path."""

    path: Path
    func: ScriptFunction
    tags: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    skip: Optional[SkipPredicate] = None
    run_at_the_end: bool = False
    id: Optional[str] = None
    provided_context: Any = None

    @property
    def name(self) -> str:
        return self.path.name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ScriptDescriptor) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)


@dataclass(frozen=True)
class RunSet:
    primary: tuple[ScriptDescriptor, ...] = ()
    deferred: tuple[ScriptDescriptor, ...] = ()

    def ordered(self) -> tuple[ScriptDescriptor, ...]:
        return self.primary + self.deferred

    def paths(self) -> list[Path]:
        return [descriptor.path for descriptor in self.ordered()]

    def __len__(self) -> int:
        return len(self.primary) + len(self.deferred)


@dataclass(frozen=True)
class RunResult:
    environment: Any
    run_set: RunSet
    executed: tuple[Path, ...] = ()
    skipped: tuple[Path, ...] = ()
    recovery: Any = None
