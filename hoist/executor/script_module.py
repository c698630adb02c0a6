from __future__ import annotations

from typing import Any, Iterable, Optional

from hoist.environment.context import ProvidedContext

from .contracts import ScriptFunction, SkipPredicate


class DeployScript:
    """Callable wrapper produced by deploy_script; scripts export it as `default`."""

    def __init__(
        self,
        context: ProvidedContext,
        func: ScriptFunction,
        *,
        tags: str | Iterable[str] | None = None,
        dependencies: Iterable[str] | None = None,
        skip: Optional[SkipPredicate] = None,
        run_at_the_end: bool = False,
        id: Optional[str] = None,
    ) -> None:
        self.provided_context = context
        self.func = func
        self.tags = tags
        self.dependencies = list(dependencies) if dependencies is not None else None
        self.skip = skip
        self.run_at_the_end = run_at_the_end
        self.id = id

    def __call__(self, env: Any, args: Any = None) -> Any:
        return self.func(env, args)

    def __repr__(self) -> str:
        return f"DeployScript({getattr(self.func, '__qualname__', self.func)!r}, tags={self.tags!r})"


def deploy_script(
    context: ProvidedContext,
    func: ScriptFunction,
    *,
    tags: str | Iterable[str] | None = None,
    dependencies: Iterable[str] | None = None,
    skip: Optional[SkipPredicate] = None,
    run_at_the_end: bool = False,
    id: Optional[str] = None,
) -> DeployScript:
    return DeployScript(
        context,
        func,
        tags=tags,
        dependencies=dependencies,
        skip=skip,
        run_at_the_end=run_at_the_end,
        id=id,
    )
