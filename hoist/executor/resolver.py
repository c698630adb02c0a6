from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

from hoist.exceptions import CyclicDependencyError

from .contracts import RunSet, ScriptDescriptor
from .tag_index import TagIndex


def select_initial(descriptors: Sequence[ScriptDescriptor], tags: Optional[Iterable[str]]) -> list[ScriptDescriptor]:
    """Everything when no tag filter is given, else the scripts declaring at least one requested tag."""
    wanted = set(tags or ())
    if not wanted:
        return list(descriptors)
    return [descriptor for descriptor in descriptors if wanted.intersection(descriptor.tags)]


class DependencyResolver:
    """
    Expands a selection depth-first through tag dependencies.

    Every script resolved from a dependency tag is placed before the script
    that depends on it. A dependency tag nobody declares resolves to nothing.
    """

    def __init__(self, descriptors: Sequence[ScriptDescriptor], tag_index: TagIndex) -> None:
        self._by_path = {descriptor.path: descriptor for descriptor in descriptors}
        self._tag_index = tag_index

    def resolve(self, selection: Iterable[ScriptDescriptor]) -> RunSet:
        primary: list[ScriptDescriptor] = []
        deferred: list[ScriptDescriptor] = []
        placed: set[Path] = set()
        in_progress: list[Path] = []

        def visit(path: Path) -> None:
            if path in placed:
                return
            if path in in_progress:
                start = in_progress.index(path)
                raise CyclicDependencyError([p.name for p in in_progress[start:]] + [path.name])
            descriptor = self._by_path[path]
            in_progress.append(path)
            for tag in descriptor.dependencies:
                for dependency_path in self._tag_index.paths_for(tag):
                    visit(dependency_path)
            in_progress.pop()

            (deferred if descriptor.run_at_the_end else primary).append(descriptor)
            placed.add(path)

        for descriptor in selection:
            visit(descriptor.path)
        return RunSet(primary=tuple(primary), deferred=tuple(deferred))
