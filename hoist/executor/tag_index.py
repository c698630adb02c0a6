from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

from hoist.exceptions import InvalidTagError

from .contracts import ScriptDescriptor

TAG_SEPARATOR = ","


def validate_tag(tag: str, *, path: Path | None = None) -> str:
    if TAG_SEPARATOR in tag:
        raise InvalidTagError(
            f"Tag cannot contain commas: '{tag}'",
            detail={"tag": tag, "path": str(path) if path else None},
        )
    return tag


class TagIndex:
    """tag -> script paths declaring it, in discovery order. Read-only once built."""

    def __init__(self, buckets: Mapping[str, tuple[Path, ...]]) -> None:
        self._buckets = dict(buckets)

    @classmethod
    def build(cls, descriptors: Iterable[ScriptDescriptor]) -> "TagIndex":
        buckets: dict[str, list[Path]] = {}
        for descriptor in descriptors:
            for tag in descriptor.tags:
                validate_tag(tag, path=descriptor.path)
                buckets.setdefault(tag, []).append(descriptor.path)
        return cls({tag: tuple(paths) for tag, paths in buckets.items()})

    def paths_for(self, tag: str) -> tuple[Path, ...]:
        return self._buckets.get(tag, ())

    def __contains__(self, tag: object) -> bool:
        return tag in self._buckets
