"""
Async File Tools

Non-blocking file I/O for the deployment store using aiofiles.
Every path is resolved inside the store root; writes go through a
temporary sibling and os.replace so a crash never leaves a torn record.
"""
from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import aiofiles


class AsyncFileTools:
    """
    Service for non-blocking file operations rooted at one directory.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def resolve_safe_path(self, path_str: str | Path) -> Path:
        p = Path(path_str)
        if not p.is_absolute():
            p = self.root / p

        resolved = p.resolve(strict=False)
        try:
            inside = resolved.is_relative_to(self.root.resolve())
        except ValueError:
            inside = False
        if not inside:
            raise PermissionError(f"Access denied: {path_str} is outside {self.root}.")
        return resolved

    async def read_text(self, path_str: str | Path) -> str:
        path = self.resolve_safe_path(path_str)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path_str}")

        async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
            return await f.read()

    async def read_json(self, path_str: str | Path) -> Any:
        return json.loads(await self.read_text(path_str))

    async def write_text_atomic(self, path_str: str | Path, content: str) -> Path:
        path = self.resolve_safe_path(path_str)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")

        async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
            await f.write(content)
            await f.flush()
        await asyncio.to_thread(os.replace, tmp_path, path)
        return path

    async def write_json_atomic(self, path_str: str | Path, payload: Any) -> Path:
        return await self.write_text_atomic(path_str, json.dumps(payload, indent=2, sort_keys=True) + "\n")

    async def remove(self, path_str: str | Path) -> bool:
        path = self.resolve_safe_path(path_str)
        if not path.exists():
            return False
        await asyncio.to_thread(path.unlink)
        return True

    async def list_json(self, path_str: str | Path = ".") -> list[Path]:
        """
        List *.json files of a directory, sorted by name. Missing directories are empty.
        """
        path = self.resolve_safe_path(path_str)
        if not path.is_dir():
            return []

        items = await asyncio.to_thread(os.listdir, path)
        return [path / item for item in sorted(items) if item.endswith(".json") and not item.startswith(".")]
