from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from hoist.adapters.storage.async_file_tools import AsyncFileTools
from hoist.environment.models import Deployment, PendingDeployment
from hoist.exceptions import ConfigError
from hoist.logging import log_event

PENDING_DIRNAME = ".pending"
FAILED_DIRNAME = ".failed"
CHAIN_FILENAME = ".chain"
MIGRATIONS_FILENAME = ".migrations.json"
MEMORY_NETWORK = "memory"

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.:@-]+$")


def validate_deployment_name(name: str) -> str:
    value = str(name or "").strip()
    if not value or value.startswith(".") or not _NAME_PATTERN.match(value):
        raise ConfigError(f"Invalid deployment name '{name}'.", detail={"name": name})
    return value


class DeploymentStore:
    """
    Deployments of one network, keyed by logical name.

    Layout under <root>/<network>/:
      <name>.json            confirmed deployment
      .pending/<name>.json   transaction submitted, not yet confirmed
      .failed/<name>-<tx>.json  reverted or dropped transactions
      .chain                 chain id the directory belongs to
      .migrations.json       completed one-time scripts
    The 'memory' network keeps everything in process.
    """

    def __init__(self, root: Optional[Path], network_name: str) -> None:
        self.network_name = network_name
        self.persistent = root is not None and network_name != MEMORY_NETWORK
        self.directory: Optional[Path] = (root / network_name) if self.persistent else None
        self.file_tools: Optional[AsyncFileTools] = AsyncFileTools(self.directory) if self.directory else None
        self._deployments: Dict[str, Deployment] = {}
        self._pending: Dict[str, PendingDeployment] = {}
        self._migrations: Dict[str, int] = {}

    async def load(self) -> None:
        self._deployments.clear()
        self._pending.clear()
        self._migrations.clear()
        if self.file_tools is None:
            return
        for path in await self.file_tools.list_json("."):
            self._deployments[path.stem] = self._parse(Deployment, await self.file_tools.read_text(path), path)
        for path in await self.file_tools.list_json(PENDING_DIRNAME):
            self._pending[path.stem] = self._parse(PendingDeployment, await self.file_tools.read_text(path), path)
        migrations_path = self.directory / MIGRATIONS_FILENAME
        if migrations_path.exists():
            payload = await self.file_tools.read_json(MIGRATIONS_FILENAME)
            if isinstance(payload, dict):
                self._migrations = {str(k): int(v) for k, v in payload.items()}
        log_event(
            "deployments_loaded",
            network=self.network_name,
            deployments=len(self._deployments),
            pending=len(self._pending),
        )

    @staticmethod
    def _parse(model: Any, raw: str, path: Path) -> Any:
        try:
            return model.model_validate_json(raw)
        except (ValidationError, ValueError) as exc:
            raise ConfigError(f"Corrupt deployment record {path}: {exc}", detail={"path": str(path)}) from exc

    # reads

    def get(self, name: str) -> Optional[Deployment]:
        return self._deployments.get(name)

    def all(self) -> Dict[str, Deployment]:
        return dict(self._deployments)

    def get_pending(self, name: str) -> Optional[PendingDeployment]:
        return self._pending.get(name)

    def pending(self) -> Dict[str, PendingDeployment]:
        return dict(self._pending)

    def migrations(self) -> Dict[str, int]:
        return dict(self._migrations)

    # writes

    async def save(self, name: str, deployment: Deployment) -> Deployment:
        name = validate_deployment_name(name)
        if self.file_tools is not None:
            await self.file_tools.write_json_atomic(f"{name}.json", deployment.model_dump(mode="json"))
            await self.file_tools.remove(f"{PENDING_DIRNAME}/{name}.json")
        self._deployments[name] = deployment
        self._pending.pop(name, None)
        return deployment

    async def save_pending(self, name: str, pending: PendingDeployment) -> PendingDeployment:
        name = validate_deployment_name(name)
        if self.file_tools is not None:
            await self.file_tools.write_json_atomic(
                f"{PENDING_DIRNAME}/{name}.json", pending.model_dump(mode="json")
            )
        self._pending[name] = pending
        return pending

    async def mark_failed(self, name: str, reason: str) -> None:
        pending = self._pending.pop(name, None)
        if pending is None:
            return
        if self.file_tools is not None:
            record = {**pending.model_dump(mode="json"), "pending": False, "failure_reason": reason}
            await self.file_tools.write_json_atomic(f"{FAILED_DIRNAME}/{name}-{pending.tx_hash[2:10]}.json", record)
            await self.file_tools.remove(f"{PENDING_DIRNAME}/{name}.json")

    async def record_migration(self, script_id: str, timestamp: int) -> None:
        self._migrations[script_id] = timestamp
        if self.file_tools is not None:
            await self.file_tools.write_json_atomic(MIGRATIONS_FILENAME, self._migrations)

    async def read_chain_id(self) -> Optional[str]:
        if self.file_tools is None or not (self.directory / CHAIN_FILENAME).exists():
            return None
        return (await self.file_tools.read_text(CHAIN_FILENAME)).strip() or None

    async def write_chain_id(self, chain_id: str) -> None:
        if self.file_tools is not None:
            await self.file_tools.write_text_atomic(CHAIN_FILENAME, f"{chain_id}\n")

    def describe(self) -> Dict[str, Any]:
        return {
            "network": self.network_name,
            "directory": str(self.directory) if self.directory else None,
            "deployments": sorted(self._deployments),
            "pending": sorted(self._pending),
        }

    def __repr__(self) -> str:
        return f"DeploymentStore({json.dumps(self.describe())})"
