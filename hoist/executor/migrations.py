from __future__ import annotations

from hoist.adapters.storage.deployment_store import DeploymentStore
from hoist.exceptions import MigrationIdMissingError
from hoist.time_utils import unix_now

from .contracts import ScriptDescriptor


class MigrationsLedger:
    """One-time scripts that already completed on this network, keyed by script id."""

    def __init__(self, store: DeploymentStore) -> None:
        self.store = store

    def is_complete(self, descriptor: ScriptDescriptor) -> bool:
        return bool(descriptor.id) and descriptor.id in self.store.migrations()

    async def record(self, descriptor: ScriptDescriptor) -> int:
        if not descriptor.id:
            raise MigrationIdMissingError(
                str(descriptor.path),
                f"{descriptor.path} returned True to not be executed again, but does not provide an id",
            )
        timestamp = unix_now()
        await self.store.record_migration(descriptor.id, timestamp)
        return timestamp
