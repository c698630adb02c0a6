from __future__ import annotations

import asyncio
import time
from typing import List, Optional

from hoist.adapters.network.json_rpc_client import RequestProvider
from hoist.adapters.network.rpc_errors import RpcError
from hoist.adapters.storage.deployment_store import DeploymentStore
from hoist.exceptions import RecoveryError
from hoist.logging import log_event

from .confirmation import fetch_receipt, transaction_known
from .models import Deployment, PendingDeployment, RecoveryFailure, RecoveryReport, TransactionReceipt

OUTCOME_PROMOTED = "promoted"
OUTCOME_PENDING = "pending"
OUTCOME_FAILED = "failed"

NO_CONTRACT_ADDRESS = "no contract address in receipt"


class PendingTransactionRecovery:
    """
    Reconciles pending deployment records with the network.

    Each pending record ends up promoted (mined and successful), failed
    (reverted, dropped, or mined without a contract address) or still
    pending (known to the node but not mined within the timeout).
    """

    def __init__(
        self,
        store: DeploymentStore,
        provider: RequestProvider,
        *,
        poll_interval: float = 1.0,
        timeout: Optional[float] = 0.0,
    ) -> None:
        self.store = store
        self.provider = provider
        self.poll_interval = poll_interval
        self.timeout = timeout

    async def recover(self) -> RecoveryReport:
        promoted: List[str] = []
        still_pending: List[str] = []
        failed: List[RecoveryFailure] = []

        for name, pending in self.store.pending().items():
            try:
                outcome, receipt, reason = await self._resolve(pending)
            except RpcError as exc:
                log_event("recovery_query_failed", level="error", name=name, tx_hash=pending.tx_hash, error=str(exc))
                raise RecoveryError(
                    f"Could not query transaction {pending.tx_hash} for pending deployment '{name}': {exc}",
                    detail={"name": name, "tx_hash": pending.tx_hash, "network": self.store.network_name},
                ) from exc

            if outcome == OUTCOME_PROMOTED:
                await self.store.save(name, Deployment.from_pending(pending, receipt))
                promoted.append(name)
                log_event("pending_deployment_promoted", name=name, tx_hash=pending.tx_hash, address=receipt.contract_address)
            elif outcome == OUTCOME_FAILED:
                await self.store.mark_failed(name, reason)
                failed.append(RecoveryFailure(name=name, tx_hash=pending.tx_hash, reason=reason))
                log_event("pending_deployment_failed", level="warning", name=name, tx_hash=pending.tx_hash, reason=reason)
            else:
                still_pending.append(name)
                log_event("pending_deployment_outstanding", level="warning", name=name, tx_hash=pending.tx_hash)

        return RecoveryReport(promoted=tuple(promoted), still_pending=tuple(still_pending), failed=tuple(failed))

    async def _resolve(self, pending: PendingDeployment) -> tuple[str, Optional[TransactionReceipt], str]:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while True:
            receipt = await fetch_receipt(self.provider, pending.tx_hash)
            if receipt is not None:
                if not receipt.succeeded:
                    return OUTCOME_FAILED, receipt, "reverted"
                if not receipt.contract_address:
                    return OUTCOME_FAILED, receipt, NO_CONTRACT_ADDRESS
                return OUTCOME_PROMOTED, receipt, ""
            if not await transaction_known(self.provider, pending.tx_hash):
                return OUTCOME_FAILED, None, "dropped"
            if deadline is not None and time.monotonic() >= deadline:
                return OUTCOME_PENDING, None, ""
            await asyncio.sleep(self.poll_interval)
