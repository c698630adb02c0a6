from __future__ import annotations

import asyncio
import time
from typing import Optional

from hoist.adapters.network.json_rpc_client import RequestProvider

from .models import TransactionReceipt


async def fetch_receipt(provider: RequestProvider, tx_hash: str) -> Optional[TransactionReceipt]:
    payload = await provider.request("eth_getTransactionReceipt", [tx_hash])
    if not payload:
        return None
    return TransactionReceipt.from_rpc(payload)


async def transaction_known(provider: RequestProvider, tx_hash: str) -> bool:
    return bool(await provider.request("eth_getTransactionByHash", [tx_hash]))


async def wait_for_receipt(
    provider: RequestProvider,
    tx_hash: str,
    *,
    poll_interval: float = 1.0,
    timeout: Optional[float] = None,
) -> Optional[TransactionReceipt]:
    """
    Polls until the transaction is mined. Returns None once the timeout passes
    (a timeout of 0 means a single check, None waits forever).
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        receipt = await fetch_receipt(provider, tx_hash)
        if receipt is not None:
            return receipt
        if deadline is not None and time.monotonic() >= deadline:
            return None
        await asyncio.sleep(poll_interval)
