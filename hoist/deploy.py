"""
Deploy and execute helpers attached to every environment.

Transactions are sent with eth_sendTransaction, so the node (or a remote
signer behind it) signs. Constructor arguments and call data arrive
already ABI-encoded as hex.
"""
from __future__ import annotations

from functools import partial
from typing import Any, Dict, Optional

from hoist.environment import extend_environment
from hoist.environment.environment import Environment
from hoist.environment.models import Artifact, Deployment, PartialDeployment, PendingDeployment, TransactionReceipt
from hoist.exceptions import PendingTransactionError, TransactionFailedError
from hoist.logging import log_event
from hoist.time_utils import unix_now


def _hex(value: Optional[int]) -> Optional[str]:
    return None if value is None else hex(value)


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def build_transaction(
    env: Environment,
    *,
    sender: str,
    data: str,
    to: Optional[str] = None,
    value: Optional[int] = None,
    gas: Optional[int] = None,
    max_fee_per_gas: Optional[int] = None,
    max_priority_fee_per_gas: Optional[int] = None,
    nonce: Optional[int] = None,
) -> Dict[str, Any]:
    tx: Dict[str, Any] = {
        "type": "0x2",
        "from": sender,
        "chainId": hex(int(env.network.chain_id)),
        "data": data,
        "to": to,
        "value": _hex(value),
        "gas": _hex(gas),
        "maxFeePerGas": _hex(max_fee_per_gas),
        "maxPriorityFeePerGas": _hex(max_priority_fee_per_gas),
        "nonce": _hex(nonce),
    }
    return {key: val for key, val in tx.items() if val is not None}


async def deploy(
    env: Environment,
    name: str,
    *,
    artifact: str | Artifact,
    account: str,
    args_data: str = "0x",
    skip_if_already_deployed: bool = False,
    **tx_options: Any,
) -> Deployment:
    if skip_if_already_deployed:
        existing = env.get(name)
        if existing is not None:
            log_event("deploy_skipped", name=name, address=existing.address)
            return existing
    in_flight = env.get_pending(name)
    if in_flight is not None:
        raise PendingTransactionError(
            f"'{name}' has an unconfirmed transaction {in_flight.tx_hash}; refusing to resubmit",
            detail={"name": name, "tx_hash": in_flight.tx_hash},
        )

    sender = env.resolve_account(account)
    artifact_to_use = env.get_artifact(artifact) if isinstance(artifact, str) else artifact
    calldata = artifact_to_use.bytecode + _strip_0x(args_data)
    tx = build_transaction(env, sender=sender, data=calldata, **tx_options)

    tx_hash = await env.network.provider.request("eth_sendTransaction", [tx])
    log_event("deploy_submitted", name=name, tx_hash=tx_hash, account=sender)

    partial_deployment = PartialDeployment(
        abi=list(artifact_to_use.abi),
        bytecode=artifact_to_use.bytecode,
        args_data="0x" + _strip_0x(args_data),
        metadata=artifact_to_use.metadata,
    )
    pending = PendingDeployment(partial=partial_deployment, tx_hash=tx_hash, account=sender, submitted_at=unix_now())
    return await env.save_while_pending(name, pending)


async def execute(
    env: Environment,
    name: str,
    *,
    data: str,
    account: str,
    **tx_options: Any,
) -> TransactionReceipt:
    """Sends pre-encoded call data to a saved deployment and waits for it."""
    deployment = env.get_deployment(name)
    sender = env.resolve_account(account)
    tx = build_transaction(env, sender=sender, data=data, to=deployment.address, **tx_options)

    tx_hash = await env.network.provider.request("eth_sendTransaction", [tx])
    log_event("execute_submitted", name=name, tx_hash=tx_hash, account=sender)
    receipt = await env.wait_for_transaction(tx_hash)
    if not receipt.succeeded:
        raise TransactionFailedError(
            f"transaction {tx_hash} on '{name}' reverted",
            detail={"name": name, "tx_hash": tx_hash},
        )
    return receipt


@extend_environment
def install_deploy_helpers(env: Environment) -> None:
    env.deploy = partial(deploy, env)
    env.execute = partial(execute, env)
