from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from hoist.adapters.network.json_rpc_client import JsonRpcProvider, RequestProvider
from hoist.adapters.storage.deployment_store import DeploymentStore
from hoist.config import RunConfig
from hoist.exceptions import (
    ChainMismatchError,
    ConfigError,
    PendingTransactionError,
    TransactionFailedError,
    UnknownArtifactError,
    UnknownDeploymentError,
)
from hoist.logging import log_event

from .accounts import resolve_account, resolve_named_accounts
from .confirmation import wait_for_receipt
from .context import ProvidedContext
from .models import Artifact, Deployment, NetworkInfo, PendingDeployment, RecoveryReport, TransactionReceipt
from .recovery import NO_CONTRACT_ADDRESS, PendingTransactionRecovery

EnvironmentExtension = Callable[["Environment"], None]

_extensions: List[EnvironmentExtension] = []


def extend_environment(extension: EnvironmentExtension) -> EnvironmentExtension:
    """Registers a function applied to every environment created afterwards."""
    if extension not in _extensions:
        _extensions.append(extension)
    return extension


def registered_extensions() -> Tuple[EnvironmentExtension, ...]:
    return tuple(_extensions)


class Environment:
    """The single context every script of a run receives."""

    def __init__(
        self,
        *,
        config: RunConfig,
        context: ProvidedContext,
        network: NetworkInfo,
        accounts: Mapping[str, str],
        store: DeploymentStore,
    ) -> None:
        self.config = config
        self.context = context
        self.network = network
        self._accounts = dict(accounts)
        self._store = store

    @property
    def accounts(self) -> Mapping[str, str]:
        return MappingProxyType(self._accounts)

    @property
    def artifacts(self) -> Mapping[str, Artifact]:
        return MappingProxyType(self.context.artifacts)

    @property
    def deployments(self) -> Dict[str, Deployment]:
        return self._store.all()

    def get(self, name: str) -> Optional[Deployment]:
        return self._store.get(name)

    def get_pending(self, name: str) -> Optional[PendingDeployment]:
        return self._store.get_pending(name)

    def get_deployment(self, name: str) -> Deployment:
        deployment = self._store.get(name)
        if deployment is None:
            raise UnknownDeploymentError(f"no deployment named {name}", detail={"name": name})
        return deployment

    def get_artifact(self, name: str) -> Artifact:
        artifact = self.context.artifacts.get(name)
        if artifact is None:
            raise UnknownArtifactError(f"no artifact named {name}", detail={"name": name})
        return artifact

    def resolve_account(self, account: str) -> str:
        return resolve_account(self._accounts, account)

    async def save(self, name: str, deployment: Deployment) -> Deployment:
        saved = await self._store.save(name, deployment)
        log_event("deployment_saved", name=name, address=deployment.address, network=self.network.name)
        return saved

    async def save_while_pending(self, name: str, pending: PendingDeployment) -> Deployment:
        """
        Persists the pending record before waiting, so a crash while the
        transaction is in flight is resolved by the next run's recovery.
        """
        existing = self._store.get_pending(name)
        if existing is not None and existing.tx_hash != pending.tx_hash:
            raise PendingTransactionError(
                f"'{name}' already has an unconfirmed transaction {existing.tx_hash}",
                detail={"name": name, "tx_hash": existing.tx_hash},
            )
        await self._store.save_pending(name, pending)
        log_event("deployment_pending", name=name, tx_hash=pending.tx_hash, network=self.network.name)

        receipt = await self.wait_for_transaction(pending.tx_hash)
        if not receipt.succeeded:
            await self._store.mark_failed(name, "reverted")
            raise TransactionFailedError(
                f"deployment of '{name}' reverted in tx {pending.tx_hash}",
                detail={"name": name, "tx_hash": pending.tx_hash},
            )
        if not receipt.contract_address:
            await self._store.mark_failed(name, NO_CONTRACT_ADDRESS)
            raise TransactionFailedError(
                f"tx {pending.tx_hash} for '{name}' was mined without creating a contract",
                detail={"name": name, "tx_hash": pending.tx_hash, "reason": NO_CONTRACT_ADDRESS},
            )
        return await self.save(name, Deployment.from_pending(pending, receipt))

    async def wait_for_transaction(self, tx_hash: str) -> TransactionReceipt:
        receipt = await wait_for_receipt(
            self.network.provider,
            tx_hash,
            poll_interval=self.config.poll_interval,
            timeout=self.config.confirmation_timeout,
        )
        if receipt is None:
            raise PendingTransactionError(
                f"transaction {tx_hash} not confirmed within {self.config.confirmation_timeout}s",
                detail={"tx_hash": tx_hash},
            )
        return receipt


class EnvironmentRuntime:
    """The half of the environment only the pipeline touches."""

    def __init__(self, environment: Environment, store: DeploymentStore, recovery: PendingTransactionRecovery) -> None:
        self.environment = environment
        self.store = store
        self.recovery = recovery

    async def recover_transactions_if_any(self) -> RecoveryReport:
        if not self.store.pending():
            return RecoveryReport()
        report = await self.recovery.recover()
        log_event("recovery_completed", network=self.store.network_name, **report.summary())
        return report


def build_provider(config: RunConfig) -> RequestProvider:
    if not config.node_url:
        raise ConfigError(
            f"No node URL for network '{config.network_name}' and no provider given.",
            detail={"network": config.network_name},
        )
    return JsonRpcProvider(config.node_url)


def _chain_id_from_rpc(value: Any) -> str:
    text = str(value or "").strip()
    return str(int(text, 16)) if text.startswith("0x") else text


async def create_environment(
    config: RunConfig,
    context: ProvidedContext,
    *,
    provider: Optional[RequestProvider] = None,
) -> Tuple[Environment, EnvironmentRuntime]:
    provider = provider or build_provider(config)
    chain_id = _chain_id_from_rpc(await provider.request("eth_chainId", []))

    store = DeploymentStore(Path(config.deployments), config.network_name)
    await store.load()
    recorded_chain_id = await store.read_chain_id()
    if recorded_chain_id is not None and recorded_chain_id != chain_id:
        raise ChainMismatchError(
            f"deployments for '{config.network_name}' belong to chain {recorded_chain_id}, node reports {chain_id}",
            detail={"network": config.network_name, "recorded": recorded_chain_id, "node": chain_id},
        )
    if recorded_chain_id is None:
        await store.write_chain_id(chain_id)

    accounts = await resolve_named_accounts(
        context.accounts,
        network_name=config.network_name,
        chain_id=chain_id,
        provider=provider,
    )
    network = NetworkInfo(name=config.network_name, chain_id=chain_id, provider=provider)
    environment = Environment(config=config, context=context, network=network, accounts=accounts, store=store)
    for extension in _extensions:
        extension(environment)

    recovery = PendingTransactionRecovery(
        store,
        provider,
        poll_interval=config.poll_interval,
        timeout=config.recovery_timeout,
    )
    log_event("environment_created", network=network.name, chain_id=chain_id, accounts=sorted(accounts))
    return environment, EnvironmentRuntime(environment, store, recovery)
