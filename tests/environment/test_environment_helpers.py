import pytest

from hoist import ProvidedContext, extend_environment
from hoist.environment import create_environment
from hoist.environment.accounts import resolve_account, resolve_named_accounts
from hoist.environment.environment import _extensions, registered_extensions
from hoist.environment.models import PartialDeployment, PendingDeployment
from hoist.exceptions import (
    ChainMismatchError,
    PendingTransactionError,
    TransactionFailedError,
    UnknownAccountError,
    UnknownArtifactError,
    UnknownDeploymentError,
)

CONTEXT = ProvidedContext(
    accounts={
        "deployer": 0,
        "admin": {"default": 1, "mainnet": "0x00000000000000000000000000000000000000ff"},
        "oracle": {"1": "0x00000000000000000000000000000000000000ee"},
    },
    artifacts={"Token": {"abi": [], "bytecode": "0x6080"}},
)


async def make_env(chain, run_config):
    environment, _ = await create_environment(run_config, CONTEXT, provider=chain)
    return environment


@pytest.mark.asyncio
async def test_named_accounts_resolve_per_network(chain):
    localhost = await resolve_named_accounts(CONTEXT.accounts, network_name="localhost", chain_id="31337", provider=chain)
    mainnet = await resolve_named_accounts(CONTEXT.accounts, network_name="mainnet", chain_id="1", provider=chain)

    assert localhost == {"deployer": chain.accounts[0], "admin": chain.accounts[1]}
    assert mainnet == {
        "deployer": chain.accounts[0],
        "admin": "0x00000000000000000000000000000000000000ff",
        "oracle": "0x00000000000000000000000000000000000000ee",
    }
    assert chain.methods().count("eth_accounts") == 2


@pytest.mark.asyncio
async def test_account_index_out_of_range(chain):
    with pytest.raises(UnknownAccountError):
        await resolve_named_accounts({"far": 9}, network_name="localhost", chain_id="31337", provider=chain)


def test_resolve_account_passes_addresses_through():
    accounts = {"deployer": "0x00000000000000000000000000000000000000a1"}
    assert resolve_account(accounts, "deployer") == "0x00000000000000000000000000000000000000a1"
    assert resolve_account(accounts, "0x1234") == "0x1234"
    with pytest.raises(UnknownAccountError):
        resolve_account(accounts, "nobody")


@pytest.mark.asyncio
async def test_environment_lookups(chain, run_config):
    env = await make_env(chain, run_config)
    assert env.get_artifact("Token").bytecode == "0x6080"
    assert env.get("token") is None
    with pytest.raises(UnknownArtifactError):
        env.get_artifact("Missing")
    with pytest.raises(UnknownDeploymentError):
        env.get_deployment("token")
    with pytest.raises(TypeError):
        env.accounts["deployer"] = "0x0"


@pytest.mark.asyncio
async def test_deploy_helper_saves_confirmed_deployment(chain, run_config):
    env = await make_env(chain, run_config)
    deployment = await env.deploy("token", artifact="Token", account="deployer", args_data="0x0001")

    tx = chain.sent()[0]
    assert tx["data"] == "0x60800001"
    assert tx["chainId"] == hex(31337)
    assert "to" not in tx
    assert env.get("token") == deployment
    assert env.get_pending("token") is None
    assert deployment.args_data == "0x0001"


@pytest.mark.asyncio
async def test_deploy_skip_if_already_deployed(chain, run_config):
    env = await make_env(chain, run_config)
    first = await env.deploy("token", artifact="Token", account="deployer")
    second = await env.deploy("token", artifact="Token", account="deployer", skip_if_already_deployed=True)

    assert second == first
    assert len(chain.sent()) == 1


@pytest.mark.asyncio
async def test_reverted_deploy_is_moved_to_failed(chain, run_config, tmp_path):
    env = await make_env(chain, run_config)
    chain.revert_next = True

    with pytest.raises(TransactionFailedError):
        await env.deploy("token", artifact="Token", account="deployer")

    assert env.get("token") is None
    assert env.get_pending("token") is None
    assert list((tmp_path / "deployments" / "localhost" / ".failed").glob("token-*.json"))


@pytest.mark.asyncio
async def test_unconfirmed_deploy_stays_pending(chain, run_config, tmp_path):
    env = await make_env(chain, run_config)
    chain.auto_mine = False
    env.config = env.config.model_copy(update={"confirmation_timeout": 0.0})

    with pytest.raises(PendingTransactionError):
        await env.deploy("token", artifact="Token", account="deployer")

    assert env.get("token") is None
    assert env.get_pending("token") is not None
    assert (tmp_path / "deployments" / "localhost" / ".pending" / "token.json").exists()


@pytest.mark.asyncio
async def test_save_while_pending_refuses_a_second_transaction(chain, run_config):
    env = await make_env(chain, run_config)
    first = PendingDeployment(partial=PartialDeployment(), tx_hash="0x" + "01" * 32)
    second = PendingDeployment(partial=PartialDeployment(), tx_hash="0x" + "02" * 32)
    env.config = env.config.model_copy(update={"confirmation_timeout": 0.0})

    with pytest.raises(PendingTransactionError):
        await env.save_while_pending("token", first)
    with pytest.raises(PendingTransactionError) as exc:
        await env.save_while_pending("token", second)

    assert exc.value.detail["tx_hash"] == first.tx_hash


@pytest.mark.asyncio
async def test_execute_helper_targets_saved_deployment(chain, run_config):
    env = await make_env(chain, run_config)
    deployment = await env.deploy("token", artifact="Token", account="deployer")

    receipt = await env.execute("token", data="0xa9059cbb", account="admin")

    tx = chain.sent()[1]
    assert tx["to"] == deployment.address
    assert tx["from"] == chain.accounts[1]
    assert receipt.succeeded
    assert receipt.contract_address is None


@pytest.mark.asyncio
async def test_chain_id_is_pinned_on_first_use(chain, make_chain, run_config):
    await create_environment(run_config, CONTEXT, provider=chain)

    with pytest.raises(ChainMismatchError) as exc:
        await create_environment(run_config, CONTEXT, provider=make_chain(chain_id=1))

    assert exc.value.detail == {"network": "localhost", "recorded": "31337", "node": "1"}


@pytest.mark.asyncio
async def test_extensions_apply_to_new_environments(chain, run_config):
    calls = []

    def tag_environment(environment):
        calls.append(environment)
        environment.extra_marker = True

    extend_environment(tag_environment)
    try:
        environment, _ = await create_environment(run_config, CONTEXT, provider=chain)
    finally:
        _extensions.remove(tag_environment)

    assert calls == [environment]
    assert environment.extra_marker is True
    assert tag_environment not in registered_extensions()


@pytest.mark.asyncio
async def test_negative_account_index_is_rejected(chain):
    with pytest.raises(UnknownAccountError) as exc:
        await resolve_named_accounts({"deployer": -1}, network_name="localhost", chain_id="31337", provider=chain)
    assert exc.value.detail == {"account": "deployer", "index": -1}


@pytest.mark.asyncio
async def test_receipt_without_contract_address_is_not_saved(chain, run_config, tmp_path):
    env = await make_env(chain, run_config)
    tx_hash = chain.submit({"from": chain.accounts[0], "to": "0x" + "22" * 20})
    pending = PendingDeployment(partial=PartialDeployment(bytecode="0x6080"), tx_hash=tx_hash)

    with pytest.raises(TransactionFailedError) as exc:
        await env.save_while_pending("token", pending)

    assert exc.value.detail["reason"] == "no contract address in receipt"
    assert env.get("token") is None
    assert env.get_pending("token") is None
    assert list((tmp_path / "deployments" / "localhost" / ".failed").glob("token-*.json"))
