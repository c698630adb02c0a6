from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from hoist.adapters.network.json_rpc_client import RequestProvider
from hoist.exceptions import UnknownAccountError


def _pick(value: Any, network_name: str, chain_id: str) -> Any:
    while isinstance(value, Mapping):
        for key in (network_name, chain_id, "default"):
            if key in value:
                value = value[key]
                break
        else:
            return None
    return value


async def resolve_named_accounts(
    accounts: Mapping[str, Any],
    *,
    network_name: str,
    chain_id: str,
    provider: RequestProvider,
) -> Dict[str, str]:
    """Turns the provided context's account spec into name -> address for this network."""
    resolved: Dict[str, str] = {}
    node_accounts: Optional[List[str]] = None
    for name, spec in accounts.items():
        value = _pick(spec, network_name, chain_id)
        if value is None:
            continue
        if isinstance(value, bool):
            raise UnknownAccountError(f"Invalid account spec for '{name}'.", detail={"account": name})
        if isinstance(value, int):
            if node_accounts is None:
                node_accounts = list(await provider.request("eth_accounts", []) or [])
            if value < 0 or value >= len(node_accounts):
                raise UnknownAccountError(
                    f"Account '{name}' refers to index {value} but the node exposes {len(node_accounts)} accounts.",
                    detail={"account": name, "index": value},
                )
            resolved[name] = node_accounts[value]
            continue
        address = str(value).strip()
        if not address.startswith("0x"):
            raise UnknownAccountError(f"Account '{name}' is not an address: {address}", detail={"account": name})
        resolved[name] = address
    return resolved


def resolve_account(accounts: Mapping[str, str], account: str) -> str:
    """An address passes through, a name is looked up."""
    if account.startswith("0x"):
        return account
    address = accounts.get(account)
    if not address:
        raise UnknownAccountError(f"no address for {account}", detail={"account": account})
    return address
