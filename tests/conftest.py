import json
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from hoist.adapters.network.rpc_errors import RpcError
from hoist.config import RunConfig

DEFAULT_ACCOUNTS = [
    "0x00000000000000000000000000000000000000a1",
    "0x00000000000000000000000000000000000000a2",
    "0x00000000000000000000000000000000000000a3",
]

CONTEXT_SOURCE = """
from hoist import ProvidedContext

context = ProvidedContext(
    accounts={"deployer": 0, "admin": {"default": 1, "mainnet": "0x00000000000000000000000000000000000000ff"}},
    artifacts={"Token": {"abi": [{"type": "constructor", "inputs": []}], "bytecode": "0x6080"}},
)
"""


class FakeChain:
    """In-process stand-in for a node: mines on submit unless told otherwise."""

    def __init__(self, chain_id: int = 31337, accounts: Optional[List[str]] = None) -> None:
        self.chain_id = chain_id
        self.accounts = list(accounts or DEFAULT_ACCOUNTS)
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.auto_mine = True
        self.revert_next = False
        self.fail_methods: set = set()
        self._nonce = 0

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        params = list(params or [])
        self.calls.append((method, params))
        if method in self.fail_methods:
            raise RpcError(f"{method} unavailable", code=-32000)
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_accounts":
            return list(self.accounts)
        if method == "eth_sendTransaction":
            return self.submit(params[0])
        if method == "eth_getTransactionReceipt":
            return self.receipts.get(params[0])
        if method == "eth_getTransactionByHash":
            return self.transactions.get(params[0])
        raise RpcError(f"unsupported method {method}", code=-32601)

    def submit(self, tx: Dict[str, Any]) -> str:
        self._nonce += 1
        tx_hash = "0x" + f"{self._nonce:064x}"
        self.transactions[tx_hash] = dict(tx)
        if self.auto_mine:
            status = 0 if self.revert_next else 1
            self.revert_next = False
            self.mine(tx_hash, status=status)
        return tx_hash

    def add_transaction(self, tx_hash: str, tx: Optional[Dict[str, Any]] = None) -> None:
        self.transactions[tx_hash] = dict(tx or {"from": self.accounts[0]})

    def mine(self, tx_hash: str, *, status: int = 1, contract_address: Optional[str] = None) -> Dict[str, Any]:
        tx = self.transactions.get(tx_hash, {})
        if contract_address is None and "to" not in tx:
            contract_address = "0x" + tx_hash[-40:]
        receipt = {
            "transactionHash": tx_hash,
            "blockNumber": hex(len(self.receipts) + 1),
            "blockHash": "0x" + "b" * 64,
            "gasUsed": "0x5208",
            "status": hex(status),
            "contractAddress": contract_address,
        }
        self.receipts[tx_hash] = receipt
        return receipt

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def sent(self) -> List[Dict[str, Any]]:
        return [params[0] for method, params in self.calls if method == "eth_sendTransaction"]


def script_source(
    body: str = "pass",
    *,
    tags: Any = None,
    dependencies: Any = None,
    run_at_the_end: bool = False,
    skip: Optional[str] = None,
    script_id: Optional[str] = None,
) -> str:
    """A deploy script that records its own file name into the list passed as args."""
    lines = [
        "from pathlib import Path",
        "from _context import context",
        "from hoist import deploy_script",
        "",
        "async def run(env, args):",
        "    if args is not None:",
        "        args.append(Path(__file__).stem)",
    ]
    lines += ["    " + line for line in textwrap.dedent(body).strip().splitlines()]
    options = [f"tags={tags!r}", f"dependencies={dependencies!r}", f"run_at_the_end={run_at_the_end!r}", f"id={script_id!r}"]
    if skip is not None:
        lines += ["", "async def should_skip(env, args):"]
        lines += ["    " + line for line in textwrap.dedent(skip).strip().splitlines()]
        options.append("skip=should_skip")
    lines += ["", f"default = deploy_script(context, run, {', '.join(options)})", ""]
    return "\n".join(lines)


class ScriptsBuilder:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.write("_context.py", CONTEXT_SOURCE)

    def write(self, name: str, source: str) -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    def script(self, name: str, body: str = "pass", **options: Any) -> Path:
        return self.write(name, script_source(body, **options))


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def make_chain():
    return FakeChain


@pytest.fixture
def scripts(tmp_path) -> ScriptsBuilder:
    return ScriptsBuilder(tmp_path / "deploy")


@pytest.fixture
def run_config(tmp_path) -> RunConfig:
    return RunConfig(
        network_name="localhost",
        node_url="http://127.0.0.1:8545",
        deployments=str(tmp_path / "deployments"),
        scripts=str(tmp_path / "deploy"),
        poll_interval=0.0,
        confirmation_timeout=1.0,
        recovery_timeout=0.0,
    )


def write_pending_record(deployments_root: Path, network: str, name: str, tx_hash: str, chain_id: int = 31337) -> Path:
    network_dir = deployments_root / network
    (network_dir / ".pending").mkdir(parents=True, exist_ok=True)
    (network_dir / ".chain").write_text(f"{chain_id}\n", encoding="utf-8")
    record = {
        "partial": {"abi": [], "bytecode": "0x6080", "args_data": "0x"},
        "tx_hash": tx_hash,
        "account": DEFAULT_ACCOUNTS[0],
        "submitted_at": 1700000000,
        "pending": True,
    }
    path = network_dir / ".pending" / f"{name}.json"
    path.write_text(json.dumps(record), encoding="utf-8")
    return path


@pytest.fixture
def pending_record():
    return write_pending_record
