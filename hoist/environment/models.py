from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _hex_to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text, 16) if text.startswith("0x") else int(text or "0")


class Artifact(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    abi: List[Dict[str, Any]] = Field(default_factory=list)
    bytecode: str = "0x"
    deployed_bytecode: Optional[str] = None
    metadata: Optional[str] = None


class PartialDeployment(BaseModel):
    """Everything known about a deployment before its transaction is mined."""

    model_config = ConfigDict(frozen=True, extra="allow")

    abi: List[Dict[str, Any]] = Field(default_factory=list)
    bytecode: str = "0x"
    args_data: str = "0x"
    metadata: Optional[str] = None


class PendingDeployment(BaseModel):
    model_config = ConfigDict(frozen=True)

    partial: PartialDeployment
    tx_hash: str
    account: Optional[str] = None
    submitted_at: int = 0
    pending: bool = True


class TransactionReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    tx_hash: str
    block_number: int
    block_hash: Optional[str] = None
    gas_used: int = 0
    status: int = 1
    contract_address: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, payload: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            tx_hash=str(payload.get("transactionHash") or ""),
            block_number=_hex_to_int(payload.get("blockNumber")),
            block_hash=payload.get("blockHash"),
            gas_used=_hex_to_int(payload.get("gasUsed")),
            # pre-byzantium receipts carry no status field
            status=_hex_to_int(payload.get("status", "0x1")),
            contract_address=payload.get("contractAddress"),
        )


class Deployment(BaseModel):
    """A confirmed deployment. Immutable once written."""

    model_config = ConfigDict(frozen=True, extra="allow")

    address: str
    abi: List[Dict[str, Any]] = Field(default_factory=list)
    bytecode: Optional[str] = None
    args_data: str = "0x"
    tx_hash: Optional[str] = None
    deployer: Optional[str] = None
    receipt: Optional[TransactionReceipt] = None
    pending: bool = False

    @classmethod
    def from_pending(cls, pending: PendingDeployment, receipt: TransactionReceipt) -> "Deployment":
        partial = pending.partial
        return cls(
            address=str(receipt.contract_address or ""),
            abi=list(partial.abi),
            bytecode=partial.bytecode,
            args_data=partial.args_data,
            tx_hash=pending.tx_hash,
            deployer=pending.account,
            receipt=receipt,
        )


@dataclass(frozen=True)
class RecoveryFailure:
    name: str
    tx_hash: str
    reason: str


@dataclass(frozen=True)
class RecoveryReport:
    promoted: tuple[str, ...] = ()
    still_pending: tuple[str, ...] = ()
    failed: tuple[RecoveryFailure, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.promoted or self.still_pending or self.failed)

    def summary(self) -> Dict[str, Any]:
        return {
            "promoted": list(self.promoted),
            "still_pending": list(self.still_pending),
            "failed": [{"name": f.name, "tx_hash": f.tx_hash, "reason": f.reason} for f in self.failed],
        }


@dataclass
class NetworkInfo:
    name: str
    chain_id: str
    provider: Any
