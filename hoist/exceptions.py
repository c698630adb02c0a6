from __future__ import annotations

from typing import Any, Dict, Optional


class HoistError(Exception):
    """Base error for the Hoist domain."""

    code = "E_HOIST"

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: Dict[str, Any] = dict(detail or {})
        if code:
            self.code = code

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "ok": False,
            "code": self.code,
            "message": self.message,
            "detail": dict(self.detail),
        }
        notes = getattr(self, "__notes__", None)
        if notes:
            payload["notes"] = list(notes)
        return payload


class ConfigError(HoistError):
    code = "E_CONFIG"


# Script loading and scheduling


class LoadError(HoistError):
    """Raised when a script file cannot be imported."""

    code = "E_SCRIPT_LOAD"

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message, detail={"path": path})
        self.path = path


class ConfigurationConflict(HoistError):
    """Raised when two scripts were authored against different provided contexts."""

    code = "E_CONTEXT_CONFLICT"


class NoContextError(HoistError):
    code = "E_NO_CONTEXT"


class InvalidTagError(HoistError):
    code = "E_INVALID_TAG"


class CyclicDependencyError(HoistError):
    code = "E_DEPENDENCY_CYCLE"

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(
            "Cyclic script dependency: " + " -> ".join(cycle),
            detail={"cycle": list(cycle)},
        )
        self.cycle = list(cycle)


class ScriptError(HoistError):
    """A failure attributed to one script file."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message, detail={"path": path})
        self.path = path


class MigrationIdMissingError(ScriptError):
    code = "E_MIGRATION_ID_MISSING"


# Environment and network


class RecoveryError(HoistError):
    """Raised when a pending transaction cannot be resolved against the network."""

    code = "E_RECOVERY"


class UnknownAccountError(HoistError):
    code = "E_UNKNOWN_ACCOUNT"


class UnknownArtifactError(HoistError):
    code = "E_UNKNOWN_ARTIFACT"


class UnknownDeploymentError(HoistError):
    code = "E_UNKNOWN_DEPLOYMENT"


class PendingTransactionError(HoistError):
    code = "E_TRANSACTION_PENDING"


class TransactionFailedError(HoistError):
    code = "E_TRANSACTION_FAILED"


class ChainMismatchError(HoistError):
    code = "E_CHAIN_MISMATCH"
