from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .models import Artifact


@dataclass(eq=False)
class ProvidedContext:
    """
    The configuration every script of one project is authored against.

    Compared by identity: two scripts share a context only if they hold the
    same object.

    accounts values are an address, an index into eth_accounts, or a mapping
    keyed by network name or chain id with an optional 'default'.
    """

    accounts: Dict[str, Any] = field(default_factory=dict)
    artifacts: Dict[str, Artifact] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.artifacts = {name: _coerce_artifact(value) for name, value in self.artifacts.items()}


def _coerce_artifact(value: Artifact | Mapping[str, Any]) -> Artifact:
    if isinstance(value, Artifact):
        return value
    return Artifact.model_validate(dict(value))
