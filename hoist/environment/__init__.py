from .context import ProvidedContext
from .environment import Environment, EnvironmentRuntime, create_environment, extend_environment
from .models import (
    Artifact,
    Deployment,
    NetworkInfo,
    PartialDeployment,
    PendingDeployment,
    RecoveryFailure,
    RecoveryReport,
    TransactionReceipt,
)

__all__ = [
    "Artifact",
    "Deployment",
    "Environment",
    "EnvironmentRuntime",
    "NetworkInfo",
    "PartialDeployment",
    "PendingDeployment",
    "ProvidedContext",
    "RecoveryFailure",
    "RecoveryReport",
    "TransactionReceipt",
    "create_environment",
    "extend_environment",
]
