from importlib.metadata import PackageNotFoundError, version

from . import deploy as _deploy  # noqa: F401  registers env.deploy / env.execute
from .config import ConfigOptions, RunConfig, read_and_resolve_config, read_config, resolve_config
from .environment import Artifact, Deployment, Environment, ProvidedContext, extend_environment
from .executor import deploy_script, execute_deploy_scripts, load_and_execute_deployments, load_environment

try:
    __version__ = version("hoist")
except PackageNotFoundError:
    # Package is not installed (e.g. during local development)
    __version__ = "0.1.0-local"

__all__ = [
    "Artifact",
    "ConfigOptions",
    "Deployment",
    "Environment",
    "ProvidedContext",
    "RunConfig",
    "__version__",
    "deploy_script",
    "execute_deploy_scripts",
    "extend_environment",
    "load_and_execute_deployments",
    "load_environment",
    "read_and_resolve_config",
    "read_config",
    "resolve_config",
]
