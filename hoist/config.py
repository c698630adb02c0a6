from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from hoist.exceptions import ConfigError
from hoist.logging import log_event

PROJECT_FILE = Path("hoist.json")
ENV_FILE = Path(".env")
NODE_URI_ENV_PREFIX = "HOIST_NODE_URI_"
LOCALHOST_NODE_URL = "http://127.0.0.1:8545"

DEFAULT_NETWORK = "memory"
DEFAULT_DEPLOYMENTS_DIR = "deployments"
DEFAULT_SCRIPTS_DIR = "deploy"


class NetworkEntry(BaseModel):
    rpc_url: str


class ProjectFile(BaseModel):
    networks: Dict[str, NetworkEntry] = Field(default_factory=dict)


class RunConfig(BaseModel):
    network_name: str = DEFAULT_NETWORK
    node_url: str = ""
    deployments: str = DEFAULT_DEPLOYMENTS_DIR
    scripts: str = DEFAULT_SCRIPTS_DIR
    tags: List[str] = Field(default_factory=list)
    log_level: str = "info"
    poll_interval: float = 1.0
    confirmation_timeout: Optional[float] = None
    recovery_timeout: Optional[float] = 0.0


@dataclass(frozen=True)
class ConfigOptions:
    network: str
    deployments: Optional[str] = None
    scripts: Optional[str] = None
    tags: Optional[str] = None
    log_level: Optional[str] = None


def load_env(path: Path = ENV_FILE) -> bool:
    # Keep tests hermetic: avoid re-injecting host .env values after monkeypatch.delenv.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return load_dotenv(path, override=False)


def parse_tag_filter(raw: Optional[str]) -> List[str]:
    """'a, b,,c' -> ['a', 'b', 'c']. Commas are the separator, so no tag can contain one."""
    if raw is None:
        return []
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def load_project_file(path: Path = PROJECT_FILE) -> Optional[ProjectFile]:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return ProjectFile.model_validate(payload)
    except (json.JSONDecodeError, OSError, ValidationError) as exc:
        raise ConfigError(f"Invalid project file {path}: {exc}", detail={"path": str(path)}) from exc


def _resolve_node_url(network: str, project: Optional[ProjectFile], ignore_missing_rpc: bool) -> str:
    from_env = os.environ.get(NODE_URI_ENV_PREFIX + network)
    if from_env is not None:
        return from_env
    entry = project.networks.get(network) if project else None
    if entry is not None:
        return entry.rpc_url
    if ignore_missing_rpc:
        return ""
    if network == "localhost":
        return LOCALHOST_NODE_URL
    if network == DEFAULT_NETWORK:
        return ""
    raise ConfigError(
        f'network "{network}" is not configured. Please add it to the {PROJECT_FILE} file',
        detail={"network": network, "known_networks": sorted(project.networks) if project else []},
    )


def read_config(
    options: ConfigOptions | Dict[str, Any],
    *,
    ignore_missing_rpc: bool = False,
    project_file: Path = PROJECT_FILE,
) -> RunConfig:
    if isinstance(options, dict):
        options = ConfigOptions(**options)
    network = str(options.network or "").strip()
    if not network:
        raise ConfigError("A network name is required.")

    project = load_project_file(project_file)
    node_url = _resolve_node_url(network, project, ignore_missing_rpc)

    values: Dict[str, Any] = {"network_name": network, "node_url": node_url}
    if options.deployments:
        values["deployments"] = options.deployments
    if options.scripts:
        values["scripts"] = options.scripts
    if options.tags is not None:
        values["tags"] = parse_tag_filter(options.tags)
    if options.log_level:
        values["log_level"] = options.log_level
    config = RunConfig(**values)
    log_event("config_read", network=config.network_name, node_url=config.node_url, tags=config.tags)
    return config


def resolve_config(config: RunConfig | Dict[str, Any]) -> RunConfig:
    """Fills empty fields with their defaults."""
    if isinstance(config, dict):
        config = RunConfig.model_validate(config)
    return config.model_copy(
        update={
            "network_name": config.network_name or DEFAULT_NETWORK,
            "deployments": config.deployments or DEFAULT_DEPLOYMENTS_DIR,
            "scripts": config.scripts or DEFAULT_SCRIPTS_DIR,
            "tags": list(config.tags or []),
        }
    )


def read_and_resolve_config(options: ConfigOptions | Dict[str, Any], *, ignore_missing_rpc: bool = False) -> RunConfig:
    return resolve_config(read_config(options, ignore_missing_rpc=ignore_missing_rpc))
