from .contracts import RunResult, RunSet, ScriptDescriptor
from .pipeline import execute_deploy_scripts, load_and_execute_deployments, load_environment, plan_run
from .registry import ScriptRegistry, discover_script_paths
from .reporting import ConsoleReporter, LogEventReporter, RunReporter
from .resolver import DependencyResolver, select_initial
from .runner import ScriptRunner
from .script_module import DeployScript, deploy_script
from .tag_index import TagIndex

__all__ = [
    "ConsoleReporter",
    "DependencyResolver",
    "DeployScript",
    "LogEventReporter",
    "RunReporter",
    "RunResult",
    "RunSet",
    "ScriptDescriptor",
    "ScriptRegistry",
    "ScriptRunner",
    "TagIndex",
    "deploy_script",
    "discover_script_paths",
    "execute_deploy_scripts",
    "load_and_execute_deployments",
    "load_environment",
    "plan_run",
    "select_initial",
]
