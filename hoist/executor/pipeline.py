from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from hoist.adapters.network.json_rpc_client import RequestProvider
from hoist.config import RunConfig, resolve_config
from hoist.environment import Environment, ProvidedContext, create_environment
from hoist.logging import log_event, set_log_level

from .contracts import RunResult, RunSet
from .migrations import MigrationsLedger
from .registry import ScriptRegistry, shared_provided_context
from .reporting import LogEventReporter, RunReporter
from .resolver import DependencyResolver, select_initial
from .runner import ScriptRunner
from .tag_index import TagIndex


def plan_run(registry: ScriptRegistry, config: RunConfig) -> tuple[RunSet, Any, TagIndex]:
    """Loads the scripts and computes the run order without touching the network."""
    descriptors = registry.load_all(Path(config.scripts))
    tag_index = TagIndex.build(descriptors)
    context = shared_provided_context(descriptors)
    selection = select_initial(descriptors, config.tags)
    run_set = DependencyResolver(descriptors, tag_index).resolve(selection)
    log_event(
        "run_planned",
        scripts=[path.name for path in run_set.paths()],
        deferred=[descriptor.name for descriptor in run_set.deferred],
        tags=list(config.tags),
    )
    return run_set, context, tag_index


async def execute_deploy_scripts(
    config: RunConfig,
    args: Any = None,
    *,
    provider: Optional[RequestProvider] = None,
    reporter: Optional[RunReporter] = None,
    registry: Optional[ScriptRegistry] = None,
) -> RunResult:
    set_log_level(config.log_level)
    reporter = reporter or LogEventReporter()
    registry = registry or ScriptRegistry()

    run_set, context, _ = plan_run(registry, config)

    environment, runtime = await create_environment(config, context, provider=provider)
    recovery = await runtime.recover_transactions_if_any()
    reporter.recovery_completed(recovery)

    runner = ScriptRunner(environment, ledger=MigrationsLedger(runtime.store), reporter=reporter)
    await runner.run(run_set, args)

    log_event(
        "run_completed",
        network=config.network_name,
        executed=len(runner.executed),
        skipped=len(runner.skipped),
    )
    return RunResult(
        environment=environment,
        run_set=run_set,
        executed=tuple(runner.executed),
        skipped=tuple(runner.skipped),
        recovery=recovery,
    )


async def load_and_execute_deployments(
    config: RunConfig | Dict[str, Any],
    args: Any = None,
    **kwargs: Any,
) -> RunResult:
    return await execute_deploy_scripts(resolve_config(config), args, **kwargs)


async def load_environment(
    config: RunConfig | Dict[str, Any],
    context: ProvidedContext,
    *,
    provider: Optional[RequestProvider] = None,
) -> Environment:
    """An environment for ad-hoc use (tests, consoles) without running any script."""
    environment, _ = await create_environment(resolve_config(config), context, provider=provider)
    return environment
