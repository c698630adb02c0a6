import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from hoist.adapters.network.rpc_errors import RpcError
from hoist.config import ConfigOptions, load_env, read_config
from hoist.exceptions import HoistError
from hoist.executor import ConsoleReporter, load_and_execute_deployments
from hoist.logging import log_event


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hoist", description="execute deploy scripts and store the deployments")
    parser.add_argument("-n", "--network", required=True, help="network context to use")
    parser.add_argument("-s", "--scripts", default=None, help="path the folder containing the deploy scripts to execute")
    parser.add_argument("-t", "--tags", default=None, help="comma separated list of tags to execute")
    parser.add_argument("-d", "--deployments", default=None, help="folder where deployments are saved")
    parser.add_argument("--log-level", default="info", help="debug, info, warning or error")
    return parser


def _print_error(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str), file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_env()
    try:
        config = read_config(
            ConfigOptions(
                network=args.network,
                deployments=args.deployments,
                scripts=args.scripts,
                tags=args.tags,
                log_level=args.log_level,
            )
        )
        result = asyncio.run(load_and_execute_deployments(config, reporter=ConsoleReporter(sys.stdout)))
    except HoistError as exc:
        log_event("run_aborted", level="error", **exc.to_payload())
        _print_error(exc.to_payload())
        return 1
    except RpcError as exc:
        payload = {"ok": False, "code": "E_RPC", "message": str(exc), "detail": {"rpc_code": exc.code}}
        log_event("run_aborted", level="error", **payload)
        _print_error(payload)
        return 1
    except Exception as exc:
        # raised by a deploy script itself; the runner attached the script path as a note
        payload = {
            "ok": False,
            "code": "E_SCRIPT",
            "message": f"{type(exc).__name__}: {exc}",
            "detail": {},
            "notes": list(getattr(exc, "__notes__", [])),
        }
        log_event("run_aborted", level="error", **payload)
        _print_error(payload)
        return 1

    print(f"executed {len(result.executed)} script(s), skipped {len(result.skipped)}")
    if result.recovery is not None and result.recovery.failed:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
