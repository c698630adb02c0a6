import io
import json
import logging
import logging.handlers
from pathlib import Path

from hoist.environment.models import RecoveryFailure, RecoveryReport
from hoist.executor.contracts import ScriptDescriptor
from hoist.executor.reporting import ConsoleReporter
from hoist.logging import log_event, set_log_level, setup_logging, subscribe_to_events, unsubscribe_from_events


def test_log_event_merges_data_and_notifies_subscribers():
    events = []
    subscribe_to_events(events.append)
    try:
        record = log_event("deployment_saved", {"name": "token"}, address="0x01")
    finally:
        unsubscribe_from_events(events.append)

    assert record["event"] == "deployment_saved"
    assert record["level"] == "info"
    assert record["data"] == {"name": "token", "address": "0x01"}
    assert events == [record]


def test_failing_subscriber_does_not_break_logging():
    def broken(record):
        raise RuntimeError("subscriber down")

    subscribe_to_events(broken)
    try:
        record = log_event("still_logged")
    finally:
        unsubscribe_from_events(broken)

    assert record["event"] == "still_logged"


def test_setup_logging_writes_json_lines(tmp_path):
    log_file = setup_logging(tmp_path / "logs")
    again = setup_logging(tmp_path / "logs")
    set_log_level("debug")
    try:
        log_event("run_planned", scripts=["01_token.py"])
    finally:
        set_log_level("info")
        for handler in list(logging.getLogger("hoist").handlers):
            if isinstance(handler, logging.handlers.RotatingFileHandler):
                handler.close()
                logging.getLogger("hoist").removeHandler(handler)

    assert log_file == again
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["data"] == {"scripts": ["01_token.py"]}


def test_console_reporter_lines():
    stream = io.StringIO()
    reporter = ConsoleReporter(stream)
    descriptor = ScriptDescriptor(path=Path("/deploy/01_token.py"), func=lambda env, args: None)

    reporter.recovery_completed(
        RecoveryReport(promoted=("pool",), failed=(RecoveryFailure(name="token", tx_hash="0x01", reason="dropped"),))
    )
    reporter.script_started(descriptor)
    reporter.script_skipped(descriptor, "skip_predicate")

    assert stream.getvalue().splitlines() == [
        "recovered pending deployment 'pool'",
        "pending deployment 'token' failed (dropped): 0x01",
        "- Executing 01_token.py",
        "  skipping 01_token.py (skip_predicate)",
    ]
