import io
import json
import logging

import pytest

from hedron.logging_config import bind_session_context, clear_session_context, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    clear_session_context()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_stdlib_records_carry_session_context(restore_root_logger):
    """Plain module loggers emit JSON lines with the bound agent URL and account."""

    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    bind_session_context(agent_url="ws://agent.test", account="0.0.100", unused=None)

    logging.getLogger("hedron.core.session").info("Agent session starting")

    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert line["event"] == "Agent session starting"
    assert line["level"] == "info"
    assert line["logger"] == "hedron.core.session"
    assert line["agent_url"] == "ws://agent.test"
    assert line["account"] == "0.0.100"
    assert "unused" not in line
    assert "timestamp" in line


def test_cleared_context_is_not_logged(restore_root_logger):
    """Context is dropped once the session clears it."""

    stream = io.StringIO()
    setup_logging("INFO", stream=stream)
    bind_session_context(account="0.0.100")
    clear_session_context()

    logging.getLogger("hedron.test").warning("after stop")

    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert "account" not in line
    assert line["level"] == "warning"


def test_noisy_loggers_quieted_outside_debug(restore_root_logger):
    setup_logging("INFO", stream=io.StringIO())

    assert logging.getLogger("websockets.client").level == logging.WARNING
