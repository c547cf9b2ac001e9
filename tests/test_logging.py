from __future__ import annotations

import logging

import pytest
import structlog
from structlog.testing import CapturingLogger

from solvote.logging import bind_context, obfuscate_identifier, setup_logging


@pytest.fixture()
def restore_logging():
    yield
    structlog.reset_defaults()
    for handler in logging.getLogger().handlers[:]:
        handler.close()
        logging.getLogger().removeHandler(handler)


def test_obfuscate_identifier_shortens_long_values() -> None:
    address = "31RBt6nsdi6tEbKVffYi8CbT8HeLYQgdGyZo8J8uyP6k"

    assert obfuscate_identifier(address) == "31RBt6…yP6k"
    assert obfuscate_identifier("short") == "short"


def test_bind_context_redacts_when_requested() -> None:
    address = "31RBt6nsdi6tEbKVffYi8CbT8HeLYQgdGyZo8J8uyP6k"
    logger = CapturingLogger()
    bound = structlog.wrap_logger(logger, processors=[], wrapper_class=structlog.BoundLogger)

    bind_context(bound, operation="vote", address=address, redact=True).info("evt")
    bind_context(bound, operation="vote", address=address).info("evt")

    redacted, plain = logger.calls
    assert redacted.kwargs["address"] == "31RBt6…yP6k"
    assert redacted.kwargs["operation"] == "vote"
    assert plain.kwargs["address"] == address
    assert "signature" not in plain.kwargs


def test_setup_logging_writes_json_file(tmp_path, restore_logging) -> None:
    setup_logging("INFO", tmp_path / "logs")

    structlog.get_logger("solvote.test").info("wallet_loaded", pubkey="abc")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = (tmp_path / "logs" / "solvote.log").read_text(encoding="utf-8")
    assert '"event": "wallet_loaded"' in content
    assert '"level": "info"' in content
