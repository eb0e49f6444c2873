"""Tests for structured logging context."""

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.cars.core.logging import (
    REDACTED,
    bind_identity_context,
    bind_project_context,
    bind_request_context,
    clear_request_context,
    redact_secrets,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Route structlog through a CapturingLogger for the duration of a test."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    bind_request_context("test-request-123")
    structlog.get_logger().info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"


def test_bind_request_context_with_none(capturing_logger):
    """A missing correlation id is not bound."""
    bind_request_context(None)
    structlog.get_logger().info("test message")

    assert "request_id" not in capturing_logger.calls[0].kwargs


def test_bind_identity_context(capturing_logger):
    bind_identity_context("02" + "ab" * 32)
    structlog.get_logger().info("test message")

    assert capturing_logger.calls[0].kwargs["identity_key"] == "02" + "ab" * 32


def test_bind_project_context(capturing_logger):
    bind_project_context("proj1", "dep1")
    structlog.get_logger().info("pipeline stage")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["project_id"] == "proj1"
    assert kwargs["deployment_id"] == "dep1"


def test_bind_project_context_without_deployment(capturing_logger):
    """The billing tick binds only the project."""
    bind_project_context("proj1")
    structlog.get_logger().info("billed")

    kwargs = capturing_logger.calls[0].kwargs
    assert kwargs["project_id"] == "proj1"
    assert "deployment_id" not in kwargs


def test_clear_request_context(capturing_logger):
    bind_request_context("req-1")
    bind_project_context("proj1", "dep1")
    clear_request_context()
    structlog.get_logger().info("after clear")

    kwargs = capturing_logger.calls[0].kwargs
    assert "request_id" not in kwargs
    assert "project_id" not in kwargs


def test_context_accumulates(capturing_logger):
    bind_request_context("req-1")
    bind_identity_context("02abc")
    bind_project_context("proj1")
    structlog.get_logger().info("admin call")

    kwargs = capturing_logger.calls[0].kwargs
    assert (kwargs["request_id"], kwargs["identity_key"], kwargs["project_id"]) == (
        "req-1",
        "02abc",
        "proj1",
    )


class TestRedactSecrets:
    def test_masks_known_keys(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "upload", "signature": "ab" * 32, "private_key": "11" * 32, "size": 10},
        )
        assert event["signature"] == REDACTED
        assert event["private_key"] == REDACTED
        assert event["size"] == 10

    def test_empty_values_are_left_alone(self):
        event = redact_secrets(None, "info", {"event": "x", "token": ""})
        assert event["token"] == ""

    def test_runs_in_chain(self, capturing_logger):
        structlog.configure(
            processors=[structlog.contextvars.merge_contextvars, redact_secrets],
            logger_factory=lambda *args, **kwargs: capturing_logger,
        )
        structlog.get_logger().info("forwarded", admin_token="secret-token")

        assert capturing_logger.calls[0].kwargs["admin_token"] == REDACTED
