"""Unit tests for poll status guardrails."""

import pytest

from paperpay.common.state_machine import is_terminal, validate_transition


def test_valid_transition():
    """Sanity check: a legal transition should pass."""

    validate_transition("pending", "completed")
    validate_transition("pending", "failed")
    validate_transition("pending", "timeout")


def test_invalid_transition():
    """Terminal states are not resumable."""

    with pytest.raises(ValueError):
        validate_transition("timeout", "pending")
    with pytest.raises(ValueError):
        validate_transition("completed", "failed")


def test_terminal_states():
    assert not is_terminal("pending")
    assert all(is_terminal(state) for state in ("completed", "failed", "timeout"))
