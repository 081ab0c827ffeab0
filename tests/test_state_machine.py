"""Unit tests for transaction attempt state-machine guardrails."""

import pytest

from skyfox.common.state_machine import validate_transition


def test_valid_transition():
    """Sanity check: a legal transition should pass."""

    validate_transition("VALIDATED", "LOCK_CHECKED")
    validate_transition("LOCK_CHECKED", "ACCEPTED")
    validate_transition("REJECTED", "TERMINAL")


def test_precondition_failure_can_reject_before_lock_check():
    validate_transition("VALIDATED", "REJECTED")


def test_invalid_transition():
    """Illegal transition must raise to protect coordination correctness."""

    with pytest.raises(ValueError):
        validate_transition("VALIDATED", "ACCEPTED")


def test_terminal_is_final():
    with pytest.raises(ValueError):
        validate_transition("TERMINAL", "VALIDATED")
