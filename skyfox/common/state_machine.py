"""Transaction attempt state machine enforced by the coordinator."""

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "VALIDATED": {"LOCK_CHECKED", "REJECTED"},
    "LOCK_CHECKED": {"ACCEPTED", "REJECTED"},
    "ACCEPTED": {"TERMINAL"},
    "REJECTED": {"TERMINAL"},
    "TERMINAL": set(),
}


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")
