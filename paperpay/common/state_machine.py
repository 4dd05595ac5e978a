"""Status transitions for payment polls."""

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
TIMEOUT = "timeout"

POLL_TRANSITIONS: dict[str, set[str]] = {
    PENDING: {COMPLETED, FAILED, TIMEOUT},
    COMPLETED: set(),
    FAILED: set(),
    TIMEOUT: set(),
}


def is_terminal(state: str, transitions: dict[str, set[str]] = POLL_TRANSITIONS) -> bool:
    return state in transitions and not transitions[state]


def validate_transition(current: str, new: str, transitions: dict[str, set[str]] = POLL_TRANSITIONS) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in transitions.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")
