"""Publish attempt state machine with valid transition enforcement."""

from __future__ import annotations

from enum import Enum


class PublishState(Enum):
    """States of a single publish attempt."""

    STAGED = "staged"
    VERIFYING = "verifying"
    COMMITTING = "committing"
    RELOCATING = "relocating"
    SIDE_EFFECTS = "side_effects"
    PUBLISHED = "published"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"


TERMINAL_STATES = {
    PublishState.PUBLISHED,
    PublishState.FAILED,
}

VALID_TRANSITIONS: dict[PublishState, set[PublishState]] = {
    PublishState.STAGED: {PublishState.VERIFYING},
    PublishState.VERIFYING: {PublishState.COMMITTING, PublishState.FAILED},
    PublishState.COMMITTING: {PublishState.RELOCATING, PublishState.ROLLING_BACK},
    PublishState.RELOCATING: {PublishState.SIDE_EFFECTS, PublishState.ROLLING_BACK},
    PublishState.SIDE_EFFECTS: {PublishState.PUBLISHED},
    PublishState.ROLLING_BACK: {PublishState.FAILED},
    PublishState.PUBLISHED: set(),
    PublishState.FAILED: set(),
}


class PublishStateMachine:
    """Enforces valid transitions and keeps the path taken."""

    def __init__(self) -> None:
        self.state = PublishState.STAGED
        self.history: list[PublishState] = [PublishState.STAGED]

    def transition(self, new_state: PublishState) -> None:
        """Transition to *new_state*, raising ValueError on illegal moves."""
        if self.state in TERMINAL_STATES:
            raise ValueError(
                f"Cannot transition from terminal state {self.state.value}"
            )

        allowed = VALID_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid transition: {self.state.value} -> {new_state.value}"
            )

        self.state = new_state
        self.history.append(new_state)
