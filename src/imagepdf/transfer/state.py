"""Chunked-upload lifecycle state machine.

Tracks one upload through its lifecycle and enforces valid transitions, so
a failed or finished session can never send another chunk.
"""

from __future__ import annotations

from imagepdf.models import UploadState


class UploadStateMachine:
    """Finite state machine for a single chunked upload.

    Valid transitions::

        IDLE     -> SENDING
        SENDING  -> SUCCEEDED | FAILED
        SUCCEEDED -> (terminal)
        FAILED    -> (terminal)

    Looping over chunks stays in ``SENDING``; no transition is recorded per
    chunk.

    Parameters
    ----------
    target_id:
        Identifier of the remote record being uploaded to, for messages.
    """

    VALID_TRANSITIONS: dict[UploadState, set[UploadState]] = {
        UploadState.IDLE: {UploadState.SENDING},
        UploadState.SENDING: {UploadState.SUCCEEDED, UploadState.FAILED},
        UploadState.SUCCEEDED: set(),
        UploadState.FAILED: set(),
    }

    def __init__(self, target_id: str) -> None:
        self.target_id: str = target_id
        self.state: UploadState = UploadState.IDLE

    @property
    def is_terminal(self) -> bool:
        return not self.VALID_TRANSITIONS[self.state]

    def transition(self, new_state: UploadState) -> None:
        """Move to *new_state*.

        Raises
        ------
        ValueError
            If the transition from the current state is not allowed.
        """
        allowed = self.VALID_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid state transition: {self.state.value} -> {new_state.value} "
                f"for upload to {self.target_id}. "
                f"Allowed transitions from {self.state.value}: "
                f"{{{', '.join(s.value for s in allowed)}}}"
            )
        self.state = new_state

    def assert_can_send(self) -> None:
        """Raise ``ValueError`` unless the upload is in ``SENDING``."""
        if self.state != UploadState.SENDING:
            raise ValueError(
                f"Upload to {self.target_id} cannot send chunks in state "
                f"{self.state.value}; must be in {UploadState.SENDING.value}"
            )
