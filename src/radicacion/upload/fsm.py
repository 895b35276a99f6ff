"""Per-file status state machine for one submission attempt.

Each status slot gets its own FSM instance, positioned at the slot's
current status. Used to validate transition legality before
:class:`~radicacion.upload.state.UploadStatusBoard` mutates the slot.

The FSM is purely a validation tool -- it holds no file data and has no
callbacks.
"""

from __future__ import annotations

from statemachine import State, StateMachine


class FileUploadSM(StateMachine):
    """Four-state lifecycle of a file inside the upload orchestrator.

    States:
        pending   -- Token received, transfer not started.
        uploading -- Transfer in flight (inner retries included).
        done      -- Storage acknowledged the write.
        error     -- Lookup fault or retries exhausted.

    ``error -> uploading`` is how recovery passes re-arm a file. ``done``
    is final.
    """

    pending = State("pending", initial=True, value="pending")
    uploading = State("uploading", value="uploading")
    done = State("done", final=True, value="done")
    error = State("error", value="error")

    start_upload = pending.to(uploading)
    complete_upload = uploading.to(done)
    fail_upload = uploading.to(error) | pending.to(error)
    retry_upload = error.to(uploading)


def create_fsm(current_state: str) -> FileUploadSM:
    """Create an FSM instance at the given state.

    Args:
        current_state: One of 'pending', 'uploading', 'done', 'error'.

    Returns:
        A FileUploadSM positioned at *current_state*.
    """
    return FileUploadSM(start_value=current_state)
