"""Response data contracts for the ModelScope client.

Architectural role:
    Defines the minimal typed views over JSON payloads returned by the image
    submission and task-status endpoints. Chat completion payloads are passed
    through as plain dictionaries.

Determinism:
    Purely structural; parsing is deterministic for a given payload.
"""

from dataclasses import dataclass, field
from enum import Enum


class TaskState(str, Enum):
    """Remote task lifecycle states."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEED = "SUCCEED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.SUCCEED, TaskState.FAILED)


@dataclass
class ImageSubmission:
    """Acknowledgement returned by the async image-generation endpoint."""

    task_id: str
    status: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "ImageSubmission":
        return cls(task_id=data.get("task_id") or "", status=data.get("status") or "")


@dataclass
class TaskStatus:
    """One observation of a remote image-generation task.

    Attributes:
        task_id: Opaque identifier assigned at submission.
        task_status: Raw status string reported by the service.
        output_images: Artifact URLs, present only on success.
        error_message: Service-supplied message, present only on failure.
    """

    task_id: str
    task_status: str
    output_images: list[str] = field(default_factory=list)
    error_message: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "TaskStatus":
        return cls(
            task_id=data.get("task_id") or "",
            task_status=str(data.get("task_status") or ""),
            output_images=list(data.get("output_images") or []),
            error_message=data.get("error_message"),
        )

    @property
    def state(self) -> TaskState | None:
        """Parsed state, or `None` for values the service has not documented."""
        try:
            return TaskState(self.task_status)
        except ValueError:
            return None
