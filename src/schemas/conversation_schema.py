"""Chat transcript and status schemas shared by the concierge components."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ASSISTANT = "assistant"
    USER = "user"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A single chat turn. Messages are immutable once appended."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class NotificationStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class EmailStatus(BaseModel):
    """Observable outcome of the confirmation-email step."""

    model_config = ConfigDict(frozen=True)

    status: NotificationStatus = NotificationStatus.IDLE
    message: str = ""
