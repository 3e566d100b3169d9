"""Appointment lead data models: captured slots, completion record, relay payload."""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class ConversationSlots:
    """
    Structured fields extracted from the dialogue.

    Empty string means "not captured yet". Instances are immutable; the
    state machine produces a new one per turn via ``dataclasses.replace``.
    """
    device: str = ""
    contact_raw: str = ""
    client_name: str = ""
    client_phone: str = ""
    client_email: str = ""
    preferred_time: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


class AppointmentDetails(BaseModel):
    """Completion record logged and persisted when every slot is captured."""

    device: str
    contact: str
    client_name: str
    client_phone: str
    client_email: str = ""
    preferred_time: str
    captured_at: datetime


class NotifierRequest(BaseModel):
    """Payload accepted by the email relay endpoint (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_name: str
    client_email: str
    client_phone: str
    device_info: str
    preferred_time: str
    conversation_summary: str
    admin_email: Optional[str] = None
    support_email: Optional[str] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
