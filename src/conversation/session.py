"""
Session snapshots: serialize the dialogue after every change and restore it
once at start-up.

Restoration is lenient. Each field is validated on its own and anything
missing or malformed falls back to its default, so a stale or hand-edited
blob degrades to a fresh dialogue instead of an error.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from src.conversation.state_machine import DialogueState
from src.schemas.conversation_schema import ChatMessage, EmailStatus, Role
from src.schemas.lead_schema import AppointmentDetails, ConversationSlots

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Snapshot key -> slot name
_SLOT_KEYS: dict[str, str] = {
    "device_info": "device",
    "contact_info": "contact_raw",
    "client_name": "client_name",
    "client_phone": "client_phone",
    "client_email": "client_email",
    "preferred_time": "preferred_time",
}

# Client profile (last completion record) key -> slot name
_PROFILE_KEYS: dict[str, str] = {
    "client_name": "client_name",
    "client_email": "client_email",
    "client_phone": "client_phone",
    "preferred_time": "preferred_time",
    "device": "device",
}


@dataclass
class RestoredSession:
    """Dialogue state recovered from storage (or the fresh defaults)."""
    slots: ConversationSlots
    state: DialogueState
    history: tuple[ChatMessage, ...]
    appointment_log: Optional[AppointmentDetails] = None
    email_status: EmailStatus = field(default_factory=EmailStatus)
    resumed: bool = False


def fresh_session(greeting: str) -> RestoredSession:
    return RestoredSession(
        slots=ConversationSlots(),
        state=DialogueState.DEVICE,
        history=(ChatMessage(role=Role.ASSISTANT, content=greeting),),
    )


def snapshot_session(
    slots: ConversationSlots,
    state: DialogueState,
    history: Sequence[ChatMessage],
    appointment_log: Optional[AppointmentDetails],
    email_status: EmailStatus,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Serialize the dialogue into a JSON-compatible blob."""
    blob: dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "saved_at": (now or datetime.now(timezone.utc)).isoformat(),
        "messages": [m.model_dump(mode="json") for m in history],
        "conversation_step": state.value,
        "appointment_log": (
            appointment_log.model_dump(mode="json") if appointment_log else None
        ),
        "email_status": email_status.model_dump(mode="json"),
    }
    for key, slot_name in _SLOT_KEYS.items():
        blob[key] = getattr(slots, slot_name)
    return blob


def _is_expired(saved_at: Any, ttl: Optional[timedelta], now: datetime) -> bool:
    if ttl is None or not isinstance(saved_at, str):
        return False
    try:
        saved = datetime.fromisoformat(saved_at)
    except ValueError:
        return False
    if saved.tzinfo is None:
        saved = saved.replace(tzinfo=timezone.utc)
    return now - saved > ttl


def _parse_history(raw: Any) -> Optional[tuple[ChatMessage, ...]]:
    if not isinstance(raw, list) or not raw:
        return None
    messages = []
    for entry in raw:
        try:
            msg = ChatMessage.model_validate(entry)
        except ValidationError:
            return None
        if msg.role not in (Role.ASSISTANT, Role.USER):
            return None
        messages.append(msg)
    return tuple(messages)


def _parse_slots(raw: dict[str, Any], keys: dict[str, str]) -> ConversationSlots:
    values = {}
    for key, slot_name in keys.items():
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            values[slot_name] = value
    return ConversationSlots(**values)


def _restore(
    persisted: Any,
    greeting: str,
    profile: Any,
    ttl: Optional[timedelta],
    now: datetime,
) -> RestoredSession:
    if isinstance(persisted, dict):
        version = persisted.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            logger.info("Discarding session snapshot with version %r", version)
        elif _is_expired(persisted.get("saved_at"), ttl, now):
            logger.info("Discarding expired session snapshot")
        else:
            return _restore_snapshot(persisted, greeting)

    session = fresh_session(greeting)
    if isinstance(profile, dict):
        session.slots = _parse_slots(profile, _PROFILE_KEYS)
        logger.info("Seeded dialogue from stored client profile")
    return session


def _restore_snapshot(persisted: dict[str, Any], greeting: str) -> RestoredSession:
    session = fresh_session(greeting)
    session.resumed = True

    history = _parse_history(persisted.get("messages"))
    if history is not None:
        session.history = history

    try:
        session.state = DialogueState(persisted.get("conversation_step"))
    except (ValueError, TypeError):
        logger.debug("No usable conversation step in snapshot; starting at device")

    session.slots = _parse_slots(persisted, _SLOT_KEYS)

    if persisted.get("appointment_log") is not None:
        try:
            session.appointment_log = AppointmentDetails.model_validate(
                persisted["appointment_log"]
            )
        except ValidationError:
            logger.warning("Ignoring malformed appointment log in snapshot")

    if persisted.get("email_status") is not None:
        try:
            session.email_status = EmailStatus.model_validate(persisted["email_status"])
        except ValidationError:
            logger.warning("Ignoring malformed email status in snapshot")

    return session


def restore_session(
    persisted: Any,
    greeting: str,
    profile: Any = None,
    ttl: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> RestoredSession:
    """
    Rebuild the dialogue from a persisted blob. Never raises.

    Args:
        persisted: The stored snapshot, possibly None, partial or malformed.
        greeting: Assistant message used to seed a fresh history.
        profile: Last completion record, used only when no snapshot is usable.
        ttl: Snapshots older than this are treated as absent.
        now: Reference time for the TTL check.
    """
    now = now or datetime.now(timezone.utc)
    try:
        return _restore(persisted, greeting, profile, ttl, now)
    except Exception:
        logger.exception("Failed to restore session; starting a fresh dialogue")
        return fresh_session(greeting)
