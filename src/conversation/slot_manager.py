"""
Best-effort structured-field extraction from free text.

Each extractor is a pure function of the utterance, so the heuristics can
be swapped without touching the state machine. Filling is first-write-wins:
a slot that already holds a value is never overwritten.

Usage:
    slots = ConversationSlots()
    slots = fill_slot(slots, "device", "iPhone 13 screen cracked")
    slots = capture_contact(slots, "Ada Obi, +2348011112222")
    assert slots.client_phone == "+2348011112222"
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from src.schemas.lead_schema import ConversationSlots

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
# A digit followed by at least six more digits, spaces or dashes.
PHONE_PATTERN = re.compile(r"\+?\d[\d\s-]{6,}")


class SlotStatus(str, Enum):
    """Capture status of a slot, as reported to the reply generator."""

    EMPTY = "empty"
    CAPTURED = "captured"


@dataclass(frozen=True)
class SlotDefinition:
    """A field the dialogue asks for, in the order it is asked."""

    name: str
    display_name: str
    prompt_hint: str


SLOT_DEFINITIONS: list[SlotDefinition] = [
    SlotDefinition(
        name="device",
        display_name="Device info",
        prompt_hint="If device info is pending, ask for make/model.",
    ),
    SlotDefinition(
        name="contact_raw",
        display_name="Contact info",
        prompt_hint=(
            "If contact info is pending, thank them for the device info and ask "
            "for their full name plus phone number in one sentence."
        ),
    ),
    SlotDefinition(
        name="client_email",
        display_name="Email",
        prompt_hint="If the email is pending, ask for the best email to send confirmations.",
    ),
    SlotDefinition(
        name="preferred_time",
        display_name="Preferred time",
        prompt_hint=(
            "If preferred time is pending, offer morning, afternoon, or evening "
            "(or specific time) options."
        ),
    ),
]


def extract_name(utterance: str) -> Optional[str]:
    """Return the text before the first comma, or the whole turn without one."""
    name = utterance.split(",", 1)[0].strip()
    return name or None


def extract_phone(utterance: str) -> Optional[str]:
    """Return the text after the first comma, else the first phone-looking run."""
    _, sep, rest = utterance.partition(",")
    if sep and rest.strip():
        return rest.strip()
    match = PHONE_PATTERN.search(utterance)
    if match:
        return match.group(0).strip()
    return None


def extract_email(utterance: str) -> Optional[str]:
    """Return the first email-shaped substring, if any."""
    match = EMAIL_PATTERN.search(utterance)
    return match.group(0) if match else None


def fill_slot(slots: ConversationSlots, name: str, value: Optional[str]) -> ConversationSlots:
    """Set a slot only if it is still empty and the new value is non-empty."""
    if name not in ConversationSlots.field_names():
        raise ValueError(f"Unknown slot: {name}")
    if not value or getattr(slots, name):
        return slots
    logger.debug("Slot '%s' captured", name)
    return replace(slots, **{name: value})


def capture_contact(slots: ConversationSlots, utterance: str) -> ConversationSlots:
    """Record the raw contact turn and derive name, phone and email from it."""
    slots = fill_slot(slots, "contact_raw", utterance)
    slots = fill_slot(slots, "client_name", extract_name(utterance))
    slots = fill_slot(slots, "client_phone", extract_phone(utterance))
    return fill_slot(slots, "client_email", extract_email(utterance))


def slot_status(slots: ConversationSlots, name: str) -> SlotStatus:
    return SlotStatus.CAPTURED if getattr(slots, name) else SlotStatus.EMPTY


def get_missing_slots(slots: ConversationSlots) -> list[SlotDefinition]:
    """Tracked slots still pending, in asking order."""
    return [d for d in SLOT_DEFINITIONS if slot_status(slots, d.name) == SlotStatus.EMPTY]
