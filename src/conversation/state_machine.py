"""
Finite state machine for the appointment lead-capture dialogue.

The dialogue moves strictly forward through device -> contact -> email ->
time -> complete, one step per accepted user turn. The email step is
skipped only when the contact turn itself yielded an address; an email
known from an earlier visit still passes through the email step, which
then advances without asking again. ``complete`` is absorbing:
re-entering it never re-triggers completion.

Usage:
    result = submit_user_turn("iPhone 13 screen cracked", ConversationSlots(),
                              DialogueState.DEVICE, history)
    assert result.state == DialogueState.CONTACT
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from src.conversation.slot_manager import (
    SLOT_DEFINITIONS,
    capture_contact,
    fill_slot,
    get_missing_slots,
)
from src.schemas.conversation_schema import ChatMessage, Role
from src.schemas.lead_schema import ConversationSlots

logger = logging.getLogger(__name__)


class DialogueState(str, Enum):
    """Steps of the lead-capture dialogue, in order."""
    DEVICE = "device"
    CONTACT = "contact"
    EMAIL = "email"
    TIME = "time"
    COMPLETE = "complete"


STATE_ORDER: list[DialogueState] = list(DialogueState)

# The slot each state is responsible for filling.
STATE_SLOTS: dict[DialogueState, str] = {
    DialogueState.DEVICE: "device",
    DialogueState.CONTACT: "contact_raw",
    DialogueState.EMAIL: "client_email",
    DialogueState.TIME: "preferred_time",
}


@dataclass(frozen=True)
class Transition:
    """
    A single forward transition, taken when its guard (if any) holds.

    Guards receive the slots before and after the turn.
    """
    from_state: DialogueState
    to_state: DialogueState
    guard: Optional[Callable[[ConversationSlots, ConversationSlots], bool]] = None


class InvalidTransitionError(Exception):
    """Raised when a transition would move the dialogue backwards."""


@dataclass(frozen=True)
class GeneratorInstruction:
    """What the reply generator should know before composing the next reply."""
    slot_values: dict[str, Optional[str]]
    pending: list[str]
    next_step: DialogueState


@dataclass(frozen=True)
class TurnResult:
    """Outcome of submitting one user turn."""
    slots: ConversationSlots
    state: DialogueState
    history: tuple[ChatMessage, ...]
    instruction: Optional[GeneratorInstruction] = None
    accepted: bool = True
    completed: bool = False
    changed_slots: list[str] = field(default_factory=list)


TRANSITIONS: list[Transition] = [
    Transition(DialogueState.DEVICE, DialogueState.CONTACT),
    # Email found in the contact turn skips the dedicated email step
    Transition(DialogueState.CONTACT, DialogueState.TIME,
               guard=lambda before, after: not before.client_email and bool(after.client_email)),
    Transition(DialogueState.CONTACT, DialogueState.EMAIL),
    Transition(DialogueState.EMAIL, DialogueState.TIME),
    Transition(DialogueState.TIME, DialogueState.COMPLETE),
    Transition(DialogueState.COMPLETE, DialogueState.COMPLETE),
]


def next_state(
    current: DialogueState,
    slots: ConversationSlots,
    previous: Optional[ConversationSlots] = None,
) -> DialogueState:
    """
    Resolve the state that follows ``current`` given the updated slots.

    ``previous`` is the slot set before the turn; it defaults to empty slots.
    """
    before = previous if previous is not None else ConversationSlots()
    for t in TRANSITIONS:
        if t.from_state != current:
            continue
        if t.guard is not None and not t.guard(before, slots):
            continue
        if STATE_ORDER.index(t.to_state) < STATE_ORDER.index(current):
            raise InvalidTransitionError(
                f"Transition '{current.value}' -> '{t.to_state.value}' moves backwards"
            )
        return t.to_state
    raise InvalidTransitionError(f"No transition defined from '{current.value}'")


def _apply_utterance(
    state: DialogueState, slots: ConversationSlots, utterance: str
) -> ConversationSlots:
    slot_name = STATE_SLOTS.get(state)
    if slot_name is None:
        return slots
    if getattr(slots, slot_name):
        logger.debug(
            "Slot '%s' already captured in state '%s'; advancing without overwrite",
            slot_name, state.value,
        )
        return slots
    if state == DialogueState.CONTACT:
        return capture_contact(slots, utterance)
    return fill_slot(slots, slot_name, utterance)


def build_instruction(slots: ConversationSlots, state: DialogueState) -> GeneratorInstruction:
    """Describe slot progress and the next field to ask for."""
    return GeneratorInstruction(
        slot_values={
            d.display_name: getattr(slots, d.name) or None for d in SLOT_DEFINITIONS
        },
        pending=[d.display_name for d in get_missing_slots(slots)],
        next_step=state,
    )


def submit_user_turn(
    utterance: str,
    current_slots: ConversationSlots,
    current_state: DialogueState,
    history: Sequence[ChatMessage],
) -> TurnResult:
    """
    Apply one user turn to the dialogue.

    Args:
        utterance: Raw user text. Blank input is a no-op.
        current_slots: Slots captured so far.
        current_state: Active dialogue state.
        history: Transcript so far; never mutated.

    Returns:
        A TurnResult with the new slots, state and history. ``completed`` is
        True only on the turn that first reaches COMPLETE.
    """
    text = (utterance or "").strip()
    if not text:
        return TurnResult(
            slots=current_slots,
            state=current_state,
            history=tuple(history),
            accepted=False,
        )

    new_slots = _apply_utterance(current_state, current_slots, text)
    new_state = next_state(current_state, new_slots, current_slots)
    changed = [
        name for name in ConversationSlots.field_names()
        if getattr(new_slots, name) != getattr(current_slots, name)
    ]

    if new_state != current_state:
        logger.debug("Dialogue transition: %s -> %s", current_state.value, new_state.value)

    return TurnResult(
        slots=new_slots,
        state=new_state,
        history=(*history, ChatMessage(role=Role.USER, content=text)),
        instruction=build_instruction(new_slots, new_state),
        completed=(
            current_state != DialogueState.COMPLETE
            and new_state == DialogueState.COMPLETE
        ),
        changed_slots=changed,
    )
