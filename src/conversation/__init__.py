from src.conversation.guardrails import GuardrailPipeline
from src.conversation.session import RestoredSession, restore_session, snapshot_session
from src.conversation.slot_manager import SlotStatus, capture_contact, fill_slot
from src.conversation.state_machine import (
    DialogueState,
    GeneratorInstruction,
    TurnResult,
    submit_user_turn,
)

__all__ = [
    "DialogueState",
    "GeneratorInstruction",
    "TurnResult",
    "submit_user_turn",
    "SlotStatus",
    "capture_contact",
    "fill_slot",
    "RestoredSession",
    "restore_session",
    "snapshot_session",
    "GuardrailPipeline",
]
