"""Dynamic prompt construction for slot-aware concierge requests."""

from typing import Sequence

from src.conversation.slot_manager import SLOT_DEFINITIONS
from src.conversation.state_machine import GeneratorInstruction
from src.schemas.conversation_schema import ChatMessage, Role


def render_workflow_instruction(instruction: GeneratorInstruction) -> str:
    """Build the capture-status hint so the assistant asks for the right field."""
    lines = ["", "Current appointment capture status:"]
    for display_name, value in instruction.slot_values.items():
        lines.append(f"- {display_name}: {value or 'pending'}")
    lines.append(f"Next required step: {instruction.next_step.value}.")
    lines.extend(d.prompt_hint for d in SLOT_DEFINITIONS)
    lines.append(
        "Once every field is collected, confirm the summary and tell the client "
        "you will relay it to admin. Keep answers under two sentences."
    )
    return "\n".join(lines)


def build_generator_messages(
    system_prompt: str,
    instruction: GeneratorInstruction,
    history: Sequence[ChatMessage],
) -> list[ChatMessage]:
    """Persona prompt, then the workflow hint, then the full transcript."""
    return [
        ChatMessage(role=Role.SYSTEM, content=system_prompt),
        ChatMessage(role=Role.SYSTEM, content=render_workflow_instruction(instruction)),
        *history,
    ]


def render_conversation_summary(history: Sequence[ChatMessage], assistant_name: str) -> str:
    """Render the transcript as alternating labelled lines for the operator email."""
    lines = []
    for msg in history:
        label = assistant_name if msg.role == Role.ASSISTANT else "Client"
        lines.append(f"{label}: {msg.content}")
    return "\n".join(lines)
