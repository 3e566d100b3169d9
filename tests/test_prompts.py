"""Tests for prompt construction."""

from src.conversation.state_machine import DialogueState, submit_user_turn
from src.prompts.prompt_templates import (
    build_generator_messages,
    render_conversation_summary,
    render_workflow_instruction,
)
from src.prompts.system_prompts import build_greeting, build_system_prompt
from src.schemas.conversation_schema import Role
from tests.conftest import GREETING, make_history


class TestSystemPrompts:
    def test_greeting_names_assistant_and_shop(self, business):
        assert build_greeting(business, "Rob") == GREETING

    def test_persona_mentions_business_details(self, business):
        prompt = build_system_prompt(business, "Rob")
        assert business.legal_name in prompt
        assert business.location in prompt
        assert business.phone in prompt


class TestWorkflowInstruction:
    def test_lists_captured_and_pending(self, empty_slots, history):
        result = submit_user_turn("iPhone 13", empty_slots, DialogueState.DEVICE, history)
        text = render_workflow_instruction(result.instruction)
        assert "- Device info: iPhone 13" in text
        assert "- Email: pending" in text
        assert "Next required step: contact." in text

    def test_generator_messages_order(self, empty_slots, history):
        result = submit_user_turn("iPhone 13", empty_slots, DialogueState.DEVICE, history)
        messages = build_generator_messages("persona", result.instruction, result.history)
        assert [m.role for m in messages] == [
            Role.SYSTEM, Role.SYSTEM, Role.ASSISTANT, Role.USER,
        ]
        assert messages[0].content == "persona"


class TestConversationSummary:
    def test_labels_each_turn(self):
        history = make_history(("user", "iPhone 13"), ("assistant", "Name and phone?"))
        summary = render_conversation_summary(history, "Rob")
        assert summary.split("\n") == [
            f"Rob: {GREETING}",
            "Client: iPhone 13",
            "Rob: Name and phone?",
        ]
