"""
Reply generation for the concierge.

``OpenRouterReplyGenerator`` sends the persona prompt, the workflow hint and
the transcript to an OpenAI-compatible chat-completion endpoint.
``ScriptedReplyGenerator`` answers from the workflow hint alone, so the
concierge can run offline without an API key.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from src.config import ConciergeConfig
from src.conversation.state_machine import DialogueState, GeneratorInstruction
from src.errors import ReplyGeneratorError
from src.schemas.conversation_schema import ChatMessage

logger = logging.getLogger(__name__)


class ReplyGenerator(Protocol):
    """Produces the next assistant utterance."""

    async def generate(
        self, messages: Sequence[ChatMessage], instruction: GeneratorInstruction
    ) -> str: ...


class OpenRouterReplyGenerator:
    """Chat-completion client for OpenRouter (or any OpenAI-compatible API)."""

    def __init__(
        self,
        config: ConciergeConfig,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        if client is None:
            if not config.reply_generator_key:
                raise ValueError("OPENROUTER_API_KEY is required for the reply generator")
            client = AsyncOpenAI(
                api_key=config.reply_generator_key,
                base_url=config.reply_base_url,
            )
        self.client = client
        self.model = config.reply_model
        self.timeout = config.reply_timeout_sec

    async def generate(
        self, messages: Sequence[ChatMessage], instruction: GeneratorInstruction
    ) -> str:
        payload = [m.model_dump(mode="json") for m in messages]
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(model=self.model, messages=payload),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ReplyGeneratorError(
                f"Reply generator timed out after {self.timeout}s"
            ) from exc
        except OpenAIError as exc:
            raise ReplyGeneratorError(f"Reply generator request failed: {exc}") from exc

        if not response.choices:
            raise ReplyGeneratorError("Reply generator returned no choices")
        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise ReplyGeneratorError("Reply generator did not return a message")
        logger.debug("Reply generated (%d chars) for step '%s'",
                     len(content), instruction.next_step.value)
        return content


class ScriptedReplyGenerator:
    """Deterministic replies keyed on the next dialogue step."""

    PROMPTS: dict[DialogueState, str] = {
        DialogueState.DEVICE: "What device make and model would you like help with today?",
        DialogueState.CONTACT: (
            "Thanks for the details on your {device}. Could I get your full name "
            "and the best phone number to reach you?"
        ),
        DialogueState.EMAIL: "Great. What's the best email to send your confirmation to?",
        DialogueState.TIME: (
            "When works best for you: morning, afternoon, or evening? "
            "A specific time is fine too."
        ),
        DialogueState.COMPLETE: (
            "Perfect, I have your {device} appointment for {time}. "
            "I'll relay it to our admin team now."
        ),
    }

    async def generate(
        self, messages: Sequence[ChatMessage], instruction: GeneratorInstruction
    ) -> str:
        template = self.PROMPTS[instruction.next_step]
        return template.format(
            device=instruction.slot_values.get("Device info") or "device",
            time=instruction.slot_values.get("Preferred time") or "your chosen time",
        )
