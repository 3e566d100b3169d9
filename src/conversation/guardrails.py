"""
Post-generation checks on concierge replies.

Two independent guardrails, each checking a different concern:
1. PersonaGuardrail: blocks bot self-references and competitor referrals
2. BrevityGuardrail: flags replies too long for the chat widget

Violations are reported, not enforced: the concierge logs them and still
shows the reply.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MAX_REPLY_SENTENCES = 3

_SENTENCE_END = re.compile(r"[.!?]+(?:\s|$)")


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None
    severity: str = "warning"  # "warning" | "block"


class PersonaGuardrail:
    """Keeps the assistant human-sounding and on-brand."""

    FORBIDDEN_PATTERNS = [
        "as an ai", "as a language model", "i'm a bot", "i am a bot",
        "i'm an ai", "i am an ai", "chatbot", "virtual assistant",
    ]

    REFERRAL_PATTERNS = [
        "third-party repair", "third party repair", "another repair shop",
        "other repair shop", "try a different store", "competitor",
    ]

    def check_persona(self, reply: str) -> GuardrailResult:
        lower = reply.lower()
        for pattern in self.FORBIDDEN_PATTERNS:
            if pattern in lower:
                return GuardrailResult(
                    passed=False,
                    violation_type="persona_break",
                    message=f"Reply breaks persona with: '{pattern}'.",
                    severity="block",
                )
        return GuardrailResult(passed=True)

    def check_referrals(self, reply: str) -> GuardrailResult:
        lower = reply.lower()
        for pattern in self.REFERRAL_PATTERNS:
            if pattern in lower:
                return GuardrailResult(
                    passed=False,
                    violation_type="competitor_referral",
                    message=f"Reply points the client elsewhere: '{pattern}'.",
                    severity="block",
                )
        return GuardrailResult(passed=True)


class BrevityGuardrail:
    """Flags replies longer than a couple of short sentences."""

    def check_length(self, reply: str) -> GuardrailResult:
        sentences = len(_SENTENCE_END.findall(reply.strip()))
        if sentences > MAX_REPLY_SENTENCES:
            return GuardrailResult(
                passed=False,
                violation_type="reply_too_long",
                message=f"Reply has {sentences} sentences (max {MAX_REPLY_SENTENCES}).",
            )
        return GuardrailResult(passed=True)


class GuardrailPipeline:
    """Composes all reply guardrails."""

    def __init__(self) -> None:
        self.persona = PersonaGuardrail()
        self.brevity = BrevityGuardrail()

    def check_reply(self, text: str) -> list[GuardrailResult]:
        """Return only the failed checks."""
        results = [
            self.persona.check_persona(text),
            self.persona.check_referrals(text),
            self.brevity.check_length(text),
        ]
        return [r for r in results if not r.passed]
