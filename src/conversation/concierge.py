"""
Appointment concierge: one visitor's lead-capture dialogue end to end.

Sequences each accepted user turn as
submit -> persist -> generate reply -> append -> (complete -> log -> notify),
persisting the session snapshot after every change. A failed reply rolls
the turn back so the visitor can simply resend it; a failed notification
is reported but leaves the captured lead intact.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.config import BusinessConfig, ConciergeConfig, PersistenceConfig, settings
from src.conversation.guardrails import GuardrailPipeline
from src.conversation.session import restore_session, snapshot_session
from src.conversation.slot_manager import fill_slot
from src.conversation.state_machine import DialogueState, submit_user_turn
from src.errors import ConciergeBusyError, ConciergeError, NotificationError, ReplyGeneratorError
from src.logging_context import get_session_logger, set_session_id
from src.prompts.prompt_templates import build_generator_messages, render_conversation_summary
from src.prompts.system_prompts import build_greeting, build_system_prompt
from src.schemas.conversation_schema import ChatMessage, EmailStatus, NotificationStatus, Role
from src.schemas.lead_schema import AppointmentDetails, ConversationSlots, NotifierRequest
from src.tools.notifier import Notifier
from src.tools.reply_generator import ReplyGenerator
from src.tools.session_store import SessionStore

logger = get_session_logger(__name__)

SENDING_MESSAGE = "Sending confirmations..."
SENT_MESSAGE = "Your appointment request has been sent! Check your email for confirmation."
SEND_FAILED_MESSAGE = (
    "We could not send confirmation emails right now. "
    "Our admin team will follow up manually."
)
MISSING_EMAIL_MESSAGE = (
    "Need an email address to send confirmations. "
    "Please share your email when you can."
)
UNAVAILABLE_MESSAGE = "{name} is unavailable right now. Please try again shortly."


class AppointmentConcierge:
    """Owns the dialogue state of a single visitor session."""

    def __init__(
        self,
        config: ConciergeConfig,
        reply_generator: ReplyGenerator,
        notifier: Notifier,
        store: SessionStore,
        business: BusinessConfig = settings.business,
        persistence: PersistenceConfig = settings.persistence,
        guardrails: Optional[GuardrailPipeline] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.config = config
        self.reply_generator = reply_generator
        self.notifier = notifier
        self.store = store
        self.business = business
        self.persistence = persistence
        self.guardrails = guardrails or GuardrailPipeline()
        self.session_id = session_id or f"SESSION-{uuid.uuid4().hex[:8]}"

        self._system_prompt = build_system_prompt(business, config.assistant_name)
        self._greeting = build_greeting(business, config.assistant_name)
        self._busy = False

        self.slots = ConversationSlots()
        self.state = DialogueState.DEVICE
        self.messages: tuple[ChatMessage, ...] = (
            ChatMessage(role=Role.ASSISTANT, content=self._greeting),
        )
        self.appointment_log: Optional[AppointmentDetails] = None
        self.email_status = EmailStatus()
        self.chat_error = ""

    @property
    def busy(self) -> bool:
        return self._busy

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def restore(self) -> bool:
        """Load the previous dialogue, if any. Returns True when resumed."""
        set_session_id(self.session_id)
        persisted = self.store.read(self.persistence.session_key)
        profile = None if persisted else self.store.read(self.persistence.profile_key)
        restored = restore_session(
            persisted,
            self._greeting,
            profile=profile,
            ttl=timedelta(hours=self.persistence.session_ttl_hours),
        )
        self.slots = restored.slots
        self.state = restored.state
        self.messages = restored.history
        self.appointment_log = restored.appointment_log
        self.email_status = restored.email_status
        logger.info(
            "Dialogue %s at step '%s'",
            "resumed" if restored.resumed else "started", self.state.value,
        )
        return restored.resumed

    def _persist(self) -> None:
        self.store.write(
            self.persistence.session_key,
            snapshot_session(
                self.slots, self.state, self.messages,
                self.appointment_log, self.email_status,
            ),
        )

    def _set_email_status(self, status: NotificationStatus, message: str) -> None:
        self.email_status = EmailStatus(status=status, message=message)
        self._persist()

    def _roll_back(
        self,
        previous: tuple[ConversationSlots, DialogueState, tuple[ChatMessage, ...]],
    ) -> None:
        """Undo an accepted turn whose reply could not be generated."""
        self.slots, self.state, self.messages = previous
        self.chat_error = UNAVAILABLE_MESSAGE.format(name=self.config.assistant_name)
        self._persist()

    # ------------------------------------------------------------------ #
    # Turns
    # ------------------------------------------------------------------ #

    async def submit(self, text: str) -> Optional[str]:
        """
        Handle one visitor message.

        Returns:
            The assistant reply, or None when the input was blank or the
            reply generator failed (see ``chat_error``).

        Raises:
            ConciergeBusyError: If a previous turn is still in flight.
        """
        if self._busy:
            raise ConciergeBusyError("A reply is still pending for this session")
        set_session_id(self.session_id)

        result = submit_user_turn(text, self.slots, self.state, self.messages)
        if not result.accepted or result.instruction is None:
            return None

        previous = (self.slots, self.state, self.messages)
        self._busy = True
        try:
            self.slots, self.state, self.messages = result.slots, result.state, result.history
            self.chat_error = ""
            self._persist()
            if result.changed_slots:
                logger.debug("Captured %s", ", ".join(result.changed_slots))

            try:
                reply = await self.reply_generator.generate(
                    build_generator_messages(
                        self._system_prompt, result.instruction, result.history
                    ),
                    result.instruction,
                )
            except ReplyGeneratorError as exc:
                logger.error("%s chat error: %s", self.config.assistant_name, exc)
                self._roll_back(previous)
                return None
            except Exception:
                logger.exception("Unexpected %s chat error", self.config.assistant_name)
                self._roll_back(previous)
                return None

            reply = reply.strip()
            for violation in self.guardrails.check_reply(reply):
                logger.warning("Reply guardrail '%s': %s",
                               violation.violation_type, violation.message)

            self.messages = (*self.messages, ChatMessage(role=Role.ASSISTANT, content=reply))
            self._persist()

            if result.completed:
                await self._complete()
            return reply
        finally:
            self._busy = False

    # ------------------------------------------------------------------ #
    # Completion
    # ------------------------------------------------------------------ #

    def _build_details(self) -> AppointmentDetails:
        return AppointmentDetails(
            device=self.slots.device,
            contact=self.slots.contact_raw,
            client_name=self.slots.client_name or f"{self.business.name} Client",
            client_phone=self.slots.client_phone or "Not provided",
            client_email=self.slots.client_email,
            preferred_time=self.slots.preferred_time,
            captured_at=datetime.now(timezone.utc),
        )

    async def _complete(self) -> None:
        details = self._build_details()
        logger.info("%s appointment request: %s",
                    self.config.assistant_name, details.model_dump(mode="json"))
        self.appointment_log = details
        self._persist()
        self.store.write(self.persistence.profile_key, details.model_dump(mode="json"))
        await self.handle_completion(details, self.messages)

    async def handle_completion(
        self, details: AppointmentDetails, history: tuple[ChatMessage, ...]
    ) -> EmailStatus:
        """Send the confirmation emails once the lead is complete."""
        if not details.client_email:
            logger.warning("Appointment captured without an email; notification pending")
            self._set_email_status(NotificationStatus.ERROR, MISSING_EMAIL_MESSAGE)
            return self.email_status

        self._set_email_status(NotificationStatus.LOADING, SENDING_MESSAGE)
        request = NotifierRequest(
            client_name=details.client_name,
            client_email=details.client_email,
            client_phone=details.client_phone,
            device_info=details.device,
            preferred_time=details.preferred_time,
            conversation_summary=render_conversation_summary(
                history, self.config.assistant_name
            ),
        )
        try:
            await self.notifier.notify(request, history)
        except NotificationError as exc:
            logger.error("Failed to send appointment emails: %s", exc)
            self._set_email_status(NotificationStatus.ERROR, SEND_FAILED_MESSAGE)
        else:
            self._set_email_status(NotificationStatus.SUCCESS, SENT_MESSAGE)
        return self.email_status

    async def retry_notification(self, email: Optional[str] = None) -> EmailStatus:
        """
        Manually re-send the notification for the captured appointment.

        A missing email can be supplied here; an existing one is kept.
        """
        if self.appointment_log is None:
            raise ConciergeError("No completed appointment to notify about")
        if self._busy:
            raise ConciergeBusyError("A reply is still pending for this session")
        set_session_id(self.session_id)

        if email and email.strip():
            self.slots = fill_slot(self.slots, "client_email", email.strip())
            if not self.appointment_log.client_email:
                self.appointment_log = self.appointment_log.model_copy(
                    update={"client_email": self.slots.client_email}
                )
            self._persist()

        self._busy = True
        try:
            return await self.handle_completion(self.appointment_log, self.messages)
        finally:
            self._busy = False
