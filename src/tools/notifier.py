"""
Appointment notification via the backend email relay.

The relay (``POST /api/send-email``) emails the operator and the client in
one call. A successful relay is optionally followed by a durable lead
record; a failed record is logged but does not fail the notification.
"""

import logging
from typing import Any, Optional, Protocol, Sequence

import httpx

from src.config import ConciergeConfig
from src.errors import NotificationError
from src.schemas.conversation_schema import ChatMessage
from src.schemas.lead_schema import NotifierRequest
from src.tools.lead_records import LeadRecordError, SupabaseLeadRecorder

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers confirmation messages for a completed lead."""

    async def notify(self, request: NotifierRequest, history: Sequence[ChatMessage]) -> None: ...


class EmailRelayNotifier:
    """HTTP client for the email relay endpoint."""

    def __init__(
        self,
        config: ConciergeConfig,
        lead_recorder: Optional[SupabaseLeadRecorder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.notifier_endpoint:
            raise ValueError("NOTIFIER_ENDPOINT is required for the email relay notifier")
        self.endpoint = config.notifier_endpoint
        self.timeout = config.notifier_timeout_sec
        self.operator_address = config.operator_address
        self.support_address = config.support_address
        self.lead_recorder = lead_recorder
        self._transport = transport

    def _payload(self, request: NotifierRequest) -> dict[str, Any]:
        updates = {}
        if not request.admin_email and self.operator_address:
            updates["admin_email"] = self.operator_address
        if not request.support_email and self.support_address:
            updates["support_email"] = self.support_address
        return request.model_copy(update=updates).to_wire()

    async def notify(self, request: NotifierRequest, history: Sequence[ChatMessage]) -> None:
        """
        Relay the appointment request.

        Raises:
            NotificationError: On transport failure, a non-2xx status, or a
                relay response with ``success: false``.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, json=self._payload(request))
        except httpx.HTTPError as exc:
            raise NotificationError(f"Email relay unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        detail = body.get("message") if isinstance(body, dict) else None

        if not response.is_success:
            raise NotificationError(
                f"Email relay returned {response.status_code}: {detail or response.text}"
            )
        if isinstance(body, dict) and body.get("success") is False:
            raise NotificationError(f"Email relay reported failure: {detail}")

        logger.info("Appointment emails relayed for %s", request.client_email)

        if self.lead_recorder is not None:
            try:
                await self.lead_recorder.record(request, history)
            except LeadRecordError as exc:
                logger.warning("Lead notification sent but not recorded: %s", exc)
            except Exception:
                logger.exception("Lead notification sent but not recorded")
