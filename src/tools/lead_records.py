"""
Durable lead records in the hosted database.

A completed appointment becomes a ``clients`` row (looked up by email),
a ``chat_sessions`` row, one ``chat_messages`` row per transcript turn
and an ``admin_notifications`` row for the dashboard. The supabase client
is synchronous, so each call runs in the default executor.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Sequence

from supabase import Client, create_client

from src.config import SupabaseConfig
from src.errors import ConciergeError
from src.schemas.conversation_schema import ChatMessage, Role
from src.schemas.lead_schema import NotifierRequest
from src.utils import normalize_phone

logger = logging.getLogger(__name__)


class LeadRecordError(ConciergeError):
    """A lead could not be written to the database."""


def _sender_type(role: Role) -> str:
    return "client" if role == Role.USER else "rob"


def _row_id(row: Any, label: str) -> Any:
    row_id = row.get("id") if isinstance(row, dict) else None
    if row_id is None:
        raise LeadRecordError(f"{label} returned a row without an id")
    return row_id


class SupabaseLeadRecorder:
    """Writes completed appointment requests to Supabase tables."""

    def __init__(self, client: Client, timeout: float = 5.0) -> None:
        self.client = client
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: SupabaseConfig) -> Optional["SupabaseLeadRecorder"]:
        """Build a recorder, or None when Supabase is not configured."""
        if not config.enabled:
            return None
        return cls(create_client(config.url, config.key), timeout=config.timeout_sec)

    async def _run(self, operation: Callable[[], Any], label: str) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, operation), timeout=self.timeout
            )
        except Exception as exc:
            raise LeadRecordError(f"{label} failed: {exc}") from exc

    async def get_or_create_client(
        self, name: str, email: str, phone: Optional[str]
    ) -> dict[str, Any]:
        if not email:
            raise LeadRecordError("Client email is required to save a chat session")

        existing = await self._run(
            lambda: self.client.table("clients")
            .select("*")
            .eq("email", email)
            .limit(1)
            .execute(),
            label="clients.by_email",
        )
        if existing.data:
            return existing.data[0]

        created = await self._run(
            lambda: self.client.table("clients")
            .insert({
                "email": email,
                "name": name,
                "phone_number": normalize_phone(phone or "") or None,
                "is_new": True,
                "status": "active",
            })
            .execute(),
            label="clients.insert",
        )
        if not created.data:
            raise LeadRecordError("clients.insert returned no row")
        return created.data[0]

    async def create_chat_session(
        self, client_id: Any, device_info: str, appointment_time: str
    ) -> dict[str, Any]:
        result = await self._run(
            lambda: self.client.table("chat_sessions")
            .insert({
                "client_id": client_id,
                "device_info": device_info or None,
                "service_type": None,
                "appointment_time": appointment_time or None,
                "appointment_scheduled": bool(appointment_time),
            })
            .execute(),
            label="chat_sessions.insert",
        )
        if not result.data:
            raise LeadRecordError("chat_sessions.insert returned no row")
        return result.data[0]

    async def insert_messages(self, session_id: Any, messages: Sequence[ChatMessage]) -> None:
        if not messages:
            return
        rows = [
            {
                "session_id": session_id,
                "sender_type": _sender_type(m.role),
                "message_text": m.content,
            }
            for m in messages
        ]
        await self._run(
            lambda: self.client.table("chat_messages").insert(rows).execute(),
            label="chat_messages.insert",
        )

    async def create_admin_notification(
        self, session_id: Any, title: str, message: str
    ) -> None:
        await self._run(
            lambda: self.client.table("admin_notifications")
            .insert({
                "session_id": session_id,
                "title": title,
                "message": message,
                "notification_type": "appointment_request",
            })
            .execute(),
            label="admin_notifications.insert",
        )

    async def record(self, request: NotifierRequest, history: Sequence[ChatMessage]) -> Any:
        """Persist the lead and its transcript; returns the chat session id."""
        client_row = await self.get_or_create_client(
            request.client_name, request.client_email, request.client_phone
        )
        client_id = _row_id(client_row, "clients")
        session = await self.create_chat_session(
            client_id, request.device_info, request.preferred_time
        )
        session_id = _row_id(session, "chat_sessions")
        await self.insert_messages(session_id, history)
        await self.create_admin_notification(
            session_id,
            title=f"New appointment request from {request.client_name}",
            message=(
                f"{request.client_name} requested help with {request.device_info} "
                f"around {request.preferred_time}."
            ),
        )
        logger.info("Lead recorded as chat session %s", session_id)
        return session_id
