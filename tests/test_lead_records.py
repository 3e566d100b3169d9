"""Tests for the Supabase lead recorder, against an in-process fake client."""

import pytest

from src.config import SupabaseConfig
from src.schemas.lead_schema import NotifierRequest
from src.tools.lead_records import LeadRecordError, SupabaseLeadRecorder
from tests.conftest import FakeSupabase, make_history


def _request(**overrides):
    data = dict(
        client_name="Ada Obi",
        client_email="ada@example.com",
        client_phone="+234 801 111 2222",
        device_info="iPhone 13",
        preferred_time="Saturday morning",
        conversation_summary="Rob: Hi",
    )
    data.update(overrides)
    return NotifierRequest(**data)


class TestRecord:
    @pytest.mark.asyncio
    async def test_writes_client_session_messages_and_notification(self):
        db = FakeSupabase()
        history = make_history(("user", "iPhone 13"), ("assistant", "Name and phone?"))

        session_id = await SupabaseLeadRecorder(db).record(_request(), history)

        client = db.tables["clients"][0]
        assert client["email"] == "ada@example.com"
        assert client["phone_number"] == "+2348011112222"
        assert client["status"] == "active"

        session = db.tables["chat_sessions"][0]
        assert session_id == session["id"]
        assert session["client_id"] == client["id"]
        assert session["appointment_scheduled"] is True

        senders = [m["sender_type"] for m in db.tables["chat_messages"]]
        assert senders == ["rob", "client", "rob"]

        notification = db.tables["admin_notifications"][0]
        assert notification["notification_type"] == "appointment_request"
        assert "Ada Obi" in notification["title"]

    @pytest.mark.asyncio
    async def test_existing_client_reused(self):
        db = FakeSupabase()
        db.tables["clients"] = [{"id": "c-7", "email": "ada@example.com"}]
        await SupabaseLeadRecorder(db).record(_request(), make_history())
        assert len(db.tables["clients"]) == 1
        assert db.tables["chat_sessions"][0]["client_id"] == "c-7"

    @pytest.mark.asyncio
    async def test_placeholder_phone_stored_as_null(self):
        db = FakeSupabase()
        await SupabaseLeadRecorder(db).record(
            _request(client_phone="Not provided"), make_history()
        )
        assert db.tables["clients"][0]["phone_number"] is None

    @pytest.mark.asyncio
    async def test_missing_email_rejected(self):
        with pytest.raises(LeadRecordError, match="email is required"):
            await SupabaseLeadRecorder(FakeSupabase()).record(
                _request(client_email=""), make_history()
            )

    @pytest.mark.asyncio
    async def test_database_failure_wrapped(self):
        db = FakeSupabase(failing={"chat_sessions"})
        with pytest.raises(LeadRecordError, match="chat_sessions.insert failed"):
            await SupabaseLeadRecorder(db).record(_request(), make_history())

    @pytest.mark.asyncio
    async def test_row_without_id_wrapped(self):
        db = FakeSupabase(id_column="uuid")
        with pytest.raises(LeadRecordError, match="clients returned a row without an id"):
            await SupabaseLeadRecorder(db).record(_request(), make_history())
        assert "chat_sessions" not in db.tables


class TestFromConfig:
    def test_disabled_without_credentials(self):
        assert SupabaseLeadRecorder.from_config(SupabaseConfig(url=None, key=None)) is None
