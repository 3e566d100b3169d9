"""Tests for per-slot extraction and first-write-wins filling."""

import pytest

from src.conversation.slot_manager import (
    SlotStatus,
    capture_contact,
    extract_email,
    extract_name,
    extract_phone,
    fill_slot,
    get_missing_slots,
    slot_status,
)
from src.schemas.lead_schema import ConversationSlots


class TestExtractName:
    def test_text_before_first_comma(self):
        assert extract_name("Ada Obi, +2348011112222") == "Ada Obi"

    def test_trims_whitespace(self):
        assert extract_name("   Ada Obi   , 0801") == "Ada Obi"

    def test_whole_turn_without_comma(self):
        assert extract_name("Ada Obi") == "Ada Obi"

    def test_empty_first_segment(self):
        assert extract_name(", 08012345678") is None


class TestExtractPhone:
    def test_text_after_first_comma(self):
        assert extract_phone("Ada Obi, +2348011112222") == "+2348011112222"

    def test_keeps_later_commas(self):
        assert extract_phone("Ada, 0801 234, ext 5") == "0801 234, ext 5"

    def test_digit_run_without_comma(self):
        assert extract_phone("Ada Obi 08012345678 thanks") == "08012345678"

    def test_digit_run_with_spaces_and_dashes(self):
        assert extract_phone("call me on 0801-234 5678") == "0801-234 5678"

    def test_leading_plus_kept(self):
        assert extract_phone("Ada +234 801 111 2222") == "+234 801 111 2222"

    def test_short_digit_run_ignored(self):
        assert extract_phone("Ada Obi 12345") is None

    def test_blank_after_comma_falls_back_to_digits(self):
        assert extract_phone("Ada 08012345678,   ") == "08012345678"

    def test_no_phone(self):
        assert extract_phone("Ada Obi") is None


class TestExtractEmail:
    def test_finds_email_anywhere(self):
        assert extract_email("Ada Obi, ada@example.com please") == "ada@example.com"

    def test_case_insensitive(self):
        assert extract_email("ADA.OBI@Example.COM") == "ADA.OBI@Example.COM"

    def test_no_email(self):
        assert extract_email("Ada Obi, +2348011112222") is None

    def test_missing_tld_rejected(self):
        assert extract_email("ada@localhost") is None


class TestFillSlot:
    def test_fills_empty_slot(self, empty_slots):
        slots = fill_slot(empty_slots, "device", "iPhone 13")
        assert slots.device == "iPhone 13"

    def test_does_not_mutate_input(self, empty_slots):
        fill_slot(empty_slots, "device", "iPhone 13")
        assert empty_slots.device == ""

    def test_first_write_wins(self, empty_slots):
        slots = fill_slot(empty_slots, "device", "iPhone 13")
        slots = fill_slot(slots, "device", "Pixel 7")
        assert slots.device == "iPhone 13"

    def test_none_value_is_ignored(self, empty_slots):
        assert fill_slot(empty_slots, "client_phone", None) == empty_slots

    def test_unknown_slot_rejected(self, empty_slots):
        with pytest.raises(ValueError, match="Unknown slot"):
            fill_slot(empty_slots, "address", "42 Oak Ave")


class TestCaptureContact:
    def test_name_and_phone(self, empty_slots):
        slots = capture_contact(empty_slots, "Ada Obi, +2348011112222")
        assert slots.contact_raw == "Ada Obi, +2348011112222"
        assert slots.client_name == "Ada Obi"
        assert slots.client_phone == "+2348011112222"
        assert slots.client_email == ""

    def test_email_detected(self, empty_slots):
        slots = capture_contact(empty_slots, "Ada Obi, ada@example.com")
        assert slots.client_email == "ada@example.com"
        assert slots.client_name == "Ada Obi"

    def test_existing_values_preserved(self):
        slots = ConversationSlots(client_name="Ada", client_email="old@example.com")
        slots = capture_contact(slots, "Bola Ade, bola@example.com")
        assert slots.client_name == "Ada"
        assert slots.client_email == "old@example.com"
        assert slots.contact_raw == "Bola Ade, bola@example.com"


class TestSlotStatus:
    def test_all_pending_initially(self, empty_slots):
        names = [d.name for d in get_missing_slots(empty_slots)]
        assert names == ["device", "contact_raw", "client_email", "preferred_time"]

    def test_status_reflects_capture(self, empty_slots):
        slots = fill_slot(empty_slots, "device", "iPad Pro")
        assert slot_status(slots, "device") == SlotStatus.CAPTURED
        assert slot_status(slots, "preferred_time") == SlotStatus.EMPTY

    def test_nothing_missing_once_captured(self):
        slots = ConversationSlots(
            device="iPad", contact_raw="Ada, 0801234567",
            client_email="ada@example.com", preferred_time="noon",
        )
        assert get_missing_slots(slots) == []
