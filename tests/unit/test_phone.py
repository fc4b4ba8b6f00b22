"""Unit tests for phone normalization."""

import pytest

from clinic_inbox.core.phone import (
    is_group_chat,
    normalize_phone,
    phone_from_chat_id,
    phone_suffix,
    to_chat_id,
)


class TestNormalizePhone:
    """Tests for normalize_phone."""

    @pytest.mark.parametrize(
        "phone",
        ["050-123-4567", "972501234567", "0501234567", "972501234567@c.us", "+972 50 123 4567"],
    )
    def test_equivalent_forms_share_one_key(self, phone):
        assert normalize_phone(phone) == "0501234567"

    def test_subscriber_number_gets_trunk_digit(self):
        assert normalize_phone("501234567") == "0501234567"

    def test_other_lengths_are_left_as_digits(self):
        assert normalize_phone("12345") == "12345"

    @pytest.mark.parametrize("phone", [None, "", "abc", "@c.us"])
    def test_no_digits_is_no_key(self, phone):
        assert normalize_phone(phone) == ""

    def test_unusable_input_collapses_to_empty_key(self):
        assert normalize_phone("") == normalize_phone("abc") == ""
        assert normalize_phone("050-123-4567") == normalize_phone("972501234567@c.us")


class TestChatAddresses:
    """Tests for chat id helpers."""

    def test_phone_from_chat_id_strips_suffix(self):
        assert phone_from_chat_id("972501234567@c.us") == "972501234567"

    def test_group_chat_detection(self):
        assert is_group_chat("120363043968066561@g.us") is True
        assert is_group_chat("972501234567@c.us") is False
        assert is_group_chat(None) is False

    @pytest.mark.parametrize("phone", ["0501234567", "050-123-4567", "972501234567"])
    def test_to_chat_id_uses_international_form(self, phone):
        assert to_chat_id(phone) == "972501234567@c.us"

    def test_phone_suffix_is_last_nine_digits(self):
        assert phone_suffix("972501234567@c.us") == "501234567"
        assert phone_suffix("050-123-4567", length=4) == "4567"
