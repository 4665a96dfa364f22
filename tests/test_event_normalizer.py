"""
Tests for the DealMaker webhook -> attribute set normalizer.
"""
import logging

import pytest

from common.errors import ValidationError
from ingest.event_normalizer import build_save_payload, normalize_event


def webhook(event="investor.update", investor=None, deal=None):
    body = {"event": event, "event_id": "evt-1", "investor": investor or {"email": "jane@example.com"}}
    if deal is not None:
        body["deal"] = deal
    return body


def test_missing_contact_method_is_rejected():
    with pytest.raises(ValidationError):
        normalize_event(webhook(investor={"first_name": "Jane"}))


def test_phone_alone_is_a_contact_method():
    attributes = normalize_event(webhook(investor={"phone_number": "+15551234567"}))
    assert attributes["phone_number"] == "+15551234567"
    assert "email" not in attributes


def test_fields_copied_through_name_mapping():
    body = webhook(
        investor={
            "id": 42,
            "email": "jane@example.com",
            "first_name": "Jane",
            "last_name": "Doe",
            "number_of_securities": 100,
            "investment_amount": 1050.0,
            "funding_state": "processing",
            "state": "draft",
            "beneficial_address": "1 Main St",
        },
        deal={"title": "ECF", "security_type": "Common Stock", "price_per_security": 10.5},
    )
    attributes = normalize_event(body)

    assert attributes == {
        "email": "jane@example.com",
        "first_name": "Jane",
        "last_name": "Doe",
        "number_of_securities_ecf26": 100,
        "investment_amount": 1050.0,
        "funds_state_ecf26": "processing",
        "investor_state": "draft",
        "street_address": "1 Main St",
        "security_type_ecf26": "Common Stock",
        "investor_price_ecf26": 10.5,
    }


def test_absent_fields_are_omitted_but_names_default_to_empty():
    attributes = normalize_event(webhook())
    assert attributes == {"email": "jane@example.com", "first_name": "", "last_name": ""}


def test_flat_data_shape_is_tolerated():
    body = {
        "event": "investor.update",
        "data": {
            "email": "flat@example.com",
            "security_type": "Preferred Shares",
            "investment_amount": 500,
        },
    }
    attributes = normalize_event(body)
    assert attributes["email"] == "flat@example.com"
    assert attributes["security_type_ecf26"] == "Preferred Shares"
    assert attributes["investment_amount"] == 500


def test_nested_data_shape_is_tolerated():
    body = {
        "event_type": "investor.signed",
        "data": {"investor": {"email": "n@example.com"}, "deal": {"security_type": "SAFE"}},
    }
    attributes = normalize_event(body)
    assert attributes["security_type_ecf26"] == "SAFE"
    assert attributes["investor_state"] == "signed"


def test_ancillary_fees_derived_when_positive():
    investor = {"email": "a@example.com", "allocated_amount": 1000, "investment_amount": 900}
    attributes = normalize_event(webhook(investor=investor))
    assert attributes["ancillary_fees"] == 100
    assert attributes["total_amount_dollars_ecf26"] == 1000


@pytest.mark.parametrize("allocated, invested", [(900, 900), (800, 900)])
def test_no_ancillary_fees_unless_positive(allocated, invested):
    investor = {"email": "a@example.com", "allocated_amount": allocated, "investment_amount": invested}
    assert "ancillary_fees" not in normalize_event(webhook(investor=investor))


def test_no_ancillary_fees_with_one_input_missing():
    investor = {"email": "a@example.com", "allocated_amount": 1000}
    assert "ancillary_fees" not in normalize_event(webhook(investor=investor))


def test_zero_amounts_are_present():
    investor = {"email": "a@example.com", "investment_amount": 0}
    assert normalize_event(webhook(investor=investor))["investment_amount"] == 0


def test_create_event_marks_checkout_started():
    assert normalize_event(webhook("investor.create"))["checkout2_started"] is True


def test_signed_and_accepted_set_status():
    assert normalize_event(webhook("investor.signed"))["investor_state"] == "signed"
    assert normalize_event(webhook("investor.accepted"))["investor_state"] == "accepted"


def test_funded_event_sets_flag_and_status_over_payload_state():
    investor = {"email": "a@example.com", "state": "signed", "funding_state": "pending"}
    attributes = normalize_event(webhook("investor.funded", investor=investor))
    assert attributes["investor_funded_status"] is True
    assert attributes["investor_state"] == "funded"


def test_update_event_adds_no_overrides():
    attributes = normalize_event(webhook("investor.update", investor={"email": "a@example.com", "state": "draft"}))
    assert attributes["investor_state"] == "draft"
    assert "checkout2_started" not in attributes
    assert "investor_funded_status" not in attributes


def test_unrecognized_event_is_logged_not_rejected(caplog):
    with caplog.at_level(logging.WARNING):
        attributes = normalize_event(webhook("investor.deleted"))
    assert attributes["email"] == "jane@example.com"
    assert "investor.deleted" in caplog.text


def test_consent_fans_out_to_marketing_and_sms():
    investor = {"email": "a@example.com", "promotional_marketing_consent": False}
    attributes = normalize_event(webhook(investor=investor))
    assert attributes["marketing_consent"] is False
    assert attributes["sms_consent"] is False


def test_bonus_tags_logged_not_written(caplog):
    investor = {"email": "a@example.com", "tags": ["Bonus_10pct", "vip", "free_shares_tier"]}
    with caplog.at_level(logging.INFO):
        attributes = normalize_event(webhook(investor=investor))
    assert "tags" not in attributes
    bonus = [r for r in caplog.records if "bonus tags" in r.getMessage()]
    assert len(bonus) == 1
    assert "Bonus_10pct" in bonus[0].getMessage()
    assert "vip" not in bonus[0].getMessage()


def test_save_payload_requests_update_seeking():
    payload = build_save_payload({"email": "a@example.com"})
    assert payload == {"email": "a@example.com", "update_existing": True}
