"""
Turn a DealMaker investor webhook into the flat attribute set the save
endpoint understands.

DealMaker payloads come in two shapes: ``{"event", "investor", "deal"}`` with
the deal nested separately, or everything embedded under ``"data"``. Every
field is read independently so either shape (or a partial one) works.
"""
import logging

from common.errors import ValidationError

logger = logging.getLogger(__name__)

# event label -> attributes forced by that event
EVENT_OVERRIDES = {
    "investor.create": {"checkout2_started": True},
    "investor.update": {},
    "investor.signed": {"investor_state": "signed"},
    "investor.funded": {"investor_funded_status": True, "investor_state": "funded"},
    "investor.accepted": {"investor_state": "accepted"},
}

# investor field -> attribute, copied when present (0 and False count as present)
INVESTOR_VALUE_FIELDS = {
    "number_of_securities": "number_of_securities_ecf26",
    "investment_amount": "investment_amount",
    "allocated_amount": "total_amount_dollars_ecf26",
}

# investor field -> attribute, copied when non-empty
INVESTOR_TEXT_FIELDS = {
    "email": "email",
    "phone_number": "phone_number",
    "funding_state": "funds_state_ecf26",
    "state": "investor_state",
    "beneficial_address": "street_address",
}

# deal field -> attribute; falls back to the investor object for flat payloads
DEAL_FIELDS = {
    "security_type": "security_type_ecf26",
    "price_per_security": "investor_price_ecf26",
}

BONUS_TAG_MARKERS = ("bonus", "free_shares")


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def extract_parts(body):
    """Return (event_label, investor, deal) from either payload shape."""
    data = _as_dict(body.get("data"))
    investor = _as_dict(body.get("investor")) or _as_dict(data.get("investor")) or data
    deal = _as_dict(body.get("deal")) or _as_dict(data.get("deal"))
    event = body.get("event") or body.get("event_type") or data.get("event")
    return event, investor, deal


def ancillary_fees(investor):
    """allocated_amount - investment_amount, only when both exist and the difference is positive."""
    allocated = investor.get("allocated_amount")
    invested = investor.get("investment_amount")
    if allocated is None or invested is None:
        return None
    try:
        fees = float(allocated) - float(invested)
    except (TypeError, ValueError):
        return None
    return fees if fees > 0 else None


def bonus_tags(investor):
    tags = investor.get("tags")
    if not isinstance(tags, list):
        return []
    return [t for t in tags if isinstance(t, str) and any(m in t.lower() for m in BONUS_TAG_MARKERS)]


def normalize_event(body):
    """
    Build the attribute set for one webhook body.

    Args:
        body: parsed webhook JSON

    Returns:
        dict: attribute set (absent fields omitted)

    Raises:
        ValidationError: neither email nor phone number on the investor
    """
    event, investor, deal = extract_parts(body)

    if not investor.get("email") and not investor.get("phone_number"):
        raise ValidationError("Webhook investor has no email or phone number")

    attributes = {
        "first_name": investor.get("first_name") or "",
        "last_name": investor.get("last_name") or "",
    }

    for src, dst in INVESTOR_TEXT_FIELDS.items():
        if investor.get(src):
            attributes[dst] = investor[src]

    for src, dst in INVESTOR_VALUE_FIELDS.items():
        if investor.get(src) is not None:
            attributes[dst] = investor[src]

    for src, dst in DEAL_FIELDS.items():
        value = deal.get(src)
        if value is None:
            value = investor.get(src)
        if value is not None and value != "":
            attributes[dst] = value

    fees = ancillary_fees(investor)
    if fees is not None:
        attributes["ancillary_fees"] = fees

    consent = investor.get("promotional_marketing_consent")
    if consent is not None:
        attributes["marketing_consent"] = consent
        attributes["sms_consent"] = consent

    found = bonus_tags(investor)
    if found:
        logger.info("[webhook] bonus tags on investor %s: %s", investor.get("id"), found)

    if event in EVENT_OVERRIDES:
        attributes.update(EVENT_OVERRIDES[event])
    else:
        logger.warning("[webhook] unrecognized event %r, passing fields through", event)

    return attributes


def build_save_payload(attributes):
    """Webhook saves always look for an existing entry first."""
    return {**attributes, "update_existing": True}
