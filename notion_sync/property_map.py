"""
Attribute -> Notion property mapping.

PROPERTY_TABLE is the single canonical table of CRM fields: adding a Notion
column means adding a row here. Composite properties (Name, Address) and the
bookkeeping properties (timestamps, group relation) are built separately in
build_properties.
"""
import logging
import math

logger = logging.getLogger(__name__)

TITLE, EMAIL, PHONE, NUMBER, CHECKBOX, SELECT, MULTI_SELECT, RICH_TEXT, DATE, RELATION = (
    "title", "email", "phone_number", "number", "checkbox", "select",
    "multi_select", "rich_text", "date", "relation",
)

PROPERTY_TABLE = {
    # contact
    "email": ("Email", EMAIL),
    "phone_number": ("Phone", PHONE),
    # investment
    "investment_amount": ("Investment Amount", NUMBER),
    "is_accredited": ("Accredited Investor", CHECKBOX),
    # UTM
    "utm_source": ("UTM Source", RICH_TEXT),
    "utm_medium": ("UTM Medium", RICH_TEXT),
    "utm_campaign": ("UTM Campaign", RICH_TEXT),
    "utm_content": ("UTM Content", RICH_TEXT),
    "utm_term": ("UTM Term", RICH_TEXT),
    # event triggers
    "entered_funnel": ("status: entered_funnel_ecf26", CHECKBOX),
    "checkout2_started": ("action: checkout2_started_ecf26", CHECKBOX),
    "investor_funded_status": ("investor_funded_status_ecf26", CHECKBOX),
    "investor_deck_downloaded_ecf26": ("status: entered_funnel_pitch_ecf26", CHECKBOX),
    # consent
    "marketing_consent": ("Marketing Consent", CHECKBOX),
    "sms_consent": ("SMS Consent", CHECKBOX),
    # DealMaker
    "investor_state": ("investor_state_ecf26", SELECT),
    "security_type_ecf26": ("security_type_ecf26", RICH_TEXT),
    "investor_price_ecf26": ("investor_price_ecf26", NUMBER),
    "number_of_securities_ecf26": ("number_of_securities_ecf26", NUMBER),
    "total_amount_dollars_ecf26": ("total_amount_dollars_ecf26", NUMBER),
    "funds_state_ecf26": ("funds_state_ecf26", SELECT),
    "ancillary_fees": ("ancillary_fees_ecf26", NUMBER),
    # ActiveCampaign
    "ac_sync_status": ("AC Sync Status", SELECT),
    "tags": ("Tags", MULTI_SELECT),
}

ADDRESS_FIELDS = ("street_address", "unit2", "city", "region", "postal_code", "country")

NAME_PROPERTY = "Name"
ADDRESS_PROPERTY = "Address"
CREATED_PROPERTY = "Created At"
UPDATED_PROPERTY = "Last Updated"
GROUP_PROPERTY = "Group"
NO_NAME = "No name provided"


TRUE_STRINGS = ("true", "1", "yes", "on")
FALSE_STRINGS = ("false", "0", "no", "off")


def _rich_text(content):
    return [{"text": {"content": str(content)}}]


def parse_flag(value):
    """
    Strict boolean parsing for form/webhook flags.

    Returns:
        True/False, or None when the value is absent or not recognisably boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    return None


def parse_number(value):
    """float() after stripping currency formatting ("$1,000" -> 1000.0); ValueError otherwise."""
    if isinstance(value, bool):
        raise ValueError(f"boolean {value!r} is not a number")
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
    try:
        number = float(value)
    except TypeError:
        raise ValueError(f"{value!r} is not a number")
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite number")
    return number


def is_present(prop_type, value):
    """Checkboxes count False as a value; every other type needs a non-empty value."""
    if prop_type == CHECKBOX:
        return value is not None
    return value is not None and value != "" and value != []


def encode_property(field, prop_type, value):
    if prop_type == EMAIL:
        return {"email": value}
    if prop_type == PHONE:
        return {"phone_number": value}
    if prop_type == NUMBER:
        return {"number": parse_number(value)}
    if prop_type == CHECKBOX:
        flag = parse_flag(value)
        if flag is None:
            raise ValueError(f"{value!r} is not a boolean")
        return {"checkbox": flag}
    if prop_type == SELECT:
        return {"select": {"name": str(value)}}
    if prop_type == MULTI_SELECT:
        if isinstance(value, str):
            value = [value]
        return {"multi_select": [{"name": str(tag)} for tag in value]}
    if prop_type == RICH_TEXT:
        return {"rich_text": _rich_text(value)}
    raise TypeError(f"unsupported property type {prop_type!r} for {field}")


def compose_name(attributes):
    first = attributes.get("first_name") or ""
    last = attributes.get("last_name") or ""
    return f"{first} {last}".strip()


def compose_address(attributes):
    parts = [str(attributes[f]) for f in ADDRESS_FIELDS if attributes.get(f)]
    return ", ".join(parts)


def build_properties(attributes, creating, now, group_page_id):
    """
    Map an attribute set onto Notion's typed property payload.

    Args:
        attributes: flat attribute set (absent keys are simply not written)
        creating: True when no existing page was resolved
        now: ISO-8601 timestamp for the date stamps
        group_page_id: page id of the tenant group relation

    Returns:
        dict: Notion ``properties`` object
    """
    properties = {}

    name = compose_name(attributes)
    if name or creating:
        properties[NAME_PROPERTY] = {"title": _rich_text(name or NO_NAME)}

    for field, (prop_name, prop_type) in PROPERTY_TABLE.items():
        value = attributes.get(field)
        if not is_present(prop_type, value):
            continue
        try:
            properties[prop_name] = encode_property(field, prop_type, value)
        except ValueError as e:
            # malformed field is dropped; the rest of the save goes through
            logger.warning("[save] skipping %s: %s", field, e)

    address = compose_address(attributes)
    if address:
        properties[ADDRESS_PROPERTY] = {"rich_text": _rich_text(address)}

    if creating:
        properties[CREATED_PROPERTY] = {"date": {"start": now}}
    properties[UPDATED_PROPERTY] = {"date": {"start": now}}

    properties[GROUP_PROPERTY] = {"relation": [{"id": group_page_id}]}
    return properties
