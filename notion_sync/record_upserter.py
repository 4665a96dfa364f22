"""
Record resolution and create-or-update against the Notion CRM database.

Lookup-then-act is not atomic: two concurrent saves for the same new contact
can both miss the lookup and create two pages. Nothing here prevents that.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from common.errors import NotionError, ValidationError
from notion_sync.notion_client import require_database_id
from notion_sync.property_map import PROPERTY_TABLE, build_properties

logger = logging.getLogger(__name__)

EMAIL_PROPERTY = PROPERTY_TABLE["email"][0]
PHONE_PROPERTY = PROPERTY_TABLE["phone_number"][0]


@dataclass
class UpsertResult:
    action: str
    entry_id: str
    matched_by: Optional[str] = None


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def require_contact_method(attributes):
    if not attributes.get("email") and not attributes.get("phone_number"):
        raise ValidationError("Must provide email or phone number before saving")


def lookup_filter(email, phone):
    """Equality filter on whichever identity values are present; OR only when both are."""
    filters = []
    if email:
        filters.append({"property": EMAIL_PROPERTY, "email": {"equals": email}})
    if phone:
        filters.append({"property": PHONE_PROPERTY, "phone_number": {"equals": phone}})
    if not filters:
        return None
    return {"or": filters} if len(filters) > 1 else filters[0]


def _matched_field(page, email, phone):
    props = page.get("properties") or {}
    if email and (props.get(EMAIL_PROPERTY) or {}).get("email") == email:
        return "email"
    if phone and (props.get(PHONE_PROPERTY) or {}).get("phone_number") == phone:
        return "phone"
    return None


def find_existing_record(client, database_id, email, phone):
    """
    Best-effort duplicate lookup.

    Returns:
        tuple: (page_id, matched_by), or (None, None) on a miss or a failed query
    """
    query = lookup_filter(email, phone)
    if query is None:
        return None, None

    try:
        results = client.query_database(database_id, filter=query).get("results") or []
    except NotionError as e:
        logger.warning("[save] lookup failed, falling back to create: %s", e)
        return None, None

    if not results:
        return None, None

    page = results[0]
    matched_by = _matched_field(page, email, phone)
    logger.info("[save] found existing entry %s (matched by %s)", page.get("id"), matched_by)
    return page.get("id"), matched_by


def upsert_record(attributes, client, config, entry_id=None, update_existing=False, now=None):
    """
    Create or update the Notion page for one contact.

    Args:
        attributes: flat attribute set for the contact
        client: NotionClient
        config: NotionConfig (database id, group page id)
        entry_id: explicit page id to update; skips the lookup
        update_existing: look for an existing page by email/phone first
        now: timestamp override for Created At / Last Updated

    Returns:
        UpsertResult
    """
    require_contact_method(attributes)
    require_database_id(config)

    matched_by = None
    target_id = entry_id
    if not target_id and update_existing:
        target_id, matched_by = find_existing_record(
            client, config.database_id,
            attributes.get("email"), attributes.get("phone_number"),
        )

    properties = build_properties(
        attributes,
        creating=not target_id,
        now=now or _now_iso(),
        group_page_id=config.group_page_id,
    )

    if target_id:
        response = client.update_page(target_id, properties)
        return UpsertResult("updated", response.get("id", target_id), matched_by)

    response = client.create_page(config.database_id, properties)
    return UpsertResult("created", response.get("id"))
