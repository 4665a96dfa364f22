"""
Lambda function behind the form autosave endpoint (also the target of the
DealMaker webhook). Accepts a flat attribute set and creates or updates the
contact's page in the Notion CRM database.
"""
import logging

from common.config import load_config
from common.errors import IntakeError
from common.http import (
    configure_logging,
    error_response,
    json_response,
    method_not_allowed,
    options_response,
    parse_json_body,
    request_method,
)
from notion_sync.notion_client import get_client
from notion_sync.property_map import parse_flag
from notion_sync.record_upserter import upsert_record

configure_logging()
logger = logging.getLogger(__name__)

RESOLUTION_KEYS = ("entry_id", "update_existing")


def split_request(body):
    """Separate the resolution hints from the attribute set."""
    attributes = {k: v for k, v in body.items() if k not in RESOLUTION_KEYS}
    return attributes, body.get("entry_id") or None, parse_flag(body.get("update_existing")) is True


def lambda_handler(event, context):
    """
    Handle a save request from the web form or the webhook relay.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        dict: API Gateway response
    """
    method = request_method(event)
    if method == "OPTIONS":
        return options_response()
    if method != "POST":
        return method_not_allowed()

    try:
        body = parse_json_body(event)
    except ValueError:
        return error_response(400, "Invalid JSON body", "Request body must be a JSON object")

    config = load_config()
    try:
        attributes, entry_id, update_existing = split_request(body)
        result = upsert_record(
            attributes,
            get_client(config),
            config,
            entry_id=entry_id,
            update_existing=update_existing,
        )
    except IntakeError as e:
        if e.status_code >= 500:
            logger.exception("[save] error saving to Notion")
        else:
            logger.warning("[save] rejected request: %s", e.message)
        return error_response(
            e.status_code, e.label, e.message,
            include_details=config.is_development and e.status_code >= 500,
        )
    except Exception as e:
        logger.exception("[save] unexpected error")
        return error_response(500, "Failed to save to Notion", str(e), include_details=config.is_development)

    logger.info("[save] %s entry %s", result.action, result.entry_id)
    if result.action == "updated":
        return json_response(200, {
            "success": True,
            "message": "Entry updated successfully",
            "entry_id": result.entry_id,
            "action": result.action,
            "matched_by": result.matched_by,
        })
    return json_response(200, {
        "success": True,
        "message": "New entry created successfully",
        "entry_id": result.entry_id,
        "action": result.action,
    })
