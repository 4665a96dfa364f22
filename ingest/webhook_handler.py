import json, logging

import requests

from common.config import load_config
from common.errors import ConfigurationError, IntakeError, SaveEndpointError
from common.http import (
    configure_logging,
    error_response,
    json_response,
    method_not_allowed,
    options_response,
    parse_json_body,
    request_method,
)
from ingest.event_normalizer import build_save_payload, normalize_event

configure_logging()
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-DealMaker-Signature"
ALLOWED = (SIGNATURE_HEADER,)

# --- Save endpoint relay ---
def relay_to_save_endpoint(payload, url):
    """POST the attribute set to the save endpoint; returns its JSON body."""
    if not url:
        raise ConfigurationError("SAVE_ENDPOINT_URL is not set")

    logger.info("[webhook] calling save endpoint")
    try:
        resp = requests.post(url, json=payload, headers={"Content-Type": "application/json"})
    except requests.RequestException as e:
        raise SaveEndpointError(f"Notion update failed: {e}") from e

    try:
        data = resp.json()
    except ValueError:
        data = {}

    if not resp.ok:
        raise SaveEndpointError(f"Notion update failed: {data.get('message') or 'Unknown error'}")

    logger.info("[webhook] notion %s %s", data.get("action"), data.get("entry_id"))
    return data

# --- Handler ---
def lambda_handler(event, context):
    method = request_method(event)
    if method == "OPTIONS":
        return options_response(ALLOWED)
    if method != "POST":
        return method_not_allowed(ALLOWED)

    try:
        body = parse_json_body(event)
    except ValueError:
        return error_response(400, "Invalid JSON body", "Request body must be a JSON object", extra_allowed=ALLOWED)

    event_type = body.get("event") or body.get("event_type")
    logger.info("[webhook] received event=%s event_id=%s", event_type, body.get("event_id"))

    config = load_config()
    try:
        attributes = normalize_event(body)
        payload = build_save_payload(attributes)
        logger.debug("[webhook] save payload %s", json.dumps(payload))
        result = relay_to_save_endpoint(payload, config.save_endpoint_url)
    except IntakeError as e:
        if e.status_code >= 500:
            logger.exception("[webhook] processing failed")
            label = "Webhook processing failed"
        else:
            logger.warning("[webhook] rejected: %s", e.message)
            label = e.label
        return error_response(
            e.status_code, label, e.message,
            include_details=config.is_development and e.status_code >= 500,
            extra_allowed=ALLOWED,
        )
    except Exception as e:
        logger.exception("[webhook] unexpected error")
        return error_response(500, "Webhook processing failed", str(e),
                              include_details=config.is_development, extra_allowed=ALLOWED)

    return json_response(200, {
        "success": True,
        "message": "Webhook processed successfully",
        "event_type": event_type,
        "notion_action": result.get("action"),
        "notion_entry_id": result.get("entry_id"),
    }, ALLOWED)
