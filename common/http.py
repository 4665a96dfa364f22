"""
API Gateway plumbing shared by the intake Lambdas: CORS, method checks,
body parsing and JSON responses.
"""
import base64
import json
import logging
import os
import traceback

BASE_ALLOWED_HEADERS = ("Content-Type",)


def configure_logging():
    # Lambda installs its own handler on the root logger; only the level is ours
    logging.getLogger().setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def cors_headers(extra_allowed=()):
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": ", ".join(BASE_ALLOWED_HEADERS + tuple(extra_allowed)),
    }


def request_method(event):
    """HTTP method from a v1 (REST) or v2 (HTTP API) proxy event."""
    method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method")
    return (method or "").upper()


def parse_json_body(event):
    """
    Decode the request body into a dict.

    Raises:
        ValueError: body is not a JSON object
    """
    body = event.get("body")
    if body is None:
        return {}
    if isinstance(body, dict):
        return body

    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    payload = json.loads(body or "{}")
    if not isinstance(payload, dict):
        raise ValueError("JSON body must be an object")
    return payload


def json_response(status_code, payload, extra_allowed=()):
    headers = {"Content-Type": "application/json", **cors_headers(extra_allowed)}
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(payload),
    }


def options_response(extra_allowed=()):
    return {"statusCode": 200, "headers": cors_headers(extra_allowed), "body": ""}


def method_not_allowed(extra_allowed=()):
    return json_response(
        405,
        {"success": False, "error": "Method not allowed", "message": "Use POST."},
        extra_allowed,
    )


def error_response(status_code, label, message, include_details=False, extra_allowed=()):
    """Error body; traceback only goes out when include_details is set (development)."""
    payload = {"success": False, "error": label, "message": message}
    if include_details:
        payload["details"] = traceback.format_exc()
    return json_response(status_code, payload, extra_allowed)
