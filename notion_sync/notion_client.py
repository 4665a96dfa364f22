import logging

import requests

from common.config import load_config
from common.errors import ConfigurationError, NotionError

logger = logging.getLogger(__name__)

NOTION_BASE = "https://api.notion.com/v1"

_client_cache = None


class NotionClient:
    """Minimal Notion REST client: database query, page create, page update."""

    def __init__(self, api_key, notion_version, session=None, base_url=NOTION_BASE):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        })

    def _request(self, method, path, payload=None):
        url = f"{self.base_url}{path}"
        # no explicit timeout: bounded by the Lambda timeout
        try:
            resp = self.session.request(method, url, json=payload)
        except requests.RequestException as e:
            raise NotionError(f"Notion {method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message")
            except (ValueError, AttributeError):
                detail = None
            message = detail or resp.text[:300] or f"HTTP {resp.status_code}"
            raise NotionError(message, upstream_status=resp.status_code)

        if not resp.text:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise NotionError(f"Notion {method} {path} returned a non-JSON body", upstream_status=resp.status_code) from e

    def query_database(self, database_id, filter=None, page_size=None):
        payload = {}
        if filter:
            payload["filter"] = filter
        if page_size:
            payload["page_size"] = page_size
        return self._request("POST", f"/databases/{database_id}/query", payload)

    def create_page(self, database_id, properties):
        return self._request("POST", "/pages", {
            "parent": {"database_id": database_id},
            "properties": properties,
        })

    def update_page(self, page_id, properties):
        return self._request("PATCH", f"/pages/{page_id}", {"properties": properties})


def require_database_id(config):
    if not config.database_id:
        raise ConfigurationError("Set NOTION_DATABASE_ID")


def get_client(config=None):
    """Process-wide client, reused across warm invocations."""
    global _client_cache
    config = config or load_config()
    require_database_id(config)
    if _client_cache is not None:
        return _client_cache

    if not config.api_key:
        raise ConfigurationError("Set NOTION_API_KEY or NOTION_SECRET_NAME")
    _client_cache = NotionClient(config.api_key, config.notion_version)
    return _client_cache


def reset_client():
    global _client_cache
    _client_cache = None
