import json
import os
import sys

import pytest

# Repo root on the path so the Lambda packages import as they do when deployed
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from common.config import NotionConfig, reset_config  # noqa: E402
from common.errors import NotionError  # noqa: E402
from notion_sync.notion_client import reset_client  # noqa: E402

ENV_KEYS = (
    "NOTION_API_KEY", "NOTION_SECRET_NAME", "NOTION_DATABASE_ID", "NOTION_GROUP_PAGE_ID",
    "NOTION_VERSION", "SAVE_ENDPOINT_URL", "APP_ENV",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("NOTION_API_KEY", "secret_test")
    monkeypatch.setenv("NOTION_DATABASE_ID", "db-123")
    reset_config()
    reset_client()
    yield
    reset_config()
    reset_client()


class FakeNotionClient:
    """Records calls; query results or a query failure are configurable."""

    def __init__(self, results=None, query_error=None, write_error=None):
        self.results = results or []
        self.query_error = query_error
        self.write_error = write_error
        self.queries = []
        self.created = []
        self.updated = []

    def query_database(self, database_id, filter=None, page_size=None):
        self.queries.append((database_id, filter))
        if self.query_error:
            raise self.query_error
        return {"results": self.results, "has_more": False}

    def create_page(self, database_id, properties):
        if self.write_error:
            raise self.write_error
        self.created.append((database_id, properties))
        return {"id": "new-page"}

    def update_page(self, page_id, properties):
        if self.write_error:
            raise self.write_error
        self.updated.append((page_id, properties))
        return {"id": page_id}

    @property
    def calls(self):
        return len(self.queries) + len(self.created) + len(self.updated)


def notion_page(page_id, email=None, phone=None):
    return {
        "id": page_id,
        "properties": {
            "Email": {"email": email},
            "Phone": {"phone_number": phone},
        },
    }


@pytest.fixture
def config():
    return NotionConfig(api_key="secret_test", database_id="db-123", group_page_id="group-1")


@pytest.fixture
def fake_client():
    return FakeNotionClient()


@pytest.fixture
def notion_error():
    return NotionError("service unavailable", upstream_status=503)


def api_event(body, method="POST"):
    """API Gateway HTTP API (v2) proxy event."""
    return {
        "requestContext": {"http": {"method": method}},
        "body": body if body is None or isinstance(body, str) else json.dumps(body),
    }
