import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

DEFAULT_GROUP_PAGE_ID = "2e110ef8d70d80aa872fc31246ca1f85"  # "ECF - DM" group
DEFAULT_NOTION_VERSION = "2022-06-28"

_config_cache = None


@dataclass(frozen=True)
class NotionConfig:
    api_key: Optional[str]
    database_id: Optional[str]
    group_page_id: str = DEFAULT_GROUP_PAGE_ID
    notion_version: str = DEFAULT_NOTION_VERSION
    save_endpoint_url: Optional[str] = None
    app_env: str = "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def _secret_api_key(secret_name: str) -> Optional[str]:
    """Read the Notion token from Secrets Manager; None if unreadable."""
    try:
        sec = boto3.client("secretsmanager").get_secret_value(SecretId=secret_name)
    except (ClientError, BotoCoreError) as e:
        logger.error("[config] failed to read secret %s: %s", secret_name, e)
        return None

    val = sec.get("SecretString") or "{}"
    try:
        data = json.loads(val)
    except ValueError:
        # plain-string secret holds the token itself
        return val.strip() or None
    if not isinstance(data, dict):
        return None
    return data.get("api_key") or data.get("token") or data.get("NOTION_API_KEY")


def load_config(refresh: bool = False) -> NotionConfig:
    """Build the process-wide config from the environment (cached across invokes)."""
    global _config_cache
    if _config_cache is not None and not refresh:
        return _config_cache

    api_key = os.getenv("NOTION_API_KEY")
    secret_name = os.getenv("NOTION_SECRET_NAME")
    if not api_key and secret_name:
        api_key = _secret_api_key(secret_name)

    _config_cache = NotionConfig(
        api_key=api_key,
        database_id=os.getenv("NOTION_DATABASE_ID"),
        group_page_id=os.getenv("NOTION_GROUP_PAGE_ID") or DEFAULT_GROUP_PAGE_ID,
        notion_version=os.getenv("NOTION_VERSION") or DEFAULT_NOTION_VERSION,
        save_endpoint_url=os.getenv("SAVE_ENDPOINT_URL"),
        app_env=os.getenv("APP_ENV", "production").lower(),
    )
    return _config_cache


def reset_config():
    global _config_cache
    _config_cache = None
