import logging

from common.config import load_config
from notion_sync.notion_client import get_client

logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    config = load_config()
    client = get_client(config)

    resp = client.query_database(config.database_id, page_size=1)
    results = resp.get("results") or []
    logger.info("[smoketest] database %s reachable, %d result(s)", config.database_id, len(results))
    return {
        "database_id": config.database_id,
        "results": len(results),
        "has_more": bool(resp.get("has_more")),
    }
