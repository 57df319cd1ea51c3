"""Notion page fetcher — Notion REST API via httpx."""

from __future__ import annotations

import logging
import re

import httpx

from notework.config import settings
from notework.errors import FetchError

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

_PAGE_ID = re.compile(r"([0-9a-f]{32})|([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})")

_PREFIXES = {
    "heading_1": "# ",
    "heading_2": "## ",
    "heading_3": "### ",
    "bulleted_list_item": "- ",
    "numbered_list_item": "1. ",
    "to_do": "- [ ] ",
    "quote": "> ",
}


def is_notion_url(url: str) -> bool:
    return "notion.so" in url or "notion.site" in url


def page_id_from_url(url: str) -> str:
    """Return the page id embedded at the end of a Notion URL."""
    path = url.split("?", 1)[0].rstrip("/").lower()
    matches = _PAGE_ID.findall(path)
    if not matches:
        raise FetchError(f"No Notion page id in URL: {url}", {"url": url})
    compact, dashed = matches[-1]
    return compact or dashed.replace("-", "")


class NotionFetcher:
    """Fetches the text of Notion pages. ``connect()`` must succeed first."""

    def __init__(
        self,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token if token is not None else settings.notion_token
        self._transport = transport
        self.connected = False

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=NOTION_API_URL,
            timeout=settings.request_timeout,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Notion-Version": NOTION_VERSION,
            },
            transport=self._transport,
        )

    async def connect(self) -> None:
        """Verify the integration token against the Notion API."""
        self.connected = False
        if not self.token:
            raise FetchError("Set the Notion token first")
        try:
            async with self._client() as client:
                response = await client.get("/users/me")
        except httpx.HTTPError as exc:
            raise FetchError(f"Notion connection failed: {exc}") from exc
        if response.is_error:
            raise FetchError(f"Notion connection failed: HTTP {response.status_code}")
        self.connected = True
        logger.info("Connected to Notion")

    def disconnect(self) -> None:
        self.connected = False

    async def fetch(self, url: str) -> str:
        if not self.connected:
            raise FetchError("Connect to Notion first", {"url": url})

        page_id = page_id_from_url(url)
        lines: list[str] = []
        cursor: str | None = None
        try:
            async with self._client() as client:
                while True:
                    params = {"page_size": 100}
                    if cursor:
                        params["start_cursor"] = cursor
                    response = await client.get(f"/blocks/{page_id}/children", params=params)
                    if response.is_error:
                        raise FetchError(
                            f"Notion error: HTTP {response.status_code}", {"url": url}
                        )
                    data = response.json()
                    lines.extend(_block_text(block) for block in data.get("results", []))
                    if not data.get("has_more"):
                        break
                    cursor = data.get("next_cursor")
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to fetch Notion page: {exc}", {"url": url}) from exc

        text = "\n".join(line for line in lines if line).strip()
        logger.info("Fetched Notion page %s (%d chars)", page_id, len(text))
        return text


def _block_text(block: dict) -> str:
    kind = block.get("type", "")
    body = block.get(kind) or {}
    text = "".join(rt.get("plain_text", "") for rt in body.get("rich_text", []))
    if not text:
        return ""
    return _PREFIXES.get(kind, "") + text
