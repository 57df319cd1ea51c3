"""URL resolver — picks the Notion or web fetcher for a URL."""

from __future__ import annotations

from notework.fetchers.notion import NotionFetcher, is_notion_url
from notework.fetchers.web import WebFetcher


class UrlResolver:
    def __init__(
        self,
        web: WebFetcher | None = None,
        notion: NotionFetcher | None = None,
    ) -> None:
        self.web = web or WebFetcher()
        self.notion = notion or NotionFetcher()

    @property
    def notion_connected(self) -> bool:
        return self.notion.connected

    async def resolve(self, url: str) -> str:
        if is_notion_url(url):
            return await self.notion.fetch(url)
        return await self.web.fetch(url)
