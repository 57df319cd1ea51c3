"""Web page fetcher — httpx download plus BeautifulSoup text extraction."""

from __future__ import annotations

import logging

import httpx
from bs4 import BeautifulSoup

from notework.config import settings
from notework.errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

# Tried in order; the first selector with any text wins.
CONTENT_SELECTORS = [
    "article",
    "main",
    "[role='main']",
    ".content",
    ".post-content",
    ".article-content",
    ".entry-content",
    "#content",
]


class WebFetcher:
    """Resolves a generic URL to readable text."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=settings.request_timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to fetch page: {exc}", {"url": url}) from exc

        if response.is_error:
            raise FetchError(f"HTTP error: {response.status_code}", {"url": url})

        text = extract_text(response.text)
        logger.info("Fetched %s (%d chars)", url, len(text))
        return text


def extract_text(html: str) -> str:
    """Extract the title and main content region of an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    parts: list[str] = []
    if soup.title and soup.title.get_text(strip=True):
        parts.append(f"Title: {soup.title.get_text(strip=True)}")
        parts.append("")

    found = False
    for selector in CONTENT_SELECTORS:
        for element in soup.select(selector):
            text = _element_text(element)
            if text:
                parts.append(text)
                found = True
        if found:
            break

    if not found and soup.body:
        parts.append(_element_text(soup.body))

    return "\n".join(parts).strip()


def _element_text(element) -> str:
    return " ".join(element.stripped_strings)
