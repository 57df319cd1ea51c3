"""
Tests for content acquisition: web pages, Notion pages and local files.
"""

import httpx
import pytest

from notework.errors import ExtractionError, FetchError
from notework.fetchers.files import IMAGE_NOTICE, FileExtractor
from notework.fetchers.notion import NotionFetcher, is_notion_url, page_id_from_url
from notework.fetchers.url_resolver import UrlResolver
from notework.fetchers.web import WebFetcher, extract_text
from notework.models.source import FileType, file_type_for

PAGE_ID = "0123456789abcdef0123456789abcdef"

ARTICLE_HTML = """
<html>
  <head><title> Mitochondria </title><style>p { color: red }</style></head>
  <body>
    <nav>Home | About</nav>
    <article><h1>Powerhouse</h1><p>Mitochondria make ATP.</p><script>track()</script></article>
  </body>
</html>
"""


@pytest.mark.unit
class TestExtractText:
    def test_title_and_article(self):
        text = extract_text(ARTICLE_HTML)

        assert text == "Title: Mitochondria\n\nPowerhouse Mitochondria make ATP."

    def test_falls_back_to_body(self):
        text = extract_text("<html><body><div>Plain page</div></body></html>")

        assert text == "Plain page"

    def test_selector_order(self):
        html = "<body><div class='content'>second</div><main>first</main></body>"

        assert extract_text(html) == "first"


@pytest.mark.unit
class TestNotionUrls:
    def test_is_notion_url(self):
        assert is_notion_url("https://www.notion.so/team/Page-" + PAGE_ID)
        assert is_notion_url("https://acme.notion.site/Page")
        assert not is_notion_url("https://example.com/notion")

    def test_page_id_from_url(self):
        assert page_id_from_url(f"https://www.notion.so/team/My-Page-{PAGE_ID}?pvs=4") == PAGE_ID
        dashed = "01234567-89ab-cdef-0123-456789abcdef"
        assert page_id_from_url(f"https://notion.so/{dashed}") == PAGE_ID

    def test_missing_page_id(self):
        with pytest.raises(FetchError):
            page_id_from_url("https://www.notion.so/team/Page")


@pytest.mark.unit
@pytest.mark.asyncio
class TestWebFetcher:
    async def test_fetch(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=ARTICLE_HTML))

        text = await WebFetcher(transport).fetch("https://example.com")

        assert text.startswith("Title: Mitochondria")

    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="nope"))

        with pytest.raises(FetchError, match="404"):
            await WebFetcher(transport).fetch("https://example.com/missing")


def _notion_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/users/me"):
        return httpx.Response(200, json={"object": "user"})
    if "start_cursor" not in request.url.params:
        return httpx.Response(
            200,
            json={
                "results": [
                    {"type": "heading_1", "heading_1": {"rich_text": [{"plain_text": "Plan"}]}},
                    {"type": "divider", "divider": {}},
                ],
                "has_more": True,
                "next_cursor": "c2",
            },
        )
    return httpx.Response(
        200,
        json={
            "results": [
                {"type": "to_do", "to_do": {"rich_text": [{"plain_text": "Write"}]}},
                {"type": "paragraph", "paragraph": {"rich_text": [{"plain_text": "Done."}]}},
            ],
            "has_more": False,
        },
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestNotionFetcher:
    async def test_fetch_requires_connect(self):
        fetcher = NotionFetcher(token="secret", transport=httpx.MockTransport(_notion_handler))

        with pytest.raises(FetchError):
            await fetcher.fetch(f"https://notion.so/{PAGE_ID}")

    async def test_connect_without_token(self):
        with pytest.raises(FetchError):
            await NotionFetcher(token="").connect()

    async def test_fetch_paginates(self):
        fetcher = NotionFetcher(token="secret", transport=httpx.MockTransport(_notion_handler))
        await fetcher.connect()

        text = await fetcher.fetch(f"https://notion.so/Plan-{PAGE_ID}")

        assert text == "# Plan\n- [ ] Write\nDone."

    async def test_resolver_routes_notion_urls(self):
        notion = NotionFetcher(token="secret", transport=httpx.MockTransport(_notion_handler))
        web = WebFetcher(httpx.MockTransport(lambda request: httpx.Response(200, text=ARTICLE_HTML)))
        resolver = UrlResolver(web=web, notion=notion)
        await notion.connect()

        assert resolver.notion_connected
        assert (await resolver.resolve(f"https://notion.so/{PAGE_ID}")).startswith("# Plan")
        assert (await resolver.resolve("https://example.com")).startswith("Title:")


@pytest.mark.unit
@pytest.mark.asyncio
class TestFileExtractor:
    async def test_text_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("plain notes", encoding="utf-8")

        assert await FileExtractor().extract(str(path), FileType.TEXT) == "plain notes"

    async def test_image_returns_notice(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG")

        assert await FileExtractor().extract(str(path), FileType.IMAGE) == IMAGE_NOTICE

    async def test_legacy_office_notice(self, tmp_path):
        path = tmp_path / "old.doc"
        path.write_bytes(b"\xd0\xcf")

        text = await FileExtractor().extract(str(path), FileType.DOC)

        assert text.startswith("[DOC file]")

    async def test_xlsx(self, tmp_path):
        from openpyxl import Workbook

        path = tmp_path / "data.xlsx"
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Budget"
        sheet.append(["item", "cost"])
        sheet.append(["paper", 3])
        workbook.save(path)

        text = await FileExtractor().extract(str(path), FileType.XLSX)

        assert "## Sheet: Budget" in text
        assert "item\tcost\npaper\t3" in text

    async def test_docx(self, tmp_path):
        from docx import Document

        path = tmp_path / "memo.docx"
        document = Document()
        document.add_paragraph("First paragraph")
        document.add_paragraph("Second paragraph")
        document.save(str(path))

        text = await FileExtractor().extract(str(path), FileType.DOCX)

        assert text == "First paragraph\nSecond paragraph"

    async def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError):
            await FileExtractor().extract(str(tmp_path / "gone.pdf"), FileType.PDF)

    async def test_corrupt_file_wrapped(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not a pdf")

        with pytest.raises(ExtractionError):
            await FileExtractor().extract(str(path), FileType.PDF)


@pytest.mark.unit
class TestFileTypes:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("a.PDF", FileType.PDF),
            ("b.pptx", FileType.PPTX),
            ("c.jpeg", FileType.IMAGE),
            ("d.md", FileType.TEXT),
            ("e.zip", None),
        ],
    )
    def test_file_type_for(self, name, expected):
        assert file_type_for(name) == expected
