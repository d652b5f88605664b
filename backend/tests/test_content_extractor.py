import httpx
import pytest

from enhancer.config import Settings
from enhancer.services.crawler import ContentExtractor, ExtractedContent
from enhancer.services.crawler.constants import BLOCKING_PHRASES


def _settings(**overrides):
    values = dict(
        pre_request_delay_min_seconds=0,
        pre_request_delay_max_seconds=0,
        inter_request_delay_min_seconds=0,
        inter_request_delay_max_seconds=0,
        min_article_length=500,
        body_fallback_min_words=200,
    )
    values.update(overrides)
    return Settings(**values)


def _prose(words: int) -> str:
    return " ".join(f"word{i}" for i in range(words))


ARTICLE_HTML = f"""
<html>
  <head>
    <title>Patient Triage With Chatbots</title>
    <meta name="description" content="How clinics use chatbots for triage.">
  </head>
  <body>
    <nav>Home About Pricing Contact</nav>
    <article>
      <h2>Why triage matters</h2>
      <p>{_prose(60)}</p>
      <ul><li>Faster answers</li><li>Less waiting</li></ul>
      <p>{_prose(60)}</p>
      <script>trackVisitor();</script>
      <div class="social-share">Share on Twitter</div>
    </article>
    <footer>Copyright footer text</footer>
  </body>
</html>
"""


def _extractor(handler, **overrides):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ContentExtractor(client, settings=_settings(**overrides)), client


def test_parse_html_prefers_article_region_and_strips_noise():
    extractor = ContentExtractor(httpx.AsyncClient(), settings=_settings())

    result = extractor.parse_html("https://example.com/triage", ARTICLE_HTML)

    assert result.success is True
    assert result.title == "Patient Triage With Chatbots"
    assert result.description == "How clinics use chatbots for triage."
    assert "Why triage matters" in result.body
    assert "Home About Pricing" not in result.body
    assert "trackVisitor" not in result.body
    assert "Share on Twitter" not in result.body
    assert "Copyright footer" not in result.body
    assert "  " not in result.body
    assert result.structure.headings == 1
    assert result.structure.lists == 1
    assert result.structure.paragraphs == 2


def test_parse_html_title_falls_back_to_heading_then_meta():
    extractor = ContentExtractor(httpx.AsyncClient(), settings=_settings(min_article_length=10))

    from_heading = extractor.parse_html(
        "https://a.test", f"<html><body><h1>Heading Title</h1><main><p>{_prose(40)}</p></main></body></html>"
    )
    from_meta = extractor.parse_html(
        "https://b.test",
        f'<html><head><meta property="og:title" content="Social Title"></head>'
        f"<body><main><p>{_prose(40)}</p></main></body></html>",
    )

    assert from_heading.title == "Heading Title"
    assert from_meta.title == "Social Title"


def test_parse_html_body_fallback_requires_enough_words():
    extractor = ContentExtractor(httpx.AsyncClient(), settings=_settings(min_article_length=10))

    shell = extractor.parse_html("https://shell.test", f"<html><body><div>{_prose(50)}</div></body></html>")
    page = extractor.parse_html("https://page.test", f"<html><body><div>{_prose(250)}</div></body></html>")

    assert shell.success is False
    assert shell.failure_reason == "no_content_region"
    assert page.success is True
    assert page.word_count == 250


def test_parse_html_rejects_short_and_blocked_pages():
    extractor = ContentExtractor(httpx.AsyncClient(), settings=_settings())

    short = extractor.parse_html("https://short.test", "<html><body><article><p>Too short.</p></article></body></html>")
    blocked = extractor.parse_html(
        "https://blocked.test",
        f"<html><body><article><p>{_prose(100)} Please complete the CAPTCHA to continue.</p></article></body></html>",
    )

    assert short.success is False
    assert short.failure_reason.startswith("content_too_short")
    assert blocked.success is False
    assert blocked.failure_reason == "blocking_phrase:captcha"


def _assert_success_invariant(result: ExtractedContent, min_length: int) -> None:
    if result.success:
        assert len(result.body) >= min_length
        lowered = result.body.lower()
        assert not any(phrase in lowered for phrase in BLOCKING_PHRASES)


@pytest.mark.asyncio
async def test_extract_retries_once_with_alternate_identity():
    seen_agents = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_agents.append(request.headers["User-Agent"])
        if len(seen_agents) == 1:
            return httpx.Response(403, text="nope")
        return httpx.Response(200, text=ARTICLE_HTML)

    extractor, client = _extractor(handler)
    async with client:
        result = await extractor.extract("https://example.com/triage")

    assert result.success is True
    assert len(seen_agents) == 2
    assert seen_agents[0] != seen_agents[1]
    _assert_success_invariant(result, 500)


@pytest.mark.asyncio
async def test_extract_never_raises_on_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    extractor, client = _extractor(handler)
    async with client:
        result = await extractor.extract("https://down.test/post")

    assert result.success is False
    assert result.url == "https://down.test/post"
    assert "timed out" in result.failure_reason


@pytest.mark.asyncio
async def test_extract_many_keeps_only_usable_results():
    pages = {
        "https://good.test/a": ARTICLE_HTML,
        "https://short.test/b": "<html><body><article><p>Tiny.</p></article></body></html>",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        html = pages.get(str(request.url))
        if html is None:
            return httpx.Response(404, text="missing")
        return httpx.Response(200, text=html)

    messages = []
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    extractor = ContentExtractor(client, settings=_settings(), progress_callback=messages.append)
    async with client:
        results = await extractor.extract_many(list(pages) + ["https://gone.test/c"])

    assert [r.url for r in results] == ["https://good.test/a"]
    assert messages and messages[0] == "Extracting 3 articles..."


@pytest.mark.asyncio
async def test_extract_many_returns_empty_list_when_everything_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="error")

    extractor, client = _extractor(handler)
    async with client:
        results = await extractor.extract_many(["https://x.test/1", "https://y.test/2"])

    assert results == []
