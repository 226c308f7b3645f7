from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from digest.verifier import CitationVerifier, is_future_dated, is_trusted, validity_map


NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
TRUSTED = ["techcrunch.com", "arxiv.org", "nvidia.com/blog", "openai.com"]


def _verifier(handler, **kwargs) -> CitationVerifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CitationVerifier(TRUSTED, clock=lambda: NOW, client=client, **kwargs)


def test_trusted_host_matching_is_case_insensitive_substring() -> None:
    assert is_trusted("https://TechCrunch.com/2026/10/01/story", TRUSTED) is True
    assert is_trusted("https://www.arxiv.org/abs/2410.00001", TRUSTED) is True
    assert is_trusted("https://example.com/techcrunch", TRUSTED) is False


def test_sub_path_entries_must_match_full_url() -> None:
    assert is_trusted("https://nvidia.com/blog/new-gpu", TRUSTED) is True
    assert is_trusted("https://nvidia.com/shop/new-gpu", TRUSTED) is False


def test_future_dated_uses_next_calendar_year() -> None:
    assert is_future_dated("https://techcrunch.com/2027/01/02/story", NOW) is True
    assert is_future_dated("https://techcrunch.com/2031/story", NOW) is True
    assert is_future_dated("https://techcrunch.com/2026/10/01/story", NOW) is False
    assert is_future_dated("https://arxiv.org/abs/2710.12345", NOW) is False


@pytest.mark.asyncio
async def test_future_dated_url_is_invalid_regardless_of_trust_and_not_probed() -> None:
    probed = []

    def handler(request: httpx.Request) -> httpx.Response:
        probed.append(str(request.url))
        return httpx.Response(200)

    url = "https://techcrunch.com/2027/03/01/launch"
    checks = await _verifier(handler).verify([url])

    assert checks[url].future_dated is True
    assert checks[url].trusted is True
    assert checks[url].valid is False
    assert probed == []


@pytest.mark.asyncio
async def test_untrusted_url_is_never_probed() -> None:
    probed = []

    def handler(request: httpx.Request) -> httpx.Response:
        probed.append(str(request.url))
        return httpx.Response(200)

    url = "https://random-blog.example/post"
    checks = await _verifier(handler).verify([url])

    assert checks[url].trusted is False
    assert checks[url].accessible is False
    assert probed == []


@pytest.mark.asyncio
async def test_unreachable_trusted_url_is_invalid_only_by_reachability() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "down" in request.url.path:
            raise httpx.ConnectError("connection refused", request=request)
        if "missing" in request.url.path:
            return httpx.Response(404)
        return httpx.Response(200)

    ok = "https://techcrunch.com/2026/10/01/ok"
    down = "https://techcrunch.com/2026/10/01/down"
    missing = "https://openai.com/missing"
    checks = await _verifier(handler).verify([ok, down, missing])

    assert checks[ok].valid is True
    assert checks[ok].status_code == 200
    for url in (down, missing):
        assert checks[url].trusted is True
        assert checks[url].future_dated is False
        assert checks[url].accessible is False
        assert checks[url].valid is False
    assert checks[missing].status_code == 404
    assert "ConnectError" in (checks[down].error or "")


@pytest.mark.asyncio
async def test_probe_uses_head_and_does_not_follow_redirects() -> None:
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(301, headers={"Location": "https://techcrunch.com/elsewhere"})

    url = "https://techcrunch.com/2026/moved"
    checks = await _verifier(handler).verify([url])

    assert methods == ["HEAD"]
    assert checks[url].status_code == 301
    assert checks[url].valid is True


@pytest.mark.asyncio
async def test_slow_probe_times_out_without_blocking_siblings() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if "slow" in request.url.path:
            await asyncio.sleep(1.0)
        return httpx.Response(200)

    slow = "https://arxiv.org/abs/slow"
    fast = "https://arxiv.org/abs/fast"
    checks = await _verifier(handler, probe_timeout=0.05).verify([slow, fast])

    assert checks[slow].valid is False
    assert checks[slow].error == "timeout"
    assert checks[fast].valid is True


@pytest.mark.asyncio
async def test_validity_map_covers_every_distinct_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    urls = ["https://arxiv.org/abs/1", "https://arxiv.org/abs/1", "not a url", "https://evil.example/x"]
    checks = await _verifier(handler).verify(urls)

    assert validity_map(checks) == {
        "https://arxiv.org/abs/1": True,
        "not a url": False,
        "https://evil.example/x": False,
    }
