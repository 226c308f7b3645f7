"""Citation verification: trust allow-list, future-date guard, and concurrent reachability probes."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import httpx

from core import CitationCheck

from .sanitize import hostname, is_valid_http_url, path_segments, strip_url_tail_noise


logger = logging.getLogger(__name__)

_YEAR_SEGMENT_RE = re.compile(r"^\d{4}$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_trusted(url: str, trusted_domains: Sequence[str]) -> bool:
    """Host contains an allow-list entry; entries with a path must appear in the full URL."""
    host = hostname(url)
    if not host:
        return False
    lowered = strip_url_tail_noise(url).lower()
    for entry in trusted_domains:
        domain = str(entry or "").strip().lower()
        if not domain:
            continue
        if "/" in domain:
            if domain in lowered:
                return True
        elif domain in host:
            return True
    return False


def is_future_dated(url: str, now: datetime) -> bool:
    threshold = now.year + 1
    for segment in path_segments(url):
        if _YEAR_SEGMENT_RE.match(segment) and int(segment) >= threshold:
            return True
    return False


def validity_map(checks: Dict[str, CitationCheck]) -> Dict[str, bool]:
    return {url: check.valid for url, check in checks.items()}


class CitationVerifier:
    """
    Classifies citation URLs for one generation cycle.

    Only trusted, non-future-dated URLs are probed. Every probe is bounded by
    its own timeout, and a failing probe only affects its own URL.
    """

    def __init__(
        self,
        trusted_domains: Iterable[str],
        probe_timeout: float = 5.0,
        user_agent: str = "WeeklyDigestBot/1.0",
        clock: Optional[Callable[[], datetime]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.trusted_domains: List[str] = [str(item).strip().lower() for item in trusted_domains if str(item).strip()]
        self.probe_timeout = float(probe_timeout)
        self.user_agent = user_agent
        self.clock = clock or _utc_now
        self._client = client

    @classmethod
    def from_settings(cls, settings=None, clock=None, client=None) -> "CitationVerifier":
        if settings is None:
            from config import get_settings
            settings = get_settings()
        verifier = settings.verifier
        return cls(
            trusted_domains=verifier.trusted_domains,
            probe_timeout=verifier.probe_timeout,
            user_agent=verifier.user_agent,
            clock=clock,
            client=client,
        )

    def classify(self, url: str, now: Optional[datetime] = None) -> CitationCheck:
        """Trust and freshness only, no network."""
        now = now or self.clock()
        return CitationCheck(
            url=url,
            trusted=is_trusted(url, self.trusted_domains),
            future_dated=is_future_dated(url, now),
        )

    async def _probe(self, client: httpx.AsyncClient, check: CitationCheck) -> CitationCheck:
        url = strip_url_tail_noise(check.url)
        if not is_valid_http_url(url):
            return check.model_copy(update={"error": "invalid url"})
        try:
            response = await asyncio.wait_for(client.head(url), timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            logger.debug("probe_failed url=%s error=timeout", url)
            return check.model_copy(update={"error": "timeout"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("probe_failed url=%s error=%s", url, exc)
            return check.model_copy(update={"error": f"{type(exc).__name__}: {exc}"})

        status = response.status_code
        return check.model_copy(update={"status_code": status, "accessible": 200 <= status < 400})

    async def _probe_all(self, client: httpx.AsyncClient, checks: List[CitationCheck]) -> List[CitationCheck]:
        return list(await asyncio.gather(*(self._probe(client, check) for check in checks)))

    async def verify(self, urls: Iterable[str]) -> Dict[str, CitationCheck]:
        """
        Verify every distinct URL.

        Returns a map keyed by the URL exactly as given.
        """
        now = self.clock()
        ordered = list(dict.fromkeys(str(url) for url in urls if url))
        results: Dict[str, CitationCheck] = {url: self.classify(url, now) for url in ordered}
        to_probe = [check for check in results.values() if check.trusted and not check.future_dated]

        if to_probe:
            if self._client is not None:
                probed = await self._probe_all(self._client, to_probe)
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.probe_timeout),
                    follow_redirects=False,
                    headers={"User-Agent": self.user_agent},
                ) as client:
                    probed = await self._probe_all(client, to_probe)
            for check in probed:
                results[check.url] = check

        valid = sum(1 for check in results.values() if check.valid)
        logger.info(
            "verify_done urls=%s probed=%s valid=%s untrusted=%s future_dated=%s",
            len(results),
            len(to_probe),
            valid,
            sum(1 for check in results.values() if not check.trusted),
            sum(1 for check in results.values() if check.future_dated),
        )
        return results
