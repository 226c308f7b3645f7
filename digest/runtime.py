"""One generation cycle: both backends, verification, social scoring, merge, assemble, persist."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from core import BackendId, BranchOutcome, CycleReport, Digest, ParseResult, Topic
from sources import (
    BaseResearchClient,
    DeepResearchClient,
    SocialSearchClient,
    SocialSignalProvider,
    get_social_provider,
)
from sources.prompts import build_deep_research_prompt, build_social_search_prompt
from storage import BaseDigestStore
from utils.exceptions import (
    BackendError,
    EmptyOrMalformedResponseError,
    MissingCredentialError,
    PersistenceError,
    StorageError,
)

from .assembler import assemble, publish
from .merger import merge_and_rank
from .parser import DEFAULT_LEAD_SUMMARY, parse_response
from .social import apply_social_scores
from .verifier import CitationVerifier, validity_map


logger = logging.getLogger(__name__)

SNAPSHOT_KEY_PREFIX = "backend:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_key(backend: BackendId) -> str:
    return f"{SNAPSHOT_KEY_PREFIX}{backend.value}"


@dataclass
class BranchResult:
    outcome: BranchOutcome
    parsed: Optional[ParseResult] = None

    @property
    def topics(self) -> List[Topic]:
        return list(self.parsed.topics) if self.parsed else []


class CycleFailed(RuntimeError):
    """A generation cycle that must not publish."""


class DigestRuntime:
    """Runs generation cycles against injected backends, verifier, social provider and store."""

    def __init__(
        self,
        *,
        deep_research: BaseResearchClient,
        social_search: BaseResearchClient,
        verifier: CitationVerifier,
        social_provider: SocialSignalProvider,
        store: BaseDigestStore,
        top_n: int = 5,
        window_days: int = 7,
        related_limit: int = 3,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.deep_research = deep_research
        self.social_search = social_search
        self.verifier = verifier
        self.social_provider = social_provider
        self.store = store
        self.top_n = top_n
        self.window_days = window_days
        self.related_limit = related_limit
        self.clock = clock or _utcnow

    @classmethod
    def from_settings(cls, settings=None, *, store: BaseDigestStore, social_provider: Optional[SocialSignalProvider] = None) -> "DigestRuntime":
        if settings is None:
            from config import get_settings
            settings = get_settings()

        social_client = SocialSearchClient.from_settings(settings)
        return cls(
            deep_research=DeepResearchClient.from_settings(settings),
            social_search=social_client,
            verifier=CitationVerifier.from_settings(settings),
            social_provider=social_provider or get_social_provider(settings, client=social_client),
            store=store,
            top_n=settings.digest.top_n,
            window_days=settings.digest.window_days,
            related_limit=settings.social.related_limit,
        )

    async def aclose(self) -> None:
        await self.deep_research.aclose()
        await self.social_search.aclose()

    async def run_cycle(self, now: Optional[datetime] = None) -> CycleReport:
        """Execute one cycle. Failures are reported, never raised."""
        now = now or self.clock()
        report = CycleReport(cycle_id=uuid.uuid4().hex[:12], started_at=now)
        logger.info("cycle_start cycle_id=%s top_n=%s", report.cycle_id, self.top_n)

        try:
            report.digest = await self._execute_cycle(report, now)
            report.status = "published"
            logger.info("cycle_published cycle_id=%s topics=%s", report.cycle_id, len(report.digest.topics))
        except CycleFailed as exc:
            report.status = "failed"
            report.errors.append(str(exc))
            logger.error("cycle_failed cycle_id=%s reason=%s", report.cycle_id, exc)
        except Exception as exc:
            report.status = "failed"
            report.errors.append(f"unexpected error: {exc}")
            logger.exception("cycle_failed cycle_id=%s error=%s", report.cycle_id, exc)

        report.finished_at = self.clock()
        return report

    async def _execute_cycle(self, report: CycleReport, now: datetime) -> Digest:
        branch_a, branch_b = await asyncio.gather(
            self._run_branch(self.deep_research, build_deep_research_prompt(now, self.window_days, self.top_n), now),
            self._run_branch(self.social_search, build_social_search_prompt(now, self.window_days, self.top_n), now),
        )
        report.branches = [branch_a.outcome, branch_b.outcome]
        for branch in (branch_a, branch_b):
            if branch.outcome.error:
                report.errors.append(f"{branch.outcome.backend.value}: {branch.outcome.error}")

        live = [branch for branch in (branch_a, branch_b) if branch.outcome.status == "live"]
        if not live:
            raise CycleFailed("no backend returned live content; previous digest stays published")

        topics_a, topics_b = branch_a.topics, branch_b.topics
        urls = [url for topic in topics_a + topics_b for url in topic.citation_urls()]
        trending = branch_b.parsed.trending_hashtags if branch_b.parsed else []

        checks, pool = await asyncio.gather(
            self.verifier.verify(urls),
            self.social_provider.fetch_pool(topics_a + topics_b, trending),
        )
        validity = validity_map(checks)
        report.verified_urls = len(validity)
        report.valid_urls = sum(1 for ok in validity.values() if ok)

        ranked = merge_and_rank(
            apply_social_scores(topics_a, pool, self.related_limit),
            apply_social_scores(topics_b, pool, self.related_limit),
            validity,
            self.top_n,
        )
        if not ranked:
            raise CycleFailed("no topic kept a valid citation")

        lead = next((branch.parsed.summary_text for branch in live if branch.parsed), DEFAULT_LEAD_SUMMARY)
        digest = assemble(ranked, lead, now, self.window_days)
        try:
            await asyncio.to_thread(publish, digest, self.store)
        except (PersistenceError, StorageError, OSError) as exc:
            raise CycleFailed(f"persistence failed: {exc}") from exc
        return digest

    async def _run_branch(self, client: BaseResearchClient, prompt: str, now: datetime) -> BranchResult:
        backend = client.backend_id
        try:
            raw = await client.fetch(prompt)
            parsed = parse_response(raw, backend)
            if not parsed.topics:
                raise EmptyOrMalformedResponseError(
                    f"{backend.value} response yielded no topics",
                    backend=backend.value,
                    block_errors=parsed.errors,
                )
        except (MissingCredentialError, BackendError, EmptyOrMalformedResponseError) as exc:
            return await self._fallback_branch(backend, exc)

        await self._write_snapshot(parsed, raw, now)
        logger.info("branch_live backend=%s topics=%s malformed=%s", backend.value, len(parsed.topics), len(parsed.errors))
        return BranchResult(
            outcome=BranchOutcome(backend=backend, status="live", topic_count=len(parsed.topics)),
            parsed=parsed,
        )

    async def _fallback_branch(self, backend: BackendId, exc: Exception) -> BranchResult:
        logger.warning("branch_fallback backend=%s error_type=%s error=%s", backend.value, type(exc).__name__, exc)
        snapshot = await self._read_snapshot(backend)
        if snapshot is None or not snapshot.topics:
            return BranchResult(
                outcome=BranchOutcome(backend=backend, status="failed", error=str(exc)),
            )
        parsed = ParseResult(backend=backend, topics=list(snapshot.topics), summary_text=snapshot.summary)
        logger.info("branch_cached backend=%s topics=%s snapshot_at=%s", backend.value, len(parsed.topics), snapshot.generated_at.isoformat())
        return BranchResult(
            outcome=BranchOutcome(backend=backend, status="cached", topic_count=len(parsed.topics), error=str(exc)),
            parsed=parsed,
        )

    async def _write_snapshot(self, parsed: ParseResult, raw: str, now: datetime) -> None:
        snapshot = Digest(
            title=f"{parsed.backend.value} snapshot",
            date=now.date().isoformat(),
            generated_at=now,
            summary=parsed.summary_text,
            topics=parsed.topics,
            raw_html=raw,
            published_at=now,
        )
        try:
            await asyncio.to_thread(self.store.write, snapshot, snapshot_key(parsed.backend), False)
        except (StorageError, OSError) as exc:
            logger.warning("snapshot_write_failed backend=%s error=%s", parsed.backend.value, exc)

    async def _read_snapshot(self, backend: BackendId) -> Optional[Digest]:
        try:
            return await asyncio.to_thread(self.store.read, snapshot_key(backend))
        except (StorageError, OSError) as exc:
            logger.warning("snapshot_read_failed backend=%s error=%s", backend.value, exc)
            return None
