"""Bounded-concurrency batch runner for the oracle calls.

Pages are processed concurrently up to a per-tier limit (asyncio
Semaphore) and a requests-per-minute budget (aiolimiter). A failing page
never aborts the batch: it comes back as an update with ``status=error``
while its siblings continue.

The pipeline never mutates project state. It returns ``PageUpdate``
tuples for the caller (the project controller) to apply.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any, NamedTuple

from aiolimiter import AsyncLimiter

from archlens.clusters import normalize_clusters
from archlens.config import WorkbenchConfig
from archlens.entities.vocabulary import VocabularyStore
from archlens.errors import OracleError
from archlens.models import Cluster, Page, PageStatus, Tier
from archlens.oracle.client import GeminiOracleClient

logger = logging.getLogger(__name__)


class PageUpdate(NamedTuple):
    """Field changes for one page produced by an oracle call."""

    page_id: str
    fields: dict[str, Any]

    @property
    def failed(self) -> bool:
        return self.fields.get("status") == PageStatus.ERROR


ProgressCallback = Callable[[PageUpdate], None]


def analysis_fields(analysis: Any) -> dict[str, Any]:
    return {
        "language": analysis.language,
        "production_mode": analysis.production_mode,
        "has_hebrew_handwriting": analysis.has_hebrew_handwriting,
        "status": PageStatus.ANALYZED,
        "error": None,
    }


def transcription_fields(page: Page, result: Any) -> dict[str, Any]:
    """Generated text plus researcher fields, which are only filled when empty."""
    fields: dict[str, Any] = {
        "generated_transcription": result.transcription,
        "generated_translation": result.translation,
        "confidence_score": result.confidence_score,
        "status": PageStatus.DONE,
        "error": None,
    }
    if not page.manual_transcription and result.transcription:
        fields["manual_transcription"] = result.transcription
    if not page.manual_description and result.translation:
        fields["manual_description"] = result.translation
    return fields


class OraclePipeline:
    """Run analysis/transcription over many pages and clustering over all of them.

    Args:
        client: GeminiOracleClient (or any object with the same async methods).
        config: WorkbenchConfig with tier concurrency and RPM settings.
        tier: Resource tier of the project.
    """

    def __init__(
        self,
        client: GeminiOracleClient,
        config: WorkbenchConfig | None = None,
        tier: Tier = Tier.FREE,
    ) -> None:
        self._client = client
        self._config = config or WorkbenchConfig()
        self._tier = Tier(tier)
        self._rate_limiter = AsyncLimiter(self._config.rpm_for(self._tier), 60)

    async def analyze_pages(
        self, pages: Iterable[Page], on_result: ProgressCallback | None = None
    ) -> list[PageUpdate]:
        """Analyze each page; returns one update per page in input order."""

        async def call(page: Page) -> dict[str, Any]:
            return analysis_fields(await self._client.analyze_page(page))

        return await self._run(
            list(pages),
            call,
            concurrency=self._config.concurrency_for(self._tier),
            failure="Analysis failed",
            on_result=on_result,
        )

    async def transcribe_pages(
        self, pages: Iterable[Page], on_result: ProgressCallback | None = None
    ) -> list[PageUpdate]:
        """Transcribe (and translate where flagged) each page."""

        async def call(page: Page) -> dict[str, Any]:
            result = await self._client.transcribe_page(page, translate=page.should_translate)
            return transcription_fields(page, result)

        return await self._run(
            list(pages),
            call,
            concurrency=self._config.concurrency_for(self._tier, transcription=True),
            failure="Transcription failed",
            on_result=on_result,
        )

    async def cluster(self, pages: list[Page], vocabulary: VocabularyStore) -> list[Cluster]:
        """Cluster transcribed pages and normalize entity references against the vocabulary."""
        async with self._rate_limiter:
            raw = await self._client.cluster_pages(pages, vocabulary.all_records(), self._tier)
        return normalize_clusters(raw, vocabulary)

    async def _run(
        self,
        pages: list[Page],
        call: Callable[[Page], Any],
        concurrency: int,
        failure: str,
        on_result: ProgressCallback | None,
    ) -> list[PageUpdate]:
        semaphore = asyncio.Semaphore(concurrency)

        async def one(page: Page) -> PageUpdate:
            async with semaphore:
                async with self._rate_limiter:
                    try:
                        fields = await call(page)
                    except OracleError as exc:
                        logger.error("%s for %s: %s", failure, page.index_name or page.id, exc)
                        fields = {"status": PageStatus.ERROR, "error": failure}
            update = PageUpdate(page.id, fields)
            if on_result is not None:
                on_result(update)
            return update

        logger.info("Running %d oracle call(s) with concurrency %d", len(pages), concurrency)
        results = await asyncio.gather(*(one(p) for p in pages), return_exceptions=True)

        updates: list[PageUpdate] = []
        for page, result in zip(pages, results):
            if isinstance(result, BaseException):
                logger.error("%s for %s: %s", failure, page.index_name or page.id, result)
                updates.append(PageUpdate(page.id, {"status": PageStatus.ERROR, "error": failure}))
            else:
                updates.append(result)
        return updates
