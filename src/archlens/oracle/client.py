"""Gemini oracle client: page analysis, transcription and clustering.

Every call goes through ``client.aio.models.generate_content`` in JSON
mode with a pydantic response schema. Rate-limit responses (HTTP 429 /
``RESOURCE_EXHAUSTED``) are retried with exponential backoff
(4s, 8s, 16s); any other failure surfaces immediately as
:class:`~archlens.errors.OracleError`.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from PIL import Image
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from archlens.config import WorkbenchConfig, get_api_key
from archlens.entities.models import AuthorityRecord
from archlens.errors import OracleError, OracleResponseError, RateLimitError
from archlens.models import Page, Tier
from archlens.oracle import parser, prompts
from archlens.oracle.schemas import PageAnalysis, RawCluster, TranscriptionResult

logger = logging.getLogger(__name__)

_TIFF_SUFFIXES = (".tif", ".tiff")


def is_rate_limited(exc: genai_errors.APIError) -> bool:
    return exc.code == 429 or getattr(exc, "status", None) == "RESOURCE_EXHAUSTED"


def image_part(page: Page) -> genai_types.Part:
    """Inline image part for *page*, rotated and TIFF-converted as needed.

    Raises:
        OracleError: If the page has no readable image on disk.
    """
    if not page.source_path or not Path(page.source_path).is_file():
        raise OracleError(f"No image on disk for page {page.index_name or page.id}")

    path = Path(page.source_path)
    rotation = page.rotation % 360
    if rotation == 0 and path.suffix.lower() not in _TIFF_SUFFIXES:
        mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
        return genai_types.Part.from_bytes(data=path.read_bytes(), mime_type=mime_type)

    with Image.open(path) as img:
        img.seek(0)  # multi-page TIFF: first frame only
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        if rotation:
            # Page rotation is clockwise; PIL rotates counter-clockwise
            img = img.rotate(-rotation, expand=True)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    return genai_types.Part.from_bytes(data=buf.getvalue(), mime_type="image/png")


class GeminiOracleClient:
    """Async wrapper around the google-genai SDK for the three oracle calls.

    Usage::

        oracle = GeminiOracleClient(config=load_config())
        analysis = await oracle.analyze_page(page)
        result = await oracle.transcribe_page(page, translate=True)
        raw = await oracle.cluster_pages(pages, vocabulary, Tier.PAID)
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: WorkbenchConfig | None = None,
        client: Any = None,
    ) -> None:
        self.config = config or WorkbenchConfig()
        self._client = client if client is not None else genai.Client(api_key=api_key or get_api_key())

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def analyze_page(self, page: Page) -> PageAnalysis:
        """Identify language, production mode and Hebrew handwriting."""
        text = await self._generate(
            self.config.flash_model,
            [image_part(page), prompts.ANALYSIS_PROMPT],
            PageAnalysis,
        )
        try:
            return PageAnalysis.model_validate(parser.parse_json_object(text))
        except ValidationError as e:
            raise OracleResponseError(f"Invalid analysis response: {e}") from e

    async def transcribe_page(self, page: Page, translate: bool = False) -> TranscriptionResult:
        """Verbatim transcription with confidence, plus translation if asked."""
        text = await self._generate(
            self.config.flash_model,
            [image_part(page), prompts.transcription_prompt(translate)],
            TranscriptionResult,
        )
        try:
            return TranscriptionResult.model_validate(parser.salvage_transcription(text))
        except ValidationError as e:
            raise OracleResponseError(f"Invalid transcription response: {e}") from e

    async def cluster_pages(
        self,
        pages: list[Page],
        vocabulary: Iterable[AuthorityRecord],
        tier: Tier = Tier.FREE,
    ) -> list[Any]:
        """Group pages into documents and extract entities.

        Returns the raw cluster list; callers normalize it. On the paid tier
        a failure of the pro model falls back to the flash model once.
        """
        prompt = prompts.build_clustering_prompt(
            pages,
            vocabulary,
            transcript_chars=self.config.clustering_transcript_chars,
            vocabulary_chars=self.config.vocabulary_prompt_chars,
        )
        model = self.config.clustering_model(tier)
        try:
            text = await self._generate(model, prompt, list[RawCluster])
        except OracleError as exc:
            if model == self.config.flash_model:
                raise
            logger.warning("Clustering with %s failed (%s); falling back to %s", model, exc, self.config.flash_model)
            text = await self._generate(self.config.flash_model, prompt, list[RawCluster])

        raw = parser.salvage_json_list(text)
        logger.info("Clustering returned %d cluster(s) for %d page(s)", len(raw), len(pages))
        return raw

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _generate(self, model: str, contents: Any, schema: Any) -> str:
        """Run one generate_content call with rate-limit retries; returns response text."""
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(RateLimitError),
            wait=wait_exponential(multiplier=self.config.retry_base_delay, min=self.config.retry_base_delay),
            stop=stop_after_attempt(self.config.max_retries + 1),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                response = await self._safe_call(model=model, contents=contents, config=config)
        return response.text or ""

    async def _safe_call(self, **kwargs: Any) -> Any:
        """Call generate_content, mapping SDK errors onto the oracle hierarchy."""
        try:
            return await self._client.aio.models.generate_content(**kwargs)
        except genai_errors.APIError as exc:
            if is_rate_limited(exc):
                raise RateLimitError(f"429 rate limit: {exc.message}") from exc
            raise OracleError(f"Gemini API error {exc.code}: {exc.message}") from exc
