"""Tests for the Gemini oracle client (google-genai mocked)."""

from __future__ import annotations

import io
import json

import pytest
from conftest import response
from google.genai import errors as genai_errors
from PIL import Image

from archlens.config import WorkbenchConfig
from archlens.errors import OracleError, RateLimitError
from archlens.models import Page, Tier
from archlens.oracle.client import GeminiOracleClient, image_part
from archlens.oracle.prompts import PRISON_LIST


def _api_error(code: int, status: str) -> genai_errors.APIError:
    cls = genai_errors.ClientError if code < 500 else genai_errors.ServerError
    return cls(code, {"error": {"code": code, "message": "boom", "status": status}})


@pytest.fixture
def config() -> WorkbenchConfig:
    return WorkbenchConfig(retry_base_delay=0.0)


@pytest.fixture
def oracle(mock_genai_client, config) -> GeminiOracleClient:
    return GeminiOracleClient(config=config, client=mock_genai_client)


@pytest.fixture
def page(image_file) -> Page:
    return Page(id="p1", index_name="Acre - 001.jpg", file_name=image_file.name, source_path=str(image_file))


class TestImagePart:
    def test_plain_jpeg_passed_through(self, page, image_file):
        part = image_part(page)
        assert part.inline_data.mime_type == "image/jpeg"
        assert part.inline_data.data == image_file.read_bytes()

    def test_rotation_applied(self, page):
        part = image_part(page.model_copy(update={"rotation": 90}))
        assert part.inline_data.mime_type == "image/png"
        with Image.open(io.BytesIO(part.inline_data.data)) as img:
            assert img.size == (20, 40)

    def test_tiff_converted(self, tmp_path):
        path = tmp_path / "scan.tif"
        Image.new("RGB", (10, 10)).save(path, format="TIFF")
        part = image_part(Page(id="t", source_path=str(path)))
        assert part.inline_data.mime_type == "image/png"

    def test_missing_image(self):
        with pytest.raises(OracleError):
            image_part(Page(id="p9", source_path="/nonexistent/file.jpg"))


class TestAnalyze:
    async def test_parses_analysis(self, oracle, mock_genai_client, page, config):
        mock_genai_client.aio.models.generate_content.return_value = response(
            '{"language": "Hebrew", "productionMode": "handwriting", "hasHebrewHandwriting": true}'
        )
        result = await oracle.analyze_page(page)
        assert (result.language, result.production_mode, result.has_hebrew_handwriting) == (
            "Hebrew", "handwriting", True,
        )
        kwargs = mock_genai_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == config.flash_model
        assert kwargs["config"].response_mime_type == "application/json"

    async def test_rate_limit_retried(self, oracle, mock_genai_client, page):
        mock_genai_client.aio.models.generate_content.side_effect = [
            _api_error(429, "RESOURCE_EXHAUSTED"),
            response('{"language": "English"}'),
        ]
        result = await oracle.analyze_page(page)
        assert result.language == "English"
        assert mock_genai_client.aio.models.generate_content.await_count == 2

    async def test_rate_limit_exhausted(self, oracle, mock_genai_client, page):
        mock_genai_client.aio.models.generate_content.side_effect = _api_error(429, "RESOURCE_EXHAUSTED")
        with pytest.raises(RateLimitError):
            await oracle.analyze_page(page)
        assert mock_genai_client.aio.models.generate_content.await_count == 4

    async def test_other_errors_not_retried(self, oracle, mock_genai_client, page):
        mock_genai_client.aio.models.generate_content.side_effect = _api_error(400, "INVALID_ARGUMENT")
        with pytest.raises(OracleError) as exc_info:
            await oracle.analyze_page(page)
        assert not isinstance(exc_info.value, RateLimitError)
        assert mock_genai_client.aio.models.generate_content.await_count == 1


class TestTranscribe:
    async def test_translation_requested(self, oracle, mock_genai_client, page):
        mock_genai_client.aio.models.generate_content.return_value = response(
            '{"transcription": "שלום", "translation": "Hello", "confidenceScore": 0}'
        )
        result = await oracle.transcribe_page(page, translate=True)
        assert result.transcription == "שלום"
        assert result.translation == "Hello"
        assert result.confidence_score == 3
        contents = mock_genai_client.aio.models.generate_content.call_args.kwargs["contents"]
        assert "English translation" in contents[1]

    async def test_salvages_truncated_text(self, oracle, mock_genai_client, page):
        mock_genai_client.aio.models.generate_content.return_value = response('{"transcription": "Long text cut')
        result = await oracle.transcribe_page(page)
        assert result.transcription == "Long text cut"
        assert result.translation == ""


class TestCluster:
    async def test_prompt_contents(self, oracle, mock_genai_client, small_vocab):
        mock_genai_client.aio.models.generate_content.return_value = response('[{"id": 1, "title": "A"}]')
        pages = [Page(id="p1", index_name="Acre - 001.jpg", generated_transcription="x" * 20_000)]
        raw = await oracle.cluster_pages(pages, small_vocab.all_records(), Tier.FREE)
        assert raw == [{"id": 1, "title": "A"}]

        prompt = mock_genai_client.aio.models.generate_content.call_args.kwargs["contents"]
        assert "Golda Meir|" in prompt
        assert PRISON_LIST[0] in prompt
        payload = json.loads(prompt.split("Input Data (Pages and Transcriptions):\n", 1)[1].split("\n", 1)[0])
        assert len(payload[0]["transcription"]) == 15_000

    async def test_paid_falls_back_to_flash(self, oracle, mock_genai_client, config):
        mock_genai_client.aio.models.generate_content.side_effect = [
            _api_error(500, "INTERNAL"),
            response("[]"),
        ]
        assert await oracle.cluster_pages([], [], Tier.PAID) == []
        models = [c.kwargs["model"] for c in mock_genai_client.aio.models.generate_content.call_args_list]
        assert models == [config.pro_model, config.flash_model]

    async def test_free_failure_surfaces(self, oracle, mock_genai_client):
        mock_genai_client.aio.models.generate_content.side_effect = _api_error(500, "INTERNAL")
        with pytest.raises(OracleError):
            await oracle.cluster_pages([], [], Tier.FREE)
        assert mock_genai_client.aio.models.generate_content.await_count == 1
