"""Gemini oracle: page analysis, transcription and clustering."""

from archlens.oracle.client import GeminiOracleClient
from archlens.oracle.pipeline import OraclePipeline, PageUpdate

__all__ = ["GeminiOracleClient", "OraclePipeline", "PageUpdate"]
