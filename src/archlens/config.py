"""Configuration loading for the workbench and its Gemini oracle."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import keyring

from archlens.models import Tier

logger = logging.getLogger(__name__)

SERVICE_NAME = "archlens-gemini"
KEY_NAME = "api_key"

DEFAULT_CONFIG_PATH = Path("config/archlens.json")


def get_api_key() -> str:
    """Get Gemini API key: system keyring first, then environment variables.

    Returns:
        API key string.

    Raises:
        RuntimeError: If no key found anywhere, with actionable instructions.
    """
    api_key = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if api_key:
        return api_key

    for var in ("GEMINI_API_KEY", "API_KEY"):
        api_key = os.environ.get(var)
        if api_key:
            return api_key

    raise RuntimeError(
        "Gemini API key not found.\n"
        "Set it with: archlens config set-api-key YOUR_KEY\n"
        "Or: export GEMINI_API_KEY=your-key"
    )


def set_api_key(api_key: str) -> None:
    """Store the Gemini API key in the system keyring."""
    keyring.set_password(SERVICE_NAME, KEY_NAME, api_key)


@dataclass
class WorkbenchConfig:
    """Oracle models, concurrency, rate limiting and retry settings.

    Concurrency is per tier: the free tier is effectively serial for
    transcription, the paid tier runs a handful of calls at once.
    """

    flash_model: str = "gemini-3-flash-preview"
    pro_model: str = "gemini-3-pro-preview"
    analysis_concurrency: dict[str, int] = field(
        default_factory=lambda: {Tier.FREE.value: 2, Tier.PAID.value: 5}
    )
    transcription_concurrency: dict[str, int] = field(
        default_factory=lambda: {Tier.FREE.value: 1, Tier.PAID.value: 5}
    )
    rate_limit_rpm: dict[str, int] = field(
        default_factory=lambda: {Tier.FREE.value: 10, Tier.PAID.value: 300}
    )
    max_retries: int = 3  # rate-limit retries only
    retry_base_delay: float = 4.0  # seconds; doubles per retry
    clustering_transcript_chars: int = 15_000
    vocabulary_prompt_chars: int = 40_000
    work_dir: Path = field(default_factory=lambda: Path("data/work"))

    def __post_init__(self) -> None:
        if isinstance(self.work_dir, str):
            self.work_dir = Path(self.work_dir)

    def concurrency_for(self, tier: Tier, transcription: bool = False) -> int:
        table = self.transcription_concurrency if transcription else self.analysis_concurrency
        return max(1, int(table.get(Tier(tier).value, 1)))

    def rpm_for(self, tier: Tier) -> int:
        return max(1, int(self.rate_limit_rpm.get(Tier(tier).value, 10)))

    def clustering_model(self, tier: Tier) -> str:
        return self.pro_model if Tier(tier) == Tier.PAID else self.flash_model


def load_config(config_path: Path | None = None) -> WorkbenchConfig:
    """Load workbench configuration from JSON, falling back to defaults.

    Reads from ``config/archlens.json`` when *config_path* is ``None``.
    Unrecognised keys are ignored; a missing file yields the defaults.

    Args:
        config_path: Optional explicit path to the config JSON.

    Returns:
        WorkbenchConfig populated from file over defaults.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)

    field_names = {f.name for f in fields(WorkbenchConfig)}
    ignored = sorted(set(data) - field_names)
    if ignored:
        logger.warning("Ignoring unknown config keys in %s: %s", config_path, ", ".join(ignored))
    kwargs = {k: v for k, v in data.items() if k in field_names}
    return WorkbenchConfig(**kwargs)
