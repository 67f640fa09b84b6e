"""Configuration for learnchain.

Settings are validated with Pydantic and read from a TOML file. Every field
has a default, so a missing file simply yields the defaults.
"""

import logging
import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .sources import SourceKind

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "app_config.toml"
DATABASE_FILENAME = "learning_history.sqlite"


def get_config_path() -> Path:
    """Get configuration file path from environment or default."""
    if path := os.environ.get("LEARNCHAIN_CONFIG"):
        return Path(path)
    return DEFAULT_CONFIG_PATH


class GenerationBackend(str, Enum):
    """Where learning responses are generated."""

    OPENAI = "openai"
    CLAUDE_CODE = "claude-code"


class OpenAiModel(str, Enum):
    GPT5_MINI = "gpt-5-mini"
    GPT5 = "gpt-5"


class AppConfig(BaseModel):
    """Application configuration.

    Attributes:
        max_events: Most recent events kept for the summary (minimum 1)
        min_quiz_questions: Minimum quiz questions requested from the model (minimum 1)
        session_source: Log format tried first
        fallback_source: Also try the other log format when the first has nothing
        codex_root: Override for the Codex sessions directory
        claude_root: Override for the Claude Code projects directory
        output_dir: Directory for artifacts, the debug log and the database
        write_output_artifacts: Persist summaries and learning responses to output_dir
        generation_backend: LLM backend used to build quizzes
        openai_model: OpenAI model name
        openai_api_key: OpenAI API key (falls back to OPENAI_API_KEY)
        openai_base_url: Optional OpenAI-compatible endpoint
        analytics_days: Length of the analytics window in days (minimum 1)
    """

    max_events: int = Field(default=15, ge=1)
    min_quiz_questions: int = Field(default=5, ge=1)
    session_source: SourceKind = Field(default=SourceKind.CODEX)
    fallback_source: bool = Field(default=True)
    codex_root: Optional[Path] = Field(default=None)
    claude_root: Optional[Path] = Field(default=None)
    output_dir: Path = Field(default=Path("output"))
    write_output_artifacts: bool = Field(default=False)
    generation_backend: GenerationBackend = Field(default=GenerationBackend.OPENAI)
    openai_model: OpenAiModel = Field(default=OpenAiModel.GPT5_MINI)
    openai_api_key: str = Field(default="")
    openai_base_url: Optional[str] = Field(default=None)
    analytics_days: int = Field(default=30, ge=1)

    @field_validator("codex_root", "claude_root", "output_dir", mode="before")
    @classmethod
    def parse_paths(cls, v):
        """Convert string to Path if needed, expanding `~`."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @property
    def database_path(self) -> Path:
        return self.output_dir / DATABASE_FILENAME

    def root_for(self, kind: SourceKind) -> Optional[Path]:
        return self.codex_root if kind is SourceKind.CODEX else self.claude_root

    def resolved_api_key(self) -> str:
        return self.openai_api_key or os.environ.get("OPENAI_API_KEY", "")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AppConfig":
        """Load configuration from dictionary."""
        return cls(**config_dict)

    @classmethod
    def from_toml(cls, config_path: Path) -> "AppConfig":
        """Load configuration from TOML file."""
        with open(config_path, "rb") as f:
            config_dict = tomllib.load(f)
        return cls.from_dict(config_dict)


def load_config(config_path: Optional[Path] = None) -> tuple[AppConfig, Optional[str]]:
    """Load configuration, falling back to defaults on any problem.

    Also loads a `.env` file so OPENAI_API_KEY can live there.

    Returns:
        (config, advisory error or None)
    """
    load_dotenv()
    path = config_path or get_config_path()
    if not path.exists():
        logger.debug("No configuration at %s; using defaults", path)
        return AppConfig(), None

    try:
        config = AppConfig.from_toml(path)
    except (OSError, tomllib.TOMLDecodeError, ValidationError, TypeError) as e:
        logger.warning("Failed to load configuration from %s: %s", path, e)
        return AppConfig(), f"Configuration load failed: {path}: {e}"

    logger.debug("Loaded configuration from %s", path)
    return config, None
