"""Configuration schema for the consultation assistant.

Defines Pydantic models for loading and validating session configuration
from YAML files and environment variables.
"""

from pathlib import Path

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from src.consultation.models import ParticipantRole

DEFAULT_URGENCY_KEYWORDS = [
    # English
    "pain",
    "emergency",
    "severe",
    "urgent",
    "critical",
    # Portuguese
    "dor",
    "emergência",
    "grave",
    "urgente",
    "crítico",
]

# Urgency terms plus calls for help
DEFAULT_TRIGGER_KEYWORDS = [*DEFAULT_URGENCY_KEYWORDS, "ajuda", "socorro"]

SUPPORTED_LANGUAGES = ["en", "pt"]


class LiveKitConfig(BaseModel):
    """LiveKit server and worker configuration."""

    url: str = Field(
        default="ws://localhost:7880",
        description="LiveKit server URL",
    )
    api_key: str = Field(default="devkey", description="LiveKit API key")
    api_secret: str = Field(default="secret", description="LiveKit API secret")
    agent_name: str = Field(
        default="consultation-assistant",
        description="Agent name used for explicit job dispatch",
    )


class LLMConfig(BaseModel):
    """Language model configuration for tip generation."""

    model: str = Field(default="gpt-4o-mini", description="OpenAI chat model")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=200, ge=1, description="Max tokens per tip")


class TipConfig(BaseModel):
    """Tip generation policy."""

    interval_s: float = Field(
        default=0.0,
        ge=0.0,
        description="Periodic tip generation interval in seconds (0 disables)",
    )
    min_history: int = Field(
        default=3,
        ge=1,
        description="Minimum number of transcriptions before tips are generated",
    )
    prompt_history_window: int = Field(
        default=10,
        ge=1,
        description="Number of recent transcriptions rendered into the prompt",
    )
    priority_window: int = Field(
        default=5,
        ge=1,
        description="Number of recent transcriptions scanned for urgency keywords",
    )
    generation_timeout_s: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for a single participant's tip generation",
    )
    urgency_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_URGENCY_KEYWORDS),
        description="Keywords that raise professional tip priority to HIGH",
    )
    trigger_keywords: list[str] | None = Field(
        default_factory=lambda: list(DEFAULT_TRIGGER_KEYWORDS),
        description="Keywords that trigger immediate tip generation (null uses urgency_keywords)",
    )

    @field_validator("urgency_keywords", "trigger_keywords")
    @classmethod
    def validate_keywords(cls, v: list[str] | None, info: ValidationInfo) -> list[str] | None:
        """Drop blank entries and reject keyword lists left empty."""
        if v is None:
            return None
        keywords = [k.strip() for k in v if k.strip()]
        if not keywords:
            raise ValueError(f"{info.field_name} must contain at least one keyword")
        return keywords

    @property
    def effective_trigger_keywords(self) -> list[str]:
        """Keywords used by the immediate-trigger policy."""
        if self.trigger_keywords is not None:
            return self.trigger_keywords
        return self.urgency_keywords


class ConsultationConfig(BaseModel):
    """Root configuration for a consultation session."""

    livekit: LiveKitConfig = Field(default_factory=LiveKitConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    tips: TipConfig = Field(default_factory=TipConfig)

    language: str = Field(
        default="en",
        description="Prompt language (en, pt)",
    )
    max_conversation_history: int = Field(
        default=20,
        ge=1,
        description="Maximum transcriptions included in a tip-generation context",
    )
    default_role: ParticipantRole = Field(
        default=ParticipantRole.PATIENT,
        description="Role assigned to room participants that do not declare one",
    )

    # Operational settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        """Validate prompt language, accepting region suffixes like pt-BR."""
        code = v.split("-")[0].lower()
        if code not in SUPPORTED_LANGUAGES:
            raise ValueError(f"language must be one of {SUPPORTED_LANGUAGES}, got '{v}'")
        return code

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level name."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got '{v}'")
        return v.upper()

    @classmethod
    def from_yaml(cls, path: Path) -> "ConsultationConfig":
        """Load configuration from YAML file with environment variable overrides.

        Args:
            path: Path to YAML configuration file

        Returns:
            Loaded configuration

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        import os

        import yaml  # type: ignore[import-untyped]

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Apply LiveKit environment variable overrides
        for env_var, key in (
            ("LIVEKIT_URL", "url"),
            ("LIVEKIT_API_KEY", "api_key"),
            ("LIVEKIT_API_SECRET", "api_secret"),
        ):
            if value := os.getenv(env_var):
                data.setdefault("livekit", {})[key] = value

        if llm_model := os.getenv("LLM_MODEL"):
            data.setdefault("llm", {})["model"] = llm_model

        if interval := os.getenv("TIP_GENERATION_INTERVAL_S"):
            data.setdefault("tips", {})["interval_s"] = float(interval)

        if language := os.getenv("SESSION_LANGUAGE"):
            data["language"] = language

        return cls.model_validate(data)

    @classmethod
    def from_yaml_with_defaults(cls, path: Path | None = None) -> "ConsultationConfig":
        """Load configuration from YAML or use defaults if file doesn't exist.

        Args:
            path: Optional path to YAML configuration file

        Returns:
            Loaded configuration or defaults
        """
        if path is not None and path.exists():
            return cls.from_yaml(path)

        # Return defaults
        return cls()
