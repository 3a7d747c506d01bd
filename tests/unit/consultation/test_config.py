"""Unit tests for consultation configuration.

Tests configuration loading, validation, and defaults.
"""

from pathlib import Path

import pytest

from src.consultation.config import (
    DEFAULT_TRIGGER_KEYWORDS,
    DEFAULT_URGENCY_KEYWORDS,
    ConsultationConfig,
    LiveKitConfig,
    LLMConfig,
    TipConfig,
)
from src.consultation.models import ParticipantRole

CONFIG_ENV_VARS = (
    "LIVEKIT_URL",
    "LIVEKIT_API_KEY",
    "LIVEKIT_API_SECRET",
    "LLM_MODEL",
    "TIP_GENERATION_INTERVAL_S",
    "SESSION_LANGUAGE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove config override variables from the environment."""
    for var in CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def test_livekit_config_defaults() -> None:
    """Test LiveKit configuration defaults."""
    config = LiveKitConfig()
    assert config.url == "ws://localhost:7880"
    assert config.api_key == "devkey"
    assert config.api_secret == "secret"
    assert config.agent_name == "consultation-assistant"


def test_llm_config_validation() -> None:
    """Test LLM configuration bounds."""
    assert LLMConfig().model == "gpt-4o-mini"

    with pytest.raises(ValueError):
        LLMConfig(temperature=3.0)

    with pytest.raises(ValueError):
        LLMConfig(max_tokens=0)


def test_tip_config_defaults() -> None:
    """Test tip policy defaults."""
    config = TipConfig()
    assert config.interval_s == 0.0
    assert config.min_history == 3
    assert config.prompt_history_window == 10
    assert config.priority_window == 5
    assert config.urgency_keywords == DEFAULT_URGENCY_KEYWORDS
    assert config.effective_trigger_keywords == DEFAULT_TRIGGER_KEYWORDS
    assert {"ajuda", "socorro"} <= set(config.effective_trigger_keywords)
    assert set(DEFAULT_URGENCY_KEYWORDS) <= set(config.effective_trigger_keywords)


def test_tip_config_trigger_keywords_override() -> None:
    """Test explicit trigger keywords replace the urgency fallback."""
    config = TipConfig(trigger_keywords=["ajuda", "socorro"])
    assert config.effective_trigger_keywords == ["ajuda", "socorro"]


def test_tip_config_null_trigger_keywords_use_urgency() -> None:
    """Test null trigger keywords fall back to the urgency set."""
    config = TipConfig(urgency_keywords=["pain"], trigger_keywords=None)
    assert config.effective_trigger_keywords == ["pain"]


def test_tip_config_keyword_validation() -> None:
    """Test blank keywords are dropped and an empty list rejected."""
    assert TipConfig(urgency_keywords=[" pain ", "", "fever"]).urgency_keywords == [
        "pain",
        "fever",
    ]

    with pytest.raises(ValueError, match="at least one keyword"):
        TipConfig(urgency_keywords=["  "])


def test_tip_config_trigger_keyword_validation() -> None:
    """Test trigger keywords get the same blank-entry validation at load time."""
    assert TipConfig(trigger_keywords=[" socorro ", ""]).trigger_keywords == ["socorro"]

    with pytest.raises(ValueError, match="trigger_keywords must contain at least one keyword"):
        TipConfig(trigger_keywords=["  "])

    with pytest.raises(ValueError, match="trigger_keywords"):
        ConsultationConfig.model_validate({"tips": {"trigger_keywords": []}})


def test_tip_config_interval_validation() -> None:
    with pytest.raises(ValueError):
        TipConfig(interval_s=-1)


def test_consultation_config_defaults() -> None:
    """Test root configuration defaults."""
    config = ConsultationConfig()
    assert config.language == "en"
    assert config.max_conversation_history == 20
    assert config.default_role is ParticipantRole.PATIENT
    assert config.log_level == "INFO"


@pytest.mark.parametrize(("value", "expected"), [("en", "en"), ("PT", "pt"), ("pt-BR", "pt")])
def test_language_normalized(value: str, expected: str) -> None:
    """Test language codes are normalized to their base language."""
    assert ConsultationConfig(language=value).language == expected


def test_language_validation() -> None:
    """Test unsupported languages are rejected."""
    with pytest.raises(ValueError, match="language must be one of"):
        ConsultationConfig(language="fr")


def test_log_level_validation() -> None:
    """Test log level is normalized and validated."""
    assert ConsultationConfig(log_level="debug").log_level == "DEBUG"

    with pytest.raises(ValueError, match="log_level must be one of"):
        ConsultationConfig(log_level="VERBOSE")


def test_from_yaml(tmp_path: Path) -> None:
    """Test loading configuration from a YAML file."""
    config_file = tmp_path / "consultation.yaml"
    config_file.write_text(
        """
language: pt
max_conversation_history: 30
default_role: doctor
llm:
  model: gpt-4o
tips:
  interval_s: 60
  trigger_keywords: [ajuda, socorro]
"""
    )

    config = ConsultationConfig.from_yaml(config_file)

    assert config.language == "pt"
    assert config.max_conversation_history == 30
    assert config.default_role is ParticipantRole.DOCTOR
    assert config.llm.model == "gpt-4o"
    assert config.tips.interval_s == 60.0
    assert config.tips.effective_trigger_keywords == ["ajuda", "socorro"]
    assert config.livekit.url == "ws://localhost:7880"


def test_from_yaml_empty_file(tmp_path: Path) -> None:
    """Test an empty YAML file yields defaults."""
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    assert ConsultationConfig.from_yaml(config_file) == ConsultationConfig()


def test_from_yaml_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test environment variables override YAML values."""
    config_file = tmp_path / "consultation.yaml"
    config_file.write_text("language: en\nlivekit:\n  url: ws://yaml-host:7880\n")

    monkeypatch.setenv("LIVEKIT_URL", "wss://cloud.example.com")
    monkeypatch.setenv("LIVEKIT_API_KEY", "key-from-env")
    monkeypatch.setenv("LLM_MODEL", "gpt-4.1-mini")
    monkeypatch.setenv("TIP_GENERATION_INTERVAL_S", "15")
    monkeypatch.setenv("SESSION_LANGUAGE", "pt-BR")

    config = ConsultationConfig.from_yaml(config_file)

    assert config.livekit.url == "wss://cloud.example.com"
    assert config.livekit.api_key == "key-from-env"
    assert config.livekit.api_secret == "secret"
    assert config.llm.model == "gpt-4.1-mini"
    assert config.tips.interval_s == 15.0
    assert config.language == "pt"


def test_from_yaml_missing_file(tmp_path: Path) -> None:
    """Test loading a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        ConsultationConfig.from_yaml(tmp_path / "missing.yaml")


def test_from_yaml_with_defaults(tmp_path: Path) -> None:
    """Test fallback to defaults when no file is available."""
    assert ConsultationConfig.from_yaml_with_defaults() == ConsultationConfig()
    assert ConsultationConfig.from_yaml_with_defaults(tmp_path / "missing.yaml") == (
        ConsultationConfig()
    )


def test_sample_config_loads() -> None:
    """Test the shipped sample configuration is valid."""
    config_path = Path(__file__).parents[3] / "configs" / "consultation.yaml"

    config = ConsultationConfig.from_yaml(config_path)

    assert config.language in ("en", "pt")
