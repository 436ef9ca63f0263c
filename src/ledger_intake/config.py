"""
Configuration management (SSOT).

This module defines ALL configuration for the intake pipeline.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- The language model is OFF unless explicitly enabled
- Every pipeline works with the model disabled (deterministic fallback)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

SUPPORTED_PROVIDERS = ("ollama", "openai")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class LLMConfig:
    """Language-model backend configuration.

    - enabled: Master switch (default OFF)
    - provider: "ollama" (local /api/chat) or "openai" (/v1/chat/completions)
    - max_concurrent: Concurrency limiter for queue management
    """

    enabled: bool = False
    provider: str = "ollama"
    # Ollama server URL (supports localhost, LAN, remote)
    ollama_url: str = "http://localhost:11434"
    # OpenAI-compatible endpoint
    openai_url: str = "https://api.openai.com"
    api_key: str | None = None
    # Fast model (default)
    model_fast: str = "qwen2.5:3b-instruct-q4_K_M"
    # Fallback model, tried when the fast one fails
    model_fallback: str | None = "qwen2.5:7b-instruct-q4_K_M"
    timeout_seconds: int = 30
    max_concurrent: int = 2
    # Document text sent for analysis is cut at this many characters
    max_document_chars: int = 4000

    @property
    def base_url(self) -> str:
        return self.openai_url if self.provider == "openai" else self.ollama_url


@dataclass
class OCRConfig:
    """OCR engine settings."""

    # Tesseract language hints, "+" separated
    languages: str = "eng+spa"
    # Path to the tesseract binary (None: use PATH)
    tesseract_cmd: str | None = None


@dataclass
class ToonConfig:
    """Defaults applied to informal-note transactions."""

    primary_currency: str = "ARS"
    secondary_currency: str = "USD"
    default_origin: str = "Efectivo"
    default_destination: str = "Varios"
    default_category: str = "Otros"


@dataclass
class ImportConfig:
    """Document pipeline settings."""

    # Free-text descriptions are cut at this length
    max_description_length: int = 200
    # Raw text preview rows per sheet
    sheet_preview_rows: int = 20


@dataclass
class IntakeConfig:
    """Application configuration (SSOT)."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    toon: ToonConfig = field(default_factory=ToonConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if self.llm.enabled:
            if self.llm.provider not in SUPPORTED_PROVIDERS:
                errors.append(
                    f"llm.provider must be one of {', '.join(SUPPORTED_PROVIDERS)}"
                )
            if not self.llm.base_url:
                errors.append("llm base URL is required when LLM is enabled")
            if not self.llm.model_fast:
                errors.append("llm.model_fast is required when LLM is enabled")
            if self.llm.provider == "openai" and not self.llm.api_key:
                errors.append("llm.api_key is required for the openai provider")

        if self.llm.timeout_seconds <= 0:
            errors.append("llm.timeout_seconds must be positive")
        if self.llm.max_concurrent < 1:
            errors.append("llm.max_concurrent must be >= 1")

        currencies = {"ARS", "USD"}
        if self.toon.primary_currency not in currencies:
            errors.append("toon.primary_currency must be ARS or USD")
        if self.toon.secondary_currency not in currencies:
            errors.append("toon.secondary_currency must be ARS or USD")
        if self.toon.primary_currency == self.toon.secondary_currency:
            errors.append("toon.primary_currency and secondary_currency must differ")
        if not self.toon.default_origin:
            errors.append("toon.default_origin is required")

        if self.imports.max_description_length < 1:
            errors.append("imports.max_description_length must be >= 1")

        return errors


def _env_bool(name: str, current: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return current


def load_config(config_path: Path | None = None, strict: bool = False) -> IntakeConfig:
    """
    Load configuration from YAML file.

    A missing file yields the defaults. Environment variables can override
    config values:
    - INTAKE_LLM_ENABLED (true/false)
    - INTAKE_LLM_PROVIDER (ollama/openai)
    - OLLAMA_URL
    - OLLAMA_MODEL (fast model name)
    - OLLAMA_MODEL_FALLBACK (fallback model name)
    - OLLAMA_TIMEOUT (request timeout in seconds)
    - OPENAI_API_KEY
    - INTAKE_OCR_LANGUAGES
    - TESSERACT_CMD
    - INTAKE_DEFAULT_CURRENCY
    - INTAKE_DEFAULT_ORIGIN

    Raises:
        ConfigValidationError: if ``strict`` and validation fails
    """
    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # LLM config
    llm_data = data.get("llm", {})
    llm = LLMConfig(
        enabled=_env_bool("INTAKE_LLM_ENABLED", llm_data.get("enabled", False)),
        provider=os.environ.get("INTAKE_LLM_PROVIDER", llm_data.get("provider", "ollama")),
        ollama_url=os.environ.get(
            "OLLAMA_URL", llm_data.get("ollama_url", "http://localhost:11434")
        ),
        openai_url=llm_data.get("openai_url", "https://api.openai.com"),
        api_key=os.environ.get("OPENAI_API_KEY", llm_data.get("api_key")),
        model_fast=os.environ.get(
            "OLLAMA_MODEL", llm_data.get("model_fast", "qwen2.5:3b-instruct-q4_K_M")
        ),
        model_fallback=os.environ.get(
            "OLLAMA_MODEL_FALLBACK", llm_data.get("model_fallback", "qwen2.5:7b-instruct-q4_K_M")
        ),
        timeout_seconds=int(os.environ.get(
            "OLLAMA_TIMEOUT", llm_data.get("timeout_seconds", 30)
        )),
        max_concurrent=llm_data.get("max_concurrent", 2),
        max_document_chars=llm_data.get("max_document_chars", 4000),
    )

    # OCR config
    ocr_data = data.get("ocr", {})
    ocr = OCRConfig(
        languages=os.environ.get("INTAKE_OCR_LANGUAGES", ocr_data.get("languages", "eng+spa")),
        tesseract_cmd=os.environ.get("TESSERACT_CMD", ocr_data.get("tesseract_cmd")),
    )

    # Informal-note defaults
    toon_data = data.get("toon", {})
    toon = ToonConfig(
        primary_currency=os.environ.get(
            "INTAKE_DEFAULT_CURRENCY", toon_data.get("primary_currency", "ARS")
        ).upper(),
        secondary_currency=toon_data.get("secondary_currency", "USD").upper(),
        default_origin=os.environ.get(
            "INTAKE_DEFAULT_ORIGIN", toon_data.get("default_origin", "Efectivo")
        ),
        default_destination=toon_data.get("default_destination", "Varios"),
        default_category=toon_data.get("default_category", "Otros"),
    )

    imports_data = data.get("imports", {})
    imports = ImportConfig(
        max_description_length=imports_data.get("max_description_length", 200),
        sheet_preview_rows=imports_data.get("sheet_preview_rows", 20),
    )

    config = IntakeConfig(llm=llm, ocr=ocr, toon=toon, imports=imports)

    if strict:
        errors = config.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# ledger-intake configuration
#
# Every pipeline works with the language model disabled: the deterministic
# pattern extractors are always the fallback.

# Language model settings
llm:
  enabled: false                           # Set to true to enable model-assisted parsing
  provider: "ollama"                       # "ollama" or "openai"
  ollama_url: "http://localhost:11434"     # Ollama server URL (localhost, LAN, or remote)
  openai_url: "https://api.openai.com"     # OpenAI-compatible endpoint
  api_key: null                            # Required for the openai provider
  model_fast: "qwen2.5:3b-instruct-q4_K_M"        # Tried first
  model_fallback: "qwen2.5:7b-instruct-q4_K_M"    # Tried when the fast model fails
  timeout_seconds: 30
  max_concurrent: 2                        # Max concurrent model requests
  max_document_chars: 4000                 # Document text sent for analysis is cut here

# OCR (tesseract)
ocr:
  languages: "eng+spa"
  tesseract_cmd: null                      # Path to tesseract if not on PATH

# Defaults for informal notes
toon:
  primary_currency: "ARS"
  secondary_currency: "USD"
  default_origin: "Efectivo"
  default_destination: "Varios"
  default_category: "Otros"

# Document import
imports:
  max_description_length: 200
  sheet_preview_rows: 20
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
