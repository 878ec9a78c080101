"""Configuration system for the Qualivida boleto pipeline.

Pydantic Settings-based configuration with environment variable support
and defaults matching the behaviour of the condominium application.

Usage:
    from qualivida_core.config import QualividaConfig

    # Load from environment variables and .env file
    config = QualividaConfig()

    print(config.extraction.min_text_length)
    print(config.matching.max_suggestions)
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionConfig(BaseSettings):
    """Text extraction settings.

    Environment Variables:
        QUALIVIDA_EXTRACTION_MIN_TEXT_LENGTH: Shortest text considered usable
        QUALIVIDA_EXTRACTION_USE_PDFPLUMBER_FALLBACK: Retry with pdfplumber on short text
        QUALIVIDA_EXTRACTION_OCR_ENABLED: Run OCR when text is still too short
        QUALIVIDA_EXTRACTION_OCR_LANGUAGE: Tesseract language code
        QUALIVIDA_EXTRACTION_OCR_DPI: Rasterization resolution for OCR
        QUALIVIDA_EXTRACTION_TESSERACT_CONFIG: Extra tesseract command line flags
        QUALIVIDA_EXTRACTION_MAX_FILE_SIZE_MB: Largest accepted PDF upload
    """

    model_config = SettingsConfigDict(
        env_prefix="QUALIVIDA_EXTRACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    min_text_length: int = Field(
        default=100,
        ge=0,
        description="Texts shorter than this trigger the fallback extraction paths",
    )
    use_pdfplumber_fallback: bool = Field(
        default=True,
        description="Re-extract short PyPDF2 output with pdfplumber when installed",
    )
    ocr_enabled: bool = Field(
        default=False,
        description="Run OCR on documents whose text is shorter than min_text_length",
    )
    ocr_language: str = Field(
        default="por",
        description="Tesseract language code used for OCR",
    )
    ocr_dpi: int = Field(
        default=300,
        ge=72,
        le=1200,
        description="Resolution used to rasterize PDF pages for OCR",
    )
    tesseract_config: Optional[str] = Field(
        default=None,
        description="Additional tesseract flags, e.g. '--psm 6'",
    )
    max_file_size_mb: float = Field(
        default=10.0,
        gt=0,
        description="Maximum accepted PDF size in megabytes",
    )

    @field_validator("ocr_language")
    @classmethod
    def validate_ocr_language(cls, v: str) -> str:
        """Ensure the OCR language code is not empty."""
        if not v or not v.strip():
            raise ValueError("OCR language cannot be empty")
        return v.strip()

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum accepted PDF size in bytes."""
        return int(self.max_file_size_mb * 1024 * 1024)


class MatchingConfig(BaseSettings):
    """Resident matching settings.

    Environment Variables:
        QUALIVIDA_MATCHING_MAX_SUGGESTIONS: Size of the suggestion list
    """

    model_config = SettingsConfigDict(
        env_prefix="QUALIVIDA_MATCHING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_suggestions: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of residents suggested for manual review",
    )


class QualividaConfig(BaseSettings):
    """Root configuration for the boleto pipeline.

    Environment Variables:
        QUALIVIDA_ENV: Environment name (development, staging, production, test)
        QUALIVIDA_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        config = QualividaConfig(
            extraction=ExtractionConfig(ocr_enabled=True),
            matching=MatchingConfig(max_suggestions=5),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="QUALIVIDA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_debug(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"
