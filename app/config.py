"""
Configuration settings for the MSBTE report generator.
Loads environment variables and provides application-wide settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Gateway Configuration (OpenAI-compatible chat completions)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://ai.gateway.lovable.dev/v1"
    LLM_MODEL: str = "google/gemini-2.5-flash"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4000
    LLM_TIMEOUT: int = 120  # seconds per chat-completion call

    # Stage-specific generation settings
    ENHANCE_TEMPERATURE: float = 0.6
    COMPLIANCE_TEMPERATURE: float = 0.2
    COMPLIANCE_MAX_TOKENS: int = 1500

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: str = "*"

    # Upload / Extraction Configuration
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MB
    MAX_EXTRACTED_CHARS: int = 10000
    # Prefix of the reference text embedded in the generation prompt
    PROMPT_REFERENCE_CHARS: int = 5000

    # Final formatting thresholds (0-100)
    COMPLIANCE_THRESHOLD: int = 80
    QUALITY_THRESHOLD: int = 85

    # Quality heuristics
    TARGET_WORD_COUNT: int = 1500

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def llm_configured(self) -> bool:
        return bool(self.LLM_API_KEY.strip())


# Global settings instance
settings = Settings()
