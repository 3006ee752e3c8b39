"""Configuration management for FinVault."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Configuration
    llm_provider: Literal["gemini", "openai", "ollama"] = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    # Extraction call tuning
    llm_timeout: float = 60.0
    llm_temperature: float = 0.1
    llm_max_tokens: int = 8192
    extraction_max_attempts: int = 2
    retry_backoff_seconds: float = 1.0

    # Documents with less text than this are rejected before calling the LLM
    min_document_chars: int = 50
    max_upload_bytes: int = 10 * 1024 * 1024

    # Development mode
    dev_mode: bool = True

    # Data directory
    data_dir: Path = Path.home() / ".finvault"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # LLM_PROVIDER and llm_provider both work
        extra="ignore",  # Ignore extra environment variables
    )

    @property
    def db_path(self) -> Path:
        """Get the SQLite document store path."""
        suffix = "dev" if self.dev_mode else "prod"
        return self.data_dir / f"finvault_{suffix}.db"

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def log_config(self) -> None:
        """Log current configuration with sensitive values redacted."""
        print("\n" + "=" * 60)
        print("📋 CONFIGURATION LOADED")
        print("=" * 60)
        print(f"LLM Provider:        {self.llm_provider}")
        print(f"Gemini API Key:      {_redact(self.gemini_api_key)}")
        print(f"Gemini Model:        {self.gemini_model}")
        print(f"OpenAI API Key:      {_redact(self.openai_api_key)}")
        print(f"OpenAI Model:        {self.openai_model}")
        print(f"Ollama Host:         {self.ollama_host}")
        print(f"Ollama Model:        {self.ollama_model}")
        print(f"LLM Timeout:         {self.llm_timeout}s")
        print(f"Extraction Attempts: {self.extraction_max_attempts} (+1 final)")
        print(f"Dev Mode:            {self.dev_mode}")
        print(f"Data Directory:      {self.data_dir}")
        print(f"Database:            {self.db_path}")
        print(f"API Host:            {self.api_host}:{self.api_port}")
        print("=" * 60 + "\n")


def _redact(secret: str) -> str:
    if not secret:
        return "✗ Not set"
    return f"✓ Set ({secret[:4]}...{secret[-4:]})"


# Global settings instance
settings = Settings()
