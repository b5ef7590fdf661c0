"""Configuration settings for the PRD interview assistant."""

from dotenv import load_dotenv

# Load .env into os.environ so provider SDKs (ANTHROPIC_API_KEY, ...) see it
load_dotenv()

from datetime import timedelta
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global settings for the interview assistant.

    Settings can be overridden via environment variables with PRD_ASSISTANT_ prefix.
    Example: PRD_ASSISTANT_SESSION_TIMEOUT_MINUTES=30
    """

    # Model config
    default_provider: str = Field(
        default="anthropic",
        description="Provider used when none is given (anthropic, openai, deepseek, litellm)"
    )
    default_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Default model for interview turns"
    )
    max_tokens: int = Field(
        default=4096,
        description="Maximum tokens per model reply"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for interview turns"
    )
    document_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for full document generation"
    )
    max_conversation_turns: int = Field(
        default=50,
        ge=1,
        description="Number of user/assistant exchanges sent to the model per turn"
    )

    # Session lifecycle
    session_timeout_minutes: float = Field(
        default=120,
        gt=0,
        description="Idle time after which an active session is marked expired"
    )
    session_removal_minutes: float = Field(
        default=60,
        gt=0,
        description="Idle time after which an expired or cancelled session is deleted"
    )
    cleanup_interval_minutes: float = Field(
        default=15,
        gt=0,
        description="How often the background sweeper runs"
    )

    # Completion
    completion_threshold: float = Field(
        default=90.0,
        ge=0.0,
        le=100.0,
        description="Completion score required (in the Review phase) to call an interview complete"
    )

    # Templates
    template_dir: str = Field(
        default="./templates/library",
        description="Directory holding JSON document templates"
    )
    default_template: str = Field(
        default="default-prd-template.json",
        description="Template used when a session does not name one"
    )

    # API settings (env: PRD_ASSISTANT_<KEY> or the SDK's own env var)
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (env: PRD_ASSISTANT_ANTHROPIC_API_KEY)",
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (env: PRD_ASSISTANT_OPENAI_API_KEY)",
    )
    deepseek_api_key: str = Field(
        default="",
        description="Deepseek API key (env: PRD_ASSISTANT_DEEPSEEK_API_KEY)",
    )
    api_timeout_seconds: int = Field(
        default=120,
        description="API call timeout in seconds"
    )

    model_config = {
        "env_prefix": "PRD_ASSISTANT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _check_windows(self) -> "Settings":
        if self.session_removal_minutes >= self.session_timeout_minutes:
            raise ValueError(
                "session_removal_minutes must be shorter than session_timeout_minutes"
            )
        return self

    @property
    def session_timeout(self) -> timedelta:
        return timedelta(minutes=self.session_timeout_minutes)

    @property
    def session_removal(self) -> timedelta:
        return timedelta(minutes=self.session_removal_minutes)

    @property
    def cleanup_interval(self) -> timedelta:
        return timedelta(minutes=self.cleanup_interval_minutes)

    def get_template_path(self) -> Path:
        """Get template directory as Path object."""
        return Path(self.template_dir)


# Create singleton instance
settings = Settings()
