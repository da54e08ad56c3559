"""Core configuration with Pydantic v2 Settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_env: str = "development"
    log_level: str = "INFO"
    # 'json' for structured output, 'text' for local debugging
    log_format: str = "json"
    enable_metrics: bool = True

    # Case store: JSON file path; empty keeps everything in memory
    INKASSO_STORE_PATH: str = ""
    # Agent to creditor assignments (YAML or JSON)
    INKASSO_ASSIGNMENTS_PATH: str = ""
    # Deadline/limitation policy overrides (YAML)
    INKASSO_POLICY_PATH: str = ""
    # Basiszinssatz history (YAML or JSON) for variable interest
    INKASSO_BASE_RATE_PATH: str = ""

    # Listing API settings
    READ_MAX_LIMIT: int = 100


# Global settings instance
settings = Settings()
