"""Configuration management for the ask-ai gateway."""

from typing import Dict, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProvidersConfig(BaseSettings):
    """Default credentials and endpoints per upstream provider."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # OpenAI-wire-compatible backends
    openai_api_key: Optional[SecretStr] = None
    openai_base_url: str = "https://api.openai.com/v1"

    gemini_api_key: Optional[SecretStr] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai"

    deepseek_api_key: Optional[SecretStr] = None
    deepseek_base_url: str = "https://api.deepseek.com/v1"

    anthropic_api_key: Optional[SecretStr] = None
    claude_base_url: str = "https://api.anthropic.com/v1"

    doubao_api_key: Optional[SecretStr] = None
    doubao_base_url: str = "https://ark.cn-beijing.volces.com/api/v3"

    # Hugging Face inference
    hf_token: Optional[SecretStr] = None
    default_hf_token: Optional[SecretStr] = None
    hf_bill_to: Optional[str] = "huggingface"
    hf_default_provider: Optional[str] = None

    def credentials_for(self, name: str) -> Dict[str, Optional[str]]:
        """Return the default ``api_key``/``base_url`` pair for a wire-compatible provider."""
        key_field = "anthropic_api_key" if name == "claude" else f"{name}_api_key"
        secret = getattr(self, key_field, None)
        return {
            "api_key": secret.get_secret_value() if secret else None,
            "base_url": getattr(self, f"{name}_base_url", None),
        }

    def secret_values(self) -> list[str]:
        values = []
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            if isinstance(value, SecretStr) and value.get_secret_value():
                values.append(value.get_secret_value())
        return values


class HTTPConfig(BaseSettings):
    """Upstream HTTP client configuration."""
    model_config = SettingsConfigDict(env_prefix='HTTP_')

    connect_timeout: float = 10.0
    read_timeout: float = 120.0


class RateLimitConfig(BaseSettings):
    """Anonymous traffic admission control."""
    model_config = SettingsConfigDict(env_prefix='RATE_LIMIT_')

    max_requests_per_ip: int = 2
    window_seconds: float = 60 * 60

    @field_validator('max_requests_per_ip')
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 0:
            raise ValueError('max_requests_per_ip must be >= 0')
        return v

    @field_validator('window_seconds')
    @classmethod
    def validate_window(cls, v: float) -> float:
        if v <= 0:
            raise ValueError('window_seconds must be positive')
        return v


class AuthConfig(BaseSettings):
    """Session credential lookup."""
    model_config = SettingsConfigDict(env_prefix='AUTH_')

    cookie_name: str = "askai-token"


class PromptConfig(BaseSettings):
    """Prompt language and SEARCH/REPLACE markers shared with the system prompt."""
    model_config = SettingsConfigDict(env_prefix='PROMPT_')

    search_start: str = "<<<<<<< SEARCH"
    divider: str = "======="
    replace_end: str = ">>>>>>> REPLACE"
    default_lang: str = "en"


class ServerConfig(BaseSettings):
    """Server configuration."""
    model_config = SettingsConfigDict(env_prefix='SERVER_')

    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False
    cors_origins: list[str] = ["*"]


class LoggingConfig(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix='LOG_')

    level: str = "INFO"
    format: str = "text"  # json or text
    file: Optional[str] = None
    max_size: str = "100MB"
    backup_count: int = 5

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of {valid_levels}')
        return v.upper()


class Settings(BaseSettings):
    """Main settings container."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    env: str = "development"
    debug: bool = False

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    prompts: PromptConfig = Field(default_factory=PromptConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Global settings instance
settings = Settings()
