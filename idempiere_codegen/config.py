"""
Codegen Configuration
=====================
Centralized configuration management with validation.
"""

import os
from typing import Optional, Literal
from pydantic import BaseModel, Field, field_validator, ConfigDict
from dotenv import load_dotenv

load_dotenv()


_PROVIDER_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class AIConfig(BaseModel):
    """Configuration for the AI generation backend."""
    enabled: bool = Field(default_factory=lambda: _env_flag("IDEMPIERE_AI_ENABLED"))
    provider: Literal["anthropic", "openai", "google", "none"] = Field(
        default_factory=lambda: os.getenv("IDEMPIERE_AI_PROVIDER", "anthropic")
    )
    model: Optional[str] = Field(default_factory=lambda: os.getenv("IDEMPIERE_AI_MODEL"))
    api_key_env: Optional[str] = None

    default_models: dict[str, str] = {
        "anthropic": "claude-sonnet-4-20250514",
        "openai": "gpt-4o",
        "google": "gemini-2.5-flash",
    }

    temperature: float = 0.0
    max_tokens: int = 4096
    timeout: int = 60

    @field_validator("max_tokens", "timeout")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v

    def resolve_model(self) -> Optional[str]:
        """Return the configured model, or the provider default."""
        if self.model:
            return self.model
        return self.default_models.get(self.provider)

    def resolve_api_key(self, default_env: Optional[str] = None) -> Optional[str]:
        """Look up the API key, preferring ``api_key_env`` when set.

        Args:
            default_env: Env var to consult when ``api_key_env`` is unset.
                Defaults to the provider's conventional variable.

        Returns:
            The key, or None if no non-blank value is found.
        """
        env_name = self.api_key_env or default_env or _PROVIDER_KEY_ENV.get(self.provider)
        if not env_name:
            return None
        key = os.getenv(env_name)
        if key and key.strip():
            return key.strip()
        return None


class SkillSourceConfig(BaseModel):
    """A local directory holding ``<skill>/SKILL.md`` folders."""
    name: str
    path: str
    priority: int = 0


class SkillsConfig(BaseModel):
    """Configuration for skill sources."""
    sources: list[SkillSourceConfig] = Field(
        default_factory=lambda: (
            [SkillSourceConfig(name="local", path=os.getenv("IDEMPIERE_SKILLS_DIR"))]
            if os.getenv("IDEMPIERE_SKILLS_DIR")
            else []
        )
    )


class GuardrailConfig(BaseModel):
    """Configuration for generated-code validation."""
    critical_prefixes: list[str] = [
        "org.idempiere.", "org.compiere.", "org.adempiere.",
    ]
    runtime_prefixes: list[str] = [
        "java.", "jdk.", "sun.", "com.sun.", "org.w3c.", "org.xml.", "org.ietf.",
    ]
    max_displayed_issues: int = 10

    @field_validator("max_displayed_issues")
    @classmethod
    def validate_max_displayed(cls, v):
        if v < 1:
            raise ValueError("max_displayed_issues must be at least 1")
        return v


class ClasspathConfig(BaseModel):
    """Configuration for locating the target platform p2 repository."""
    home_env: str = "IDEMPIERE_HOME"
    sibling_dir_name: str = "idempiere"
    repository_subdir: str = "org.idempiere.p2/target/repository"
    archive_suffix: str = ".jar"


class LoggingConfig(BaseModel):
    """Configuration for logs and session transcripts."""
    log_dir: str = "~/.idempiere-cli/logs"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    keep_sessions: int = 20


class CodegenConfig(BaseModel):
    """Complete AI code generation configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ai: AIConfig = Field(default_factory=AIConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    guardrails: GuardrailConfig = Field(default_factory=GuardrailConfig)
    classpath: ClasspathConfig = Field(default_factory=ClasspathConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Singleton
_config: Optional[CodegenConfig] = None


def get_config() -> CodegenConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = CodegenConfig()
    return _config


def reload_config() -> CodegenConfig:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = CodegenConfig()
    return _config
