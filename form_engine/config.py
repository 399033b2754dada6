"""Configuration for the form engine."""
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine behaviour settings, overridable with FORM_ENGINE_* environment variables."""

    # Validation settings
    default_required_message: str = 'This field is required'
    enforce_required_flag: bool = True  # treat FormField.required as a REQUIRED rule
    validate_hidden_fields: bool = False

    # Calculation settings
    clear_failed_calculations: bool = False  # failed calculations keep the prior value
    max_expression_length: int = Field(default=1000, gt=0)

    # Submission settings
    timezone: str = 'UTC'

    # Logging settings (see logging_config.setup_logging)
    log_level: str = 'WARNING'
    log_colors: bool = True

    model_config = SettingsConfigDict(env_prefix='FORM_ENGINE_', case_sensitive=False)

    def get(self, key, default=None):
        """Get a configuration value by name."""
        return getattr(self, key, default)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Process-wide settings, read from the environment on first use."""
    return EngineSettings()
