"""
AI Settings Models for Configuration Management
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from app.utils.exceptions import ConfigurationError


class LLMSettings(BaseModel):
    """LLM provider configuration"""
    api_key: str = Field(description="Provider credential")
    base_url: str = Field(description="Provider base endpoint URL")
    model_name: str = Field(description="Model identifier sent with every request")
    request_delay: float = Field(default=0.5, ge=0.0, le=60.0, description="Pause after each throttled call, in seconds")
    timeout: int = Field(default=60, ge=1, le=600, description="Request timeout in seconds")

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')


class ExtractionSettings(BaseModel):
    """Document and entity extraction configuration"""
    max_text_chars: int = Field(default=2000, ge=100, description="Extracted text is truncated to this prefix")
    name_prompt_chars: int = Field(default=800, ge=50, description="Resume prefix sent for name resolution")
    phone_country_code: str = Field(default="91", description="Country code replacing a leading trunk 0")

    @field_validator('phone_country_code')
    @classmethod
    def validate_country_code(cls, v):
        v = v.lstrip('+')
        if not v.isdigit() or len(v) > 3:
            raise ValueError('Country code must be 1-3 digits')
        return v


class AppSettings(BaseModel):
    """Complete service configuration"""
    llm: LLMSettings
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)


def _required(key: str, value: Optional[str]) -> str:
    if not value or not value.strip():
        raise ConfigurationError(f"Missing LLM configuration: {key} is required", config_key=key)
    return value.strip()


def load_settings(env_file: Optional[str] = None) -> AppSettings:
    """Build settings from the environment (and .env). Missing LLM settings are fatal."""
    load_dotenv(env_file)

    api_key = _required("OPENAI_API_KEY or ANTHROPIC_API_KEY",
                        os.getenv("OPENAI_API_KEY") or os.getenv("ANTHROPIC_API_KEY"))
    base_url = _required("OPENAI_BASE_URL", os.getenv("OPENAI_BASE_URL"))
    model_name = _required("OPENAI_MODEL", os.getenv("OPENAI_MODEL"))

    try:
        return AppSettings(
            llm=LLMSettings(
                api_key=api_key,
                base_url=base_url,
                model_name=model_name,
                request_delay=float(os.getenv("LLM_REQUEST_DELAY", "0.5")),
                timeout=int(os.getenv("LLM_TIMEOUT", "60")),
            ),
            extraction=ExtractionSettings(
                max_text_chars=int(os.getenv("MAX_TEXT_CHARS", "2000")),
                name_prompt_chars=int(os.getenv("NAME_PROMPT_CHARS", "800")),
                phone_country_code=os.getenv("PHONE_COUNTRY_CODE", "91"),
            ),
        )
    except ValueError as e:
        # pydantic's ValidationError is a ValueError too
        raise ConfigurationError(f"Invalid configuration: {e}", cause=e) from e
