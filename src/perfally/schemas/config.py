"""Configuration schema — validates perfally.yml."""

import os

from pydantic import BaseModel, Field, field_validator


class ModelConfig(BaseModel):
    """Model identifiers per plan-tier group."""

    fast: str = "gpt-4o-mini"  # free / starter
    quality: str = "gpt-4o"  # pro / agency
    max_tokens: int = Field(default=2048, gt=0)


class BrandDefaults(BaseModel):
    """Product identity used when a report carries no agency branding."""

    name: str = "PerfAlly"
    contact: str = "perfally.com"
    accent_color: str = "#2563eb"


class ReportConfig(BaseModel):
    """Top-level configuration loaded from perfally.yml.

    Every field has a default, so an empty file is a valid config. API keys
    are never read from YAML; they come from ``PAGESPEED_API_KEY`` and
    ``OPENAI_API_KEY``.
    """

    strategy: str = "mobile"
    psi_timeout: float = Field(default=60.0, gt=0)
    llm_timeout: float = Field(default=60.0, gt=0)
    models: ModelConfig = ModelConfig()
    brand: BrandDefaults = BrandDefaults()
    output_directory: str = "./output"

    pagespeed_api_key: str | None = Field(
        default_factory=lambda: os.environ.get("PAGESPEED_API_KEY") or None,
        exclude=True,
    )
    openai_api_key: str | None = Field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY") or None,
        exclude=True,
        repr=False,
    )

    @field_validator("strategy")
    @classmethod
    def check_strategy(cls, v: str) -> str:
        if v not in ("mobile", "desktop"):
            raise ValueError(f"strategy must be 'mobile' or 'desktop', got {v!r}")
        return v
