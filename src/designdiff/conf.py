from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from designdiff.image_diff.types import DiffOptions

DEFAULT_OPENAI_URL = "https://api.openai.com"
DEFAULT_OPENAI_MODEL = "gpt-4o"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_threshold: float = Field(default=0.05, ge=0.0, le=1.0)
    dim_factor: float = Field(default=0.3, ge=0.0, le=1.0)
    distinguish_antialiasing: bool = False
    workers: int = Field(default=1, ge=1)

    openai_api_key: str | None = None
    openai_url: str = DEFAULT_OPENAI_URL
    openai_model: str = DEFAULT_OPENAI_MODEL
    analysis_timeout: float = Field(default=120.0, gt=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        if "DESIGNDIFF_CHANNEL_THRESHOLD" in env:
            values["channel_threshold"] = env["DESIGNDIFF_CHANNEL_THRESHOLD"]
        if "DESIGNDIFF_DIM_FACTOR" in env:
            values["dim_factor"] = env["DESIGNDIFF_DIM_FACTOR"]
        if "DESIGNDIFF_DISTINGUISH_AA" in env:
            values["distinguish_antialiasing"] = (
                env["DESIGNDIFF_DISTINGUISH_AA"].strip().lower() in _TRUTHY
            )
        if "DESIGNDIFF_WORKERS" in env:
            values["workers"] = env["DESIGNDIFF_WORKERS"]
        if "DESIGNDIFF_ANALYSIS_TIMEOUT" in env:
            values["analysis_timeout"] = env["DESIGNDIFF_ANALYSIS_TIMEOUT"]

        api_key = env.get("DESIGNDIFF_OPENAI_API_KEY") or env.get("OPENAI_API_KEY")
        if api_key:
            values["openai_api_key"] = api_key
        if env.get("DESIGNDIFF_OPENAI_URL"):
            values["openai_url"] = env["DESIGNDIFF_OPENAI_URL"]
        if env.get("DESIGNDIFF_OPENAI_MODEL"):
            values["openai_model"] = env["DESIGNDIFF_OPENAI_MODEL"]

        return cls.model_validate(values)

    def diff_options(self, **overrides: object) -> DiffOptions:
        values: dict[str, object] = {
            "channel_threshold": self.channel_threshold,
            "dim_factor": self.dim_factor,
            "distinguish_antialiasing": self.distinguish_antialiasing,
            "workers": self.workers,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return DiffOptions.model_validate(values)
