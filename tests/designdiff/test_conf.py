from __future__ import annotations

import pytest
from pydantic import ValidationError

from designdiff.conf import DEFAULT_OPENAI_MODEL, Settings
from designdiff.image_diff.types import DiffOptions


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.openai_api_key is None
        assert settings.openai_model == DEFAULT_OPENAI_MODEL
        assert settings.diff_options() == DiffOptions()

    def test_from_env(self):
        settings = Settings.from_env(
            {
                "DESIGNDIFF_CHANNEL_THRESHOLD": "0.1",
                "DESIGNDIFF_DIM_FACTOR": "0",
                "DESIGNDIFF_DISTINGUISH_AA": "yes",
                "DESIGNDIFF_WORKERS": "4",
                "OPENAI_API_KEY": "sk-fallback",
            }
        )
        options = settings.diff_options()
        assert options.channel_threshold == 0.1
        assert options.dim_factor == 0.0
        assert options.distinguish_antialiasing is True
        assert options.workers == 4
        assert settings.openai_api_key == "sk-fallback"

    def test_prefixed_key_wins(self):
        settings = Settings.from_env(
            {"OPENAI_API_KEY": "sk-generic", "DESIGNDIFF_OPENAI_API_KEY": "sk-specific"}
        )
        assert settings.openai_api_key == "sk-specific"

    def test_overrides_skip_none(self):
        options = Settings().diff_options(channel_threshold=None, workers=2)
        assert options.channel_threshold == 0.05
        assert options.workers == 2

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            Settings.from_env({"DESIGNDIFF_CHANNEL_THRESHOLD": "2"})
        with pytest.raises(ValidationError):
            DiffOptions(highlight_color=(256, 0, 0, 255))
        with pytest.raises(ValidationError):
            DiffOptions(workers=0)
