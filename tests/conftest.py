"""Shared test fixtures for Skimmer tests.

Config is loaded at import time — set env vars before any ``skimmer``
module is imported by the test collector.
"""

import os

os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

import dataclasses  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture
def patch_config(monkeypatch):
    """Return a function that swaps ``config`` in the given modules.

    Usage: ``patch_config(relay_mod, main_mod, openai_api_key="")``.
    """
    from skimmer.config import config

    def _patch(*modules, **changes):
        new = dataclasses.replace(config, **changes)
        for mod in modules:
            monkeypatch.setattr(mod, "config", new)
        return new

    return _patch
