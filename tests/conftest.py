"""Shared fixtures: every test runs offline against a throwaway environment."""
from __future__ import annotations

import pytest

_ENV_KEYS = (
    "CANDIDATE_NAME", "CANDIDATE_EMAIL", "CANDIDATE_PHONE", "CURRENT_LOCATION",
    "LINKEDIN_URL", "PORTFOLIO_URL", "YEARS_EXPERIENCE", "REQUIRES_SPONSORSHIP",
    "WILLING_TO_RELOCATE", "VISA_STATUS", "PRIMARY_SKILLS", "SECONDARY_SKILLS", "RESUME_PATH",
    "SEARCH_TERMS", "JOB_LOCATION", "MAX_JOBS_TO_APPLY", "JOB_BOARDS", "APP_MODE",
    "LLM_PROVIDER", "LLM_MODEL", "OLLAMA_MODEL", "OLLAMA_BASE_URL", "OPENAI_BASE_URL", "OPENAI_API_KEY",
    "BROWSER_LLM_THINKING", "LLM_THINKING_LOGS", "ENABLE_AUTO_SUBMIT", "BROWSER_HEADLESS",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Clear agent env vars and point data/log locations at a temp directory."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("AUTOAPPLY_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "data" / "applications.db"))
    monkeypatch.setenv("BROWSER_SESSION_DIR", str(tmp_path / "chrome-session"))
    (tmp_path / "logs").mkdir(parents=True, exist_ok=True)


@pytest.fixture
def tracker(tmp_path):
    from autoapply.tracker import ApplicationTracker

    with ApplicationTracker(tmp_path / "test.db") as t:
        yield t
