from __future__ import annotations

import pytest

from autoapply.config import (
    CandidateProfile,
    load_profile_overrides,
    load_settings,
    to_bool,
    to_float,
    to_int,
    to_list,
)


def test_defaults_without_env(tmp_path):
    settings = load_settings(tmp_path / "absent.yaml")
    assert settings.candidate.name == "Candidate"
    assert settings.search.terms == ("Java Backend Developer",)
    assert settings.search.location == "Australia"
    assert settings.search.max_jobs_to_apply == 5
    assert settings.llm.provider == "ollama"
    assert settings.llm.base_url == "http://localhost:11434"
    assert settings.agent.enable_auto_submit is False
    assert settings.llm.browser_thinking is True


def test_env_values_are_parsed(monkeypatch, tmp_path):
    monkeypatch.setenv("CANDIDATE_NAME", "Jane Doe")
    monkeypatch.setenv("REQUIRES_SPONSORSHIP", "TRUE")
    monkeypatch.setenv("WILLING_TO_RELOCATE", "yes")
    monkeypatch.setenv("YEARS_EXPERIENCE", "seven")
    monkeypatch.setenv("PRIMARY_SKILLS", "Java, Spring Boot ,,Kafka")
    monkeypatch.setenv("SEARCH_TERMS", "Java Developer|Backend Engineer")
    monkeypatch.setenv("ENABLE_AUTO_SUBMIT", "true")
    monkeypatch.setenv("BROWSER_LLM_THINKING", "false")

    settings = load_settings(tmp_path / "absent.yaml")

    assert settings.candidate.name == "Jane Doe"
    assert settings.candidate.requires_sponsorship is True
    assert settings.candidate.willing_to_relocate is False
    assert settings.candidate.years_experience == 0
    assert settings.candidate.primary_skills == ("Java", "Spring Boot", "Kafka")
    assert settings.search.terms == ("Java Developer", "Backend Engineer")
    assert settings.agent.enable_auto_submit is True
    assert settings.llm.browser_thinking is False
    assert str(tmp_path) in settings.memory.db_path


def test_openai_provider_uses_openai_base_url(monkeypatch, tmp_path):
    monkeypatch.setenv("LLM_PROVIDER", "OpenAI")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://127.0.0.1:8080/v1")
    monkeypatch.setenv("LLM_MODEL", "local-model")
    settings = load_settings(tmp_path / "absent.yaml")
    assert settings.llm.provider == "openai"
    assert settings.llm.base_url == "http://127.0.0.1:8080/v1"
    assert settings.llm.model == "local-model"


def test_yaml_overrides_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CANDIDATE_NAME", "From Env")
    profile = tmp_path / "profile.yaml"
    profile.write_text(
        "candidate:\n"
        "  name: From Yaml\n"
        "  primary_skills: [Go, Rust]\n"
        "  unknown_key: ignored\n"
        "search:\n"
        "  terms: [Platform Engineer]\n"
        "  max_jobs_to_apply: 2\n",
        encoding="utf-8",
    )
    settings = load_settings(profile)
    assert settings.candidate.name == "From Yaml"
    assert settings.candidate.primary_skills == ("Go", "Rust")
    assert settings.search.terms == ("Platform Engineer",)
    assert settings.search.max_jobs_to_apply == 2


@pytest.mark.parametrize("content", ["candidate: [unclosed", "- just\n- a list\n"])
def test_unusable_yaml_is_ignored(tmp_path, content):
    profile = tmp_path / "profile.yaml"
    profile.write_text(content, encoding="utf-8")
    assert load_profile_overrides(profile) == {}


def test_answer_hints_from_profile():
    hints = CandidateProfile(current_location="Unknown", visa_status="Unknown", years_experience=0).answer_hints()
    assert hints.current_location == ""
    assert hints.visa == "No"
    assert hints.years_experience == "3"

    hints = CandidateProfile(current_location="Perth", requires_sponsorship=True, years_experience=8).answer_hints()
    assert hints.current_location == "Perth"
    assert hints.sponsorship is True
    assert hints.years_experience == "8"


def test_conversion_helpers():
    assert to_bool("True", False) is True
    assert to_bool("1", True) is False
    assert to_bool(None, True) is True
    assert to_int("12", 0) == 12
    assert to_int("", 5) == 5
    assert to_float("0.25", 1.0) == 0.25
    assert to_float("x", 1.0) == 1.0
    assert to_list(" a, ,b ") == ["a", "b"]
    assert to_list("a|b", sep="|") == ["a", "b"]
