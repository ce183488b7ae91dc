from __future__ import annotations

import pytest

from autoapply.browser.fields import (
    FieldAnswerResolver,
    FieldIntent,
    InferredAnswerCache,
    choose_select_option,
    classify_intent,
    clean_model_answer,
    contact_value,
    expected_salary_fallback,
    first_real_option,
    is_answer_compatible,
    preferred_boolean_answer,
)
from autoapply.models import JobContext

from tests.browser.fakes import FakeLLM, ForbiddenLLM, make_candidate, make_hints


def _resolver(llm=None, available=True, **overrides) -> FieldAnswerResolver:
    candidate = make_candidate(**overrides)
    resolver = FieldAnswerResolver(candidate, candidate.answer_hints(), llm=llm)
    resolver.llm_available = available
    return resolver


@pytest.mark.parametrize(
    "context, declared_type, expected",
    [
        ("Expected salary (AUD)", "text", FieldIntent.SALARY),
        ("Annual CTC", "text", FieldIntent.SALARY),
        ("City", "text", FieldIntent.LOCATION),
        ("When can you join?", "text", FieldIntent.NOTICE_PERIOD),
        ("LinkedIn Profile URL", "url", FieldIntent.LINKEDIN),
        ("Personal website", "url", FieldIntent.PORTFOLIO),
        ("Do you hold a valid work permit?", "text", FieldIntent.VISA),
        ("Will you require sponsorship?", "text", FieldIntent.SPONSORSHIP),
        ("Are you willing to relocate?", "text", FieldIntent.RELOCATE),
        ("Years of experience with Java", "text", FieldIntent.EXPERIENCE),
        ("Rate yourself", "number", FieldIntent.EXPERIENCE),
        ("Why do you want to work here?", "textarea", FieldIntent.GENERIC),
    ],
)
def test_classify_intent(context, declared_type, expected):
    assert classify_intent(context, declared_type) is expected


def test_classify_intent_first_match_wins():
    # Mentions both salary and location; salary is checked first.
    assert classify_intent("Salary expectation for this location", "text") is FieldIntent.SALARY
    # A numeric visa question is still a visa question.
    assert classify_intent("Visa subclass", "number") is FieldIntent.VISA


@pytest.mark.parametrize(
    "context, declared_type",
    [
        ("Will you now or in the future require sponsorship?", "text"),
        ("Are you willing to relocate?", "text"),
        ("Do you have a valid visa?", "text"),
        ("Years of experience with Spring Boot", "number"),
        ("Current city", "text"),
        ("LinkedIn profile", "url"),
        ("Portfolio", "url"),
        ("Notice period", "text"),
    ],
)
def test_heuristic_preferred_intents_ignore_model(context, declared_type):
    without_model = _resolver().resolve(context, declared_type)
    with_model = _resolver(llm=ForbiddenLLM()).resolve(context, declared_type)
    assert with_model == without_model
    assert with_model is not None


def test_heuristic_preferred_values():
    resolver = _resolver(llm=ForbiddenLLM(), requires_sponsorship=True, willing_to_relocate=False)
    assert resolver.resolve("Do you require sponsorship?") == "Yes"
    assert resolver.resolve("Are you willing to relocate?") == "No"
    assert resolver.resolve("Years of experience", "number") == "5"
    assert resolver.resolve("Current location") == "Sydney, Australia"


def test_missing_configured_value_leaves_field_empty():
    resolver = _resolver(llm=ForbiddenLLM(), portfolio_url="")
    assert resolver.resolve("Portfolio URL", "url") is None


def test_salary_fallback_for_sydney():
    job = JobContext(title="Backend Engineer", location="Sydney, Australia", description="Great team, modern stack.")
    assert expected_salary_fallback(job) == "AUD 130000"


def test_salary_fallback_prefers_posted_range():
    job = JobContext(location="Sydney", description="Salary: $120k - $140k plus super")
    assert expected_salary_fallback(job) == "$120k - $140k"


def test_salary_fallback_regions():
    assert expected_salary_fallback(JobContext(location="Bengaluru, India")) == "3500000"
    assert expected_salary_fallback(JobContext(location="Berlin")) == "140000"
    assert expected_salary_fallback(None) == "140000"


def test_model_salary_answer_is_kept_when_shaped_like_money():
    resolver = _resolver(llm=FakeLLM(text='"AUD 150000"'))
    resolver.start_job(JobContext(location="Sydney, Australia"))
    assert resolver.resolve("Expected salary") == "AUD 150000"


def test_invalid_model_salary_falls_back_to_heuristic():
    resolver = _resolver(llm=FakeLLM(text="Let's discuss later"))
    resolver.start_job(JobContext(location="Sydney, Australia"))
    assert resolver.resolve("Expected salary") == "AUD 130000"


def test_model_unavailable_uses_heuristic_only():
    llm = FakeLLM(text="anything")
    resolver = _resolver(llm=llm, available=False)
    assert resolver.resolve("Why do you want this role?", "textarea") is None
    assert llm.prompts == []


def test_generic_answer_comes_from_model_and_is_cached():
    llm = FakeLLM(text="  I enjoy   building reliable backend systems.  ")
    resolver = _resolver(llm=llm)
    first = resolver.resolve("Why do you want this role?", "textarea")
    second = resolver.resolve("Why do you want this role?", "textarea")
    assert first == "I enjoy building reliable backend systems."
    assert second == first
    assert len(llm.prompts) == 1


def test_start_job_clears_cache():
    llm = FakeLLM(text="Because of the product.")
    resolver = _resolver(llm=llm)
    resolver.resolve("Why us?", "textarea")
    resolver.start_job(JobContext(title="Another"))
    resolver.resolve("Why us?", "textarea")
    assert len(llm.prompts) == 2


def test_prompt_carries_job_and_profile():
    llm = FakeLLM(text="ok")
    resolver = _resolver(llm=llm)
    resolver.start_job(JobContext(title="Platform Engineer", company="Acme"))
    resolver.resolve("Anything else?", "text")
    prompt = llm.prompts[0]
    assert "Platform Engineer" in prompt
    assert "Acme" in prompt
    assert "Jane Doe" in prompt
    assert "Detected intent: generic" in prompt


def test_cache_is_isolated_by_field_type():
    cache = InferredAnswerCache()
    cache.put("text", "team size", "about twelve people")
    assert cache.get("text", "team size") == "about twelve people"
    assert cache.get("number", "team size") is None


def test_cache_key_is_bounded():
    key = InferredAnswerCache.key("text", "x" * 1000)
    assert len(key) == 300


@pytest.mark.parametrize(
    "raw, declared_type, expected",
    [
        ('"Yes"', "text", "Yes"),
        ("About 6 years", "number", "6"),
        ("none", "number", None),
        ("", "text", None),
        ("a" * 400, "text", "a" * 220),
    ],
)
def test_clean_model_answer(raw, declared_type, expected):
    assert clean_model_answer(raw, declared_type) == expected


def test_answer_shape_validation():
    assert is_answer_compatible("Yes", FieldIntent.SPONSORSHIP, "text")
    assert not is_answer_compatible("Maybe", FieldIntent.SPONSORSHIP, "text")
    assert not is_answer_compatible("6 years", FieldIntent.EXPERIENCE, "text")
    assert is_answer_compatible("6", FieldIntent.EXPERIENCE, "text")
    assert not is_answer_compatible("AUD 120000", FieldIntent.LOCATION, "text")
    assert not is_answer_compatible("Sydney", FieldIntent.SALARY, "text")


def test_contact_values():
    candidate = make_candidate()
    assert contact_value("Email address", candidate) == "jane@example.com"
    assert contact_value("Mobile phone number", candidate) == "+61400000000"
    assert contact_value("First name", candidate) == "Jane"
    assert contact_value("Last name", candidate) == "Doe"
    assert contact_value("Full name", candidate) == "Jane Doe"
    assert contact_value("Company name", candidate) is None
    assert contact_value("Cover letter", candidate) is None


def test_preferred_boolean_answer():
    hints = make_hints(requires_sponsorship=False, willing_to_relocate=True, visa_status="Yes")
    assert preferred_boolean_answer("Will you require visa sponsorship?", hints) == "no"
    assert preferred_boolean_answer("Are you open to relocating?", hints) == "yes"
    assert preferred_boolean_answer("Do you have work authorization?", hints) == "yes"
    assert preferred_boolean_answer("Do you have a driving licence?", hints) == "yes"


def test_select_option_matching():
    hints = make_hints(requires_sponsorship=False)
    options = [
        {"value": "", "text": "Select an option"},
        {"value": "Yes", "text": "Yes"},
        {"value": "No", "text": "No"},
    ]
    assert choose_select_option(options, "Will you require sponsorship?", hints) == "No"
    assert choose_select_option(options, "Preferred shift", hints) is None
    assert first_real_option(options) == "Yes"
    assert first_real_option([{"value": "select", "text": "Select..."}]) is None
