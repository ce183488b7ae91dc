"""
Language-inference service.

Two backends share one contract:
  OllamaClient        -> local Ollama server (/api/tags, /api/generate) over requests
  OpenAICompatClient  -> any OpenAI-compatible chat endpoint (Groq, vLLM, ...) via the openai SDK

Public methods never raise; failures come back as ``LLMResponse(success=False)``
so every call site can drop to its heuristic path.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import requests

from autoapply.config import LLMSettings
from autoapply.log import get_logger, truncate
from autoapply.retry import retry

log = get_logger(__name__)

T = TypeVar("T")

_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


class LLMError(Exception):
    """Raised inside a client when the model returns nothing usable."""


@dataclass
class LLMResponse(Generic[T]):
    success: bool
    data: T | None = None
    reasoning: str | None = None
    error: str | None = None
    tokens_used: dict[str, int] = field(default_factory=dict)


def _is_client_error(exc: BaseException) -> bool:
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status is not None and 400 <= status < 500


def extract_json(text: str) -> dict[str, Any]:
    """Parse the first ``{...}`` span of a model reply."""
    match = _JSON_SPAN.search(text or "")
    if not match:
        raise LLMError("No JSON found in response: " + (text or "")[:200])
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise LLMError(f"Malformed JSON in response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise LLMError("JSON response is not an object")
    return parsed


def build_json_prompt(system_prompt: str, user_prompt: str) -> str:
    return (
        f"{system_prompt}\n\n"
        f"User Request:\n{user_prompt}\n\n"
        "Please respond ONLY with valid JSON in the following format "
        "(no markdown, no code blocks, no extra text):"
    )


class BaseLLMClient:
    """Shared prompt plumbing; subclasses implement ``_complete`` and ``health_check``."""

    def __init__(self, settings: LLMSettings) -> None:
        self.settings = settings
        self.model = settings.model

    def health_check(self) -> bool:
        raise NotImplementedError

    def _complete(self, prompt: str) -> tuple[str, dict[str, int]]:
        raise NotImplementedError

    def _log_thinking(self, stage: str, content: str) -> None:
        if not self.settings.thinking_logs:
            return
        cleaned = (content or "").strip()
        if not cleaned:
            return
        log.info("[LLM:%s] %s", stage, truncate(cleaned, self.settings.thinking_max_chars))

    def generate(self, prompt: str) -> LLMResponse[str]:
        try:
            log.debug("Sending prompt to model: %s...", prompt[:100])
            self._log_thinking("generate.prompt", prompt)
            text, tokens = self._complete(prompt)
            self._log_thinking("generate.response", text)
            return LLMResponse(success=True, data=text, tokens_used=tokens)
        except Exception as exc:
            log.error("Error generating text: %s", exc)
            return LLMResponse(success=False, error=str(exc))

    def generate_json(self, system_prompt: str, user_prompt: str) -> LLMResponse[dict]:
        try:
            self._log_thinking("json.system", system_prompt)
            self._log_thinking("json.user", user_prompt)
            text, tokens = self._complete(build_json_prompt(system_prompt, user_prompt))
            self._log_thinking("json.raw_response", text)
            data = extract_json(text)
            self._log_thinking("json.parsed", json.dumps(data))
            return LLMResponse(success=True, data=data, reasoning=text, tokens_used=tokens)
        except Exception as exc:
            log.error("Error generating JSON: %s", exc)
            return LLMResponse(success=False, error=str(exc))

    def chat(self, messages: list[dict[str, str]]) -> LLMResponse[str]:
        conversation = "\n\n".join(f"{m['role']}: {m['content']}" for m in messages)
        self._log_thinking("chat.messages", conversation)
        return self.generate(conversation)

    def extract_structured(self, text: str, schema: str) -> LLMResponse[dict]:
        system_prompt = (
            "You are a JSON extraction expert. Extract information from the given text and "
            "return ONLY valid JSON matching the provided schema. Do not include any markdown "
            "formatting, code blocks, or explanations."
        )
        user_prompt = (
            f"TEXT TO EXTRACT FROM:\n{text}\n\n"
            f"REQUIRED JSON SCHEMA:\n{schema}\n\n"
            "Extract the data and respond with ONLY the JSON object."
        )
        return self.generate_json(system_prompt, user_prompt)


class OllamaClient(BaseLLMClient):
    def __init__(self, settings: LLMSettings, session: requests.Session | None = None) -> None:
        super().__init__(settings)
        self.base_url = settings.base_url.rstrip("/")
        self.http = session or requests.Session()

    def health_check(self) -> bool:
        try:
            r = self.http.get(f"{self.base_url}/api/tags", timeout=10)
            r.raise_for_status()
            names = [m.get("name", "") for m in (r.json().get("models") or [])]
            if self.model not in names:
                log.warning("Model %s not found. Available models: %s", self.model, names)
            log.info("Ollama health check passed. Model: %s", self.model)
            return True
        except (requests.RequestException, ValueError) as exc:
            log.error("Ollama health check failed: %s", exc)
            return False

    def list_models(self) -> list[dict[str, Any]]:
        r = self.http.get(f"{self.base_url}/api/tags", timeout=5)
        r.raise_for_status()
        return list(r.json().get("models") or [])

    @retry(
        max_attempts=2,
        base_delay=1.5,
        retryable=(requests.RequestException,),
        giveup=_is_client_error,
    )
    def _complete(self, prompt: str) -> tuple[str, dict[str, int]]:
        r = self.http.post(
            f"{self.base_url}/api/generate",
            json={
                "model": self.model,
                "prompt": prompt,
                "temperature": self.settings.temperature,
                "top_p": self.settings.top_p,
                "stream": False,
            },
            timeout=self.settings.timeout,
        )
        r.raise_for_status()
        payload = r.json()
        tokens = {
            "prompt": int(payload.get("prompt_eval_count") or 0),
            "completion": int(payload.get("eval_count") or 0),
        }
        return payload.get("response") or "", tokens


class OpenAICompatClient(BaseLLMClient):
    def __init__(self, settings: LLMSettings, client: Any = None) -> None:
        super().__init__(settings)
        if client is None:
            from openai import OpenAI

            client = OpenAI(
                api_key=settings.api_key or "not-needed",
                base_url=settings.base_url,
                timeout=settings.timeout,
            )
        self.client = client

    def health_check(self) -> bool:
        try:
            self.client.models.list()
            log.info("OpenAI-compatible endpoint reachable. Model: %s", self.model)
            return True
        except Exception as exc:
            log.error("OpenAI-compatible health check failed: %s", exc)
            return False

    @retry(max_attempts=2, base_delay=2.0, retryable=(Exception,), giveup=_is_client_error)
    def _complete(self, prompt: str) -> tuple[str, dict[str, int]]:
        r = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.settings.temperature,
            top_p=self.settings.top_p,
        )
        text = (r.choices[0].message.content or "").strip()
        usage = getattr(r, "usage", None)
        tokens = {
            "prompt": int(getattr(usage, "prompt_tokens", 0) or 0),
            "completion": int(getattr(usage, "completion_tokens", 0) or 0),
        }
        return text, tokens


def get_llm_client(settings: LLMSettings) -> BaseLLMClient:
    if settings.provider == "openai":
        log.info("Using OpenAI-compatible model endpoint: %s", settings.base_url)
        return OpenAICompatClient(settings)
    return OllamaClient(settings)
