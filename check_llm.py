#!/usr/bin/env python3
"""Check that the configured language model is reachable and answers."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from autoapply.config import load_settings
from autoapply.llm import OllamaClient, get_llm_client
from autoapply.log import get_logger

log = get_logger(__name__)


def main() -> int:
    settings = load_settings()
    client = get_llm_client(settings.llm)
    log.info("Checking %s model %s at %s", settings.llm.provider, settings.llm.model, settings.llm.base_url)

    if not client.health_check():
        log.error("Model endpoint is not reachable")
        if isinstance(client, OllamaClient):
            log.error("Start it with: ollama serve   then: ollama pull %s", settings.llm.model)
        return 1

    if isinstance(client, OllamaClient):
        try:
            names = [m.get("name", "") for m in client.list_models()]
            log.info("Available models: %s", ", ".join(names) or "(none)")
        except Exception as exc:
            log.warning("Could not list models: %s", exc)

    response = client.generate("Reply with exactly one word: ready")
    if not response.success:
        log.error("Test generation failed: %s", response.error)
        return 1
    log.info("Test generation OK: %s", (response.data or "").strip()[:80])
    return 0


if __name__ == "__main__":
    sys.exit(main())
