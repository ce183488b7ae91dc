"""
Queryable surfaces: a page plus its attached frames, and the safe probes used on them.

Every probe here swallows element errors (stale, detached, not found, timeout)
and returns a neutral value. Callers treat that as "not available right now".
"""
from __future__ import annotations

import re
from typing import Any

from autoapply.log import get_logger

log = get_logger(__name__)

_WS = re.compile(r"\s+")

JS_CLICK = "(el) => { if (typeof el.click === 'function') { el.click(); return true; } return false; }"


def normalize_space(text: str | None) -> str:
    return _WS.sub(" ", text or "").strip()


def is_closed(page: Any) -> bool:
    try:
        return bool(page.is_closed())
    except Exception:
        return True


def is_detached(surface: Any) -> bool:
    checker = getattr(surface, "is_detached", None)
    if checker is None:
        return False
    try:
        return bool(checker())
    except Exception:
        return True


def page_url(page: Any) -> str:
    try:
        return page.url or ""
    except Exception:
        return ""


def iter_surfaces(page: Any) -> list[Any]:
    """The page itself followed by every live child frame."""
    if is_closed(page):
        return []
    surfaces: list[Any] = [page]
    try:
        main = page.main_frame
        frames = list(page.frames)
    except Exception:
        return surfaces
    for frame in frames:
        if frame is main or is_detached(frame):
            continue
        surfaces.append(frame)
    return surfaces


def safe_visible(locator: Any, timeout: int = 500) -> bool:
    try:
        return bool(locator.is_visible(timeout=timeout))
    except Exception:
        return False


def safe_count(locator: Any) -> int:
    try:
        return int(locator.count())
    except Exception:
        return 0


def safe_attr(locator: Any, name: str) -> str:
    try:
        return locator.get_attribute(name, timeout=1000) or ""
    except Exception:
        return ""


def first_visible(locator: Any, timeout: int = 500) -> Any | None:
    """First visible match of *locator*, or None."""
    for i in range(safe_count(locator)):
        candidate = locator.nth(i)
        if safe_visible(candidate, timeout=timeout):
            return candidate
    return None


def body_text(surface: Any, timeout: int = 2500) -> str:
    try:
        return surface.locator("body").inner_text(timeout=timeout) or ""
    except Exception:
        return ""


def locator_text(locator: Any) -> str:
    """Visible label of a control: text, else aria-label, else value."""
    try:
        text = (locator.text_content(timeout=1000) or "").strip()
    except Exception:
        text = ""
    if not text:
        text = safe_attr(locator, "aria-label").strip()
    if not text:
        text = safe_attr(locator, "value").strip()
    return normalize_space(text)[:120]


def page_fingerprint(page: Any) -> str:
    """URL without query/fragment, title and a short body snippet; equality means no progress."""
    if is_closed(page):
        return "closed"
    url = page_url(page).split("#")[0].split("?")[0]
    try:
        title = page.title()
    except Exception:
        title = ""
    snippet = normalize_space(body_text(page, timeout=1400)).lower()[:260]
    return f"{url}|{title}|{snippet}"


def pause(page: Any, ms: int) -> None:
    try:
        page.wait_for_timeout(ms)
    except Exception:
        pass


def wait_for_dom(page: Any, timeout: int = 10_000) -> None:
    try:
        page.wait_for_load_state("domcontentloaded", timeout=timeout)
    except Exception:
        pass


def bring_to_front(page: Any) -> None:
    try:
        page.bring_to_front()
    except Exception:
        pass


def click_primary_action(locator: Any, page: Any) -> bool:
    """Plain click, then a forced click if something intercepted the first."""
    try:
        locator.scroll_into_view_if_needed(timeout=3000)
        locator.click(timeout=6000)
        return True
    except Exception:
        pass
    try:
        locator.scroll_into_view_if_needed(timeout=3000)
        locator.click(timeout=6000, force=True)
    except Exception:
        return False
    pause(page, 250)
    return True


def script_click(locator: Any) -> bool:
    try:
        return bool(locator.evaluate(JS_CLICK))
    except Exception:
        return False
