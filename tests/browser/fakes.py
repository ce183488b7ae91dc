"""
In-memory stand-ins for the Playwright sync objects the browser flows touch.

Only the calls the flows make are implemented. Element metadata comes back
from ``evaluate`` keyed by the script constant, the same way the real page
answers those scripts.
"""
from __future__ import annotations

from typing import Any, Callable

from autoapply.browser.actions import JS_CONTROL_META
from autoapply.browser.forms import JS_FIELD_META, JS_RADIO_LABEL, JS_SELECT_OPTIONS
from autoapply.browser.surfaces import JS_CLICK
from autoapply.config import AnswerHints, CandidateProfile, LLMSettings, Settings
from autoapply.llm import LLMResponse


class FakeError(Exception):
    """Raised where Playwright would time out or fail to find an element."""


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeElement:
    def __init__(
        self,
        text: str = "",
        *,
        meta: dict[str, Any] | None = None,
        visible: bool = True,
        disabled: bool = False,
        checked: bool = False,
        children: dict[str, list["FakeElement"]] | None = None,
        scripts: dict[str, Any] | None = None,
        options: list[dict[str, str]] | None = None,
        on_click: Callable[[], None] | None = None,
        fail_click: bool = False,
    ) -> None:
        self.text = text
        self.meta = dict(meta or {})
        self.visible = visible
        self.disabled = disabled
        self.checked = checked
        self.children = children if children is not None else {}
        self.scripts = scripts or {}
        self.options = options or []
        self.on_click = on_click
        self.fail_click = fail_click
        self.clicks = 0
        self.filled: str | None = None
        self.selected: str | None = None
        self.files: str | None = None

    def __repr__(self) -> str:
        return f"FakeElement({self.text or self.meta.get('text', '')!r})"

    # state probes
    def is_visible(self, timeout: int | None = None) -> bool:
        return self.visible

    def is_disabled(self, timeout: int | None = None) -> bool:
        return self.disabled

    def is_checked(self, timeout: int | None = None) -> bool:
        return self.checked

    def wait_for(self, state: str = "visible", timeout: int | None = None) -> None:
        if not self.visible:
            raise FakeError("waiting for element to be visible")

    def inner_text(self, timeout: int | None = None) -> str:
        return self.text

    def text_content(self, timeout: int | None = None) -> str:
        return self.text

    def get_attribute(self, name: str, timeout: int | None = None) -> str | None:
        return self.meta.get(name)

    def input_value(self, timeout: int | None = None) -> str:
        return self.meta.get("value", "")

    # queries
    def locator(self, selector: str) -> "FakeGroup":
        return FakeGroup(self.children.get(selector, []))

    def evaluate(self, script: str, arg: Any = None) -> Any:
        if script == JS_CLICK:
            self.click()
            return True
        if script in self.scripts:
            value = self.scripts[script]
            return value() if callable(value) else value
        if script in (JS_FIELD_META, JS_CONTROL_META):
            return dict(self.meta)
        if script == JS_RADIO_LABEL:
            return self.text
        if script == JS_SELECT_OPTIONS:
            return list(self.options)
        return None

    # actions
    def scroll_into_view_if_needed(self, timeout: int | None = None) -> None:
        if not self.visible:
            raise FakeError("element is not visible")

    def click(self, timeout: int | None = None, force: bool = False) -> None:
        if self.fail_click:
            raise FakeError("click intercepted")
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    def fill(self, value: str, timeout: int | None = None) -> None:
        self.filled = value
        self.meta["value"] = value

    def check(self, timeout: int | None = None) -> None:
        self.checked = True
        self.meta["checked"] = True

    def uncheck(self, timeout: int | None = None) -> None:
        self.checked = False
        self.meta["checked"] = False

    def select_option(self, value: str, timeout: int | None = None) -> None:
        self.selected = value
        self.meta["value"] = value

    def set_input_files(self, path: str, timeout: int | None = None) -> None:
        self.files = path
        self.meta["value"] = path


_MISSING = FakeElement(visible=False)


class FakeGroup:
    """A resolved selector: indexable matches, with element calls going to the first."""

    def __init__(self, items: list[FakeElement]) -> None:
        self.items = list(items)

    def count(self) -> int:
        return len(self.items)

    def nth(self, index: int) -> FakeElement:
        return self.items[index]

    @property
    def first(self) -> FakeElement:
        return self.items[0] if self.items else _MISSING

    def locator(self, selector: str) -> "FakeGroup":
        found: list[FakeElement] = []
        for item in self.items:
            found.extend(item.children.get(selector, []))
        return FakeGroup(found)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.first, name)


class FakePage:
    def __init__(
        self,
        url: str = "https://www.linkedin.com/jobs/search/?keywords=java",
        *,
        title: str = "",
        body: str = "",
        elements: dict[str, list[FakeElement]] | None = None,
        frames: list["FakePage"] | None = None,
        clock: FakeClock | None = None,
    ) -> None:
        self.url = url
        self.page_title = title
        self.body = body
        self.elements = elements if elements is not None else {}
        self.child_frames = frames or []
        self.clock = clock
        self.closed = False
        self.detached = False
        self.waited_ms = 0
        self.gotos: list[str] = []
        self.main_frame = object()

    def __repr__(self) -> str:
        return f"FakePage({self.url!r})"

    @property
    def frames(self) -> list[Any]:
        return [self.main_frame, *self.child_frames]

    def is_closed(self) -> bool:
        return self.closed

    def is_detached(self) -> bool:
        return self.detached

    def title(self) -> str:
        return self.page_title

    def locator(self, selector: str) -> FakeGroup:
        if selector == "body":
            return FakeGroup([FakeElement(self.body)])
        return FakeGroup(self.elements.get(selector, []))

    def evaluate(self, script: str, arg: Any = None) -> Any:
        return None

    def wait_for_timeout(self, ms: int) -> None:
        self.waited_ms += ms
        if self.clock is not None:
            self.clock.advance(ms / 1000)

    def wait_for_load_state(self, state: str = "load", timeout: int | None = None) -> None:
        pass

    def bring_to_front(self) -> None:
        pass

    def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None) -> None:
        self.gotos.append(url)
        self.url = url

    def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, pages: list[FakePage]) -> None:
        self.pages = list(pages)
        self.listeners: dict[str, list[Callable[[Any], None]]] = {}

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[[Any], None]) -> None:
        self.listeners.get(event, []).remove(handler)

    def open_page(self, page: FakePage) -> None:
        """Simulate the site opening a new tab or popup."""
        self.pages.append(page)
        for handler in list(self.listeners.get("page", [])):
            handler(page)

    def new_page(self) -> FakePage:
        page = FakePage(url="about:blank")
        self.pages.append(page)
        return page

    def close(self) -> None:
        for page in self.pages:
            page.close()


class FakeLLM:
    """Scripted model: canned replies, every call recorded."""

    def __init__(
        self,
        text: str | None = None,
        json_data: dict[str, Any] | None = None,
        healthy: bool = True,
    ) -> None:
        self.text = text
        self.json_data = json_data
        self.healthy = healthy
        self.prompts: list[str] = []
        self.json_prompts: list[tuple[str, str]] = []

    def health_check(self) -> bool:
        return self.healthy

    def generate(self, prompt: str) -> LLMResponse:
        self.prompts.append(prompt)
        if self.text is None:
            return LLMResponse(success=False, error="no reply")
        return LLMResponse(success=True, data=self.text)

    def generate_json(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        self.json_prompts.append((system_prompt, user_prompt))
        if self.json_data is None:
            return LLMResponse(success=False, error="no reply")
        return LLMResponse(success=True, data=self.json_data)


class ForbiddenLLM(FakeLLM):
    """Fails the test if anything asks it for an answer."""

    def generate(self, prompt: str) -> LLMResponse:
        raise AssertionError(f"model consulted for: {prompt[:80]}")

    def generate_json(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        raise AssertionError("model consulted for a structured answer")


def make_candidate(**overrides: Any) -> CandidateProfile:
    values: dict[str, Any] = dict(
        name="Jane Doe",
        email="jane@example.com",
        phone="+61400000000",
        linkedin_url="https://www.linkedin.com/in/janedoe",
        portfolio_url="https://janedoe.dev",
        current_location="Sydney, Australia",
        willing_to_relocate=True,
        requires_sponsorship=False,
        visa_status="Yes",
        years_experience=5,
        primary_skills=("Java", "Spring Boot", "Microservices", "PostgreSQL"),
        secondary_skills=("Docker", "Kubernetes", "AWS"),
        resume_path="./missing/resume.pdf",
    )
    values.update(overrides)
    return CandidateProfile(**values)


def make_settings(browser_thinking: bool = True, **candidate_overrides: Any) -> Settings:
    return Settings(
        candidate=make_candidate(**candidate_overrides),
        llm=LLMSettings(browser_thinking=browser_thinking),
    )


def make_hints(**overrides: Any) -> AnswerHints:
    return make_candidate(**overrides).answer_hints()


def make_session(page: FakePage, *, llm: Any = None, prompt: Callable[[str], str] | None = None,
                 settings: Settings | None = None, extra_pages: list[FakePage] | None = None):
    from autoapply.browser.session import BrowserSession

    session = BrowserSession(settings or make_settings(), llm=llm, prompt=prompt or (lambda message: ""))
    context = FakeContext([page, *(extra_pages or [])])
    session.attach(context, page)
    return session
