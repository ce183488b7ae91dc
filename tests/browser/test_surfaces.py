from __future__ import annotations

from autoapply.browser.surfaces import (
    click_primary_action,
    first_visible,
    iter_surfaces,
    locator_text,
    page_fingerprint,
)

from tests.browser.fakes import FakeElement, FakeGroup, FakePage


def test_surfaces_are_page_then_live_frames():
    live = FakePage("https://boards.greenhouse.io/embed")
    gone = FakePage("https://ads.example.com")
    gone.detached = True
    page = FakePage("https://acme.com/careers", frames=[live, gone])
    assert iter_surfaces(page) == [page, live]


def test_closed_page_has_no_surfaces():
    page = FakePage()
    page.close()
    assert iter_surfaces(page) == []
    assert page_fingerprint(page) == "closed"


def test_fingerprint_ignores_query_and_fragment():
    a = FakePage("https://acme.com/apply?step=1#top", title="Apply", body="Step one")
    b = FakePage("https://acme.com/apply?step=2", title="Apply", body="  STEP   one ")
    assert page_fingerprint(a) == page_fingerprint(b)
    b.body = "Step two"
    assert page_fingerprint(a) != page_fingerprint(b)


def test_fingerprint_snippet_is_truncated():
    a = FakePage("https://acme.com/apply", body="x" * 300 + "a")
    b = FakePage("https://acme.com/apply", body="x" * 300 + "b")
    assert page_fingerprint(a) == page_fingerprint(b)


def test_first_visible_skips_hidden():
    hidden, shown = FakeElement("a", visible=False), FakeElement("b")
    assert first_visible(FakeGroup([hidden, shown])) is shown
    assert first_visible(FakeGroup([hidden])) is None


def test_locator_text_falls_back_to_aria_label():
    assert locator_text(FakeElement("", meta={"aria-label": "Easy Apply to Acme"})) == "Easy Apply to Acme"


def test_click_primary_action_reports_intercepted_clicks():
    assert not click_primary_action(FakeElement("Apply", fail_click=True), FakePage())

    button = FakeElement("Apply")
    assert click_primary_action(button, FakePage())
    assert button.clicks == 1
