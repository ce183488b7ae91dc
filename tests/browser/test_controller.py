from __future__ import annotations

from autoapply.browser.controller import (
    APPLY_BUTTON_SELECTOR,
    COMPANY_SELECTOR,
    JOB_CARD_SELECTORS,
    LOCATION_SELECTOR,
    TITLE_SELECTOR,
    JobCardController,
    is_easy_apply_label,
    is_external_apply_label,
)
from autoapply.browser.external import ExternalStatus
from autoapply.models import ApplicationOutcome

from tests.browser.fakes import FakeElement, FakePage, make_session

BOARD_URL = "https://www.linkedin.com/jobs/search/?keywords=java"
CARD_SELECTOR = JOB_CARD_SELECTORS[0]


class StubEasyApply:
    def __init__(self, *outcomes: ApplicationOutcome, opens: bool = True) -> None:
        self.outcomes = list(outcomes)
        self.opens = opens
        self.runs = 0
        self.dismissed = 0

    def wait_for_modal(self, page, timeout=6000) -> bool:
        return self.opens

    def run(self) -> ApplicationOutcome:
        self.runs += 1
        return self.outcomes.pop(0) if self.outcomes else ApplicationOutcome.APPLIED

    def dismiss(self, page=None) -> None:
        self.dismissed += 1


class StubExternal:
    def __init__(self, status: ExternalStatus = ExternalStatus.SUBMITTED, error: Exception | None = None) -> None:
        self.status = status
        self.error = error
        self.calls = 0

    def handle(self, trigger) -> ExternalStatus:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.status


class StubTracker:
    def __init__(self, seen: set[str] = frozenset()) -> None:
        self.seen = set(seen)
        self.recorded: list[dict] = []

    def has_applied_before(self, url: str) -> bool:
        return url in self.seen

    def record_application(self, **fields) -> None:
        self.recorded.append(fields)


def _board(*postings: dict) -> FakePage:
    """A search page whose cards load the given postings into the detail pane."""
    page = FakePage(BOARD_URL)
    cards = []
    for index, posting in enumerate(postings):
        def show(posting=posting, index=index):
            page.url = f"{BOARD_URL}&currentJobId={posting.get('id', index)}"
            page.elements[TITLE_SELECTOR] = [FakeElement(posting["title"])]
            page.elements[COMPANY_SELECTOR] = [FakeElement(posting.get("company", "Acme"))]
            page.elements[LOCATION_SELECTOR] = [FakeElement(posting.get("location", "Sydney, Australia"))]
            page.elements[APPLY_BUTTON_SELECTOR] = [FakeElement(label) for label in posting.get("buttons", [])]
        cards.append(FakeElement(posting["title"], on_click=show, fail_click=posting.get("broken", False)))
    page.elements[CARD_SELECTOR] = cards
    return page


def _controller(page, easy=None, external=None, tracker=None):
    session = make_session(page)
    return session, JobCardController(session, easy_apply=easy or StubEasyApply(),
                                      external=external or StubExternal(), tracker=tracker)


def test_apply_labels():
    assert is_easy_apply_label("Easy Apply")
    assert not is_external_apply_label("Easy Apply to this job")
    assert is_external_apply_label("Apply on company website")


def test_duplicate_card_is_processed_once():
    page = _board(
        {"title": "Backend Engineer", "buttons": ["Easy Apply"], "id": 1},
        {"title": "Backend Engineer", "buttons": ["Easy Apply"], "id": 2},
        {"title": "Platform Engineer", "buttons": ["Easy Apply"], "id": 3},
    )
    easy = StubEasyApply()
    _, controller = _controller(page, easy=easy)

    counters = controller.apply_to_jobs(5)

    assert easy.runs == 2
    assert counters.applied == 2
    assert counters.failed == 0
    assert counters.skipped == 1
    assert counters.results[1].reason == "duplicate card"


def test_every_card_yields_exactly_one_outcome():
    page = _board(
        {"title": "Easy Role", "buttons": ["Easy Apply"]},
        {"title": "Assisted Role", "buttons": ["Easy Apply"]},
        {"title": "External Role", "buttons": ["Apply on company website"]},
        {"title": "Closed Role", "buttons": []},
        {"title": "Broken Card", "broken": True},
    )
    easy = StubEasyApply(ApplicationOutcome.APPLIED, ApplicationOutcome.MANUAL_HELP)
    external = StubExternal(ExternalStatus.FAILED)
    _, controller = _controller(page, easy=easy, external=external)

    counters = controller.apply_to_jobs(5)

    outcomes = [r.outcome for r in counters.results]
    assert outcomes == [
        ApplicationOutcome.APPLIED,
        ApplicationOutcome.MANUAL_HELP,
        ApplicationOutcome.FAILED,
        ApplicationOutcome.SKIPPED,
        ApplicationOutcome.SKIPPED,
    ]
    assert counters.applied + counters.failed + counters.manual_help + counters.skipped == 5


def test_card_exception_counts_as_failed_and_continues():
    page = _board(
        {"title": "Flaky Role", "buttons": ["Apply on company website"]},
        {"title": "Good Role", "buttons": ["Easy Apply"]},
    )
    easy = StubEasyApply()
    _, controller = _controller(page, easy=easy, external=StubExternal(error=RuntimeError("tab crashed")))

    counters = controller.apply_to_jobs(5)

    assert [r.outcome for r in counters.results] == [ApplicationOutcome.FAILED, ApplicationOutcome.APPLIED]
    assert "tab crashed" in counters.results[0].reason
    assert easy.dismissed >= 1


def test_modal_that_never_opens_falls_back_to_external():
    page = _board({"title": "Hybrid Role", "buttons": ["Easy Apply", "Apply on company website"]})
    external = StubExternal(ExternalStatus.SUBMITTED)
    _, controller = _controller(page, easy=StubEasyApply(opens=False), external=external)

    counters = controller.apply_to_jobs(1)

    assert external.calls == 1
    assert counters.applied == 1
    assert counters.results[0].reason == "external submitted"


def test_stops_once_enough_applications_succeed():
    page = _board(*({"title": f"Role {i}", "buttons": ["Easy Apply"]} for i in range(6)))
    easy = StubEasyApply()
    _, controller = _controller(page, easy=easy)

    counters = controller.apply_to_jobs(2)

    assert counters.applied == 2
    assert easy.runs == 2


def test_attempts_are_bounded_by_available_cards():
    page = _board({"title": "Only Role", "buttons": []})
    _, controller = _controller(page)
    counters = controller.apply_to_jobs(3)
    assert len(counters.results) == 1


def test_previously_attempted_url_is_skipped_and_outcomes_recorded():
    page = _board(
        {"title": "Seen Role", "buttons": ["Easy Apply"], "id": 7},
        {"title": "New Role", "buttons": ["Easy Apply"], "id": 8},
    )
    tracker = StubTracker({f"{BOARD_URL}&currentJobId=7"})
    _, controller = _controller(page, tracker=tracker)

    counters = controller.apply_to_jobs(5)

    assert counters.results[0].reason == "already attempted"
    assert counters.applied == 1
    assert [r["job_url"] for r in tracker.recorded] == [f"{BOARD_URL}&currentJobId=8"]
    assert tracker.recorded[0]["status"] == "applied"


def test_drifted_page_returns_to_search():
    page = _board({"title": "Role", "buttons": []})
    page.url = "https://careers.acme.com/apply/1"
    session, controller = _controller(page)
    session.last_search_url = BOARD_URL

    controller.apply_to_jobs(1)

    assert page.gotos[0] == BOARD_URL


def test_each_search_session_starts_with_no_seen_postings():
    page = _board({"title": "Backend Engineer", "buttons": ["Easy Apply"]})
    easy = StubEasyApply()
    _, controller = _controller(page, easy=easy)

    first = controller.apply_to_jobs(1)
    second = controller.apply_to_jobs(1)

    assert first.applied == 1
    assert second.applied == 1
    assert easy.runs == 2


def test_card_label_identifies_posting_when_detail_pane_is_blank():
    page = FakePage(BOARD_URL)
    cards = []
    for index, title in enumerate(["Java Developer", "Platform Engineer", "SRE"]):
        def show(index=index):
            page.url = f"{BOARD_URL}&currentJobId={index}"
            page.elements[APPLY_BUTTON_SELECTOR] = [FakeElement("Easy Apply")]
        cards.append(FakeElement(title, on_click=show))
    page.elements[CARD_SELECTOR] = cards
    easy = StubEasyApply()
    _, controller = _controller(page, easy=easy)

    counters = controller.apply_to_jobs(5)

    assert easy.runs == 3
    assert [r.reason for r in counters.results] == ["easy apply"] * 3
    assert counters.results[2].job.title == "SRE"
