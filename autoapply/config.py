"""Load candidate profile, model, browser and search configuration from env + YAML."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from autoapply.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
PROFILE_PATH: Path = CONFIG_DIR / "profile.yaml"
DATA_DIR: Path = ROOT_DIR / "data"
SESSION_DIR: Path = DATA_DIR / "chrome-session"


def get_env(key: str, default: str = "") -> str:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def to_bool(value: str | None, fallback: bool) -> bool:
    if value is None or value == "":
        return fallback
    return value.strip().lower() == "true"


def to_int(value: str | None, fallback: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return fallback


def to_float(value: str | None, fallback: float) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return fallback


def to_list(value: str | None, sep: str = ",") -> list[str]:
    return [item.strip() for item in (value or "").split(sep) if item.strip()]


@dataclass(frozen=True)
class AnswerHints:
    """Static answers shared by both apply flows; immutable once loaded."""
    sponsorship: bool = False
    relocate: bool = False
    visa: str = "No"
    years_experience: str = "3"
    linkedin_url: str = ""
    portfolio_url: str = ""
    current_location: str = ""
    resume_path: str = ""


@dataclass(frozen=True)
class CandidateProfile:
    name: str = "Candidate"
    email: str = "candidate@example.com"
    phone: str = "+10000000000"
    linkedin_url: str = ""
    portfolio_url: str = ""
    current_location: str = "Unknown"
    willing_to_relocate: bool = False
    requires_sponsorship: bool = False
    visa_status: str = "Unknown"
    years_experience: int = 0
    primary_skills: tuple[str, ...] = ()
    secondary_skills: tuple[str, ...] = ()
    resume_path: str = "./data/resume.pdf"

    def answer_hints(self) -> AnswerHints:
        location = self.current_location if self.current_location != "Unknown" else ""
        visa = self.visa_status if self.visa_status != "Unknown" else "No"
        return AnswerHints(
            sponsorship=self.requires_sponsorship,
            relocate=self.willing_to_relocate,
            visa=visa,
            years_experience=str(self.years_experience or 3),
            linkedin_url=self.linkedin_url,
            portfolio_url=self.portfolio_url,
            current_location=location,
            resume_path=self.resume_path,
        )


@dataclass(frozen=True)
class LLMSettings:
    provider: str = "ollama"
    base_url: str = "http://localhost:11434"
    model: str = "gpt-oss:120b-cloud"
    temperature: float = 0.7
    top_p: float = 0.9
    timeout: float = 60.0
    api_key: str = ""
    browser_thinking: bool = True
    thinking_logs: bool = True
    thinking_max_chars: int = 1800


@dataclass(frozen=True)
class BrowserSettings:
    headless: bool = False
    slow_mo: int = 500
    timeout: int = 30_000
    executable_path: str = ""
    user_data_dir: str = str(SESSION_DIR)
    board_domain: str = "linkedin.com"
    board_home_url: str = "https://www.linkedin.com/jobs/"


@dataclass(frozen=True)
class AgentSettings:
    max_retries: int = 3
    max_steps: int = 50
    enable_auto_submit: bool = False
    verification_mode: bool = True


@dataclass(frozen=True)
class SearchSettings:
    terms: tuple[str, ...] = ("Java Backend Developer",)
    location: str = "Australia"
    max_jobs_to_apply: int = 5
    job_boards: tuple[str, ...] = ()
    app_mode: str = "browser"


@dataclass(frozen=True)
class MemorySettings:
    db_path: str = str(DATA_DIR / "applications.db")
    max_history_days: int = 90


@dataclass(frozen=True)
class Settings:
    candidate: CandidateProfile = field(default_factory=CandidateProfile)
    llm: LLMSettings = field(default_factory=LLMSettings)
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    agent: AgentSettings = field(default_factory=AgentSettings)
    search: SearchSettings = field(default_factory=SearchSettings)
    memory: MemorySettings = field(default_factory=MemorySettings)

    @property
    def hints(self) -> AnswerHints:
        return self.candidate.answer_hints()


def load_profile_overrides(path: Path | None = None) -> dict[str, Any]:
    """Read optional YAML overrides; a missing or broken file yields {}."""
    path = path or PROFILE_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        log.warning("Could not read %s: %s", path.name, exc)
        return {}
    if not isinstance(data, dict):
        log.warning("Ignoring %s: top level must be a mapping", path.name)
        return {}
    return data


def _candidate_from_env() -> CandidateProfile:
    return CandidateProfile(
        name=get_env("CANDIDATE_NAME", "Candidate"),
        email=get_env("CANDIDATE_EMAIL", "candidate@example.com"),
        phone=get_env("CANDIDATE_PHONE", "+10000000000"),
        linkedin_url=get_env("LINKEDIN_URL"),
        portfolio_url=get_env("PORTFOLIO_URL"),
        current_location=get_env("CURRENT_LOCATION", "Unknown"),
        willing_to_relocate=to_bool(os.environ.get("WILLING_TO_RELOCATE"), False),
        requires_sponsorship=to_bool(os.environ.get("REQUIRES_SPONSORSHIP"), False),
        visa_status=get_env("VISA_STATUS", "Unknown"),
        years_experience=to_int(os.environ.get("YEARS_EXPERIENCE"), 0),
        primary_skills=tuple(to_list(os.environ.get("PRIMARY_SKILLS"))),
        secondary_skills=tuple(to_list(os.environ.get("SECONDARY_SKILLS"))),
        resume_path=get_env("RESUME_PATH", "./data/resume.pdf"),
    )


def _apply_overrides(settings: Settings, overrides: dict[str, Any]) -> Settings:
    candidate_ov = overrides.get("candidate") or {}
    search_ov = overrides.get("search") or {}

    candidate = settings.candidate
    if candidate_ov:
        known = {k: v for k, v in candidate_ov.items() if hasattr(candidate, k)}
        for key in ("primary_skills", "secondary_skills"):
            if key in known:
                known[key] = tuple(known[key] or ())
        candidate = replace(candidate, **known)

    search = settings.search
    if search_ov:
        known = {k: v for k, v in search_ov.items() if hasattr(search, k)}
        for key in ("terms", "job_boards"):
            if key in known:
                known[key] = tuple(known[key] or ())
        search = replace(search, **known)

    return replace(settings, candidate=candidate, search=search)


def load_settings(profile_path: Path | None = None) -> Settings:
    """Build the process-wide settings; read once at startup by the entry points."""
    terms = tuple(to_list(get_env("SEARCH_TERMS", "Java Backend Developer"), sep="|"))
    provider = get_env("LLM_PROVIDER", "ollama").lower()
    if provider == "openai":
        base_url = get_env("OPENAI_BASE_URL", "https://api.groq.com/openai/v1")
    else:
        base_url = get_env("OLLAMA_BASE_URL", "http://localhost:11434")
    settings = Settings(
        candidate=_candidate_from_env(),
        llm=LLMSettings(
            provider=provider,
            base_url=base_url,
            model=get_env("LLM_MODEL") or get_env("OLLAMA_MODEL", "gpt-oss:120b-cloud"),
            temperature=to_float(os.environ.get("OLLAMA_TEMPERATURE"), 0.7),
            top_p=to_float(os.environ.get("OLLAMA_TOP_P"), 0.9),
            timeout=to_float(os.environ.get("LLM_TIMEOUT"), 60.0),
            api_key=get_env("OPENAI_API_KEY"),
            browser_thinking=get_env("BROWSER_LLM_THINKING", "true").lower() != "false",
            thinking_logs=get_env("LLM_THINKING_LOGS", "true").lower() != "false",
            thinking_max_chars=max(200, to_int(os.environ.get("LLM_THINKING_MAX_CHARS"), 1800)),
        ),
        browser=BrowserSettings(
            headless=to_bool(os.environ.get("BROWSER_HEADLESS"), False),
            slow_mo=to_int(os.environ.get("BROWSER_SLOW_MO"), 500),
            timeout=to_int(os.environ.get("BROWSER_TIMEOUT"), 30_000),
            executable_path=get_env("CHROME_EXECUTABLE_PATH"),
            user_data_dir=get_env("BROWSER_SESSION_DIR", str(SESSION_DIR)),
        ),
        agent=AgentSettings(
            max_retries=to_int(os.environ.get("MAX_RETRIES"), 3),
            max_steps=to_int(os.environ.get("MAX_STEPS"), 50),
            enable_auto_submit=to_bool(os.environ.get("ENABLE_AUTO_SUBMIT"), False),
            verification_mode=to_bool(os.environ.get("VERIFICATION_MODE"), True),
        ),
        search=SearchSettings(
            terms=terms or ("Java Backend Developer",),
            location=get_env("JOB_LOCATION", "Australia"),
            max_jobs_to_apply=to_int(os.environ.get("MAX_JOBS_TO_APPLY"), 5),
            job_boards=tuple(to_list(os.environ.get("JOB_BOARDS"))),
            app_mode=get_env("APP_MODE", "browser").lower(),
        ),
        memory=MemorySettings(
            db_path=get_env("DB_PATH", str(DATA_DIR / "applications.db")),
            max_history_days=to_int(os.environ.get("MAX_HISTORY_DAYS"), 90),
        ),
    )
    return _apply_overrides(settings, load_profile_overrides(profile_path))


def ensure_dirs(settings: Settings | None = None) -> None:
    dirs = [DATA_DIR]
    if settings is not None:
        dirs.append(Path(settings.memory.db_path).parent)
        dirs.append(Path(settings.browser.user_data_dir))
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
