from .base import JobSearchBase
from .sample import BoardSampleSource, SampleSource

from autoapply.log import get_logger

log = get_logger(__name__)

__all__ = ["JobSearchBase", "SampleSource", "BoardSampleSource", "get_source"]


def get_source(mode: str) -> JobSearchBase:
    if mode == "scrape":
        log.info("Registered source: job board samples")
        return BoardSampleSource()
    log.info("Registered source: sample postings")
    return SampleSource()
