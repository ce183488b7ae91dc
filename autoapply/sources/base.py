from abc import ABC, abstractmethod

from autoapply.models import Job


class JobSearchBase(ABC):
    name = "base"

    @abstractmethod
    def search(self, title: str, location: str, limit: int = 5) -> list[Job]:
        pass
