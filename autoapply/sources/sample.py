"""Hard-coded postings for demos, dry runs and tests; no network access."""
from __future__ import annotations

from autoapply.log import get_logger
from autoapply.models import Job
from autoapply.sources.base import JobSearchBase

log = get_logger(__name__)

REQUIREMENT_KEYWORDS = [
    "java", "spring", "microservices", "rest api", "postgresql", "mongodb", "docker",
    "kubernetes", "aws", "git", "maven", "sql", "junit", "agile",
]

DEFAULT_RESPONSIBILITIES = [
    "Develop and maintain backend systems",
    "Write clean, testable code",
    "Collaborate with team members",
    "Participate in code reviews",
]


def parse_requirements(description: str) -> list[str]:
    text = (description or "").lower()
    found = [k.capitalize() for k in REQUIREMENT_KEYWORDS if k in text]
    return found or ["See job description"]


class SampleSource(JobSearchBase):
    """Three company postings shaped like typical Australian backend roles."""

    name = "sample"

    def search(self, title: str, location: str, limit: int = 5) -> list[Job]:
        log.info("SampleSource generating sample jobs for %s in %s", title, location)
        jobs = [
            Job(
                title=f"{title} - Senior Role",
                company="GlobalTech Solutions",
                location=location,
                url="https://www.globaltechsolutions.com/jobs/java-dev-1",
                work_type="Hybrid",
                requirements=[
                    "5+ years Java experience",
                    "Spring Boot and Microservices",
                    "PostgreSQL/MongoDB",
                    "Docker and Kubernetes",
                    "REST API design",
                ],
                responsibilities=[
                    "Design backend systems",
                    "Lead code reviews",
                    "Mentor junior developers",
                    "Optimize database queries",
                ],
                benefits=["AUD $130k-$160k", "Health insurance", "Work from home"],
                description=(
                    f"We're looking for a Senior {title} to join our growing team in {location}. "
                    "You'll work with modern technologies like Spring Boot, microservices, and cloud platforms."
                ),
                salary="AUD $130,000 - $160,000",
                source=self.name,
            ),
            Job(
                title=f"{title} - Mid-Level",
                company="CloudFirst Systems",
                location=location,
                url="https://www.cloudfirst.com/jobs/java-dev-2",
                work_type="Remote",
                requirements=[
                    "3+ years Java development",
                    "Spring Framework knowledge",
                    "REST APIs",
                    "SQL databases",
                    "Git version control",
                ],
                responsibilities=[
                    "Develop backend features",
                    "Write unit tests",
                    "Participate in code reviews",
                    "Document code",
                ],
                benefits=["AUD $100k-$130k", "Flexible hours", "Professional development"],
                description=(
                    "Join our dynamic team working on cloud-based solutions. We're building scalable "
                    "backend systems using Java and modern frameworks."
                ),
                salary="AUD $100,000 - $130,000",
                source=self.name,
            ),
            Job(
                title=f"{title} - Entry to Mid-Level",
                company="StartupInnovations",
                location=location,
                url="https://www.startupinnovations.com/jobs/java-dev-3",
                work_type="Hybrid",
                requirements=[
                    "2+ years Java experience",
                    "Object-oriented programming",
                    "API development",
                    "Database basics",
                ],
                responsibilities=[
                    "Build application features",
                    "Fix bugs and improve code",
                    "Learn new technologies",
                    "Contribute to team meetings",
                ],
                benefits=["AUD $80k-$110k", "Stock options", "Learning budget", "Casual environment"],
                description=(
                    f"An exciting opportunity to grow your {title} career at a fast-growing startup. "
                    "You'll work on cutting-edge projects with a supportive team."
                ),
                salary="AUD $80,000 - $110,000",
                source=self.name,
            ),
        ]
        return jobs[:limit]


class BoardSampleSource(JobSearchBase):
    """Job-board style postings; stands in for a scrape that would need a signed-in session."""

    name = "board-sample"
    companies = ["TechCorp", "DataSystems", "CloudInnovate"]

    def search(self, title: str, location: str, limit: int = 5) -> list[Job]:
        log.warning("Job board scraping needs a signed-in session; using generated sample data")
        jobs: list[Job] = []
        for i, company in enumerate(self.companies, start=1):
            description = f"Exciting opportunity for {title} in {location}. Java, Spring Boot, microservices, REST APIs."
            jobs.append(
                Job(
                    title=f"{title} #{i}",
                    company=company,
                    location=location,
                    url=f"https://www.linkedin.com/jobs/view/{i}",
                    work_type="Full-time",
                    requirements=parse_requirements(description),
                    responsibilities=list(DEFAULT_RESPONSIBILITIES),
                    benefits=["Competitive salary", "Professional growth"],
                    description=description,
                    salary=f"AUD ${90 + i * 10}k - ${120 + i * 20}k",
                    source=self.name,
                )
            )
        return jobs[:limit]
