"""Dead-letter record for worker jobs (account repair runs) that raised."""

from datetime import datetime
from typing import Any

from beanie import Document
from pydantic import Field


class FailedJob(Document):
    job_name: str
    job_id: str
    args: list[Any] = Field(default_factory=list)
    exception_type: str = ""
    reason: str = ""
    attempt: int = 1
    failed_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "failed_jobs"
        indexes = [[("job_name", 1), ("failed_at", -1)]]
