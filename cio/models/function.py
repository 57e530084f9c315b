"""
Function model: one run of a sync job.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple

from sqlalchemy import Column, Text
from sqlmodel import Field

from cio.clients.airtable import AIRTABLE_FUNCTIONS_TABLE
from cio.core.time_utils import utc_now
from cio.models.base import AirtableRecord, CompanyScoped
from cio.utils.text import truncate

# Airtable long text fields hold at most 100k characters
AIRTABLE_LOGS_LIMIT = 100000


class FunctionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class FunctionConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMED_OUT = "timed_out"
    NEUTRAL = "neutral"


class Function(CompanyScoped, AirtableRecord, table=True):
    """
    Run of a named job.

    ``status`` moves from in_progress to completed; ``conclusion`` stays empty
    until the run completes.
    """
    __tablename__ = "functions"

    __airtable_base__: ClassVar[str] = "cio"
    __airtable_table__: ClassVar[str] = AIRTABLE_FUNCTIONS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("saga_id",)

    name: str = Field(max_length=255, index=True)
    status: str = Field(default=FunctionStatus.IN_PROGRESS.value, max_length=32, index=True)
    conclusion: str = Field(default="", max_length=32)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    completed_at: Optional[datetime] = Field(default=None)
    logs: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    saga_id: str = Field(default_factory=lambda: str(uuid.uuid4()), max_length=64, unique=True, index=True)

    @property
    def is_completed(self) -> bool:
        return self.status == FunctionStatus.COMPLETED.value

    def complete(self, conclusion: FunctionConclusion) -> None:
        self.status = FunctionStatus.COMPLETED.value
        self.conclusion = conclusion.value
        if self.completed_at is None:
            self.completed_at = utc_now()

    def update_airtable_record(self, existing: Optional[Dict[str, Any]] = None, **context: Any) -> Dict[str, Any]:
        fields = super().update_airtable_record(existing, **context)
        fields["logs"] = truncate(self.logs, AIRTABLE_LOGS_LIMIT)
        return fields

    def __repr__(self) -> str:
        return f"<Function(id={self.id}, name={self.name}, status={self.status}, conclusion={self.conclusion})>"
