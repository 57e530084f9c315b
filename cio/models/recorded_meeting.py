"""
Recorded meetings imported from Zoom cloud recordings.
"""
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from sqlalchemy import Text
from sqlmodel import Column, Field, UniqueConstraint

from cio.clients.airtable import AIRTABLE_RECORDED_MEETINGS_TABLE
from cio.models.base import AirtableRecord, CompanyScoped, JSONType
from cio.utils.text import truncate

AIRTABLE_TRANSCRIPT_LIMIT = 100000


class RecordedMeeting(CompanyScoped, AirtableRecord, table=True):
    __tablename__ = "recorded_meetings"

    __airtable_base__: ClassVar[str] = "misc"
    __airtable_table__: ClassVar[str] = AIRTABLE_RECORDED_MEETINGS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("cio_company_id", "meeting_id")
    __table_args__ = (UniqueConstraint("cio_company_id", "meeting_id", name="uq_recorded_meeting_company_meeting"),)

    # Zoom meeting uuid
    meeting_id: str = Field(max_length=255, index=True)
    name: str = Field(default="", max_length=512)
    description: str = Field(default="")
    start_time: Optional[datetime] = Field(default=None)
    end_time: Optional[datetime] = Field(default=None)
    video: str = Field(default="", max_length=1024)
    chat_log_link: str = Field(default="", max_length=1024)
    chat_log: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    is_recurring: bool = Field(default=False)
    attendees: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))
    transcript: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    transcript_id: str = Field(default="", max_length=255)
    event_link: str = Field(default="", max_length=1024)
    location: str = Field(default="", max_length=512)

    def update_airtable_record(self, existing: Optional[Dict[str, Any]] = None, **context: Any) -> Dict[str, Any]:
        fields = super().update_airtable_record(existing, **context)
        # Keep a transcript that was already attached in Airtable
        if existing:
            if existing.get("transcript_id") and not self.transcript_id:
                fields["transcript_id"] = existing["transcript_id"]
            if existing.get("transcript") and not self.transcript:
                fields["transcript"] = existing["transcript"]
        fields["transcript"] = truncate(fields.get("transcript") or "", AIRTABLE_TRANSCRIPT_LIMIT)
        return fields
