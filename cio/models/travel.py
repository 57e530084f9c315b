"""
Travel bookings imported from TripActions.
"""
from datetime import date, datetime
from typing import ClassVar, List, Optional, Tuple

from sqlmodel import Column, Field, UniqueConstraint

from cio.clients.airtable import AIRTABLE_BOOKINGS_TABLE
from cio.models.base import AirtableRecord, CompanyScoped, JSONType


class Booking(CompanyScoped, AirtableRecord, table=True):
    __tablename__ = "bookings"

    __airtable_base__: ClassVar[str] = "travel"
    __airtable_table__: ClassVar[str] = AIRTABLE_BOOKINGS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("cio_company_id", "booking_id")
    __table_args__ = (UniqueConstraint("cio_company_id", "booking_id", name="uq_booking_company_booking"),)

    booking_id: str = Field(max_length=255, index=True)
    booked_at: Optional[datetime] = Field(default=None)
    last_modified_at: Optional[datetime] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)
    booking_type: str = Field(default="", max_length=64)
    status: str = Field(default="", max_length=64)
    vendor: str = Field(default="", max_length=255)
    flight: str = Field(default="", max_length=64)
    cabin: str = Field(default="", max_length=64)
    start_date: Optional[date] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    passengers: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))
    booker: str = Field(default="", max_length=255)
    origin: str = Field(default="", max_length=255)
    destination: str = Field(default="", max_length=255)
    length: str = Field(default="", max_length=64)
    description: str = Field(default="")
    currency: str = Field(default="", max_length=16)
    grand_total: float = Field(default=0.0)
    purpose: str = Field(default="", max_length=255)
    reason: str = Field(default="")
