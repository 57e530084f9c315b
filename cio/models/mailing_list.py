"""
Mailing list subscribers imported from MailChimp.
"""
from datetime import datetime
from typing import ClassVar, List, Optional, Tuple

from sqlalchemy import Text
from sqlmodel import Column, Field

from cio.clients.airtable import AIRTABLE_MAILING_LIST_SIGNUPS_TABLE
from cio.core.time_utils import utc_now
from cio.models.base import AirtableRecord, CompanyScoped, JSONType


class MailingListSubscriber(CompanyScoped, AirtableRecord, table=True):
    __tablename__ = "mailing_list_subscribers"

    __airtable_base__: ClassVar[str] = "customer_leads"
    __airtable_table__: ClassVar[str] = AIRTABLE_MAILING_LIST_SIGNUPS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("cio_company_id", "email")

    email: str = Field(max_length=255, index=True)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    name: str = Field(default="", max_length=512)
    company: str = Field(default="", max_length=255)
    interest: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    wants_podcast_updates: bool = Field(default=False)
    wants_newsletter: bool = Field(default=False)
    wants_product_updates: bool = Field(default=False)
    date_added: datetime = Field(default_factory=utc_now, nullable=False)
    date_optin: Optional[datetime] = Field(default=None)
    date_last_changed: Optional[datetime] = Field(default=None)
    notes: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    source: str = Field(default="", max_length=255)
    revenue: float = Field(default=0.0)
    street_1: str = Field(default="", max_length=255)
    street_2: str = Field(default="", max_length=255)
    city: str = Field(default="", max_length=255)
    state: str = Field(default="", max_length=255)
    zipcode: str = Field(default="", max_length=32)
    country: str = Field(default="", max_length=255)
    address_formatted: str = Field(default="", max_length=1024)
    phone: str = Field(default="", max_length=64)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))
    # Synced to Zoho as a lead
    zoho_lead_id: str = Field(default="", max_length=64)

    def populate_formatted_address(self) -> None:
        street = self.street_1
        if self.street_2:
            street = f"{self.street_1}\n{self.street_2}"
        formatted = f"{street}\n{self.city}, {self.state} {self.zipcode} {self.country}"
        self.address_formatted = formatted.strip().strip(",").strip()
