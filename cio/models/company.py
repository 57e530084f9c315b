"""
Company model.

Every synced record belongs to a company. The company row carries the
Airtable base ids and Slack channels used when syncing that company's data.
"""
from typing import ClassVar, FrozenSet, Tuple

from sqlmodel import Field

from cio.clients.airtable import AIRTABLE_COMPANIES_TABLE
from cio.core.config import settings
from cio.models.base import AIRTABLE_BASES, AirtableRecord


class Company(AirtableRecord, table=True):
    __tablename__ = "companies"

    __airtable_base__: ClassVar[str] = "cio"
    __airtable_table__: ClassVar[str] = AIRTABLE_COMPANIES_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("name",)
    __airtable_exclude__: ClassVar[FrozenSet[str]] = frozenset({"slack_webhook_url"})

    name: str = Field(max_length=255, unique=True, index=True)
    gsuite_domain: str = Field(default="", max_length=255)
    github_org: str = Field(default="", max_length=255)
    website: str = Field(default="", max_length=512)
    domain: str = Field(default="", max_length=255)
    gsuite_account_id: str = Field(default="", max_length=255)
    gsuite_subject: str = Field(default="", max_length=255)
    phone: str = Field(default="", max_length=64)
    okta_domain: str = Field(default="", max_length=255)
    mailchimp_list_id: str = Field(default="", max_length=64)

    airtable_base_id_cio: str = Field(default="", max_length=64)
    airtable_base_id_customer_leads: str = Field(default="", max_length=64)
    airtable_base_id_finance: str = Field(default="", max_length=64)
    airtable_base_id_travel: str = Field(default="", max_length=64)
    airtable_base_id_misc: str = Field(default="", max_length=64)
    airtable_base_id_hiring: str = Field(default="", max_length=64)
    airtable_enterprise_account_id: str = Field(default="", max_length=64)

    # Slack channel names the bot posts to
    slack_channel_debug: str = Field(default="", max_length=255)
    slack_channel_mailing_lists: str = Field(default="", max_length=255)
    # Incoming-webhook fallback when the company has no Slack token
    slack_webhook_url: str = Field(default="", max_length=512)

    def airtable_base_id(self, base: str) -> str:
        """Base id for one of the company's Airtable bases."""
        if base not in AIRTABLE_BASES:
            raise ValueError(f"Unknown Airtable base: {base}")
        base_id = getattr(self, f"airtable_base_id_{base}")
        if not base_id and base == "cio":
            return settings.airtable_base_id_cio
        return base_id

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"
