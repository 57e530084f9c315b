"""
Finance models: software vendors and card transactions.
"""
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from sqlmodel import Column, Field, UniqueConstraint

from cio.clients.airtable import AIRTABLE_CREDIT_CARD_TRANSACTIONS_TABLE, AIRTABLE_SOFTWARE_VENDORS_TABLE
from cio.core.time_utils import utc_now
from cio.models.base import AirtableRecord, CompanyScoped, JSONType


class SoftwareVendor(CompanyScoped, AirtableRecord, table=True):
    """A SaaS vendor the company pays for."""
    __tablename__ = "software_vendors"

    __airtable_base__: ClassVar[str] = "finance"
    __airtable_table__: ClassVar[str] = AIRTABLE_SOFTWARE_VENDORS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("cio_company_id", "name")

    name: str = Field(max_length=255, index=True)
    status: str = Field(default="", max_length=64)
    description: str = Field(default="")
    category: str = Field(default="", max_length=255)
    website: str = Field(default="", max_length=512)
    has_okta_integration: bool = Field(default=False)
    used_purely_for_api: bool = Field(default=False)
    pay_as_you_go: bool = Field(default=False)
    pay_as_you_go_pricing_description: str = Field(default="")
    software_licenses: bool = Field(default=False)
    cost_per_user_per_month: float = Field(default=0.0)
    users: int = Field(default=0)
    flat_cost_per_month: float = Field(default=0.0)
    total_cost_per_month: float = Field(default=0.0)
    groups: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))
    link_to_transactions: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))

    def compute_total_cost(self) -> float:
        self.total_cost_per_month = self.flat_cost_per_month + self.cost_per_user_per_month * self.users
        return self.total_cost_per_month

    def update_airtable_record(self, existing: Optional[Dict[str, Any]] = None, **context: Any) -> Dict[str, Any]:
        fields = super().update_airtable_record(existing, **context)
        fields["total_cost_per_month"] = self.flat_cost_per_month + self.cost_per_user_per_month * self.users
        # Transaction links are maintained in Airtable
        if existing and existing.get("link_to_transactions"):
            fields["link_to_transactions"] = existing["link_to_transactions"]
        return fields


class CreditCardTransaction(CompanyScoped, AirtableRecord, table=True):
    """A card or bill payment imported from Ramp or QuickBooks."""
    __tablename__ = "credit_card_transactions"

    __airtable_base__: ClassVar[str] = "finance"
    __airtable_table__: ClassVar[str] = AIRTABLE_CREDIT_CARD_TRANSACTIONS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("cio_company_id", "transaction_id")
    __table_args__ = (
        UniqueConstraint("cio_company_id", "transaction_id", name="uq_credit_card_transaction_company_transaction"),
    )

    transaction_id: str = Field(max_length=255, index=True)
    card_vendor: str = Field(default="", max_length=64)
    amount: float = Field(default=0.0)
    employee_name: str = Field(default="", max_length=255)
    employee_email: str = Field(default="", max_length=255)
    card_id: str = Field(default="", max_length=255)
    merchant_id: str = Field(default="", max_length=255)
    merchant_name: str = Field(default="", max_length=255)
    category_id: int = Field(default=0)
    category_name: str = Field(default="", max_length=255)
    state: str = Field(default="", max_length=64)
    memo: str = Field(default="")
    time: datetime = Field(default_factory=utc_now, nullable=False)
    receipts: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))
    link_to_vendor: List[str] = Field(default_factory=list, sa_column=Column(JSONType()))

    def update_airtable_record(self, existing: Optional[Dict[str, Any]] = None, **context: Any) -> Dict[str, Any]:
        fields = super().update_airtable_record(existing, **context)
        vendor_record_ids = context.get("vendor_record_ids") or {}
        vendor_record_id = vendor_record_ids.get(self.merchant_name.lower())
        if vendor_record_id:
            fields["link_to_vendor"] = [vendor_record_id]
        elif existing and existing.get("link_to_vendor"):
            fields["link_to_vendor"] = existing["link_to_vendor"]
        # Receipts are attachment fields; Airtable rewrites uploaded urls
        if existing and len(existing.get("receipts") or []) == len(self.receipts):
            fields["receipts"] = existing.get("receipts") or []
        else:
            fields["receipts"] = [{"url": url} for url in self.receipts]
        return fields
