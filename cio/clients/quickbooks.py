"""
QuickBooks Online accounting API client.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import OAuthClient

ENDPOINT = "https://quickbooks.api.intuit.com/v3/"
QUERY_PAGE_SIZE = 1000


class Purchase(BaseModel):
    """A purchase (card charge, check or cash expense)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", alias="Id")
    txn_date: str = Field(default="", alias="TxnDate")
    total_amount: float = Field(default=0.0, alias="TotalAmt")
    payment_type: str = Field(default="", alias="PaymentType")
    entity_ref: Dict[str, Any] = Field(default_factory=dict, alias="EntityRef")
    account_ref: Dict[str, Any] = Field(default_factory=dict, alias="AccountRef")
    private_note: str = Field(default="", alias="PrivateNote")

    @property
    def vendor_name(self) -> str:
        return self.entity_ref.get("name", "")


class Item(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", alias="Id")
    name: str = Field(default="", alias="Name")
    item_type: str = Field(default="", alias="Type")
    active: bool = Field(default=True, alias="Active")


class QuickBooksClient(OAuthClient):
    product = "quickbooks"
    base_url = ENDPOINT
    authorize_url = "https://appcenter.intuit.com/connect/oauth2"
    token_url = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
    scopes = "com.intuit.quickbooks.accounting"
    token_basic_auth = True

    def __init__(self, *args, company_id: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.company_id = company_id

    async def query(self, sql: str) -> Dict[str, Any]:
        """Run a QuickBooks query and return its ``QueryResponse`` object."""
        body = await self._get_json(f"company/{self.company_id}/query", params={"query": sql})
        return body.get("QueryResponse", {})

    async def _query_all(self, entity: str) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        start = 1
        while True:
            result = await self.query(
                f"SELECT * FROM {entity} STARTPOSITION {start} MAXRESULTS {QUERY_PAGE_SIZE}"
            )
            page = result.get(entity, [])
            rows.extend(page)
            if len(page) < QUERY_PAGE_SIZE:
                return rows
            start += QUERY_PAGE_SIZE

    async def list_items(self) -> List[Item]:
        return [Item.model_validate(i) for i in await self._query_all("Item")]

    async def list_purchases(self) -> List[Purchase]:
        return [Purchase.model_validate(p) for p in await self._query_all("Purchase")]

    async def count(self, entity: str) -> int:
        result = await self.query(f"SELECT COUNT(*) FROM {entity}")
        return int(result.get("totalCount", 0))
