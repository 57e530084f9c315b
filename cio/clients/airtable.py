"""
Airtable REST client.

Records live at ``https://api.airtable.com/v0/{base_id}/{table}``. Listing pages
through ``offset`` tokens 100 records at a time; writes are limited by the API
to 10 records per request, so create/update/delete split their input into
batches of 10.
"""
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import BearerTokenClient

ENDPOINT = "https://api.airtable.com/v0/"

PAGE_SIZE = 100
BATCH_SIZE = 10

AIRTABLE_GRID_VIEW = "Grid view"

AIRTABLE_EMPLOYEES_TABLE = "Employees"
AIRTABLE_GROUPS_TABLE = "Groups"
AIRTABLE_BUILDINGS_TABLE = "Buildings"
AIRTABLE_RESOURCES_TABLE = "Resources"
AIRTABLE_LINKS_TABLE = "Links"
AIRTABLE_MAILING_LIST_SIGNUPS_TABLE = "Mailing List Signups"
AIRTABLE_RACK_LINE_SIGNUPS_TABLE = "Rack Line Signups"
AIRTABLE_CREDIT_CARD_TRANSACTIONS_TABLE = "Credit Card Transactions"
AIRTABLE_ACCOUNTS_PAYABLE_TABLE = "Accounts Payable"
AIRTABLE_SOFTWARE_VENDORS_TABLE = "Vendors"
AIRTABLE_RECORDED_MEETINGS_TABLE = "Recorded Meetings"
AIRTABLE_APPLICATIONS_TABLE = "Applicants"
AIRTABLE_API_TOKENS_TABLE = "API Tokens"
AIRTABLE_COMPANIES_TABLE = "Companies"
AIRTABLE_FUNCTIONS_TABLE = "Functions"
AIRTABLE_BOOKINGS_TABLE = "Bookings"


class Record(BaseModel):
    """A row in an Airtable table."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    fields: Dict[str, Any] = Field(default_factory=dict)
    created_time: Optional[str] = Field(default=None, alias="createdTime")


def _batches(items: List[Any], size: int = BATCH_SIZE) -> Iterable[List[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AirtableClient(BearerTokenClient):
    """Client for one Airtable base."""

    product = "airtable"

    def __init__(self, api_key: str, base_id: str, *, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(token=api_key, http_client=http_client, base_url=ENDPOINT)
        self.base_id = base_id

    def _table_path(self, table: str, record_id: Optional[str] = None) -> str:
        path = f"{self.base_id}/{quote(table, safe='')}"
        if record_id:
            path = f"{path}/{record_id}"
        return path

    async def list_records(
        self,
        table: str,
        view: str = AIRTABLE_GRID_VIEW,
        fields: Optional[List[str]] = None,
    ) -> List[Record]:
        """List every record of a table view, following ``offset`` pagination."""
        records: List[Record] = []
        offset: Optional[str] = None

        while True:
            params = [("pageSize", str(PAGE_SIZE))]
            if view:
                params.append(("view", view))
            for field in fields or []:
                params.append(("fields[]", field))
            if offset:
                params.append(("offset", offset))

            body = await self._get_json(self._table_path(table), params=params)
            records.extend(Record.model_validate(r) for r in body.get("records", []))

            offset = body.get("offset")
            if not offset:
                return records

    async def get_record(self, table: str, record_id: str) -> Record:
        body = await self._get_json(self._table_path(table, record_id))
        return Record.model_validate(body)

    async def create_records(self, table: str, records: List[Dict[str, Any]]) -> List[Record]:
        """Create records from field dicts; returns them with their new ids."""
        created: List[Record] = []
        for batch in _batches(records):
            response = await self._request(
                "POST",
                self._table_path(table),
                json={"records": [{"fields": fields} for fields in batch], "typecast": True},
            )
            created.extend(Record.model_validate(r) for r in self._safe_json(response).get("records", []))
        return created

    async def update_records(self, table: str, records: List[Record]) -> List[Record]:
        """Patch existing records (only the given fields change)."""
        updated: List[Record] = []
        for batch in _batches(records):
            response = await self._request(
                "PATCH",
                self._table_path(table),
                json={
                    "records": [{"id": r.id, "fields": r.fields} for r in batch],
                    "typecast": True,
                },
            )
            updated.extend(Record.model_validate(r) for r in self._safe_json(response).get("records", []))
        return updated

    async def delete_records(self, table: str, record_ids: List[str]) -> List[str]:
        """Delete records by id; returns the ids Airtable reports as deleted."""
        deleted: List[str] = []
        for batch in _batches(record_ids):
            response = await self._request(
                "DELETE",
                self._table_path(table),
                params=[("records[]", record_id) for record_id in batch],
            )
            deleted.extend(
                r["id"] for r in self._safe_json(response).get("records", []) if r.get("deleted")
            )
        return deleted
