"""
Zoho CRM client.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import OAuthClient

ENDPOINT = "https://www.zohoapis.com/crm/v2/"
UPSERT_BATCH_SIZE = 100


class Lead(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    email: str = Field(default="", alias="Email")
    first_name: str = Field(default="", alias="First_Name")
    last_name: str = Field(default="", alias="Last_Name")
    company: str = Field(default="", alias="Company")
    lead_source: str = Field(default="", alias="Lead_Source")
    description: str = Field(default="", alias="Description")


class ZohoClient(OAuthClient):
    product = "zoho"
    base_url = ENDPOINT
    authorize_url = "https://accounts.zoho.com/oauth/v2/auth"
    token_url = "https://accounts.zoho.com/oauth/v2/token"
    scopes = "ZohoCRM.modules.ALL"

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Zoho-oauthtoken {self.token}"}

    def user_consent_url(self, state=None) -> str:
        # Refresh tokens are only issued for offline access
        return f"{super().user_consent_url(state)}&access_type=offline"

    async def list_leads(self) -> List[Lead]:
        leads: List[Lead] = []
        page = 1

        while True:
            response = await self._request(
                "GET", "Leads", params={"page": page, "per_page": 200}, expected=(200, 204)
            )
            # 204 means the module is empty
            body = self._safe_json(response)
            leads.extend(Lead.model_validate(row) for row in body.get("data", []))

            if not (body.get("info") or {}).get("more_records"):
                return leads
            page += 1

    async def upsert_leads(self, leads: List[Lead]) -> List[Dict[str, Any]]:
        """Insert or update leads, de-duplicated on email."""
        results: List[Dict[str, Any]] = []
        for start in range(0, len(leads), UPSERT_BATCH_SIZE):
            batch = leads[start:start + UPSERT_BATCH_SIZE]
            response = await self._request(
                "POST",
                "Leads/upsert",
                json={
                    "data": [lead.model_dump(by_alias=True, exclude={"id"}, exclude_defaults=True) for lead in batch],
                    "duplicate_check_fields": ["Email"],
                },
                expected=(200, 201, 202),
            )
            results.extend(self._safe_json(response).get("data", []))
        return results
