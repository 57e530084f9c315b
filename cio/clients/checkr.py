"""
Checkr background-check API client.
"""
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import BaseClient

ENDPOINT = "https://api.checkr.com/v1/"


class Candidate(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    report_ids: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None


class Report(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    status: str = ""
    result: Optional[str] = None
    package: str = ""
    candidate_id: str = ""
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class Invitation(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    status: str = ""
    invitation_url: str = ""
    package: str = ""
    candidate_id: str = ""


class WebhookEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: Dict[str, Any] = Field(default_factory=dict)


class WebhookEvent(BaseModel):
    """Event posted to the account webhook, e.g. ``report.completed``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    event_type: str = Field(default="", alias="type")
    created_at: Optional[str] = None
    data: WebhookEventData = Field(default_factory=WebhookEventData)

    @property
    def is_report_event(self) -> bool:
        return self.event_type.startswith("report.")

    def report(self) -> Report:
        return Report.model_validate(self.data.object)


class CheckrClient(BaseClient):
    """Checkr uses HTTP basic auth with the API key as username and no password."""

    product = "checkr"

    def __init__(self, api_key: str, *, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client=http_client, base_url=ENDPOINT)
        self.api_key = api_key

    def _auth(self) -> httpx.Auth:
        return httpx.BasicAuth(self.api_key, "")

    async def list_candidates(self) -> List[Candidate]:
        """List every candidate, following ``next_href``."""
        candidates: List[Candidate] = []
        path: Optional[str] = "candidates"

        while path:
            body = await self._get_json(path)
            candidates.extend(Candidate.model_validate(c) for c in body.get("data", []))
            path = body.get("next_href")

        return candidates

    async def get_candidate(self, candidate_id: str) -> Candidate:
        return Candidate.model_validate(await self._get_json(f"candidates/{candidate_id}"))

    async def get_report(self, report_id: str) -> Report:
        return Report.model_validate(await self._get_json(f"reports/{report_id}"))

    async def create_candidate(self, email: str) -> Candidate:
        response = await self._request("POST", "candidates", json={"email": email}, expected=(200, 201))
        return Candidate.model_validate(self._safe_json(response))

    async def send_invitation(self, candidate_id: str, package: str) -> Invitation:
        response = await self._request(
            "POST",
            "invitations",
            json={"candidate_id": candidate_id, "package": package},
            expected=(200, 201),
        )
        return Invitation.model_validate(self._safe_json(response))
