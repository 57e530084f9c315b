"""
MailChimp marketing API client.

OAuth tokens do not expire. The data center specific API endpoint is not
known until after authorization; ``metadata()`` returns it as ``api_endpoint``
and it is stored on the API token record.
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cio.clients.base import OAuthClient

PER_PAGE = 500
WEBHOOK_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class MemberTag(BaseModel):
    id: int = 0
    name: str = ""


class Member(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    email_address: str = ""
    unique_email_id: str = ""
    status: str = ""
    merge_fields: Dict[str, Any] = Field(default_factory=dict)
    interests: Dict[str, bool] = Field(default_factory=dict)
    ip_signup: str = ""
    timestamp_signup: str = ""
    ip_opt: str = ""
    timestamp_opt: str = ""
    last_changed: str = ""
    source: str = ""
    tags: List[MemberTag] = Field(default_factory=list)


class ListMembersResponse(BaseModel):
    members: List[Member] = Field(default_factory=list)
    list_id: str = ""
    total_items: int = 0


class WebhookMerges(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    email: Optional[str] = Field(default=None, alias="EMAIL")
    first_name: Optional[str] = Field(default=None, alias="FNAME")
    last_name: Optional[str] = Field(default=None, alias="LNAME")
    company: Optional[str] = Field(default=None, alias="COMPANY")
    interest: Optional[str] = Field(default=None, alias="INTEREST")
    groupings: Optional[Dict[str, Any]] = Field(default=None, alias="GROUPINGS")


class WebhookData(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    list_id: Optional[str] = None
    email: Optional[str] = None
    email_type: Optional[str] = None
    ip_opt: Optional[str] = None
    ip_signup: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    web_id: Optional[str] = None
    merges: Optional[WebhookMerges] = None


class Webhook(BaseModel):
    """
    Audience webhook.

    MailChimp posts these form-encoded with bracketed keys such as
    ``data[merges][FNAME]``; ``from_form`` rebuilds the nesting.
    """

    model_config = ConfigDict(populate_by_name=True)

    webhook_type: str = Field(alias="type")
    fired_at: datetime
    data: WebhookData = Field(default_factory=WebhookData)

    @field_validator("fired_at", mode="before")
    @classmethod
    def parse_fired_at(cls, v):
        if isinstance(v, str):
            return datetime.strptime(v, WEBHOOK_DATE_FORMAT).replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> "Webhook":
        nested: Dict[str, Any] = {}
        for key, value in form.items():
            parts = re.findall(r"[^\[\]]+", key)
            cursor = nested
            for part in parts[:-1]:
                cursor = cursor.setdefault(part, {})
            cursor[parts[-1]] = value
        return cls.model_validate(nested)


class MailChimpClient(OAuthClient):
    product = "mailchimp"
    authorize_url = "https://login.mailchimp.com/oauth2/authorize"
    token_url = "https://login.mailchimp.com/oauth2/token"
    metadata_url = "https://login.mailchimp.com/oauth2/metadata"

    def __init__(self, *args, endpoint: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        if endpoint:
            self.base_url = endpoint

    async def metadata(self) -> Dict[str, Any]:
        """Account metadata, including the ``api_endpoint`` for this account."""
        response = await self._request(
            "GET",
            self.metadata_url,
            headers={"Authorization": f"OAuth {self.token}"},
            authenticated=False,
        )
        body = self._safe_json(response)
        if body.get("api_endpoint"):
            self.base_url = body["api_endpoint"]
        return body

    async def get_subscribers(self, list_id: str) -> List[Member]:
        """List every member of an audience, paging by offset until an empty page."""
        members: List[Member] = []
        offset = 0

        while True:
            body = await self._get_json(
                f"3.0/lists/{list_id}/members",
                params={"count": PER_PAGE, "offset": offset},
            )
            page = ListMembersResponse.model_validate(body)
            if not page.members:
                return members

            members.extend(page.members)
            offset += len(page.members)
