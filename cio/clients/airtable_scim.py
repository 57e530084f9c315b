"""
Airtable enterprise SCIM 2.0 client for user and group provisioning.

Airtable serves group reads from ``Groups`` but creates and replaces groups on
the singular ``Group`` path.
"""
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import BearerTokenClient

SCIM_ENDPOINT = "https://airtable.com/scim/v2/"

SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
SCIM_GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"


class ScimError(Exception):
    def __init__(self, status: int, detail: str):
        self.status = status
        self.detail = detail
        super().__init__(f"SCIM error {status}: {detail}")


class ScimName(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    family_name: str = Field(default="", alias="familyName")
    given_name: str = Field(default="", alias="givenName")


class ScimEmail(BaseModel):
    value: str = ""


class ScimMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    created: Optional[str] = None
    resource_type: str = Field(default="", alias="resourceType")
    location: str = ""


class ScimUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schemas: List[str] = Field(default_factory=lambda: [SCIM_USER_SCHEMA])
    id: str = ""
    user_name: str = Field(default="", alias="userName")
    name: ScimName = Field(default_factory=ScimName)
    title: str = ""
    active: bool = True
    emails: List[ScimEmail] = Field(default_factory=list)
    meta: Optional[ScimMeta] = None


class ScimGroupMember(BaseModel):
    value: str = ""


class ScimGroup(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    schemas: List[str] = Field(default_factory=lambda: [SCIM_GROUP_SCHEMA])
    id: str = ""
    display_name: str = Field(default="", alias="displayName")
    members: List[ScimGroupMember] = Field(default_factory=list)
    meta: Optional[ScimMeta] = None


class ScimListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schemas: List[str] = Field(default_factory=list)
    total_results: int = Field(default=0, alias="totalResults")
    start_index: int = Field(default=1, alias="startIndex")
    items_per_page: int = Field(default=0, alias="itemsPerPage")
    resources: List[Dict[str, Any]] = Field(default_factory=list, alias="Resources")


class AirtableScimClient(BearerTokenClient):
    """SCIM client authenticated with an enterprise admin API key."""

    product = "airtable_scim"

    def __init__(self, api_key: str, *, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(token=api_key, http_client=http_client, base_url=SCIM_ENDPOINT)

    async def _scim(self, method: str, path: str, *, json: Any = None, expected=(200, 201)) -> Dict[str, Any]:
        client = await self._client()
        headers = {"Accept": "application/scim+json", **self._auth_headers()}
        response = await client.request(method, self._url(path), json=json, headers=headers)

        if response.status_code in expected:
            return self._safe_json(response)

        body = self._safe_json(response)
        if response.status_code == 401:
            error = body.get("error", {}) if isinstance(body, dict) else {}
            raise ScimError(401, f"{error.get('type', 'AUTHENTICATION_REQUIRED')}: {error.get('message', response.text)}")

        detail = body.get("detail") if isinstance(body, dict) else None
        status = body.get("status") if isinstance(body, dict) else None
        raise ScimError(int(status or response.status_code), detail or response.text)

    async def list_users(self) -> List[ScimUser]:
        body = ScimListResponse.model_validate(await self._scim("GET", "Users"))
        return [ScimUser.model_validate(r) for r in body.resources]

    async def get_user(self, user_id: str) -> ScimUser:
        return ScimUser.model_validate(await self._scim("GET", f"Users/{user_id}"))

    async def create_user(self, user: ScimUser) -> ScimUser:
        payload = user.model_dump(by_alias=True, exclude={"id", "meta"})
        return ScimUser.model_validate(await self._scim("POST", "Users", json=payload))

    async def update_user(self, user: ScimUser) -> ScimUser:
        payload = user.model_dump(by_alias=True, exclude={"meta"})
        return ScimUser.model_validate(await self._scim("PUT", f"Users/{user.id}", json=payload))

    async def list_groups(self) -> List[ScimGroup]:
        body = ScimListResponse.model_validate(await self._scim("GET", "Groups"))
        return [ScimGroup.model_validate(r) for r in body.resources]

    async def get_group(self, group_id: str) -> ScimGroup:
        return ScimGroup.model_validate(await self._scim("GET", f"Groups/{group_id}"))

    async def create_group(self, group: ScimGroup) -> ScimGroup:
        payload = group.model_dump(by_alias=True, exclude={"id", "meta"})
        return ScimGroup.model_validate(await self._scim("POST", "Group", json=payload))

    async def update_group(self, group: ScimGroup) -> ScimGroup:
        payload = group.model_dump(by_alias=True, exclude={"meta"})
        return ScimGroup.model_validate(await self._scim("PUT", f"Group/{group.id}", json=payload))
