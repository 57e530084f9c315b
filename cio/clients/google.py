"""
Google Workspace Directory and Drive clients.

Both authenticate with a bearer access token obtained elsewhere (service
account delegation or a stored OAuth token) and page with ``pageToken``.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import BearerTokenClient

DIRECTORY_ENDPOINT = "https://www.googleapis.com/admin/directory/v1/"
DRIVE_ENDPOINT = "https://www.googleapis.com/drive/v3/"


class DirectoryName(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    given_name: str = Field(default="", alias="givenName")
    family_name: str = Field(default="", alias="familyName")
    full_name: str = Field(default="", alias="fullName")


class DirectoryUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    primary_email: str = Field(default="", alias="primaryEmail")
    name: DirectoryName = Field(default_factory=DirectoryName)
    suspended: bool = False
    is_admin: bool = Field(default=False, alias="isAdmin")
    aliases: List[str] = Field(default_factory=list)


class DirectoryGroup(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    email: str = ""
    name: str = ""
    description: str = ""
    direct_members_count: Optional[str] = Field(default=None, alias="directMembersCount")


class DriveFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    name: str = ""
    mime_type: str = Field(default="", alias="mimeType")
    parents: List[str] = Field(default_factory=list)
    web_view_link: str = Field(default="", alias="webViewLink")


class _PagedGoogleClient(BearerTokenClient):
    async def _paginate(self, path: str, key: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page_params = dict(params)

        while True:
            body = await self._get_json(path, params=page_params)
            items.extend(body.get(key, []))

            next_token = body.get("nextPageToken")
            if not next_token:
                return items
            page_params = {**params, "pageToken": next_token}


class GoogleDirectoryClient(_PagedGoogleClient):
    product = "gsuite"
    base_url = DIRECTORY_ENDPOINT

    async def list_users(self, domain: str) -> List[DirectoryUser]:
        rows = await self._paginate("users", "users", {"domain": domain, "maxResults": "500"})
        return [DirectoryUser.model_validate(u) for u in rows]

    async def list_groups(self, domain: str) -> List[DirectoryGroup]:
        rows = await self._paginate("groups", "groups", {"domain": domain, "maxResults": "200"})
        return [DirectoryGroup.model_validate(g) for g in rows]


class GoogleDriveClient(_PagedGoogleClient):
    product = "google_drive"
    base_url = DRIVE_ENDPOINT

    async def list_files(self, query: str = "") -> List[DriveFile]:
        params = {
            "pageSize": "1000",
            "fields": "nextPageToken, files(id, name, mimeType, parents, webViewLink)",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if query:
            params["q"] = query
        return [DriveFile.model_validate(f) for f in await self._paginate("files", "files", params)]

    async def get_file_contents(self, file_id: str) -> bytes:
        response = await self._request(
            "GET",
            f"files/{file_id}",
            params={"alt": "media", "supportsAllDrives": "true"},
            headers={"Accept": "*/*"},
        )
        return response.content
