"""
Zoom v2 API client.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import AccessToken, OAuthClient

ENDPOINT = "https://api.zoom.us/v2/"
RECORDINGS_LOOKBACK = timedelta(weeks=3)


class ZoomUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    type: int = 1
    status: str = ""
    dept: str = ""


class RecordingFile(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    meeting_id: str = ""
    recording_start: str = ""
    recording_end: str = ""
    file_type: str = ""
    file_size: Optional[int] = None
    play_url: Optional[str] = None
    download_url: str = ""
    status: Optional[str] = None
    recording_type: Optional[str] = None


class Meeting(BaseModel):
    model_config = ConfigDict(extra="allow")

    uuid: str = ""
    id: int = 0
    host_id: str = ""
    topic: str = ""
    start_time: str = ""
    duration: int = 0
    total_size: int = 0
    recording_count: int = 0
    recording_files: List[RecordingFile] = Field(default_factory=list)


class ZoomClient(OAuthClient):
    product = "zoom"
    base_url = ENDPOINT
    authorize_url = "https://zoom.us/oauth/authorize"
    token_url = "https://zoom.us/oauth/token"
    token_basic_auth = True

    async def get_account_token(self, account_id: str) -> AccessToken:
        """Server-to-server token for an account (no user consent)."""
        response = await self._request(
            "POST",
            self.token_url,
            params={"grant_type": "account_credentials", "account_id": account_id},
            auth=httpx.BasicAuth(self.client_id, self.client_secret),
            authenticated=False,
        )
        token = AccessToken.model_validate(self._safe_json(response))
        self.token = token.access_token
        return token

    async def list_users(self) -> List[ZoomUser]:
        users: List[ZoomUser] = []
        params = {"page_size": "300"}

        while True:
            body = await self._get_json("users", params=params)
            users.extend(ZoomUser.model_validate(u) for u in body.get("users", []))

            next_token = body.get("next_page_token")
            if not next_token:
                return users
            params = {"page_size": "300", "next_page_token": next_token}

    async def list_recordings_as_admin(self) -> List[Meeting]:
        """Cloud recordings of the whole account from the last three weeks."""
        now = datetime.now(timezone.utc)
        body = await self._get_json(
            "accounts/me/recordings",
            params={
                "page_size": "100",
                "from": (now - RECORDINGS_LOOKBACK).date().isoformat(),
                "to": now.date().isoformat(),
            },
        )
        return [Meeting.model_validate(m) for m in body.get("meetings") or []]

    async def download_recording(self, download_url: str) -> bytes:
        response = await self._request(
            "GET",
            download_url,
            params={"access_token": self.token} if self.token else None,
            headers={"Accept": "*/*"},
        )
        return response.content

    async def delete_meeting_recordings(self, meeting_id: int) -> None:
        await self._request("DELETE", f"meetings/{meeting_id}/recordings", expected=(204,))
