"""
Gusto payroll API client (OAuth authorization code).
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import OAuthClient

ENDPOINT = "https://api.gusto.com/"


class CurrentUserRoles(BaseModel):
    model_config = ConfigDict(extra="allow")

    payroll_admin: Optional[dict] = None


class CurrentUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = ""
    roles: CurrentUserRoles = Field(default_factory=CurrentUserRoles)

    @property
    def company_ids(self) -> List[str]:
        admin = self.roles.payroll_admin or {}
        return [str(c.get("id")) for c in admin.get("companies", []) if c.get("id") is not None]


class Employee(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int = 0
    uuid: str = ""
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    terminated: bool = False
    onboarded: bool = False


class GustoClient(OAuthClient):
    product = "gusto"
    base_url = ENDPOINT
    authorize_url = "https://api.gusto.com/oauth/authorize"
    token_url = "https://api.gusto.com/oauth/token"

    async def current_user(self) -> CurrentUser:
        return CurrentUser.model_validate(await self._get_json("v1/me"))

    async def list_employees(self, company_id: str) -> List[Employee]:
        body = await self._get_json(f"v1/companies/{company_id}/employees")
        return [Employee.model_validate(e) for e in body]
