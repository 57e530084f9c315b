"""
Ramp corporate card API client.

Tokens come from the client-credentials grant. List endpoints paginate with
``page.next``, a full URL whose query string carries the cursor.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlparse

from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import ClientCredentialsClient

ENDPOINT = "https://api.ramp.com/developer/v1/"
TOKEN_ENDPOINT = "https://api.ramp.com/v1/public/customer/token"
SCOPES = "transactions:read users:read users:write receipts:read cards:read"


class CardHolder(BaseModel):
    model_config = ConfigDict(extra="allow")

    department_id: Optional[str] = None
    department_name: str = ""
    first_name: str = ""
    last_name: str = ""
    location_id: Optional[str] = None
    location_name: str = ""
    user_id: str = ""


class Transaction(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    amount: float = 0.0
    card_holder: CardHolder = Field(default_factory=CardHolder)
    card_id: str = ""
    merchant_id: Optional[str] = None
    merchant_name: str = ""
    receipts: List[str] = Field(default_factory=list)
    sk_category_id: Optional[int] = None
    sk_category_name: str = ""
    state: str = ""
    user_transaction_time: Optional[str] = None


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    role: str = ""
    department_id: Optional[str] = None
    location_id: Optional[str] = None
    manager_id: Optional[str] = None


class UserInvite(BaseModel):
    email: str
    first_name: str
    last_name: str
    phone: str = ""
    role: str = "BUSINESS_USER"
    department_id: Optional[str] = None
    location_id: Optional[str] = None
    direct_manager_id: Optional[str] = None


class RampClient(ClientCredentialsClient):
    product = "ramp"
    base_url = ENDPOINT
    token_url = TOKEN_ENDPOINT
    scopes = SCOPES

    async def _paginate(self, path: str) -> List[Dict[str, Any]]:
        await self._ensure_token()

        items: List[Dict[str, Any]] = []
        params: Dict[str, str] = {}
        previous_next = None

        while True:
            body = await self._get_json(path, params=params or None)
            items.extend(body.get("data", []))

            next_url = (body.get("page") or {}).get("next")
            if not next_url or next_url == previous_next:
                return items

            previous_next = next_url
            params = dict(parse_qsl(urlparse(next_url).query))

    async def list_transactions(self) -> List[Transaction]:
        return [Transaction.model_validate(t) for t in await self._paginate("transactions")]

    async def list_users(self) -> List[User]:
        return [User.model_validate(u) for u in await self._paginate("users")]

    async def invite_user(self, invite: UserInvite) -> Dict[str, Any]:
        """Create a deferred user invite."""
        await self._ensure_token()
        response = await self._request(
            "POST",
            "users/deferred",
            json=invite.model_dump(exclude_none=True),
            expected=(201,),
        )
        return self._safe_json(response)
