"""
OAuth and API tokens for third-party products.

Tokens are encrypted with Fernet before storage (core/encryption.py) and are
never sent to Airtable.
"""
from datetime import datetime, timedelta
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple

from sqlalchemy import Column, Text, UniqueConstraint
from sqlmodel import Field

from cio.clients.airtable import AIRTABLE_API_TOKENS_TABLE
from cio.clients.base import AccessToken
from cio.core.encryption import decrypt_optional, encrypt_optional
from cio.core.time_utils import ensure_utc, utc_now
from cio.models.base import AirtableRecord, CompanyScoped


class APIToken(CompanyScoped, AirtableRecord, table=True):
    """
    Token a company granted for one product.

    ``auth_company_id`` is the company the token authenticates; ``cio_company_id``
    is the company whose Airtable base lists it.
    """
    __tablename__ = "api_tokens"

    __airtable_base__: ClassVar[str] = "cio"
    __airtable_table__: ClassVar[str] = AIRTABLE_API_TOKENS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("auth_company_id", "product")
    __airtable_exclude__: ClassVar[FrozenSet[str]] = frozenset({"access_token", "refresh_token"})

    product: str = Field(max_length=64, index=True)
    # Provider-side account id (QuickBooks realm, Gusto company, ...)
    company_id: str = Field(default="", max_length=255)
    item_id: str = Field(default="", max_length=255)
    user_email: str = Field(default="", max_length=255)
    token_type: str = Field(default="", max_length=64)
    access_token: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    expires_in: int = Field(default=0)
    refresh_token: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    refresh_token_expires_in: int = Field(default=0)
    expires_date: Optional[datetime] = Field(default=None)
    refresh_token_expires_date: Optional[datetime] = Field(default=None)
    endpoint: str = Field(default="", max_length=512)
    last_updated_at: datetime = Field(default_factory=utc_now, nullable=False)
    auth_company_id: int = Field(foreign_key="companies.id", index=True)

    __table_args__ = (
        UniqueConstraint("auth_company_id", "product", name="uq_api_token_company_product"),
    )

    @classmethod
    def from_access_token(cls, product: str, token: AccessToken, *, auth_company_id: int, **fields: Any) -> "APIToken":
        """Build an encrypted token row from an OAuth token response."""
        api_token = cls(
            product=product,
            token_type=token.token_type,
            expires_in=token.expires_in,
            refresh_token_expires_in=token.refresh_token_expires_in,
            last_updated_at=utc_now(),
            auth_company_id=auth_company_id,
            cio_company_id=auth_company_id,
            **fields,
        )
        api_token.set_tokens(token.access_token, token.refresh_token)
        api_token.expand()
        return api_token

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self.access_token = encrypt_optional(access_token)
        if refresh_token:
            self.refresh_token = encrypt_optional(refresh_token)

    @property
    def plain_access_token(self) -> str:
        return decrypt_optional(self.access_token)

    @property
    def plain_refresh_token(self) -> str:
        return decrypt_optional(self.refresh_token)

    def expand(self) -> None:
        """Derive the expiry dates from ``last_updated_at`` and the lifetimes."""
        updated = ensure_utc(self.last_updated_at)
        if self.expires_in > 0:
            self.expires_date = updated + timedelta(seconds=self.expires_in)
        if self.refresh_token_expires_in > 0:
            self.refresh_token_expires_date = updated + timedelta(seconds=self.refresh_token_expires_in)

    def is_expired(self, within: timedelta = timedelta(0), now: Optional[datetime] = None) -> bool:
        """True when the token expires inside ``within`` or its expiry is unknown."""
        if self.expires_date is None:
            return True
        now = now or utc_now()
        return ensure_utc(self.expires_date) - within <= now

    def update_airtable_record(self, existing: Optional[Dict[str, Any]] = None, **context: Any) -> Dict[str, Any]:
        fields = super().update_airtable_record(existing, **context)
        # Link to the company the token authenticates
        record_ids = context.get("company_record_ids") or {}
        company_record_id = record_ids.get(self.auth_company_id)
        if company_record_id:
            fields["company"] = [company_record_id]
        return fields
