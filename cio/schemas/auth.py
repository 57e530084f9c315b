from typing import Optional

from pydantic import BaseModel


class ConsentURLResponse(BaseModel):
    """URL the user opens to grant a product access."""

    url: str


class TokenStoredResponse(BaseModel):
    product: str
    company: str
    expires_date: Optional[str] = None
