"""
OAuth consent and callback endpoints.

The consent URL carries the company name as ``state``; the callback exchanges
the code and stores the token on that company.
"""
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from cio.api.dependencies import get_request_id, get_session
from cio.clients.mailchimp import MailChimpClient
from cio.core.config import OAUTH_PRODUCTS
from cio.core.exceptions import ValidationError
from cio.core.http_client import get_http_client
from cio.core.logging_config import log_info
from cio.schemas.auth import ConsentURLResponse, TokenStoredResponse
from cio.services.api_tokens import oauth_client, store_token
from cio.services.companies import get_company_by_name

router = APIRouter(prefix="/auth", tags=["authentication"])


def _check_product(product: str) -> None:
    if product not in OAUTH_PRODUCTS:
        raise ValidationError(f"Unsupported OAuth product: {product}")


@router.get("/{product}/consent", response_model=ConsentURLResponse)
async def consent(
    product: str,
    company: Annotated[str, Query(description="Company the token is for")],
):
    _check_product(product)
    client = oauth_client(product)
    return ConsentURLResponse(url=client.user_consent_url(state=company))


@router.get(
    "/{product}/callback",
    response_model=TokenStoredResponse,
    responses={404: {"description": "Company not found"}, 502: {"description": "Token exchange failed"}},
)
async def callback(
    product: str,
    session: Annotated[Session, Depends(get_session)],
    request_id: Annotated[str, Depends(get_request_id)],
    code: Annotated[str, Query()],
    state: Annotated[str, Query(description="Company name from the consent URL")],
    realm_id: Annotated[Optional[str], Query(alias="realmId")] = None,
):
    _check_product(product)
    company = get_company_by_name(session, state)

    client = oauth_client(product, http_client=await get_http_client())
    token = await client.get_access_token(code)

    fields: Dict[str, Any] = {}
    if isinstance(client, MailChimpClient):
        metadata = await client.metadata()
        fields["endpoint"] = metadata.get("api_endpoint", "")
        fields["user_email"] = (metadata.get("login") or {}).get("login_email", "")
    if product == "quickbooks" and realm_id:
        fields["company_id"] = realm_id

    api_token = store_token(session, company, product, token, **fields)
    log_info(f"Connected {product}", request_id=request_id, company=company.name)
    return TokenStoredResponse(
        product=product,
        company=company.name,
        expires_date=api_token.expires_date.isoformat() if api_token.expires_date else None,
    )
