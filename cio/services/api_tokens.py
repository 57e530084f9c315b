"""
Stored product tokens and authenticated API clients.

``authenticate_<product>`` looks up the company's token, refreshes it when it
is about to expire, and returns a ready client. A company without a stored
token does not use the product. Ramp and TripActions tokens are minted with
the client-credentials grant when a company is connected and again when they
expire. Products keyed by a static credential (Checkr, Airtable SCIM) are
built from settings.
"""
from datetime import timedelta
from typing import Dict, Optional, Type

import httpx
from sqlmodel import Session, select

from cio.clients.airtable_scim import AirtableScimClient
from cio.clients.base import AccessToken, APIConnectionError, APIError, ClientCredentialsClient, OAuthClient
from cio.clients.checkr import CheckrClient
from cio.clients.gusto import GustoClient
from cio.clients.mailchimp import MailChimpClient
from cio.clients.quickbooks import QuickBooksClient
from cio.clients.ramp import RampClient
from cio.clients.slack import SlackClient
from cio.clients.tripactions import TripActionsClient
from cio.clients.zoho import ZohoClient
from cio.clients.zoom import ZoomClient
from cio.core.config import settings
from cio.core.exceptions import APITokenNotFoundError, ValidationError
from cio.core.logging_config import log_info, log_warning
from cio.core.time_utils import utc_now
from cio.models.api_token import APIToken
from cio.models.company import Company
from cio.services.records import AirtableSync, RecordService

OAUTH_CLIENTS: Dict[str, Type[OAuthClient]] = {
    "gusto": GustoClient,
    "mailchimp": MailChimpClient,
    "quickbooks": QuickBooksClient,
    "slack": SlackClient,
    "zoho": ZohoClient,
    "zoom": ZoomClient,
}

CLIENT_CREDENTIALS_CLIENTS: Dict[str, Type[ClientCredentialsClient]] = {
    "ramp": RampClient,
    "tripactions": TripActionsClient,
}


def oauth_client(product: str, *, http_client: Optional[httpx.AsyncClient] = None, **kwargs) -> OAuthClient:
    """Unauthenticated OAuth client for a product, wired to our callback URL."""
    client_class = OAUTH_CLIENTS.get(product)
    if client_class is None:
        raise ValidationError(f"Unsupported OAuth product: {product}")
    client_id, client_secret = settings.oauth_credentials(product)
    return client_class(
        client_id,
        client_secret,
        redirect_uri=settings.oauth_redirect_uri(product),
        http_client=http_client,
        **kwargs,
    )


def get_token(session: Session, company: Company, product: str) -> APIToken:
    statement = select(APIToken).where(
        APIToken.auth_company_id == company.id,
        APIToken.product == product,
    )
    token = session.exec(statement).first()
    if token is None:
        raise APITokenNotFoundError(product, company.name)
    return token


def store_token(session: Session, company: Company, product: str, token: AccessToken, **fields) -> APIToken:
    """Save an OAuth token response for the company, replacing any earlier one."""
    api_token = APIToken.from_access_token(product, token, auth_company_id=company.id, **fields)
    stored = RecordService(APIToken, session).upsert(api_token)
    log_info(f"Stored {product} token for company {company.name}", product=product)
    return stored


async def refresh_token_if_needed(
    session: Session,
    api_token: APIToken,
    client: OAuthClient,
    window: Optional[timedelta] = None,
) -> bool:
    """Refresh ``api_token`` through ``client`` when it expires within ``window``."""
    window = window if window is not None else timedelta(hours=settings.token_refresh_window_hours)
    if not api_token.refresh_token or not api_token.is_expired(window):
        return False

    fresh = await client.refresh_access_token()
    api_token.set_tokens(fresh.access_token, fresh.refresh_token)
    if fresh.expires_in:
        api_token.expires_in = fresh.expires_in
    if fresh.refresh_token_expires_in:
        api_token.refresh_token_expires_in = fresh.refresh_token_expires_in
    api_token.last_updated_at = utc_now()
    api_token.expand()
    RecordService(APIToken, session).update(api_token)
    log_info(f"Refreshed {api_token.product} token", product=api_token.product, company_id=api_token.auth_company_id)
    return True


async def _authenticate(
    session: Session,
    company: Company,
    product: str,
    http_client: Optional[httpx.AsyncClient] = None,
    **kwargs,
) -> OAuthClient:
    api_token = get_token(session, company, product)
    client = oauth_client(
        product,
        http_client=http_client,
        token=api_token.plain_access_token,
        refresh_token=api_token.plain_refresh_token,
        **kwargs,
    )
    await refresh_token_if_needed(session, api_token, client)
    return client


async def authenticate_gusto(session: Session, company: Company, **kwargs) -> GustoClient:
    return await _authenticate(session, company, "gusto", **kwargs)


async def authenticate_mailchimp(session: Session, company: Company, **kwargs) -> MailChimpClient:
    api_token = get_token(session, company, "mailchimp")
    return await _authenticate(session, company, "mailchimp", endpoint=api_token.endpoint, **kwargs)


async def authenticate_quickbooks(session: Session, company: Company, **kwargs) -> QuickBooksClient:
    api_token = get_token(session, company, "quickbooks")
    return await _authenticate(session, company, "quickbooks", company_id=api_token.company_id, **kwargs)


async def authenticate_slack(session: Session, company: Company, **kwargs) -> SlackClient:
    return await _authenticate(session, company, "slack", **kwargs)


async def authenticate_zoho(session: Session, company: Company, **kwargs) -> ZohoClient:
    return await _authenticate(session, company, "zoho", **kwargs)


async def authenticate_zoom(session: Session, company: Company, **kwargs) -> ZoomClient:
    """
    Stored Zoom token. The CIO company itself may instead use an
    account-credentials token when none is stored.
    """
    try:
        return await _authenticate(session, company, "zoom", **kwargs)
    except APITokenNotFoundError:
        if not settings.zoom_account_id or company.name != settings.cio_company_name:
            raise
    client = oauth_client("zoom", **kwargs)
    await client.get_account_token(settings.zoom_account_id)
    return client


def client_credentials_client(
    product: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    **kwargs,
) -> ClientCredentialsClient:
    client_class = CLIENT_CREDENTIALS_CLIENTS.get(product)
    if client_class is None:
        raise ValidationError(f"Unsupported client-credentials product: {product}")
    client_id, client_secret = settings.oauth_credentials(product)
    return client_class(client_id, client_secret, http_client=http_client, **kwargs)


async def connect_client_credentials(
    session: Session,
    company: Company,
    product: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> APIToken:
    """Mint a client-credentials token and store it as the company's token for ``product``."""
    client = client_credentials_client(product, http_client=http_client)
    token = await client.get_access_token()
    return store_token(session, company, product, token)


async def _authenticate_client_credentials(
    session: Session,
    company: Company,
    product: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ClientCredentialsClient:
    api_token = get_token(session, company, product)
    client = client_credentials_client(product, http_client=http_client, token=api_token.plain_access_token)
    if api_token.is_expired():
        fresh = await client.get_access_token()
        api_token.set_tokens(fresh.access_token)
        api_token.expires_in = fresh.expires_in
        api_token.last_updated_at = utc_now()
        api_token.expand()
        RecordService(APIToken, session).update(api_token)
        log_info(f"Minted new {product} token", product=product, company=company.name)
    return client


async def authenticate_ramp(session: Session, company: Company, **kwargs) -> RampClient:
    return await _authenticate_client_credentials(session, company, "ramp", **kwargs)


async def authenticate_tripactions(session: Session, company: Company, **kwargs) -> TripActionsClient:
    return await _authenticate_client_credentials(session, company, "tripactions", **kwargs)


def checkr_client(**kwargs) -> CheckrClient:
    return CheckrClient(settings.checkr_api_key, **kwargs)


def airtable_scim_client(**kwargs) -> AirtableScimClient:
    return AirtableScimClient(settings.airtable_enterprise_api_key, **kwargs)


async def refresh_api_tokens(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, int]:
    """
    Refresh expiring tokens of every company and mirror them to Airtable.

    Tokens live in the API Tokens table of ``company``'s CIO base, which is
    shared by all companies, so the whole table is reconciled at once.
    """
    service = RecordService(APIToken, session)
    tokens = service.list_all()

    for api_token in tokens:
        api_token.expand()
        if api_token.product not in OAUTH_CLIENTS:
            continue
        client = oauth_client(
            api_token.product,
            http_client=http_client,
            token=api_token.plain_access_token,
            refresh_token=api_token.plain_refresh_token,
        )
        try:
            await refresh_token_if_needed(session, api_token, client)
        except (APIError, APIConnectionError, ValueError) as exc:
            log_warning(f"Refreshing {api_token.product} token failed: {exc}", company_id=api_token.auth_company_id)

    company_record_ids = {
        c.id: c.airtable_record_id
        for c in session.exec(select(Company)).all()
        if c.airtable_record_id
    }
    sync = AirtableSync.for_company(service, company, http_client=http_client)
    return await sync.update_airtable(tokens, company_record_ids=company_record_ids)
