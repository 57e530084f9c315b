"""
Unit tests for stored API tokens and client authentication.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs

import httpx
import pytest

from cio.clients.base import AccessToken
from cio.core.exceptions import APITokenNotFoundError, ValidationError
from cio.core.time_utils import utc_now
from cio.models.api_token import APIToken
from cio.services.api_tokens import (
    authenticate_quickbooks,
    authenticate_tripactions,
    authenticate_zoom,
    connect_client_credentials,
    get_token,
    oauth_client,
    refresh_api_tokens,
    refresh_token_if_needed,
    store_token,
)


def _access_token(**fields) -> AccessToken:
    defaults = {
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "token_type": "bearer",
        "expires_in": 3600,
        "refresh_token_expires_in": 8726400,
    }
    defaults.update(fields)
    return AccessToken(**defaults)


class TestStoreToken:
    def test_tokens_are_encrypted_at_rest(self, session, company):
        stored = store_token(session, company, "zoom", _access_token())

        assert stored.access_token != "access-1"
        assert stored.plain_access_token == "access-1"
        assert stored.plain_refresh_token == "refresh-1"
        assert stored.expires_date is not None

    def test_storing_again_replaces_the_token(self, session, company):
        first = store_token(session, company, "zoom", _access_token())
        second = store_token(session, company, "zoom", _access_token(access_token="access-2"))

        assert first.id == second.id
        assert get_token(session, company, "zoom").plain_access_token == "access-2"

    def test_quickbooks_realm_is_kept(self, session, company):
        stored = store_token(session, company, "quickbooks", _access_token(), company_id="realm-42")
        assert stored.company_id == "realm-42"
        assert stored.auth_company_id == company.id

    def test_missing_token_raises(self, session, company):
        with pytest.raises(APITokenNotFoundError) as exc_info:
            get_token(session, company, "gusto")
        assert exc_info.value.product == "gusto"


class TestExpiry:
    def test_unknown_expiry_counts_as_expired(self):
        assert APIToken(product="zoom", auth_company_id=1, cio_company_id=1).is_expired()

    def test_expiry_window(self):
        token = APIToken(product="zoom", auth_company_id=1, cio_company_id=1, expires_date=utc_now() + timedelta(hours=2))
        assert not token.is_expired()
        assert token.is_expired(within=timedelta(hours=3))


class TestRefresh:
    @pytest.mark.asyncio
    async def test_expiring_token_is_refreshed(self, session, company, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["refresh_token"]
            assert form["refresh_token"] == ["refresh-1"]
            return httpx.Response(200, json={"access_token": "access-2", "refresh_token": "refresh-2", "expires_in": 7200})

        http_client, _ = mock_http(handler)
        api_token = store_token(session, company, "gusto", _access_token(expires_in=60))
        client = oauth_client("gusto", http_client=http_client, refresh_token=api_token.plain_refresh_token)

        assert await refresh_token_if_needed(session, api_token, client)

        refreshed = get_token(session, company, "gusto")
        assert refreshed.plain_access_token == "access-2"
        assert refreshed.plain_refresh_token == "refresh-2"
        assert refreshed.expires_in == 7200

    @pytest.mark.asyncio
    async def test_fresh_token_is_left_alone(self, session, company, mock_http):
        http_client, recorder = mock_http(lambda request: httpx.Response(500))
        api_token = store_token(session, company, "gusto", _access_token(expires_in=30 * 86400))
        client = oauth_client("gusto", http_client=http_client, refresh_token="refresh-1")

        assert not await refresh_token_if_needed(session, api_token, client)
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_authenticated_quickbooks_client_carries_realm(self, session, company):
        store_token(session, company, "quickbooks", _access_token(expires_in=30 * 86400), company_id="realm-42")

        client = await authenticate_quickbooks(session, company)

        assert client.company_id == "realm-42"
        assert client.token == "access-1"


class TestRefreshApiTokens:
    @pytest.mark.asyncio
    async def test_failed_refresh_does_not_stop_the_others(self, session, company, other_company, mock_http):
        company.airtable_record_id = "recOxide"
        session.add(company)
        session.commit()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.gusto.com":
                return httpx.Response(400, json={"error": "invalid_grant"})
            assert request.url.host == "zoom.us"
            return httpx.Response(200, json={"access_token": "zoom-2", "refresh_token": "zoom-r2", "expires_in": 3600})

        http_client, recorder = mock_http(handler)
        store_token(session, company, "gusto", _access_token(expires_in=60))
        store_token(session, other_company, "zoom", _access_token(expires_in=60))
        store_token(session, company, "ramp", _access_token(refresh_token="", expires_in=60))
        update_airtable = AsyncMock(return_value={"created": 3, "updated": 0, "deleted": 0})

        with patch("cio.services.api_tokens.AirtableSync.update_airtable", new=update_airtable):
            counts = await refresh_api_tokens(session, company, http_client=http_client)

        assert counts == {"created": 3, "updated": 0, "deleted": 0}
        assert sorted(r.url.host for r in recorder.requests) == ["api.gusto.com", "zoom.us"]
        assert get_token(session, company, "gusto").plain_access_token == "access-1"
        assert get_token(session, other_company, "zoom").plain_access_token == "zoom-2"

        tokens = update_airtable.await_args.args[0]
        assert sorted(t.product for t in tokens) == ["gusto", "ramp", "zoom"]
        assert update_airtable.await_args.kwargs["company_record_ids"] == {company.id: "recOxide"}


class TestClientCredentials:
    @pytest.mark.asyncio
    async def test_connect_stores_minted_token(self, session, company, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/ta-auth/oauth/token"
            assert parse_qs(request.content.decode())["grant_type"] == ["client_credentials"]
            return httpx.Response(200, json={"access_token": "ta-1", "expires_in": 3600})

        http_client, _ = mock_http(handler)

        stored = await connect_client_credentials(session, company, "tripactions", http_client=http_client)

        assert stored.auth_company_id == company.id
        assert get_token(session, company, "tripactions").plain_access_token == "ta-1"

    @pytest.mark.asyncio
    async def test_connect_rejects_oauth_products(self, session, company):
        with pytest.raises(ValidationError):
            await connect_client_credentials(session, company, "zoom")

    @pytest.mark.asyncio
    async def test_company_without_token_does_not_use_the_product(self, session, other_company):
        with pytest.raises(APITokenNotFoundError):
            await authenticate_tripactions(session, other_company)

    @pytest.mark.asyncio
    async def test_fresh_token_is_reused(self, session, company, mock_http):
        http_client, recorder = mock_http(lambda request: httpx.Response(500))
        store_token(session, company, "tripactions", _access_token(access_token="ta-1"))

        client = await authenticate_tripactions(session, company, http_client=http_client)

        assert client.token == "ta-1"
        assert recorder.requests == []


@pytest.mark.asyncio
async def test_cio_company_falls_back_to_zoom_account_token(session, company, mock_http, monkeypatch):
    monkeypatch.setattr("cio.services.api_tokens.settings.zoom_account_id", "acct-oxide")

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/oauth/token"
        assert request.url.params["grant_type"] == "account_credentials"
        assert request.url.params["account_id"] == "acct-oxide"
        return httpx.Response(200, json={"access_token": "zoom-account", "expires_in": 3600})

    http_client, _ = mock_http(handler)

    client = await authenticate_zoom(session, company, http_client=http_client)

    assert client.token == "zoom-account"


def test_oauth_client_rejects_unknown_product():
    with pytest.raises(ValidationError):
        oauth_client("ramp")


def test_api_token_links_company_in_airtable(company):
    api_token = APIToken(product="zoom", auth_company_id=company.id, cio_company_id=company.id)

    fields = api_token.update_airtable_record(company_record_ids={company.id: "recOxide"})

    assert fields["company"] == ["recOxide"]
    assert "access_token" not in fields
    assert "refresh_token" not in fields
