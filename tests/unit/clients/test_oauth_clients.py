"""
Unit tests for the OAuth, Slack and MailChimp clients.
"""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from cio.clients.base import APIError
from cio.clients.mailchimp import MailChimpClient, Webhook
from cio.clients.slack import FormattedMessage, SlackClient, SlackWebhookClient
from cio.clients.zoom import ZoomClient


class TestOAuthFlow:
    def test_consent_url_carries_client_redirect_and_state(self):
        client = ZoomClient("client-id", "secret", redirect_uri="https://hooks.test/api/v1/auth/zoom/callback")

        url = urlparse(client.user_consent_url(state="Oxide"))
        query = parse_qs(url.query)

        assert url.netloc == "zoom.us"
        assert query["client_id"] == ["client-id"]
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"] == ["https://hooks.test/api/v1/auth/zoom/callback"]
        assert query["state"] == ["Oxide"]

    def test_slack_consent_url_adds_user_scopes(self):
        client = SlackClient("client-id", "secret")
        assert "user_scope=identity.basic,identity.email" in client.user_consent_url()

    @pytest.mark.asyncio
    async def test_code_exchange_uses_basic_auth_when_configured(self, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"].startswith("Basic ")
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["authorization_code"]
            assert form["code"] == ["abc"]
            assert "client_secret" not in form
            return httpx.Response(200, json={
                "access_token": "access",
                "refresh_token": "refresh",
                "expires_in": 3600,
                "token_type": "bearer",
            })

        http_client, _ = mock_http(handler)
        client = ZoomClient("client-id", "secret", http_client=http_client)

        token = await client.get_access_token("abc")

        assert token.access_token == "access"
        assert client.token == "access"
        assert client.refresh_token == "refresh"

    @pytest.mark.asyncio
    async def test_refresh_without_refresh_token_raises(self):
        client = ZoomClient("client-id", "secret")
        with pytest.raises(ValueError):
            await client.refresh_access_token()


class TestSlackClient:
    @pytest.mark.asyncio
    async def test_post_message_joins_channel_and_retries(self, mock_http):
        responses = iter([
            httpx.Response(200, json={"ok": False, "error": "not_in_channel"}),
            httpx.Response(200, json={"ok": True, "channel": {"id": "C1"}}),
            httpx.Response(200, json={"ok": True, "channel": "C1", "ts": "1.0"}),
        ])
        http_client, recorder = mock_http(lambda request: next(responses))
        client = SlackClient("id", "secret", token="xoxb", http_client=http_client)

        result = await client.post_message(FormattedMessage(channel="#debug", text="hi"))

        assert result.ok
        assert [r.url.path for r in recorder.requests] == [
            "/api/chat.postMessage",
            "/api/conversations.join",
            "/api/chat.postMessage",
        ]

    @pytest.mark.asyncio
    async def test_post_message_raises_when_slack_says_not_ok(self, mock_http):
        http_client, _ = mock_http(lambda request: httpx.Response(200, json={"ok": False, "error": "invalid_auth"}))
        client = SlackClient("id", "secret", token="xoxb", http_client=http_client)

        with pytest.raises(APIError):
            await client.post_message(FormattedMessage(channel="#debug", text="hi"))

    @pytest.mark.asyncio
    async def test_webhook_client_posts_payload_without_token(self, mock_http):
        http_client, recorder = mock_http(lambda request: httpx.Response(200, text="ok"))

        await SlackWebhookClient(http_client=http_client).post_to_channel(
            "https://hooks.slack.com/services/T/B/X",
            FormattedMessage(text="hello"),
        )

        request = recorder.requests[0]
        assert "Authorization" not in request.headers
        assert json.loads(request.content)["text"] == "hello"


class TestMailChimp:
    @pytest.mark.asyncio
    async def test_metadata_sets_data_center_endpoint(self, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "OAuth token"
            return httpx.Response(200, json={"api_endpoint": "https://us3.api.mailchimp.com", "login": {"email": "a@b.c"}})

        http_client, _ = mock_http(handler)
        client = MailChimpClient("id", "secret", token="token", http_client=http_client)

        await client.metadata()

        assert client.base_url == "https://us3.api.mailchimp.com"

    @pytest.mark.asyncio
    async def test_get_subscribers_pages_until_empty(self, mock_http):
        pages = iter([
            {"members": [{"id": "1", "email_address": "a@example.com"}]},
            {"members": [{"id": "2", "email_address": "b@example.com"}]},
            {"members": []},
        ])
        http_client, recorder = mock_http(lambda request: httpx.Response(200, json=next(pages)))
        client = MailChimpClient("id", "secret", token="t", endpoint="https://us3.api.mailchimp.com", http_client=http_client)

        members = await client.get_subscribers("list123")

        assert [m.email_address for m in members] == ["a@example.com", "b@example.com"]
        offsets = [parse_qs(urlparse(str(r.url)).query)["offset"] for r in recorder.requests]
        assert offsets == [["0"], ["1"], ["2"]]

    def test_webhook_from_form_rebuilds_nesting(self):
        webhook = Webhook.from_form({
            "type": "subscribe",
            "fired_at": "2021-03-04 05:06:07",
            "data[email]": "jess@example.com",
            "data[list_id]": "list123",
            "data[merges][FNAME]": "Jess",
            "data[merges][LNAME]": "Frazelle",
            "data[merges][GROUPINGS][0][groups]": "Podcast",
        })

        assert webhook.webhook_type == "subscribe"
        assert webhook.fired_at.year == 2021
        assert webhook.fired_at.tzinfo is not None
        assert webhook.data.email == "jess@example.com"
        assert webhook.data.merges.first_name == "Jess"
        assert webhook.data.merges.groupings == {"0": {"groups": "Podcast"}}
