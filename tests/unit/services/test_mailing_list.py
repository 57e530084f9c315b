"""
Unit tests for MailChimp subscriber import and the audience webhook.
"""
import json

import httpx
import pytest

from cio.clients.mailchimp import Member, Webhook
from cio.models.mailing_list import MailingListSubscriber
from cio.services.mailing_list import (
    NEWSLETTER_INTEREST_ID,
    PRODUCT_UPDATES_INTEREST_ID,
    handle_mailchimp_webhook,
    refresh_db_mailing_list_subscribers,
    subscriber_from_member,
    subscriber_from_webhook,
    subscriber_message,
)
from cio.services.records import RecordService


def _webhook(**form):
    defaults = {
        "type": "subscribe",
        "fired_at": "2021-03-04 05:06:07",
        "data[email]": "jess@example.com",
        "data[list_id]": "list123",
        "data[merges][EMAIL]": "jess@example.com",
        "data[merges][FNAME]": "Jess",
        "data[merges][LNAME]": "Frazelle",
        "data[merges][COMPANY]": "Oxide",
        "data[merges][INTEREST]": "Racks",
        "data[merges][GROUPINGS][0][groups]": "",
        "data[merges][GROUPINGS][1][groups]": "Newsletter",
        "data[merges][GROUPINGS][2][groups]": "Product updates",
    }
    defaults.update(form)
    return Webhook.from_form(defaults)


class TestSubscriberFromMember:
    def test_maps_merge_fields_interests_and_address(self, company):
        member = Member.model_validate({
            "email_address": " jess@example.com ",
            "merge_fields": {
                "FNAME": "Jess",
                "LNAME": "Frazelle",
                "COMPANY": "Oxide",
                "PHONE": "555-0100",
                "ADDRESS": {"addr1": "1 Main St", "addr2": "", "city": "Emeryville", "state": "CA", "zip": "94608", "country": "US"},
            },
            "interests": {NEWSLETTER_INTEREST_ID: True, PRODUCT_UPDATES_INTEREST_ID: False},
            "timestamp_opt": "2021-01-02T03:04:05+00:00",
            "tags": [{"id": 1, "name": "conference"}],
            "last_note": {"note": "met at booth"},
        })

        subscriber = subscriber_from_member(member, company)

        assert subscriber.email == "jess@example.com"
        assert subscriber.name == "Jess Frazelle"
        assert subscriber.wants_newsletter is True
        assert subscriber.wants_product_updates is False
        assert subscriber.wants_podcast_updates is False
        assert subscriber.date_added.year == 2021
        assert subscriber.notes == "met at booth"
        assert subscriber.tags == ["conference"]
        assert subscriber.address_formatted == "1 Main St\nEmeryville, CA 94608 US"

    def test_blank_address_merge_field(self, company):
        member = Member.model_validate({"email_address": "a@example.com", "merge_fields": {"ADDRESS": ""}})

        subscriber = subscriber_from_member(member, company)

        assert subscriber.street_1 == ""
        assert subscriber.address_formatted == ""


class TestSubscriberFromWebhook:
    def test_groupings_map_to_updates(self, company):
        subscriber = subscriber_from_webhook(_webhook(), company)

        assert subscriber.email == "jess@example.com"
        assert subscriber.name == "Jess Frazelle"
        assert subscriber.interest == "Racks"
        assert subscriber.wants_podcast_updates is False
        assert subscriber.wants_newsletter is True
        assert subscriber.wants_product_updates is True
        assert subscriber.date_added == _webhook().fired_at


def test_subscriber_message_blocks(company):
    subscriber = subscriber_from_webhook(_webhook(), company)

    blocks = subscriber_message(subscriber).blocks

    assert blocks[0].text.text == "*Jess Frazelle* <mailto:jess@example.com|jess@example.com>"
    assert blocks[1].text.text == "\n>Racks"
    assert "newsletter: _true_" in blocks[2].elements[0].text
    assert blocks[3].elements[0].text.startswith("works at Oxide | subscribed to mailing list")


@pytest.mark.asyncio
async def test_refresh_skips_company_without_list(session, other_company):
    counts = await refresh_db_mailing_list_subscribers(session, other_company)
    assert counts == {"created": 0, "updated": 0, "deleted": 0}


class TestHandleMailchimpWebhook:
    @pytest.mark.asyncio
    async def test_subscribe_stores_and_pushes_to_airtable(self, session, company, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v0/appLeads/Mailing List Signups"
            body = json.loads(request.content)
            return httpx.Response(200, json={"records": [{"id": "recSub", "fields": body["records"][0]["fields"]}]})

        http_client, recorder = mock_http(handler)

        subscriber = await handle_mailchimp_webhook(session, _webhook(), http_client=http_client)

        assert subscriber.airtable_record_id == "recSub"
        stored = RecordService(MailingListSubscriber, session).get_from_db(email="jess@example.com")
        assert stored.cio_company_id == company.id
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_other_events_are_ignored(self, session, company):
        assert await handle_mailchimp_webhook(session, _webhook(type="unsubscribe")) is None
        assert RecordService(MailingListSubscriber, session).list_all() == []
