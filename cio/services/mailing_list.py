"""
Mailing list subscribers from MailChimp.

Members are imported in bulk by ``refresh_db_mailing_list_subscribers`` and
one at a time from the audience webhook.
"""
from typing import Any, Dict, Optional

import httpx
from sqlmodel import Session

from cio.clients.mailchimp import Member, Webhook
from cio.clients.slack import FormattedMessage, MessageBlock, MessageBlockType, markdown
from cio.core.logging_config import log_info
from cio.core.time_utils import human_duration, parse_datetime, utc_now
from cio.models.company import Company
from cio.models.mailing_list import MailingListSubscriber
from cio.services.api_tokens import authenticate_mailchimp
from cio.services.companies import get_company_by_mailchimp_list_id
from cio.services.records import AirtableSync, RecordService
from cio.services.slack import post_to_slack_channel

# Interest group ids of the audience's signup form
PODCAST_INTEREST_ID = "ff0295f7d1"
NEWSLETTER_INTEREST_ID = "7f57718c10"
PRODUCT_UPDATES_INTEREST_ID = "6a6cb58277"


def _merge_field(member: Member, name: str) -> str:
    value = member.merge_fields.get(name)
    return str(value).strip() if value else ""


def subscriber_from_member(member: Member, company: Company) -> MailingListSubscriber:
    """Convert an audience member, including the address merge field."""
    first_name = _merge_field(member, "FNAME")
    last_name = _merge_field(member, "LNAME")

    signed_up = parse_datetime(member.timestamp_signup) or parse_datetime(member.timestamp_opt) or utc_now()
    address: Dict[str, Any] = member.merge_fields.get("ADDRESS") or {}
    if not isinstance(address, dict):
        # MailChimp sends an empty string when no address was entered
        address = {}

    extra = member.model_extra or {}
    last_note = extra.get("last_note") or {}
    stats = extra.get("stats") or {}

    subscriber = MailingListSubscriber(
        email=member.email_address.strip(),
        first_name=first_name,
        last_name=last_name,
        name=f"{first_name} {last_name}".strip(),
        company=_merge_field(member, "COMPANY"),
        interest=_merge_field(member, "INTEREST"),
        wants_podcast_updates=member.interests.get(PODCAST_INTEREST_ID, False),
        wants_newsletter=member.interests.get(NEWSLETTER_INTEREST_ID, False),
        wants_product_updates=member.interests.get(PRODUCT_UPDATES_INTEREST_ID, False),
        date_added=signed_up,
        date_optin=signed_up,
        date_last_changed=parse_datetime(member.last_changed),
        notes=last_note.get("note", "") or "",
        source=member.source,
        revenue=float((stats.get("ecommerce_data") or {}).get("total_revenue") or 0),
        street_1=str(address.get("addr1", "")),
        street_2=str(address.get("addr2", "")),
        city=str(address.get("city", "")),
        state=str(address.get("state", "")),
        zipcode=str(address.get("zip", "")),
        country=str(address.get("country", "")),
        phone=_merge_field(member, "PHONE"),
        tags=[t.name for t in member.tags],
        cio_company_id=company.id,
    )
    subscriber.populate_formatted_address()
    return subscriber


def subscriber_from_webhook(webhook: Webhook, company: Company) -> MailingListSubscriber:
    """Convert a subscribe webhook. Groupings are podcast, newsletter, product updates, in that order."""
    subscriber = MailingListSubscriber(
        email="",
        date_added=webhook.fired_at,
        date_optin=webhook.fired_at,
        date_last_changed=webhook.fired_at,
        cio_company_id=company.id,
    )

    merges = webhook.data.merges
    if merges is not None:
        subscriber.email = (merges.email or webhook.data.email or "").strip()
        subscriber.first_name = (merges.first_name or "").strip()
        subscriber.last_name = (merges.last_name or "").strip()
        subscriber.company = (merges.company or "").strip()
        subscriber.interest = (merges.interest or "").strip()

        groupings = merges.groupings or {}
        subscriber.wants_podcast_updates = bool((groupings.get("0") or {}).get("groups"))
        subscriber.wants_newsletter = bool((groupings.get("1") or {}).get("groups"))
        subscriber.wants_product_updates = bool((groupings.get("2") or {}).get("groups"))
    else:
        subscriber.email = (webhook.data.email or "").strip()

    subscriber.name = f"{subscriber.first_name} {subscriber.last_name}".strip()
    return subscriber


def subscriber_message(subscriber: MailingListSubscriber) -> FormattedMessage:
    headline = f"*{subscriber.name}*" if subscriber.name.strip() else ""
    headline = f"{headline} <mailto:{subscriber.email}|{subscriber.email}>".strip()

    updates = (
        f"podcast updates: _{str(subscriber.wants_podcast_updates).lower()}_ | "
        f"newsletter: _{str(subscriber.wants_newsletter).lower()}_ | "
        f"product updates: _{str(subscriber.wants_product_updates).lower()}_"
    )

    context = f"works at {subscriber.company} | " if subscriber.company else ""
    context += f"subscribed to mailing list {human_duration(subscriber.date_added)}"

    blocks = [MessageBlock(block_type=MessageBlockType.SECTION, text=markdown(headline))]
    if subscriber.interest:
        blocks.append(MessageBlock(block_type=MessageBlockType.SECTION, text=markdown(f"\n>{subscriber.interest}")))
    blocks.append(MessageBlock(block_type=MessageBlockType.CONTEXT, elements=[markdown(updates)]))
    blocks.append(MessageBlock(block_type=MessageBlockType.CONTEXT, elements=[markdown(context)]))

    return FormattedMessage(blocks=blocks)


async def refresh_db_mailing_list_subscribers(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, int]:
    """Import the company's MailChimp audience and mirror it to the customer leads base."""
    if not company.mailchimp_list_id:
        return {"created": 0, "updated": 0, "deleted": 0}

    mailchimp = await authenticate_mailchimp(session, company, http_client=http_client)
    service = RecordService(MailingListSubscriber, session)

    members = await mailchimp.get_subscribers(company.mailchimp_list_id)
    for member in members:
        service.upsert(subscriber_from_member(member, company))
    log_info(f"Imported {len(members)} mailing list subscribers", company=company.name)

    sync = AirtableSync.for_company(service, company, http_client=http_client)
    return await sync.update_airtable(service.list_for_company(company.id))


async def handle_mailchimp_webhook(
    session: Session,
    webhook: Webhook,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[MailingListSubscriber]:
    """
    Store a new subscriber from an audience webhook.

    Only ``subscribe`` events are handled; others return None. The subscriber
    is saved, pushed to Airtable and announced in the company's mailing list
    channel.
    """
    if webhook.webhook_type != "subscribe":
        log_info(f"Ignoring MailChimp {webhook.webhook_type} webhook")
        return None

    company = get_company_by_mailchimp_list_id(session, webhook.data.list_id or "")
    service = RecordService(MailingListSubscriber, session)
    subscriber = service.upsert(subscriber_from_webhook(webhook, company))

    sync = AirtableSync.for_company(service, company, http_client=http_client)
    subscriber = await sync.upsert_in_airtable(subscriber)

    await post_to_slack_channel(
        session,
        company,
        subscriber_message(subscriber),
        company.slack_channel_mailing_lists,
        http_client=http_client,
    )
    return subscriber
