"""
Push mailing list subscribers who want product updates into Zoho CRM as leads.
"""
from typing import Dict, List, Optional

import httpx
from sqlmodel import Session, select

from cio.clients.zoho import Lead
from cio.core.exceptions import APITokenNotFoundError
from cio.core.logging_config import log_info, log_warning
from cio.models.company import Company
from cio.models.mailing_list import MailingListSubscriber
from cio.services.api_tokens import authenticate_zoho
from cio.services.records import RecordService

LEAD_SOURCE = "Mailing List"


def lead_from_subscriber(subscriber: MailingListSubscriber) -> Lead:
    return Lead(
        email=subscriber.email,
        first_name=subscriber.first_name,
        # Zoho requires a last name
        last_name=subscriber.last_name or subscriber.email,
        company=subscriber.company,
        lead_source=LEAD_SOURCE,
        description=subscriber.interest,
    )


async def refresh_zoho_leads(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, int]:
    """Upsert leads for opted-in subscribers and remember the lead ids."""
    try:
        zoho = await authenticate_zoho(session, company, http_client=http_client)
    except APITokenNotFoundError:
        # This company does not use Zoho
        return {"upserted": 0}

    statement = select(MailingListSubscriber).where(
        MailingListSubscriber.cio_company_id == company.id,
        MailingListSubscriber.wants_product_updates == True,  # noqa: E712
    )
    subscribers: List[MailingListSubscriber] = list(session.exec(statement))
    if not subscribers:
        return {"upserted": 0}

    results = await zoho.upsert_leads([lead_from_subscriber(s) for s in subscribers])

    service = RecordService(MailingListSubscriber, session)
    upserted = 0
    # Results come back in request order
    for subscriber, result in zip(subscribers, results):
        if result.get("status") != "success":
            log_warning(f"Zoho rejected lead {subscriber.email}: {result.get('message', '')}", company=company.name)
            continue

        upserted += 1
        lead_id = str((result.get("details") or {}).get("id", ""))
        if lead_id and lead_id != subscriber.zoho_lead_id:
            subscriber.zoho_lead_id = lead_id
            service.update(subscriber)

    log_info(f"Upserted {upserted} Zoho leads", company=company.name)
    return {"upserted": upserted}
