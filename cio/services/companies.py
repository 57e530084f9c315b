"""
Company records, sourced from the Companies table of the CIO base.
"""
from typing import Dict, Optional

import httpx
from sqlmodel import Session

from cio.clients.airtable import AirtableClient
from cio.core.config import settings
from cio.core.exceptions import CompanyNotFoundError
from cio.core.logging_config import log_info
from cio.models.company import Company
from cio.services.records import AirtableSync, RecordService, record_from_airtable


def get_company_by_name(session: Session, name: str) -> Company:
    company = RecordService(Company, session).get_from_db(name=name)
    if company is None:
        raise CompanyNotFoundError(f"Company {name} not found")
    return company


def get_company_by_id(session: Session, company_id: int) -> Company:
    company = session.get(Company, company_id)
    if company is None:
        raise CompanyNotFoundError(f"Company {company_id} not found")
    return company


async def refresh_companies(session: Session, http_client: Optional[httpx.AsyncClient] = None) -> Dict[str, int]:
    """Import companies from Airtable, then mirror them back."""
    service = RecordService(Company, session)
    client = AirtableClient(settings.airtable_api_key, settings.airtable_base_id_cio, http_client=http_client)

    records = await client.list_records(Company.__airtable_table__)
    for record in records:
        name = str(record.fields.get("name") or "").strip()
        if not name:
            # Blank row
            continue

        company = service.upsert(record_from_airtable(Company, record.fields, name=name))
        if not company.airtable_record_id:
            company.airtable_record_id = record.id
            service.update(company)

    log_info(f"Refreshed {len(records)} company records from Airtable")
    sync = AirtableSync(service, settings.airtable_base_id_cio, client=client)
    return await sync.update_airtable(service.list_all())


def get_company_by_mailchimp_list_id(session: Session, list_id: str) -> Company:
    company = RecordService(Company, session).get_from_db(mailchimp_list_id=list_id)
    if company is None:
        raise CompanyNotFoundError(f"No company for MailChimp list {list_id}")
    return company
