"""
Applicant background checks through Checkr.
"""
from typing import Dict, List, Optional

import httpx
from sqlalchemy import or_
from sqlmodel import Session, select

from cio.clients.checkr import Candidate, CheckrClient, WebhookEvent
from cio.core.config import settings
from cio.core.logging_config import log_info, log_warning
from cio.models.applicant import Applicant, ApplicantStatus
from cio.models.company import Company
from cio.services.api_tokens import checkr_client
from cio.services.records import AirtableSync, RecordService, record_from_airtable
from cio.utils.text import full_name


def find_onboarding_applicant(session: Session, company: Company, candidate: Candidate) -> Optional[Applicant]:
    """Onboarding applicant matching the candidate's email or full name."""
    # Name matching could pick the wrong person if two applicants share a name
    statement = select(Applicant).where(
        Applicant.cio_company_id == company.id,
        Applicant.status == ApplicantStatus.ONBOARDING.value,
        or_(
            Applicant.email == candidate.email,
            Applicant.name == full_name(candidate.first_name, candidate.last_name),
        ),
    )
    return session.exec(statement).first()


async def refresh_applicants(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[Applicant]:
    """Read the Applicants table of the hiring base into the database."""
    service = RecordService(Applicant, session)
    sync = AirtableSync.for_company(service, company, http_client=http_client)

    applicants: List[Applicant] = []
    for record in await sync.client.list_records(Applicant.__airtable_table__):
        email = str(record.fields.get("email") or "").strip()
        if not email:
            continue

        applicant = record_from_airtable(Applicant, record.fields, email=email, cio_company_id=company.id)
        applicant.airtable_record_id = record.id
        applicants.append(service.upsert(applicant))
    return applicants


async def update_background_checks(
    session: Session,
    company: Company,
    checkr: CheckrClient,
    candidate: Candidate,
) -> Optional[Applicant]:
    """Apply every report of ``candidate`` to the matching applicant."""
    applicant = find_onboarding_applicant(session, company, candidate)
    if applicant is None:
        log_warning(f"No onboarding applicant for Checkr candidate {candidate.email}", company=company.name)
        return None

    changed = False
    for report_id in candidate.report_ids:
        report = await checkr.get_report(report_id)
        changed = applicant.apply_background_check(report.package, report.status) or changed

    if changed:
        RecordService(Applicant, session).update(applicant)
    return applicant


async def refresh_background_checks(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, int]:
    """Sync applicants, pull each Checkr candidate's report statuses, then mirror to Airtable."""
    if not settings.checkr_api_key:
        log_info("Checkr is not configured, skipping background checks", company=company.name)
        return {"created": 0, "updated": 0, "deleted": 0}

    await refresh_applicants(session, company, http_client=http_client)

    checkr = checkr_client(http_client=http_client)
    for candidate in await checkr.list_candidates():
        await update_background_checks(session, company, checkr, candidate)

    service = RecordService(Applicant, session)
    sync = AirtableSync.for_company(service, company, http_client=http_client)
    return await sync.update_airtable(service.list_for_company(company.id))


async def handle_checkr_webhook(
    session: Session,
    company: Company,
    event: WebhookEvent,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[Applicant]:
    """Apply a ``report.*`` event to the candidate's applicant and push the change to Airtable."""
    if not event.is_report_event:
        log_info(f"Ignoring Checkr {event.event_type} event")
        return None

    report = event.report()
    checkr = checkr_client(http_client=http_client)
    candidate = await checkr.get_candidate(report.candidate_id)

    applicant = find_onboarding_applicant(session, company, candidate)
    if applicant is None:
        log_warning(f"No onboarding applicant for Checkr candidate {candidate.email}", company=company.name)
        return None

    service = RecordService(Applicant, session)
    if applicant.apply_background_check(report.package, report.status):
        applicant = service.update(applicant)
        sync = AirtableSync.for_company(service, company, http_client=http_client)
        applicant = await sync.upsert_in_airtable(applicant)
    return applicant
