"""
Inbound webhooks from Checkr and MailChimp.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from cio.api.dependencies import get_request_id, get_session
from cio.clients.checkr import WebhookEvent
from cio.clients.mailchimp import Webhook
from cio.core.config import settings
from cio.core.exceptions import ValidationError
from cio.core.http_client import get_http_client
from cio.core.logging_config import log_info
from cio.core.signing import verify_signature
from cio.services.applicants import handle_checkr_webhook
from cio.services.companies import get_company_by_name
from cio.services.mailing_list import handle_mailchimp_webhook

router = APIRouter(tags=["webhooks"])

CHECKR_SIGNATURE_HEADER = "X-Checkr-Signature"


@router.post(
    "/checkr",
    responses={
        401: {"description": "Signature verification failed"},
        404: {"description": "Company not found"},
    },
)
async def checkr_webhook(
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    request_id: Annotated[str, Depends(get_request_id)],
):
    """Background check updates, signed with the Checkr API key."""
    body = await request.body()
    verify_signature(
        key=settings.checkr_api_key,
        body=body,
        signature_header=request.headers.get(CHECKR_SIGNATURE_HEADER),
    )

    try:
        event = WebhookEvent.model_validate_json(body)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid Checkr event: {e}") from e

    log_info(f"Checkr {event.event_type} event", request_id=request_id, event_id=event.id)
    company = get_company_by_name(session, settings.cio_company_name)
    applicant = await handle_checkr_webhook(session, company, event, http_client=await get_http_client())
    return {"status": "ok", "applicant_id": applicant.id if applicant else None}


@router.get("/mailchimp/mailing-list")
async def mailchimp_mailing_list_validate():
    """MailChimp checks the URL with a GET before saving the webhook."""
    return {"status": "ok"}


@router.post("/mailchimp/mailing-list")
async def mailchimp_mailing_list_webhook(
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    request_id: Annotated[str, Depends(get_request_id)],
):
    form = await request.form()
    try:
        webhook = Webhook.from_form({key: str(value) for key, value in form.items()})
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid MailChimp webhook: {e}") from e

    log_info(f"MailChimp {webhook.webhook_type} webhook", request_id=request_id, list_id=webhook.data.list_id)
    subscriber = await handle_mailchimp_webhook(session, webhook, http_client=await get_http_client())
    return {"status": "ok", "subscriber_id": subscriber.id if subscriber else None}
