"""
Posting notifications to a company's Slack.
"""
from typing import Optional

import httpx
from sqlmodel import Session

from cio.clients.slack import FormattedMessage, SlackWebhookClient
from cio.core.exceptions import APITokenNotFoundError
from cio.core.logging_config import log_debug
from cio.models.company import Company
from cio.services.api_tokens import authenticate_slack


async def post_to_slack_channel(
    session: Session,
    company: Company,
    message: FormattedMessage,
    channel: str = "",
    http_client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Send ``message`` to one of the company's channels.

    Uses the company's Slack bot token when one is stored, otherwise the
    company's incoming webhook. Returns False when the company has neither.
    """
    if channel:
        message = message.model_copy(update={"channel": channel})

    try:
        slack = await authenticate_slack(session, company, http_client=http_client)
    except APITokenNotFoundError:
        slack = None

    if slack is not None and message.channel:
        await slack.post_message(message)
        return True

    if company.slack_webhook_url:
        await SlackWebhookClient(http_client=http_client).post_to_channel(company.slack_webhook_url, message)
        return True

    log_debug(f"No Slack destination configured for company {company.name}")
    return False
