"""
Slack client and Block Kit message models.

Messages are plain pydantic models; ``to_payload()`` drops empty values so
the JSON matches what Slack expects for blocks and attachments.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from cio.clients.base import APIError, BaseClient, OAuthClient

ENDPOINT = "https://slack.com/api/"
BOT_SCOPES = (
    "commands,incoming-webhook,team:read,users:read,users:read.email,"
    "users.profile:read,channels:read,chat:write,channels:join"
)
USER_SCOPES = "identity.basic,identity.email"


class MessageType(str, Enum):
    PLAIN_TEXT = "plain_text"
    MARKDOWN = "mrkdwn"
    IMAGE = "image"
    BUTTON = "button"


class MessageBlockType(str, Enum):
    HEADER = "header"
    SECTION = "section"
    CONTEXT = "context"
    DIVIDER = "divider"
    ACTIONS = "actions"


class _SlackModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude_defaults=False, mode="json")


class MessageBlockText(_SlackModel):
    text_type: MessageType = Field(default=MessageType.MARKDOWN, alias="type")
    text: str = ""


class MessageBlockAccessory(_SlackModel):
    accessory_type: MessageType = Field(default=MessageType.BUTTON, alias="type")
    image_url: Optional[str] = None
    alt_text: Optional[str] = None
    text: Optional[MessageBlockText] = None
    value: Optional[str] = None
    action_id: Optional[str] = None


class MessageBlock(_SlackModel):
    block_type: MessageBlockType = Field(default=MessageBlockType.SECTION, alias="type")
    text: Optional[MessageBlockText] = None
    elements: Optional[List[MessageBlockText]] = None
    block_id: Optional[str] = None
    accessory: Optional[MessageBlockAccessory] = None
    fields: Optional[List[MessageBlockText]] = None


class MessageAttachmentField(_SlackModel):
    short: bool = False
    title: str = ""
    value: str = ""


class MessageAttachment(_SlackModel):
    blocks: List[MessageBlock] = Field(default_factory=list)
    color: Optional[str] = None
    fallback: Optional[str] = None
    fields: Optional[List[MessageAttachmentField]] = None
    footer: Optional[str] = None
    pretext: Optional[str] = None
    text: Optional[str] = None
    title: Optional[str] = None
    title_link: Optional[str] = None


class FormattedMessage(_SlackModel):
    channel: Optional[str] = None
    text: Optional[str] = None
    blocks: Optional[List[MessageBlock]] = None
    attachments: List[MessageAttachment] = Field(default_factory=list)


class FormattedMessageResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    ok: bool = False
    channel: str = ""
    ts: str = ""
    error: str = ""


def markdown(text: str) -> MessageBlockText:
    return MessageBlockText(text_type=MessageType.MARKDOWN, text=text)


def plain_text(text: str) -> MessageBlockText:
    return MessageBlockText(text_type=MessageType.PLAIN_TEXT, text=text)


class SlackClient(OAuthClient):
    product = "slack"
    base_url = ENDPOINT
    authorize_url = "https://slack.com/oauth/v2/authorize"
    token_url = "https://slack.com/api/oauth.v2.access"
    scopes = BOT_SCOPES
    token_basic_auth = True

    def user_consent_url(self, state: Optional[str] = None) -> str:
        return f"{super().user_consent_url(state)}&user_scope={USER_SCOPES}"

    async def join_channel(self, channel: str) -> Dict[str, Any]:
        response = await self._request("POST", "conversations.join", json={"channel": channel})
        body = self._safe_json(response)
        if not body.get("ok"):
            raise APIError(response.status_code, response.text)
        return body.get("channel", {})

    async def post_message(self, message: FormattedMessage) -> FormattedMessageResponse:
        """
        Post a message through ``chat.postMessage``.

        Slack answers 200 with ``ok: false`` on failure. A bot that is not
        in the channel joins it and retries once.
        """
        payload = message.to_payload()
        response = await self._request("POST", "chat.postMessage", json=payload)
        result = FormattedMessageResponse.model_validate(self._safe_json(response))

        if not result.ok and result.error == "not_in_channel" and message.channel:
            await self.join_channel(message.channel)
            response = await self._request("POST", "chat.postMessage", json=payload)
            result = FormattedMessageResponse.model_validate(self._safe_json(response))

        if not result.ok:
            raise APIError(response.status_code, response.text)
        return result


class SlackWebhookClient(BaseClient):
    """Posts to incoming-webhook URLs, which need no token."""

    product = "slack"

    async def post_to_channel(self, webhook_url: str, message: Union[FormattedMessage, Dict[str, Any]]) -> None:
        payload = message.to_payload() if isinstance(message, FormattedMessage) else message
        await self._request(
            "POST",
            webhook_url,
            json=payload,
            headers={"Accept": "*/*"},
            authenticated=False,
        )
