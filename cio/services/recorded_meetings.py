"""
Recorded meetings sync from Zoom cloud recordings.
"""
from typing import Dict, List, Optional

import httpx
from sqlmodel import Session

from cio.clients.slack import (
    FormattedMessage,
    MessageAttachment,
    MessageBlock,
    MessageBlockType,
    markdown,
    plain_text,
)
from cio.clients.zoom import Meeting, ZoomClient, ZoomUser
from cio.core.exceptions import APITokenNotFoundError
from cio.core.logging_config import log_info, log_warning
from cio.core.time_utils import human_duration, parse_datetime
from cio.models.company import Company
from cio.models.recorded_meeting import RecordedMeeting
from cio.services.api_tokens import authenticate_zoom
from cio.services.records import AirtableSync, RecordService
from cio.services.slack import post_to_slack_channel
from cio.utils.text import full_name


def recorded_meeting_message(meeting: RecordedMeeting) -> FormattedMessage:
    context = f"<{meeting.event_link}|Recorded Meeting>" if meeting.event_link else "Recorded Meeting"
    if meeting.video:
        context += f" | <{meeting.video}|video>"
    if meeting.chat_log_link:
        context += f" | <{meeting.chat_log_link}|chat log>"
    if meeting.start_time:
        context += f" | _started {human_duration(meeting.start_time)}_"
    if meeting.end_time:
        context += f" | _ended {human_duration(meeting.end_time)}_"

    blocks = [MessageBlock(block_type=MessageBlockType.HEADER, text=plain_text(meeting.name))]
    if meeting.description:
        blocks.append(MessageBlock(block_type=MessageBlockType.SECTION, text=markdown(meeting.description)))
    blocks.append(MessageBlock(block_type=MessageBlockType.CONTEXT, elements=[markdown(context)]))

    return FormattedMessage(attachments=[MessageAttachment(blocks=blocks)])


async def recorded_meeting_from_zoom(
    zoom: ZoomClient,
    meeting: Meeting,
    hosts: Dict[str, ZoomUser],
    company: Company,
) -> RecordedMeeting:
    """Collect a meeting's completed recording files into one record."""
    record = RecordedMeeting(
        meeting_id=meeting.uuid or str(meeting.id),
        name=meeting.topic.strip(),
        start_time=parse_datetime(meeting.start_time),
        cio_company_id=company.id,
    )

    for recording in meeting.recording_files:
        if recording.status and recording.status != "completed":
            log_warning(f"Skipping Zoom recording {recording.id} with status {recording.status}")
            continue

        link = recording.play_url or recording.download_url
        if recording.file_type == "MP4":
            record.video = link
            record.event_link = link
            record.end_time = parse_datetime(recording.recording_end)
        elif recording.file_type == "TRANSCRIPT":
            content = await zoom.download_recording(recording.download_url)
            record.transcript = content.decode("utf-8", errors="replace")
            record.transcript_id = recording.id or ""
        elif recording.file_type == "CHAT":
            content = await zoom.download_recording(recording.download_url)
            record.chat_log_link = link
            record.chat_log = content.decode("utf-8", errors="replace")

    host = hosts.get(meeting.host_id)
    if host is not None:
        record.attendees = [host.email]
        record.location = f"Meeting hosted by {full_name(host.first_name, host.last_name)}"
    return record


async def refresh_zoom_recorded_meetings(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
    delete_after_import: bool = False,
) -> Dict[str, int]:
    """Import the last weeks of Zoom recordings and mirror them to the misc base."""
    try:
        zoom = await authenticate_zoom(session, company, http_client=http_client)
    except APITokenNotFoundError:
        # This company does not use Zoom
        return {"created": 0, "updated": 0, "deleted": 0}

    service = RecordService(RecordedMeeting, session)
    meetings = await zoom.list_recordings_as_admin()
    hosts = {u.id: u for u in await zoom.list_users()} if meetings else {}

    new_meetings: List[RecordedMeeting] = []
    for meeting in meetings:
        if not meeting.topic.strip():
            log_warning(f"Zoom meeting {meeting.uuid} has no topic, skipping")
            continue

        record = await recorded_meeting_from_zoom(zoom, meeting, hosts, company)
        is_new = service.get_from_db(**record.match_values()) is None
        record = service.upsert(record)
        if is_new:
            new_meetings.append(record)

        if delete_after_import:
            await zoom.delete_meeting_recordings(meeting.id)

    for record in new_meetings:
        message = recorded_meeting_message(record)
        await post_to_slack_channel(session, company, message, company.slack_channel_debug, http_client=http_client)
    log_info(f"Imported {len(meetings)} Zoom meetings ({len(new_meetings)} new)", company=company.name)

    sync = AirtableSync.for_company(service, company, http_client=http_client)
    return await sync.update_airtable(service.list_for_company(company.id))
