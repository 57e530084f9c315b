"""
Job runner and Function records.

Every sync job runs through ``JobRunner.run``, which records the run as a
``Function`` row: its status, conclusion and the log lines the job emitted.
Each finished run is announced in the company's debug Slack channel.
"""
import logging
import traceback
from contextlib import contextmanager
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Tuple

import httpx
from sqlmodel import Session, select

from cio.clients.base import APIConnectionError, APIError
from cio.clients.slack import (
    FormattedMessage,
    MessageAttachment,
    MessageBlock,
    MessageBlockAccessory,
    MessageBlockType,
    MessageType,
    markdown,
    plain_text,
)
from cio.core.colors import Colors
from cio.core.config import settings
from cio.core.exceptions import CompanyNotFoundError, UnknownJobError
from cio.core.logging_config import LogCategory, log_info, log_warning
from cio.core.time_utils import ensure_utc, human_duration, utc_now
from cio.models.company import Company
from cio.models.function import Function, FunctionConclusion, FunctionStatus
from cio.services.api_tokens import refresh_api_tokens
from cio.services.applicants import refresh_background_checks
from cio.services.companies import get_company_by_name, refresh_companies
from cio.services.finance import refresh_all_finance
from cio.services.mailing_list import refresh_db_mailing_list_subscribers
from cio.services.recorded_meetings import refresh_zoom_recorded_meetings
from cio.services.records import AirtableSync, RecordService
from cio.services.slack import post_to_slack_channel
from cio.services.travel import refresh_trip_actions
from cio.services.zoho import refresh_zoho_leads
from cio.utils.text import tail

logger = logging.getLogger(LogCategory.JOBS)

SLACK_LOGS_LIMIT = 3000
RERUN_ACTION_ID = "function"


class JobName(str, Enum):
    SYNC_API_TOKENS = "sync-api-tokens"
    SYNC_COMPANIES = "sync-companies"
    SYNC_FINANCE = "sync-finance"
    SYNC_FUNCTIONS = "sync-functions"
    SYNC_MAILING_LISTS = "sync-mailing-lists"
    SYNC_RECORDED_MEETINGS = "sync-recorded-meetings"
    SYNC_TRAVEL = "sync-travel"
    SYNC_ZOHO = "sync-zoho"
    SYNC_BACKGROUND_CHECKS = "sync-background-checks"


# Jobs over tables in the shared CIO base run once, recorded against the CIO company
GLOBAL_JOBS = frozenset({JobName.SYNC_API_TOKENS, JobName.SYNC_COMPANIES, JobName.SYNC_FUNCTIONS})

Job = Callable[..., Awaitable[Any]]


def parse_job_name(value: str) -> JobName:
    try:
        return JobName(value)
    except ValueError as exc:
        raise UnknownJobError(f"Unknown job: {value}") from exc


def function_color(function: Function) -> Colors:
    if not function.is_completed:
        return Colors.BLUE
    if function.conclusion == FunctionConclusion.SUCCESS.value:
        return Colors.GREEN
    if function.conclusion in (FunctionConclusion.FAILURE.value, FunctionConclusion.TIMED_OUT.value):
        return Colors.RED
    return Colors.YELLOW


def function_message(function: Function) -> FormattedMessage:
    """Slack message for a Function, with a re-run button when it did not succeed."""
    context = f"*{function.status}*"
    if function.conclusion:
        context += f" | *{function.conclusion}*"
    context += f" | _created {human_duration(function.created_at)}_"
    if function.completed_at:
        context += f" | _completed {human_duration(function.completed_at)}_"

    title = MessageBlock(block_type=MessageBlockType.SECTION, text=markdown(f"Function | `{function.name}`"))
    blocks = [title, MessageBlock(block_type=MessageBlockType.CONTEXT, elements=[markdown(context)])]

    if function.is_completed and function.conclusion != FunctionConclusion.SUCCESS.value:
        title.accessory = MessageBlockAccessory(
            accessory_type=MessageType.BUTTON,
            text=plain_text(f"Re-run {function.name}"),
            value=function.name,
            action_id=RERUN_ACTION_ID,
        )
        if function.logs:
            logs = tail(function.logs, SLACK_LOGS_LIMIT)
            blocks.append(MessageBlock(block_type=MessageBlockType.SECTION, text=markdown(f"```{logs}```")))

    return FormattedMessage(attachments=[MessageAttachment(color=function_color(function).value, blocks=blocks)])


async def notify_function(
    session: Session,
    function: Function,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> None:
    try:
        await post_to_slack_channel(
            session,
            company,
            function_message(function),
            company.slack_channel_debug,
            http_client=http_client,
        )
    except (APIError, APIConnectionError) as exc:
        log_warning(f"Posting function {function.name} to Slack failed: {exc}", company=company.name)


class _LogCapture(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.INFO)
        self.lines: List[str] = []
        self.setFormatter(logging.Formatter(
            "%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))

    def text(self) -> str:
        return "\n".join(self.lines)


@contextmanager
def capture_logs() -> Iterator[_LogCapture]:
    """Collect INFO and above from the ``cio`` loggers while the block runs."""
    app_logger = logging.getLogger(LogCategory.APP)
    handler = _LogCapture()
    previous_level = app_logger.level
    if app_logger.getEffectiveLevel() > logging.INFO:
        app_logger.setLevel(logging.INFO)
    app_logger.addHandler(handler)
    try:
        yield handler
    finally:
        app_logger.removeHandler(handler)
        app_logger.setLevel(previous_level)


async def _sync_api_tokens(session: Session, company: Company, http_client=None):
    return await refresh_api_tokens(session, company, http_client=http_client)


async def _sync_companies(session: Session, company: Company, http_client=None):
    return await refresh_companies(session, http_client=http_client)


async def _sync_recorded_meetings(session: Session, company: Company, http_client=None):
    return await refresh_zoom_recorded_meetings(
        session,
        company,
        http_client=http_client,
        delete_after_import=settings.delete_zoom_recordings_after_import,
    )


async def refresh_functions(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, int]:
    """
    Close out functions that will never finish, then mirror all functions to Airtable.

    In-progress functions older than the stale window are marked timed out and
    completed functions without a conclusion become neutral.
    """
    service = RecordService(Function, session)
    stale_before = utc_now() - timedelta(hours=settings.function_stale_after_hours)

    changed: List[Function] = []
    for function in service.list_all():
        if function.status == FunctionStatus.IN_PROGRESS.value:
            if ensure_utc(function.created_at) <= stale_before:
                function.complete(FunctionConclusion.TIMED_OUT)
                changed.append(function)
        elif not function.conclusion:
            function.complete(FunctionConclusion.NEUTRAL)
            changed.append(function)

    for function in changed:
        service.update(function)
        await notify_function(session, function, service.company(function), http_client=http_client)
    log_info(f"Closed {len(changed)} functions")

    sync = AirtableSync.for_company(service, company, http_client=http_client)
    return await sync.update_airtable(service.list_all())


JOBS: Dict[JobName, Job] = {
    JobName.SYNC_API_TOKENS: _sync_api_tokens,
    JobName.SYNC_COMPANIES: _sync_companies,
    JobName.SYNC_FINANCE: refresh_all_finance,
    JobName.SYNC_FUNCTIONS: refresh_functions,
    JobName.SYNC_MAILING_LISTS: refresh_db_mailing_list_subscribers,
    JobName.SYNC_RECORDED_MEETINGS: _sync_recorded_meetings,
    JobName.SYNC_TRAVEL: refresh_trip_actions,
    JobName.SYNC_ZOHO: refresh_zoho_leads,
    JobName.SYNC_BACKGROUND_CHECKS: refresh_background_checks,
}


class JobRunner:
    """Runs sync jobs and records each run as a Function."""

    def __init__(
        self,
        session: Session,
        http_client: Optional[httpx.AsyncClient] = None,
        jobs: Optional[Dict[JobName, Job]] = None,
    ):
        self.session = session
        self.http_client = http_client
        self.jobs = jobs if jobs is not None else JOBS
        self.service = RecordService(Function, session)
        self.current: Optional[Function] = None

    def find_running(self, name: JobName, company: Company) -> Optional[Function]:
        """In-progress run of ``name`` for the company started inside the stale window."""
        statement = (
            select(Function)
            .where(
                Function.name == name.value,
                Function.cio_company_id == company.id,
                Function.status == FunctionStatus.IN_PROGRESS.value,
            )
            .order_by(Function.created_at.desc())
        )
        started_after = utc_now() - timedelta(hours=settings.function_stale_after_hours)
        for function in self.session.exec(statement):
            if ensure_utc(function.created_at) > started_after:
                return function
        return None

    def start(self, name: JobName, company: Company) -> Tuple[Function, bool]:
        """Return the run already in progress, or record a new one. The flag is true for a new run."""
        running = self.find_running(name, company)
        if running is not None:
            return running, False
        return self.service.create(Function(name=name.value, cio_company_id=company.id)), True

    async def run(self, name: JobName, company: Company) -> Function:
        """
        Run ``name`` for ``company`` and record the outcome.

        A run that is already in progress is returned without starting the job
        again. Exceptions raised by the job are recorded as a failure and then
        re-raised.
        """
        function, started = self.start(name, company)
        self.current = function
        if not started:
            log_info(f"{name.value} is already running", company=company.name, saga_id=function.saga_id)
            return function

        job = self.jobs[name]
        error: Optional[Exception] = None

        with capture_logs() as capture:
            log_info(f"Starting {name.value}", company=company.name, saga_id=function.saga_id)
            try:
                result = await job(self.session, company, http_client=self.http_client)
                log_info(f"Finished {name.value}: {result}", company=company.name)
            except Exception as exc:
                error = exc
                log_warning(f"{name.value} failed: {exc}", company=company.name)

        if error is not None:
            # The job may have left the session mid-transaction
            self.session.rollback()
            function.logs = capture.text()
            function.logs += "\n" + "".join(traceback.format_exception(type(error), error, error.__traceback__))
            function.complete(FunctionConclusion.FAILURE)
        else:
            function.logs = capture.text()
            function.complete(FunctionConclusion.SUCCESS)

        function = self.service.update(function)
        self.current = function
        await notify_function(self.session, function, company, http_client=self.http_client)

        if error is not None:
            raise error
        return function


async def _cio_company(session: Session, name: JobName, company_name: str, http_client=None) -> Company:
    try:
        return get_company_by_name(session, company_name)
    except CompanyNotFoundError:
        if name != JobName.SYNC_COMPANIES:
            raise
    # First run: companies have to be imported before a run can be recorded against one
    await refresh_companies(session, http_client=http_client)
    return get_company_by_name(session, company_name)


async def run_job(
    session: Session,
    name: str,
    company_name: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    raise_errors: bool = True,
) -> List[Function]:
    """
    Run a job by name.

    Global jobs run once for the CIO company. Other jobs run for
    ``company_name``, or for every company when it is not given.

    Args:
        raise_errors: Re-raise a job failure when a single company was run.
            Runs over every company always continue past a failed company.

    Returns:
        The recorded Function of each run
    """
    job_name = parse_job_name(name)
    runner = JobRunner(session, http_client=http_client)

    if job_name in GLOBAL_JOBS:
        companies = [await _cio_company(session, job_name, company_name or settings.cio_company_name, http_client)]
    elif company_name:
        companies = [get_company_by_name(session, company_name)]
    else:
        companies = RecordService(Company, session).list_all()
        raise_errors = False

    functions: List[Function] = []
    for company in companies:
        runner.current = None
        try:
            functions.append(await runner.run(job_name, company))
        except Exception as exc:
            if raise_errors:
                raise
            logger.warning(f"{job_name.value} failed for {company.name}: {exc}")
            if runner.current is not None:
                functions.append(runner.current)
    return functions
