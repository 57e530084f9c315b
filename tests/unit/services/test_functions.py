"""
Unit tests for the job runner and Function notifications.
"""
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from cio.core.colors import Colors
from cio.core.exceptions import CompanyNotFoundError, UnknownJobError
from cio.core.logging_config import log_info
from cio.core.time_utils import utc_now
from cio.models.function import Function, FunctionConclusion, FunctionStatus
from cio.services.functions import (
    RERUN_ACTION_ID,
    JobName,
    JobRunner,
    function_color,
    function_message,
    parse_job_name,
    refresh_functions,
    run_job,
)
from cio.services.records import AirtableSync


async def succeeding_job(session, company, http_client=None):
    log_info(f"Imported 3 bookings for {company.name}")
    return {"upserted": 3}


async def failing_job(session, company, http_client=None):
    log_info("About to fail")
    raise RuntimeError("TripActions is down")


def _function(company, **fields) -> Function:
    return Function(name=JobName.SYNC_TRAVEL.value, cio_company_id=company.id, **fields)


class TestParseJobName:
    def test_known_job(self):
        assert parse_job_name("sync-finance") is JobName.SYNC_FINANCE

    def test_unknown_job_raises(self):
        with pytest.raises(UnknownJobError, match="sync-nothing"):
            parse_job_name("sync-nothing")


class TestFunctionMessage:
    def test_in_progress_is_blue_without_button(self, company):
        function = _function(company)
        message = function_message(function)

        attachment = message.attachments[0]
        assert attachment.color == Colors.BLUE.value
        assert attachment.blocks[0].accessory is None
        assert "`sync-travel`" in attachment.blocks[0].text.text

    def test_success_is_green(self, company):
        function = _function(company)
        function.complete(FunctionConclusion.SUCCESS)

        assert function_color(function) is Colors.GREEN
        assert function_message(function).attachments[0].blocks[0].accessory is None

    def test_failure_offers_rerun_and_log_tail(self, company):
        function = _function(company, logs="x" * 5000 + "the last line")
        function.complete(FunctionConclusion.FAILURE)

        message = function_message(function)
        attachment = message.attachments[0]
        button = attachment.blocks[0].accessory

        assert attachment.color == Colors.RED.value
        assert button.action_id == RERUN_ACTION_ID
        assert button.value == "sync-travel"
        logs = attachment.blocks[-1].text.text
        assert logs.endswith("the last line```")
        assert len(logs) < 5000

    def test_neutral_is_yellow(self, company):
        function = _function(company)
        function.complete(FunctionConclusion.NEUTRAL)
        assert function_color(function) is Colors.YELLOW


class TestJobRunner:
    @pytest.mark.asyncio
    async def test_success_records_logs_and_conclusion(self, session, company):
        runner = JobRunner(session, jobs={JobName.SYNC_TRAVEL: succeeding_job})

        function = await runner.run(JobName.SYNC_TRAVEL, company)

        assert function.status == FunctionStatus.COMPLETED.value
        assert function.conclusion == FunctionConclusion.SUCCESS.value
        assert function.completed_at is not None
        assert "Starting sync-travel" in function.logs
        assert "Imported 3 bookings for Oxide" in function.logs

    @pytest.mark.asyncio
    async def test_failure_is_recorded_then_raised(self, session, company):
        runner = JobRunner(session, jobs={JobName.SYNC_TRAVEL: failing_job})

        with pytest.raises(RuntimeError, match="TripActions is down"):
            await runner.run(JobName.SYNC_TRAVEL, company)

        function = session.get(Function, runner.current.id)
        assert function.conclusion == FunctionConclusion.FAILURE.value
        assert "About to fail" in function.logs
        assert "Traceback" in function.logs

    @pytest.mark.asyncio
    async def test_running_function_is_not_started_again(self, session, company):
        job = AsyncMock(return_value={})
        running = _function(company)
        session.add(running)
        session.commit()
        session.refresh(running)
        runner = JobRunner(session, jobs={JobName.SYNC_TRAVEL: job})

        function = await runner.run(JobName.SYNC_TRAVEL, company)

        assert function.id == running.id
        job.assert_not_awaited()

    def test_start_reports_whether_the_run_is_new(self, session, company):
        runner = JobRunner(session, jobs={})

        first, started = runner.start(JobName.SYNC_TRAVEL, company)
        again, started_again = runner.start(JobName.SYNC_TRAVEL, company)

        assert started
        assert not started_again
        assert again.id == first.id
        assert first.status == FunctionStatus.IN_PROGRESS.value

    @pytest.mark.asyncio
    async def test_stale_running_function_does_not_block(self, session, company):
        stale = _function(company, created_at=utc_now() - timedelta(hours=48))
        session.add(stale)
        session.commit()
        session.refresh(stale)
        runner = JobRunner(session, jobs={JobName.SYNC_TRAVEL: succeeding_job})

        function = await runner.run(JobName.SYNC_TRAVEL, company)

        assert function.id != stale.id
        assert function.conclusion == FunctionConclusion.SUCCESS.value

    @pytest.mark.asyncio
    async def test_finished_function_is_posted_to_slack(self, session, company):
        runner = JobRunner(session, jobs={JobName.SYNC_TRAVEL: succeeding_job})

        with patch("cio.services.functions.post_to_slack_channel", new=AsyncMock(return_value=True)) as post:
            await runner.run(JobName.SYNC_TRAVEL, company)

        post.assert_awaited_once()
        assert post.await_args.args[3] == "#debug"


class TestRunJob:
    @pytest.mark.asyncio
    async def test_unknown_job(self, session):
        with pytest.raises(UnknownJobError):
            await run_job(session, "sync-everything")

    @pytest.mark.asyncio
    async def test_runs_every_company_past_failures(self, session, company, other_company):
        async def job(session, company, http_client=None):
            if company.name == "Acme":
                raise RuntimeError("no TripActions account")
            return {}

        with patch.dict("cio.services.functions.JOBS", {JobName.SYNC_TRAVEL: job}):
            functions = await run_job(session, "sync-travel")

        conclusions = {f.cio_company_id: f.conclusion for f in functions}
        assert conclusions == {
            company.id: FunctionConclusion.SUCCESS.value,
            other_company.id: FunctionConclusion.FAILURE.value,
        }

    @pytest.mark.asyncio
    async def test_single_company_failure_is_raised(self, session, company):
        with patch.dict("cio.services.functions.JOBS", {JobName.SYNC_TRAVEL: failing_job}):
            with pytest.raises(RuntimeError):
                await run_job(session, "sync-travel", company_name="Oxide")

    @pytest.mark.asyncio
    async def test_global_job_runs_once_for_cio_company(self, session, company, other_company):
        job = AsyncMock(return_value={})

        with patch.dict("cio.services.functions.JOBS", {JobName.SYNC_FUNCTIONS: job}):
            functions = await run_job(session, "sync-functions")

        assert [f.cio_company_id for f in functions] == [company.id]
        job.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_global_job_needs_cio_company(self, session, other_company):
        with pytest.raises(CompanyNotFoundError):
            await run_job(session, "sync-functions")


@pytest.mark.asyncio
async def test_refresh_functions_closes_stale_and_unconcluded_runs(session, company):
    stale = _function(company, created_at=utc_now() - timedelta(hours=30))
    unconcluded = _function(company, status=FunctionStatus.COMPLETED.value)
    fresh = _function(company)
    for function in (stale, unconcluded, fresh):
        session.add(function)
    session.commit()

    with patch.object(AirtableSync, "update_airtable", new=AsyncMock(return_value={"created": 3})) as update:
        counts = await refresh_functions(session, company)

    assert counts == {"created": 3}
    assert len(update.await_args.args[0]) == 3
    session.refresh(stale)
    session.refresh(unconcluded)
    session.refresh(fresh)
    assert stale.conclusion == FunctionConclusion.TIMED_OUT.value
    assert unconcluded.conclusion == FunctionConclusion.NEUTRAL.value
    assert fresh.status == FunctionStatus.IN_PROGRESS.value
