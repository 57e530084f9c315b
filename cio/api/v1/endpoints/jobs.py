"""
Job endpoints: trigger sync jobs and look up their runs.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from cio.api.dependencies import get_request_id, get_session, require_bearer_token
from cio.core.exceptions import FunctionNotFoundError
from cio.core.http_client import get_http_client
from cio.core.logging_config import log_info
from cio.models.function import Function
from cio.schemas.function import FunctionResponse
from cio.schemas.job import JobListResponse, JobRunResponse
from cio.services.functions import JobName, parse_job_name, run_job
from cio.tasks.sync import run_job_task

router = APIRouter(dependencies=[Depends(require_bearer_token)])


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs():
    return JobListResponse(jobs=[job.value for job in JobName])


@router.post(
    "/run/{job}",
    response_model=JobRunResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        400: {"description": "Unknown job"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "Company not found"},
    },
)
async def run(
    job: str,
    session: Annotated[Session, Depends(get_session)],
    request_id: Annotated[str, Depends(get_request_id)],
    company: Annotated[Optional[str], Query(description="Run for one company only")] = None,
    sync: Annotated[bool, Query(description="Run in-process instead of queueing")] = False,
):
    """
    Start a sync job.

    By default the job is queued for a worker. With ``sync=true`` it runs in
    the request and the response carries the recorded conclusion.
    """
    job_name = parse_job_name(job)

    if not sync:
        result = run_job_task.delay(job_name.value, company)
        log_info(f"Queued {job_name.value}", request_id=request_id, task_id=result.id)
        return JobRunResponse(job=job_name.value, status="queued", task_id=result.id)

    functions = await run_job(
        session,
        job_name.value,
        company_name=company,
        http_client=await get_http_client(),
        raise_errors=False,
    )
    last = functions[-1] if functions else None
    return JobRunResponse(
        job=job_name.value,
        status=(last.conclusion or last.status) if last else "skipped",
        function_id=last.id if last else None,
        function_ids=[f.id for f in functions],
    )


@router.get(
    "/functions/{function_id}",
    response_model=FunctionResponse,
    responses={404: {"description": "Function not found"}},
)
async def get_function(function_id: int, session: Annotated[Session, Depends(get_session)]):
    function = session.get(Function, function_id)
    if function is None:
        raise FunctionNotFoundError(f"Function {function_id} not found")
    return function
