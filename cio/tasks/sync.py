"""
Celery tasks for sync jobs.

Every job goes through the job runner, so scheduled and API-triggered runs are
recorded as Functions the same way as CLI runs.
"""
import asyncio
from typing import Any, Dict, List, Optional

from cio.core.celery_app import celery_app
from cio.core.database import get_session_context
from cio.core.http_client import close_http_client, get_http_client
from cio.core.logging_config import log_error, log_info
from cio.services.functions import run_job


async def _run_job(job: str, company_name: Optional[str]) -> List[Dict[str, Any]]:
    try:
        with get_session_context() as session:
            functions = await run_job(session, job, company_name, http_client=await get_http_client())
            return [
                {"id": f.id, "company_id": f.cio_company_id, "status": f.status, "conclusion": f.conclusion}
                for f in functions
            ]
    finally:
        # The shared client is bound to this task's event loop
        await close_http_client()


def _run_async(coro):
    """Run an async coroutine from a sync Celery task."""
    return asyncio.run(coro)


@celery_app.task(name="cio.tasks.sync.run_job_task", bind=True)
def run_job_task(self, job: str, company_name: Optional[str] = None):
    """Run a sync job for one company, or every company when none is given."""
    log_info(f"Job task {job} started", task_id=self.request.id, company=company_name)
    try:
        functions = _run_async(_run_job(job, company_name))
    except Exception as exc:
        log_error(exc, task_id=self.request.id, job=job)
        raise

    log_info(f"Job task {job} finished", task_id=self.request.id, functions=len(functions))
    return {"job": job, "functions": functions}
