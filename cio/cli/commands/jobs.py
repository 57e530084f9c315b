"""
Sync job commands.
"""
import asyncio
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from cio.core.database import get_session_context
from cio.core.exceptions import CIOException
from cio.core.http_client import close_http_client, get_http_client
from cio.core.logging_config import setup_logging
from cio.models.function import Function, FunctionConclusion
from cio.services.functions import GLOBAL_JOBS, JobName, run_job

app = typer.Typer(help="Sync jobs")
console = Console()

CONCLUSION_STYLES = {
    FunctionConclusion.SUCCESS.value: "green",
    FunctionConclusion.FAILURE.value: "red",
    FunctionConclusion.TIMED_OUT.value: "red",
    FunctionConclusion.NEUTRAL.value: "yellow",
}


def _row(function: Function) -> Dict[str, Any]:
    return {
        "id": function.id,
        "company_id": function.cio_company_id,
        "status": function.status,
        "conclusion": function.conclusion,
    }


@app.command("list")
def list_jobs():
    """List the jobs that can be run."""
    table = Table(title="Jobs")
    table.add_column("Job", style="cyan")
    table.add_column("Scope")
    for job in JobName:
        table.add_row(job.value, "global" if job in GLOBAL_JOBS else "per company")
    console.print(table)


async def _run(job: str, company: Optional[str]) -> List[Dict[str, Any]]:
    try:
        with get_session_context() as session:
            functions = await run_job(session, job, company, http_client=await get_http_client(), raise_errors=False)
            return [_row(f) for f in functions]
    finally:
        await close_http_client()


@app.command("run")
def run(
    job: str = typer.Argument(..., help="Job name, see `cio jobs list`"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Run for one company only"),
):
    """Run a job in this process."""
    setup_logging()
    try:
        functions = asyncio.run(_run(job, company))
    except CIOException as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title=job)
    table.add_column("Function")
    table.add_column("Company")
    table.add_column("Status")
    table.add_column("Conclusion")
    for function in functions:
        style = CONCLUSION_STYLES.get(function["conclusion"], "white")
        table.add_row(
            str(function["id"]),
            str(function["company_id"]),
            function["status"],
            f"[{style}]{function['conclusion'] or '-'}[/{style}]",
        )
    console.print(table)

    failed = (FunctionConclusion.FAILURE.value, FunctionConclusion.TIMED_OUT.value)
    if any(f["conclusion"] in failed for f in functions):
        raise typer.Exit(code=1)
