"""
Product token commands.
"""
import asyncio

import typer
from rich.console import Console

from cio.clients.base import APIError
from cio.core.database import get_session_context
from cio.core.exceptions import CIOException
from cio.core.http_client import close_http_client, get_http_client
from cio.core.logging_config import setup_logging
from cio.services.api_tokens import CLIENT_CREDENTIALS_CLIENTS, connect_client_credentials
from cio.services.companies import get_company_by_name

app = typer.Typer(help="Product tokens")
console = Console()


async def _connect(product: str, company_name: str) -> str:
    try:
        with get_session_context() as session:
            company = get_company_by_name(session, company_name)
            api_token = await connect_client_credentials(
                session, company, product, http_client=await get_http_client()
            )
            return str(api_token.expires_date or "-")
    finally:
        await close_http_client()


@app.command("connect")
def connect(
    product: str = typer.Argument(..., help=f"One of: {', '.join(sorted(CLIENT_CREDENTIALS_CLIENTS))}"),
    company: str = typer.Option(..., "--company", "-c", help="Company that uses the product"),
):
    """Mint and store a client-credentials token for a company."""
    setup_logging()
    try:
        expires = asyncio.run(_connect(product, company))
    except (CIOException, APIError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[green]Connected[/green] {company} to {product}, token expires {expires}")
