"""
Main CLI application using Typer.

Entry point: python -m cio.cli
CLI Name: cio
"""
import typer

from cio import __version__ as app_version

app = typer.Typer(
    name="cio",
    help="CIO - run business-operations sync jobs and the webhook server",
)


@app.command()
def version():
    """Show CLI version information."""
    typer.echo(f"cio version {app_version}")


@app.command()
def server(
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
    port: int = typer.Option(None, help="Port to listen on (defaults to APP_PORT)"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the webhook server."""
    import uvicorn

    from cio.core.config import settings

    uvicorn.run("cio.main:app", host=host, port=port or settings.app_port, reload=reload)


# Register command groups
from cio.cli.commands import db, jobs, tokens  # noqa: E402
app.add_typer(jobs.app, name="jobs")
app.add_typer(db.app, name="db")
app.add_typer(tokens.app, name="tokens")
