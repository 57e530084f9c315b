"""
Database commands.
"""
import typer
from rich.console import Console

from alembic import command
from alembic.config import Config

from cio.core.config import PROJECT_ROOT, settings

app = typer.Typer(help="Database commands")
console = Console()


def _alembic_config() -> Config:
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", settings.effective_database_url)
    return config


@app.command()
def upgrade(revision: str = typer.Argument("head", help="Target revision")):
    """Run migrations up to ``revision``."""
    command.upgrade(_alembic_config(), revision)
    console.print(f"[green]Database upgraded to {revision}[/green]")


@app.command()
def current():
    """Show the current revision."""
    command.current(_alembic_config(), verbose=True)
