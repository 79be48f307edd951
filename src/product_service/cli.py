"""Product service command line: API server, worker and bootstrap commands."""

import asyncio

import typer
from rich.console import Console

from src.product_service.worker.main import app as worker_app

console = Console()

app = typer.Typer(
    help="Product service",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(worker_app, name="worker", help="Temporal workers and the event consumer")


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default from config)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from src.product_service.runtime.context import get_config

    config = get_config().app
    uvicorn.run(
        "src.product_service.api.http.app:app",
        host=host or config.host,
        port=port or config.port,
        reload=reload,
        access_log=False,
    )


@app.command("init-db")
def init_db() -> None:
    """Create the product tables."""
    from src.product_service.runtime.init_db import init_db as create_tables

    create_tables()
    console.print("[green]✅ Database tables created[/green]")


@app.command("init-index")
def init_index() -> None:
    """Create the search index and its mapping."""
    from src.product_service.api.utils.app_startup import configure_logging
    from src.product_service.core.services import SearchProjection

    configure_logging(file_sink=False)

    async def _create() -> bool:
        search = SearchProjection()
        try:
            return await search.create_index()
        finally:
            await search.close()

    if asyncio.run(_create()):
        console.print("[green]✅ Search index ready[/green]")
    else:
        console.print("[red]❌ Search index setup failed, see the log for details[/red]")
        raise typer.Exit(code=1)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
