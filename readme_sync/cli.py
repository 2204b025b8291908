"""CLI entrypoint (Typer).

Commands:
- `readme-sync serve`: run the API and webhook server
- `readme-sync init-db`: create the database tables
- `readme-sync run OWNER REPO --install ID`: run one job in the foreground
"""

from __future__ import annotations

import asyncio

import typer

from readme_sync.config import get_settings

app = typer.Typer(help="Keep repository READMEs in sync with package documentation.")


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address, defaults to API_HOST"),
    port: int = typer.Option(None, help="Bind port, defaults to API_PORT"),
):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "readme_sync.api.main:get_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.debug,
    )


@app.command("init-db")
def init_db_command():
    """Create the database tables."""
    from readme_sync.database.session import close_db, init_db

    async def _init() -> None:
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(_init())
    typer.echo(f"Initialized {get_settings().database_url}")


@app.command()
def run(
    owner: str,
    repo: str,
    install: int = typer.Option(..., "--install", help="GitHub App installation ID"),
    head: str = typer.Option(None, "--head", help="Commit to generate from, defaults to the branch head"),
):
    """Run one job and wait for its outcome."""
    from readme_sync.api.main import configure_logging
    from readme_sync.database.session import close_db, get_session_maker, init_db
    from readme_sync.database.store import JobStore
    from readme_sync.generator import PackageDocGenerator
    from readme_sync.github import GitHubApp
    from readme_sync.jobs import JobOrchestrator
    from readme_sync.schemas import JobStatus, Trigger

    settings = get_settings()
    configure_logging(settings)

    async def _run():
        await init_db()
        github_app = GitHubApp.from_settings(settings)
        try:
            orchestrator = JobOrchestrator(
                store=JobStore(get_session_maker()),
                host_factory=github_app.installation_client,
                generator=PackageDocGenerator(),
                settings=settings,
            )
            trigger = Trigger(installation_id=install, owner=owner, repo=repo, head_sha=head, reason="CLI")
            started = await orchestrator.start_job(trigger)
            return await started.wait()
        finally:
            await github_app.close()
            await close_db()

    job = asyncio.run(_run())
    typer.echo(f"{job.tag}: {job.status} - {job.message}")
    if job.pr:
        typer.echo(f"PR: https://github.com/{job.owner}/{job.repo}/pull/{job.pr}")
    if job.status != JobStatus.SUCCESS.value:
        typer.echo(job.debug or "", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
