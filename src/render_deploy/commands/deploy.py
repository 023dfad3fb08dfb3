import asyncio
import json
from typing import Any

from pydantic import BaseModel, ConfigDict
from rich.console import Console
from rich.markup import escape
import typer

from render_deploy import __version__
from render_deploy.client import RenderClient, build_http_client
from render_deploy.config import RenderSettings, load_settings
from render_deploy.errors import ConfigurationError, RenderAPIError, RenderDeployError
from render_deploy.logging_config import clear_context, get_logger, setup_logging
from render_deploy.outcome import DeployedSuccessfully, DeployFailed, ExitCode, Outcome, TimedOut
from render_deploy.schemas import Service
from render_deploy.status import display_status
from render_deploy.trigger import DeployTrigger, TriggerResult
from render_deploy.waiter import DeployWaiter, PollEvent

logger = get_logger(__name__)
console = Console()


class DeployRun(BaseModel):
    """What one invocation did: the triggered deploy and, with --wait, its outcome."""

    model_config = ConfigDict(frozen=True)

    triggered: TriggerResult
    outcome: Outcome | None = None

    @property
    def exit_code(self) -> ExitCode:
        return self.outcome.exit_code if self.outcome is not None else ExitCode.OK


class PollPrinter:
    """Prints a line whenever the observed status changes."""

    def __init__(self, out: Console):
        self.out = out
        self._last_status: str | None = None

    def __call__(self, event: PollEvent) -> None:
        if event.error is not None:
            self.out.print(
                f"[yellow]Warning:[/yellow] status check failed, retrying: {escape(event.error)}"
            )
            return
        if event.status == self._last_status:
            return
        self._last_status = event.status
        if not event.recognized:
            self.out.print(
                f"[yellow]Warning:[/yellow] unrecognized deploy status "
                f"'{escape(event.status or '')}', still waiting"
            )
        self.out.print(f"Status: {escape(display_status(event.status or ''))}")


def _describe_service(out: Console, service: Service, commit: str | None) -> None:
    out.print(f"Found [magenta]{escape(service.name)}[/magenta] {service.dashboard_url or ''}")
    if service.auto_deploy:
        out.print("[yellow]Warning:[/yellow] AutoDeploy is enabled for this service")
    target = commit if commit is not None else service.branch or "default branch"
    out.print(f"Deploying {escape(service.repo or service.name)} #{escape(target)}\n")


async def _describe_previous_deploy(out: Console, client: RenderClient, service: Service) -> None:
    try:
        previous = await client.latest_deploy(service.id)
    except RenderAPIError as e:
        logger.warning("previous_deploy_lookup_failed", service_id=service.id, error=str(e))
        return
    if previous is None:
        return
    if previous.commit is not None:
        out.print(
            f"Previous Deploy {previous.commit.id} - {escape(previous.commit.title)}"
        )
    finished = previous.finished_at.isoformat() if previous.finished_at else ""
    out.print(f"Status: {display_status(previous.status)} on {finished}\n")


async def deploy_command(
    name: str,
    commit: str | None,
    settings: RenderSettings,
    wait: bool = False,
    timeout: float = 600,
    clear_cache: bool = False,
    out: Console | None = None,
) -> DeployRun:
    """
    Async implementation of the deploy command.

    Triggers exactly one deploy, then waits for it only if ``wait`` is set.
    """
    out = out or console
    http_client = build_http_client(
        settings.api_key, base_url=settings.api_url, timeout=settings.request_timeout
    )
    async with http_client:
        client = RenderClient(http_client)
        trigger = DeployTrigger(client)

        service = await trigger.resolve(name)
        _describe_service(out, service, commit)
        await _describe_previous_deploy(out, client, service)

        triggered = await trigger.trigger(service, commit=commit, clear_cache=clear_cache)
        deploy = triggered.deploy
        if deploy.commit is not None:
            out.print(
                f"Created Deploy #{deploy.commit.id} - {escape(deploy.commit.title)}"
            )
        else:
            out.print(f"Created Deploy {deploy.id}")
        out.print(triggered.handle.dashboard_url(settings.dashboard_url), soft_wrap=True)
        out.print(f"Status: {display_status(deploy.status)}")

        if not wait:
            return DeployRun(triggered=triggered)

        waiter = DeployWaiter(
            client, poll_interval=settings.poll_interval, on_poll=PollPrinter(out)
        )
        try:
            outcome = await waiter.wait(triggered.handle, timeout)
        finally:
            clear_context()
        return DeployRun(triggered=triggered, outcome=outcome)


def _report(out: Console, run: DeployRun, timeout: float) -> None:
    deploy_id = run.triggered.handle.deploy_id
    outcome = run.outcome
    if outcome is None:
        out.print(f"[bold green]✓ Deploy {deploy_id} triggered[/bold green]")
    elif isinstance(outcome, DeployedSuccessfully):
        finished = (
            outcome.deploy.finished_at.isoformat() if outcome.deploy.finished_at else "unknown"
        )
        out.print(
            f"[bold green]✓ Deploy {deploy_id} is live[/bold green] "
            f"on {finished} in {int(outcome.elapsed)} seconds"
        )
    elif isinstance(outcome, DeployFailed):
        out.print(
            f"[bold red]✗ Deploy {deploy_id} failed:[/bold red] "
            f"{escape(display_status(outcome.reason))} ({escape(outcome.reason)})"
        )
    elif isinstance(outcome, TimedOut):
        out.print(
            f"[bold yellow]✗ Deploy {deploy_id} timed out[/bold yellow] after {int(timeout)}s; "
            "it keeps running on Render"
        )
        if outcome.last_error:
            out.print(f"Last error: {escape(outcome.last_error)}")


def _as_json(run: DeployRun, settings: RenderSettings) -> dict[str, Any]:
    handle = run.triggered.handle
    data: dict[str, Any] = {
        "service_id": handle.service_id,
        "service_name": run.triggered.service.name,
        "deploy_id": handle.deploy_id,
        "dashboard_url": handle.dashboard_url(settings.dashboard_url),
        "outcome": run.outcome.kind if run.outcome is not None else "triggered",
        "status": run.triggered.deploy.status,
    }
    if isinstance(run.outcome, DeployedSuccessfully | DeployFailed):
        data["status"] = run.outcome.deploy.status
    if isinstance(run.outcome, DeployFailed):
        data["reason"] = run.outcome.reason
    if isinstance(run.outcome, TimedOut):
        data["status"] = run.outcome.last_status
        data["last_error"] = run.outcome.last_error
    if run.outcome is not None:
        data["elapsed"] = round(run.outcome.elapsed, 3)
    return data


def _echo_error(kind: str, error: RenderDeployError) -> None:
    typer.echo(json.dumps({"outcome": kind, "error": error.message, **error.details}, indent=2))


def version_callback(value: bool):
    if value:
        typer.echo(f"render-deploy {__version__}")
        raise typer.Exit()


def deploy(
    name: str = typer.Argument(..., help="Name or ID (srv-...) of your service"),
    commit: str | None = typer.Argument(
        None, help="Commit to deploy (otherwise head of the default branch)"
    ),
    wait: bool = typer.Option(False, "--wait", "-w", help="Wait for the deploy to finish or fail"),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        "-a",
        envvar="RENDER_API_KEY",
        help="Render API key",
        show_default=False,
    ),
    timeout: int = typer.Option(
        600,
        "--timeout",
        "-t",
        min=0,
        help="Wait timeout in seconds; doesn't cancel the deploy, just stops waiting",
    ),
    clear_cache: bool = typer.Option(False, "--clear-cache", help="Clear the build cache"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    version: bool = typer.Option(
        False, "--version", "-V", callback=version_callback, is_eager=True, help="Show version"
    ),
):
    """Trigger a deploy on render.com and optionally wait for it to go live."""
    out = Console(quiet=True) if json_output else console

    try:
        settings = load_settings(api_key)
        if not name.strip():
            raise ConfigurationError("Service name must not be empty")
    except ConfigurationError as e:
        if json_output:
            _echo_error("configuration_error", e)
        else:
            console.print(f"[bold red]Configuration error:[/bold red] {escape(e.message)}")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR) from None

    setup_logging(log_format=settings.log_format, log_level=settings.log_level)

    try:
        run = asyncio.run(
            deploy_command(
                name,
                commit,
                settings,
                wait=wait,
                timeout=timeout,
                clear_cache=clear_cache,
                out=out,
            )
        )
    except RenderAPIError as e:
        logger.error(
            "deploy_trigger_failed", error=str(e), error_type=type(e).__name__, **e.details
        )
        if json_output:
            _echo_error("trigger_error", e)
        else:
            console.print(f"[bold red]Error:[/bold red] {escape(e.message)}")
        raise typer.Exit(code=ExitCode.TRIGGER_ERROR) from None

    if json_output:
        typer.echo(json.dumps(_as_json(run, settings), indent=2))
    else:
        _report(out, run, timeout)

    if run.exit_code != ExitCode.OK:
        raise typer.Exit(code=run.exit_code)
