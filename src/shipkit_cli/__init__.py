#!/usr/bin/env python3
"""
ShipKit CLI - Create projects from ShipKit starter kits

Usage:
    shipkit init <project-name>
    shipkit init <project-name> --base-framework astro --orm drizzle --no-install
    shipkit login
    shipkit logout
    shipkit check
"""

import shutil
import ssl
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import httpx
import truststore
import typer
from keyring.errors import KeyringError
from rich.align import Align
from rich.panel import Panel
from typer.core import TyperGroup

from .config import Settings, load_env_file
from .credentials import CredentialStore, KeyringCredentialStore
from .errors import Outcome
from .installer import INSTALL_COMMANDS
from .token import is_valid_token
from .ui import ConsolePrompter, StepTracker, console, show_banner
from .workflow import ProvisioningWorkflow, WorkflowResult

ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)

FAILURE_TITLES = {
    Outcome.TRANSPORT_ERROR: "Download Error",
    Outcome.TIMEOUT: "Download Timeout",
    Outcome.CANCELLED: "Download Cancelled",
    Outcome.EXTRACTION_ERROR: "Extraction Error",
    Outcome.INSTALL_ERROR: "Install Error",
}

PACKAGE_MANAGER_URLS = {
    "bun": "https://bun.sh/",
    "npm": "https://nodejs.org/",
    "pnpm": "https://pnpm.io/installation",
    "yarn": "https://yarnpkg.com/getting-started/install",
}


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="shipkit",
    help="Create projects from ShipKit starter kits",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


@app.callback()
def callback(ctx: typer.Context):
    """Show banner when no subcommand is provided."""
    load_env_file()
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'shipkit --help' for usage information[/dim]"))
        console.print()


def build_client(skip_tls: bool = False) -> httpx.Client:
    """HTTP client verified against the system trust store."""
    return httpx.Client(verify=False if skip_tls else ssl_context)


def credential_store(settings: Settings) -> CredentialStore:
    return KeyringCredentialStore(settings.credential_service)


def load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _print_debug_environment(settings: Settings):
    _env_pairs = [
        ("Python", sys.version.split()[0]),
        ("Platform", sys.platform),
        ("CWD", str(Path.cwd())),
        ("Base URL", settings.base_url),
        ("Output dir", str(settings.output_dir)),
        ("Timeout", f"{settings.download_timeout}s" if settings.download_timeout else "none"),
    ]
    _label_width = max(len(k) for k, _ in _env_pairs)
    env_lines = [f"{k.ljust(_label_width)} → [bright_black]{v}[/bright_black]" for k, v in _env_pairs]
    console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))


def _report_failure(result: WorkflowResult, settings: Settings, debug: bool):
    console.print()
    title = FAILURE_TITLES.get(result.outcome)
    if title:
        console.print(Panel(result.message, title=title, border_style="red"))
    else:
        console.print(f"[red]{result.message}[/red]")

    if result.outcome is Outcome.INSTALL_ERROR and result.project_path:
        console.print(f"[yellow]The project was created in[/yellow] {result.project_path}[yellow]; "
                      f"run the install command there to retry.[/yellow]")

    if debug:
        if result.detail:
            console.print(Panel(result.detail, title="Details", border_style="magenta"))
        _print_debug_environment(settings)


@app.command()
def init(
    project_name: str = typer.Argument(None, help="Name for your new project directory (prompted if omitted)"),
    base_framework: str = typer.Option(None, "--base-framework", help="Base framework: astro or next"),
    framework: str = typer.Option(None, "--framework", help="UI framework: react, svelte, vue or solid"),
    orm: str = typer.Option(None, "--orm", help="ORM: drizzle or prisma"),
    database: str = typer.Option(None, "--database", help="Database offered by the chosen ORM"),
    auth: str = typer.Option(None, "--auth", help="Auth provider: lucia, supabase, clerk or authjs"),
    output: str = typer.Option(None, "--output", help="Deployment target: vercel, netlify, cloudflare or node"),
    manager: str = typer.Option(None, "--manager", help="Package manager: bun, npm, pnpm or yarn"),
    install: Optional[bool] = typer.Option(None, "--install/--no-install", help="Install dependencies without asking"),
    token: str = typer.Option(None, "--token", help="ShipKit token to use instead of the saved one"),
    timeout: float = typer.Option(None, "--timeout", help="Seconds before the download is aborted (0 disables)"),
    skip_tls: bool = typer.Option(False, "--skip-tls", help="Skip SSL/TLS verification (not recommended)"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output for network and extraction failures"),
):
    """
    Create a new project from a ShipKit starter kit.

    This command will:
    1. Check your ShipKit token (saved in the system credential store)
    2. Ask for the project name and make sure the folder does not exist
    3. Let you choose framework, ORM, database, auth and deployment target
    4. Download the generated kit and extract it
    5. Optionally install dependencies

    Examples:
        shipkit init my-project
        shipkit init my-project --base-framework astro --framework svelte
        shipkit init my-project --orm drizzle --database turso --manager pnpm --install
    """
    show_banner()

    settings = load_settings()
    if timeout is not None:
        settings = replace(settings, download_timeout=timeout if timeout > 0 else None)

    preset = {
        key: value
        for key, value in {
            "base_framework": base_framework,
            "framework": framework,
            "orm": orm,
            "database": database,
            "auth": auth,
            "output": output,
            "manager": manager,
        }.items()
        if value is not None
    }

    console.print(Panel.fit(
        "[bold cyan]ShipKit Project Setup[/bold cyan]\n"
        + (f"Creating new project: [green]{project_name}[/green]" if project_name else "Creating a new project"),
        border_style="cyan"
    ))

    with build_client(skip_tls) as client:
        workflow = ProvisioningWorkflow(
            ConsolePrompter(),
            credential_store(settings),
            client,
            settings,
            console=console,
        )
        try:
            result = workflow.run(project_name, preset=preset, token=token, install=install)
        except typer.Exit:
            raise
        except Exception as e:
            console.print(Panel(f"Initialization failed: {e}", title="Failure", border_style="red"))
            if debug:
                _print_debug_environment(settings)
            raise typer.Exit(1)

    if not result.ok:
        _report_failure(result, settings, debug)
        raise typer.Exit(1)

    selection = result.selection
    console.print("\n[bold green]Project ready.[/bold green]")

    steps_lines = [f"1. [bold green]cd {result.project_path}[/bold green]"]
    step_num = 2
    if not result.installed:
        steps_lines.append(f"{step_num}. Install dependencies: [bold cyan]{INSTALL_COMMANDS[selection.manager]}[/bold cyan]")
        step_num += 1
    steps_lines.append(f"{step_num}. Start the dev server: [bold cyan]{selection.manager} run dev[/bold cyan]")
    step_num += 1
    steps_lines.append(f"{step_num}. Configure your [bold magenta]{selection.database}[/bold magenta] connection and "
                       f"[bold magenta]{selection.auth}[/bold magenta] keys in [cyan].env[/cyan]")

    steps_panel = Panel("\n".join(steps_lines), title="Next steps", border_style="cyan", padding=(1, 2))
    console.print()
    console.print(steps_panel)
    console.print("\n[bold bright_green]Build something amazing![/bold bright_green]")


@app.command()
def login(
    token: str = typer.Option(None, "--token", help="Token to save (prompted if omitted)"),
    skip_tls: bool = typer.Option(False, "--skip-tls", help="Skip SSL/TLS verification (not recommended)"),
):
    """Validate a ShipKit token and save it to the system credential store."""
    settings = load_settings()
    if token is None:
        token = typer.prompt("Enter your ShipKit token", hide_input=True)
    token = token.strip()

    with build_client(skip_tls) as client:
        with console.status("Checking token..."):
            valid = is_valid_token(token, client=client, url=settings.token_check_url)

    if not valid:
        console.print("[red]Invalid token[/red]")
        raise typer.Exit(1)

    try:
        credential_store(settings).set(token)
    except KeyringError as e:
        console.print(f"[red]Error:[/red] could not save token to the credential store ({e})")
        raise typer.Exit(1)
    console.print("[green]✓[/green] Token saved")


@app.command()
def logout():
    """Remove the saved ShipKit token."""
    settings = load_settings()
    if credential_store(settings).remove():
        console.print("[green]✓[/green] Token removed")
    else:
        console.print("[yellow]No saved token found[/yellow]")


def check_tool_for_tracker(tool: str, install_hint: str, tracker: StepTracker) -> bool:
    """Check if a tool is installed and update tracker."""
    if shutil.which(tool):
        tracker.complete(tool, "available")
        return True
    else:
        tracker.error(tool, f"not found - {install_hint}")
        return False


@app.command()
def check():
    """Check which package managers are installed."""
    show_banner()
    console.print("[bold]Checking for installed package managers...[/bold]\n")

    tracker = StepTracker("Check Package Managers")
    for tool in INSTALL_COMMANDS:
        tracker.add(tool, tool)

    available = [
        tool for tool in INSTALL_COMMANDS
        if check_tool_for_tracker(tool, PACKAGE_MANAGER_URLS[tool], tracker)
    ]

    console.print(tracker.render())

    if available:
        console.print("\n[bold green]ShipKit CLI is ready to use![/bold green]")
    else:
        console.print("\n[yellow]No package manager found.[/yellow] Projects can still be created with --no-install.")
        raise typer.Exit(1)


def main():
    app()


if __name__ == "__main__":
    main()
