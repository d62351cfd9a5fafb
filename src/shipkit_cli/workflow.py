"""Provisioning workflow: token, name, choices, download, extract, install.

The workflow talks to the outside world only through the objects it is
constructed with (prompter, credential store, HTTP client, installer), and
reports its end state as a ``WorkflowResult`` instead of raising for
expected failures.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import httpx
from keyring.errors import KeyringError
from rich.console import Console

from .choices import (
    AUTH_CHOICES,
    BASE_FRAMEWORK_CHOICES,
    ORM_CHOICES,
    OUTPUT_CHOICES,
    PACKAGE_MANAGER_CHOICES,
    Selection,
    check_choice,
    database_options,
    default_auth,
    framework_options,
    unavailable_auth,
)
from .config import Settings
from .credentials import CredentialStore
from .download import CancellationToken, download_archive
from .errors import (
    DestinationExistsError,
    InvalidNameError,
    InvalidTokenError,
    Outcome,
    SelectionError,
    ShipkitError,
)
from .files import create_dir, delete_dir, delete_file, path_exists, unzip_file
from .installer import install_dependencies
from .token import is_valid_token
from .ui import StepTracker, console as default_console, error_console as default_error_console


DEFAULT_PROJECT_NAME = "my-project"


@dataclass(frozen=True)
class WorkflowResult:
    """End state of a provisioning run."""

    outcome: Outcome
    message: str = ""
    detail: Optional[str] = None
    project_path: Optional[Path] = None
    selection: Optional[Selection] = None
    installed: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS


class ProvisioningWorkflow:
    """Runs the provisioning stages in order."""

    def __init__(
        self,
        prompter,
        credentials: CredentialStore,
        client: httpx.Client,
        settings: Settings,
        *,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
        installer: Callable[..., None] = install_dependencies,
    ):
        """
        Args:
            prompter: Object with ``select``, ``text``, ``secret`` and
                ``confirm`` methods (see ``ui.ConsolePrompter``)
            credentials: Where the token is read from and saved to
            client: HTTP client for the token check and the build request
            settings: Endpoints, output directory and timeout
            console: Rich console for progress output
            error_console: Rich console the package manager's stderr goes to
            installer: Callable with the signature of ``install_dependencies``
        """
        self.prompter = prompter
        self.credentials = credentials
        self.client = client
        self.settings = settings
        self.console = console or default_console
        self.error_console = error_console or default_error_console
        self.installer = installer

    def run(
        self,
        project_name: Optional[str] = None,
        preset: Optional[Dict[str, str]] = None,
        token: Optional[str] = None,
        install: Optional[bool] = None,
    ) -> WorkflowResult:
        """Run every stage and report how it ended.

        Args:
            project_name: Skip the name prompt. A name given up front is
                checked before the token, so a collision costs no request.
            preset: Answers keyed by ``Selection`` field name; those prompts
                are skipped
            token: Use this token instead of the stored one
            install: Skip the install confirmation

        Returns:
            WorkflowResult: ``SUCCESS`` or the specific failure outcome
        """
        project_path = None
        selection = None
        try:
            if project_name is not None:
                project_path, archive_path = self.resolve_destination(project_name)
            active_token = self.acquire_token(token)
            if project_path is None:
                project_path, archive_path = self.resolve_destination(None)
            selection = self.collect_selection(preset or {})
            self.build(active_token, selection, project_path, archive_path)
            installed = self.install(project_path, selection.manager, install)
        except ShipkitError as e:
            return WorkflowResult(
                e.outcome,
                e.message,
                detail=e.detail,
                project_path=project_path,
                selection=selection,
            )

        return WorkflowResult(
            Outcome.SUCCESS,
            "Project ready",
            project_path=project_path,
            selection=selection,
            installed=installed,
        )

    # Token stage

    def acquire_token(self, explicit: Optional[str] = None) -> str:
        """Return a validated token, saving it when it is new.

        Raises:
            InvalidTokenError: No valid token was obtained
        """
        if explicit is None:
            stored = self.credentials.get()
            if stored and self._check_token(stored):
                if self.prompter.confirm("Use your saved ShipKit token?", default=True):
                    return stored
            candidate = self.prompter.secret("Enter your ShipKit token")
        else:
            candidate = explicit

        candidate = (candidate or "").strip()
        if not self._check_token(candidate):
            raise InvalidTokenError("Invalid token")

        self._save_token(candidate)
        return candidate

    def _check_token(self, token: str) -> bool:
        if not token:
            return False
        with self.console.status("Checking token..."):
            return is_valid_token(token, client=self.client, url=self.settings.token_check_url)

    def _save_token(self, token: str) -> None:
        try:
            self.credentials.set(token)
        except KeyringError as e:
            self.console.print(f"[yellow]Warning:[/yellow] could not save token to the credential store ({e})")

    # Naming stage

    def resolve_destination(self, name: Optional[str]) -> Tuple[Path, Path]:
        """Return ``(project_path, archive_path)`` for a project name.

        Raises:
            InvalidNameError: Empty name or one that is not a single path component
            DestinationExistsError: The project directory already exists
        """
        if name is None:
            name = self.prompter.text("What's the name of your project?", default=DEFAULT_PROJECT_NAME)
        name = name.strip()
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise InvalidNameError(f"Invalid project name '{name}'")

        project_path = self.settings.output_dir / name
        archive_path = self.settings.output_dir / f"{name}.zip"
        if path_exists(project_path):
            raise DestinationExistsError(f"Folder '{project_path}' already exists")
        return project_path, archive_path

    # Selection stage

    def collect_selection(self, preset: Dict[str, str]) -> Selection:
        """Ask for every option, offering only what earlier answers allow.

        Raises:
            SelectionError: A preset value is not offered for its upstream choice
        """
        base_framework = self._choose(preset, "base_framework", "Select a base framework", BASE_FRAMEWORK_CHOICES)

        frameworks = framework_options(base_framework)
        if len(frameworks) > 1:
            framework = self._choose(preset, "framework", "Select a framework", frameworks)
        else:
            framework = check_choice("framework", preset.get("framework") or next(iter(frameworks)), frameworks)

        orm = self._choose(preset, "orm", "Select an ORM", ORM_CHOICES)
        database = self._choose(preset, "database", "Select a database", database_options(orm))
        auth = self._choose(
            preset,
            "auth",
            "Select an auth provider",
            AUTH_CHOICES,
            default=default_auth(framework),
            disabled=unavailable_auth(framework),
        )
        output = self._choose(preset, "output", "Select a deployment target", OUTPUT_CHOICES)
        manager = self._choose(preset, "manager", "Select a package manager", PACKAGE_MANAGER_CHOICES)

        return Selection(
            base_framework=base_framework,
            framework=framework,
            orm=orm,
            database=database,
            auth=auth,
            output=output,
            manager=manager,
        ).validate()

    def _choose(self, preset, field, message, options, default=None, disabled=frozenset()) -> str:
        value = preset.get(field)
        if value is None:
            return self.prompter.select(message, options, default=default, disabled=disabled)

        label = field.replace("_", " ")
        check_choice(label, value, options)
        if value in disabled:
            raise SelectionError(f"The {label} '{value}' is not available with this configuration")
        return value

    # Retrieval and materialization stages

    def build(self, token: str, selection: Selection, project_path: Path, archive_path: Path) -> None:
        """Download the archive and extract it, with a live step tree."""
        tracker = StepTracker("Build ShipKit Project")
        for key, label in [
            ("download", "Download kit"),
            ("extract", "Extract kit"),
            ("cleanup", "Remove archive"),
        ]:
            tracker.add(key, label)

        try:
            with tracker.live(self.console):
                self.retrieve(token, selection, archive_path, tracker)
                self.materialize(archive_path, project_path, tracker)
        finally:
            self.console.print(tracker.render())

    def retrieve(self, token: str, selection: Selection, archive_path: Path, tracker: Optional[StepTracker] = None) -> int:
        tracker = tracker or StepTracker("Retrieve")
        create_dir(archive_path.parent)
        tracker.start("download", "contacting build API")

        def on_progress(downloaded: int, total: int):
            detail = f"{downloaded:,} / {total:,} bytes" if total else f"{downloaded:,} bytes"
            tracker.start("download", detail)

        cancel = CancellationToken(self.settings.download_timeout)
        try:
            size = download_archive(
                self.client,
                self.settings.build_url,
                token,
                selection.to_payload(),
                archive_path,
                cancel=cancel,
                on_progress=on_progress,
            )
        except ShipkitError as e:
            tracker.error("download", e.message)
            raise
        tracker.complete("download", f"{size:,} bytes")
        return size

    def materialize(self, archive_path: Path, project_path: Path, tracker: Optional[StepTracker] = None) -> None:
        """Replace ``project_path`` with the archive contents, then drop the archive."""
        tracker = tracker or StepTracker("Materialize")
        tracker.start("extract")
        try:
            delete_dir(project_path)
            names = unzip_file(archive_path, project_path)
        except ShipkitError as e:
            tracker.error("extract", e.message)
            delete_dir(project_path)
            raise
        else:
            tracker.complete("extract", f"{len(names)} entries")
        finally:
            delete_file(archive_path)
            tracker.complete("cleanup")

    # Install stage

    def install(self, project_path: Path, manager: str, install: Optional[bool] = None) -> bool:
        """Install dependencies if wanted.

        Returns:
            bool: True if the package manager ran and succeeded

        Raises:
            InstallError: The package manager exited non-zero
        """
        if install is None:
            install = self.prompter.confirm("Install dependencies?", default=True)
        if not install:
            return False

        self.console.print()
        self.console.print(f"[cyan]Installing dependencies with {manager}[/cyan]")
        self.console.print()
        self.installer(project_path, manager, on_output=self._relay_output, on_error=self._relay_error)
        return True

    def _relay_output(self, line: str) -> None:
        self.console.out(line, highlight=False)

    def _relay_error(self, line: str) -> None:
        self.error_console.out(line, highlight=False)
