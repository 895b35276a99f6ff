"""CLI entry point for the radicación upload tools.

Provides commands:
  - submit: Validate, upload and finalize a submission of supporting documents
  - config: Manage the portal access token in the system keyring
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import keyring
import typer
from keyring.errors import PasswordDeleteError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from radicacion.config import KEY_NAME, SERVICE_NAME
from radicacion.models import Category, LocalFile, SubmissionResult
from radicacion.upload.exceptions import AllFilesInvalidError, RadicacionError

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Radicación de soportes - upload supporting documents to the portal",
    rich_markup_mode="rich",
)
console = Console()

config_app = typer.Typer(help="Manage configuration (access token)")
app.add_typer(config_app, name="config")


@app.callback()
def app_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_file_specs(specs: list[str]) -> dict[str, list[LocalFile]]:
    """Parse ``CATEGORY=PATH`` pairs into files grouped by category.

    Raises:
        typer.BadParameter: On a malformed pair, unknown category or missing file.
    """
    valid_categories = {c.value for c in Category}
    grouped: dict[str, list[LocalFile]] = {}
    for spec in specs:
        category, sep, raw_path = spec.partition("=")
        if not sep or not raw_path:
            raise typer.BadParameter(f"Expected CATEGORY=PATH, got {spec!r}")
        if category not in valid_categories:
            raise typer.BadParameter(
                f"Unknown category {category!r}. "
                f"Choose from: {', '.join(sorted(valid_categories))}"
            )
        path = Path(raw_path)
        if not path.is_file():
            raise typer.BadParameter(f"File not found: {path}")
        grouped.setdefault(category, []).append(LocalFile.from_path(path))
    return grouped


@app.command()
def submit(
    email: Annotated[str, typer.Option("--email", help="Radicador email")],
    eps: Annotated[str, typer.Option("--eps", help="EPS (e.g. 'NUEVA EPS')")],
    regimen: Annotated[str, typer.Option("--regimen", help="CONTRIBUTIVO or SUBSIDIADO")],
    servicio: Annotated[str, typer.Option("--servicio", help="Servicio prestado")],
    fecha_atencion: Annotated[
        str, typer.Option("--fecha-atencion", help="Fecha de atención (YYYY-MM-DD)")
    ],
    files: Annotated[
        list[str],
        typer.Option("--file", "-f", help="CATEGORY=PATH (repeatable)"),
    ],
    radicador_nombre: Annotated[
        str | None, typer.Option("--radicador-nombre", help="Radicador name")
    ] = None,
    tipo_id: Annotated[str | None, typer.Option("--tipo-id", help="Patient ID type")] = None,
    identificacion: Annotated[
        str | None, typer.Option("--identificacion", help="Patient ID number")
    ] = None,
    nombres: Annotated[
        str | None, typer.Option("--nombres", help="Patient full name")
    ] = None,
    observaciones: Annotated[
        str | None, typer.Option("--observaciones", help="Free-text observations")
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to radicacion_config.json"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Validate and show the manifest without uploading"),
    ] = False,
) -> None:
    """Submit supporting documents: validate, upload with retries, finalize.

    The access token is read from the system keyring (service: radicacion-portal).
    To set it:  radicacion config set-token YOUR_TOKEN
    """
    from radicacion.upload.manifest import build_manifest
    from radicacion.upload.validator import validate_batch

    try:
        files_by_category = parse_file_specs(files)
    except typer.BadParameter as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    try:
        valid, rejected = validate_batch(files_by_category)
    except AllFilesInvalidError as e:
        console.print(Panel(str(e), title="Validation failed", style="red"))
        raise typer.Exit(code=1)

    for failure in rejected:
        console.print(f"[yellow]Skipping:[/yellow] {failure.message}")

    if dry_run:
        table = Table(title="Manifest (dry run)")
        table.add_column("Category", style="cyan")
        table.add_column("File")
        table.add_column("Size", justify="right")
        for group in build_manifest(valid):
            for f in group.files:
                table.add_row(group.categoria, f.name, f"{f.size / 1024:.1f} KB")
        console.print(table)
        return

    import asyncio

    from radicacion.config import get_access_token, load_upload_config
    from radicacion.upload.client import RadicacionClient
    from radicacion.upload.orchestrator import RadicacionOrchestrator
    from radicacion.upload.progress import UploadProgressTracker
    from radicacion.upload.schemas import SubmissionMetadata

    config = load_upload_config(config_path)
    if not config.access_token:
        try:
            config.access_token = get_access_token()
        except RuntimeError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)

    metadata = SubmissionMetadata(
        radicador_email=email,
        radicador_nombre=radicador_nombre,
        eps=eps,
        regimen=regimen,
        servicio_prestado=servicio,
        fecha_atencion=fecha_atencion,
        tipo_id=tipo_id,
        identificacion=identificacion,
        nombres_completos=nombres,
        observaciones=observaciones,
    )

    total = sum(len(v) for v in valid.values())
    console.print(
        Panel(
            f"Uploading [bold]{total}[/bold] files in "
            f"[bold]{len(valid)}[/bold] categories\n"
            f"Concurrency: {config.concurrency_limit} | "
            f"Retries: {config.max_retries} | "
            f"Recovery passes: {config.recovery_passes}",
            title="Radicación",
        )
    )

    async def _run() -> SubmissionResult:
        async with RadicacionClient(config) as client:
            orchestrator = RadicacionOrchestrator(client, config)
            with UploadProgressTracker(console=console) as tracker:
                return await orchestrator.submit(
                    metadata, valid, on_progress=tracker.update
                )

    try:
        result = asyncio.run(_run())
    except RadicacionError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    _print_summary(result)
    if not result.success:
        raise typer.Exit(code=1)


def _print_summary(result: SubmissionResult) -> None:
    table = Table(title=f"Radicado {result.radicado or '-'}")
    table.add_column("File", style="cyan")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("Error", style="dim")
    for s in result.statuses:
        color = "green" if s.status.value == "done" else "red"
        table.add_row(
            s.original_name,
            s.category,
            f"[{color}]{s.status.value}[/{color}]",
            s.error or "",
        )
    console.print(table)

    style = "green" if result.success else "red"
    console.print(
        Panel(
            f"{result.mensaje}\n"
            f"Server verified: {result.archivos_exitosos}/{result.total_esperados} | "
            f"Local: {result.uploaded_count} uploaded, {result.failed_count} failed",
            title="Result",
            style=style,
        )
    )


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@config_app.command("set-token")
def set_token(
    token: Annotated[
        str,
        typer.Argument(help="Portal access token to store in system keyring"),
    ],
) -> None:
    """Store the portal access token in the system keyring (service: radicacion-portal)."""
    if not token or token.strip() == "":
        console.print("[red]Error:[/red] Token cannot be empty")
        raise typer.Exit(code=1)

    try:
        keyring.set_password(SERVICE_NAME, KEY_NAME, token)
        console.print(
            "[green]✓[/green] Token stored successfully in system keyring "
            f"(service: {SERVICE_NAME})"
        )
    except Exception as e:
        console.print(f"[red]Error:[/red] Failed to store token: {e}")
        raise typer.Exit(code=1)


@config_app.command("get-token")
def show_token() -> None:
    """Display the stored access token (masked)."""
    token = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if not token:
        console.print(
            "[yellow]No token found.[/yellow] "
            "Set it with: [bold]radicacion config set-token YOUR_TOKEN[/bold]"
        )
        raise typer.Exit(code=1)

    if len(token) > 8:
        masked = token[:8] + "*" * (len(token) - 8)
    else:
        masked = token[:2] + "*" * max(1, len(token) - 2)

    console.print(f"[green]Token:[/green] {masked}")
    console.print(f"[dim](stored in service: {SERVICE_NAME})[/dim]")


@config_app.command("remove-token")
def remove_token() -> None:
    """Delete the access token from the system keyring."""
    try:
        keyring.delete_password(SERVICE_NAME, KEY_NAME)
    except PasswordDeleteError:
        console.print("[yellow]No token stored.[/yellow]")
        return
    console.print("[green]✓[/green] Token removed")
