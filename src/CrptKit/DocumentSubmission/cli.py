# === NAVMAP v1 ===
# {
#   "module": "CrptKit.DocumentSubmission.cli",
#   "purpose": "Typer CLI for preparing and submitting documents.",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "prepare", "name": "prepare", "anchor": "function-prepare", "kind": "function"},
#     {"id": "submit", "name": "submit", "anchor": "function-submit", "kind": "function"},
#     {"id": "settings-cmd", "name": "settings_cmd", "anchor": "function-settings-cmd", "kind": "function"},
#     {"id": "version-cmd", "name": "version_cmd", "anchor": "function-version-cmd", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Typer CLI for preparing and submitting documents.

Provides:
- Global options (-v/-vv, --version)
- ``prepare``: validate a document and print its envelope (no network)
- ``submit``: send a document and print the tracking id
- ``settings``: show the effective configuration
- ``version``

Exit codes: 0 success; 1 submission failure (network error, API rejection,
unreadable success response); 2 invalid input or configuration.

Example:
    $ crpt-submit prepare doc.json --signature-file doc.sig --product-group shoes
    $ CRPT_TOKEN=... crpt-submit submit doc.json --signature-file doc.sig -g shoes
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from CrptKit.DocumentSubmission import __version__
from CrptKit.DocumentSubmission.auth import StaticTokenProvider
from CrptKit.DocumentSubmission.client import SubmissionClient
from CrptKit.DocumentSubmission.encoding import JsonEncoder
from CrptKit.DocumentSubmission.errors import (
    ConfigurationError,
    EncodingError,
    ResponseFormatError,
    SubmissionError,
    ValidationError,
)
from CrptKit.DocumentSubmission.logging_config import setup_logging
from CrptKit.DocumentSubmission.models import ProductGroup, RawDocument, load_document
from CrptKit.DocumentSubmission.preparation import DocumentPreparer
from CrptKit.DocumentSubmission.settings import SubmissionSettings

EXIT_SUBMISSION_FAILED = 1
EXIT_INVALID_INPUT = 2

_console = Console()
_err_console = Console(stderr=True)


class CliContext:
    """Per-invocation state: verbosity and lazily loaded settings."""

    def __init__(self, verbosity: int = 0):
        self.verbosity = verbosity
        self.console = _console
        self._settings: Optional[SubmissionSettings] = None

    @property
    def settings(self) -> SubmissionSettings:
        if self._settings is None:
            self._settings = SubmissionSettings.load()
        return self._settings

    def log_debug(self, message: str) -> None:
        """Log debug message if verbosity >= 2."""
        if self.verbosity >= 2:
            _err_console.print(f"[dim]DEBUG: {message}[/dim]")


app = typer.Typer(
    name="crpt-submit",
    help="Prepare and submit documents to the CRPT marking API",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """Get the current CLI context.

    Raises:
        RuntimeError: If context hasn't been initialized
    """
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _fail(message: str, code: int) -> typer.Exit:
    _err_console.print(f"[red]✗ {message}[/red]")
    return typer.Exit(code)


def _read_document(path: Path) -> RawDocument:
    try:
        payload = JsonEncoder().decode(path.read_bytes())
    except OSError as exc:
        raise ValidationError(f"Cannot read document {path}: {exc}") from exc
    return load_document(payload)


def _read_signature(signature: Optional[str], signature_file: Optional[Path]) -> str:
    if signature is not None and signature_file is not None:
        raise ValidationError("Use either --signature or --signature-file, not both")
    if signature_file is not None:
        try:
            return signature_file.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ValidationError(f"Cannot read signature {signature_file}: {exc}") from exc
    if signature is None:
        raise ValidationError("A signature is required (--signature or --signature-file)")
    return signature


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"crpt-submit {__version__}")
        raise typer.Exit(0)


def _build_client(settings: SubmissionSettings, token: Optional[str]) -> SubmissionClient:
    provider = StaticTokenProvider(token) if token else None
    return SubmissionClient.from_settings(settings, token_provider=provider)


@app.callback(invoke_without_command=False)
def main(
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """CRPT document submission CLI."""
    global _context

    _context = CliContext(verbosity=verbosity)
    _context.log_debug(f"Verbosity: {verbosity}")


@app.command()
def prepare(
    document: Path = typer.Argument(..., help="Path to the document JSON"),
    product_group: ProductGroup = typer.Option(
        ..., "--product-group", "-g", case_sensitive=False, help="Product group of the document"
    ),
    signature: Optional[str] = typer.Option(None, "--signature", "-s", help="Detached signature"),
    signature_file: Optional[Path] = typer.Option(
        None, "--signature-file", help="File holding the detached signature"
    ),
) -> None:
    """Validate a document and print the envelope that would be sent.

    Example:
        $ crpt-submit prepare doc.json -s SIGNATURE -g milk
    """
    ctx = get_context()
    try:
        raw = _read_document(document)
        envelope = DocumentPreparer().prepare(
            raw, _read_signature(signature, signature_file), product_group
        )
    except (ValidationError, EncodingError) as exc:
        raise _fail(str(exc), EXIT_INVALID_INPUT)
    ctx.log_debug(f"Prepared {len(raw.products)} product(s)")
    typer.echo(json.dumps(envelope.model_dump(), indent=2))


@app.command()
def submit(
    document: Path = typer.Argument(..., help="Path to the document JSON"),
    product_group: ProductGroup = typer.Option(
        ..., "--product-group", "-g", case_sensitive=False, help="Product group of the document"
    ),
    signature: Optional[str] = typer.Option(None, "--signature", "-s", help="Detached signature"),
    signature_file: Optional[Path] = typer.Option(
        None, "--signature-file", help="File holding the detached signature"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="CRPT_TOKEN", help="Bearer token (defaults to $CRPT_TOKEN)"
    ),
) -> None:
    """Submit a document and print the tracking id returned by the API.

    Example:
        $ CRPT_TOKEN=... crpt-submit submit doc.json --signature-file doc.sig -g tobacco
    """
    ctx = get_context()
    try:
        settings = ctx.settings
        if ctx.verbosity:
            level = "DEBUG" if ctx.verbosity > 1 else "INFO"
            setup_logging(settings.logging.model_copy(update={"level": level}))
        raw = _read_document(document)
        sig = _read_signature(signature, signature_file)
        with _build_client(settings, token) as client:
            tracking_id = client.submit(raw, sig, product_group)
    except ResponseFormatError as exc:
        raise _fail(f"{type(exc).__name__}: {exc}", EXIT_SUBMISSION_FAILED)
    except (ValidationError, EncodingError, ConfigurationError) as exc:
        raise _fail(str(exc), EXIT_INVALID_INPUT)
    except SubmissionError as exc:
        raise _fail(f"{type(exc).__name__}: {exc}", EXIT_SUBMISSION_FAILED)
    typer.echo(tracking_id)


@app.command("settings")
def settings_cmd() -> None:
    """Show the effective settings as JSON (token masked)."""
    ctx = get_context()
    try:
        settings = ctx.settings
    except ConfigurationError as exc:
        raise _fail(str(exc), EXIT_INVALID_INPUT)
    data = settings.model_dump(mode="json")
    data["time_unit"] = settings.time_unit.name
    if settings.token is not None:
        data["token"] = "***masked***"
    data["config_hash"] = settings.config_hash()
    typer.echo(json.dumps(data, indent=2, sort_keys=True))


@app.command("version")
def version_cmd() -> None:
    """Show version information."""
    ctx = get_context()
    ctx.console.print(f"[bold]crpt-submit[/bold] version {__version__}")


__all__ = ["app", "CliContext", "get_context", "main"]
