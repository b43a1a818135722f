from __future__ import annotations

import json
import pathlib
import sys
from typing import Optional

import typer
import structlog
from rich.console import Console

from .config import load_config, ImeiCheckConfig
from .detect.validators import complete_imei, mask_imei
from .engine.verifier import VerificationResult, VerificationStatus, build_verifier

console = Console()
log = structlog.get_logger()
app = typer.Typer(add_completion=False, no_args_is_help=True, help="imeicheck: IMEI verification and device lookup")

_STYLE = {
    VerificationStatus.clean: "green",
    VerificationStatus.blacklisted: "bold red",
    VerificationStatus.fake_tac: "red",
    VerificationStatus.invalid_checksum: "yellow",
    VerificationStatus.invalid_length: "yellow",
    VerificationStatus.error: "magenta",
}


def version_callback(value: bool):
    if value:
        from . import __version__
        console.print(f"imeicheck {__version__}")
        raise typer.Exit()


@app.callback()
def common(
    ctx: typer.Context,
    config: Optional[pathlib.Path] = typer.Option(None, "--config", help="Path to imeicheck.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logs"),
    version: Optional[bool] = typer.Option(None, "--version", callback=version_callback, is_eager=True),
):
    """Global options (config, verbosity)."""
    structlog.configure(
        processors=[structlog.processors.JSONRenderer()],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    ctx.obj = {"config": load_config(config)}
    if verbose:
        log.info("verbose_enabled")


def _print_result(result: VerificationResult) -> None:
    style = _STYLE.get(result.status, "white")
    console.print(f"[{style}]{result.status.value}[/{style}] {result.status_detail}")
    d = result.details
    if d is None:
        return
    if d.manufacturer:
        model = d.model or "model unavailable"
        console.print(f"Device: {d.manufacturer} ({model})")
    if d.warning:
        console.print(f"[red]Warning:[/red] {d.warning}")
    console.print(f"Recommendation: {d.recommendation}")


@app.command()
def check(
    ctx: typer.Context,
    imei: str = typer.Argument(..., help="15-digit IMEI, digits only"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    offline: bool = typer.Option(False, "--offline", help="Skip the Gemini oracle for unknown TACs"),
):
    """Verify an IMEI. Exits 0 only when the device is clean."""
    cfg: ImeiCheckConfig = ctx.obj["config"]
    if offline:
        cfg.oracle.enabled = False
    result = build_verifier(cfg).verify(imei)
    log.info("imei_checked", imei=mask_imei(imei), status=result.status.value)

    if as_json:
        console.print_json(json.dumps(result.as_dict()))
    else:
        _print_result(result)
    if result.status is not VerificationStatus.clean:
        raise typer.Exit(code=1)


@app.command("check-digit")
def check_digit(body: str = typer.Argument(..., help="First 14 digits of an IMEI")):
    """Print the full IMEI with its Luhn check digit appended."""
    try:
        console.print(complete_imei(body))
    except ValueError as e:
        raise typer.BadParameter(str(e))
