# gradesweep/cli.py

import logging
import sys
from typing import List, Optional

import typer
from tqdm import tqdm

from gradesweep.analysis.expiry import ThresholdError, parse_threshold
from gradesweep.constants import VERSION
from gradesweep.io.console import Console
from gradesweep.io.encoder import ReportFormat, encode
from gradesweep.io.ssllabs import SSLLabsClient, SSLLabsError
from gradesweep.models import AnalyzeParams, RunContext
from gradesweep.scan.runner import HostListError, resolve_hosts, run_all

app = typer.Typer(add_completion=False, help="Command-line client for the SSL Labs API")

LOG = logging.getLogger(__name__)

EMAIL_HELP = "User account email (required by the API)"


class TqdmLoggingHandler(logging.Handler):

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


def setup_logging(debug: bool) -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    root.handlers.clear()
    h = TqdmLoggingHandler()
    h.setFormatter(
        logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s", "%H:%M:%S")
    )
    root.addHandler(h)


def fail(message: str, code: int = 1) -> None:
    typer.secho(message, fg="red", err=True)
    raise typer.Exit(code=code)


def _format_callback(value: Optional[str]) -> Optional[ReportFormat]:
    if value is None:
        return None
    try:
        return ReportFormat.parse(value)
    except ValueError as exc:
        fail(str(exc))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gradesweep {VERSION}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", callback=_version_callback, is_eager=True,
        help="Show version",
    ),
):
    """Command-line client for the SSL Labs API."""


@app.command()
def check(
    hosts: Optional[List[str]] = typer.Argument(None, help="Hosts, or a file with one host per line"),
    *,
    email: Optional[str] = typer.Option(None, "--email", "-e", envvar="SSLLABS_EMAIL", help=EMAIL_HELP),
    format: Optional[str] = typer.Option(
        None, "--format", "-f", callback=_format_callback,
        help="Output result in different formats (text/json/yaml/xml)",
    ),
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show detailed info for each endpoint"),
    ignore_mismatch: bool = typer.Option(
        False, "--ignore-mismatch", "-i", help="Proceed with assessments on certificate mismatch"
    ),
    avoid_cache: bool = typer.Option(False, "--avoid-cache", "-c", help="Disable cache usage"),
    public: bool = typer.Option(False, "--public", "-p", help="Publish results on ssllabs.com"),
    perfect: bool = typer.Option(False, "--perfect", "-P", help="Return non-zero exit code if not A+"),
    max_left: Optional[str] = typer.Option(
        None, "--max-left", "-M", help="Check expiry date (num + d/w/m/y)"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Don't show any output"),
    notify: bool = typer.Option(False, "--notify", "-n", help="Notify when check is done"),
    pager: bool = typer.Option(False, "--pager", "-G", help="Use pager for long output"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colors in output"),
    debug: bool = typer.Option(False, help="Verbose logging"),
):
    """Assess hosts and exit non-zero unless every host passes."""
    setup_logging(debug)

    if not email:
        fail(
            "You must provide an email address to make requests to the API "
            "(--email or SSLLABS_EMAIL environment variable)."
        )

    try:
        threshold = parse_threshold(max_left) if max_left else None
        targets = resolve_hosts(hosts or [])
    except (ThresholdError, HostListError) as exc:
        fail(str(exc))

    LOG.debug("checking %d host(s)", len(targets))

    ctx = RunContext(
        client=SSLLabsClient(email),
        params=AnalyzeParams.from_options(
            public=public, avoid_cache=avoid_cache, ignore_mismatch=ignore_mismatch
        ),
        perfect=perfect,
    )
    if threshold is not None:
        ctx.max_left = threshold

    interactive = not quiet and format is None
    console = Console(color=not no_color, detailed=detailed, pager=pager) if interactive else None

    outcome = run_all(ctx, targets, console=console, progress=format is not None and not quiet)

    if format is not None and not quiet:
        typer.echo(encode(outcome, format), nl=False)

    if notify:
        typer.echo("\a", nl=False)

    raise typer.Exit(code=0 if outcome.all_passed else 1)


@app.command()
def register(
    email: Optional[str] = typer.Option(None, "--email", "-e", envvar="SSLLABS_EMAIL", help=EMAIL_HELP),
    name: str = typer.Option(..., "--name", help="First and last name"),
    org: str = typer.Option(..., "--org", help="Organization"),
):
    """Register a new account for scanning."""
    setup_logging(False)

    if not email:
        fail("You must provide an email address to register an account.")

    if " " not in name.strip():
        fail("Name must contain first and last name")

    first_name, last_name = name.strip().split(" ", 1)

    typer.echo()
    typer.echo(f"  Email:        {email}")
    typer.echo(f"  Organization: {org}")
    typer.echo(f"  First Name:   {first_name}")
    typer.echo(f"  Last Name:    {last_name}")
    typer.echo()

    try:
        message = SSLLabsClient(email).register(first_name, last_name, email, org)
    except SSLLabsError as exc:
        fail(f"Can't register user: {exc}")

    typer.secho(message, fg="green")


if __name__ == "__main__":
    app()
