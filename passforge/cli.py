"""passforge CLI application with Typer."""

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, NoReturn

import click
import typer
from pydantic import ValidationError

from passforge import __version__
from passforge.bootstrap import bootstrap_application
from passforge.config import get_settings, set_settings
from passforge.errors import ConfigurationError, PassforgeError
from passforge.passes import CreatePassRequest
from passforge.pkpass.constants import DEFAULT_BUNDLE_FILENAME, MANIFEST_MEMBER, SIGNATURE_MEMBER
from passforge.utils.log_setup import configure_logging

if TYPE_CHECKING:
    from passforge.app import SignedBundle
    from passforge.bootstrap import ApplicationContainer

app = typer.Typer(
    name="passforge",
    help="Sign and package Apple Wallet passes (.pkpass)",
    add_completion=True,
    no_args_is_help=True,
)
audit_app = typer.Typer(help="Audit ledger management")
app.add_typer(audit_app, name="audit")

EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"passforge version {__version__}")
        raise typer.Exit()


def _fail(message: str, *, code: int = EXIT_FAILURE) -> NoReturn:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _fail_for(exc: PassforgeError) -> NoReturn:
    """Exit with the code matching the error's category."""
    code = EXIT_CONFIGURATION if exc.category == "configuration" else EXIT_FAILURE
    typer.secho(f"Error ({exc.category}): {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code) from exc


def _bootstrap(*, load_identity: bool = True) -> "ApplicationContainer":
    try:
        return bootstrap_application(load_identity=load_identity)
    except ConfigurationError as exc:
        _fail_for(exc)


def _read_input(path: Path, label: str) -> bytes:
    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        _fail(f"{label} not found: {resolved}")
    try:
        return resolved.read_bytes()
    except OSError as exc:
        _fail(f"Cannot read {label} {resolved}: {exc}")


def _load_assets(container: "ApplicationContainer", assets: Path | None) -> dict[str, bytes]:
    loader = container.asset_loader(assets.expanduser().resolve() if assets else None)
    try:
        return loader.load()
    except OSError as exc:
        _fail(f"Cannot load assets from {loader.directory}: {exc}")


def _write_bundle(result: "SignedBundle", output: Path | None) -> Path:
    destination = (output or Path(DEFAULT_BUNDLE_FILENAME)).expanduser().resolve()
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(result.data)
    except OSError as exc:
        _fail(f"Cannot write bundle to {destination}: {exc}")
    return destination


def _report_signed(
    result: "SignedBundle", destination: Path, *, json_output: bool, serial_number: str | None
) -> None:
    if json_output:
        from passforge.utils.cli_output import json_response

        typer.echo(
            json_response(
                "pass_bundle",
                1,
                output_path=str(destination),
                sha256=result.sha256,
                size_bytes=len(result.data),
                serial_number=serial_number,
                manifest=dict(result.manifest),
            )
        )
        return

    typer.secho(f"✓ Signed pass bundle written: {destination}", fg=typer.colors.GREEN)
    typer.echo(f"  Members: {result.member_count}")
    typer.echo(f"  Size: {len(result.data)} bytes")
    typer.echo(f"  SHA-256: {result.sha256}")


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Logging level for passforge messages",
            click_type=click.Choice(LOG_LEVELS, case_sensitive=False),
        ),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Override data directory"),
    ] = None,
) -> None:
    """passforge - Apple Wallet pass signing and packaging."""
    # Update settings with CLI flags
    settings = get_settings()
    if log_level:
        settings.log_level = log_level
    if data_dir:
        settings.data_dir = data_dir
    set_settings(settings)

    try:
        configure_logging(settings.log_level)
    except ValueError as exc:
        _fail(str(exc))


@app.command("sign")
def sign(
    request: Annotated[Path, typer.Argument(help="Pass request JSON (CreatePassRequest)")],
    assets: Annotated[
        Path | None,
        typer.Option("--assets", "-a", help="Directory of pass images (defaults to settings)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Destination .pkpass file"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output result as JSON"),
    ] = False,
) -> None:
    """Build pass.json from a request, sign it and write a .pkpass bundle."""
    raw = _read_input(request, "Request file")

    settings = get_settings()
    try:
        document = CreatePassRequest.model_validate_json(raw).to_pass(
            strict_tags=settings.strict_tags
        )
    except ValidationError as exc:
        _fail(f"Invalid pass request:\n{exc}")
    except ValueError as exc:
        _fail(f"Invalid pass request: {exc}")

    container = _bootstrap()
    member_assets = _load_assets(container, assets)

    try:
        result = container.require_signing_service().sign_pass(document, member_assets)
    except PassforgeError as exc:
        _fail_for(exc)

    destination = _write_bundle(result, output)
    _report_signed(
        result, destination, json_output=json_output, serial_number=document.serial_number
    )


@app.command("bundle")
def bundle(
    pass_json: Annotated[Path, typer.Argument(help="Serialized pass.json, signed verbatim")],
    assets: Annotated[
        Path | None,
        typer.Option("--assets", "-a", help="Directory of pass images (defaults to settings)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Destination .pkpass file"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output result as JSON"),
    ] = False,
) -> None:
    """Sign an existing pass.json byte-for-byte and write a .pkpass bundle."""
    pass_definition = _read_input(pass_json, "pass.json")

    try:
        parsed = json.loads(pass_definition)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        _fail(f"pass.json is not valid JSON: {exc}")
    if not isinstance(parsed, dict):
        _fail("pass.json must contain a JSON object")
    serial_number = parsed.get("serialNumber")

    container = _bootstrap()
    member_assets = _load_assets(container, assets)

    try:
        result = container.require_signing_service().sign_bundle(
            pass_definition,
            member_assets,
            serial_number=str(serial_number) if serial_number is not None else None,
        )
    except PassforgeError as exc:
        _fail_for(exc)

    destination = _write_bundle(result, output)
    _report_signed(
        result,
        destination,
        json_output=json_output,
        serial_number=str(serial_number) if serial_number is not None else None,
    )


@app.command("verify")
def verify(
    bundle_path: Annotated[Path, typer.Argument(help="Path to a .pkpass bundle")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Verify bundle structure, manifest digests and signature.

    Checks the bundle for:
    - Required members (pass.json, manifest.json, signature)
    - Flat member names with no directories
    - Manifest entries matching every other member's SHA-1 digest
    - A detached signature over manifest.json embedding both certificates
    """
    data = _read_input(bundle_path, "Bundle")
    container = _bootstrap(load_identity=False)

    report = container.bundle_verifier.verify(data)

    if json_output:
        from passforge.utils.cli_output import json_response

        typer.echo(
            json_response(
                "bundle_verification",
                1,
                bundle_path=str(bundle_path.expanduser().resolve()),
                error_count=len(report.errors),
                **report.to_dict(),
            )
        )
    else:
        if report.valid:
            typer.secho(f"Bundle verified: {bundle_path}", fg=typer.colors.GREEN)
            if not report.signature_checked:
                typer.secho(
                    "  Signature not checked (openssl unavailable)", fg=typer.colors.YELLOW
                )
        else:
            typer.secho(
                f"Bundle verification failed ({len(report.errors)} errors):",
                fg=typer.colors.RED,
                err=True,
            )
            for error in report.errors:
                typer.echo(f"  - {error}", err=True)

    if not report.valid:
        raise typer.Exit(code=EXIT_FAILURE)


@app.command("inspect")
def inspect_bundle(
    bundle_path: Annotated[Path, typer.Argument(help="Path to a .pkpass bundle")],
) -> None:
    """List bundle members, manifest digests and embedded certificates."""
    from passforge.app.adapters import inspect_signature
    from passforge.pkpass import Manifest

    data = _read_input(bundle_path, "Bundle")
    container = _bootstrap(load_identity=False)

    try:
        members = container.bundle_writer.read_members(data)
    except PassforgeError as exc:
        _fail_for(exc)

    typer.secho(f"📦 {bundle_path}", fg=typer.colors.CYAN, bold=True)
    typer.echo("Members:")
    for name in members:
        typer.echo(f"  {name} ({len(members[name])} bytes)")

    if MANIFEST_MEMBER in members:
        try:
            manifest = Manifest.from_bytes(members[MANIFEST_MEMBER])
        except PassforgeError as exc:
            typer.secho(f"Manifest unreadable: {exc}", fg=typer.colors.RED)
        else:
            typer.echo("Manifest:")
            for name in sorted(manifest):
                typer.echo(f"  {name}: {manifest[name]}")

    if SIGNATURE_MEMBER in members:
        try:
            certificates = inspect_signature(members[SIGNATURE_MEMBER])
        except PassforgeError as exc:
            typer.secho(f"Signature unreadable: {exc}", fg=typer.colors.RED)
        else:
            typer.echo("Certificates:")
            for certificate in certificates:
                typer.echo(f"  {certificate.subject.rfc4514_string()}")
                typer.echo(f"    issuer: {certificate.issuer.rfc4514_string()}")
                typer.echo(f"    not after: {certificate.not_valid_after_utc.isoformat()}")


@audit_app.command("show")
def audit_show(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    tail: Annotated[
        int | None,
        typer.Option("--tail", "-n", help="Show last N entries"),
    ] = None,
) -> None:
    """Show audit ledger entries."""

    container = _bootstrap(load_identity=False)

    if not container.audit_service.is_enabled():
        typer.secho("No audit ledger found", fg=typer.colors.YELLOW)
        return

    entries = container.audit_service.get_entries()

    if not entries:
        typer.secho("No audit ledger entries found", fg=typer.colors.YELLOW)
        return

    if tail:
        entries = entries[-tail:]

    if json_output:
        from passforge.utils.cli_output import json_response

        typer.echo(
            json_response(
                "audit_log",
                1,
                total_entries=len(entries),
                entries=[e.model_dump(mode="json") for e in entries],
            )
        )
    else:
        for entry in entries:
            typer.echo(f"{entry.timestamp} | {entry.operation} | {', '.join(entry.outputs)}")


@audit_app.command("verify")
def audit_verify() -> None:
    """Verify audit ledger integrity."""
    container = _bootstrap(load_identity=False)

    if not container.audit_service.is_enabled():
        typer.secho("No audit ledger found", fg=typer.colors.YELLOW)
        return

    valid, error = container.audit_service.verify()

    if valid:
        typer.secho("Audit ledger is valid", fg=typer.colors.GREEN)
        return

    message = error or "Audit ledger integrity check failed"
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=EXIT_FAILURE)


@app.command("doctor")
def doctor(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Run health checks and report signing readiness.

    Example:
        passforge doctor
        passforge doctor --json
    """
    import platform

    from passforge.config import load_signing_identity

    checks: list[dict[str, str | bool]] = []
    all_passed = True

    def add_check(name: str, passed: bool, message: str, suggestion: str = "") -> None:
        nonlocal all_passed
        if not passed:
            all_passed = False
        checks.append({
            "name": name,
            "passed": passed,
            "message": message,
            "suggestion": suggestion,
        })

    py_version = platform.python_version()
    py_ok = sys.version_info >= (3, 11)
    add_check(
        "python_version",
        py_ok,
        f"Python {py_version}",
        "passforge requires Python 3.11+" if not py_ok else "",
    )

    settings = get_settings()

    try:
        data_dir = settings.get_data_dir()
        add_check("data_directory", data_dir.is_dir(), f"Data directory: {data_dir}")
    except OSError as exc:
        add_check(
            "data_directory",
            False,
            f"Failed to resolve data directory: {exc}",
            "Pass --data-dir or set PASSFORGE_DATA_DIR",
        )

    try:
        identity = load_signing_identity(settings)
    except ConfigurationError as exc:
        add_check(
            "signing_identity",
            False,
            f"Signing identity unavailable: {exc}",
            "Set PASSFORGE_SECRETS_PATH or the certificate and key paths",
        )
    else:
        expires = identity.certificate.not_valid_after_utc.date().isoformat()
        add_check(
            "signing_identity",
            True,
            f"Signing identity: {identity.subject} (expires {expires})",
        )

    if settings.assets_dir is None:
        add_check("assets_directory", True, "No default assets directory configured")
    else:
        add_check(
            "assets_directory",
            settings.assets_dir.is_dir(),
            f"Assets directory: {settings.assets_dir}",
            f"Create it: mkdir -p {settings.assets_dir}",
        )

    try:
        container = bootstrap_application(settings, load_identity=False)
    except ConfigurationError as exc:
        add_check("configuration", False, f"Configuration invalid: {exc}")
    else:
        if container.signature_verifier.available():
            add_check("openssl", True, f"openssl found ({settings.openssl_binary})")
        else:
            add_check(
                "openssl",
                True,  # Optional; verify skips the signature check without it
                "openssl not installed (signature checks skipped by verify)",
                "Install OpenSSL to enable signature verification",
            )

        if container.audit_service.is_enabled():
            valid, error = container.audit_service.verify()
            if valid:
                add_check("audit_ledger", True, f"Audit ledger: {settings.get_audit_path()}")
            else:
                add_check(
                    "audit_ledger",
                    False,
                    f"Audit ledger integrity failed: {error}",
                    "Investigate and archive the tampered ledger",
                )
        else:
            add_check("audit_ledger", True, "Audit ledger disabled")

    if json_output:
        from passforge.utils.cli_output import json_response

        typer.echo(
            json_response(
                "doctor_report",
                1,
                all_passed=all_passed,
                checks=checks,
            )
        )
    else:
        typer.echo()
        typer.secho("🩺 passforge doctor", fg=typer.colors.CYAN, bold=True)
        typer.secho("=" * 40, fg=typer.colors.CYAN)
        typer.echo()

        for check in checks:
            icon = "✓" if check["passed"] else "✗"
            color = typer.colors.GREEN if check["passed"] else typer.colors.RED
            typer.secho(f"  {icon} {check['message']}", fg=color)
            if check.get("suggestion") and not check["passed"]:
                typer.secho(f"    → {check['suggestion']}", fg=typer.colors.YELLOW)

        typer.echo()
        if all_passed:
            typer.secho("All checks passed! ✓", fg=typer.colors.GREEN, bold=True)

    if not all_passed:
        raise typer.Exit(code=EXIT_FAILURE)


if __name__ == "__main__":
    app()
