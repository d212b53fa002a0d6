"""CLI integration smoke tests."""

from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime
from pathlib import Path

from typer.testing import CliRunner

from passforge import __version__
from passforge.cli import app

runner = CliRunner()


def _write_request(temp_dir: Path, request: dict) -> Path:
    path = temp_dir / "request.json"
    path.write_text(json.dumps(request), encoding="utf-8")
    return path


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_sign_writes_bundle(temp_dir, signing_settings, pass_request, assets_dir):
    request_path = _write_request(temp_dir, pass_request)
    output = temp_dir / "out" / "member.pkpass"

    result = runner.invoke(
        app,
        ["sign", str(request_path), "--assets", str(assets_dir), "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    assert "Signed pass bundle written" in result.stdout
    with zipfile.ZipFile(io.BytesIO(output.read_bytes())) as archive:
        assert archive.namelist() == [
            "pass.json",
            "icon.png",
            "icon@2x.png",
            "logo.png",
            "manifest.json",
            "signature",
        ]
        assert json.loads(archive.read("pass.json"))["serialNumber"] == "SN-0001"


def test_sign_json_output(temp_dir, signing_settings, pass_request):
    request_path = _write_request(temp_dir, pass_request)
    output = temp_dir / "pass.pkpass"

    result = runner.invoke(
        app, ["sign", str(request_path), "--output", str(output), "--json"]
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["schema_id"] == "pass_bundle"
    assert payload["schema_version"] == 1
    assert payload["producer"].startswith("passforge-")
    datetime.fromisoformat(payload["produced_at"])
    assert payload["serial_number"] == "SN-0001"
    assert list(payload["manifest"]) == ["pass.json"]
    assert payload["output_path"] == str(output.resolve())


def test_sign_records_audit_entry(temp_dir, signing_settings, pass_request):
    request_path = _write_request(temp_dir, pass_request)
    runner.invoke(app, ["sign", str(request_path), "--output", str(temp_dir / "a.pkpass")])

    result = runner.invoke(app, ["audit", "show", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["total_entries"] == 1
    assert payload["entries"][0]["operation"] == "pass_sign"
    assert payload["entries"][0]["args"]["serial_number"] == "SN-0001"

    verify = runner.invoke(app, ["audit", "verify"])
    assert verify.exit_code == 0
    assert "Audit ledger is valid" in verify.stdout


def test_sign_without_identity_is_configuration_error(temp_dir, override_settings, pass_request):
    request_path = _write_request(temp_dir, pass_request)

    result = runner.invoke(app, ["sign", str(request_path), "--output", str(temp_dir / "x.pkpass")])

    assert result.exit_code == 2
    assert "No signing identity configured" in result.output
    assert not (temp_dir / "x.pkpass").exists()


def test_sign_rejects_invalid_request(temp_dir, signing_settings, pass_request):
    pass_request.pop("generic")
    request_path = _write_request(temp_dir, pass_request)

    result = runner.invoke(app, ["sign", str(request_path)])

    assert result.exit_code == 1
    assert "Invalid pass request" in result.output


def test_sign_strict_tags(temp_dir, signing_settings, pass_request):
    signing_settings.strict_tags = True
    pass_request["barcodes"][0]["format"] = "PKBarcodeFormatBogus"
    request_path = _write_request(temp_dir, pass_request)

    result = runner.invoke(app, ["sign", str(request_path)])

    assert result.exit_code == 1
    assert "barcode format" in result.output


def test_sign_missing_request_file(temp_dir, signing_settings):
    result = runner.invoke(app, ["sign", str(temp_dir / "absent.json")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_bundle_signs_pass_json_verbatim(temp_dir, signing_settings, assets_dir):
    pass_json = temp_dir / "pass.json"
    raw = b'{"serialNumber":"RAW-1",   "formatVersion":1}\n'
    pass_json.write_bytes(raw)
    output = temp_dir / "raw.pkpass"

    result = runner.invoke(
        app,
        ["bundle", str(pass_json), "--assets", str(assets_dir), "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(io.BytesIO(output.read_bytes())) as archive:
        assert archive.read("pass.json") == raw


def test_bundle_rejects_non_json(temp_dir, signing_settings):
    pass_json = temp_dir / "pass.json"
    pass_json.write_text("not json", encoding="utf-8")

    result = runner.invoke(app, ["bundle", str(pass_json)])
    assert result.exit_code == 1
    assert "not valid JSON" in result.output


def test_verify_and_inspect(temp_dir, signing_settings, pass_request, assets_dir, pki):
    request_path = _write_request(temp_dir, pass_request)
    output = temp_dir / "member.pkpass"
    signed = runner.invoke(
        app,
        ["sign", str(request_path), "--assets", str(assets_dir), "--output", str(output)],
    )
    assert signed.exit_code == 0, signed.output

    result = runner.invoke(app, ["verify", str(output), "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["schema_id"] == "bundle_verification"
    assert payload["valid"] is True
    assert payload["errors"] == []
    assert "manifest.json" in payload["members"]

    inspected = runner.invoke(app, ["inspect", str(output)])
    assert inspected.exit_code == 0, inspected.output
    assert "icon@2x.png" in inspected.stdout
    assert pki.certificate.subject.rfc4514_string() in inspected.stdout


def test_verify_detects_tampered_bundle(temp_dir, signing_settings, pass_request, assets_dir):
    request_path = _write_request(temp_dir, pass_request)
    output = temp_dir / "member.pkpass"
    runner.invoke(
        app,
        ["sign", str(request_path), "--assets", str(assets_dir), "--output", str(output)],
    )

    tampered = temp_dir / "tampered.pkpass"
    with zipfile.ZipFile(output) as source, zipfile.ZipFile(tampered, "w") as target:
        for name in source.namelist():
            data = source.read(name)
            target.writestr(name, b"swapped" if name == "logo.png" else data)

    result = runner.invoke(app, ["verify", str(tampered)])

    assert result.exit_code == 1
    assert "Digest mismatch for 'logo.png'" in result.output


def test_audit_show_empty(override_settings):
    result = runner.invoke(app, ["audit", "show"])
    assert result.exit_code == 0
    assert "No audit ledger entries found" in result.stdout


def test_doctor_reports_missing_identity(override_settings):
    result = runner.invoke(app, ["doctor", "--json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["schema_id"] == "doctor_report"
    checks = {check["name"]: check for check in payload["checks"]}
    assert checks["signing_identity"]["passed"] is False
    assert checks["data_directory"]["passed"] is True


def test_doctor_passes_with_identity(signing_settings):
    result = runner.invoke(app, ["doctor"])

    assert result.exit_code == 0, result.output
    assert "Signing identity: " in result.stdout
    assert "All checks passed" in result.stdout


def test_unusable_audit_ledger_is_configuration_error(temp_dir, signing_settings, pass_request):
    signing_settings.get_audit_path().mkdir(parents=True)
    request_path = _write_request(temp_dir, pass_request)

    result = runner.invoke(app, ["sign", str(request_path), "--output", str(temp_dir / "x.pkpass")])

    assert result.exit_code == 2
    assert "Cannot open audit ledger" in result.output
    assert not (temp_dir / "x.pkpass").exists()
