"""Tests for the crpt-submit Typer CLI."""

import base64
import json

import pytest
from typer.testing import CliRunner

from CrptKit.DocumentSubmission import __version__, cli
from CrptKit.DocumentSubmission.client import SubmissionClient
from CrptKit.DocumentSubmission.errors import NetworkError

runner = CliRunner()


@pytest.fixture
def document_file(tmp_path, sample_document):
    path = tmp_path / "doc.json"
    path.write_text(
        json.dumps(sample_document.model_dump(mode="json", by_alias=True)), encoding="utf-8"
    )
    return path


@pytest.fixture
def invalid_document_file(tmp_path, invalid_document):
    path = tmp_path / "bad.json"
    path.write_text(
        json.dumps(invalid_document.model_dump(mode="json", by_alias=True)), encoding="utf-8"
    )
    return path


@pytest.fixture
def patch_client(monkeypatch):
    """Route ``submit`` through a client whose transport is the given double."""

    def _install(transport):
        def _build(settings, token):
            return SubmissionClient.from_settings(
                settings, token_provider=lambda: token or "cli-token", transport=transport
            )

        monkeypatch.setattr(cli, "_build_client", _build)
        return transport

    return _install


class TestGlobalOptions:
    def test_version_flag(self):
        result = runner.invoke(cli.app, ["--version"])
        assert result.exit_code == 0
        assert f"crpt-submit {__version__}" in result.stdout

    def test_version_flag_wins_over_subcommand(self):
        result = runner.invoke(cli.app, ["--version", "settings"])
        assert result.exit_code == 0
        assert result.stdout.strip() == f"crpt-submit {__version__}"

    def test_version_command(self):
        result = runner.invoke(cli.app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestPrepare:
    def test_prints_envelope(self, document_file):
        result = runner.invoke(
            cli.app, ["prepare", str(document_file), "-g", "shoes", "-s", "SIG"]
        )
        assert result.exit_code == 0, result.output
        envelope = json.loads(result.stdout)
        assert envelope["product_group"] == "shoes"
        assert envelope["document_format"] == "MANUAL"
        assert envelope["type"] == "LP_INTRODUCE_GOODS"
        assert envelope["signature"] == "SIG"
        assert json.loads(base64.b64decode(envelope["product_document"]))["doc_id"] == "doc-1"

    def test_signature_from_file(self, tmp_path, document_file):
        sig = tmp_path / "doc.sig"
        sig.write_text("FILE-SIG\n", encoding="utf-8")
        result = runner.invoke(
            cli.app, ["prepare", str(document_file), "-g", "MILK", "--signature-file", str(sig)]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["signature"] == "FILE-SIG"

    def test_invalid_document_exits_2(self, invalid_document_file):
        result = runner.invoke(
            cli.app, ["prepare", str(invalid_document_file), "-g", "milk", "-s", "S"]
        )
        assert result.exit_code == cli.EXIT_INVALID_INPUT

    def test_malformed_json_exits_2(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        result = runner.invoke(cli.app, ["prepare", str(path), "-g", "milk", "-s", "S"])
        assert result.exit_code == cli.EXIT_INVALID_INPUT

    def test_missing_signature_exits_2(self, document_file):
        result = runner.invoke(cli.app, ["prepare", str(document_file), "-g", "milk"])
        assert result.exit_code == cli.EXIT_INVALID_INPUT

    def test_unknown_product_group_is_usage_error(self, document_file):
        result = runner.invoke(cli.app, ["prepare", str(document_file), "-g", "cheese", "-s", "S"])
        assert result.exit_code != 0


class TestSubmit:
    def test_prints_tracking_id(self, document_file, patch_client, make_transport):
        transport = patch_client(make_transport(status_code=201, text='{"value":"track-9"}'))
        result = runner.invoke(
            cli.app,
            ["submit", str(document_file), "-g", "tobacco", "-s", "SIG", "--token", "tok"],
        )
        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "track-9"
        [call] = transport.calls
        assert call["params"] == {"pg": "tobacco"}
        assert call["headers"]["Authorization"] == "Bearer tok"

    def test_token_from_environment(self, monkeypatch, document_file, patch_client, make_transport):
        monkeypatch.setenv("CRPT_TOKEN", "env-token")
        transport = patch_client(make_transport())
        result = runner.invoke(cli.app, ["submit", str(document_file), "-g", "milk", "-s", "S"])
        assert result.exit_code == 0, result.output
        assert transport.calls[0]["headers"]["Authorization"] == "Bearer env-token"

    def test_rejection_exits_1(self, document_file, patch_client, make_transport):
        patch_client(make_transport(status_code=500, text="server error"))
        result = runner.invoke(cli.app, ["submit", str(document_file), "-g", "milk", "-s", "S"])
        assert result.exit_code == cli.EXIT_SUBMISSION_FAILED

    def test_network_failure_exits_1(self, document_file, patch_client, make_transport):
        patch_client(make_transport(error=NetworkError("connection refused")))
        result = runner.invoke(cli.app, ["submit", str(document_file), "-g", "milk", "-s", "S"])
        assert result.exit_code == cli.EXIT_SUBMISSION_FAILED

    def test_success_without_tracking_id_exits_1(self, document_file, patch_client, make_transport):
        transport = patch_client(make_transport(status_code=200, text='{"other":"x"}'))
        result = runner.invoke(cli.app, ["submit", str(document_file), "-g", "milk", "-s", "S"])
        assert result.exit_code == cli.EXIT_SUBMISSION_FAILED
        assert len(transport.calls) == 1

    def test_invalid_document_never_reaches_transport(
        self, invalid_document_file, patch_client, make_transport
    ):
        transport = patch_client(make_transport())
        result = runner.invoke(
            cli.app, ["submit", str(invalid_document_file), "-g", "milk", "-s", "S"]
        )
        assert result.exit_code == cli.EXIT_INVALID_INPUT
        assert transport.calls == []

    def test_bad_configuration_exits_2(self, monkeypatch, document_file, patch_client, make_transport):
        monkeypatch.setenv("CRPT_REQUEST_LIMIT", "0")
        transport = patch_client(make_transport())
        result = runner.invoke(cli.app, ["submit", str(document_file), "-g", "milk", "-s", "S"])
        assert result.exit_code == cli.EXIT_INVALID_INPUT
        assert transport.calls == []


class TestSettingsCommand:
    def test_shows_effective_settings(self, monkeypatch):
        monkeypatch.setenv("CRPT_REQUEST_LIMIT", "5")
        monkeypatch.setenv("CRPT_TIME_UNIT", "minutes")
        monkeypatch.setenv("CRPT_TOKEN", "very-secret")
        result = runner.invoke(cli.app, ["settings"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["request_limit"] == 5
        assert data["time_unit"] == "MINUTES"
        assert data["token"] == "***masked***"
        assert "very-secret" not in result.stdout
        assert len(data["config_hash"]) == 64
