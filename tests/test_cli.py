"""Tests for the homeconfig CLI."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from homeconfig.cli import cli
from homeconfig.common.signing import generate_signature

TEST_API_KEY = "test-api-key"
TEST_SIGNING_SECRET = "test-signature-secret"


@pytest.fixture
def runner(monkeypatch) -> CliRunner:
    monkeypatch.setenv("HOMECONFIG_SERVICE_API_KEY", TEST_API_KEY)
    monkeypatch.setenv("HOMECONFIG_SIGNATURE_SECRET", TEST_SIGNING_SECRET)
    return CliRunner()


class TestSign:
    def test_sign_as_json(self, runner):
        result = runner.invoke(
            cli,
            [
                "--user-id", "user-1",
                "sign", "-m", "post", "-p", "/api/configurations/",
                "-b", '{"data": {"a": 1}}',
                "--as-json",
            ],
            obj={},
        )

        assert result.exit_code == 0, result.output
        headers = json.loads(result.output)
        assert headers["X-API-Key"] == TEST_API_KEY
        assert headers["X-User-Id"] == "user-1"
        assert headers["X-Signature"] == generate_signature(
            TEST_SIGNING_SECRET,
            "POST",
            "/api/configurations",
            '{"data":{"a":1}}',
            headers["X-Timestamp"],
        )

    def test_sign_requires_user_id(self, runner):
        result = runner.invoke(cli, ["sign", "-p", "/api/configurations"], obj={})

        assert result.exit_code == 1
        assert "--user-id is required" in result.output

    def test_sign_rejects_bad_body(self, runner):
        result = runner.invoke(
            cli,
            ["--user-id", "user-1", "sign", "-p", "/api/configurations", "-b", "{oops"],
            obj={},
        )

        assert result.exit_code == 1
        assert "Body is not valid JSON" in result.output

    def test_sign_without_credentials(self):
        result = CliRunner().invoke(
            cli, ["--user-id", "user-1", "sign", "-p", "/api/configurations"], obj={}
        )

        assert result.exit_code == 1
        assert "HOMECONFIG_SERVICE_API_KEY" in result.output


class TestConfigCommands:
    def test_import_invalid_file(self, runner, tmp_path, sample_config):
        sample_config["cta"]["url"] = "not a url"
        path = tmp_path / "home.json"
        path.write_text(json.dumps({"data": sample_config}), encoding="utf-8")

        result = runner.invoke(cli, ["--user-id", "user-1", "import", "-f", str(path)], obj={})

        assert result.exit_code == 1
        assert "CTA URL has invalid format" in result.output

    def test_import_creates_config(self, runner, tmp_path, sample_config):
        path = tmp_path / "home.json"
        path.write_text(json.dumps(sample_config), encoding="utf-8")

        with patch(
            "homeconfig.cli.ConfigServiceClient.create_config",
            new_callable=AsyncMock,
            return_value={"id": "cfg-1"},
        ) as mock_create:
            result = runner.invoke(cli, ["--user-id", "user-1", "import", "-f", str(path)], obj={})

        assert result.exit_code == 0, result.output
        assert "cfg-1" in result.output
        mock_create.assert_awaited_once_with("user-1", sample_config)

    def test_export_to_file(self, runner, tmp_path, sample_config):
        output = tmp_path / "out.json"

        with patch(
            "homeconfig.cli.ConfigServiceClient.get_config",
            new_callable=AsyncMock,
            return_value={"id": "cfg-1", "schemaVersion": 1, "data": sample_config},
        ):
            result = runner.invoke(
                cli,
                ["--user-id", "user-1", "export", "--id", "cfg-1", "-o", str(output)],
                obj={},
            )

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text(encoding="utf-8")) == {
            "schemaVersion": 1,
            "data": sample_config,
        }

    def test_delete_missing(self, runner):
        with patch(
            "homeconfig.cli.ConfigServiceClient.delete_config",
            new_callable=AsyncMock,
            return_value=False,
        ):
            result = runner.invoke(cli, ["--user-id", "user-1", "delete", "--id", "nope"], obj={})

        assert result.exit_code == 1
        assert "not found" in result.output
