"""Tests for the command line interface."""

import json

import httpx
import pytest
from typer.testing import CliRunner

from tablestage.cli import app, common
from tablestage.services.http import HttpIngestClient

runner = CliRunner()


class FakeApi:
    """MockTransport handler answering like the ingestion API."""

    def __init__(self):
        self.match = {"dataset": "finance", "table": "orders", "writeMode": "Append"}
        self.catalog_status = 200
        self.upload_status = 200
        self.uploads: list[bytes] = []
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.paths.append(path)
        if path == "/api/datasets":
            if self.catalog_status != 200:
                return httpx.Response(self.catalog_status, text="boom")
            return httpx.Response(
                200,
                json=[{"id": 1, "name": "finance", "tables": [{"id": 10, "name": "orders"}]}],
            )
        if path.startswith("/api/findregex/"):
            if self.match is None:
                return httpx.Response(404, json={"detail": "no match"})
            return httpx.Response(200, json=self.match)
        if path == "/api/detect-schema":
            return httpx.Response(
                200, json={"columns": [{"name": "id", "type": "INTEGER", "isPrimaryKey": True}]}
            )
        if path.startswith("/api/upload/"):
            self.uploads.append(request.content)
            if self.upload_status != 200:
                return httpx.Response(self.upload_status, json={"detail": "disk full"})
            return httpx.Response(200)
        return httpx.Response(404)


@pytest.fixture
def api(monkeypatch) -> FakeApi:
    fake = FakeApi()

    def create_client(settings):
        return HttpIngestClient(
            base_url="http://ingest.test/api", transport=httpx.MockTransport(fake)
        )

    monkeypatch.setattr(common, "create_client", create_client)
    return fake


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "sales_2024.csv"
    path.write_text("id,amount\n1,10\n2,20\n")
    return path


class TestLimits:
    """Tests for the limits command."""

    def test_limits(self):
        result = runner.invoke(app, ["limits"])
        assert result.exit_code == 0
        assert "Up to 10 files, max 300MB each" in result.stdout

    def test_limits_json(self):
        result = runner.invoke(app, ["limits", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"max_files": 10, "max_file_bytes": 300 * 1024 * 1024}


class TestDatasets:
    """Tests for the datasets command."""

    def test_lists_datasets(self, api):
        result = runner.invoke(app, ["datasets"])
        assert result.exit_code == 0
        assert "finance" in result.stdout
        assert "orders" in result.stdout

    def test_json(self, api):
        result = runner.invoke(app, ["datasets", "--json"])
        assert result.exit_code == 0
        (dataset,) = json.loads(result.stdout)
        assert dataset["id"] == "1"
        assert dataset["tables"][0]["name"] == "orders"

    def test_catalog_failure(self, api):
        api.catalog_status = 500
        result = runner.invoke(app, ["datasets"])
        assert result.exit_code == 1
        assert "Failed to load datasets" in result.stdout


class TestDetect:
    """Tests for the detect command."""

    def test_prints_columns(self, api, csv_file):
        result = runner.invoke(app, ["detect", str(csv_file)])
        assert result.exit_code == 0
        assert "INTEGER" in result.stdout

    def test_json(self, api, csv_file):
        result = runner.invoke(app, ["detect", str(csv_file), "--json"])
        assert result.exit_code == 0
        schema = json.loads(result.stdout)
        assert schema["columns"][0]["isPrimaryKey"] is True


class TestUpload:
    """Tests for the upload command."""

    def test_upload_with_guessed_metadata(self, api, csv_file):
        result = runner.invoke(app, ["upload", str(csv_file), "--quiet"])

        assert result.exit_code == 0
        assert "All files uploaded successfully!" in result.stdout
        assert "/api/upload/sales_2024.csv" in api.paths
        assert b'"writeMode": "Append"' in api.uploads[0]

    def test_overrides(self, api, csv_file):
        api.match = None
        result = runner.invoke(
            app,
            [
                "upload",
                str(csv_file),
                "--dataset",
                "finance",
                "--table",
                "orders",
                "--mode",
                "Merge",
                "--quiet",
            ],
        )

        assert result.exit_code == 0
        assert b'"writeMode": "Merge"' in api.uploads[0]

    def test_incomplete_metadata_refused(self, api, csv_file):
        api.match = None
        result = runner.invoke(app, ["upload", str(csv_file), "--quiet"])

        assert result.exit_code == 1
        assert "Please complete dataset and table information" in result.stdout
        assert api.uploads == []

    def test_upload_failure(self, api, csv_file):
        api.upload_status = 500
        result = runner.invoke(app, ["upload", str(csv_file), "--quiet"])

        assert result.exit_code == 1
        assert "Failed to upload: sales_2024.csv" in result.stdout

    def test_detect_schema_attached(self, api, csv_file):
        result = runner.invoke(app, ["upload", str(csv_file), "--detect-schema", "--quiet"])

        assert result.exit_code == 0
        assert b'"isPrimaryKey": true' in api.uploads[0]

    def test_schema_file(self, api, csv_file, tmp_path):
        schema_file = tmp_path / "schema.json"
        schema_file.write_text(json.dumps({"columns": [{"name": "amount", "type": "decimal"}]}))

        result = runner.invoke(app, ["upload", str(csv_file), "--schema", str(schema_file), "-q"])

        assert result.exit_code == 0
        assert b'"type": "DECIMAL"' in api.uploads[0]

    def test_invalid_schema_file(self, api, csv_file, tmp_path):
        schema_file = tmp_path / "schema.json"
        schema_file.write_text(json.dumps({"columns": [{"name": "amount"}]}))

        result = runner.invoke(app, ["upload", str(csv_file), "--schema", str(schema_file)])

        assert result.exit_code == 2
        assert api.uploads == []

    def test_plan_output(self, api, csv_file):
        result = runner.invoke(app, ["upload", str(csv_file)])

        assert result.exit_code == 0
        assert "Up to 10 files, max 300MB each" in result.stdout
        assert "sales_2024.csv" in result.stdout
        assert "finance.orders" in result.stdout
