"""
Tests for the SAGE CLI.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from sage.cli import cli
from sage.errors import ProviderQueryError
from sage.repository import EventRepository, JsonEventCollection, UserEventCache

from conftest import FakeCredentialStore, FakeProvider


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("sage.cli.setup_logging"):
        yield


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "google:\n"
        "  calendar_id: cal@group.calendar.google.com\n"
        f"  token_path: {tmp_path / 'token.json'}\n"
        "storage:\n"
        f"  events_path: {tmp_path / 'events.json'}\n"
    )
    return str(path)


@pytest.fixture
def services(tmp_path, week_of_events):
    return {
        "credentials": FakeCredentialStore(),
        "provider": FakeProvider(week_of_events),
        "repository": EventRepository(JsonEventCollection(tmp_path / "events.json")),
        "cache": UserEventCache(),
    }


class TestEventsCommand:
    """Tests for `sage events`."""

    def test_json_output(self, runner, config_path, services):
        with patch("sage.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["--config", config_path, "--json", "events", "--classname", "cisc123"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["fetched"] == 7
        assert data["stored"] == 7
        assert [e["eventId"] for e in data["events"]] == ["evt1", "evt3"]
        assert data["events"][1]["locationType"] == "V"

    def test_table_output(self, runner, config_path, services):
        with patch("sage.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["--config", config_path, "events", "--dayofweek", "friday"])

        assert result.exit_code == 0, result.output
        assert "Upcoming Events" in result.output
        assert "Fetched 7, stored 7, showing 1." in result.output

    def test_no_matches(self, runner, config_path, services):
        with patch("sage.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["--config", config_path, "events", "--classname", "cisc999"])

        assert result.exit_code == 0
        assert "No events found matching the specified filters." in result.output

    def test_invalid_option(self, runner, config_path, services):
        with patch("sage.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["--config", config_path, "events", "--eventdate", "december 32"])

        assert result.exit_code == 2
        assert "Invalid date format" in result.output
        assert services["provider"].calls == []

    def test_provider_failure(self, runner, config_path, services):
        services["provider"] = FakeProvider(error=ProviderQueryError("503"))
        with patch("sage.cli.build_services", return_value=services):
            result = runner.invoke(cli, ["--config", config_path, "events"])

        assert result.exit_code == 1
        assert "Failed to retrieve calendar events" in result.output

    def test_missing_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "events"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestAuthCommand:
    """Tests for `sage auth`."""

    def test_authorize(self, runner, config_path, tmp_path):
        with patch("sage.credentials.CredentialStore.authorize", new_callable=AsyncMock):
            result = runner.invoke(cli, ["--config", config_path, "--json", "auth"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["authorized"] is True
        assert data["existing"] is False
        assert data["token_path"] == str(tmp_path / "token.json")
