"""Tests for the bujo CLI."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from bujo.cli import main
from bujo.config import Config
from bujo.ports.journal_gateway import NetworkFailure


@pytest.fixture
def server(gateway):
    """March 2024 with a task on the 2nd."""
    gateway.routes[("GET", "months/2024/2")] = {"_id": "m3", "days": ["d2"], "mood": []}
    gateway.routes[("GET", "days/d2")] = {
        "_id": "d2",
        "day": 2,
        "bullet_points": [
            {"_id": "b1", "value": "call mom", "bullet_type": "TASK", "indent": 0, "checked": False},
            {"_id": "b2", "value": "party", "bullet_type": "EVENT", "indent": 1, "checked": False},
        ],
    }
    return gateway


@pytest.fixture
def cli(server):
    runner = CliRunner()

    def invoke(*args):
        with patch("bujo.cli.HttpJournalGateway", return_value=server), patch(
            "bujo.cli.load_config", return_value=Config()
        ):
            return runner.invoke(main, list(args))

    return invoke


class TestShow:
    def test_text_output(self, cli):
        result = cli("show", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert "# March 2024" in result.output
        assert "02.03.2024 Sat" in result.output
        assert "[ ] call mom" in result.output
        assert "*   party" not in result.output
        assert "  * party" in result.output

    def test_json_output(self, cli):
        result = cli("show", "-m", "3", "-y", "2024", "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["month"] == 3
        assert data["days"][0]["day"] == 2
        assert [b["kind"] for b in data["days"][0]["bullet_points"]] == ["TASK", "EVENT"]
        assert len(data["mood"]) == 31

    def test_unreachable_server(self, cli, server):
        server.routes[("GET", "months/2024/2")] = NetworkFailure("GET", "months/2024/2", "connection refused")

        result = cli("show", "-m", "3", "-y", "2024")

        assert result.exit_code == 1
        assert "connection refused" in result.output


class TestEdits:
    def test_add_bullet_with_type_prefix(self, cli, server):
        server.issue_ids("POST", "days/d2")

        result = cli("add", "#buy stamps", "-d", "2", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert server.called("POST", "days/d2") == [
            {"value": "buy stamps", "bullet_type": "TASK", "checked": False, "indent": 0}
        ]

    def test_add_creates_missing_day(self, cli, server):
        server.routes[("POST", "months/m3")] = {"_id": "d9", "day": 9}
        server.issue_ids("POST", "days/d9")

        result = cli("add", "dentist", "-d", "9", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert server.called("POST", "months/m3") == [{"day": 9}]
        assert len(server.called("POST", "days/d9")) == 1

    def test_check_toggles_task(self, cli, server):
        result = cli("check", "2", "1", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert server.called("POST", "days/d2/b1")[0]["checked"] is True

    def test_check_rejects_non_task(self, cli):
        result = cli("check", "2", "2", "-m", "3", "-y", "2024")

        assert result.exit_code == 1
        assert "not a task" in result.output

    def test_indent_and_outdent(self, cli, server):
        cli("indent", "2", "2", "-m", "3", "-y", "2024")
        cli("indent", "2", "2", "--out", "-m", "3", "-y", "2024")

        assert [body["indent"] for body in server.called("POST", "days/d2/b2")] == [2, 0]

    def test_edit_reclassifies(self, cli, server):
        result = cli("edit", "-m", "3", "-y", "2024", "--", "2", "2", "-party moved")

        assert result.exit_code == 0, result.output
        assert server.called("POST", "days/d2/b2") == [
            {"value": "party moved", "bullet_type": "NOTE", "checked": False, "indent": 1}
        ]

    def test_delete(self, cli, server):
        result = cli("delete", "2", "1", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert server.called("DELETE", "days/d2") == [{"id": "b1"}]

    def test_missing_bullet_number(self, cli):
        result = cli("delete", "2", "5", "-m", "3", "-y", "2024")

        assert result.exit_code == 1
        assert "has no bullet 5" in result.output


class TestDaysAndMood:
    def test_add_day_validates_input(self, cli, server):
        result = cli("add-day", "abc", "-m", "3", "-y", "2024")

        assert result.exit_code == 1
        assert "Please enter a valid number" in result.output
        assert server.calls == []

    def test_add_day(self, cli, server):
        server.routes[("POST", "months/m3")] = {"_id": "d20", "day": 20}

        result = cli("add-day", "20", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert "20.03.2024 Wed" in result.output

    def test_add_day_refused_when_a_day_failed_to_load(self, cli, server):
        server.routes[("GET", "days/d2")] = NetworkFailure("GET", "days/d2", "timeout")

        result = cli("add-day", "20", "-m", "3", "-y", "2024")

        assert result.exit_code == 1
        assert "Error: Some days could not be loaded" in result.output
        assert server.called("POST", "months/m3") == []

    def test_mood_cycles_when_no_value(self, cli, server):
        result = cli("mood", "5", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert "good / joyful" in result.output
        assert server.called("POST", "months/mood/m3") == [{"day": 4, "mood": 1}]

    def test_mood_explicit_value(self, cli, server):
        result = cli("mood", "5", "3", "-m", "3", "-y", "2024")

        assert result.exit_code == 0, result.output
        assert server.called("POST", "months/mood/m3") == [{"day": 4, "mood": 3}]

    def test_mood_day_out_of_range(self, cli):
        result = cli("mood", "40", "1", "-m", "3", "-y", "2024")

        assert result.exit_code == 1
        assert "only has 31 days" in result.output


def test_config_command():
    runner = CliRunner()
    with patch("bujo.cli.load_config", return_value=Config(api_base_url="http://x/api/")):
        result = runner.invoke(main, ["config"])

    assert result.exit_code == 0
    assert "http://x/api/" in result.output
    assert "unbounded" in result.output
