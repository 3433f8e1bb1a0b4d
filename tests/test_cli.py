"""
Command-line entry points
"""
import json
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from gradesweep.cli import app
from gradesweep.io.ssllabs import APIError

from conftest import FakeClient, ready, rejected

runner = CliRunner()

NO_ENV = {"SSLLABS_EMAIL": None}


@pytest.fixture
def fake_client():
    with patch("gradesweep.cli.SSLLabsClient") as cls:
        def install(plans):
            client = FakeClient(plans)
            cls.return_value = client
            return client

        install.cls = cls
        yield install


def check(*args):
    return runner.invoke(app, ["check", "-e", "ops@example.com", *args], env=NO_ENV)


class TestCheck:

    def test_mixed_grades_exit_1(self, fake_client):
        fake_client({"a.example": ready("a.example", ["A", "B"])})

        result = check("-f", "json", "a.example")

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data[0]["lowestGrade"] == "B"
        assert data[0]["highestGrade"] == "A"

    def test_perfect_pass_exit_0(self, fake_client):
        fake_client({"b.example": ready("b.example", ["A+"])})

        result = check("-P", "-q", "b.example")

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_host_file(self, fake_client, tmp_path):
        client = fake_client({"c.example": ready("c.example", ["A"])})
        hosts = tmp_path / "hosts.txt"
        hosts.write_text("\n\nc.example\n")

        result = check("-f", "text", str(hosts))

        assert result.exit_code == 0
        assert result.stdout == "c.example A\n"
        assert [h for h, _ in client.submitted] == ["c.example"]

    def test_failed_submission_keeps_order(self, fake_client):
        fake_client(
            {
                "one.example": ready("one.example", ["A"]),
                "two.example": rejected(),
                "three.example": ready("three.example", ["A"]),
            }
        )

        result = check("-f", "yaml", "one.example", "two.example", "three.example")

        assert result.exit_code == 1
        doc = yaml.safe_load(result.stdout)
        assert [h["host"] for h in doc["hosts"]] == ["one.example", "two.example", "three.example"]
        assert doc["hosts"][1]["lowestGrade"] == "T"

    def test_interactive_output(self, fake_client):
        client = fake_client({"a.example": ready("a.example", ["A+"])})

        result = check("--no-color", "a.example")

        assert result.exit_code == 0
        assert "Be nice." in result.stdout
        assert "a.example → A+" in result.stdout
        assert client.info_calls == 1

    def test_quiet_with_format_prints_nothing(self, fake_client):
        fake_client({"a.example": ready("a.example", ["A"])})

        result = check("-q", "-f", "json", "a.example")

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_options_reach_client(self, fake_client):
        client = fake_client({"a.example": ready("a.example", ["A"])})

        check("-q", "-c", "-p", "-i", "a.example")

        params = client.submitted[0][1]
        assert params.start_new and not params.from_cache
        assert params.public and params.ignore_mismatch
        fake_client.cls.assert_called_once_with("ops@example.com")

    def test_notify_rings_bell(self, fake_client):
        fake_client({"a.example": ready("a.example", ["A"])})
        result = check("-q", "-n", "a.example")
        assert result.stdout == "\a"


class TestInputErrors:

    def test_unknown_format(self, fake_client):
        client = fake_client({})
        result = check("-f", "csv", "a.example")
        assert result.exit_code == 1
        assert client.submitted == []
        fake_client.cls.assert_not_called()

    def test_no_hosts(self, fake_client):
        client = fake_client({})
        result = check()
        assert result.exit_code == 1
        assert client.submitted == []
        fake_client.cls.assert_not_called()

    def test_bad_max_left(self, fake_client):
        client = fake_client({})
        result = check("-M", "soon", "a.example")
        assert result.exit_code == 1
        assert client.submitted == []
        assert client.info_calls == 0

    def test_empty_host_file(self, fake_client, tmp_path):
        client = fake_client({})
        hosts = tmp_path / "hosts.txt"
        hosts.write_text("\n\n")

        result = check(str(hosts))

        assert result.exit_code == 1
        assert client.submitted == []

    def test_missing_email(self, fake_client):
        fake_client({})
        result = runner.invoke(app, ["check", "a.example"], env=NO_ENV)
        assert result.exit_code == 1

    def test_email_from_environment(self, fake_client):
        fake_client({"a.example": ready("a.example", ["A"])})
        result = runner.invoke(app, ["check", "-q", "a.example"], env={"SSLLABS_EMAIL": "env@example.com"})
        assert result.exit_code == 0
        fake_client.cls.assert_called_once_with("env@example.com")


class TestRegister:

    def test_register(self, fake_client):
        fake_client.cls.return_value.register.return_value = "User registered"

        result = runner.invoke(
            app,
            ["register", "-e", "ada@example.com", "--name", "Ada Lovelace", "--org", "Engines"],
            env=NO_ENV,
        )

        assert result.exit_code == 0
        assert "User registered" in result.stdout
        fake_client.cls.return_value.register.assert_called_once_with(
            "Ada", "Lovelace", "ada@example.com", "Engines"
        )

    def test_name_needs_last_name(self, fake_client):
        result = runner.invoke(
            app, ["register", "-e", "ada@example.com", "--name", "Ada", "--org", "Engines"], env=NO_ENV
        )
        assert result.exit_code == 1
        fake_client.cls.return_value.register.assert_not_called()

    def test_service_error(self, fake_client):
        fake_client.cls.return_value.register.side_effect = APIError("email: already registered", 400)

        result = runner.invoke(
            app,
            ["register", "-e", "ada@example.com", "--name", "Ada Lovelace", "--org", "Engines"],
            env=NO_ENV,
        )

        assert result.exit_code == 1


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "gradesweep 1.0.0" in result.stdout
