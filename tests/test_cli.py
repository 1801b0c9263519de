"""Tests for CLI commands and helper functions."""

import pytest
from click.testing import CliRunner

from http_smtp_relay import __version__
from http_smtp_relay.cli import main, run_async
from http_smtp_relay.errors import TransportError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def sent(monkeypatch):
    calls = []

    async def fake_deliver(config, mail):
        calls.append((config, mail))

    monkeypatch.setattr("http_smtp_relay.cli.deliver", fake_deliver)
    return calls


class TestHelperFunctions:
    """Tests for CLI helper functions."""

    def test_run_async(self):
        """run_async executes a coroutine synchronously."""
        async def async_func():
            return 42

        assert run_async(async_func()) == 42

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestSendCommand:
    """Tests for the ``send`` command."""

    def test_send_prints_display_form(self, runner, sent):
        result = runner.invoke(main, [
            "send", "--smtp-server", "relay.local:25", "--skip-tls",
            "--to", "a@x.com", "--to", "b@x.com", "--from", "me@x.com",
            "--subject", "Hi", "--msg", "Hello",
        ])

        assert result.exit_code == 0, result.output
        assert "From: me@x.com\nTo: a@x.com,b@x.com\nSubject: Hi\n\nHello\n" in result.output
        assert "Sent to 2 recipient(s)" in result.output
        config, mail = sent[0]
        assert config.skip_tls is True
        assert mail.to == ["a@x.com", "b@x.com"]

    def test_send_reads_body_from_stdin(self, runner, sent):
        result = runner.invoke(
            main,
            ["send", "--smtp-server", "relay.local:25", "--to", "a@x.com", "--from", "me@x.com",
             "--msg", "ignored", "--stdin"],
            input="disk full on db1\n",
        )

        assert result.exit_code == 0, result.output
        assert sent[0][1].body == "disk full on db1\n"

    def test_send_uses_defaults_and_forced_sender(self, runner, sent):
        result = runner.invoke(main, [
            "send", "--smtp-server", "relay.local:25",
            "--default-to", "ops@x.com,oncall@x.com", "--default-subject", "Alert",
            "--default-message", "default text", "--forced-from", "locked@x.com",
            "--from", "me@x.com",
        ])

        assert result.exit_code == 0, result.output
        mail = sent[0][1]
        assert mail.from_addr == "locked@x.com"
        assert mail.to == ["ops@x.com", "oncall@x.com"]
        assert mail.subject == "Alert"
        assert mail.body == "default text"

    def test_send_reads_config_file(self, runner, sent, tmp_path):
        config_file = tmp_path / "custom.ini"
        config_file.write_text("[relay]\nserver = file.local:2525\n\n[defaults]\nto = a@x.com\nfrom = me@x.com\n")

        result = runner.invoke(main, ["send", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert sent[0][0].smtp_server == "file.local:2525"

    def test_send_missing_fields_fails(self, runner, sent):
        result = runner.invoke(main, ["send", "--smtp-server", "relay.local:25", "--from", "me@x.com"])

        assert result.exit_code == 1
        assert "missing fields in mail" in result.output
        assert sent == []

    def test_send_transport_error_fails(self, runner, monkeypatch):
        async def failing_deliver(config, mail):
            raise TransportError("smtp dial failed: refused", step="dial")

        monkeypatch.setattr("http_smtp_relay.cli.deliver", failing_deliver)

        result = runner.invoke(main, [
            "send", "--smtp-server", "relay.local:25", "--to", "a@x.com", "--from", "me@x.com",
        ])

        assert result.exit_code == 1
        assert "smtp dial failed: refused" in result.output

    def test_send_without_relay_fails(self, runner, sent):
        result = runner.invoke(main, ["send", "--to", "a@x.com", "--from", "me@x.com"])

        assert result.exit_code == 1
        assert "no SMTP relay configured" in result.output


class TestShowConfigCommand:
    """Tests for the ``show-config`` command."""

    def test_show_config_json(self, runner, monkeypatch):
        monkeypatch.setenv("HSR_SMTP_SERVER", "env.local:25")

        result = runner.invoke(main, ["show-config", "--json", "--forced-from", "locked@x.com"])

        assert result.exit_code == 0, result.output
        assert '"smtp_server": "env.local:25"' in result.output
        assert '"forced_from": "locked@x.com"' in result.output

    def test_show_config_table_warns_without_tls(self, runner):
        result = runner.invoke(main, ["show-config", "--smtp-server", "relay.local:25", "--skip-tls"])

        assert result.exit_code == 0, result.output
        assert "smtp_server" in result.output
        assert "relay.local:25" in result.output
        assert "TLS to the SMTP relay is disabled" in result.output

    def test_show_config_invalid_value(self, runner):
        result = runner.invoke(main, ["show-config", "--smtp-server", "relay.local"])

        assert result.exit_code == 1
        assert "invalid configuration" in result.output


class TestServeCommand:
    """Tests for the ``serve`` command."""

    def test_serve_runs_uvicorn_with_config(self, runner, monkeypatch):
        calls = []

        def fake_run(app, **kwargs):
            calls.append((app, kwargs))

        monkeypatch.setattr("uvicorn.run", fake_run)

        result = runner.invoke(main, [
            "serve", "--smtp-server", "relay.local:25", "--skip-tls",
            "--host", "127.0.0.1", "--port", "9090", "--forced-from", "locked@x.com",
        ])

        assert result.exit_code == 0, result.output
        app, kwargs = calls[0]
        assert kwargs == {"host": "127.0.0.1", "port": 9090, "log_level": "info"}
        assert app.state.config.forced_from == "locked@x.com"
        assert app.state.config.skip_tls is True

    def test_serve_without_relay_fails(self, runner, monkeypatch):
        monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: pytest.fail("server started"))

        result = runner.invoke(main, ["serve"])

        assert result.exit_code == 1
        assert "no SMTP relay configured" in result.output
