"""End-to-end CLI tests using typer.testing.CliRunner.

The browser and the Telegram API are patched out; everything else runs for
real against the fixture registry.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from tourwatch.cli import app
from tourwatch.config import RunMode
from tourwatch.models import AvailabilityMatch, AvailabilityStatus, SiteRunResult, SiteState

runner = CliRunner()

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SITES = str(FIXTURES_DIR / "sites.yaml")
TELEGRAM_ENV = {"TELEGRAM_BOT_TOKEN": "123:abc", "TELEGRAM_CHAT_ID": "42"}


def _ok_response():
    resp = MagicMock()
    resp.status_code = 200
    resp.text = '{"ok": true}'
    return resp


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


class TestHelp:
    def test_root_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "check" in result.output
        assert "sites" in result.output
        assert "notify" in result.output

    def test_notify_help(self):
        result = runner.invoke(app, ["notify", "--help"])
        assert result.exit_code == 0
        assert "test" in result.output
        assert "status" in result.output


# ---------------------------------------------------------------------------
# sites
# ---------------------------------------------------------------------------


class TestSites:
    def test_plain(self):
        result = runner.invoke(app, ["sites", "--sites", SITES, "--plain"])
        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "Bravo Lagoon" in result.output

    def test_json(self):
        result = runner.invoke(app, ["sites", "--sites", SITES, "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [s["name"] for s in data["sites"]] == ["alpha", "Bravo Lagoon"]

    def test_bundled_registry(self):
        result = runner.invoke(app, ["sites", "--plain"])
        assert result.exit_code == 0
        assert "icelagoon" in result.output

    def test_missing_registry(self):
        result = runner.invoke(app, ["sites", "--sites", "nonexistent.yaml"])
        assert result.exit_code == 2
        assert "not found" in result.output.lower()


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    def test_unknown_site(self):
        result = runner.invoke(app, ["check", "charlie", "--sites", SITES])
        assert result.exit_code == 2
        assert "Unknown site" in result.output

    def test_found(self):
        with patch("tourwatch.monitor.Monitor") as monitor_cls:
            monitor = monitor_cls.return_value
            monitor.poll_site.side_effect = lambda site, notify: SiteRunResult(
                site=site,
                state=SiteState.DONE,
                strategy="direct_document",
                matches=[AvailabilityMatch(date="20", status=AvailabilityStatus.AVAILABLE)],
            )
            result = runner.invoke(app, ["check", "ALPHA", "--sites", SITES, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["site"] == "alpha"
        assert data["matches"][0]["date"] == "20"
        args, kwargs = monitor.poll_site.call_args
        assert args[0].name == "alpha"
        assert kwargs == {"notify": False}

    def test_notify_flag(self):
        with patch("tourwatch.monitor.Monitor") as monitor_cls:
            monitor = monitor_cls.return_value
            monitor.poll_site.side_effect = lambda site, notify: SiteRunResult(
                site=site, state=SiteState.DONE
            )
            result = runner.invoke(app, ["check", "alpha", "--sites", SITES, "--notify", "--plain"])

        assert result.exit_code == 0
        assert monitor.poll_site.call_args.kwargs == {"notify": True}
        assert "NONE" in result.output

    def test_failed_site_exits_1(self):
        with patch("tourwatch.monitor.Monitor") as monitor_cls:
            monitor_cls.return_value.poll_site.side_effect = lambda site, notify: SiteRunResult(
                site=site, state=SiteState.FAILED, error="Timeout", error_stage="render"
            )
            result = runner.invoke(app, ["check", "alpha", "--sites", SITES, "--plain"])

        assert result.exit_code == 1
        assert "FAILED" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRun:
    def _invoke(self, args, env=None):
        with patch("tourwatch.monitor.Monitor") as monitor_cls, patch(
            "tourwatch.monitor.install_signal_handlers"
        ) as install:
            result = runner.invoke(app, ["run", "--sites", SITES, *args], env=env)
        return result, monitor_cls, install

    def test_once(self):
        result, monitor_cls, install = self._invoke(["--once"])

        assert result.exit_code == 0
        config = monitor_cls.call_args.args[0]
        assert config.mode == RunMode.SINGLE_PASS
        monitor_cls.return_value.run.assert_called_once()
        install.assert_called_once_with(monitor_cls.return_value)

    def test_once_prints_cycle_summary(self, fake_renderer, fake_page, snapshot, marker):
        snap = snapshot(marker("Available", "20"), marker("SellingOut", "19"))
        renderer = fake_renderer({
            "https://alpha.example.com/tours/": fake_page(snapshot=snap),
            "https://bravo.example.com/": fake_page(snapshot=snap, buttons=["Book now"]),
        })
        with patch(
            "tourwatch.scraper.playwright_renderer.PlaywrightRenderer.from_config",
            return_value=renderer,
        ), patch("tourwatch.monitor.install_signal_handlers"):
            result = runner.invoke(app, ["run", "--sites", SITES, "--once"])

        assert result.exit_code == 0
        assert "Poll cycle #1" in result.output
        assert "Matches: 3  Failed: 0  Sent: 0" in result.output
        assert len(renderer.loads) == 2

    def test_banner(self):
        result, _, _ = self._invoke(["--once"])
        assert "monitor started" in result.output
        assert "alpha: 19, 20, 21" in result.output
        assert "Telegram: NOT configured" in result.output

    def test_quiet_hides_banner(self):
        result, _, _ = self._invoke(["--once", "-q"])
        assert result.exit_code == 0
        assert "monitor started" not in result.output

    def test_loop_with_interval(self):
        result, monitor_cls, _ = self._invoke(["--loop", "--interval", "30"])
        assert result.exit_code == 0
        config = monitor_cls.call_args.args[0]
        assert config.mode == RunMode.CONTINUOUS
        assert config.interval_seconds == 30

    def test_mode_from_environment(self):
        result, monitor_cls, _ = self._invoke([], env={"TOURWATCH_ENV": "production"})
        assert result.exit_code == 0
        assert monitor_cls.call_args.args[0].mode == RunMode.SINGLE_PASS

    def test_flag_overrides_environment(self):
        result, monitor_cls, _ = self._invoke(["--loop"], env={"TOURWATCH_ENV": "production"})
        assert monitor_cls.call_args.args[0].mode == RunMode.CONTINUOUS

    def test_invalid_environment(self):
        result, monitor_cls, _ = self._invoke([], env={"TOURWATCH_INTERVAL_SECONDS": "soon"})
        assert result.exit_code == 2
        assert "TOURWATCH_INTERVAL_SECONDS" in result.output
        monitor_cls.assert_not_called()

    def test_interval_must_be_positive(self):
        result, _, _ = self._invoke(["--interval", "0"])
        assert result.exit_code != 0

    def test_forced_abort(self):
        with patch("tourwatch.monitor.Monitor") as monitor_cls, patch(
            "tourwatch.monitor.install_signal_handlers"
        ):
            monitor_cls.return_value.run.side_effect = KeyboardInterrupt
            result = runner.invoke(app, ["run", "--sites", SITES, "--once"])
        assert result.exit_code == 130


# ---------------------------------------------------------------------------
# notify
# ---------------------------------------------------------------------------


class TestNotify:
    def test_status_unconfigured(self):
        result = runner.invoke(app, ["notify", "status"])
        assert result.exit_code == 0
        assert "not configured" in result.output
        assert "TELEGRAM_BOT_TOKEN" in result.output

    def test_status_configured_json(self):
        result = runner.invoke(app, ["notify", "status", "--json"], env=TELEGRAM_ENV)
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == {"configured": True, "has_token": True, "chat_id": "42"}

    def test_test_unconfigured(self):
        result = runner.invoke(app, ["notify", "test"])
        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_test_sends(self):
        with patch("tourwatch.notify.telegram.requests.post", return_value=_ok_response()) as post:
            result = runner.invoke(app, ["notify", "test", "-m", "ping"], env=TELEGRAM_ENV)

        assert result.exit_code == 0
        assert "Test message sent" in result.output
        assert post.call_args.kwargs["json"]["text"] == "ping"

    def test_test_delivery_failure(self):
        resp = _ok_response()
        resp.status_code = 401
        resp.text = '{"ok": false, "description": "Unauthorized"}'
        with patch("tourwatch.notify.telegram.requests.post", return_value=resp):
            result = runner.invoke(app, ["notify", "test"], env=TELEGRAM_ENV)

        assert result.exit_code == 1
        assert "Unauthorized" in result.output
