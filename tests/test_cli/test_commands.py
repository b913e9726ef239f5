"""Tests for the request-cache CLI (fetch, lookup, stats, config)."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from conftest import FakeServer, make_transport
from request_cache import __version__
from request_cache.app import app, main, register_commands
from request_cache.cache import CacheStore
from request_cache.exceptions import FetchError, StorageError
from request_cache.models import Identity

URL = "http://example.com"

runner = CliRunner()


@pytest.fixture(autouse=True)
def _commands() -> None:
    register_commands()


@pytest.fixture
def cli_db(isolated_config: Path) -> Path:
    return isolated_config / "cli.db"


@pytest.fixture
def patched_server(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    """Route every Transport the CLI builds to a FakeServer."""
    server = FakeServer()
    monkeypatch.setattr(
        "request_cache.transport.Transport", lambda config=None: make_transport(server)
    )
    return server


def _invoke(db: Path, *args: str):
    return runner.invoke(app, ["--no-color", "--db", str(db), *args])


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"request-cache {__version__}" in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("fetch", "lookup", "stats", "config"):
            assert name in result.output


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


class TestFetchCommand:
    def test_miss_then_hit(self, cli_db: Path, patched_server: FakeServer) -> None:
        first = _invoke(cli_db, "fetch", URL, "--ttl", "600")
        assert first.exit_code == 0, first.output
        assert "hello #1" in first.output
        assert "network: GET http://example.com" in first.output

        second = _invoke(cli_db, "fetch", URL, "--ttl", "600")
        assert second.exit_code == 0
        assert "hello #1" in second.output
        assert "cache: GET http://example.com" in second.output
        assert patched_server.calls == 1

    def test_force_refresh(self, cli_db: Path, patched_server: FakeServer) -> None:
        _invoke(cli_db, "fetch", URL)
        result = _invoke(cli_db, "fetch", URL, "--force-refresh")
        assert result.exit_code == 0
        assert "hello #2" in result.output
        with CacheStore.open(cli_db) as store:
            assert store.count(Identity(url=URL, method="GET")) == 1

    def test_method_user_agent_and_headers(
        self, cli_db: Path, patched_server: FakeServer
    ) -> None:
        result = _invoke(
            cli_db, "fetch", URL, "-X", "POST", "-A", "dummy", "-H", "Accept: text/plain"
        )
        assert result.exit_code == 0, result.output
        request = patched_server.requests[0]
        assert request.method == "POST"
        assert request.headers["User-Agent"] == "dummy"
        assert request.headers["Accept"] == "text/plain"

    def test_meta_json(self, cli_db: Path, patched_server: FakeServer) -> None:
        result = runner.invoke(
            app, ["--json", "--db", str(cli_db), "fetch", URL, "--ttl", "60", "--meta"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["url"] == URL
        assert data["method"] == "GET"
        assert data["body"] == "hello #1"
        assert data["origin"] == "network"
        assert data["status_code"] == 200

    def test_ttl_from_config(self, cli_db: Path, patched_server: FakeServer) -> None:
        assert runner.invoke(app, ["config", "set", "cache.ttl_seconds", "0"]).exit_code == 0
        _invoke(cli_db, "fetch", URL)
        _invoke(cli_db, "fetch", URL)
        assert patched_server.calls == 2

    def test_db_from_env(
        self,
        isolated_config: Path,
        patched_server: FakeServer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        target = isolated_config / "env.db"
        monkeypatch.setenv("REQUEST_CACHE_DB", str(target))
        result = runner.invoke(app, ["--no-color", "fetch", URL])
        assert result.exit_code == 0
        assert target.is_file()

    def test_negative_ttl_is_usage_error(self, cli_db: Path, patched_server: FakeServer) -> None:
        result = _invoke(cli_db, "fetch", URL, "--ttl", "-1")
        assert result.exit_code == 2
        assert patched_server.calls == 0

    def test_malformed_header_is_usage_error(
        self, cli_db: Path, patched_server: FakeServer
    ) -> None:
        result = _invoke(cli_db, "fetch", URL, "-H", "no-colon-here")
        assert result.exit_code == 2
        assert "Invalid header" in result.output
        assert patched_server.calls == 0

    def test_non_ascii_header_is_usage_error(
        self, cli_db: Path, patched_server: FakeServer
    ) -> None:
        result = _invoke(cli_db, "fetch", URL, "-H", "X-Name: naïve")
        assert result.exit_code == 2
        assert "must be ASCII" in result.output
        assert patched_server.calls == 0

    def test_network_failure_exits_6(
        self, cli_db: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr(
            "request_cache.transport.Transport", lambda config=None: make_transport(handler)
        )
        result = _invoke(cli_db, "fetch", URL)
        assert result.exit_code == 6
        assert "Error:" in result.output
        assert "connection refused" in result.output

    def test_unopenable_db_exits_7(self, isolated_config: Path, patched_server: FakeServer) -> None:
        result = _invoke(isolated_config, "fetch", URL)
        assert result.exit_code == 7
        assert patched_server.calls == 0

    def test_persist_failure_prints_body_and_exits_8(
        self,
        cli_db: Path,
        patched_server: FakeServer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def failing_replace(self, entry):
            raise StorageError("database is locked")

        monkeypatch.setattr(CacheStore, "replace", failing_replace)
        result = _invoke(cli_db, "fetch", URL)
        assert result.exit_code == 8
        assert "hello #1" in result.output
        assert "Warning:" in result.output

    def test_bad_ttl_env_exits_1(
        self,
        cli_db: Path,
        patched_server: FakeServer,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("REQUEST_CACHE_TTL", "later")
        result = _invoke(cli_db, "fetch", URL)
        assert result.exit_code == 1
        assert "REQUEST_CACHE_TTL" in result.output

    def test_verbose_reports_cache_decisions(
        self, cli_db: Path, patched_server: FakeServer
    ) -> None:
        _invoke(cli_db, "fetch", URL)
        result = runner.invoke(app, ["--no-color", "-v", "--db", str(cli_db), "fetch", URL])
        assert "[debug] Cache hit: GET http://example.com" in result.output


# ---------------------------------------------------------------------------
# lookup
# ---------------------------------------------------------------------------


class TestLookupCommand:
    def test_lookup_after_fetch(self, cli_db: Path, patched_server: FakeServer) -> None:
        _invoke(cli_db, "fetch", URL, "--ttl", "600")
        result = _invoke(cli_db, "lookup", URL)
        assert result.exit_code == 0
        assert "hello #1" in result.output
        assert patched_server.calls == 1

    def test_lookup_miss_exits_4(self, cli_db: Path, patched_server: FakeServer) -> None:
        result = _invoke(cli_db, "lookup", URL)
        assert result.exit_code == 4
        assert "No live cache entry for GET http://example.com" in result.output
        assert patched_server.calls == 0

    def test_lookup_respects_method(self, cli_db: Path, patched_server: FakeServer) -> None:
        _invoke(cli_db, "fetch", URL, "--ttl", "600")
        assert _invoke(cli_db, "lookup", URL, "-X", "HEAD").exit_code == 4


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------


class TestStatsCommand:
    def test_stats_plain(self, cli_db: Path, patched_server: FakeServer) -> None:
        _invoke(cli_db, "fetch", URL, "--ttl", "600")
        _invoke(cli_db, "fetch", f"{URL}/other", "--ttl", "0")
        result = runner.invoke(app, ["--plain", "--db", str(cli_db), "stats"])
        assert result.exit_code == 0
        lines = result.output.strip().split("\n")
        assert lines[0] == "location\trows\tlive"
        assert lines[1] == f"{cli_db}\t2\t1"

    def test_stats_json(self, cli_db: Path) -> None:
        result = runner.invoke(app, ["--json", "--db", str(cli_db), "stats"])
        assert result.exit_code == 0
        assert json.loads(result.output) == [
            {"location": str(cli_db), "rows": "0", "live": "0"}
        ]


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_show_defaults(self, isolated_config: Path) -> None:
        result = runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cache"]["ttl_seconds"] == 300
        assert data["transport"]["timeout"] == 30.0

    def test_set_then_show(self, isolated_config: Path) -> None:
        assert runner.invoke(app, ["config", "set", "cache.db_path", "/srv/r.db"]).exit_code == 0
        assert runner.invoke(app, ["config", "set", "transport.timeout", "2.5"]).exit_code == 0
        assert runner.invoke(app, ["config", "set", "transport.verify_ssl", "false"]).exit_code == 0

        data = json.loads(runner.invoke(app, ["--json", "--quiet", "config", "show"]).output)
        assert data["cache"]["db_path"] == "/srv/r.db"
        assert data["transport"]["timeout"] == 2.5
        assert data["transport"]["verify_ssl"] is False

    @pytest.mark.parametrize(
        "key,value",
        [
            ("cache.nope", "1"),
            ("nope.ttl_seconds", "1"),
            ("cache", "1"),
            ("cache.ttl_seconds", "soon"),
            ("cache.ttl_seconds", "-3"),
        ],
    )
    def test_set_rejects_bad_input(self, isolated_config: Path, key: str, value: str) -> None:
        result = runner.invoke(app, ["config", "set", key, value])
        assert result.exit_code == 2

    def test_show_invalid_file_exits_1(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "request-cache" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{broken", encoding="utf-8")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 1
        assert "Invalid global config" in result.output

    def test_reset_force(self, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "cache.ttl_seconds", "5"])
        result = runner.invoke(app, ["config", "reset", "--force"])
        assert result.exit_code == 0
        data = json.loads(runner.invoke(app, ["--json", "--quiet", "config", "show"]).output)
        assert data["cache"]["ttl_seconds"] == 300

    def test_reset_declined(self, isolated_config: Path) -> None:
        runner.invoke(app, ["config", "set", "cache.ttl_seconds", "5"])
        result = runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        data = json.loads(runner.invoke(app, ["--json", "--quiet", "config", "show"]).output)
        assert data["cache"]["ttl_seconds"] == 5


# ---------------------------------------------------------------------------
# main() entry point
# ---------------------------------------------------------------------------


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("request_cache.app._setup_signal_handlers", lambda: None)

    def test_request_cache_error_maps_to_exit_code(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        def boom() -> None:
            raise FetchError("GET http://example.com failed: refused")

        monkeypatch.setattr("request_cache.app.app", boom)
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 6
        assert "refused" in capsys.readouterr().err

    def test_unexpected_error_writes_crash_log(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom() -> None:
            raise RuntimeError("kaboom")

        monkeypatch.setattr("request_cache.app.app", boom)
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        logs = list((isolated_config / "data" / "request-cache" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "kaboom" in logs[0].read_text()
