"""
Tests for the click command-line interface.
"""

import functools
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from metalink.cli import build_cache_store, cli
from metalink.cache.memory import MemoryCacheStore
from metalink.cache.sqlite import SQLiteCacheStore
from metalink.client import MetaLinkClient
from metalink.config.config import Settings
from metalink.fetch.protocols import FetchResponse

PAGE = "https://example.com/article"
HTML = "<html><head><title>CLI Page</title><meta property='og:type' content='article'></head></html>"


@pytest.fixture
def runner():
    with patch("metalink.cli.configure_logging"):
        yield CliRunner()


@pytest.fixture
def sqlite_config():
    with tempfile.TemporaryDirectory() as temp_dir:
        path = Path(temp_dir) / "metalink.yaml"
        path.write_text(
            "cache_backend:\n" "  backend: sqlite\n" f"  sqlite_path: {Path(temp_dir) / 'cache.db'}\n"
        )
        yield path


@pytest.mark.unit
class TestCli:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "extract" in result.output
        assert "optimize" in result.output

    def test_extract_prints_json(self, runner, fake_fetcher):
        fake_fetcher.html(PAGE, HTML)
        client_factory = functools.partial(MetaLinkClient, fetcher=fake_fetcher)

        with patch("metalink.cli.MetaLinkClient", client_factory):
            result = runner.invoke(cli, ["extract", PAGE])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["metadata"]["title"] == "CLI Page"
        assert payload["metadata"]["kind"] == "article"

    def test_extract_failure_exits_non_zero(self, runner, fake_fetcher):
        client_factory = functools.partial(MetaLinkClient, fetcher=fake_fetcher)

        with patch("metalink.cli.MetaLinkClient", client_factory):
            result = runner.invoke(cli, ["extract", PAGE, "--format", "table"])

        assert result.exit_code == 1

    def test_optimize(self, runner, fake_fetcher):
        fake_fetcher.redirect("HEAD", "https://short.test/x", PAGE)
        fake_fetcher.add("HEAD", PAGE, FetchResponse(url=PAGE, status_code=200, headers={"content-type": "text/html"}))
        client_factory = functools.partial(MetaLinkClient, fetcher=fake_fetcher)

        with patch("metalink.cli.MetaLinkClient", client_factory):
            result = runner.invoke(cli, ["optimize", "https://short.test/x"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["finalUrl"] == PAGE

    def test_cache_commands_require_sqlite(self, runner):
        result = runner.invoke(cli, ["cache", "purge"])
        assert result.exit_code == 1

    def test_cache_purge_and_clear(self, runner, sqlite_config):
        purge = runner.invoke(cli, ["-c", str(sqlite_config), "cache", "purge"])
        assert purge.exit_code == 0, purge.output

        clear = runner.invoke(cli, ["-c", str(sqlite_config), "cache", "clear"])
        assert clear.exit_code == 0, clear.output


@pytest.mark.unit
class TestBuildCacheStore:
    def test_memory_backend(self):
        store = build_cache_store(Settings.model_validate({"cache_backend": {"max_entries": 3}}))
        assert isinstance(store, MemoryCacheStore)

    def test_sqlite_backend(self):
        settings = Settings.model_validate({"cache_backend": {"backend": "sqlite", "sqlite_path": "x.db"}})
        assert isinstance(build_cache_store(settings), SQLiteCacheStore)
