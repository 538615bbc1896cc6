# File: tests/test_cli.py
"""Тесты для CLI (`web_freezer.cli`) с использованием click.testing.CliRunner.
Проверяют команды `archive`, `config`, `--version`, а также обработку ошибок.
"""
import importlib
import json

import pytest
from click.testing import CliRunner

from web_freezer.archive.manifest import build_manifest
from web_freezer.cli import cli
from web_freezer.crawler.models import CrawledFile
from web_freezer.engine import ArchiveJobResult, CrawlFailedError
from web_freezer.logger import init_logging

# пакет экспортирует группу `cli`, поэтому сам модуль берём через importlib
cli_module = importlib.import_module("web_freezer.cli")


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Без configs/default.yaml в рабочей директории; логгер восстанавливается после теста."""
    monkeypatch.chdir(tmp_path)
    yield
    init_logging()


@pytest.fixture()
def fake_engine(monkeypatch):
    """Патчим Engine, чтобы команда archive не ходила в сеть."""
    calls = []

    class DummyEngine:
        def __init__(self, config):
            calls.append(config)

        def run(self):
            files = [CrawledFile("index.html", b"<html></html>", "text/html")]
            manifest = build_manifest("example.com", files, "sitemap")
            return ArchiveJobResult(archive=b"PK-fake", manifest=manifest, files=files)

    monkeypatch.setattr(cli_module, "Engine", DummyEngine)
    return calls


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "WebFreezer" in result.output


def test_archive_writes_zip(tmp_path, fake_engine):
    out = tmp_path / "site.zip"
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["--log-level", "ERROR", "archive", "https://example.com", "-o", str(out),
         "--method", "link_discovery", "--max-pages", "7", "--max-depth", "1"],
    )

    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"PK-fake"
    assert "1 pages" in result.output
    cfg = fake_engine[0]
    assert cfg.start_url == "https://example.com"
    assert cfg.discovery_method == "link_discovery"
    assert (cfg.max_pages, cfg.max_depth) == (7, 1)


def test_archive_uses_config_file(tmp_path, fake_engine):
    cfg_file = tmp_path / "config.json"
    cfg_file.write_text(json.dumps({"max_pages": 3, "concurrency": 2}), encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(cfg_file), "archive", "https://example.com", "-o", str(tmp_path / "a.zip")]
    )

    assert result.exit_code == 0, result.output
    assert fake_engine[0].max_pages == 3
    assert fake_engine[0].concurrency == 2


def test_archive_rejects_private_url(tmp_path, fake_engine):
    runner = CliRunner()
    result = runner.invoke(cli, ["archive", "http://localhost:8000/", "-o", str(tmp_path / "a.zip")])

    assert result.exit_code == 1
    assert "Private/internal hosts are not allowed" in result.output
    assert fake_engine == []


def test_archive_reports_crawl_failure(tmp_path, monkeypatch):
    class FailingEngine:
        def __init__(self, config):
            pass

        def run(self):
            raise CrawlFailedError("No pages could be crawled from this URL")

    monkeypatch.setattr(cli_module, "Engine", FailingEngine)
    out = tmp_path / "a.zip"
    runner = CliRunner()
    result = runner.invoke(cli, ["archive", "https://example.com", "-o", str(out)])

    assert result.exit_code == 1
    assert "No pages could be crawled" in result.output
    assert not out.exists()


def test_show_config(tmp_path):
    cfg_file = tmp_path / "default.yaml"
    cfg_file.write_text("start_url: https://example.com\nmax_depth: 1\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["start_url"] == "https://example.com"
    assert data["max_depth"] == 1
    assert data["discovery_method"] == "sitemap"


def test_show_config_needs_url():
    runner = CliRunner()
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 1

    result = runner.invoke(cli, ["config", "--url", "https://example.com"])
    assert result.exit_code == 0
    assert json.loads(result.output)["max_pages"] == 100


def test_bad_config_file(tmp_path):
    cfg_file = tmp_path / "broken.yaml"
    cfg_file.write_text("- not\n- a mapping\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])

    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output
