"""Tests for the command line entry points, run against the in-memory store."""

import json

import pytest

from ebookgen.config import AppConfig
from ebookgen.jobs import cli, run_worker


@pytest.fixture
def cli_redis(redis, monkeypatch):
    monkeypatch.setattr("ebookgen.jobs.cli.create_redis_connection", lambda url: redis)
    return redis


@pytest.mark.anyio
async def test_submit_then_status(cli_redis, capsys, tmp_path):
    pages_file = tmp_path / "titles.txt"
    pages_file.write_text("Body\n\nConclusion\n", encoding="utf-8")

    args = cli.build_parser().parse_args(
        ["submit", "Ebook", "--page", "Intro", "--pages-file", str(pages_file), "--mode", "FULL"]
    )
    assert await cli.main(args) == 0

    submitted = json.loads(capsys.readouterr().out)
    assert submitted["document"]["totalPages"] == 3
    assert submitted["document"]["contentMode"] == "FULL"

    args = cli.build_parser().parse_args(["status", submitted["document_id"], "--pages"])
    assert await cli.main(args) == 0

    status = json.loads(capsys.readouterr().out)
    assert status["status"] == "queued"
    assert [p["pageTitle"] for p in status["pages"]] == ["Intro", "Body", "Conclusion"]


@pytest.mark.anyio
async def test_status_of_unknown_document(cli_redis, capsys):
    args = cli.build_parser().parse_args(["status", "1700000000000-nothere"])

    assert await cli.main(args) == 1
    assert "not found" in capsys.readouterr().err


@pytest.mark.anyio
async def test_health_reports_outage(cli_redis, capsys):
    cli_redis.down = True

    assert await cli.main(cli.build_parser().parse_args(["health"])) == 1
    assert json.loads(capsys.readouterr().out)["connected"] is False


def test_invalid_submission_exits_with_error(cli_redis, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.run(["submit", "Ebook"])

    assert excinfo.value.code == 1
    assert "ERROR: At least one page title is required" in capsys.readouterr().err


def test_unknown_mode_is_rejected_by_parser():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["submit", "Ebook", "--page", "A", "--mode", "HUGE"])


@pytest.mark.anyio
async def test_worker_refuses_to_start_without_settings(monkeypatch):
    for name in ("REDIS_URL", "REDIS_PUBLIC_URL", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("ebookgen.jobs.run_worker.config", AppConfig(_env_file=None))

    assert await run_worker.main(run_worker.parse_args([])) == 1


@pytest.mark.anyio
async def test_worker_exits_when_store_is_unreachable(redis, monkeypatch):
    monkeypatch.setattr(
        "ebookgen.jobs.run_worker.config",
        AppConfig(_env_file=None, REDIS_URL="redis://localhost:6379", ANTHROPIC_API_KEY="sk-test"),
    )
    monkeypatch.setattr("ebookgen.jobs.run_worker.create_redis_connection", lambda url: redis)
    redis.down = True

    assert await run_worker.main(run_worker.parse_args(["--workers", "2"])) == 1
    assert redis.commands == ["PING"]
