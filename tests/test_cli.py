from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

import main as cli
from config import Settings
from core import BackendId, Digest, Topic, make_citation
from storage import FileDigestStore


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    value = Settings()
    value.deep_research.api_key = None
    value.social_search.api_key = None
    value.social.provider = "synthetic"
    value.storage.provider = "file"
    value.storage.data_dir = str(tmp_path / "digests")
    value.storage.fallback_dir = str(tmp_path / "fallback")
    monkeypatch.setattr(cli, "get_settings", lambda: value)
    monkeypatch.setattr(cli, "configure_package_logging", lambda **kwargs: None)
    return value


def _seed(settings: Settings, title: str) -> None:
    now = datetime(2026, 10, 17, tzinfo=timezone.utc)
    digest = Digest(
        title=title,
        date="2026-10-17",
        generated_at=now,
        summary="Lead.",
        topics=[Topic(title="Model X", citations=[make_citation("Blog", "https://openai.com/x")], source=BackendId.DEEP_RESEARCH)],
        raw_html="<h1>stored</h1>",
        published_at=now,
    )
    with FileDigestStore(settings.storage.data_dir) as store:
        store.write(digest)


def test_show_without_digest_returns_nonzero(settings) -> None:
    assert cli.main(["show"]) == 1


def test_show_prints_stored_payload(settings, capsys) -> None:
    _seed(settings, "Weekly AI News Digest")

    assert cli.main(["show", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["title"] == "Weekly AI News Digest"
    assert payload["topics"][0]["citations"][0]["kind"] == "article"

    assert cli.main(["show", "--html"]) == 0
    assert "<h1>stored</h1>" in capsys.readouterr().out


def test_invalidate_reports_removed_count(settings, capsys) -> None:
    _seed(settings, "first")
    _seed(settings, "second")

    assert cli.main(["invalidate", "latest*"]) == 0
    assert json.loads(capsys.readouterr().out) == {"pattern": "latest*", "removed": 2}


def test_generate_without_credentials_fails_and_reports_json(settings, capsys) -> None:
    assert cli.main(["generate", "--json", "--top-n", "3"]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["status"] == "failed"
    assert [branch["status"] for branch in report["branches"]] == ["failed", "failed"]
