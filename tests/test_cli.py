import json
from unittest.mock import MagicMock

import pytest

from conftest import FakeResponse, raw_record
from eufunding import cli
from eufunding.core.errors import UpstreamFailure


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("EUFUNDING_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("EUFUNDING_SOURCES_FILE", str(tmp_path / "sources.json"))
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)
    return tmp_path


def test_partners_add_list_rank_delete(env, capsys):
    assert cli.main(["partners", "add", "Wind Co", "--keyword", "wind", "--description", "Offshore turbines"]) == 0
    partner_id = capsys.readouterr().out.strip()
    assert cli.main(["partners", "add", "Solar Lab", "--keyword", "solar"]) == 0
    capsys.readouterr()

    cli.main(["partners", "list"])
    listing = capsys.readouterr().out
    assert "Wind Co" in listing and "Solar Lab" in listing

    cli.main(["rank-partners", "Offshore wind turbines", "--limit", "1"])
    ranked = capsys.readouterr().out.splitlines()
    assert len(ranked) == 1
    assert "Wind Co" in ranked[0]
    assert "Keyword match: wind" in ranked[0]

    cli.main(["partners", "delete", partner_id])
    capsys.readouterr()
    cli.main(["partners", "list"])
    assert "Wind Co" not in capsys.readouterr().out


def test_sources_add_persists_file(env, capsys):
    assert cli.main(["sources", "add", "https://example.org/fund", "Example fund"]) == 0

    saved = json.loads((env / "sources.json").read_text(encoding="utf-8"))
    urls = [s["url"] for s in saved["custom_sources"]]
    assert urls[-1] == "https://example.org/fund"
    assert "https://example.org/fund" in capsys.readouterr().out


def test_search_prints_json_and_saves(env, capsys, monkeypatch):
    session = MagicMock()
    session.headers = {}
    session.post.return_value = FakeResponse(payload={"results": [
        raw_record("X1", title="Hydrogen valleys", deadlineDate="2099-01-01"),
    ]})
    monkeypatch.setattr("eufunding.ingest.eu_search.requests.Session", lambda: session)

    assert cli.main(["search", "hydrogen", "--json", "--save"]) == 0

    [item] = json.loads(capsys.readouterr().out)
    assert item["call_id"] == "X1"
    assert item["deadline"] == "Jan 1, 2099"
    assert item["status"] == "Open"


def test_upstream_failure_exits_with_one(env, capsys, monkeypatch):
    def fail(*args, **kwargs):
        raise UpstreamFailure("Funding search API returned 400", status_code=400)

    monkeypatch.setattr(cli, "search_opportunities", fail)

    assert cli.main(["search", "hydrogen"]) == 1
    assert "Funding search API returned 400" in capsys.readouterr().err



def test_enrich_without_save_leaves_database_untouched(env, capsys, monkeypatch):
    session = MagicMock()
    session.headers = {}
    session.post.return_value = FakeResponse(payload={"results": [
        raw_record("X1", title="Hydrogen valleys", ccm2Id="77"),
    ]})
    session.get.return_value = FakeResponse(payload={
        "actions": json.dumps([{"deadlineDates": ["2099-02-02"]}]),
    })
    monkeypatch.setattr("eufunding.ingest.eu_search.requests.Session", lambda: session)

    assert cli.main(["search", "hydrogen", "--json", "--enrich"]) == 0

    [item] = json.loads(capsys.readouterr().out)
    assert item["deadline"] == "Feb 2, 2099"
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"topicId": "77"}
    assert not (env / "cli.db").exists()
