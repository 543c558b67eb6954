import io
import json
from datetime import timedelta
from pathlib import Path

import httpx
import pytest
from rich.console import Console

from story_dedup.config import AppConfig
from story_dedup.errors import ConfigError, InputError, OutputError
from story_dedup.ledger import SqliteSeenLedger
from story_dedup.runner import prune_ledger, run_pipeline

NOW = 1_705_320_000_000
DAY_MS = 24 * 60 * 60 * 1000

PAYLOAD = {
    "articles": [
        {
            "url": "https://www.haberler.com/istanbul-firtina?utm_source=tw",
            "title": "Son Dakika: İstanbul'da fırtına",
            "seendate": "20240115T110000Z",
        },
        {
            "url": "https://www.aa.com.tr/tr/gundem/istanbul-firtina/",
            "title": "İstanbul'da fırtına",
            "seendate": "20240115T103000Z",
        },
        {
            "url": "https://www.sozcu.com.tr/ankara-kar",
            "title": "Ankara'da kar yağışı etkili oluyor",
            "seendate": "20240115T090000Z",
        },
    ]
}


def _cfg(tmp_path: Path) -> AppConfig:
    cfg = AppConfig()
    cfg.ledger.path = str(tmp_path / "seen.sqlite3")
    cfg.logging.console = False
    return cfg


def _input(tmp_path: Path, payload=PAYLOAD) -> Path:
    path = tmp_path / "articles.json"
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def _console() -> Console:
    return Console(file=io.StringIO(), width=200)


def test_run_clusters_and_records_new_stories(tmp_path):
    cfg = _cfg(tmp_path)
    console = _console()

    result = run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=console, now=NOW)

    assert result.total_records == 3
    assert result.total_clusters == 2
    assert [c.canonical.canonical_url for c in result.new_clusters] == [
        "https://www.aa.com.tr/tr/gundem/istanbul-firtina",
        "https://www.sozcu.com.tr/ankara-kar",
    ]
    with SqliteSeenLedger(cfg.ledger.path) as ledger:
        assert set(ledger.load_all()) == {
            "https://www.aa.com.tr/tr/gundem/istanbul-firtina",
            "https://www.sozcu.com.tr/ankara-kar",
        }
        assert ledger.count_archived() == 3

    output = console.file.getvalue()
    assert "CANONICAL (WIRE) aa.com.tr" in output
    assert "★" in output
    assert "Story clusters:     2" in output


def test_second_run_suppresses_seen_stories(tmp_path):
    cfg = _cfg(tmp_path)
    run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW)

    console = _console()
    result = run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=console, now=NOW + 1000)

    assert result.new_clusters == []
    assert result.suppressed == 2
    assert "No new stories" in console.file.getvalue()


def test_expired_entries_are_emitted_again(tmp_path):
    cfg = _cfg(tmp_path)
    run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW)

    result = run_pipeline(
        cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW + 8 * DAY_MS
    )

    assert len(result.new_clusters) == 2


def test_dry_run_does_not_persist(tmp_path):
    cfg = _cfg(tmp_path)

    result = run_pipeline(
        cfg, tmp_path / "out", input_path=_input(tmp_path), dry_run=True, console=_console(), now=NOW
    )

    assert len(result.new_clusters) == 2
    assert not Path(cfg.ledger.path).exists()


def test_dry_run_still_honours_existing_ledger(tmp_path):
    cfg = _cfg(tmp_path)
    with SqliteSeenLedger(cfg.ledger.path) as ledger:
        ledger.upsert("https://www.sozcu.com.tr/ankara-kar", NOW - 1000)

    result = run_pipeline(
        cfg, tmp_path / "out", input_path=_input(tmp_path), dry_run=True, console=_console(), now=NOW
    )

    assert [c.canonical.domain for c in result.new_clusters] == ["aa.com.tr"]
    with SqliteSeenLedger(cfg.ledger.path) as ledger:
        assert len(ledger.load_all()) == 1


def test_outputs_are_written_when_enabled(tmp_path):
    cfg = _cfg(tmp_path)
    cfg.output.markdown = True
    cfg.output.json_output = str(tmp_path / "new.ndjson")
    cfg.logging.file = True

    run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW)

    report = (tmp_path / "out" / "stories.md").read_text(encoding="utf-8")
    assert "## İstanbul'da fırtına" in report
    lines = (tmp_path / "new.ndjson").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["size"] == 2

    events = [json.loads(line) for line in (tmp_path / "out" / "run.jsonl").read_text(encoding="utf-8").splitlines()]
    names = [e.get("event") for e in events]
    for name in ["pipeline_start", "ledger_loaded", "records_ingested", "clusters_built", "clusters_filtered", "pipeline_done"]:
        assert name in names
    assert events[names.index("ledger_loaded")]["retention"] == "7d"


def test_unwritable_output_fails_before_stories_are_recorded(tmp_path):
    cfg = _cfg(tmp_path)
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    cfg.output.json_output = str(blocker / "new.ndjson")

    with pytest.raises(OutputError):
        run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW)
    assert not Path(cfg.ledger.path).exists()

    cfg.output.json_output = str(tmp_path / "new.ndjson")
    result = run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW)

    assert len(result.new_clusters) == 2
    assert len((tmp_path / "new.ndjson").read_text(encoding="utf-8").splitlines()) == 2


def test_gdelt_source_is_used_without_input(tmp_path):
    cfg = _cfg(tmp_path)
    cfg.gdelt.min_request_interval_seconds = 0
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=PAYLOAD)

    result = run_pipeline(
        cfg,
        tmp_path / "out",
        query="sourcecountry:turkey",
        console=_console(),
        transport=httpx.MockTransport(handler),
        now=NOW,
    )

    assert result.total_clusters == 2
    assert requests[0].url.params["query"] == "sourcecountry:turkey"
    assert requests[0].url.params["timespan"] == "2h"


def test_invalid_input_file_raises_input_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(InputError):
        run_pipeline(_cfg(tmp_path), tmp_path / "out", input_path=path, console=_console(), now=NOW)


def test_invalid_configuration_fails_before_any_io(tmp_path):
    cfg = _cfg(tmp_path)
    cfg.clustering.similarity_threshold = 2.0

    with pytest.raises(ConfigError):
        run_pipeline(cfg, tmp_path / "out", input_path=_input(tmp_path), console=_console(), now=NOW)
    assert not Path(cfg.ledger.path).exists()


def test_window_without_lookback_is_rejected(tmp_path):
    with pytest.raises(ConfigError):
        run_pipeline(_cfg(tmp_path), tmp_path / "out", window=timedelta(hours=1), console=_console())


def test_prune_ledger_reports_removed_entries(tmp_path):
    cfg = _cfg(tmp_path)
    with SqliteSeenLedger(cfg.ledger.path) as ledger:
        ledger.upsert("https://old.com/x", NOW - 10 * DAY_MS)
        ledger.upsert("https://new.com/x", NOW)

    assert prune_ledger(cfg, now=NOW) == 1
