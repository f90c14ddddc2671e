"""
Tests for CLI configuration helpers and the generate-history runner.
"""

import json
import logging
from datetime import date

import pytest

import main


@pytest.fixture
def cli_logger(monkeypatch):
    monkeypatch.setattr(main, "logger", logging.getLogger("historygen"))


class TestConfigHelpers:
    def test_resolve_value_priority(self):
        assert main.resolve_value(5, {"years": 2}, "years", 3) == 5
        assert main.resolve_value(None, {"years": 2}, "years", 3) == 2
        assert main.resolve_value(None, {}, "years", 3) == 3

    def test_load_config_missing(self, tmp_path):
        assert main.load_config(None) == {}
        assert main.load_config(tmp_path / "absent.json") == {}

    def test_load_config_reads_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"history": {"years": 2}}), encoding="utf-8")
        assert main.load_config(path) == {"history": {"years": 2}}

    def test_load_config_invalid_exits(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(SystemExit):
            main.load_config(path)


class TestRunHistoryGeneration:
    def test_jsonl_with_trace(self, cli_logger, tmp_path):
        main.run_history_generation(
            years=1,
            seed="cli-seed",
            start=date(2023, 1, 1),
            output_dir=tmp_path,
            output_format="jsonl",
            quality_trace=True,
        )
        lines = (tmp_path / "history.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 365 * 3
        assert json.loads(lines[0])["location"] == "west"
        trace = json.loads((tmp_path / "supplier_quality_trace.json").read_text(encoding="utf-8"))
        assert trace

    def test_csv_output(self, cli_logger, tmp_path):
        main.run_history_generation(
            years=1,
            seed="cli-seed",
            start=date(2023, 1, 1),
            output_dir=tmp_path,
            output_format="csv",
            quality_trace=False,
        )
        assert (tmp_path / "reports.csv").exists()
        assert not (tmp_path / "supplier_quality_trace.json").exists()
