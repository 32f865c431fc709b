"""Tests for the run_analysis.py command-line entry point."""

import json
import sys

import pytest

import run_analysis


POLARIZED = {
    "ratings": {"1": 40, "2": 2, "3": 2, "4": 2, "5": 54},
    "total_reviews": 100,
    "place_name": "Sample Cafe",
}


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["run_analysis.py", *argv])
    run_analysis.main()


class TestCli:

    def test_text_report(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "dataset.json"
        path.write_text(json.dumps(POLARIZED), encoding="utf-8")
        _run(monkeypatch, str(path))
        out = capsys.readouterr().out
        assert "Sample Cafe" in out
        assert "Trust score: 10 (very_low)" in out
        assert "[HIGH  ]" in out

    def test_json_output(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "dataset.json"
        path.write_text(json.dumps(POLARIZED), encoding="utf-8")
        _run(monkeypatch, str(path), "--json", "--mode", "lenient")
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "completed"
        assert data["analysis"]["details"]["analysis_mode"] == "lenient"

    def test_insufficient_data_report(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "dataset.json"
        path.write_text(json.dumps({"total_reviews": 8, "place_name": "Tiny Bar"}), encoding="utf-8")
        _run(monkeypatch, str(path), "--min-reviews", "10")
        out = capsys.readouterr().out
        assert "Tiny Bar: not enough reviews to analyze (8 < 10)" in out

    def test_missing_file(self, tmp_path, monkeypatch):
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, str(tmp_path / "nope.json"))
        assert exc.value.code == 1

    def test_not_an_object(self, tmp_path, monkeypatch):
        path = tmp_path / "dataset.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            _run(monkeypatch, str(path))
        assert exc.value.code == 1
