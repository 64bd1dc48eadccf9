import json
from pathlib import Path

import pytest

from rams_engine.cli import build_parser, main


def test_validate_reports_counts(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["validate"]) == 0
    assert capsys.readouterr().out.strip() == "ok: 14 hazards, 27 controls, 70 activities"


def test_aggregate_prints_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["aggregate", "distribution_board", "live_working"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["activity_codes"] == ["distribution_board", "live_working"]
    assert payload["permits"] == ["Live Working Permit"]
    assert payload["summary"]["total"] == 4


def test_activities_filtered_by_category(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["activities", "--category", "power_distribution"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines
    assert all(line.split("\t")[1] == "power_distribution" for line in lines)


def test_invalid_knowledge_base_exits_nonzero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "activities.json").write_text(
        json.dumps({"activities": [{"code": "a", "name": "A", "description": "a", "category": "x", "hazard_codes": ["h"]}]})
    )
    config = tmp_path / "rams.toml"
    config.write_text(f"[knowledge_base]\ndata_dir = \"{tmp_path.as_posix()}\"\n")

    assert main(["--config", str(config), "validate"]) == 1
    assert "activity 'a' cites unknown hazard 'h'" in capsys.readouterr().err


def test_serve_arguments_parse() -> None:
    args = build_parser().parse_args(["serve", "--port", "0"])
    assert args.command == "serve"
    assert args.port == 0
