from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from openpyxl import load_workbook
from typer.testing import CliRunner

from hoursforecast.agents import AnalystAgent, ReporterAgent
from hoursforecast.cli import app
from hoursforecast.config import default_config
from hoursforecast.db import default_db_path, get_connection, list_quotes
from hoursforecast.quotes import build_snapshot
from hoursforecast.types import RateCategory

RAW = {
    "start": "2025-01-01",
    "end": "2025-03-31",
    "policy": "Weekly",
    "days": {
        "Monday": {"selected": True, "hours": 3},
        "Wednesday": {"selected": True, "hours": 2.5, "shift": "Evening"},
        "Saturday": {"selected": True, "hours": 4},
    },
    "rates": {"weekday": 67.56, "weekday_evening": 74.44, "saturday": 95.07, "public_holiday": 150.1},
    "holidays": "2025-01-01, 2025-01-27",
    "travel": [{"kind": "provider_travel", "distance": 40, "rate": 0.99}],
}


def test_analyst_runs_forecast_and_budget():
    analysis = AnalystAgent().run({**RAW, "budget_locked": True, "budget": 5000})
    result = analysis.result

    assert result.ok
    b = result.breakdown
    assert b.counted_weekdays + b.counted_saturdays + b.counted_sundays + b.counted_holidays == b.counted_days
    assert b.counted_holidays == 2
    assert result.grand_total > result.total_pay
    assert analysis.suggestion is not None
    assert analysis.suggestion.scaling_factor > 0


def test_analyst_reports_invalid_range():
    analysis = AnalystAgent().run({**RAW, "end": "2024-12-31"})
    assert analysis.inputs is None
    assert not analysis.result.ok
    assert analysis.result.total_pay == 0
    assert analysis.suggestion is None


@pytest.mark.parametrize("bad", ["inf", "Infinity", "1e400"])
def test_analyst_treats_infinite_rates_and_budget_as_zero(bad):
    raw = {**RAW, "rates": {"weekday": bad, "saturday": 95.07}, "budget_locked": True, "budget": bad}
    analysis = AnalystAgent().run(raw)

    assert analysis.result.ok
    assert analysis.inputs.rate_sheet.amount(RateCategory.WEEKDAY_DAY) == 0.0
    assert analysis.inputs.target_budget == 0.0
    assert analysis.suggestion is None
    json.dumps(analysis.to_dict(), allow_nan=False)


def test_reporter_writes_pack(tmp_path: Path):
    analysis = AnalystAgent().run(RAW)
    inputs = analysis.inputs
    quotes = [
        build_snapshot("Q1 supports", inputs.rate_sheet, analysis.result, inputs.date_range, inputs.policy),
        build_snapshot("Q1 supports: copy", inputs.rate_sheet, analysis.result, inputs.date_range, inputs.policy),
    ]
    out_dir = tmp_path / "out"
    ReporterAgent().package(out_dir=out_dir, quotes=quotes)

    assert (out_dir / "charts" / "pay_by_category.png").exists()
    assert (out_dir / "quotes.json").exists()
    agreement = (out_dir / "agreement.md").read_text(encoding="utf-8")
    assert "Q1 supports" in agreement
    assert "Agreement total" in agreement

    wb = load_workbook(out_dir / "quote_pack.xlsx")
    assert wb.sheetnames[0] == "Summary"
    assert len(wb.sheetnames) == 3


def test_cli_forecast_save_and_pack(tmp_path: Path):
    runner = CliRunner()
    inputs_path = tmp_path / "inputs.yaml"
    inputs_path.write_text(yaml.safe_dump(RAW), encoding="utf-8")
    db_path = tmp_path / "quotes.db"

    result = runner.invoke(
        app,
        [
            "forecast",
            "--inputs", str(inputs_path),
            "--budget", "5000",
            "--save", "CLI quote",
            "--schedule", str(tmp_path / "schedule.csv"),
            "--db", str(db_path),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Budget scaling factor" in result.output
    assert "Budget vs. Projected" in result.output
    assert (tmp_path / "schedule.csv").exists()

    conn = get_connection(db_path)
    try:
        saved = list_quotes(conn)
    finally:
        conn.close()
    assert [q.description for q in saved] == ["CLI quote"]

    result = runner.invoke(app, ["pack", "--out", str(tmp_path / "pack"), "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "pack" / "agreement.md").exists()

    result = runner.invoke(app, ["delete-quote", saved[0].id, "--db", str(db_path)])
    assert result.exit_code == 0, result.output


def test_cli_forecast_invalid_range_exits_nonzero(tmp_path: Path):
    inputs_path = tmp_path / "inputs.yaml"
    inputs_path.write_text(yaml.safe_dump({**RAW, "start": "garbage"}), encoding="utf-8")
    result = CliRunner().invoke(app, ["forecast", "--inputs", str(inputs_path), "--db", str(tmp_path / "q.db")])
    assert result.exit_code == 1


def test_cli_synth_and_match(tmp_path: Path):
    runner = CliRunner()
    catalog = tmp_path / "catalog.csv"
    result = runner.invoke(app, ["synth", "--out", str(catalog), "--items", "2"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["match", "--catalog", str(catalog), "--base", "01_001_0107_1_1"])
    assert result.exit_code == 0, result.output
    assert "01_001_0107_1_6" in result.output

    result = runner.invoke(app, ["match", "--catalog", str(catalog), "--query", "sunday", "--limit", "1"])
    assert result.exit_code == 0, result.output


def test_cli_uses_database_from_settings_file(tmp_path: Path):
    runner = CliRunner()
    db_path = tmp_path / "from_settings" / "quotes.db"
    settings = tmp_path / "settings.yaml"
    settings.write_text(yaml.safe_dump({"rate_field": "QLD", "db_path": str(db_path)}), encoding="utf-8")
    inputs_path = tmp_path / "inputs.yaml"
    inputs_path.write_text(yaml.safe_dump(RAW), encoding="utf-8")

    result = runner.invoke(
        app, ["forecast", "--inputs", str(inputs_path), "--config", str(settings), "--save", "Settings quote"]
    )
    assert result.exit_code == 0, result.output
    assert db_path.exists()

    conn = get_connection(db_path)
    try:
        assert [q.description for q in list_quotes(conn)] == ["Settings quote"]
    finally:
        conn.close()

    result = runner.invoke(app, ["pack", "--out", str(tmp_path / "pack"), "--config", str(settings)])
    assert result.exit_code == 0, result.output
    assert "Settings quote" in (tmp_path / "pack" / "agreement.md").read_text(encoding="utf-8")


def test_database_path_env_overrides_packaged_default(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOURSFORECAST_DB", str(tmp_path / "env.db"))
    assert default_db_path() == tmp_path / "env.db"
    assert default_config().db_path == str(tmp_path / "env.db")
