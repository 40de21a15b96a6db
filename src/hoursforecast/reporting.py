from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt
import matplotlib.ticker as mtick
import pandas as pd
from openpyxl import Workbook
from openpyxl.utils.dataframe import dataframe_to_rows

from .quotes import QuoteSnapshot
from .types import RateCategory


def write_assumptions(path: str | Path, assumptions: dict[str, Any]) -> None:
    path = Path(path)
    path.write_text(json.dumps(assumptions, indent=2, default=str), encoding="utf-8")


def quotes_summary_frame(quotes: list[QuoteSnapshot]) -> pd.DataFrame:
    rows = [
        [
            q.description,
            q.date_range.start.isoformat(),
            q.date_range.end.isoformat(),
            q.policy,
            q.total_hours,
            q.total_pay,
        ]
        for q in quotes
    ]
    return pd.DataFrame(rows, columns=["Description", "From", "To", "Recurrence", "Total Hours", "Total Pay"])


def quote_lines_frame(quote: QuoteSnapshot) -> pd.DataFrame:
    """Line items of one quote: category, catalog item, rate, hours and pay."""
    hours = quote.forecast.get("hours", {})
    pay = quote.forecast.get("pay", {})
    rows = []
    for cat in RateCategory:
        entry = quote.rate_sheet.get(cat.value, {})
        rows.append(
            [
                cat.label,
                entry.get("catalog_code") or "",
                entry.get("catalog_name") or "",
                float(entry.get("amount") or 0.0),
                float(hours.get(cat.value, 0.0)),
                float(pay.get(cat.value, 0.0)),
            ]
        )
    return pd.DataFrame(rows, columns=["Category", "Item Code", "Item Name", "Rate", "Hours", "Pay"])


def write_agreement(path: str | Path, quotes: list[QuoteSnapshot], title: str = "Service Agreement Schedule") -> None:
    path = Path(path)
    lines: list[str] = []
    lines.append(f"# {title}")
    lines.append("")
    grand_total = 0.0
    for idx, quote in enumerate(quotes, start=1):
        lines.append(f"## {idx}. {quote.description}")
        lines.append(
            f"- Period: {quote.date_range.start.isoformat()} to {quote.date_range.end.isoformat()}"
            f" ({quote.policy or 'custom'})"
        )
        for _, row in quote_lines_frame(quote).iterrows():
            if row["Hours"] == 0 and row["Pay"] == 0:
                continue
            item = f" [{row['Item Code']}] {row['Item Name']}" if row["Item Code"] else ""
            lines.append(
                f"- {row['Category']}{item}: {row['Hours']:,.2f} h @ ${row['Rate']:,.2f} = ${row['Pay']:,.2f}"
            )
        travel_total = float(quote.forecast.get("travel_total", 0.0))
        if travel_total:
            lines.append(f"- Travel: ${travel_total:,.2f}")
        quote_total = float(quote.forecast.get("grand_total", quote.total_pay))
        lines.append(f"- **Total: ${quote_total:,.2f}**")
        lines.append("")
        grand_total += quote_total
    lines.append(f"**Agreement total: ${grand_total:,.2f}**")
    lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")


def save_pay_chart(out_dir: str | Path, quotes: list[QuoteSnapshot]) -> Path | None:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    if not quotes:
        return None

    labels = [q.description for q in quotes]
    bottom = [0.0] * len(quotes)
    plt.figure(figsize=(10, 4))
    for cat in RateCategory:
        values = [float(q.forecast.get("pay", {}).get(cat.value, 0.0)) for q in quotes]
        if not any(values):
            continue
        plt.bar(labels, values, bottom=bottom, label=cat.label)
        bottom = [b + v for b, v in zip(bottom, values)]
    plt.title("Forecast Pay by Category")
    plt.ylabel("Pay")
    plt.gca().yaxis.set_major_formatter(mtick.StrMethodFormatter("${x:,.0f}"))
    plt.grid(True, axis="y", alpha=0.25)
    plt.legend()
    p = out_dir / "pay_by_category.png"
    plt.tight_layout()
    plt.savefig(p, dpi=160)
    plt.close()
    return p


def write_quote_pack(path: str | Path, quotes: list[QuoteSnapshot]) -> None:
    path = Path(path)
    wb = Workbook()
    wb.remove(wb.active)

    _add_df_sheet(wb, "Summary", quotes_summary_frame(quotes))
    for idx, quote in enumerate(quotes, start=1):
        _add_df_sheet(wb, f"{idx} - {_safe_sheet_title(quote.description)}", quote_lines_frame(quote))

    wb.save(path)


def write_schedule(path: str | Path, schedule: pd.DataFrame) -> None:
    out = schedule.copy()
    out["Date"] = pd.to_datetime(out["Date"]).dt.strftime("%Y-%m-%d")
    out.to_csv(Path(path), index=False)


def _add_df_sheet(wb: Workbook, title: str, df: pd.DataFrame) -> None:
    ws = wb.create_sheet(title=title[:31])
    for r in dataframe_to_rows(df, index=False, header=True):
        ws.append(r)
    ws.freeze_panes = "A2"


def _safe_sheet_title(s: str) -> str:
    # Excel forbids []:*?/\ in sheet names
    return "".join(ch if ch not in "[]:*?/\\" else "_" for ch in s).strip() or "Quote"
