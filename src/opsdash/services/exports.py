from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.utils.exceptions import IllegalCharacterError

from opsdash.services.batches import batch_totals
from opsdash.services.metrics import StatsView
from opsdash.store.state import AppState

CURRENCY = "৳"


class ExportError(RuntimeError):
    pass


def export_filename(product_name: str, day: date) -> str:
    return f"{product_name}_{day.isoformat()}.xlsx"


def export_excel(
    state: AppState,
    stats: StatsView,
    out_dir: Path,
    product_name: str,
    day: date,
) -> Path:
    out_path = Path(out_dir) / export_filename(product_name, day)
    try:
        wb = Workbook()
        wb.remove(wb.active)

        summary = wb.create_sheet(title="Summary")
        for row in _summary_rows(state, stats):
            summary.append(row)
        _write_sheet(wb.create_sheet(title="Sales"), _sales_rows(state))
        _write_sheet(wb.create_sheet(title="Expenses"), _expense_rows(state))
        _write_sheet(wb.create_sheet(title="Financial Report"), _daily_rows(stats))
        _write_sheet(wb.create_sheet(title="Leaderboard"), _leaderboard_rows(stats))
        _write_sheet(wb.create_sheet(title="Batches"), _batch_rows(state))

        out_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(out_path)
    except (OSError, ValueError, IllegalCharacterError) as exc:
        raise ExportError(f"Could not write {out_path}: {exc}") from exc
    return out_path


def _summary_rows(state: AppState, stats: StatsView) -> list[list[Any]]:
    return [
        ["Metric", "Value"],
        ["Report Date", stats.report_date],
        ["Monthly Target", state.monthly_target],
        ["Total Revenue", stats.total_revenue],
        ["Revenue Gap", stats.target_left],
        ["Daily Goal Required", round(stats.daily_required)],
        ["Total Ad Spend", stats.total_ad_cost],
        ["Operational Expenses", stats.operational_costs],
        ["Net Profit", stats.net_profit],
        ["Global ROI", round(stats.roi, 2)],
        ["Progress %", round(stats.progress_percent, 1)],
        ["Total Sales Count", len(state.sales)],
    ]


def _sales_rows(state: AppState) -> list[dict[str, Any]]:
    agents = {agent.id: agent.name for agent in state.agents}
    return [
        {
            "Transaction ID": sale.id,
            "Date": sale.created_at,
            "Channel": sale.type.upper(),
            "Agent Name": agents.get(sale.agent_id or "", "Website (Direct)"),
            f"Revenue ({CURRENCY})": sale.amount,
            f"Ad Cost ({CURRENCY})": sale.ad_cost,
            "ROI": f"{sale.amount / sale.ad_cost:.2f}" if sale.ad_cost > 0 else "N/A",
            "Comment": sale.comment or "",
        }
        for sale in state.sales
    ]


def _expense_rows(state: AppState) -> list[dict[str, Any]]:
    return [
        {
            "Expense ID": expense.id,
            "Date": expense.date,
            "Category": expense.type.upper(),
            "Description": expense.description,
            f"Amount ({CURRENCY})": expense.amount,
        }
        for expense in state.expenses
    ]


def _daily_rows(stats: StatsView) -> list[dict[str, Any]]:
    return [
        {
            "Date": row.date,
            "Call Revenue": row.call_revenue,
            "Website Revenue": row.website_revenue,
            "Hand Cash Revenue": row.hand_cash_revenue,
            "Batch Revenue": row.batch_revenue,
            "Total Revenue": row.revenue,
            "Ad Spend": row.ad_spend,
            "Expenses": row.expenses,
            "Profit": row.profit,
        }
        for row in stats.daily_breakdown
    ]


def _leaderboard_rows(stats: StatsView) -> list[dict[str, Any]]:
    return [
        {
            "Rank": rank,
            "Agent": entry.name,
            "Sales": entry.count,
            f"Revenue ({CURRENCY})": entry.revenue,
            f"Ad Cost ({CURRENCY})": entry.ad_cost,
            f"Profit ({CURRENCY})": entry.profit,
            "ROI": round(entry.roi, 2),
        }
        for rank, entry in enumerate(stats.agent_leaderboard, start=1)
    ]


def _batch_rows(state: AppState) -> list[dict[str, Any]]:
    rows = []
    for batch in state.batch_projects:
        totals = batch_totals(batch)
        rows.append(
            {
                "Course": batch.course_name,
                "Start Date": batch.start_date,
                "Students": len(batch.students),
                f"Paid ({CURRENCY})": totals.paid,
                f"Due ({CURRENCY})": totals.due,
                f"Ad Spend ({CURRENCY})": totals.ads,
                f"Profit ({CURRENCY})": totals.profit,
            }
        )
    return rows


def _write_sheet(ws, rows: Iterable[dict[str, Any]]) -> None:
    rows = list(rows)
    if not rows:
        return
    headers = list(rows[0].keys())
    ws.append(headers)
    for row in rows:
        ws.append([row[h] for h in headers])
