"""Dashboard statistics derived from the live collections.

``compute_stats`` is pure: the same collections, target, sources and
``now`` always give the same ``StatsView``. Every date comparison happens
in one reporting timezone.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from opsdash.domain.models import Agent, BatchProject, Expense, Sale
from opsdash.domain.stages import ALL_SOURCES, ExpenseType, RevenueSource, SaleType

DEFAULT_TIMEZONE = "Asia/Dhaka"
SALE_TYPES = frozenset(sale_type.value for sale_type in SaleType)


@dataclass(frozen=True)
class DailyRow:
    date: str
    call_revenue: int | float
    website_revenue: int | float
    hand_cash_revenue: int | float
    batch_revenue: int | float
    revenue: int | float
    ad_spend: int | float
    expenses: int | float
    profit: int | float


@dataclass(frozen=True)
class AgentStats:
    agent_id: str
    name: str
    avatar: str
    color: str
    revenue: int | float
    ad_cost: int | float
    profit: int | float
    roi: float
    count: int
    daily_breakdown: tuple[DailyRow, ...]


@dataclass(frozen=True)
class StatsView:
    report_date: str
    remaining_days: int
    total_revenue: int | float
    call_revenue: int | float
    website_revenue: int | float
    hand_cash_revenue: int | float
    batch_revenue: int | float
    total_ad_cost: int | float
    operational_costs: int | float
    net_profit: int | float
    roi: float
    target_left: int | float
    daily_required: float
    progress_percent: float
    today_revenue: int | float
    today_ad_cost: int | float
    today_expenses: int | float
    today_profit: int | float
    sales_count: int
    agent_leaderboard: tuple[AgentStats, ...]
    daily_breakdown: tuple[DailyRow, ...]


@dataclass
class _DayTotals:
    revenue_by_channel: dict[str, int | float] = field(
        default_factory=lambda: {source.value: 0 for source in RevenueSource}
    )
    ad_spend: int | float = 0
    expenses: int | float = 0

    @property
    def revenue(self) -> int | float:
        return sum(self.revenue_by_channel.values())

    @property
    def active(self) -> bool:
        return bool(self.revenue or self.ad_spend or self.expenses)

    def row(self, day: date) -> DailyRow:
        return DailyRow(
            date=day.isoformat(),
            call_revenue=self.revenue_by_channel[RevenueSource.CALL.value],
            website_revenue=self.revenue_by_channel[RevenueSource.WEBSITE.value],
            hand_cash_revenue=self.revenue_by_channel[RevenueSource.HAND_CASH.value],
            batch_revenue=self.revenue_by_channel[RevenueSource.BATCH.value],
            revenue=self.revenue,
            ad_spend=self.ad_spend,
            expenses=self.expenses,
            profit=self.revenue - self.ad_spend - self.expenses,
        )


class _MonthLedger:
    """Per-day totals for the calendar month containing ``today``."""

    def __init__(self, today: date) -> None:
        self.today = today
        self.last_day = calendar.monthrange(today.year, today.month)[1]
        self.days = {
            date(today.year, today.month, number): _DayTotals()
            for number in range(1, self.last_day + 1)
        }

    def get(self, day: date | None) -> _DayTotals | None:
        if day is None:
            return None
        return self.days.get(day)

    def to_date(self) -> list[_DayTotals]:
        return [totals for day, totals in self.days.items() if day <= self.today]

    def breakdown(self) -> tuple[DailyRow, ...]:
        rows = [totals.row(day) for day, totals in self.days.items() if totals.active]
        return tuple(sorted(rows, key=lambda row: row.date, reverse=True))


def compute_stats(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    batch_projects: Iterable[BatchProject],
    agents: Iterable[Agent],
    monthly_target: int | float,
    selected_sources: Iterable[str] | None,
    now: datetime,
    timezone: str = DEFAULT_TIMEZONE,
) -> StatsView:
    tz = ZoneInfo(timezone)
    local_now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)
    today = local_now.date()
    sources = ALL_SOURCES if selected_sources is None else frozenset(selected_sources)
    include_batch = RevenueSource.BATCH.value in sources
    sales = [sale for sale in sales if sale.type in sources and sale.type in SALE_TYPES]
    expenses = list(expenses)
    batch_projects = list(batch_projects) if include_batch else []

    ledger = _MonthLedger(today)
    sales_count = 0
    for sale in sales:
        totals = ledger.get(local_day(sale.created_at, tz))
        if totals is None:
            continue
        totals.revenue_by_channel[sale.type] += _num(sale.amount)
        totals.ad_spend += _num(sale.ad_cost)
        if local_day(sale.created_at, tz) <= today:
            sales_count += 1
    for expense in expenses:
        totals = ledger.get(local_day(expense.date, tz))
        if totals is None:
            continue
        if expense.type == ExpenseType.ADCOST.value:
            totals.ad_spend += _num(expense.amount)
        else:
            totals.expenses += _num(expense.amount)
    for batch in batch_projects:
        totals = ledger.get(local_day(batch.created_at, tz))
        if totals is not None:
            totals.revenue_by_channel[RevenueSource.BATCH.value] += _paid(batch)
        for cost in batch.ad_costs:
            cost_totals = ledger.get(local_day(cost.date, tz))
            if cost_totals is not None:
                cost_totals.ad_spend += _num(cost.amount)

    month = ledger.to_date()
    by_channel = {
        source.value: sum(day.revenue_by_channel[source.value] for day in month)
        for source in RevenueSource
    }
    total_revenue = sum(by_channel.values())
    total_ad_cost = sum(day.ad_spend for day in month)
    operational_costs = sum(day.expenses for day in month)
    net_profit = total_revenue - total_ad_cost - operational_costs

    remaining_days = max(1, ledger.last_day - today.day + 1)
    target_left = max(0, monthly_target - total_revenue)
    progress = min(100.0, total_revenue / monthly_target * 100) if monthly_target > 0 else 0.0
    today_totals = ledger.days[today]

    return StatsView(
        report_date=today.isoformat(),
        remaining_days=remaining_days,
        total_revenue=total_revenue,
        call_revenue=by_channel[RevenueSource.CALL.value],
        website_revenue=by_channel[RevenueSource.WEBSITE.value],
        hand_cash_revenue=by_channel[RevenueSource.HAND_CASH.value],
        batch_revenue=by_channel[RevenueSource.BATCH.value],
        total_ad_cost=total_ad_cost,
        operational_costs=operational_costs,
        net_profit=net_profit,
        roi=_ratio(total_revenue, total_ad_cost),
        target_left=target_left,
        daily_required=target_left / remaining_days,
        progress_percent=float(progress),
        today_revenue=today_totals.revenue,
        today_ad_cost=today_totals.ad_spend,
        today_expenses=today_totals.expenses,
        today_profit=today_totals.revenue - today_totals.ad_spend - today_totals.expenses,
        sales_count=sales_count,
        agent_leaderboard=_leaderboard(agents, sales, batch_projects, today, tz),
        daily_breakdown=ledger.breakdown(),
    )


def _leaderboard(
    agents: Iterable[Agent],
    sales: list[Sale],
    batch_projects: list[BatchProject],
    today: date,
    tz: ZoneInfo,
) -> tuple[AgentStats, ...]:
    board: list[AgentStats] = []
    for agent in agents:
        ledger = _MonthLedger(today)
        revenue: int | float = 0
        ad_cost: int | float = 0
        count = 0
        for sale in sales:
            if sale.agent_id != agent.id:
                continue
            day = local_day(sale.created_at, tz)
            totals = ledger.get(day)
            if totals is None or day > today:
                continue
            totals.revenue_by_channel[sale.type] += _num(sale.amount)
            totals.ad_spend += _num(sale.ad_cost)
            revenue += _num(sale.amount)
            ad_cost += _num(sale.ad_cost)
            count += 1
        # Advisor revenue counts across every batch, not only this month's.
        for batch in batch_projects:
            advised = sum(_num(s.paid) for s in batch.students if s.advisor == agent.name)
            if not advised:
                continue
            revenue += advised
            totals = ledger.get(local_day(batch.created_at, tz))
            if totals is not None:
                totals.revenue_by_channel[RevenueSource.BATCH.value] += advised
        board.append(
            AgentStats(
                agent_id=agent.id,
                name=agent.name,
                avatar=agent.avatar,
                color=agent.color,
                revenue=revenue,
                ad_cost=ad_cost,
                profit=revenue - ad_cost,
                roi=_ratio(revenue, ad_cost),
                count=count,
                daily_breakdown=ledger.breakdown(),
            )
        )
    board.sort(key=lambda entry: entry.revenue, reverse=True)
    return tuple(board)


def local_day(value: Any, tz: ZoneInfo) -> date | None:
    """Calendar day of a date or timestamp string in the reporting zone."""
    if not isinstance(value, str) or not value:
        return None
    if len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(tz).date()


def _num(value: Any) -> int | float:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return int(number) if number.is_integer() else number


def _paid(batch: BatchProject) -> int | float:
    return sum(_num(student.paid) for student in batch.students)


def _ratio(revenue: int | float, cost: int | float) -> float:
    return revenue / cost if cost > 0 else 0.0
