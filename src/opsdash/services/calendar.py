from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from zoneinfo import ZoneInfo

from opsdash.domain.models import BatchProject, Expense, Sale, Task
from opsdash.services.metrics import DEFAULT_TIMEZONE, local_day
from opsdash.store.state import AppState


@dataclass(frozen=True)
class DayAgenda:
    day: str
    tasks: list[Task]
    sales: list[Sale]
    expenses: list[Expense]
    batches: list[BatchProject]

    @property
    def revenue(self) -> int:
        sales_revenue = sum(sale.amount for sale in self.sales)
        batch_revenue = sum(s.paid for batch in self.batches for s in batch.students)
        return sales_revenue + batch_revenue

    @property
    def spend(self) -> int:
        return sum(expense.amount for expense in self.expenses) + sum(sale.ad_cost for sale in self.sales)


def day_agenda(state: AppState, day: date, timezone: str = DEFAULT_TIMEZONE) -> DayAgenda:
    tz = ZoneInfo(timezone)

    def on_day(value: str | None) -> bool:
        return local_day(value, tz) == day

    return DayAgenda(
        day=day.isoformat(),
        tasks=[task for task in state.tasks if on_day(task.due_date)],
        sales=[sale for sale in state.sales if on_day(sale.created_at)],
        expenses=[expense for expense in state.expenses if on_day(expense.date)],
        batches=[batch for batch in state.batch_projects if on_day(batch.created_at)],
    )
