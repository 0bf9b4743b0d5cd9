from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import date

from opsdash.domain import rules
from opsdash.domain.models import Agent, Expense, Lead, Sale
from opsdash.domain.stages import ExpenseType, LeadStatus, SaleType
from opsdash.services.utils import new_id, noon_timestamp, utc_now_iso
from opsdash.store.state import AppState

AGENT_SALE_TYPES = {SaleType.CALL.value, SaleType.HAND_CASH.value}


def add_sale(
    sales: list[Sale],
    *,
    sale_type: str,
    amount: object,
    ad_cost: object = 0,
    day: date,
    agent_id: str | None = None,
    comment: str | None = None,
    agents: list[Agent] | None = None,
) -> list[Sale]:
    sale = _build_sale(
        new_id(), sale_type, amount, ad_cost, day, agent_id, comment, agents
    )
    return [sale, *sales]


def update_sale(
    sales: list[Sale],
    sale_id: str,
    *,
    sale_type: str,
    amount: object,
    ad_cost: object = 0,
    day: date,
    agent_id: str | None = None,
    comment: str | None = None,
    agents: list[Agent] | None = None,
) -> list[Sale]:
    rules.find(sales, sale_id, "Sale")
    updated = _build_sale(sale_id, sale_type, amount, ad_cost, day, agent_id, comment, agents)
    return [updated if sale.id == sale_id else sale for sale in sales]


def delete_sale(sales: list[Sale], sale_id: str) -> list[Sale]:
    rules.find(sales, sale_id, "Sale")
    return [sale for sale in sales if sale.id != sale_id]


def add_bulk_sales(
    sales: list[Sale],
    entries: Mapping[str, tuple[object, object]],
    day: date,
    agents: list[Agent] | None = None,
) -> list[Sale]:
    """Record one call sale per agent; agents without a positive amount are skipped."""
    batch: list[Sale] = []
    for agent_id, (amount, ad_cost) in entries.items():
        try:
            parsed = rules.parse_amount(amount, "amount", positive=True)
        except rules.ValidationError:
            continue
        batch.append(
            _build_sale(new_id(), SaleType.CALL.value, parsed, ad_cost, day, agent_id, None, agents)
        )
    return [*batch, *sales]


def reset_financials(state: AppState) -> None:
    state.replace("sales", [])
    state.replace("expenses", [])


def add_expense(
    expenses: list[Expense],
    *,
    expense_type: str,
    amount: object,
    day: date,
    description: str = "",
    agent_id: str | None = None,
) -> list[Expense]:
    expense = _build_expense(new_id(), expense_type, amount, day, description, agent_id, utc_now_iso())
    return [expense, *expenses]


def update_expense(
    expenses: list[Expense],
    expense_id: str,
    *,
    expense_type: str,
    amount: object,
    day: date,
    description: str = "",
    agent_id: str | None = None,
) -> list[Expense]:
    current = rules.find(expenses, expense_id, "Expense")
    updated = _build_expense(
        expense_id, expense_type, amount, day, description, agent_id, current.created_at
    )
    return [updated if expense.id == expense_id else expense for expense in expenses]


def delete_expense(expenses: list[Expense], expense_id: str) -> list[Expense]:
    rules.find(expenses, expense_id, "Expense")
    return [expense for expense in expenses if expense.id != expense_id]


def add_lead(
    leads: list[Lead],
    *,
    name: str,
    phone: str = "",
    source: str = "",
    course: str = "",
) -> list[Lead]:
    lead = Lead(
        id=new_id(),
        name=rules.require(name, "name"),
        phone=phone.strip(),
        source=source.strip(),
        course=course.strip(),
        status=LeadStatus.ACTIVE.value,
        created_at=utc_now_iso(),
    )
    return [lead, *leads]


def set_lead_status(leads: list[Lead], lead_id: str, status: str) -> list[Lead]:
    rules.validate_enum(status, [s.value for s in LeadStatus], "status")
    rules.find(leads, lead_id, "Lead")
    return [replace(lead, status=status) if lead.id == lead_id else lead for lead in leads]


def delete_lead(leads: list[Lead], lead_id: str) -> list[Lead]:
    rules.find(leads, lead_id, "Lead")
    return [lead for lead in leads if lead.id != lead_id]


def _build_sale(
    sale_id: str,
    sale_type: str,
    amount: object,
    ad_cost: object,
    day: date,
    agent_id: str | None,
    comment: str | None,
    agents: list[Agent] | None,
) -> Sale:
    rules.validate_enum(sale_type, [t.value for t in SaleType], "type")
    parsed_amount = rules.parse_amount(amount, "amount", positive=True)
    parsed_ad_cost = rules.parse_amount(ad_cost, "ad cost")
    if sale_type not in AGENT_SALE_TYPES:
        agent_id = None
    if agent_id and agents is not None:
        rules.find(agents, agent_id, "Agent")
    return Sale(
        id=sale_id,
        type=sale_type,
        amount=parsed_amount,
        ad_cost=parsed_ad_cost,
        created_at=noon_timestamp(day),
        agent_id=agent_id or None,
        comment=comment.strip() if comment and comment.strip() else None,
    )


def _build_expense(
    expense_id: str,
    expense_type: str,
    amount: object,
    day: date,
    description: str,
    agent_id: str | None,
    created_at: str,
) -> Expense:
    rules.validate_enum(expense_type, [t.value for t in ExpenseType], "type")
    return Expense(
        id=expense_id,
        type=expense_type,
        amount=rules.parse_amount(amount, "amount", positive=True),
        date=day.isoformat(),
        description=description.strip(),
        agent_id=agent_id or None,
        created_at=created_at,
    )
