from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date

from opsdash.domain import rules
from opsdash.domain.models import BatchAdCost, BatchProject, Student
from opsdash.services.utils import new_id, utc_now_iso

STUDENT_TEXT_FIELDS = {"name", "number", "email", "advisor"}
STUDENT_AMOUNT_FIELDS = {"paid", "due"}


@dataclass(frozen=True)
class BatchTotals:
    paid: int
    due: int
    ads: int

    @property
    def profit(self) -> int:
        return self.paid - self.ads


def add_batch(
    batches: list[BatchProject],
    *,
    course_name: str,
    landing_page: str = "",
    start_date: date | None = None,
) -> list[BatchProject]:
    batch = BatchProject(
        id=new_id(),
        course_name=rules.require(course_name, "course name"),
        landing_page=landing_page.strip(),
        start_date=(start_date or date.today()).isoformat(),
        created_at=utc_now_iso(),
    )
    return [batch, *batches]


def update_batch_header(
    batches: list[BatchProject],
    batch_id: str,
    *,
    course_name: str,
    landing_page: str = "",
    start_date: date | None = None,
) -> list[BatchProject]:
    current = rules.find(batches, batch_id, "Batch")
    updated = replace(
        current,
        course_name=rules.require(course_name, "course name"),
        landing_page=landing_page.strip(),
        start_date=start_date.isoformat() if start_date else current.start_date,
    )
    return _swap(batches, updated)


def delete_batch(batches: list[BatchProject], batch_id: str) -> list[BatchProject]:
    rules.find(batches, batch_id, "Batch")
    return [batch for batch in batches if batch.id != batch_id]


def add_student(
    batches: list[BatchProject],
    batch_id: str,
    *,
    name: str = "",
    number: str = "",
    email: str = "",
    paid: object = 0,
    due: object = 0,
    access: bool = False,
    advisor: str = "",
) -> list[BatchProject]:
    batch = rules.find(batches, batch_id, "Batch")
    student = Student(
        id=new_id(),
        name=name.strip(),
        number=number.strip(),
        email=email.strip(),
        paid=rules.parse_amount(paid, "paid"),
        due=rules.parse_amount(due, "due"),
        access=access,
        advisor=advisor,
    )
    return _swap(batches, replace(batch, students=(*batch.students, student)))


def update_student(
    batches: list[BatchProject],
    batch_id: str,
    student_id: str,
    field: str,
    value: object,
) -> list[BatchProject]:
    batch = rules.find(batches, batch_id, "Batch")
    student = rules.find(batch.students, student_id, "Student")
    if field in STUDENT_AMOUNT_FIELDS:
        value = rules.parse_amount(value, field)
    elif field == "access":
        value = bool(value)
    elif field in STUDENT_TEXT_FIELDS:
        value = "" if value is None else str(value)
    else:
        raise rules.ValidationError(f"Unknown student field: {field}")
    updated = replace(student, **{field: value})
    students = tuple(updated if s.id == student_id else s for s in batch.students)
    return _swap(batches, replace(batch, students=students))


def remove_student(batches: list[BatchProject], batch_id: str, student_id: str) -> list[BatchProject]:
    batch = rules.find(batches, batch_id, "Batch")
    rules.find(batch.students, student_id, "Student")
    students = tuple(s for s in batch.students if s.id != student_id)
    return _swap(batches, replace(batch, students=students))


def add_batch_ad_cost(
    batches: list[BatchProject],
    batch_id: str,
    *,
    amount: object,
    day: date,
    description: str = "",
) -> list[BatchProject]:
    batch = rules.find(batches, batch_id, "Batch")
    cost = BatchAdCost(
        id=new_id(),
        amount=rules.parse_amount(amount, "amount", positive=True),
        date=day.isoformat(),
        description=description.strip(),
    )
    return _swap(batches, replace(batch, ad_costs=(*batch.ad_costs, cost)))


def remove_batch_ad_cost(batches: list[BatchProject], batch_id: str, cost_id: str) -> list[BatchProject]:
    batch = rules.find(batches, batch_id, "Batch")
    rules.find(batch.ad_costs, cost_id, "Ad cost")
    costs = tuple(c for c in batch.ad_costs if c.id != cost_id)
    return _swap(batches, replace(batch, ad_costs=costs))


def batch_totals(batch: BatchProject) -> BatchTotals:
    return BatchTotals(
        paid=sum(student.paid for student in batch.students),
        due=sum(student.due for student in batch.students),
        ads=sum(cost.amount for cost in batch.ad_costs),
    )


def _swap(batches: list[BatchProject], updated: BatchProject) -> list[BatchProject]:
    return [updated if batch.id == updated.id else batch for batch in batches]
