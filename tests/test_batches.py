from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from opsdash.domain.models import BatchProject, Expense, Sale, Student, Task
from opsdash.domain.rules import RecordNotFound, ValidationError
from opsdash.services import batches, calendar
from opsdash.services.metrics import compute_stats
from opsdash.store.state import AppState


def _batch():
    return batches.add_batch([], course_name="Excel Mastery", start_date=date(2026, 10, 1))


def test_add_batch_requires_course_name() -> None:
    with pytest.raises(ValidationError):
        batches.add_batch([], course_name="")
    batch = _batch()[0]
    assert batch.start_date == "2026-10-01"
    assert batch.students == ()


def test_students_and_totals() -> None:
    records = _batch()
    batch_id = records[0].id
    records = batches.add_student(records, batch_id, name="Rafi", paid="3,000", due=500, advisor="Afrin")
    records = batches.add_student(records, batch_id, name="Mim", paid=2000)
    records = batches.add_batch_ad_cost(records, batch_id, amount=1200, day=date(2026, 10, 3))

    totals = batches.batch_totals(records[0])
    assert totals.paid == 5000
    assert totals.due == 500
    assert totals.ads == 1200
    assert totals.profit == 3800


def test_update_student_field() -> None:
    records = _batch()
    batch_id = records[0].id
    records = batches.add_student(records, batch_id, name="Rafi")
    student_id = records[0].students[0].id

    records = batches.update_student(records, batch_id, student_id, "paid", "1,000")
    records = batches.update_student(records, batch_id, student_id, "access", True)
    student = records[0].students[0]
    assert student.paid == 1000
    assert student.access is True

    with pytest.raises(ValidationError):
        batches.update_student(records, batch_id, student_id, "grade", "A")
    with pytest.raises(ValidationError):
        batches.update_student(records, batch_id, student_id, "due", "-5")


def test_remove_student_and_ad_cost() -> None:
    records = _batch()
    batch_id = records[0].id
    records = batches.add_student(records, batch_id, name="Rafi")
    records = batches.add_batch_ad_cost(records, batch_id, amount=100, day=date(2026, 10, 3))
    student_id = records[0].students[0].id
    cost_id = records[0].ad_costs[0].id

    records = batches.remove_student(records, batch_id, student_id)
    records = batches.remove_batch_ad_cost(records, batch_id, cost_id)
    assert records[0].students == ()
    assert records[0].ad_costs == ()

    with pytest.raises(ValidationError):
        batches.add_batch_ad_cost(records, batch_id, amount=0, day=date(2026, 10, 3))
    with pytest.raises(RecordNotFound):
        batches.remove_student(records, batch_id, student_id)


def test_update_header_and_delete() -> None:
    records = _batch()
    batch_id = records[0].id
    records = batches.update_batch_header(records, batch_id, course_name="Excel Pro", landing_page="https://x")
    assert records[0].course_name == "Excel Pro"
    assert records[0].start_date == "2026-10-01"
    assert batches.delete_batch(records, batch_id) == []


def test_day_agenda_collects_the_day() -> None:
    state = AppState()
    state.replace("tasks", [Task(id="t1", title="Edit", due_date="2026-10-22"), Task(id="t2", due_date="2026-10-23")])
    state.replace(
        "sales",
        [Sale(id="s1", amount=900, ad_cost=100, created_at="2026-10-22T12:00:00Z")],
    )
    state.replace("expenses", [Expense(id="e1", type="rent", amount=50, date="2026-10-22")])

    agenda = calendar.day_agenda(state, date(2026, 10, 22))
    assert [task.id for task in agenda.tasks] == ["t1"]
    assert agenda.revenue == 900
    assert agenda.spend == 150
    assert agenda.batches == []


def test_day_agenda_uses_reporting_timezone() -> None:
    state = AppState()
    late_utc = "2026-10-18T20:00:00+00:00"
    state.replace(
        "batch_projects",
        [BatchProject(id="b1", course_name="Excel", students=(Student(id="st1", paid=3000),), created_at=late_utc)],
    )
    state.replace("sales", [Sale(id="s1", amount=700, created_at=late_utc)])

    agenda = calendar.day_agenda(state, date(2026, 10, 19), "Asia/Dhaka")
    assert [batch.id for batch in agenda.batches] == ["b1"]
    assert agenda.revenue == 3700
    assert calendar.day_agenda(state, date(2026, 10, 18), "Asia/Dhaka").revenue == 0

    now = datetime(2026, 10, 19, 12, tzinfo=ZoneInfo("Asia/Dhaka"))
    stats = compute_stats(state.sales, state.expenses, state.batch_projects, state.agents, 500000, None, now)
    assert stats.daily_breakdown[0].date == "2026-10-19"
    assert stats.daily_breakdown[0].revenue == agenda.revenue
