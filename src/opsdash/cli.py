from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Annotated
from zoneinfo import ZoneInfo

import typer

from opsdash import __version__
from opsdash.config import (
    WorkspaceConfig,
    WorkspaceError,
    ensure_workspaces_dir,
    load_workspace,
    set_current_workspace,
    workspace_config_path,
    write_workspace_config,
)
from opsdash.domain import rules
from opsdash.domain.rules import RecordNotFound, ValidationError
from opsdash.domain.stages import Theme
from opsdash.services import batches, calendar, exports, metrics, roster, sales, tasks, versions
from opsdash.services.events import EventLogger
from opsdash.services.exports import ExportError
from opsdash.services.sync import SyncAdapter, SyncError, build_client
from opsdash.services.versions import VersionError
from opsdash.store.cache import LocalCache
from opsdash.store.state import AppState

app = typer.Typer(help="Opsdash CLI")
workspace_app = typer.Typer(help="Workspace management")
sync_app = typer.Typer(help="Backend sync")
target_app = typer.Typer(help="Monthly revenue target")
sale_app = typer.Typer(help="Sales")
expense_app = typer.Typer(help="Expenses")
lead_app = typer.Typer(help="Leads")
task_app = typer.Typer(help="Tasks")
content_app = typer.Typer(help="Content pipeline")
agent_app = typer.Typer(help="Call agents")
member_app = typer.Typer(help="Team members")
batch_app = typer.Typer(help="Course batches")
version_app = typer.Typer(help="Saved versions")
export_app = typer.Typer(help="Exports")

app.add_typer(workspace_app, name="workspace")
app.add_typer(sync_app, name="sync")
app.add_typer(target_app, name="target")
app.add_typer(sale_app, name="sale")
app.add_typer(expense_app, name="expense")
app.add_typer(lead_app, name="lead")
app.add_typer(task_app, name="task")
app.add_typer(content_app, name="content")
app.add_typer(agent_app, name="agent")
app.add_typer(member_app, name="member")
app.add_typer(batch_app, name="batch")
app.add_typer(version_app, name="version")
app.add_typer(export_app, name="export")

USER_ERRORS = (ValidationError, RecordNotFound, VersionError)

_options = {"events": True}


@app.callback()
def version_callback(
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log sync activity to stderr."),
    events: bool = typer.Option(
        True, "--events/--no-events", help="Write sync events to the workspace log."
    ),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    _options["events"] = events
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("init")
def init() -> None:
    """Initialize directories for workspaces and outputs."""
    ensure_workspaces_dir()
    Path("exports").mkdir(exist_ok=True)
    typer.echo("Initialized opsdash directories.")


@workspace_app.command("add")
def workspace_add(
    name: str = typer.Argument(...),
    url: str | None = typer.Option(None, "--url", help="Backend project URL."),
    use: bool = typer.Option(True, "--use/--no-use", help="Set as current workspace."),
    force: bool = typer.Option(
        False, "--force", help="Overwrite existing workspace config if it exists."
    ),
) -> None:
    config_path = workspace_config_path(name)
    if config_path.exists() and not force:
        raise typer.BadParameter(
            f"Workspace already exists: {config_path}. Use --force to overwrite."
        )
    config_path = write_workspace_config(name, url)
    if use:
        set_current_workspace(name)
    typer.echo(f"Workspace created: {config_path}")


@workspace_app.command("use")
def workspace_use(name: str = typer.Argument(...)) -> None:
    if not workspace_config_path(name).exists():
        raise typer.BadParameter(f"Workspace config not found: {workspace_config_path(name)}")
    set_current_workspace(name)
    typer.echo(f"Active workspace: {name}")


@sync_app.command("pull")
def sync_pull() -> None:
    """Reload every collection from the backend."""
    with _session() as (ws, state, adapter):
        for name, value in state.to_payload().items():
            count = value if isinstance(value, int) else len(value)
            typer.echo(f"{name}: {count}")


@sync_app.command("listen")
def sync_listen(
    source: Path | None = typer.Option(
        None, "--from", help="NDJSON file of change notifications (default: stdin)."
    ),
) -> None:
    """Apply remote change notifications, ignoring echoes of our own writes."""
    with _session() as (ws, state, adapter):
        if source is None:
            applied = adapter.listen(sys.stdin)
        else:
            with source.open(encoding="utf-8") as handle:
                applied = adapter.listen(handle)
        typer.echo(f"Applied {applied} remote change(s).")


@app.command("stats")
def stats() -> None:
    with _session() as (ws, state, adapter):
        view = _stats(ws, state)
        typer.echo(f"Report date: {view.report_date}")
        typer.echo(f"Revenue: {view.total_revenue} / {state.monthly_target} ({view.progress_percent:.1f}%)")
        typer.echo(
            f"  call {view.call_revenue} | website {view.website_revenue} | "
            f"hand cash {view.hand_cash_revenue} | batch {view.batch_revenue}"
        )
        typer.echo(f"Ad spend: {view.total_ad_cost}")
        typer.echo(f"Operational: {view.operational_costs}")
        typer.echo(f"Net profit: {view.net_profit}")
        typer.echo(f"ROI: {view.roi:.2f}x")
        typer.echo(f"Gap: {view.target_left} over {view.remaining_days} day(s), {view.daily_required:.0f}/day")
        typer.echo(
            f"Today: revenue {view.today_revenue} | ads {view.today_ad_cost} | "
            f"expenses {view.today_expenses} | profit {view.today_profit}"
        )
        for rank, entry in enumerate(view.agent_leaderboard, start=1):
            typer.echo(f"{rank}. {entry.name} | {entry.revenue} | {entry.count} sale(s) | ROI {entry.roi:.2f}")


@target_app.command("set")
def target_set(amount: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.set_monthly_target(rules.parse_amount(amount, "target", positive=True))
        except ValidationError as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Monthly target: {state.monthly_target}")


@sale_app.command("add")
def sale_add(
    sale_type: str = typer.Option("call", "--type", help="call, website or hand_cash"),
    amount: str = typer.Option(..., "--amount"),
    ad_cost: str = typer.Option("0", "--ad-cost"),
    day: str | None = typer.Option(None, "--date"),
    agent: str | None = typer.Option(None, "--agent"),
    comment: str | None = typer.Option(None, "--comment"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = sales.add_sale(
                state.sales,
                sale_type=sale_type,
                amount=amount,
                ad_cost=ad_cost,
                day=_day(ws, day),
                agent_id=agent,
                comment=comment,
                agents=state.agents,
            )
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("sales", updated)
        typer.echo(f"Recorded sale: {updated[0].id}")


@sale_app.command("bulk")
def sale_bulk(
    entries: Annotated[
        list[str],
        typer.Argument(help="agent_id=amount or agent_id=amount:ad_cost"),
    ],
    day: str | None = typer.Option(None, "--date"),
) -> None:
    """Record one call sale per agent in a single write."""
    parsed: dict[str, tuple[str, str]] = {}
    for entry in entries:
        agent_id, sep, value = entry.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected agent_id=amount, got {entry}")
        amount, _, ad_cost = value.partition(":")
        parsed[agent_id.strip()] = (amount, ad_cost or "0")
    with _session() as (ws, state, adapter):
        before = len(state.sales)
        try:
            updated = sales.add_bulk_sales(state.sales, parsed, _day(ws, day), agents=state.agents)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("sales", updated)
        typer.echo(f"Recorded {len(updated) - before} sale(s).")


@sale_app.command("list")
def sale_list(limit: int = typer.Option(20, "--limit")) -> None:
    with _session() as (ws, state, adapter):
        names = {agent.id: agent.name for agent in state.agents}
        for sale in state.sales[:limit]:
            typer.echo(
                f"{sale.id} | {sale.created_at[:10]} | {sale.type} | {sale.amount} | "
                f"{sale.ad_cost} | {names.get(sale.agent_id or '', '-')}"
            )


@sale_app.command("delete")
def sale_delete(sale_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("sales", sales.delete_sale(state.sales, sale_id))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Deleted sale: {sale_id}")


@sale_app.command("reset")
def sale_reset(yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt.")) -> None:
    """Delete every sale and expense."""
    if not yes and not typer.confirm("Delete all sales and expenses?"):
        raise typer.Exit(code=1)
    with _session() as (ws, state, adapter):
        sales.reset_financials(state)
        typer.echo("Financial data cleared.")


@expense_app.command("add")
def expense_add(
    expense_type: str = typer.Option(..., "--type"),
    amount: str = typer.Option(..., "--amount"),
    day: str | None = typer.Option(None, "--date"),
    description: str = typer.Option("", "--description"),
    agent: str | None = typer.Option(None, "--agent"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = sales.add_expense(
                state.expenses,
                expense_type=expense_type,
                amount=amount,
                day=_day(ws, day),
                description=description,
                agent_id=agent,
            )
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("expenses", updated)
        typer.echo(f"Recorded expense: {updated[0].id}")


@expense_app.command("list")
def expense_list(limit: int = typer.Option(20, "--limit")) -> None:
    with _session() as (ws, state, adapter):
        for expense in state.expenses[:limit]:
            typer.echo(f"{expense.id} | {expense.date} | {expense.type} | {expense.amount} | {expense.description}")


@expense_app.command("delete")
def expense_delete(expense_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("expenses", sales.delete_expense(state.expenses, expense_id))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Deleted expense: {expense_id}")


@lead_app.command("add")
def lead_add(
    name: str = typer.Argument(...),
    phone: str = typer.Option("", "--phone"),
    source: str = typer.Option("", "--source"),
    course: str = typer.Option("", "--course"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = sales.add_lead(state.leads, name=name, phone=phone, source=source, course=course)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("leads", updated)
        typer.echo(f"Created lead: {updated[0].id}")


@lead_app.command("list")
def lead_list(status: str | None = typer.Option(None, "--status")) -> None:
    with _session() as (ws, state, adapter):
        for lead in state.leads:
            if status and lead.status != status:
                continue
            typer.echo(f"{lead.id} | {lead.name} | {lead.phone} | {lead.course} | {lead.status}")


@lead_app.command("status")
def lead_status(lead_id: str = typer.Argument(...), status: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("leads", sales.set_lead_status(state.leads, lead_id, status))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Lead {lead_id}: {status}")


@task_app.command("add")
def task_add(
    title: str = typer.Argument(...),
    assignee: str = typer.Option("", "--assignee"),
    priority: str = typer.Option("medium", "--priority"),
    due: str | None = typer.Option(None, "--due"),
    description: str = typer.Option("", "--description"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = tasks.add_task(
                state.tasks,
                title=title,
                assignee=assignee,
                priority=priority,
                due=_day(ws, due),
                description=description,
            )
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("tasks", updated)
        typer.echo(f"Created task: {updated[0].id}")


@task_app.command("list")
def task_list(
    window: str = typer.Option("all", "--window", help="all, weekly or monthly"),
    assignee: str | None = typer.Option(None, "--assignee"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            selected = tasks.filter_tasks(state.tasks, window, assignee=assignee, today=_day(ws, None))
        except ValidationError as exc:
            _exit_with_error(str(exc))
        for task in selected:
            typer.echo(
                f"{task.id} | {task.title} | {task.assignee or '-'} | {task.priority} | "
                f"{task.status} | {task.due_date} | {len(task.comments)} comment(s)"
            )
        for load in roster.member_workload(state.tasks, state.team_members):
            typer.echo(f"{load.name}: {load.pending} pending / {load.total}")


@task_app.command("done")
def task_done(
    task_id: str = typer.Argument(...),
    undo: bool = typer.Option(False, "--undo", help="Mark the task pending again."),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            if undo:
                updated = tasks.reopen_task(state.tasks, task_id)
            else:
                updated = tasks.complete_task(state.tasks, task_id, _day(ws, None))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("tasks", updated)
        typer.echo(f"Task {task_id}: {'pending' if undo else 'completed'}")


@task_app.command("move")
def task_move(task_id: str = typer.Argument(...), target_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("tasks", tasks.move_task(state.tasks, task_id, target_id))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Moved task {task_id}.")


@task_app.command("comment")
def task_comment(
    task_id: str = typer.Argument(...),
    text: str = typer.Argument(...),
    link: str | None = typer.Option(None, "--link"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("tasks", tasks.add_comment(state.tasks, task_id, text, link=link))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Commented on task {task_id}.")


@task_app.command("delete")
def task_delete(task_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("tasks", tasks.delete_task(state.tasks, task_id))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Deleted task: {task_id}")


@content_app.command("add")
def content_add(
    title: str = typer.Argument(...),
    content_type: str = typer.Option("video", "--type"),
    link: str | None = typer.Option(None, "--link"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = tasks.add_content(state.content, title=title, content_type=content_type, link=link)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("content", updated)
        typer.echo(f"Created content item: {updated[0].id}")


@content_app.command("list")
def content_list() -> None:
    with _session() as (ws, state, adapter):
        now = datetime.now(UTC)
        for item in state.content:
            flag = " | OVERDUE" if tasks.is_overdue(item, now) else ""
            typer.echo(f"{item.id} | {item.title} | {item.type} | {item.status}{flag}")


@content_app.command("move")
def content_move(item_id: str = typer.Argument(...), status: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("content", tasks.move_content(state.content, item_id, status))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Content {item_id}: {status}")


@content_app.command("comment")
def content_comment(
    item_id: str = typer.Argument(...),
    text: str = typer.Argument(...),
    link: str | None = typer.Option(None, "--link"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("content", tasks.add_comment(state.content, item_id, text, link=link))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Commented on content {item_id}.")


@content_app.command("edit-comment")
def content_edit_comment(
    item_id: str = typer.Argument(...),
    comment_id: str = typer.Argument(...),
    text: str = typer.Argument(...),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("content", tasks.update_comment(state.content, item_id, comment_id, text))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Updated comment {comment_id}.")


@agent_app.command("add")
def agent_add(
    name: str = typer.Argument(...),
    avatar: str = typer.Option("👨‍💼", "--avatar"),
    color: str = typer.Option("#ef4444", "--color"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = roster.add_agent(state.agents, name=name, avatar=avatar, color=color)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("agents", updated)
        typer.echo(f"Added agent: {updated[-1].id}")


@agent_app.command("remove")
def agent_remove(agent_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("agents", roster.remove_agent(state.agents, agent_id))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Removed agent: {agent_id}")


@member_app.command("add")
def member_add(
    name: str = typer.Argument(...),
    role: str = typer.Option("", "--role"),
    avatar: str = typer.Option("👤", "--avatar"),
    color: str = typer.Option("#3b82f6", "--color"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = roster.add_member(state.team_members, name=name, role=role, avatar=avatar, color=color)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("team_members", updated)
        typer.echo(f"Added team member: {updated[-1].id}")


@member_app.command("remove")
def member_remove(member_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            state.replace("team_members", roster.remove_member(state.team_members, member_id))
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Removed team member: {member_id}")


@batch_app.command("add")
def batch_add(
    course_name: str = typer.Argument(...),
    landing_page: str = typer.Option("", "--landing-page"),
    start: str | None = typer.Option(None, "--start"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = batches.add_batch(
                state.batch_projects,
                course_name=course_name,
                landing_page=landing_page,
                start_date=_day(ws, start),
            )
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("batch_projects", updated)
        typer.echo(f"Created batch: {updated[0].id}")


@batch_app.command("list")
def batch_list() -> None:
    with _session() as (ws, state, adapter):
        for batch in state.batch_projects:
            totals = batches.batch_totals(batch)
            typer.echo(
                f"{batch.id} | {batch.course_name} | {batch.start_date} | {len(batch.students)} student(s) | "
                f"paid {totals.paid} | due {totals.due} | ads {totals.ads} | profit {totals.profit}"
            )


@batch_app.command("student")
def batch_student(
    batch_id: str = typer.Argument(...),
    name: str = typer.Option("", "--name"),
    number: str = typer.Option("", "--number"),
    email: str = typer.Option("", "--email"),
    paid: str = typer.Option("0", "--paid"),
    due: str = typer.Option("0", "--due"),
    access: bool = typer.Option(False, "--access/--no-access"),
    advisor: str = typer.Option("", "--advisor", help="Agent name credited with the sale."),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = batches.add_student(
                state.batch_projects,
                batch_id,
                name=name,
                number=number,
                email=email,
                paid=paid,
                due=due,
                access=access,
                advisor=advisor,
            )
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("batch_projects", updated)
        typer.echo(f"Added student to batch {batch_id}.")


@batch_app.command("adcost")
def batch_adcost(
    batch_id: str = typer.Argument(...),
    amount: str = typer.Option(..., "--amount"),
    day: str | None = typer.Option(None, "--date"),
    description: str = typer.Option("", "--description"),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            updated = batches.add_batch_ad_cost(
                state.batch_projects,
                batch_id,
                amount=amount,
                day=_day(ws, day),
                description=description,
            )
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        state.replace("batch_projects", updated)
        typer.echo(f"Recorded ad cost for batch {batch_id}.")


@app.command("calendar")
def calendar_day(day: str | None = typer.Argument(None, help="YYYY-MM-DD (default: today)")) -> None:
    with _session() as (ws, state, adapter):
        try:
            agenda = calendar.day_agenda(state, _day(ws, day), ws.report.timezone)
        except ValidationError as exc:
            _exit_with_error(str(exc))
        typer.echo(f"{agenda.day}: revenue {agenda.revenue} | spend {agenda.spend}")
        for task in agenda.tasks:
            typer.echo(f"  task | {task.title} | {task.status}")
        for sale in agenda.sales:
            typer.echo(f"  sale | {sale.type} | {sale.amount}")
        for expense in agenda.expenses:
            typer.echo(f"  expense | {expense.type} | {expense.amount}")
        for batch in agenda.batches:
            typer.echo(f"  batch | {batch.course_name}")


@version_app.command("create")
def version_create(
    name: str = typer.Argument(...),
    clear: bool = typer.Option(False, "--clear", help="Empty working collections after saving."),
) -> None:
    with _session() as (ws, state, adapter):
        try:
            version = versions.create_snapshot(state, name, clear_live=clear, events=adapter.events)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Saved version: {version.id}")


@version_app.command("list")
def version_list() -> None:
    with _session() as (ws, state, adapter):
        for version in state.versions:
            typer.echo(f"{version.id} | {version.name} | {version.timestamp}")


@version_app.command("restore")
def version_restore(
    version_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
) -> None:
    with _session() as (ws, state, adapter):
        confirm = (lambda prompt: True) if yes else typer.confirm
        try:
            version = versions.restore(state, version_id, confirm, events=adapter.events)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Restored version: {version.name}")


@version_app.command("delete")
def version_delete(version_id: str = typer.Argument(...)) -> None:
    with _session() as (ws, state, adapter):
        try:
            versions.delete_version(state, version_id)
        except USER_ERRORS as exc:
            _exit_with_error(str(exc))
        typer.echo(f"Deleted version: {version_id}")


@export_app.command("excel")
def export_excel(out: str = typer.Option("exports", "--out", help="Output directory.")) -> None:
    with _session() as (ws, state, adapter):
        view = _stats(ws, state)
        try:
            path = exports.export_excel(
                state, view, Path(out), ws.report.product_name, _day(ws, None)
            )
        except ExportError as exc:
            typer.echo(f"Export failed: {exc}", err=True)
            return
        typer.echo(f"Exported Excel to {path}")


@app.command("theme")
def theme(value: str | None = typer.Argument(None, help="dark or light")) -> None:
    ws = _load_workspace()
    cache = LocalCache(ws.cache_path)
    if value is None:
        typer.echo(cache.get_theme())
        return
    try:
        rules.validate_enum(value, [t.value for t in Theme], "theme")
    except ValidationError as exc:
        _exit_with_error(str(exc))
    cache.set_theme(value)
    typer.echo(f"Theme: {value}")


@contextmanager
def _session() -> Iterator[tuple[WorkspaceConfig, AppState, SyncAdapter]]:
    ws = _load_workspace()
    try:
        client = build_client(ws.backend)
    except SyncError as exc:
        _exit_with_error(str(exc))
    state = AppState(monthly_target=ws.report.monthly_target)
    cache = LocalCache(ws.cache_path)
    adapter = SyncAdapter(
        client,
        state,
        tables=ws.backend.tables,
        sync=ws.sync,
        default_target=ws.report.monthly_target,
        events=_event_logger(ws),
        notify=_warn,
    )
    if not adapter.start():
        with adapter.paused():
            cache.load_state(state)
    try:
        yield ws, state, adapter
    finally:
        adapter.flush()
        cache.save_state(state)
        adapter.close()


def _stats(ws: WorkspaceConfig, state: AppState) -> metrics.StatsView:
    return metrics.compute_stats(
        state.sales,
        state.expenses,
        state.batch_projects,
        state.agents,
        state.monthly_target,
        ws.report.sources,
        datetime.now(UTC),
        timezone=ws.report.timezone,
    )


def _day(ws: WorkspaceConfig, value: str | None) -> date:
    try:
        parsed = rules.parse_date(value, "date")
    except ValidationError as exc:
        _exit_with_error(str(exc))
    return parsed or datetime.now(ZoneInfo(ws.report.timezone)).date()


def _load_workspace() -> WorkspaceConfig:
    try:
        return load_workspace()
    except WorkspaceError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc


def _exit_with_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _warn(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _event_logger(ws: WorkspaceConfig) -> EventLogger:
    return EventLogger(path=ws.path / "events.ndjson", workspace=ws.name, enabled=_options["events"])


if __name__ == "__main__":
    app()
