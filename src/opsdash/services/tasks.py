from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import TypeVar

from opsdash.domain import rules
from opsdash.domain.models import Comment, ContentItem, Task
from opsdash.domain.stages import ContentStatus, ContentType, Priority, TaskStatus
from opsdash.services.utils import new_id, utc_now_iso

OVERDUE_AFTER_DAYS = 3
TASK_WINDOWS = ("all", "weekly", "monthly")

Commentable = TypeVar("Commentable", Task, ContentItem)


def add_task(
    tasks: list[Task],
    *,
    title: str,
    assignee: str = "",
    priority: str = Priority.MEDIUM.value,
    due: date | None = None,
    description: str = "",
) -> list[Task]:
    rules.validate_enum(priority, [p.value for p in Priority], "priority")
    task = Task(
        id=new_id(),
        title=rules.require(title, "title"),
        description=description.strip(),
        assignee=assignee,
        priority=priority,
        status=TaskStatus.PENDING.value,
        due_date=(due or date.today()).isoformat(),
        order=len(tasks),
        created_at=utc_now_iso(),
    )
    return [task, *tasks]


def update_task(
    tasks: list[Task],
    task_id: str,
    *,
    title: str,
    assignee: str = "",
    priority: str = Priority.MEDIUM.value,
    due: date | None = None,
    description: str = "",
) -> list[Task]:
    rules.validate_enum(priority, [p.value for p in Priority], "priority")
    current = rules.find(tasks, task_id, "Task")
    updated = replace(
        current,
        title=rules.require(title, "title"),
        assignee=assignee,
        priority=priority,
        due_date=due.isoformat() if due else current.due_date,
        description=description.strip(),
    )
    return [updated if task.id == task_id else task for task in tasks]


def complete_task(tasks: list[Task], task_id: str, day: date | None = None) -> list[Task]:
    rules.find(tasks, task_id, "Task")
    done_on = (day or date.today()).isoformat()
    return [
        replace(task, status=TaskStatus.COMPLETED.value, completed_date=done_on)
        if task.id == task_id
        else task
        for task in tasks
    ]


def reopen_task(tasks: list[Task], task_id: str) -> list[Task]:
    rules.find(tasks, task_id, "Task")
    return [
        replace(task, status=TaskStatus.PENDING.value, completed_date=None)
        if task.id == task_id
        else task
        for task in tasks
    ]


def move_task(tasks: list[Task], task_id: str, target_id: str) -> list[Task]:
    """Drop ``task_id`` at the position of ``target_id`` and renumber ``order``."""
    if task_id == target_id:
        return list(tasks)
    reordered = list(tasks)
    dragged = rules.find(reordered, task_id, "Task")
    rules.find(reordered, target_id, "Task")
    target_index = next(i for i, task in enumerate(reordered) if task.id == target_id)
    reordered.remove(dragged)
    reordered.insert(target_index, dragged)
    return [replace(task, order=index) for index, task in enumerate(reordered)]


def delete_task(tasks: list[Task], task_id: str) -> list[Task]:
    rules.find(tasks, task_id, "Task")
    return [task for task in tasks if task.id != task_id]


def filter_tasks(
    tasks: list[Task],
    window: str = "all",
    assignee: str | None = None,
    due: date | None = None,
    today: date | None = None,
) -> list[Task]:
    rules.validate_enum(window, TASK_WINDOWS, "window")
    today = today or date.today()
    # Weeks start on Sunday.
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    month_start = today.replace(day=1)
    selected: list[Task] = []
    for task in tasks:
        try:
            due_date = date.fromisoformat(task.due_date) if task.due_date else None
        except ValueError:
            due_date = None
        if window == "weekly" and (due_date is None or due_date < week_start):
            continue
        if window == "monthly" and (due_date is None or due_date < month_start):
            continue
        if assignee and task.assignee != assignee:
            continue
        if due is not None and task.due_date != due.isoformat():
            continue
        selected.append(task)
    return sorted(selected, key=lambda task: task.order)


def add_comment(
    items: list[Commentable],
    item_id: str,
    text: str,
    link: str | None = None,
    author: str = "Admin",
) -> list[Commentable]:
    rules.find(items, item_id, "Item")
    comment = Comment(
        id=new_id(),
        text=rules.require(text, "comment"),
        link=link.strip() if link and link.strip() else None,
        timestamp=utc_now_iso(),
        author=author,
    )
    return [
        replace(item, comments=(*item.comments, comment)) if item.id == item_id else item
        for item in items
    ]


def update_comment(
    items: list[Commentable], item_id: str, comment_id: str, text: str
) -> list[Commentable]:
    item = rules.find(items, item_id, "Item")
    rules.find(item.comments, comment_id, "Comment")
    text = rules.require(text, "comment")
    return [
        replace(
            entry,
            comments=tuple(replace(c, text=text) if c.id == comment_id else c for c in entry.comments),
        )
        if entry.id == item_id
        else entry
        for entry in items
    ]


def delete_comment(items: list[Commentable], item_id: str, comment_id: str) -> list[Commentable]:
    item = rules.find(items, item_id, "Item")
    rules.find(item.comments, comment_id, "Comment")
    return [
        replace(entry, comments=tuple(c for c in entry.comments if c.id != comment_id))
        if entry.id == item_id
        else entry
        for entry in items
    ]


def add_content(
    content: list[ContentItem],
    *,
    title: str,
    content_type: str = ContentType.VIDEO.value,
    link: str | None = None,
) -> list[ContentItem]:
    rules.validate_enum(content_type, [t.value for t in ContentType], "type")
    item = ContentItem(
        id=new_id(),
        title=rules.require(title, "title"),
        type=content_type,
        status=ContentStatus.CREATION.value,
        link=link.strip() if link and link.strip() else None,
        created_at=utc_now_iso(),
    )
    return [item, *content]


def move_content(content: list[ContentItem], item_id: str, status: str) -> list[ContentItem]:
    rules.validate_enum(status, [s.value for s in ContentStatus], "status")
    rules.find(content, item_id, "Content item")
    return [replace(item, status=status) if item.id == item_id else item for item in content]


def delete_content(content: list[ContentItem], item_id: str) -> list[ContentItem]:
    rules.find(content, item_id, "Content item")
    return [item for item in content if item.id != item_id]


def is_overdue(item: ContentItem, now: datetime) -> bool:
    if item.status == ContentStatus.ADS.value or not item.created_at:
        return False
    try:
        created = datetime.fromisoformat(item.created_at.replace("Z", "+00:00"))
    except ValueError:
        return False
    if created.tzinfo is None and now.tzinfo is not None:
        created = created.replace(tzinfo=now.tzinfo)
    elif created.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=created.tzinfo)
    return abs(now - created) > timedelta(days=OVERDUE_AFTER_DAYS)
