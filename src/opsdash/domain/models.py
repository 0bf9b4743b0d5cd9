from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Comment:
    id: str
    text: str = ""
    link: str | None = None
    timestamp: str = ""
    author: str = ""


@dataclass(frozen=True)
class Sale:
    id: str
    type: str = "call"
    amount: int = 0
    ad_cost: int = 0
    created_at: str = ""
    agent_id: str | None = None
    comment: str | None = None


@dataclass(frozen=True)
class Expense:
    id: str
    type: str = "other"
    amount: int = 0
    date: str = ""
    description: str = ""
    agent_id: str | None = None
    created_at: str = ""


@dataclass(frozen=True)
class Task:
    id: str
    title: str = ""
    description: str = ""
    assignee: str = ""
    priority: str = "medium"
    status: str = "pending"
    due_date: str = ""
    completed_date: str | None = None
    order: int = 0
    created_at: str = ""
    comments: tuple[Comment, ...] = ()


@dataclass(frozen=True)
class Lead:
    id: str
    name: str = ""
    phone: str = ""
    source: str = ""
    course: str = ""
    status: str = "active"
    created_at: str = ""


@dataclass(frozen=True)
class ContentItem:
    id: str
    title: str = ""
    type: str = "video"
    status: str = "creation"
    comments: tuple[Comment, ...] = ()
    link: str | None = None
    created_at: str = ""


@dataclass(frozen=True)
class Agent:
    id: str
    name: str = ""
    avatar: str = ""
    color: str = ""


@dataclass(frozen=True)
class TeamMember:
    id: str
    name: str = ""
    role: str = ""
    avatar: str = ""
    color: str = ""


@dataclass(frozen=True)
class Student:
    id: str
    name: str = ""
    number: str = ""
    email: str = ""
    paid: int = 0
    due: int = 0
    access: bool = False
    # Matched against Agent.name, exact and case-sensitive.
    advisor: str = ""


@dataclass(frozen=True)
class BatchAdCost:
    id: str
    amount: int = 0
    date: str = ""
    description: str = ""


@dataclass(frozen=True)
class BatchProject:
    id: str
    course_name: str = ""
    landing_page: str = ""
    start_date: str = ""
    students: tuple[Student, ...] = ()
    ad_costs: tuple[BatchAdCost, ...] = ()
    created_at: str = ""


@dataclass(frozen=True)
class Version:
    id: str
    name: str = ""
    timestamp: str = ""
    data: dict[str, Any] = field(default_factory=dict)
