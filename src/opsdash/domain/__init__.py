from opsdash.domain.models import (
    Agent,
    BatchAdCost,
    BatchProject,
    Comment,
    ContentItem,
    Expense,
    Lead,
    Sale,
    Student,
    Task,
    TeamMember,
    Version,
)
from opsdash.domain.rules import ValidationError

__all__ = [
    "Agent",
    "BatchAdCost",
    "BatchProject",
    "Comment",
    "ContentItem",
    "Expense",
    "Lead",
    "Sale",
    "Student",
    "Task",
    "TeamMember",
    "ValidationError",
    "Version",
]
