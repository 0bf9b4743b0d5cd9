from __future__ import annotations

from dataclasses import dataclass, replace

from opsdash.domain import rules
from opsdash.domain.models import Agent, Task, TeamMember
from opsdash.domain.stages import TaskStatus
from opsdash.services.utils import new_id


@dataclass(frozen=True)
class Workload:
    member_id: str
    name: str
    total: int
    completed: int

    @property
    def pending(self) -> int:
        return self.total - self.completed


def add_agent(agents: list[Agent], *, name: str, avatar: str = "👨‍💼", color: str = "#ef4444") -> list[Agent]:
    agent = Agent(id=new_id(), name=rules.require(name, "name"), avatar=avatar, color=color)
    return [*agents, agent]


def remove_agent(agents: list[Agent], agent_id: str) -> list[Agent]:
    rules.find(agents, agent_id, "Agent")
    return [agent for agent in agents if agent.id != agent_id]


def add_member(
    members: list[TeamMember],
    *,
    name: str,
    role: str = "",
    avatar: str = "👤",
    color: str = "#3b82f6",
) -> list[TeamMember]:
    member = TeamMember(
        id=new_id(), name=rules.require(name, "name"), role=role.strip(), avatar=avatar, color=color
    )
    return [*members, member]


def update_member(
    members: list[TeamMember],
    member_id: str,
    *,
    name: str,
    role: str = "",
    avatar: str | None = None,
    color: str | None = None,
) -> list[TeamMember]:
    current = rules.find(members, member_id, "Team member")
    updated = replace(
        current,
        name=rules.require(name, "name"),
        role=role.strip(),
        avatar=avatar or current.avatar,
        color=color or current.color,
    )
    return [updated if member.id == member_id else member for member in members]


def remove_member(members: list[TeamMember], member_id: str) -> list[TeamMember]:
    rules.find(members, member_id, "Team member")
    return [member for member in members if member.id != member_id]


def member_workload(tasks: list[Task], members: list[TeamMember]) -> list[Workload]:
    workloads = []
    for member in members:
        assigned = [task for task in tasks if task.assignee == member.id]
        completed = sum(1 for task in assigned if task.status == TaskStatus.COMPLETED.value)
        workloads.append(
            Workload(member_id=member.id, name=member.name, total=len(assigned), completed=completed)
        )
    return workloads
