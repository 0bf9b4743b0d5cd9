from __future__ import annotations

from opsdash.domain.models import Agent, TeamMember

DEFAULT_MONTHLY_TARGET = 500000

INITIAL_TEAM: tuple[TeamMember, ...] = (
    TeamMember(id="rak", name="Rak", role="Content Creator", avatar="🎬", color="#f59e0b"),
    TeamMember(id="ridu", name="Ridu", role="Video Editor", avatar="✂️", color="#8b5cf6"),
    TeamMember(id="sakib", name="Sakib", role="Content Manager", avatar="📊", color="#3b82f6"),
    TeamMember(id="saimon", name="Saimon", role="Operations Lead", avatar="⚡", color="#ef4444"),
    TeamMember(id="emran", name="Emran", role="Call Center Manager", avatar="📞", color="#10b981"),
    TeamMember(id="arefin", name="Arefin", role="Ads Manager", avatar="📢", color="#ec4899"),
)

INITIAL_AGENTS: tuple[Agent, ...] = (
    Agent(id="afrin", name="Afrin", avatar="👩‍💼", color="#06b6d4"),
    Agent(id="hridoy", name="Hridoy", avatar="👨‍💼", color="#8b5cf6"),
    Agent(id="antor", name="Antor", avatar="👦", color="#f59e0b"),
    Agent(id="onup", name="Onup", avatar="👨", color="#10b981"),
    Agent(id="shamor", name="Shamor", avatar="🧔", color="#ef4444"),
)
