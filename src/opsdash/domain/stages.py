from __future__ import annotations

from enum import Enum


class SaleType(str, Enum):
    CALL = "call"
    WEBSITE = "website"
    HAND_CASH = "hand_cash"


class RevenueSource(str, Enum):
    CALL = "call"
    WEBSITE = "website"
    HAND_CASH = "hand_cash"
    BATCH = "batch"


class ExpenseType(str, Enum):
    ADCOST = "adcost"
    SALARY = "salary"
    RENT = "rent"
    UTILITIES = "utilities"
    MARKETING = "marketing"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class LeadStatus(str, Enum):
    ACTIVE = "active"
    CONVERTED = "converted"
    LOST = "lost"


class ContentType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    ARTICLE = "article"
    COURSE = "course"


class ContentStatus(str, Enum):
    CREATION = "creation"
    EDITING = "editing"
    READY = "ready"
    ADS = "ads"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


ALL_SOURCES = frozenset(source.value for source in RevenueSource)
