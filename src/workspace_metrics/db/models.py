"""Data models for workspace metrics."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

Amount = int | float | str | Decimal | None


@dataclass
class User:
    id: str
    name: str
    email: str = ""
    avatar: str | None = None
    role: str = "member"
    status: str = "offline"
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    status: str = "active"
    progress: int = 0
    color: str | None = None
    icon: str | None = None
    owner_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    member_ids: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Sprint:
    id: str
    name: str
    project_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str = "planned"
    goal: str = ""
    task_count: int = 0
    completed_task_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Task:
    id: str
    title: str
    description: str = ""
    status: str = "todo"
    priority: str = "medium"
    project_id: str | None = None
    sprint_id: str | None = None
    created_by_id: str | None = None
    due_date: datetime | None = None
    start_date: datetime | None = None
    estimated_cost: Amount = None
    assignee_ids: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Comment:
    id: int | None = None
    task_id: str = ""
    author_id: str = ""
    text: str = ""
    created_at: datetime | None = None


@dataclass
class Budget:
    id: int | None = None
    name: str = ""
    amount: Amount = 0
    currency: str = "USD"
    project_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass
class Cost:
    id: int | None = None
    name: str = ""
    amount: Amount = 0
    currency: str = "USD"
    category: str = "other"
    project_id: str | None = None
    task_id: str | None = None
    date: datetime | None = None


@dataclass
class Expense:
    id: int | None = None
    name: str = ""
    amount: Amount = 0
    currency: str = "USD"
    project_id: str | None = None
    start_date: datetime | None = None


@dataclass
class Notification:
    id: int | None = None
    user_id: str = ""
    title: str = ""
    message: str = ""
    type: str = "info"
    read: bool = False
    project_id: str | None = None
    task_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
