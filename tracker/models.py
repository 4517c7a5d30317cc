"""
tracker/models.py -- Domain dataclasses for BuildTrack projects.

These are pure data containers with zero logic. Queries, filtering and the
demo seed live in tracker/store.py.

Separation of concerns: these dataclasses are the tracker's domain truth,
just as auth/models.py is the auth core's. Neither layer imports the other;
the tracker only ever sees an already-authenticated request.
"""

from dataclasses import dataclass
from typing import Optional

PROJECT_STATUSES = ("planning", "active", "on_hold", "completed")
TASK_STATUSES = ("todo", "in_progress", "blocked", "done")


@dataclass
class Project:
    """A construction project.

    id is None before the record is written to the database.
    """

    name: str
    status: str = "planning"  # "planning" | "active" | "on_hold" | "completed"
    start_date: Optional[str] = None  # YYYY-MM-DD
    end_date: Optional[str] = None  # YYYY-MM-DD
    budget_total: Optional[float] = None
    notes: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Task:
    """A unit of work on a project."""

    project_id: int
    title: str
    status: str = "todo"  # "todo" | "in_progress" | "blocked" | "done"
    due_date: Optional[str] = None  # YYYY-MM-DD
    id: Optional[int] = None


@dataclass
class Expense:
    """A cost booked against a project."""

    project_id: int
    amount: float
    category_id: str
    expense_date: str  # YYYY-MM-DD
    description: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Company:
    """The company that owns this BuildTrack workspace.

    company_setup_complete flips to True once onboarding has named the company.
    """

    name: str
    company_setup_complete: bool = False
    id: Optional[int] = None
