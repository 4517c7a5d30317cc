"""
tracker/store.py -- SQLAlchemy-backed persistence layer for BuildTrack projects.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in tracker/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. TrackerStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Route
handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TrackerStore("sqlite:///:memory:")
    store.seed()                                  # demo portfolio, only when empty
    project_id = store.create_project(Project(name="Maple St Renovation"))
    store.create_task(Task(project_id=project_id, title="Site survey"))
    tasks = store.list_tasks(project_id=project_id, status="todo")
    store.close()
"""

import logging
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine

from tracker.models import TASK_STATUSES, Company, Expense, Project, Task

logger = logging.getLogger("buildtrack.tracker")

DEFAULT_COMPANY_NAME = "BuildTrack"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_projects = Table(
    "projects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("status", String(30), nullable=False, server_default="planning"),
    Column("start_date", String(10)),  # YYYY-MM-DD
    Column("end_date", String(10)),  # YYYY-MM-DD
    Column("budget_total", Float),
    Column("notes", Text),
)

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("project_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("status", String(30), nullable=False, server_default="todo"),
    Column("due_date", String(10)),  # YYYY-MM-DD
)

_expenses = Table(
    "expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("project_id", Integer, nullable=False, index=True),
    Column("amount", Float, nullable=False),
    Column("category_id", String(64), nullable=False),
    Column("description", Text),
    Column("expense_date", String(10), nullable=False),
)

_companies = Table(
    "companies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("company_setup_complete", Integer, nullable=False, server_default="0"),  # boolean stored as 0/1
)

# ---------------------------------------------------------------------------
# Demo portfolio
# ---------------------------------------------------------------------------

_SEED_TASK_TITLES = [
    "Site survey",
    "Permit submission",
    "Demolition - interior walls",
    "Foundation pour",
    "Concrete curing",
    "Steel beam installation",
    "Framing - first floor",
    "Framing - second floor",
    "Roofing",
    "Electrical rough-in",
    "Plumbing rough-in",
    "HVAC installation",
    "Insulation",
    "Drywall installation",
    "Window installation",
    "Door installation",
    "MEP coordination",
    "Waterproofing",
    "Masonry work",
    "Stucco application",
    "Flooring - tile",
    "Flooring - hardwood",
    "Cabinet installation",
    "Countertop installation",
    "Painting - interior",
    "Painting - exterior",
    "Trim and finish work",
    "Landscaping",
    "Parking lot paving",
    "Security system installation",
    "Fire suppression system",
    "Utility connections",
    "Engineering review",
    "Final inspection",
    "Owner walkthrough",
    "Final punch list",
    "Certificate of occupancy",
    "Project closeout",
    "Signage installation",
    "Elevator shaft rough-in",
]


# (project, number of tasks)
_SEED_PROJECTS: list[tuple[Project, int]] = [
    (Project(name="Maple St Renovation", status="active", start_date="2026-01-15", budget_total=420000), 12),
    (Project(name="Harbor View Condos", status="active", start_date="2025-11-01", budget_total=2800000), 5),
    (Project(name="Downtown Office Complex", status="planning", start_date="2026-04-01", budget_total=5100000), 38),
    (Project(name="Riverside Warehouse", status="on_hold", start_date="2025-09-15", budget_total=875000), 21),
    (Project(name="Elmwood Medical Center", status="active", start_date="2026-02-01", budget_total=9200000), 9),
    (Project(name="Sunset Retail Strip", status="planning", start_date="2026-06-01", budget_total=1350000), 40),
    (
        Project(
            name="Lakeshore Apartments",
            status="completed",
            start_date="2025-03-01",
            end_date="2025-12-20",
            budget_total=3400000,
        ),
        17,
    ),
    (Project(name="Tech Park Building B", status="active", start_date="2026-01-05", budget_total=6750000), 28),
]


def _seed_due_date(index: int) -> str:
    return f"2026-0{(index % 9) + 1}-{(index % 28) + 1:02d}"


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TrackerStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a threadpool, so one connection
            # may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, project: Project) -> int:
        """Insert a new project and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _projects.insert().values(
                    name=project.name,
                    status=project.status,
                    start_date=project.start_date,
                    end_date=project.end_date,
                    budget_total=project.budget_total,
                    notes=project.notes,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_project(self, project_id: int) -> Optional[Project]:
        """Fetch a single project by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_projects.select().where(_projects.c.id == project_id)).fetchone()
        return _row_to_project(row) if row is not None else None

    def list_projects(self) -> list[Project]:
        """Return all projects in creation order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_projects.select().order_by(_projects.c.id)).fetchall()
        return [_row_to_project(r) for r in rows]

    def update_project(self, project_id: int, **fields) -> bool:
        """Update mutable fields on an existing project.

        Accepts any subset of: name, status, start_date, end_date,
        budget_total, notes. Returns True if a row was updated, False if
        project_id was not found.
        """
        if not fields:
            return self.get_project(project_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_projects.update().where(_projects.c.id == project_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    project_id=task.project_id,
                    title=task.title,
                    status=task.status,
                    due_date=task.due_date,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_task(self, task_id: int) -> Optional[Task]:
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(_tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def list_tasks(
        self,
        project_id: Optional[int] = None,
        status: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> list[Task]:
        """Return tasks matching every filter given.

        Date bounds are inclusive and compare YYYY-MM-DD strings. Tasks with
        no due date are never excluded by a date bound.
        """
        query = _tasks.select()
        if project_id is not None:
            query = query.where(_tasks.c.project_id == project_id)
        if status is not None:
            query = query.where(_tasks.c.status == status)
        if from_date is not None:
            query = query.where(or_(_tasks.c.due_date.is_(None), _tasks.c.due_date >= from_date))
        if to_date is not None:
            query = query.where(or_(_tasks.c.due_date.is_(None), _tasks.c.due_date <= to_date))
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_tasks.c.id)).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self, task_id: int, **fields) -> bool:
        """Update title, status, or due_date. Returns False if task_id was not found."""
        if not fields:
            return self.get_task(task_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.update().where(_tasks.c.id == task_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def create_expense(self, expense: Expense) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _expenses.insert().values(
                    project_id=expense.project_id,
                    amount=expense.amount,
                    category_id=expense.category_id,
                    description=expense.description,
                    expense_date=expense.expense_date,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        with self.engine.connect() as conn:
            row = conn.execute(_expenses.select().where(_expenses.c.id == expense_id)).fetchone()
        return _row_to_expense(row) if row is not None else None

    def list_expenses(self, project_id: int) -> list[Expense]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _expenses.select().where(_expenses.c.project_id == project_id).order_by(_expenses.c.id)
            ).fetchall()
        return [_row_to_expense(r) for r in rows]

    # ------------------------------------------------------------------
    # Company
    # ------------------------------------------------------------------

    def get_company(self) -> Optional[Company]:
        """Return the workspace company (lowest ID), or None before ensure_company()."""
        with self.engine.connect() as conn:
            row = conn.execute(_companies.select().order_by(_companies.c.id).limit(1)).fetchone()
        return _row_to_company(row) if row is not None else None

    def create_company(self, company: Company) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _companies.insert().values(
                    name=company.name,
                    company_setup_complete=1 if company.company_setup_complete else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_company(self, company_id: int, name: str, company_setup_complete: bool) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _companies.update()
                .where(_companies.c.id == company_id)
                .values(name=name, company_setup_complete=1 if company_setup_complete else 0)
            )
            conn.commit()
        return result.rowcount > 0

    def ensure_company(self) -> Company:
        """Create the default company record if none exists, and return it.

        Idempotent -- safe to call on every startup.
        """
        existing = self.get_company()
        if existing is not None:
            return existing
        company_id = self.create_company(Company(name=DEFAULT_COMPANY_NAME))
        logger.info("Created default company record (id=%d)", company_id)
        return Company(id=company_id, name=DEFAULT_COMPANY_NAME, company_setup_complete=False)

    # ------------------------------------------------------------------
    # Seed / reset
    # ------------------------------------------------------------------

    def seed(self) -> bool:
        """Load the demo portfolio if there are no projects yet.

        Returns True if data was written, False if the store already had projects.
        """
        with self.engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(_projects)).scalar() or 0
        if count > 0:
            return False

        first_project_id: Optional[int] = None
        for project, task_count in _SEED_PROJECTS:
            project_id = self.create_project(project)
            if first_project_id is None:
                first_project_id = project_id
            for index in range(task_count):
                self.create_task(
                    Task(
                        project_id=project_id,
                        title=_SEED_TASK_TITLES[index % len(_SEED_TASK_TITLES)],
                        status=TASK_STATUSES[index % len(TASK_STATUSES)],
                        due_date=_seed_due_date(index),
                    )
                )

        self.create_expense(
            Expense(
                project_id=first_project_id,
                amount=12480,
                category_id="cat_1",
                description="Concrete Supply Co.",
                expense_date="2026-02-10",
            )
        )
        logger.info("Seeded demo portfolio (%d projects)", len(_SEED_PROJECTS))
        return True

    def reset(self) -> None:
        """Delete every tracker row. Schema is kept."""
        with self.engine.connect() as conn:
            for table in (_expenses, _tasks, _projects, _companies):
                conn.execute(table.delete())
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_project(row) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        status=row.status,
        start_date=row.start_date,
        end_date=row.end_date,
        budget_total=row.budget_total,
        notes=row.notes,
    )


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        project_id=row.project_id,
        title=row.title,
        status=row.status,
        due_date=row.due_date,
    )


def _row_to_expense(row) -> Expense:
    return Expense(
        id=row.id,
        project_id=row.project_id,
        amount=row.amount,
        category_id=row.category_id,
        description=row.description,
        expense_date=row.expense_date,
    )


def _row_to_company(row) -> Company:
    return Company(
        id=row.id,
        name=row.name,
        company_setup_complete=bool(row.company_setup_complete),
    )
