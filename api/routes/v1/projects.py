"""
api/routes/v1/projects.py -- Project, task, and expense routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /projects                      -- list projects
  POST   /projects                      -- create project
  GET    /projects/{project_id}         -- project detail
  PATCH  /projects/{project_id}         -- partial update
  GET    /projects/{project_id}/tasks   -- tasks for one project
  POST   /projects/{project_id}/tasks   -- add task
  GET    /projects/{project_id}/expenses -- expenses for one project
  POST   /projects/{project_id}/expenses -- add expense
  GET    /tasks                         -- filter tasks across projects
  GET    /tasks/{task_id}               -- task detail
  PATCH  /tasks/{task_id}               -- partial update

Every payload is wrapped as {"data": ...}. Missing records return
404 {"error": "Not found"}.
"""

from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.models import (
    DATE_PATTERN,
    DataResponse,
    ErrorResponse,
    ExpenseCreate,
    ExpenseOut,
    ProjectCreate,
    ProjectOut,
    ProjectPatch,
    TaskCreate,
    TaskOut,
    TaskPatch,
    TaskStatusEnum,
)
from auth.dependencies import require_auth
from tracker.models import Expense, Project, Task
from tracker.store import TrackerStore

# All tracker routes require authentication.
# Router-level dependency applies to every route registered on this router,
# so the 401 fires before any handler below runs.
router = APIRouter(dependencies=[Depends(require_auth)])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorResponse(error="Not found", code="not_found").model_dump(exclude_none=True),
    )


def _require_project(tracker: TrackerStore, project_id: int) -> Project:
    project = tracker.get_project(project_id)
    if project is None:
        raise _not_found()
    return project


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@router.get("/projects", response_model=DataResponse[list[ProjectOut]])
def list_projects(request: Request) -> DataResponse[list[ProjectOut]]:
    tracker: TrackerStore = request.app.state.tracker
    return DataResponse(data=[_project_out(p) for p in tracker.list_projects()])


@router.post("/projects", response_model=DataResponse[ProjectOut], status_code=201)
def create_project(request: Request, body: ProjectCreate) -> DataResponse[ProjectOut]:
    tracker: TrackerStore = request.app.state.tracker
    project_id = tracker.create_project(
        Project(
            name=body.name,
            status=body.status.value,
            start_date=body.start_date,
            end_date=body.end_date,
            budget_total=body.budget_total,
            notes=body.notes,
        )
    )
    return DataResponse(data=_project_out(_require_project(tracker, project_id)))


@router.get("/projects/{project_id}", response_model=DataResponse[ProjectOut])
def get_project(request: Request, project_id: int) -> DataResponse[ProjectOut]:
    tracker: TrackerStore = request.app.state.tracker
    return DataResponse(data=_project_out(_require_project(tracker, project_id)))


@router.patch("/projects/{project_id}", response_model=DataResponse[ProjectOut])
def update_project(request: Request, project_id: int, body: ProjectPatch) -> DataResponse[ProjectOut]:
    """Apply the fields present in the body; absent fields are left unchanged."""
    tracker: TrackerStore = request.app.state.tracker
    _require_project(tracker, project_id)
    updates = _patch_fields(body, required=("name", "status"))
    tracker.update_project(project_id, **updates)
    return DataResponse(data=_project_out(_require_project(tracker, project_id)))


# ---------------------------------------------------------------------------
# Project tasks and expenses
# ---------------------------------------------------------------------------


@router.get("/projects/{project_id}/tasks", response_model=DataResponse[list[TaskOut]])
def list_project_tasks(request: Request, project_id: int) -> DataResponse[list[TaskOut]]:
    tracker: TrackerStore = request.app.state.tracker
    _require_project(tracker, project_id)
    return DataResponse(data=[_task_out(t) for t in tracker.list_tasks(project_id=project_id)])


@router.post("/projects/{project_id}/tasks", response_model=DataResponse[TaskOut], status_code=201)
def create_task(request: Request, project_id: int, body: TaskCreate) -> DataResponse[TaskOut]:
    tracker: TrackerStore = request.app.state.tracker
    _require_project(tracker, project_id)
    task_id = tracker.create_task(
        Task(project_id=project_id, title=body.title, status=body.status.value, due_date=body.due_date)
    )
    return DataResponse(data=_task_out(tracker.get_task(task_id)))


@router.get("/projects/{project_id}/expenses", response_model=DataResponse[list[ExpenseOut]])
def list_project_expenses(request: Request, project_id: int) -> DataResponse[list[ExpenseOut]]:
    tracker: TrackerStore = request.app.state.tracker
    _require_project(tracker, project_id)
    return DataResponse(data=[_expense_out(e) for e in tracker.list_expenses(project_id)])


@router.post("/projects/{project_id}/expenses", response_model=DataResponse[ExpenseOut], status_code=201)
def create_expense(request: Request, project_id: int, body: ExpenseCreate) -> DataResponse[ExpenseOut]:
    tracker: TrackerStore = request.app.state.tracker
    _require_project(tracker, project_id)
    expense_id = tracker.create_expense(
        Expense(
            project_id=project_id,
            amount=body.amount,
            category_id=body.category_id,
            description=body.description,
            expense_date=body.expense_date,
        )
    )
    return DataResponse(data=_expense_out(tracker.get_expense(expense_id)))


# ---------------------------------------------------------------------------
# Tasks across projects
# ---------------------------------------------------------------------------


@router.get("/tasks", response_model=DataResponse[list[TaskOut]])
def list_tasks(
    request: Request,
    project_id: Optional[int] = Query(default=None, alias="projectId"),
    status: Optional[TaskStatusEnum] = Query(default=None),
    from_date: Optional[str] = Query(default=None, alias="fromDate", pattern=DATE_PATTERN),
    to_date: Optional[str] = Query(default=None, alias="toDate", pattern=DATE_PATTERN),
) -> DataResponse[list[TaskOut]]:
    """Filter tasks by project, status, and an inclusive due-date window."""
    tracker: TrackerStore = request.app.state.tracker
    tasks = tracker.list_tasks(
        project_id=project_id,
        status=status.value if status else None,
        from_date=from_date,
        to_date=to_date,
    )
    return DataResponse(data=[_task_out(t) for t in tasks])


@router.get("/tasks/{task_id}", response_model=DataResponse[TaskOut])
def get_task(request: Request, task_id: int) -> DataResponse[TaskOut]:
    tracker: TrackerStore = request.app.state.tracker
    task = tracker.get_task(task_id)
    if task is None:
        raise _not_found()
    return DataResponse(data=_task_out(task))


@router.patch("/tasks/{task_id}", response_model=DataResponse[TaskOut])
def update_task(request: Request, task_id: int, body: TaskPatch) -> DataResponse[TaskOut]:
    tracker: TrackerStore = request.app.state.tracker
    if tracker.get_task(task_id) is None:
        raise _not_found()
    updates = _patch_fields(body, required=("title", "status"))
    tracker.update_task(task_id, **updates)
    return DataResponse(data=_task_out(tracker.get_task(task_id)))


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def _patch_fields(body, required: tuple[str, ...]) -> dict:
    """Return the fields the client sent, ready for the store.

    An explicit null on a required column is ignored rather than written.
    Enum members are stored by value.
    """
    updates: dict = {}
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is None and key in required:
            continue
        updates[key] = value.value if isinstance(value, Enum) else value
    return updates


def _project_out(project: Project) -> ProjectOut:
    return ProjectOut(
        id=project.id,
        name=project.name,
        status=project.status,
        start_date=project.start_date,
        end_date=project.end_date,
        budget_total=project.budget_total,
        notes=project.notes,
    )


def _task_out(task: Task) -> TaskOut:
    return TaskOut(
        id=task.id,
        project_id=task.project_id,
        title=task.title,
        status=task.status,
        due_date=task.due_date,
    )


def _expense_out(expense: Expense) -> ExpenseOut:
    return ExpenseOut(
        id=expense.id,
        project_id=expense.project_id,
        amount=expense.amount,
        category_id=expense.category_id,
        description=expense.description,
        expense_date=expense.expense_date,
    )
