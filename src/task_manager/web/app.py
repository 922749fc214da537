"""Read-only web dashboard API for the task manager."""

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Route

from task_manager.config import get_config
from task_manager.core import projects as projects_mod
from task_manager.core import tasks as tasks_mod
from task_manager.db.engine import init_db
from task_manager.db.models import STATUSES
from task_manager.web.dashboard import get_dashboard_html


def _get_db():
    config = get_config()
    return init_db(config.db_path)


# ── Handlers ──────────────────────────────────────────────────────────────────


async def index(request: Request):
    return HTMLResponse(get_dashboard_html())


async def api_list_projects(request: Request):
    db = _get_db()
    try:
        projects = projects_mod.list_projects(db)
        return JSONResponse([_project_dict(p) for p in projects])
    finally:
        db.close()


async def api_get_project(request: Request):
    project_id = request.path_params["project_id"]
    db = _get_db()
    try:
        project = projects_mod.get_project(db, project_id)
        if not project:
            return JSONResponse({"error": "Project not found"}, status_code=404)
        return JSONResponse(_project_dict(project))
    finally:
        db.close()


async def api_project_tasks(request: Request):
    project_id = request.path_params["project_id"]
    status_filter = request.query_params.get("status")
    if status_filter and status_filter not in STATUSES:
        return JSONResponse({"error": f"Invalid status: {status_filter}"}, status_code=400)
    db = _get_db()
    try:
        tasks = tasks_mod.list_tasks(db, project_id, status=status_filter)
        return JSONResponse([_task_dict(t) for t in tasks])
    finally:
        db.close()


async def api_project_summary(request: Request):
    project_id = request.path_params["project_id"]
    db = _get_db()
    try:
        tasks = tasks_mod.list_tasks(db, project_id)
    finally:
        db.close()

    counts = {status: 0 for status in STATUSES}
    for t in tasks:
        counts[t.status] += 1
    total = len(tasks)
    progress = (counts["done"] / total * 100) if total > 0 else 0

    return JSONResponse({
        "project_id": project_id,
        "counts": counts,
        "total": total,
        "progress_pct": round(progress, 1),
    })


async def api_get_task(request: Request):
    task_id = request.path_params["task_id"]
    db = _get_db()
    try:
        task = tasks_mod.get_task(db, task_id)
        if not task:
            return JSONResponse({"error": "Task not found"}, status_code=404)
        td = _task_dict(task)
        td["events"] = [_event_dict(e) for e in tasks_mod.get_task_events(db, task_id)]
        return JSONResponse(td)
    finally:
        db.close()


# ── Serialization ─────────────────────────────────────────────────────────────


def _iso(value):
    return value.isoformat() if value else None


def _project_dict(p) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "repo_path": p.repo_path,
        "is_active": p.is_active,
        "created_at": _iso(p.created_at),
    }


def _task_dict(t) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "status": t.status,
        "priority": t.priority,
        "type": t.type,
        "generator": t.generator,
        "description": t.description,
        "project_id": t.project_id,
        "estimated_hours": t.estimated_hours,
        "actual_hours": t.actual_hours,
        "tags": t.tags,
        "depends_on": t.depends_on,
        "ai_context": t.ai_context.to_dict(),
        "created_at": _iso(t.created_at),
        "updated_at": _iso(t.updated_at),
        "completed_at": _iso(t.completed_at),
    }


def _event_dict(e) -> dict:
    return {
        "id": e.id,
        "event_type": e.event_type,
        "old_value": e.old_value,
        "new_value": e.new_value,
        "created_at": _iso(e.created_at),
    }


# ── App ───────────────────────────────────────────────────────────────────────


def create_app() -> Starlette:
    routes = [
        Route("/", index),
        Route("/api/projects", api_list_projects),
        Route("/api/projects/{project_id}", api_get_project),
        Route("/api/projects/{project_id}/tasks", api_project_tasks),
        Route("/api/projects/{project_id}/summary", api_project_summary),
        Route("/api/tasks/{task_id}", api_get_task),
    ]
    return Starlette(routes=routes)


def run_server(host: str = "127.0.0.1", port: int = 8787):
    app = create_app()
    uvicorn.run(app, host=host, port=port)
