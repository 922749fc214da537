"""Task management operations."""

import json
import re
import sqlite3
from datetime import datetime

from task_manager.db.models import (
    PRIORITIES,
    STATUSES,
    TASK_TYPES,
    AIContext,
    GeneratorKind,
    Task,
    TaskEvent,
    TaskQuery,
)

SORT_COLUMNS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "due_date": "due_date",
    "title": "title COLLATE NOCASE",
    "priority": (
        "CASE priority WHEN 'critical' THEN 4 WHEN 'high' THEN 3 "
        "WHEN 'medium' THEN 2 ELSE 1 END"
    ),
}


def slugify(title: str) -> str:
    """Convert a title to a URL-friendly slug."""
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:60]


def infer_generator(task_type: str, title: str) -> GeneratorKind:
    """Pick the generator for a task from its type and title keywords."""
    lowered = title.lower()
    if task_type == "feature":
        if "navigation" in lowered:
            return GeneratorKind.NAVIGATION
        if "authentication" in lowered:
            return GeneratorKind.AUTHENTICATION
    elif task_type == "improvement" and "project structure" in lowered:
        return GeneratorKind.PROJECT_STRUCTURE
    elif task_type == "deployment" and "firebase" in lowered:
        return GeneratorKind.BACKEND_CONFIG
    return GeneratorKind.NONE


def _unique_id(db: sqlite3.Connection, base_slug: str) -> str:
    """Generate a unique task ID from a slug, appending a number if needed."""
    base_slug = base_slug or "task"
    existing = db.execute(
        "SELECT id FROM tasks WHERE id = ?", (base_slug,)
    ).fetchone()
    if not existing:
        return base_slug

    i = 2
    while True:
        candidate = f"{base_slug}-{i}"
        existing = db.execute(
            "SELECT id FROM tasks WHERE id = ?", (candidate,)
        ).fetchone()
        if not existing:
            return candidate
        i += 1


def _check_choice(value: str, allowed: tuple, label: str):
    if value not in allowed:
        raise ValueError(f"Invalid {label} '{value}'. Expected one of: {', '.join(allowed)}")


def create_task(
    db: sqlite3.Connection,
    title: str,
    project_id: str = "default",
    description: str = "",
    priority: str = "medium",
    type: str = "feature",
    estimated_hours: float | None = None,
    due_date: datetime | None = None,
    tags: list[str] | None = None,
    depends_on: list[str] | None = None,
    ai_context: AIContext | None = None,
    generator: GeneratorKind | str | None = None,
) -> Task:
    """Create a new task in status 'todo'.

    When no generator is given it is inferred from the type and title, so the
    agent never has to re-read free text at planning time.
    """
    if not title.strip():
        raise ValueError("Task title is required")
    _check_choice(priority, PRIORITIES, "priority")
    _check_choice(type, TASK_TYPES, "type")
    if estimated_hours is not None and estimated_hours <= 0:
        raise ValueError("Estimated hours must be positive")
    if not db.execute("SELECT 1 FROM projects WHERE id = ?", (project_id,)).fetchone():
        raise ValueError(f"Project not found: {project_id}")

    kind = GeneratorKind(generator) if generator else infer_generator(type, title)
    task_id = _unique_id(db, slugify(title))
    context = ai_context or AIContext()
    unique_tags = list(dict.fromkeys(tags or []))

    db.execute(
        """INSERT INTO tasks (id, project_id, title, description, priority, type, generator,
                              estimated_hours, due_date, tags, ai_context)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            task_id,
            project_id,
            title,
            description,
            priority,
            type,
            kind.value,
            estimated_hours,
            due_date.isoformat() if due_date else None,
            json.dumps(unique_tags),
            json.dumps(context.to_dict()),
        ),
    )

    if depends_on:
        for dep_id in depends_on:
            db.execute(
                "INSERT INTO task_dependencies (task_id, depends_on_task_id) VALUES (?, ?)",
                (task_id, dep_id),
            )

    _log_event(db, task_id, "created", None, "todo")
    db.commit()
    return get_task(db, task_id)


def get_task(db: sqlite3.Connection, task_id: str) -> Task | None:
    """Get a task by ID with its dependencies."""
    row = db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    if not row:
        return None
    task = _row_to_task(row)
    task.depends_on = _dependencies(db, task_id)
    return task


def query_tasks(db: sqlite3.Connection, query: TaskQuery) -> list[Task]:
    """Return tasks matching the query filters, in the requested order."""
    if query.sort_by not in SORT_COLUMNS:
        raise ValueError(f"Cannot sort by '{query.sort_by}'")
    if query.sort_order not in ("asc", "desc"):
        raise ValueError(f"Invalid sort order '{query.sort_order}'")

    sql = "SELECT * FROM tasks WHERE 1=1"
    params: list = []

    if query.project_id:
        sql += " AND project_id = ?"
        params.append(query.project_id)

    if query.statuses:
        for status in query.statuses:
            _check_choice(status, STATUSES, "status")
        sql += f" AND status IN ({', '.join('?' for _ in query.statuses)})"
        params.extend(query.statuses)

    # rowid keeps ties in insertion order
    sql += f" ORDER BY {SORT_COLUMNS[query.sort_by]} {query.sort_order.upper()}, rowid ASC"

    if query.limit is not None:
        sql += " LIMIT ?"
        params.append(query.limit)

    rows = db.execute(sql, params).fetchall()
    tasks = []
    for row in rows:
        task = _row_to_task(row)
        task.depends_on = _dependencies(db, task.id)
        tasks.append(task)
    return tasks


def list_tasks(
    db: sqlite3.Connection,
    project_id: str = "default",
    status: str | None = None,
) -> list[Task]:
    """List a project's tasks, highest priority first."""
    return query_tasks(
        db,
        TaskQuery(
            project_id=project_id,
            statuses=[status] if status else None,
            sort_by="priority",
            sort_order="desc",
        ),
    )


def update_task(
    db: sqlite3.Connection,
    task_id: str,
    status: str | None = None,
    actual_hours: float | None = None,
) -> Task | None:
    """Patch a task's status and/or actual hours. Returns the updated task."""
    task = get_task(db, task_id)
    if not task:
        return None

    updates: dict = {}
    if status is not None:
        _check_choice(status, STATUSES, "status")
        updates["status"] = status
        if status == "done" and task.status != "done":
            updates["completed_at"] = datetime.now().isoformat()
    if actual_hours is not None:
        updates["actual_hours"] = actual_hours

    if not updates:
        return task

    set_parts = [f"{k} = ?" for k in updates]
    set_parts.append("updated_at = datetime('now')")
    values = list(updates.values()) + [task_id]

    db.execute(
        f"UPDATE tasks SET {', '.join(set_parts)} WHERE id = ?",
        values,
    )
    if status is not None and status != task.status:
        _log_event(db, task_id, "status_changed", task.status, status)
    if actual_hours is not None:
        old = str(task.actual_hours) if task.actual_hours is not None else None
        _log_event(db, task_id, "actual_hours_changed", old, str(actual_hours))
    db.commit()
    return get_task(db, task_id)


def update_task_status(db: sqlite3.Connection, task_id: str, status: str) -> Task | None:
    """Update a task's status. Returns the updated task."""
    return update_task(db, task_id, status=status)


def get_task_events(db: sqlite3.Connection, task_id: str) -> list[TaskEvent]:
    """Get the event history for a task."""
    rows = db.execute(
        "SELECT * FROM task_events WHERE task_id = ? ORDER BY created_at, id",
        (task_id,),
    ).fetchall()
    return [
        TaskEvent(
            id=r["id"],
            task_id=r["task_id"],
            event_type=r["event_type"],
            old_value=r["old_value"],
            new_value=r["new_value"],
            created_at=_parse_dt(r["created_at"]),
        )
        for r in rows
    ]


def _dependencies(db: sqlite3.Connection, task_id: str) -> list[str]:
    deps = db.execute(
        "SELECT depends_on_task_id FROM task_dependencies WHERE task_id = ?",
        (task_id,),
    ).fetchall()
    return [d["depends_on_task_id"] for d in deps]


def _log_event(
    db: sqlite3.Connection,
    task_id: str,
    event_type: str,
    old_value: str | None,
    new_value: str | None,
):
    db.execute(
        "INSERT INTO task_events (task_id, event_type, old_value, new_value) VALUES (?, ?, ?, ?)",
        (task_id, event_type, old_value, new_value),
    )


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        description=row["description"],
        priority=row["priority"],
        status=row["status"],
        type=row["type"],
        generator=row["generator"] or GeneratorKind.NONE.value,
        estimated_hours=row["estimated_hours"],
        actual_hours=row["actual_hours"],
        due_date=_parse_dt(row["due_date"]),
        tags=json.loads(row["tags"] or "[]"),
        ai_context=AIContext.from_dict(json.loads(row["ai_context"] or "{}")),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
        completed_at=_parse_dt(row["completed_at"]),
    )


def _parse_dt(val: str | None) -> datetime | None:
    if val is None:
        return None
    return datetime.fromisoformat(val)
