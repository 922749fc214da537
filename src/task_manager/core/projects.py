"""Project management operations."""

import sqlite3
from datetime import datetime

from task_manager.db.models import Project


def create_project(
    db: sqlite3.Connection,
    project_id: str,
    name: str,
    repo_path: str = "",
    description: str = "",
) -> Project:
    """Create a new project."""
    if not name.strip():
        raise ValueError("Project name is required")
    if get_project(db, project_id):
        raise ValueError(f"Project already exists: {project_id}")
    db.execute(
        """INSERT INTO projects (id, name, description, repo_path)
           VALUES (?, ?, ?, ?)""",
        (project_id, name, description, repo_path),
    )
    db.commit()
    return get_project(db, project_id)


def get_project(db: sqlite3.Connection, project_id: str) -> Project | None:
    """Get a project by ID."""
    row = db.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
    if not row:
        return None
    return _row_to_project(row)


def list_projects(db: sqlite3.Connection, active_only: bool = False) -> list[Project]:
    """List all projects."""
    query = "SELECT * FROM projects"
    if active_only:
        query += " WHERE is_active = 1"
    rows = db.execute(query + " ORDER BY created_at DESC, rowid DESC").fetchall()
    return [_row_to_project(r) for r in rows]


def find_project(db: sqlite3.Connection, name_or_id: str) -> Project | None:
    """Find a project by exact ID, falling back to a case-insensitive name match."""
    project = get_project(db, name_or_id)
    if project:
        return project
    needle = name_or_id.lower()
    for candidate in list_projects(db):
        if needle in candidate.name.lower():
            return candidate
    return None


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row["description"] or "",
        repo_path=row["repo_path"] or "",
        is_active=bool(row["is_active"]),
        created_at=_parse_dt(row["created_at"]),
        updated_at=_parse_dt(row["updated_at"]),
    )


def _parse_dt(val: str | None) -> datetime | None:
    if val is None:
        return None
    return datetime.fromisoformat(val)
