from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from uuid import uuid4

from core.enums import ProjectStatus
from core.models import Project, utc_now_iso
from projects.repository_interface import ProjectRepositoryProtocol


class ProjectRepository(ProjectRepositoryProtocol):
    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = Path(sqlite_path)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.sqlite_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS projects(
                    project_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    currency TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_projects_user_status ON projects(user_id, status)")
            conn.commit()

    def create_project(self, user_id: str, name: str, currency: str) -> Project:
        now = utc_now_iso()
        project = Project(
            project_id=str(uuid4()),
            user_id=user_id,
            name=name,
            currency=currency,
            status=ProjectStatus.OPEN.value,
            created_at=now,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO projects(project_id, user_id, name, currency, status, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (project.project_id, user_id, name, currency, project.status, now, now),
            )
            conn.commit()
        return project

    def list_projects(self, user_id: str, status: str | None = None) -> list[Project]:
        query = "SELECT project_id, user_id, name, currency, status, created_at FROM projects WHERE user_id = ?"
        params: list[str] = [user_id]
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY name"
        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [
            Project(
                project_id=row["project_id"],
                user_id=row["user_id"],
                name=row["name"],
                currency=row["currency"],
                status=row["status"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def set_status(self, user_id: str, project_id: str, status: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE projects SET status = ?, updated_at = ? WHERE project_id = ? AND user_id = ?",
                (status, utc_now_iso(), project_id, user_id),
            )
            conn.commit()
            updated = cursor.rowcount > 0
        return updated
