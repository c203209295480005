from __future__ import annotations

from typing import Protocol

from core.models import Project


class ProjectRepositoryProtocol(Protocol):
    def create_project(self, user_id: str, name: str, currency: str) -> Project: ...

    def list_projects(self, user_id: str, status: str | None = None) -> list[Project]: ...

    def set_status(self, user_id: str, project_id: str, status: str) -> bool: ...
