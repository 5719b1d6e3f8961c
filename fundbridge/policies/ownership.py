#fundbridge/policies/ownership.py
from __future__ import annotations

from typing import Optional

from fundbridge.core.errors import Forbidden
from fundbridge.models.project import Project


def is_owner(project: Project, address: Optional[str]) -> bool:
    """
    Pure check: the caller address equals the project owner (case-insensitive).
    A project without an owner has no one allowed to act on it.
    """
    owner = (project.owner_address or "").strip().lower()
    caller = (address or "").strip().lower()
    return bool(owner) and owner == caller


def require_owner(project: Project, address: Optional[str]) -> None:
    if not is_owner(project, address):
        raise Forbidden("FORBIDDEN_NOT_OWNER", "Caller is not the project owner.")
