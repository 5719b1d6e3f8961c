# fundbridge/services/projects_service.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fundbridge.core.errors import NotFound, StateConflict
from fundbridge.models.enums import ProjectStatus
from fundbridge.models.project import Project
from fundbridge.models.purpose import Purpose
from fundbridge.policies.ownership import require_owner


def get_project_or_404(db: Session, project_id: int) -> Project:
    p = db.get(Project, project_id)
    if p is None:
        raise NotFound("PROJECT_NOT_FOUND")
    return p


class ProjectsService:
    def create(
        self,
        db: Session,
        *,
        title: str,
        owner_address: str,
        description: Optional[str] = None,
        funding_chain_id: Optional[int] = None,
        funding_source_address: Optional[str] = None,
        vault_address: Optional[str] = None,
        settlement_chain_id: Optional[int] = None,
        settlement_recipient_address: Optional[str] = None,
        settlement_token_address: Optional[str] = None,
    ) -> Project:
        now = datetime.now(timezone.utc)
        p = Project(
            title=title,
            description=description,
            owner_address=owner_address,
            status=ProjectStatus.DRAFT.value,
            funding_chain_id=funding_chain_id,
            funding_source_address=funding_source_address,
            vault_address=vault_address,
            settlement_chain_id=settlement_chain_id,
            settlement_recipient_address=settlement_recipient_address,
            settlement_token_address=settlement_token_address,
            created_at=now,
            updated_at=now,
        )
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    def get(self, db: Session, project_id: int) -> Optional[Project]:
        return db.get(Project, project_id)

    def list_purposes(self, db: Session, project_id: int) -> List[Purpose]:
        return list(
            db.execute(
                select(Purpose)
                .where(Purpose.project_id == project_id)
                .order_by(Purpose.order_index.asc(), Purpose.id.asc())
            ).scalars()
        )

    def add_purpose(
        self,
        db: Session,
        project: Project,
        *,
        caller: str,
        code: str,
        label: str,
        description: Optional[str] = None,
        target_amount: Optional[int] = None,
        order_index: int = 0,
    ) -> Purpose:
        require_owner(project, caller)

        now = datetime.now(timezone.utc)
        purpose = Purpose(
            project_id=project.id,
            code=code,
            label=label,
            description=description,
            target_amount=target_amount,
            order_index=order_index,
            created_at=now,
            updated_at=now,
        )
        db.add(purpose)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise StateConflict("PURPOSE_CODE_TAKEN", f"Purpose code {code!r} already exists.")
        db.refresh(purpose)
        return purpose

    def get_purpose(self, db: Session, project_id: int, purpose_id: int) -> Purpose:
        p = db.get(Purpose, purpose_id)
        if p is None or p.project_id != project_id:
            raise NotFound("PURPOSE_NOT_FOUND")
        return p
