"""
SQLAlchemy repositories for the publish ledger, drafts and LINE channels.

Each call opens its own session and commits before returning, so every
ledger transition is visible to a client polling the job while the
publish is still running.
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.richmenu.domain.entities import Draft, Menu, MenuProgress, PublishJob, RichMenuVersion
from src.richmenu.domain.exceptions import PublishJobNotFoundError
from src.richmenu.domain.value_objects import DraftStatus, JobStatus, PublishStep
from src.richmenu.infrastructure.models import (
    DraftModel,
    LineChannelModel,
    PublishJobModel,
    RichMenuVersionModel,
)
from src.shared.logging import get_logger
from src.shared.security import TokenCipher

logger = get_logger(__name__)


class SqlAlchemyPublishJobRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert_job(self, job: PublishJob) -> None:
        async with self.session_factory() as session:
            session.add(
                PublishJobModel(
                    id=job.id,
                    user_id=job.user_id,
                    draft_id=job.draft_id,
                    status=job.status.value,
                    current_step=job.current_step.value,
                    progress=job.progress_snapshot(),
                    error_message=job.error_message,
                    created_at=job.created_at,
                    updated_at=job.updated_at,
                )
            )
            await session.commit()

    async def update_job_progress(self, job: PublishJob, step: PublishStep) -> None:
        await self._update(
            job.id,
            current_step=step.value,
            progress=job.progress_snapshot(),
            updated_at=job.updated_at,
        )

    async def update_job_status(
        self, job: PublishJob, status: JobStatus, error: Optional[str] = None
    ) -> None:
        await self._update(
            job.id,
            status=status.value,
            current_step=job.current_step.value,
            progress=job.progress_snapshot(),
            error_message=error,
            completed_at=job.completed_at,
            updated_at=job.updated_at,
        )

    async def _update(self, job_id: UUID, **values) -> None:
        async with self.session_factory() as session:
            result = await session.execute(
                update(PublishJobModel).where(PublishJobModel.id == job_id).values(**values)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise PublishJobNotFoundError(f"Publish job {job_id} not found")
            await session.commit()

    async def get_job(self, user_id: UUID, job_id: UUID) -> Optional[PublishJob]:
        async with self.session_factory() as session:
            model = (
                await session.execute(
                    select(PublishJobModel).where(
                        PublishJobModel.id == job_id,
                        PublishJobModel.user_id == user_id,
                    )
                )
            ).scalar_one_or_none()
        return self._to_entity(model) if model else None

    @staticmethod
    def _to_entity(model: PublishJobModel) -> PublishJob:
        return PublishJob(
            id=model.id,
            user_id=model.user_id,
            draft_id=model.draft_id,
            progress=[MenuProgress.from_dict(p) for p in model.progress or []],
            status=JobStatus(model.status),
            current_step=PublishStep(model.current_step),
            error_message=model.error_message,
            created_at=model.created_at,
            updated_at=model.updated_at,
            completed_at=model.completed_at,
        )


class SqlAlchemyRichMenuVersionRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def insert_version(self, version: RichMenuVersion) -> None:
        async with self.session_factory() as session:
            session.add(
                RichMenuVersionModel(
                    id=version.id,
                    user_id=version.user_id,
                    alias_id=version.alias_id,
                    rich_menu_id=version.rich_menu_id,
                    menu_name=version.menu_name,
                    is_main=version.is_main,
                    is_active=version.is_active,
                    draft_id=version.draft_id,
                    job_id=version.job_id,
                    created_at=version.created_at,
                )
            )
            await session.commit()

    async def deactivate_versions_by_alias(self, user_id: UUID, alias_id: str) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                update(RichMenuVersionModel)
                .where(
                    RichMenuVersionModel.user_id == user_id,
                    RichMenuVersionModel.alias_id == alias_id,
                    RichMenuVersionModel.is_active.is_(True),
                )
                .values(is_active=False)
            )
            await session.commit()
            return result.rowcount or 0

    async def list_versions(
        self, user_id: UUID, alias_id: Optional[str] = None
    ) -> List[RichMenuVersion]:
        stmt = select(RichMenuVersionModel).where(RichMenuVersionModel.user_id == user_id)
        if alias_id:
            stmt = stmt.where(RichMenuVersionModel.alias_id == alias_id)
        stmt = stmt.order_by(RichMenuVersionModel.created_at.desc())
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [
            RichMenuVersion(
                id=row.id,
                user_id=row.user_id,
                alias_id=row.alias_id,
                rich_menu_id=row.rich_menu_id,
                menu_name=row.menu_name,
                is_main=row.is_main,
                is_active=row.is_active,
                draft_id=row.draft_id,
                job_id=row.job_id,
                created_at=row.created_at,
            )
            for row in rows
        ]


class SqlAlchemyLineChannelRepository:
    """Reads the user's Fernet-encrypted channel access token."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], cipher: TokenCipher):
        self.session_factory = session_factory
        self.cipher = cipher

    async def get_access_token(self, user_id: UUID) -> Optional[str]:
        async with self.session_factory() as session:
            encrypted = (
                await session.execute(
                    select(LineChannelModel.access_token_encrypted).where(LineChannelModel.user_id == user_id)
                )
            ).scalar_one_or_none()
        if not encrypted:
            return None
        return self.cipher.decrypt(encrypted)


class SqlAlchemyDraftRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, user_id: UUID, draft_id: UUID) -> Optional[Draft]:
        async with self.session_factory() as session:
            model = (
                await session.execute(
                    select(DraftModel).where(DraftModel.id == draft_id, DraftModel.user_id == user_id)
                )
            ).scalar_one_or_none()
        if model is None:
            return None
        return Draft(
            id=model.id,
            user_id=model.user_id,
            name=model.name,
            menus=[Menu.from_dict(m) for m in (model.data or {}).get("menus", [])],
            status=DraftStatus(model.status),
            scheduled_at=model.scheduled_at,
            folder_id=model.folder_id,
            updated_at=model.updated_at,
        )

    async def save(self, draft: Draft) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(DraftModel)
                .where(DraftModel.id == draft.id, DraftModel.user_id == draft.user_id)
                .values(
                    name=draft.name,
                    status=draft.status.value,
                    scheduled_at=draft.scheduled_at,
                    folder_id=draft.folder_id,
                    data={"menus": [m.to_dict() for m in draft.menus]},
                )
            )
            await session.commit()
        logger.debug("Draft saved", draft_id=str(draft.id), status=draft.status.value)
