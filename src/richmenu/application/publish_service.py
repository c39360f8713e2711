"""
Publish service: the entry points the HTTP layer calls.

Wraps the orchestrator with the concerns around a publish:
- channel token lookup (fails before any job is created)
- the per-user publish lock
- for whole projects: validation, payload building, one-menu chunks and
  the draft write-back
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from src.richmenu.application.dto import (
    MenuPublishResult,
    ProjectPublishOutcome,
    PublishMenuItem,
    PublishOutcome,
    PublishRequest,
)
from src.richmenu.application.payload_builder import build_publish_request
from src.richmenu.application.publish_orchestrator import PublishOrchestrator
from src.richmenu.application.validation import (
    ValidationIssue,
    check_image,
    validate_menu_images,
    validate_menus,
)
from src.richmenu.domain.entities import Draft, Menu, PublishJob, RichMenuVersion
from src.richmenu.domain.exceptions import (
    DraftNotFoundError,
    LineChannelNotConfiguredError,
    MenuValidationError,
    PublishJobNotFoundError,
)
from src.richmenu.domain.protocols import (
    DraftRepository,
    ImageLoader,
    LineChannelRepository,
    LineGatewayFactory,
    PublishJobRepository,
    PublishLock,
    RichMenuVersionRepository,
)
from src.shared.logging import get_logger

logger = get_logger(__name__)


class PublishService:
    def __init__(
        self,
        *,
        channels: LineChannelRepository,
        gateway_factory: LineGatewayFactory,
        jobs: PublishJobRepository,
        versions: RichMenuVersionRepository,
        images: ImageLoader,
        drafts: DraftRepository,
        lock: PublishLock,
    ) -> None:
        self.channels = channels
        self.gateway_factory = gateway_factory
        self.jobs = jobs
        self.versions = versions
        self.images = images
        self.drafts = drafts
        self.lock = lock

    async def _require_token(self, user_id: UUID) -> str:
        token = await self.channels.get_access_token(user_id)
        if not token:
            raise LineChannelNotConfiguredError(user_id)
        return token

    def _orchestrator(self, gateway) -> PublishOrchestrator:
        return PublishOrchestrator(
            gateway=gateway,
            jobs=self.jobs,
            versions=self.versions,
            images=self.images,
        )

    async def publish(self, user_id: UUID, request: PublishRequest) -> PublishOutcome:
        """
        Publish pre-built menus.

        Raises:
            MenuValidationError: An attached image fails LINE's limits (nothing sent)
            LineChannelNotConfiguredError: No token on file (no job is created)
            PublishInProgressError: Another publish holds the user's lock
        """
        issues: List[ValidationIssue] = []
        for item in request.menus:
            if item.image_reference:
                issues.extend(await check_image(item.menu_name or item.alias_id, item.image_reference, self.images))
        if issues:
            logger.info("Publish rejected by image checks", user_id=str(user_id), issues=len(issues))
            raise MenuValidationError([i.to_dict() for i in issues])

        token = await self._require_token(user_id)
        async with self.lock.hold(user_id):
            async with self.gateway_factory(token) as gateway:
                return await self._orchestrator(gateway).publish(user_id, request)

    async def publish_project(
        self,
        user_id: UUID,
        menus: Sequence[Menu],
        *,
        draft_id: Optional[UUID] = None,
        scheduled_at: Optional[datetime] = None,
    ) -> ProjectPublishOutcome:
        """
        Validate, build and publish every menu of a project.

        Each menu goes out as its own orchestrator call, the wipe runs on the
        first call only. Stops at the first failed menu. On success the draft
        (when given) gets the LINE identifiers written back.

        Raises:
            MenuValidationError: Field or image checks failed (nothing sent)
            LineChannelNotConfiguredError: No token on file
            DraftNotFoundError: draft_id does not belong to the user
            PublishInProgressError: Another publish holds the user's lock
        """
        issues = validate_menus(menus)
        issues.extend(await validate_menu_images(menus, self.images))
        if issues:
            logger.info("Project publish rejected by validation", user_id=str(user_id), issues=len(issues))
            raise MenuValidationError([i.to_dict() for i in issues])

        token = await self._require_token(user_id)

        draft: Optional[Draft] = None
        if draft_id is not None:
            draft = await self.drafts.get(user_id, draft_id)
            if draft is None:
                raise DraftNotFoundError(f"Draft {draft_id} not found")

        built = build_publish_request(menus)
        items = [PublishMenuItem.from_request_entry(entry) for entry in built["menus"]]

        job_ids: List[UUID] = []
        results: List[MenuPublishResult] = []
        main_menu_id: Optional[str] = None

        async with self.lock.hold(user_id):
            async with self.gateway_factory(token) as gateway:
                orchestrator = self._orchestrator(gateway)
                for position, item in enumerate(items):
                    chunk = PublishRequest(menus=[item], draft_id=draft_id, clean_old_menus=position == 0)
                    outcome = await orchestrator.publish(user_id, chunk)
                    if outcome.job_id is not None:
                        job_ids.append(outcome.job_id)
                    if not outcome.success:
                        logger.warning(
                            "Project publish stopped",
                            user_id=str(user_id),
                            alias_id=item.alias_id,
                            published=len(results),
                            error=outcome.error,
                        )
                        return ProjectPublishOutcome(
                            success=False,
                            job_ids=job_ids,
                            results=results,
                            main_menu_id=main_menu_id,
                            error=outcome.error,
                        )
                    results.extend(outcome.results)
                    main_menu_id = outcome.main_menu_id or main_menu_id

        if draft is not None:
            await self._write_back(draft, menus, results, scheduled_at)

        return ProjectPublishOutcome(
            success=True,
            job_ids=job_ids,
            results=results,
            main_menu_id=main_menu_id,
        )

    async def _write_back(
        self,
        draft: Draft,
        menus: Sequence[Menu],
        results: Sequence[MenuPublishResult],
        scheduled_at: Optional[datetime],
    ) -> None:
        menu_by_alias = {m.alias_id: m.id for m in menus}
        bindings: Dict[str, Dict[str, str]] = {}
        for result in results:
            menu_id = menu_by_alias.get(result.alias_id)
            if menu_id is not None:
                bindings[menu_id] = {"aliasId": result.alias_id, "richMenuId": result.rich_menu_id}
        draft.record_publish(menus, bindings, scheduled_at)
        await self.drafts.save(draft)
        logger.info("Draft updated after publish", draft_id=str(draft.id), status=draft.status.value)

    async def get_job(self, user_id: UUID, job_id: UUID) -> PublishJob:
        job = await self.jobs.get_job(user_id, job_id)
        if job is None:
            raise PublishJobNotFoundError(f"Publish job {job_id} not found")
        return job

    async def list_versions(self, user_id: UUID, alias_id: Optional[str] = None) -> List[RichMenuVersion]:
        return await self.versions.list_versions(user_id, alias_id)
