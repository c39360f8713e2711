"""
Publish orchestrator: drives built menus through LINE provisioning.

Per invocation:
    insert job -> [wipe] -> per menu (create -> upload -> alias -> version)
    -> set default -> complete

Menus are processed strictly in order, one remote call at a time. The job
row is re-persisted after every step transition so a polling client can
follow progress. Any per-menu failure aborts the publish; nothing already
created on LINE is rolled back.
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

import structlog

from src.richmenu.application.dto import (
    MenuPublishResult,
    PublishMenuItem,
    PublishOutcome,
    PublishRequest,
)
from src.richmenu.domain.entities import PublishJob, RichMenuVersion
from src.richmenu.domain.exceptions import (
    LineAPIError,
    MenuStepFailedError,
    RichMenuDomainError,
)
from src.richmenu.domain.protocols import (
    ImageLoader,
    LineGateway,
    PublishJobRepository,
    RichMenuVersionRepository,
)
from src.richmenu.domain.value_objects import JobStatus, PublishStep
from src.shared.logging import get_logger, time_block

logger = get_logger(__name__)


class PublishOrchestrator:
    """
    Sequences the LINE calls for one publish and keeps the ledger current.

    One instance per gateway (i.e. per channel token). `publish` never
    raises: every failure is folded into a PublishOutcome and, when a job
    row exists, recorded on it.
    """

    def __init__(
        self,
        *,
        gateway: LineGateway,
        jobs: PublishJobRepository,
        versions: RichMenuVersionRepository,
        images: ImageLoader,
    ) -> None:
        self.gateway = gateway
        self.jobs = jobs
        self.versions = versions
        self.images = images

    async def publish(self, user_id: UUID, request: PublishRequest) -> PublishOutcome:
        """
        Publish `request.menus` for `user_id`.

        Args:
            user_id: Owner of the LINE channel and of the ledger rows
            request: Built menus, optional draft reference, wipe flag. The wipe
                flag is caller-coordinated: when chunking one menu per call,
                set it on the first chunk only.

        Returns:
            PublishOutcome(success, job_id, results, main_menu_id) or
            PublishOutcome(success=False, job_id, error)
        """
        job: Optional[PublishJob] = None
        log = logger.bind(user_id=str(user_id))
        try:
            if not request.menus:
                raise RichMenuDomainError("No menus to publish", code="invalid_request")

            job = PublishJob.start(user_id, [m.alias_id for m in request.menus], request.draft_id)
            await self.jobs.insert_job(job)
            log = log.bind(job_id=str(job.id))
            structlog.contextvars.bind_contextvars(job_id=str(job.id))
            log.info("Publish started", menus=len(request.menus), clean_old_menus=request.clean_old_menus)

            if request.clean_old_menus:
                await self._wipe_remote_state(log)

            results: List[MenuPublishResult] = []
            main_menu_id: Optional[str] = None
            for index, item in enumerate(request.menus):
                with time_block("richmenu.publish_menu", logger=log, labels={"alias_id": item.alias_id}):
                    rich_menu_id = await self._publish_menu(job, index, item, log)
                results.append(MenuPublishResult(item.alias_id, rich_menu_id, item.is_main))
                if item.is_main:
                    main_menu_id = rich_menu_id

            if main_menu_id:
                await self._set_default(job, main_menu_id, log)

            job.complete()
            await self.jobs.update_job_status(job, JobStatus.COMPLETED)
            log.info("Publish completed", main_menu_id=main_menu_id, published=len(results))
            return PublishOutcome(
                success=True,
                job_id=job.id,
                results=results,
                main_menu_id=main_menu_id,
            )
        except Exception as e:
            error = str(e) or e.__class__.__name__
            if isinstance(e, RichMenuDomainError):
                log.error("Publish failed", error=error)
            else:
                log.exception("Publish failed with unexpected error", error=error)
            if job is not None:
                await self._record_failure(job, error, log)
            return PublishOutcome(success=False, job_id=job.id if job else None, error=error)
        finally:
            structlog.contextvars.unbind_contextvars("job_id")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _publish_menu(
        self,
        job: PublishJob,
        index: int,
        item: PublishMenuItem,
        log: structlog.stdlib.BoundLogger,
    ) -> str:
        """Run create -> upload -> alias -> version for one menu."""
        rich_menu_id: Optional[str] = None
        try:
            await self._advance(job, index, PublishStep.CREATE_MENU)
            rich_menu_id = await self.gateway.create_rich_menu(item.menu_data)
            log.info("Rich menu created", alias_id=item.alias_id, rich_menu_id=rich_menu_id)

            image_ref = item.image_reference
            if image_ref:
                await self._advance(job, index, PublishStep.UPLOAD_IMAGE)
                image = await self.images.load(image_ref)
                await self.gateway.upload_rich_menu_image(rich_menu_id, image)
                log.info("Rich menu image uploaded", alias_id=item.alias_id, bytes=image.size_bytes)

            await self._advance(job, index, PublishStep.SET_ALIAS)
            # Ledger first: a later alias failure leaves history briefly without an active row
            await self.versions.deactivate_versions_by_alias(job.user_id, item.alias_id)
            await self._bind_alias(item.alias_id, rich_menu_id, log)

            await self._advance(job, index, PublishStep.RECORD_VERSION)
            await self.versions.insert_version(
                RichMenuVersion.record(
                    user_id=job.user_id,
                    alias_id=item.alias_id,
                    rich_menu_id=rich_menu_id,
                    menu_name=item.menu_name,
                    is_main=item.is_main,
                    draft_id=job.draft_id,
                    job_id=job.id,
                )
            )
        except Exception as e:
            failed_step = job.progress[index].step
            error = str(e) or e.__class__.__name__
            job.mark_menu_failed(index, error, rich_menu_id)
            await self.jobs.update_job_progress(job, failed_step)
            raise MenuStepFailedError(item.alias_id, failed_step.value, error) from e

        job.mark_menu_success(index, rich_menu_id)
        await self.jobs.update_job_progress(job, job.current_step)
        return rich_menu_id

    async def _bind_alias(self, alias_id: str, rich_menu_id: str, log: structlog.stdlib.BoundLogger) -> None:
        """Point the alias at the new menu, creating the alias on first publish."""
        try:
            await self.gateway.update_rich_menu_alias(alias_id, rich_menu_id)
            log.info("Rich menu alias updated", alias_id=alias_id, rich_menu_id=rich_menu_id)
        except LineAPIError as e:
            if not e.is_not_found:
                raise
            await self.gateway.create_rich_menu_alias(alias_id, rich_menu_id)
            log.info("Rich menu alias created", alias_id=alias_id, rich_menu_id=rich_menu_id)

    async def _wipe_remote_state(self, log: structlog.stdlib.BoundLogger) -> None:
        """Unset default, delete every alias, delete every menu. Never fatal."""
        try:
            await self.gateway.unset_default_rich_menu()
        except LineAPIError as e:
            log.warning("Unset default rich menu failed", error=str(e))

        try:
            aliases = await self.gateway.list_rich_menu_aliases()
        except LineAPIError as e:
            log.warning("Listing rich menu aliases failed", error=str(e))
            aliases = []
        for alias in aliases:
            alias_id = alias.get("richMenuAliasId")
            if not alias_id:
                continue
            try:
                await self.gateway.delete_rich_menu_alias(alias_id)
            except LineAPIError as e:
                log.warning("Deleting rich menu alias failed", alias_id=alias_id, error=str(e))

        try:
            menus = await self.gateway.list_rich_menus()
        except LineAPIError as e:
            log.warning("Listing rich menus failed", error=str(e))
            menus = []
        for menu in menus:
            rich_menu_id = menu.get("richMenuId")
            if not rich_menu_id:
                continue
            try:
                await self.gateway.delete_rich_menu(rich_menu_id)
            except LineAPIError as e:
                log.warning("Deleting rich menu failed", rich_menu_id=rich_menu_id, error=str(e))

        log.info("Old rich menus cleaned", aliases=len(aliases), menus=len(menus))

    async def _set_default(self, job: PublishJob, rich_menu_id: str, log: structlog.stdlib.BoundLogger) -> None:
        job.set_step(PublishStep.SET_DEFAULT)
        await self.jobs.update_job_progress(job, PublishStep.SET_DEFAULT)
        try:
            await self.gateway.set_default_rich_menu(rich_menu_id)
            log.info("Default rich menu set", rich_menu_id=rich_menu_id)
        except LineAPIError as e:
            # menus and aliases exist; only the default pointer is stale
            log.warning("Setting default rich menu failed", rich_menu_id=rich_menu_id, error=str(e))

    # ------------------------------------------------------------------
    # Ledger helpers
    # ------------------------------------------------------------------

    async def _advance(self, job: PublishJob, index: int, step: PublishStep) -> None:
        job.advance(index, step)
        await self.jobs.update_job_progress(job, step)

    async def _record_failure(self, job: PublishJob, error: str, log: structlog.stdlib.BoundLogger) -> None:
        job.fail(error)
        try:
            await self.jobs.update_job_status(job, JobStatus.FAILED, error)
        except Exception:
            log.exception("Could not persist failed job status")
