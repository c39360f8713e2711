from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from src.dependencies import get_current_user_id, get_image_loader, get_publish_service
from src.richmenu.api.schemas import (
    JobResponse,
    MenusBody,
    ProjectPublishBody,
    ProjectPublishResponse,
    PublishBody,
    PublishResponse,
    ValidateResponse,
    ValidationIssueOut,
    VersionOut,
)
from src.richmenu.application.payload_builder import build_publish_request
from src.richmenu.application.publish_service import PublishService
from src.richmenu.application.validation import (
    find_overlapping_hotspots,
    validate_menu_images,
    validate_menus,
)
from src.richmenu.domain.protocols import ImageLoader
from src.shared.logging import bind_request_context

router = APIRouter(prefix="/api/richmenu", tags=["Rich Menu"])


def _outcome_response(model, success: bool) -> JSONResponse:
    # failed publishes keep the structured body so the UI can show `error` verbatim
    return JSONResponse(
        status_code=status.HTTP_200_OK if success else status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(model.model_dump(by_alias=True)),
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate_project(
    body: MenusBody,
    user_id: UUID = Depends(get_current_user_id),
    images: ImageLoader = Depends(get_image_loader),
) -> ValidateResponse:
    menus = body.to_entities()
    issues = validate_menus(menus)
    issues.extend(await validate_menu_images(menus, images))
    overlaps = {}
    for menu in menus:
        pairs = find_overlapping_hotspots(menu)
        if pairs:
            overlaps[menu.id] = [list(p) for p in pairs]
    return ValidateResponse(
        valid=not issues,
        errors=[ValidationIssueOut.from_issue(i) for i in issues],
        overlaps=overlaps,
    )


@router.post("/publish-request")
async def publish_request(
    body: MenusBody,
    user_id: UUID = Depends(get_current_user_id),
) -> dict:
    return build_publish_request(body.to_entities())


@router.post("/publish", response_model=PublishResponse)
async def publish(
    body: PublishBody,
    user_id: UUID = Depends(get_current_user_id),
    service: PublishService = Depends(get_publish_service),
):
    bind_request_context(user_id=str(user_id))
    outcome = await service.publish(user_id, body.to_request())
    return _outcome_response(PublishResponse.from_outcome(outcome), outcome.success)


@router.post("/projects/publish", response_model=ProjectPublishResponse)
async def publish_project(
    body: ProjectPublishBody,
    user_id: UUID = Depends(get_current_user_id),
    service: PublishService = Depends(get_publish_service),
):
    bind_request_context(user_id=str(user_id))
    outcome = await service.publish_project(
        user_id,
        body.to_entities(),
        draft_id=body.draft_id,
        scheduled_at=body.scheduled_at,
    )
    return _outcome_response(ProjectPublishResponse.from_outcome(outcome), outcome.success)


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: PublishService = Depends(get_publish_service),
) -> JobResponse:
    return JobResponse.from_entity(await service.get_job(user_id, job_id))


@router.get("/versions", response_model=List[VersionOut])
async def list_versions(
    alias_id: Optional[str] = Query(None, alias="aliasId"),
    user_id: UUID = Depends(get_current_user_id),
    service: PublishService = Depends(get_publish_service),
) -> List[VersionOut]:
    versions = await service.list_versions(user_id, alias_id)
    return [VersionOut.from_entity(v) for v in versions]
