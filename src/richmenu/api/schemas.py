"""Rich menu API DTOs using Pydantic v2 (camelCase on the wire)."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.richmenu.application.dto import (
    MenuPublishResult,
    ProjectPublishOutcome,
    PublishMenuItem,
    PublishOutcome,
    PublishRequest,
)
from src.richmenu.application.validation import ValidationIssue
from src.richmenu.domain.entities import Menu, PublishJob, RichMenuVersion
from src.richmenu.domain.value_objects import ActionType, DraftStatus, MAX_ALIAS_ID_LENGTH


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- editor menu graph ----------

class ActionIn(CamelModel):
    type: ActionType = ActionType.NONE
    data: str = ""
    label: Optional[str] = None


class HotspotIn(CamelModel):
    id: str = Field(..., min_length=1)
    # floats are accepted here and reported by the validation engine
    x: Union[int, float]
    y: Union[int, float]
    width: Union[int, float]
    height: Union[int, float]
    action: ActionIn = Field(default_factory=ActionIn)


class MenuIn(CamelModel):
    id: str = Field(..., min_length=1, pattern=r"^[\s\S]*[A-Za-z0-9_][\s\S]*$")
    name: str = ""
    bar_text: str = ""
    is_main: bool = False
    image_data: Optional[str] = None
    hotspots: List[HotspotIn] = Field(default_factory=list)
    status: Optional[DraftStatus] = None
    scheduled_at: Optional[str] = None
    folder_id: Optional[str] = None
    line_rich_menu_id: Optional[str] = None
    line_alias_id: Optional[str] = None

    def to_entity(self) -> Menu:
        return Menu.from_dict(self.model_dump(by_alias=True, mode="json"))


class MenusBody(CamelModel):
    menus: List[MenuIn]

    def to_entities(self) -> List[Menu]:
        return [m.to_entity() for m in self.menus]


class ProjectPublishBody(MenusBody):
    draft_id: Optional[UUID] = None
    scheduled_at: Optional[datetime] = None


class ValidationIssueOut(CamelModel):
    menu_name: str
    field: str
    message: str

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> "ValidationIssueOut":
        return cls(menu_name=issue.menu_name, field=issue.field, message=issue.message)


class ValidateResponse(CamelModel):
    valid: bool
    errors: List[ValidationIssueOut]
    # pairs of hotspot ids, informational only
    overlaps: Dict[str, List[List[str]]] = Field(default_factory=dict)


# ---------- orchestrator entry point ----------

class PublishMenuIn(CamelModel):
    menu_data: Dict[str, Any]
    alias_id: str = Field(..., pattern=r"^[A-Za-z0-9_]+$", max_length=MAX_ALIAS_ID_LENGTH)
    is_main: bool = False
    menu_name: Optional[str] = None
    image_base64: Optional[str] = None
    image_url: Optional[str] = None

    def to_item(self) -> PublishMenuItem:
        return PublishMenuItem(
            menu_data=self.menu_data,
            alias_id=self.alias_id,
            is_main=self.is_main,
            menu_name=self.menu_name or str(self.menu_data.get("name", "")),
            image_base64=self.image_base64,
            image_url=self.image_url,
        )


class PublishBody(CamelModel):
    menus: List[PublishMenuIn] = Field(..., min_length=1)
    draft_id: Optional[UUID] = None
    clean_old_menus: bool = False

    def to_request(self) -> PublishRequest:
        return PublishRequest(
            menus=[m.to_item() for m in self.menus],
            draft_id=self.draft_id,
            clean_old_menus=self.clean_old_menus,
        )


class MenuResultOut(CamelModel):
    alias_id: str
    rich_menu_id: str
    is_main: bool

    @classmethod
    def from_result(cls, result: MenuPublishResult) -> "MenuResultOut":
        return cls(alias_id=result.alias_id, rich_menu_id=result.rich_menu_id, is_main=result.is_main)


class PublishResponse(CamelModel):
    success: bool
    job_id: Optional[UUID] = None
    results: List[MenuResultOut] = Field(default_factory=list)
    main_menu_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: PublishOutcome) -> "PublishResponse":
        return cls(
            success=outcome.success,
            job_id=outcome.job_id,
            results=[MenuResultOut.from_result(r) for r in outcome.results],
            main_menu_id=outcome.main_menu_id,
            error=outcome.error,
        )


class ProjectPublishResponse(CamelModel):
    success: bool
    job_ids: List[UUID] = Field(default_factory=list)
    results: List[MenuResultOut] = Field(default_factory=list)
    main_menu_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: ProjectPublishOutcome) -> "ProjectPublishResponse":
        return cls(
            success=outcome.success,
            job_ids=outcome.job_ids,
            results=[MenuResultOut.from_result(r) for r in outcome.results],
            main_menu_id=outcome.main_menu_id,
            error=outcome.error,
        )


# ---------- ledger reads ----------

class MenuProgressOut(CamelModel):
    alias_id: str
    step: str
    status: str
    rich_menu_id: Optional[str] = None
    error: Optional[str] = None


class JobResponse(CamelModel):
    id: UUID
    status: str
    current_step: str
    progress: List[MenuProgressOut]
    error_message: Optional[str] = None
    draft_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, job: PublishJob) -> "JobResponse":
        return cls(
            id=job.id,
            status=job.status.value,
            current_step=job.current_step.value,
            progress=[MenuProgressOut.model_validate(p) for p in job.progress_snapshot()],
            error_message=job.error_message,
            draft_id=job.draft_id,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )


class VersionOut(CamelModel):
    id: UUID
    alias_id: str
    rich_menu_id: str
    menu_name: str
    is_main: bool
    is_active: bool
    draft_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, version: RichMenuVersion) -> "VersionOut":
        return cls(
            id=version.id,
            alias_id=version.alias_id,
            rich_menu_id=version.rich_menu_id,
            menu_name=version.menu_name,
            is_main=version.is_main,
            is_active=version.is_active,
            draft_id=version.draft_id,
            job_id=version.job_id,
            created_at=version.created_at,
        )
