"""In-memory stand-ins for the LINE API, the ledger and the channel store."""

import base64
import dataclasses
from contextlib import asynccontextmanager
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from PIL import Image

from src.richmenu.domain.entities import (
    Action,
    Draft,
    Hotspot,
    Menu,
    MenuProgress,
    PublishJob,
    RichMenuVersion,
)
from src.richmenu.domain.exceptions import LineAPIError
from src.richmenu.domain.value_objects import ActionType, ImagePayload, JobStatus, PublishStep


# ---------- images & menus ----------

def make_png(width: int = 2500, height: int = 1686, color=(30, 120, 200)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def make_png_data_url(width: int = 2500, height: int = 1686) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png(width, height)).decode()


def make_menu(
    menu_id: str,
    *,
    name: Optional[str] = None,
    is_main: bool = False,
    image: Optional[str] = "data:image/png;base64,AAAA",
    bar_text: str = "Menu",
    hotspots: Optional[List[Hotspot]] = None,
) -> Menu:
    return Menu(
        id=menu_id,
        name=name or f"Menu {menu_id}",
        bar_text=bar_text,
        is_main=is_main,
        image_data=image,
        hotspots=hotspots or [],
    )


def hotspot(hid: str, action_type: ActionType, data: str = "", *, label: Optional[str] = None,
            x: int = 0, y: int = 0, width: int = 800, height: int = 800) -> Hotspot:
    return Hotspot(id=hid, x=x, y=y, width=width, height=height, action=Action(action_type, data, label))


# ---------- LINE ----------

class FakeLineGateway:
    """
    Remembers menus, aliases and the default like the real platform does.

    `failures` maps an operation name to the LineAPIError it should raise.
    """

    def __init__(self, *, failures: Optional[Dict[str, LineAPIError]] = None,
                 menus: Optional[List[str]] = None, aliases: Optional[Dict[str, str]] = None):
        self.failures = dict(failures or {})
        self.menus: List[str] = list(menus or [])
        self.aliases: Dict[str, str] = dict(aliases or {})
        self.default_menu: Optional[str] = None
        self.uploads: Dict[str, ImagePayload] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self._counter = 0

    def _call(self, op: str, *args: Any) -> None:
        self.calls.append((op, args))
        if op in self.failures:
            raise self.failures[op]

    def ops(self) -> List[str]:
        return [name for name, _ in self.calls]

    async def list_rich_menus(self):
        self._call("list_rich_menus")
        return [{"richMenuId": m} for m in self.menus]

    async def delete_rich_menu(self, rich_menu_id):
        self._call("delete_rich_menu", rich_menu_id)
        self.menus.remove(rich_menu_id)

    async def create_rich_menu(self, payload):
        self._call("create_rich_menu", payload)
        self._counter += 1
        rich_menu_id = f"richmenu-{self._counter:04d}"
        self.menus.append(rich_menu_id)
        return rich_menu_id

    async def upload_rich_menu_image(self, rich_menu_id, image):
        self._call("upload_rich_menu_image", rich_menu_id)
        self.uploads[rich_menu_id] = image

    async def update_rich_menu_alias(self, alias_id, rich_menu_id):
        self._call("update_rich_menu_alias", alias_id, rich_menu_id)
        if alias_id not in self.aliases:
            raise LineAPIError("update_rich_menu_alias", 400, '{"message":"richmenu alias not found"}')
        self.aliases[alias_id] = rich_menu_id

    async def create_rich_menu_alias(self, alias_id, rich_menu_id):
        self._call("create_rich_menu_alias", alias_id, rich_menu_id)
        self.aliases[alias_id] = rich_menu_id

    async def list_rich_menu_aliases(self):
        self._call("list_rich_menu_aliases")
        return [{"richMenuAliasId": a, "richMenuId": m} for a, m in self.aliases.items()]

    async def delete_rich_menu_alias(self, alias_id):
        self._call("delete_rich_menu_alias", alias_id)
        self.aliases.pop(alias_id, None)

    async def set_default_rich_menu(self, rich_menu_id):
        self._call("set_default_rich_menu", rich_menu_id)
        self.default_menu = rich_menu_id

    async def unset_default_rich_menu(self):
        self._call("unset_default_rich_menu")
        self.default_menu = None


class FakeGatewayFactory:
    def __init__(self, gateway: FakeLineGateway):
        self.gateway = gateway
        self.tokens: List[str] = []

    @asynccontextmanager
    async def __call__(self, access_token: str):
        self.tokens.append(access_token)
        yield self.gateway


# ---------- ledger ----------

class InMemoryPublishJobRepository:
    def __init__(self):
        self.rows: Dict[UUID, Dict[str, Any]] = {}
        # (job_id, current_step, progress) per persisted transition
        self.history: List[Tuple[UUID, str, List[Dict[str, Any]]]] = []

    def _store(self, job: PublishJob, **extra: Any) -> None:
        row = self.rows.setdefault(job.id, {"user_id": job.user_id, "draft_id": job.draft_id})
        row.update(
            status=job.status.value,
            current_step=job.current_step.value,
            progress=job.progress_snapshot(),
            error_message=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )
        row.update(extra)
        self.history.append((job.id, row["current_step"], row["progress"]))

    async def insert_job(self, job):
        self._store(job)

    async def update_job_progress(self, job, step):
        self._store(job, current_step=step.value)

    async def update_job_status(self, job, status, error=None):
        self._store(job, status=status.value, error_message=error)

    async def get_job(self, user_id, job_id):
        row = self.rows.get(job_id)
        if row is None or row["user_id"] != user_id:
            return None
        return PublishJob(
            id=job_id,
            user_id=row["user_id"],
            draft_id=row["draft_id"],
            progress=[MenuProgress.from_dict(p) for p in row["progress"]],
            status=JobStatus(row["status"]),
            current_step=PublishStep(row["current_step"]),
            error_message=row["error_message"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )


class InMemoryVersionRepository:
    def __init__(self):
        self.rows: List[RichMenuVersion] = []

    async def insert_version(self, version):
        self.rows.append(version)

    async def deactivate_versions_by_alias(self, user_id, alias_id):
        touched = 0
        for i, row in enumerate(self.rows):
            if row.user_id == user_id and row.alias_id == alias_id and row.is_active:
                self.rows[i] = dataclasses.replace(row, is_active=False)
                touched += 1
        return touched

    async def list_versions(self, user_id, alias_id=None):
        return [
            r for r in reversed(self.rows)
            if r.user_id == user_id and (alias_id is None or r.alias_id == alias_id)
        ]


class InMemoryLineChannelRepository:
    def __init__(self, tokens: Optional[Dict[UUID, str]] = None):
        self.tokens = dict(tokens or {})

    async def get_access_token(self, user_id):
        return self.tokens.get(user_id)


class InMemoryDraftRepository:
    def __init__(self, drafts: Optional[List[Draft]] = None):
        self.drafts: Dict[UUID, Draft] = {d.id: d for d in drafts or []}
        self.saved: List[Draft] = []

    async def get(self, user_id, draft_id):
        draft = self.drafts.get(draft_id)
        if draft is None or draft.user_id != user_id:
            return None
        return draft

    async def save(self, draft):
        self.drafts[draft.id] = draft
        self.saved.append(draft)
