"""
Rich menu domain protocols.

Isolate the publish pipeline from the LINE HTTP API, the ledger storage
and the image source.
"""
from abc import abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional, Protocol
from uuid import UUID

from .entities import Draft, PublishJob, RichMenuVersion
from .value_objects import ImagePayload, JobStatus, PublishStep


class LineGateway(Protocol):
    """
    LINE Messaging API rich menu endpoints, bound to one channel token.

    Every method raises LineAPIError on a non-success response.
    """

    @abstractmethod
    async def list_rich_menus(self) -> List[Dict[str, Any]]:
        """GET /richmenu/list"""
        ...

    @abstractmethod
    async def delete_rich_menu(self, rich_menu_id: str) -> None:
        """DELETE /richmenu/{id}"""
        ...

    @abstractmethod
    async def create_rich_menu(self, payload: Dict[str, Any]) -> str:
        """POST /richmenu; returns the assigned richMenuId."""
        ...

    @abstractmethod
    async def upload_rich_menu_image(self, rich_menu_id: str, image: ImagePayload) -> None:
        """POST /richmenu/{id}/content on the data API host."""
        ...

    @abstractmethod
    async def update_rich_menu_alias(self, alias_id: str, rich_menu_id: str) -> None:
        """PUT /richmenu/alias/{aliasId}"""
        ...

    @abstractmethod
    async def create_rich_menu_alias(self, alias_id: str, rich_menu_id: str) -> None:
        """POST /richmenu/alias"""
        ...

    @abstractmethod
    async def list_rich_menu_aliases(self) -> List[Dict[str, Any]]:
        """GET /richmenu/alias/list"""
        ...

    @abstractmethod
    async def delete_rich_menu_alias(self, alias_id: str) -> None:
        """DELETE /richmenu/alias/{aliasId}"""
        ...

    @abstractmethod
    async def set_default_rich_menu(self, rich_menu_id: str) -> None:
        """POST /user/all/richmenu/{id}"""
        ...

    @abstractmethod
    async def unset_default_rich_menu(self) -> None:
        """DELETE /user/all/richmenu"""
        ...


class LineGatewayFactory(Protocol):
    """Builds a gateway bound to one channel access token."""

    def __call__(self, access_token: str) -> AsyncContextManager[LineGateway]:
        ...


class ImageLoader(Protocol):
    """Resolves a menu image reference (data URL, base64, http URL) to bytes."""

    @abstractmethod
    async def load(self, reference: str) -> ImagePayload:
        ...


class PublishJobRepository(Protocol):
    """Job half of the publish ledger."""

    @abstractmethod
    async def insert_job(self, job: PublishJob) -> None:
        ...

    @abstractmethod
    async def update_job_progress(self, job: PublishJob, step: PublishStep) -> None:
        """Persist current_step and the full progress array."""
        ...

    @abstractmethod
    async def update_job_status(
        self, job: PublishJob, status: JobStatus, error: Optional[str] = None
    ) -> None:
        """Persist a terminal status together with the final progress."""
        ...

    @abstractmethod
    async def get_job(self, user_id: UUID, job_id: UUID) -> Optional[PublishJob]:
        ...


class RichMenuVersionRepository(Protocol):
    """Version half of the publish ledger."""

    @abstractmethod
    async def insert_version(self, version: RichMenuVersion) -> None:
        ...

    @abstractmethod
    async def deactivate_versions_by_alias(self, user_id: UUID, alias_id: str) -> int:
        """Mark every active version for the alias inactive; returns rows touched."""
        ...

    @abstractmethod
    async def list_versions(
        self, user_id: UUID, alias_id: Optional[str] = None
    ) -> List[RichMenuVersion]:
        ...


class LineChannelRepository(Protocol):
    """Per-user LINE credential lookup."""

    @abstractmethod
    async def get_access_token(self, user_id: UUID) -> Optional[str]:
        ...


class DraftRepository(Protocol):
    """Draft (project) storage."""

    @abstractmethod
    async def get(self, user_id: UUID, draft_id: UUID) -> Optional[Draft]:
        ...

    @abstractmethod
    async def save(self, draft: Draft) -> None:
        ...


class PublishLock(Protocol):
    """Per-user advisory lock around a publish."""

    def hold(self, user_id: UUID) -> AsyncContextManager[None]:
        """Raises PublishInProgressError if the lock cannot be taken in time."""
        ...
