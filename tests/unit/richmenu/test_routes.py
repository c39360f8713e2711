from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.dependencies import get_image_loader, get_publish_service
from src.main import app
from src.richmenu.application.publish_service import PublishService
from src.richmenu.domain.exceptions import LineAPIError
from src.richmenu.infrastructure.image_loader import HttpImageLoader
from src.richmenu.infrastructure.publish_lock import InMemoryPublishLock
from src.shared.security import create_access_token
from tests.unit.richmenu.fakes import (
    FakeGatewayFactory,
    FakeLineGateway,
    InMemoryDraftRepository,
    InMemoryLineChannelRepository,
    InMemoryPublishJobRepository,
    InMemoryVersionRepository,
    make_png_data_url,
)

USER = uuid4()
IMAGE = make_png_data_url(800, 540)


class Harness:
    def __init__(self):
        self.gateway = FakeLineGateway()
        self.channels = InMemoryLineChannelRepository({USER: "line-token"})
        self.jobs = InMemoryPublishJobRepository()
        self.versions = InMemoryVersionRepository()

    def service(self) -> PublishService:
        return PublishService(
            channels=self.channels,
            gateway_factory=FakeGatewayFactory(self.gateway),
            jobs=self.jobs,
            versions=self.versions,
            images=HttpImageLoader(timeout=1.0),
            drafts=InMemoryDraftRepository(),
            lock=InMemoryPublishLock(wait_seconds=0.1),
        )


@pytest.fixture
def harness():
    h = Harness()
    app.dependency_overrides[get_publish_service] = h.service
    app.dependency_overrides[get_image_loader] = lambda: HttpImageLoader(timeout=1.0)
    yield h
    app.dependency_overrides.clear()


@pytest.fixture
def client(harness):
    return TestClient(app)


@pytest.fixture
def auth():
    return {"Authorization": f"Bearer {create_access_token(USER)}"}


def _editor_menu(menu_id="menu-1", **overrides):
    body = {
        "id": menu_id,
        "name": "Main",
        "barText": "Open menu",
        "isMain": True,
        "imageData": IMAGE,
        "hotspots": [
            {"id": "h1", "x": 0, "y": 0, "width": 1250, "height": 843,
             "action": {"type": "uri", "data": "https://example.com"}},
        ],
    }
    body.update(overrides)
    return body


def _publish_body(**overrides):
    body = {
        "menus": [{
            "menuData": {"name": "Main", "chatBarText": "Menu", "areas": []},
            "imageBase64": IMAGE,
            "aliasId": "menu1",
            "isMain": True,
            "menuName": "Main",
        }],
    }
    body.update(overrides)
    return body


def test_requires_bearer_token(client):
    response = client.post("/api/richmenu/publish", json=_publish_body())
    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"


def test_rejects_invalid_token(client):
    response = client.post(
        "/api/richmenu/publish", json=_publish_body(), headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401
    assert response.json()["code"] == "invalid_token"


def test_validate_reports_issues_in_camel_case(client, auth):
    menus = [_editor_menu(), _editor_menu("menu-2", name="Sub", isMain=False, barText="", imageData=None)]

    response = client.post("/api/richmenu/validate", json={"menus": menus}, headers=auth)

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert {(e["menuName"], e["field"]) for e in body["errors"]} == {
        ("Sub", "background_image"),
        ("Sub", "chat_bar_text"),
    }


def test_publish_request_builds_line_payloads(client, auth):
    response = client.post("/api/richmenu/publish-request", json={"menus": [_editor_menu()]}, headers=auth)

    assert response.status_code == 200
    entry = response.json()["menus"][0]
    assert entry["aliasId"] == "menu1"
    assert entry["menuData"]["areas"][0]["action"]["type"] == "uri"


def test_publish_success(client, auth, harness):
    response = client.post("/api/richmenu/publish", json=_publish_body(), headers=auth)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["results"] == [{"aliasId": "menu1", "richMenuId": "richmenu-0001", "isMain": True}]
    assert body["mainMenuId"] == "richmenu-0001"
    assert response.headers["X-Correlation-ID"]

    job = client.get(f"/api/richmenu/jobs/{body['jobId']}", headers=auth)
    assert job.status_code == 200
    assert job.json()["status"] == "completed"
    assert job.json()["progress"][0]["aliasId"] == "menu1"


def test_publish_failure_returns_structured_error(client, auth, harness):
    harness.gateway.failures["create_rich_menu"] = LineAPIError("create_rich_menu", 400, "bad areas")

    response = client.post("/api/richmenu/publish", json=_publish_body(), headers=auth)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["jobId"]
    assert body["error"] == "create_rich_menu failed (400): bad areas"


def test_malformed_body_is_invalid_request(client, auth, harness):
    response = client.post("/api/richmenu/publish", json={"menus": [{"aliasId": "has-hyphen"}]}, headers=auth)

    assert response.status_code == 422
    assert response.json()["code"] == "invalid_request"
    assert harness.jobs.rows == {}


def test_missing_channel_token(client, auth, harness):
    harness.channels.tokens.clear()

    response = client.post("/api/richmenu/publish", json=_publish_body(), headers=auth)

    assert response.status_code == 401
    assert response.json()["code"] == "line_channel_not_configured"
    assert harness.jobs.rows == {}


def test_project_publish_validation_failure(client, auth, harness):
    response = client.post(
        "/api/richmenu/projects/publish",
        json={"menus": [_editor_menu(barText="")]},
        headers=auth,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "menu_validation_failed"
    assert body["details"]["errors"][0]["field"] == "chat_bar_text"
    assert harness.gateway.calls == []


def test_project_publish_success(client, auth, harness):
    response = client.post("/api/richmenu/projects/publish", json={"menus": [_editor_menu()]}, headers=auth)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["jobIds"]) == 1
    assert harness.gateway.default_menu == body["mainMenuId"]


def test_unknown_job_is_not_found(client, auth):
    response = client.get(f"/api/richmenu/jobs/{uuid4()}", headers=auth)

    assert response.status_code == 404
    assert response.json()["code"] == "publish_job_not_found"


def test_versions_filter_by_alias(client, auth):
    client.post("/api/richmenu/publish", json=_publish_body(), headers=auth)
    client.post("/api/richmenu/publish", json=_publish_body(), headers=auth)

    response = client.get("/api/richmenu/versions", params={"aliasId": "menu1"}, headers=auth)

    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 2
    assert [r["isActive"] for r in rows] == [True, False]

    other = client.get("/api/richmenu/versions", params={"aliasId": "other"}, headers=auth)
    assert other.json() == []


def test_menu_id_without_alias_characters_is_invalid_request(client, auth):
    response = client.post(
        "/api/richmenu/publish-request",
        json={"menus": [_editor_menu(menu_id="---")]},
        headers=auth,
    )

    assert response.status_code == 422
    assert response.json()["code"] == "invalid_request"


def test_currently_active_menus_are_accepted(client, auth):
    menus = [_editor_menu(status="active", lineAliasId="menu1", lineRichMenuId="richmenu-9")]

    response = client.post("/api/richmenu/validate", json={"menus": menus}, headers=auth)

    assert response.status_code == 200
    assert response.json()["valid"] is True


def test_publish_rejects_undersized_image(client, auth, harness):
    body = _publish_body()
    body["menus"][0]["imageBase64"] = make_png_data_url(600, 500)

    response = client.post("/api/richmenu/publish", json=body, headers=auth)

    assert response.status_code == 422
    assert response.json()["code"] == "menu_validation_failed"
    assert harness.gateway.calls == []
