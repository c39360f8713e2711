from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from src.richmenu.domain.entities import RichMenuVersion
from src.richmenu.infrastructure.models import RichMenuVersionModel
from src.richmenu.infrastructure.repositories import SqlAlchemyRichMenuVersionRepository

pytestmark = pytest.mark.anyio


class _Result:
    def __init__(self, rowcount):
        self.rowcount = rowcount


class RecordingSession:
    """Captures what a repository sends to the database."""

    def __init__(self, rowcount=0):
        self.rowcount = rowcount
        self.statements = []
        self.added = []
        self.commits = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, statement):
        self.statements.append(statement)
        return _Result(self.rowcount)

    def add(self, obj):
        self.added.append(obj)

    async def commit(self):
        self.commits += 1


def _compiled(statement):
    return statement.compile(dialect=postgresql.dialect())


async def test_deactivate_only_touches_the_active_rows_of_one_alias():
    session = RecordingSession(rowcount=1)
    repo = SqlAlchemyRichMenuVersionRepository(lambda: session)
    user = uuid4()

    changed = await repo.deactivate_versions_by_alias(user, "main")

    assert changed == 1
    assert session.commits == 1
    compiled = _compiled(session.statements[0])
    sql = " ".join(str(compiled).lower().split())
    assert sql.startswith("update rm_richmenu_versions set is_active=")
    assert "rm_richmenu_versions.user_id =" in sql
    assert "rm_richmenu_versions.alias_id =" in sql
    assert "rm_richmenu_versions.is_active is true" in sql
    assert compiled.params["is_active"] is False
    assert user in compiled.params.values()
    assert "main" in compiled.params.values()


async def test_deactivate_reports_zero_when_nothing_was_active():
    repo = SqlAlchemyRichMenuVersionRepository(lambda: RecordingSession(rowcount=None))

    assert await repo.deactivate_versions_by_alias(uuid4(), "main") == 0


async def test_insert_version_adds_an_active_row_and_commits():
    session = RecordingSession()
    repo = SqlAlchemyRichMenuVersionRepository(lambda: session)
    job_id = uuid4()
    version = RichMenuVersion.record(
        user_id=uuid4(),
        alias_id="main",
        rich_menu_id="richmenu-1",
        menu_name="Main",
        is_main=True,
        draft_id=None,
        job_id=job_id,
    )

    await repo.insert_version(version)

    assert session.commits == 1
    (row,) = session.added
    assert isinstance(row, RichMenuVersionModel)
    assert row.is_active is True
    assert (row.alias_id, row.rich_menu_id, row.job_id) == ("main", "richmenu-1", job_id)


async def test_list_versions_filters_by_alias_newest_first():
    session = RecordingSession()

    class _Rows:
        def scalars(self):
            return self

        def all(self):
            return []

    async def execute(statement):
        session.statements.append(statement)
        return _Rows()

    session.execute = execute
    repo = SqlAlchemyRichMenuVersionRepository(lambda: session)

    assert await repo.list_versions(uuid4(), "main") == []

    sql = " ".join(str(_compiled(session.statements[0])).lower().split())
    assert "rm_richmenu_versions.alias_id =" in sql
    assert sql.endswith("order by rm_richmenu_versions.created_at desc")
