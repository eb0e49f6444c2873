"""Tests for project lifecycle and admin membership services."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlmodel import select

from src.cars.core.exceptions import InputError
from src.cars.models import LogEntry, Network, Project
from src.cars.repositories import (
    LogEntryRepository,
    ProjectAdminRepository,
    ProjectRepository,
    UserRepository,
)
from src.cars.services import AdminService, LogService, ProjectService
from src.cars.services.admin_service import ADMIN_ADDED, ADMIN_REMOVED, ALREADY_ADMIN
from src.cars.services.project_service import DEFAULT_PROJECT_NAME
from tests.factories import ProjectAdminFactory, ProjectFactory, UserFactory

pytestmark = pytest.mark.unit


@pytest.fixture
def notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.notify = AsyncMock(return_value=True)
    notifier.notify_admins = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def project_service(db_session, notifier) -> ProjectService:
    return ProjectService(
        db_session,
        ProjectRepository(db_session),
        ProjectAdminRepository(db_session),
        LogService(LogEntryRepository(db_session)),
        notifier,
    )


@pytest.fixture
def admin_service(db_session, notifier) -> AdminService:
    return AdminService(
        db_session,
        ProjectRepository(db_session),
        ProjectAdminRepository(db_session),
        UserRepository(db_session),
        LogService(LogEntryRepository(db_session)),
        notifier,
    )


@pytest.fixture
async def user(db_session):
    user = UserFactory.build()
    db_session.add(user)
    await db_session.commit()
    return user


async def project_with_admins(db_session, *admins):
    project = ProjectFactory.build()
    db_session.add(project)
    for admin in admins:
        db_session.add(ProjectAdminFactory.build(project_id=project.id, user_id=admin.id))
    await db_session.commit()
    return project


class TestCreateProject:
    async def test_creator_becomes_admin(self, db_session, project_service, user):
        project = await project_service.create_project(user, name="  My Overlay ")

        assert project.name == "My Overlay"
        assert project.network == Network.MAINNET.value
        assert project.balance == 0
        assert len(project.external_id) == 32
        assert len(project.private_key) == 64
        assert await ProjectAdminRepository(db_session).is_admin(project.id, user.id)

        result = await db_session.execute(select(LogEntry).where(LogEntry.project_id == project.id))
        assert [e.message for e in result.scalars()] == ["Project created"]

    async def test_defaults(self, project_service, user):
        project = await project_service.create_project(user, network="testnet")

        assert project.name == DEFAULT_PROJECT_NAME
        assert project.network == Network.TESTNET.value
        assert project.engine_config["logPrefix"] == "[CARS OVERLAY ENGINE] "

    async def test_supplied_private_key_is_kept(self, project_service, user):
        key = "ab" * 32
        project = await project_service.create_project(user, private_key=key)
        assert project.private_key == key

    @pytest.mark.parametrize("key", ["", "xyz", "AB" * 32, "ab" * 31])
    async def test_invalid_private_key(self, db_session, project_service, user, key):
        with pytest.raises(InputError, match="Invalid private key"):
            await project_service.create_project(user, private_key=key)

        result = await db_session.execute(select(Project))
        assert result.scalars().all() == []

    async def test_list_only_administered_projects(self, db_session, project_service, user):
        mine = await project_with_admins(db_session, user)
        await project_with_admins(db_session)

        projects = await project_service.list_projects(user)

        assert [p.id for p in projects] == [mine.id]


class TestProjectSettings:
    async def test_engine_settings_merge_known_keys(self, project_service, db_session, user):
        project = await project_with_admins(db_session, user)

        updated = await project_service.update_engine_settings(
            project, {"logTime": True, "gaspSync": True, "unknown": 1, "logPrefix": None}
        )

        assert updated.engine_config["logTime"] is True
        assert updated.engine_config["gaspSync"] is True
        assert updated.engine_config["logPrefix"] == "[CARS OVERLAY ENGINE] "
        assert "unknown" not in updated.engine_config

    async def test_web_ui_config_must_be_object(self, project_service, db_session, user):
        project = await project_with_admins(db_session, user)

        with pytest.raises(InputError):
            await project_service.update_web_ui_config(project, ["not", "an", "object"])

        updated = await project_service.update_web_ui_config(project, {"theme": "dark"})
        assert updated.web_ui_config == {"theme": "dark"}


class TestDeleteProject:
    async def test_delete_tears_down_and_notifies(
        self, db_session, project_service, notifier, user
    ):
        project = await project_with_admins(db_session, user)
        rollout = MagicMock()
        rollout.teardown = AsyncMock(return_value=True)

        await project_service.delete_project(project, user, rollout)

        rollout.teardown.assert_awaited_once_with(project)
        recipients = notifier.notify.await_args.args[0]
        assert recipients == [user.email]
        assert await ProjectRepository(db_session).get_by_id(project.id) is None

    async def test_incomplete_teardown_still_deletes(self, db_session, project_service, user):
        project = await project_with_admins(db_session, user)
        rollout = MagicMock()
        rollout.teardown = AsyncMock(return_value=False)

        await project_service.delete_project(project, user, rollout)

        assert await ProjectRepository(db_session).get_by_id(project.id) is None


class TestAdmins:
    async def test_add_admin_by_email(self, db_session, admin_service, notifier, user):
        project = await project_with_admins(db_session, user)
        other = UserFactory.build()
        db_session.add(other)
        await db_session.commit()

        message = await admin_service.add_admin(project, other.email, user)

        assert message == ADMIN_ADDED
        admins = await admin_service.list_admins(project)
        assert {u.id for _, u in admins} == {user.id, other.id}
        notifier.notify_admins.assert_awaited_once()
        assert notifier.notify.await_args.args[0] == [other.email]

    async def test_add_existing_admin_is_a_no_op(self, db_session, admin_service, notifier, user):
        project = await project_with_admins(db_session, user)

        assert await admin_service.add_admin(project, user.identity_key, user) == ALREADY_ADMIN
        notifier.notify_admins.assert_not_awaited()

    async def test_add_unregistered_user(self, db_session, admin_service, user):
        project = await project_with_admins(db_session, user)

        with pytest.raises(InputError, match="not registered"):
            await admin_service.add_admin(project, "nobody@example.com", user)

    async def test_remove_admin(self, db_session, admin_service, user):
        other = UserFactory.build()
        db_session.add(other)
        project = await project_with_admins(db_session, user, other)

        assert await admin_service.remove_admin(project, other.identity_key, user) == ADMIN_REMOVED
        assert not await ProjectAdminRepository(db_session).is_admin(project.id, other.id)

    async def test_cannot_remove_last_admin(self, db_session, admin_service, user):
        project = await project_with_admins(db_session, user)
        project_id, user_id = project.id, user.id

        with pytest.raises(InputError, match="Cannot remove last admin"):
            await admin_service.remove_admin(project, user.identity_key, user)
        assert await ProjectAdminRepository(db_session).is_admin(project_id, user_id)

    async def test_remove_non_admin(self, db_session, admin_service, user):
        other = UserFactory.build()
        db_session.add(other)
        project = await project_with_admins(db_session, user)

        with pytest.raises(InputError, match="User not an admin"):
            await admin_service.remove_admin(project, other.identity_key, user)
