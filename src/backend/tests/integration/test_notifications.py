"""
Integration tests for the notification inbox.

Tests:
- Dispatch helpers (dedupe, actor exclusion)
- Listing with unread count
- Marking one or all as read
- Stats
- HTTP endpoints
"""

import pytest
import pytest_asyncio
from sqlalchemy import select

from api.services.notification_service import NotificationService
from core.exceptions import NotFoundError
from db import Notification, NotificationType

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def inbox(db_session, technician):
    """Three notifications for the technician, one already read."""
    notifications = [
        Notification(user_id=technician.id, title="Assigned", message="m1", type=NotificationType.ASSIGNMENT.value),
        Notification(user_id=technician.id, title="Status", message="m2", type=NotificationType.STATUS_CHANGE.value),
        Notification(
            user_id=technician.id, title="Overdue", message="m3", type=NotificationType.OVERDUE.value, is_read=True
        ),
    ]
    db_session.add_all(notifications)
    await db_session.commit()
    return [n.id for n in notifications]


class TestDispatch:
    async def test_notify_many_dedupes_and_skips(self, db_session, technician, supervisor, department_manager):
        created = await NotificationService.notify_many(
            db_session,
            [technician.id, None, supervisor.id, technician.id, department_manager.id],
            title="Changed",
            message="Request changed",
            notification_type=NotificationType.STATUS_CHANGE,
            exclude_user_id=supervisor.id,
        )

        assert [n.user_id for n in created] == [technician.id, department_manager.id]

    async def test_notify_many_with_nobody(self, db_session):
        assert await NotificationService.notify_many(
            db_session, [None], "t", "m", NotificationType.ASSIGNMENT
        ) == []

    async def test_supervisor_ids(
        self, db_session, lg_department, supervisor, department_manager, technician, solar_supervisor
    ):
        ids = await NotificationService.get_department_supervisor_ids(db_session, lg_department.id)

        assert set(ids) == {supervisor.id, department_manager.id}

    async def test_watcher_ids_include_manager_level(
        self, db_session, lg_department, supervisor, company_manager, deputy_manager, solar_supervisor
    ):
        ids = await NotificationService.get_request_watcher_ids(db_session, lg_department.id)

        assert set(ids) == {supervisor.id, company_manager.id, deputy_manager.id}


class TestInbox:
    async def test_list_and_unread_count(self, db_session, technician, inbox):
        notifications, total, unread = await NotificationService.list_for_user(db_session, technician.id)

        assert total == 3
        assert unread == 2
        assert [n.id for n in notifications] == sorted(inbox, reverse=True)

        notifications, total, unread = await NotificationService.list_for_user(
            db_session, technician.id, unread_only=True
        )
        assert total == 2
        assert all(not n.is_read for n in notifications)

    async def test_mark_as_read_own_only(self, db_session, technician, supervisor, inbox):
        technician_id, supervisor_id = technician.id, supervisor.id

        notification = await NotificationService.mark_as_read(db_session, inbox[0], technician_id)
        assert notification.is_read is True

        with pytest.raises(NotFoundError):
            await NotificationService.mark_as_read(db_session, inbox[1], supervisor_id)

        row = await db_session.get(Notification, inbox[1], populate_existing=True)
        assert row.is_read is False

    async def test_mark_all(self, db_session, technician, inbox):
        assert await NotificationService.mark_all_as_read(db_session, technician.id) == 2
        assert await NotificationService.mark_all_as_read(db_session, technician.id) == 0

        result = await db_session.execute(
            select(Notification.is_read).execution_options(populate_existing=True)
        )
        assert all(result.scalars().all())

    async def test_stats(self, db_session, technician, inbox):
        stats = await NotificationService.get_stats(db_session, technician.id)

        assert stats == {
            "total": 3,
            "unread": 2,
            "by_type": {"ASSIGNMENT": 1, "STATUS_CHANGE": 1, "OVERDUE": 1},
        }


class TestNotificationEndpoints:
    async def test_list(self, client, technician, auth_headers, inbox):
        response = await client.get("/api/v1/notifications?limit=2", headers=auth_headers(technician))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "2 unread"
        assert len(body["data"]) == 2
        assert body["meta"]["total"] == 3
        assert body["meta"]["totalPages"] == 2
        assert body["data"][0]["title"] == "Overdue"
        assert body["data"][0]["isRead"] is True
        assert body["data"][0]["createdAt"].endswith("Z")

    async def test_unread_only(self, client, technician, auth_headers, inbox):
        response = await client.get(
            "/api/v1/notifications", params={"unreadOnly": "true"}, headers=auth_headers(technician)
        )

        assert response.json()["meta"]["total"] == 2

    async def test_mark_read_and_read_all(self, client, technician, supervisor, auth_headers, inbox):
        technician_headers, supervisor_headers = auth_headers(technician), auth_headers(supervisor)

        response = await client.put(f"/api/v1/notifications/{inbox[0]}/read", headers=supervisor_headers)
        assert response.status_code == 404
        assert response.json()["success"] is False

        response = await client.put(f"/api/v1/notifications/{inbox[0]}/read", headers=technician_headers)
        assert response.status_code == 200
        assert response.json()["data"]["isRead"] is True

        response = await client.put("/api/v1/notifications/read-all", headers=technician_headers)
        assert response.json()["data"] == {"updated": 1}

        response = await client.get("/api/v1/notifications/stats", headers=technician_headers)
        assert response.json()["data"]["unread"] == 0
        assert response.json()["data"]["byType"]["OVERDUE"] == 1
