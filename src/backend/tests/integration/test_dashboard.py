"""
Integration tests for dashboard statistics.
"""

from datetime import timedelta

import pytest

from api.services.dashboard_service import DashboardService
from db import RequestStatus, WarrantyStatus, utc_now
from tests.factories import ServiceRequestFactory

pytestmark = pytest.mark.asyncio


@pytest.fixture
def seed_requests(db_session, customer, lg_department, solar_department, supervisor, solar_supervisor, technician):
    """Four LG requests (one assigned to the technician) and one Solar request."""

    async def _seed():
        now = utc_now()
        lg = dict(customer_id=customer.id, department_id=lg_department.id, received_by_id=supervisor.id)
        rows = [
            ServiceRequestFactory.create(**lg, assigned_technician_id=technician.id, status=RequestStatus.ASSIGNED),
            ServiceRequestFactory.create(**lg, is_overdue=True, warranty_status=WarrantyStatus.UNDER_WARRANTY),
            ServiceRequestFactory.create(
                **lg, status=RequestStatus.COMPLETED, created_hours_ago=10, completed_at=now - timedelta(hours=4)
            ),
            ServiceRequestFactory.create(
                **lg, status=RequestStatus.COMPLETED, created_hours_ago=10, completed_at=now - timedelta(hours=8)
            ),
            ServiceRequestFactory.create(
                customer_id=customer.id,
                department_id=solar_department.id,
                received_by_id=solar_supervisor.id,
                status=RequestStatus.CLOSED,
            ),
        ]
        rows[2].customer_satisfaction = 5
        rows[3].customer_satisfaction = 4
        db_session.add_all(rows)
        await db_session.commit()

    return _seed


async def test_manager_sees_everything(db_session, company_manager, seed_requests, as_actor):
    await seed_requests()

    stats = await DashboardService.get_stats(db_session, as_actor(company_manager))

    assert stats["total_requests"] == 5
    assert stats["pending_requests"] == 2
    assert stats["overdue_requests"] == 1
    assert stats["completed_requests"] == 2
    assert stats["under_warranty"] == 1
    assert stats["out_of_warranty"] == 4
    assert stats["average_resolution_time"] == pytest.approx(4.0, abs=0.01)
    assert stats["customer_satisfaction_average"] == 4.5
    assert {d["department_name"]: d["count"] for d in stats["requests_by_department"]} == {
        "LG Maintenance": 4,
        "Solar Energy": 1,
    }
    assert {s["status"]: s["count"] for s in stats["requests_by_status"]} == {
        "ASSIGNED": 1,
        "NEW": 1,
        "COMPLETED": 2,
        "CLOSED": 1,
    }


async def test_supervisor_sees_own_department(db_session, solar_supervisor, seed_requests, as_actor):
    await seed_requests()

    stats = await DashboardService.get_stats(db_session, as_actor(solar_supervisor))

    assert stats["total_requests"] == 1
    assert stats["pending_requests"] == 0
    assert stats["requests_by_department"] == [
        {"department_id": solar_supervisor.department_id, "department_name": "Solar Energy", "count": 1}
    ]


async def test_technician_sees_own_requests(db_session, technician, seed_requests, as_actor):
    await seed_requests()

    stats = await DashboardService.get_stats(db_session, as_actor(technician))

    assert stats["total_requests"] == 1
    assert stats["pending_requests"] == 1
    assert stats["average_resolution_time"] == 0.0
    assert stats["customer_satisfaction_average"] == 0.0


async def test_endpoint(client, supervisor, seed_requests, auth_headers):
    headers = auth_headers(supervisor)
    await seed_requests()

    response = await client.get("/api/v1/dashboard/stats", headers=headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalRequests"] == 4
    assert data["overdueRequests"] == 1
    assert data["requestsByStatus"]
