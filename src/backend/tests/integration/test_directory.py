"""
Integration tests for the directory: customers, products, departments and
staff users.

Tests:
- Customer visibility and registration
- Product registration scoped by department
- Department listing with managers
- User listing scopes, technician picker, account creation rules
- HTTP endpoints, including the full create-then-assign flow
"""

import pytest
from sqlalchemy import func, select

from api.schemas.customer import CustomerCreate
from api.schemas.product import ProductCreate
from api.schemas.user import UserCreate
from api.services.customer_service import CustomerService
from api.services.department_service import DepartmentService
from api.services.product_service import ProductService
from api.services.user_service import UserService
from core.exceptions import ForbiddenError, ValidationError
from db import Customer, Product, RequestStatus, User, UserRole
from tests.factories import CustomerFactory, ServiceRequestFactory

pytestmark = pytest.mark.asyncio

API = "/api/v1"


def new_user(**overrides) -> UserCreate:
    data = {
        "username": "karim.nasser",
        "email": "karim.nasser@company.com",
        "first_name": "Karim",
        "last_name": "Nasser",
        "role": UserRole.TECHNICIAN,
    }
    data.update(overrides)
    return UserCreate(**data)


# ============================================================================
# Customers
# ============================================================================

class TestCustomers:
    async def test_create_and_search(self, db_session, supervisor, as_actor):
        actor = as_actor(supervisor)

        created = await CustomerService.create_customer(
            db_session,
            CustomerCreate(name="  Lina Saad ", phone="0944000111", address="Mezzeh", city="Damascus"),
            actor,
        )
        await CustomerService.create_customer(
            db_session, CustomerCreate(name="Omar Rifai", phone="0933000222", address="Baramkeh"), actor
        )

        assert created.name == "Lina Saad"
        assert created.city == "Damascus"

        customers, total = await CustomerService.list_customers(db_session, actor, search="mezz")
        assert total == 1
        assert [c.id for c in customers] == [created.id]

        customers, total = await CustomerService.list_customers(db_session, actor, page=1, limit=1)
        assert total == 2
        assert len(customers) == 1

    async def test_blank_fields_rejected(self, db_session, supervisor, as_actor):
        with pytest.raises(ValidationError, match="required"):
            await CustomerService.create_customer(
                db_session, CustomerCreate(name="Lina", phone="0944", address="   "), as_actor(supervisor)
            )

    @pytest.mark.parametrize("role", ["technician", "warehouse_keeper"])
    async def test_only_staff_with_authority_create(self, db_session, staff, as_actor, role):
        with pytest.raises(ForbiddenError):
            await CustomerService.create_customer(
                db_session, CustomerCreate(name="Lina", phone="0944", address="Mezzeh"), as_actor(staff[role])
            )
        assert await db_session.scalar(select(func.count(Customer.id))) == 0

    async def test_technician_sees_only_assigned_customers(
        self, db_session, customer, lg_department, supervisor, technician, second_technician, as_actor
    ):
        other = CustomerFactory.create(name="Other Customer")
        db_session.add(other)
        await db_session.commit()
        db_session.add(
            ServiceRequestFactory.create(
                customer_id=customer.id,
                department_id=lg_department.id,
                received_by_id=supervisor.id,
                assigned_technician_id=technician.id,
                status=RequestStatus.ASSIGNED,
            )
        )
        await db_session.commit()

        customers, total = await CustomerService.list_customers(db_session, as_actor(technician))
        assert total == 1
        assert [c.id for c in customers] == [customer.id]

        customers, total = await CustomerService.list_customers(db_session, as_actor(second_technician))
        assert (customers, total) == ([], 0)

        customers, total = await CustomerService.list_customers(db_session, as_actor(supervisor))
        assert total == 2


# ============================================================================
# Products and departments
# ============================================================================

class TestProducts:
    async def test_supervisor_registers_for_own_department(
        self, db_session, lg_department, solar_department, supervisor, as_actor
    ):
        actor = as_actor(supervisor)
        lg_id, solar_id = lg_department.id, solar_department.id

        product = await ProductService.create_product(
            db_session,
            ProductCreate(name="Inverter", model="X1", category="Power", department_id=lg_id, serial_number="SN-1"),
            actor,
        )
        assert product.department.name == "LG Maintenance"
        assert product.warranty_months == 12

        with pytest.raises(ForbiddenError, match="your department"):
            await ProductService.create_product(
                db_session,
                ProductCreate(name="Panel", model="P2", category="Solar", department_id=solar_id),
                actor,
            )
        assert await db_session.scalar(select(func.count(Product.id))) == 1

    async def test_unknown_department(self, db_session, company_manager, as_actor):
        with pytest.raises(ValidationError, match="Department not found"):
            await ProductService.create_product(
                db_session,
                ProductCreate(name="Panel", model="P2", category="Solar", department_id=999),
                as_actor(company_manager),
            )

    async def test_technician_cannot_register(self, db_session, lg_department, technician, as_actor):
        with pytest.raises(ForbiddenError):
            await ProductService.create_product(
                db_session,
                ProductCreate(name="TV", model="T", category="TV", department_id=lg_department.id),
                as_actor(technician),
            )

    async def test_list_by_department_and_search(self, db_session, lg_product, solar_department, company_manager, as_actor):
        await ProductService.create_product(
            db_session,
            ProductCreate(name="Panel 400W", model="P400", category="Solar", department_id=solar_department.id),
            as_actor(company_manager),
        )

        products, total = await ProductService.list_products(db_session, department_id=lg_product.department_id)
        assert total == 1
        assert products[0].id == lg_product.id

        products, total = await ProductService.list_products(db_session, search="p400")
        assert total == 1
        assert products[0].name == "Panel 400W"


class TestDepartments:
    async def test_sorted_with_manager(self, db_session, lg_department, department_manager):
        lg_department.manager_id = department_manager.id
        await db_session.commit()

        rows = await DepartmentService.list_departments(db_session)

        names = [department.name for department, _ in rows]
        assert names == sorted(names)
        managers = {department.name: manager for department, manager in rows}
        assert managers["LG Maintenance"].id == department_manager.id
        assert managers["Solar Energy"] is None


# ============================================================================
# Users
# ============================================================================

class TestUserListing:
    async def test_manager_sees_everyone(self, db_session, staff, as_actor):
        users, total = await UserService.list_users(db_session, as_actor(staff["company_manager"]))

        assert total == len(staff)

    async def test_supervisor_limited_to_department(self, db_session, staff, solar_department, as_actor):
        actor = as_actor(staff["supervisor"])

        users, _ = await UserService.list_users(db_session, actor)
        assert {u.department_id for u in users} == {actor.department_id}

        with pytest.raises(ForbiddenError):
            await UserService.list_users(db_session, actor, department_id=solar_department.id)

    async def test_technician_sees_fellow_technicians(self, db_session, staff, second_technician, as_actor):
        users, total = await UserService.list_users(
            db_session, as_actor(staff["technician"]), role=UserRole.SECTION_SUPERVISOR
        )

        assert total == 2
        assert {u.role for u in users} == {UserRole.TECHNICIAN.value}

    async def test_warehouse_keeper_forbidden(self, db_session, warehouse_keeper, as_actor):
        with pytest.raises(ForbiddenError):
            await UserService.list_users(db_session, as_actor(warehouse_keeper))

    async def test_inactive_filtered_by_default(self, db_session, company_manager, technician, as_actor):
        technician.is_active = False
        await db_session.commit()
        actor = as_actor(company_manager)

        users, _ = await UserService.list_users(db_session, actor, role=UserRole.TECHNICIAN)
        assert users == []

        users, _ = await UserService.list_users(db_session, actor, role=UserRole.TECHNICIAN, is_active=None)
        assert len(users) == 1


class TestAssignableTechnicians:
    async def test_supervisor_gets_own_department(
        self, db_session, supervisor, technician, solar_technician, solar_department, as_actor
    ):
        technicians = await UserService.list_assignable_technicians(
            db_session, as_actor(supervisor), department_id=solar_department.id
        )

        assert [t.id for t in technicians] == [technician.id]

    async def test_manager_level_gets_every_department(
        self, db_session, deputy_manager, technician, solar_technician, as_actor
    ):
        technicians = await UserService.list_assignable_technicians(db_session, as_actor(deputy_manager))

        assert {t.id for t in technicians} == {technician.id, solar_technician.id}

    @pytest.mark.parametrize("role", ["technician", "warehouse_keeper"])
    async def test_roles_that_cannot_assign(self, db_session, staff, as_actor, role):
        with pytest.raises(ForbiddenError):
            await UserService.list_assignable_technicians(db_session, as_actor(staff[role]))


class TestUserCreation:
    async def test_department_manager_creates_technician(self, db_session, lg_department, department_manager, as_actor):
        user = await UserService.create_user(
            db_session, new_user(department_id=lg_department.id), as_actor(department_manager)
        )

        assert user.role == UserRole.TECHNICIAN.value
        assert user.department.name == "LG Maintenance"
        assert user.is_active is True

    async def test_department_manager_limits(
        self, db_session, lg_department, solar_department, department_manager, as_actor
    ):
        actor = as_actor(department_manager)
        lg_id, solar_id = lg_department.id, solar_department.id

        with pytest.raises(ForbiddenError, match="your department"):
            await UserService.create_user(db_session, new_user(department_id=solar_id), actor)

        with pytest.raises(ForbiddenError, match="this role"):
            await UserService.create_user(
                db_session, new_user(role=UserRole.DEPUTY_MANAGER, department_id=lg_id), actor
            )

        assert await db_session.scalar(select(func.count(User.id)).where(User.username == "karim.nasser")) == 0

    async def test_company_manager_creates_any_role(self, db_session, company_manager, as_actor):
        user = await UserService.create_user(
            db_session, new_user(role=UserRole.DEPUTY_MANAGER), as_actor(company_manager)
        )

        assert user.role == UserRole.DEPUTY_MANAGER.value
        assert user.department_id is None

    async def test_validation(self, db_session, lg_department, company_manager, technician, as_actor):
        actor = as_actor(company_manager)
        taken_username, lg_id = technician.username, lg_department.id

        with pytest.raises(ValidationError, match="department is required"):
            await UserService.create_user(db_session, new_user(), actor)

        with pytest.raises(ValidationError, match="Department not found"):
            await UserService.create_user(db_session, new_user(department_id=999), actor)

        with pytest.raises(ValidationError, match="already in use"):
            await UserService.create_user(
                db_session, new_user(username=taken_username, department_id=lg_id), actor
            )

    @pytest.mark.parametrize("role", ["supervisor", "technician", "warehouse_keeper"])
    async def test_roles_that_cannot_create(self, db_session, lg_department, staff, as_actor, role):
        with pytest.raises(ForbiddenError):
            await UserService.create_user(
                db_session, new_user(department_id=lg_department.id), as_actor(staff[role])
            )


# ============================================================================
# HTTP
# ============================================================================

class TestDirectoryEndpoints:
    async def test_supervisor_registers_customer_and_logs_request(
        self, client, lg_department, supervisor, auth_headers
    ):
        headers = auth_headers(supervisor)
        department_id = lg_department.id

        response = await client.post(
            f"{API}/customers",
            json={"name": "Lina Saad", "phone": "0944000111", "address": "Mezzeh"},
            headers=headers,
        )
        assert response.status_code == 201
        customer_id = response.json()["data"]["id"]

        response = await client.post(
            f"{API}/users",
            json={
                "username": "karim.nasser",
                "email": "karim.nasser@company.com",
                "firstName": "Karim",
                "lastName": "Nasser",
                "role": "TECHNICIAN",
                "departmentId": department_id,
            },
            headers=headers,
        )
        assert response.status_code == 403

        response = await client.post(
            f"{API}/requests",
            json={
                "customerId": customer_id,
                "issueDescription": "Washer leaking",
                "executionMethod": "WORKSHOP",
                "warrantyStatus": "OUT_OF_WARRANTY",
            },
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["customer"]["id"] == customer_id

        response = await client.get(f"{API}/users/technicians", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"] == []

    async def test_manager_creates_technician_and_assigns(
        self, client, db_session, customer, lg_department, company_manager, supervisor, auth_headers
    ):
        manager_headers = auth_headers(company_manager)

        response = await client.post(
            f"{API}/users",
            json={
                "username": "karim.nasser",
                "email": "karim.nasser@company.com",
                "firstName": "Karim",
                "lastName": "Nasser",
                "role": "TECHNICIAN",
                "departmentId": lg_department.id,
            },
            headers=manager_headers,
        )
        assert response.status_code == 201
        body = response.json()["data"]
        assert body["department"]["name"] == "LG Maintenance"
        technician_id = body["id"]

        response = await client.get(f"{API}/users/technicians", headers=auth_headers(supervisor))
        assert [t["id"] for t in response.json()["data"]] == [technician_id]

        request = ServiceRequestFactory.create(
            customer_id=customer.id, department_id=lg_department.id, received_by_id=supervisor.id
        )
        db_session.add(request)
        await db_session.commit()

        response = await client.put(
            f"{API}/requests/{request.id}/assign",
            json={"technicianId": technician_id},
            headers=auth_headers(supervisor),
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == RequestStatus.ASSIGNED.value

    async def test_lists(self, client, customer, lg_product, departments, company_manager, auth_headers):
        headers = auth_headers(company_manager)

        response = await client.get(f"{API}/customers", params={"search": customer.phone}, headers=headers)
        assert response.json()["meta"]["total"] == 1
        assert response.json()["data"][0]["createdAt"].endswith("Z")

        response = await client.get(f"{API}/products", params={"departmentId": lg_product.department_id}, headers=headers)
        assert [p["id"] for p in response.json()["data"]] == [lg_product.id]
        assert response.json()["data"][0]["department"]["name"] == "LG Maintenance"

        response = await client.get(f"{API}/departments", headers=headers)
        assert len(response.json()["data"]) == len(departments)
        assert all(d["manager"] is None for d in response.json()["data"])

        response = await client.get(f"{API}/users", params={"role": "COMPANY_MANAGER"}, headers=headers)
        assert [u["id"] for u in response.json()["data"]] == [company_manager.id]

    async def test_product_create_validation(self, client, company_manager, auth_headers):
        response = await client.post(
            f"{API}/products", json={"name": "Panel"}, headers=auth_headers(company_manager)
        )

        assert response.status_code == 400
        assert "model" in response.json()["errors"]
