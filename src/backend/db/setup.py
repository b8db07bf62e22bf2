"""
Database setup module for initializing default values.

Seeds the departments the keyword router resolves to and a bootstrap
company manager account configured from the environment.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db import Department, User, UserRole

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


DEFAULT_DEPARTMENTS = [
    {"name": "LG Maintenance", "description": "LG home appliances: TVs, refrigerators, washers, air conditioners"},
    {"name": "Solar Energy", "description": "Solar panels, inverters and batteries"},
    {"name": "TP-Link", "description": "Routers and networking equipment"},
    {"name": "Epson", "description": "Printers and scanners"},
]


class DatabaseSetup:
    """Handles database initialization and default data setup."""

    def __init__(self):
        self.admin_username = os.getenv("ADMIN_USERNAME", "admin")
        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@aftersales.local")
        self.admin_first_name = os.getenv("ADMIN_FIRST_NAME", "System")
        self.admin_last_name = os.getenv("ADMIN_LAST_NAME", "Manager")

        logger.info("Database setup initialized with admin config:")
        logger.info(f"  Admin username: {self.admin_username}")
        logger.info(f"  Admin email: {self.admin_email}")

    async def create_departments(self, db: AsyncSession) -> bool:
        """Create the default departments, skipping names that already exist."""
        logger.info("Creating default departments...")

        try:
            for department_data in DEFAULT_DEPARTMENTS:
                result = await db.execute(
                    select(Department).where(Department.name == department_data["name"])
                )
                if result.scalar_one_or_none():
                    logger.info(f"Department '{department_data['name']}' already exists, skipping...")
                    continue

                db.add(Department(**department_data))
                logger.info(f"Created department: {department_data['name']}")

            await db.commit()
            return True

        except Exception as e:
            logger.error(f"Failed to create departments: {str(e)}")
            await db.rollback()
            return False

    async def create_admin_user(self, db: AsyncSession) -> Optional[User]:
        """Create the bootstrap company manager, or return it if present."""
        result = await db.execute(
            select(User).where(
                (User.username == self.admin_username)
                | (User.email == self.admin_email)
            )
        )
        existing_user = result.scalar_one_or_none()
        if existing_user:
            logger.info(f"Admin user '{self.admin_username}' already exists")
            return existing_user

        admin_user = User(
            username=self.admin_username,
            email=self.admin_email,
            first_name=self.admin_first_name,
            last_name=self.admin_last_name,
            role=UserRole.COMPANY_MANAGER.value,
            is_active=True,
        )
        db.add(admin_user)
        await db.commit()
        await db.refresh(admin_user)

        logger.info(f"Admin user '{self.admin_username}' created")
        return admin_user

    async def is_database_already_initialized(self, db: AsyncSession) -> bool:
        """Check for the admin user and every default department."""
        admin_result = await db.execute(
            select(User.id).where(User.username == self.admin_username)
        )
        if admin_result.scalar_one_or_none() is None:
            return False

        names = [d["name"] for d in DEFAULT_DEPARTMENTS]
        dept_result = await db.execute(
            select(Department.name).where(Department.name.in_(names))
        )
        return len(dept_result.scalars().all()) == len(names)

    async def run_setup(self, db: AsyncSession) -> bool:
        """Seed departments and the admin user."""
        logger.info("Database setup process started...")

        if await self.is_database_already_initialized(db):
            logger.info("Database already initialized, skipping setup")
            return True

        if not await self.create_departments(db):
            return False

        try:
            admin_user = await self.create_admin_user(db)
        except Exception as e:
            logger.error(f"Failed to create admin user: {str(e)}")
            await db.rollback()
            return False

        logger.info(
            f"Default data ready: {len(DEFAULT_DEPARTMENTS)} departments, "
            f"admin {admin_user.username}, routing default '{settings.routing.default_department}'"
        )
        return True


# Global database setup instance
database_setup = DatabaseSetup()


async def setup_database_default_data(db: AsyncSession) -> bool:
    """
    Convenience function to setup database default data.

    Returns:
        True if setup was successful, False otherwise
    """
    return await database_setup.run_setup(db)
