"""
Seed script to create the first ADMIN user (allowed to open student number ranges).

Run once (e.g. after init_db) with env set:
  ADMIN_EMAIL=registry@university.ac.zw
  ADMIN_PASSWORD=YourSecurePassword

Creates the user if missing; otherwise resets role to ADMIN, status to ACTIVE and the password.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.config import settings
from app.core.enums import UserRole
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)


async def seed_admin(db: AsyncSession, email: str, password: str, full_name: str) -> User:
    email = email.strip().lower()
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if not user:
        user = User(
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
            status="ACTIVE",
        )
        db.add(user)
        logger.info("Created ADMIN user %s", email)
    else:
        user.role = UserRole.ADMIN.value
        user.status = "ACTIVE"
        user.password_hash = hash_password(password)
        logger.info("Updated existing user %s to ADMIN", email)
    await db.commit()
    return user


async def main() -> None:
    configure_logging(settings.log_level)
    if not settings.admin_email or not settings.admin_password:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must be set; nothing seeded")
        return
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db, settings.admin_email, settings.admin_password, settings.admin_full_name)
        except Exception:
            await db.rollback()
            logger.exception("Admin seed failed")
            raise


if __name__ == "__main__":
    asyncio.run(main())
