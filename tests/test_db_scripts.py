import pytest
from sqlalchemy import func, select

from app.auth.models import User
from app.auth.security import verify_password
from app.db.init_db import init_db
from app.db.seed_admin import seed_admin


@pytest.mark.asyncio
async def test_init_db_is_idempotent(engine) -> None:
    # Tables already exist from the engine fixture; a second run must not fail
    await init_db(engine)


@pytest.mark.asyncio
async def test_seed_admin_creates_then_updates(session_factory) -> None:
    async with session_factory() as s:
        created = await seed_admin(s, " Registry@Example.com ", "FirstPass123", "Registry Admin")
    assert created.email == "registry@example.com"
    assert created.role == "ADMIN"

    async with session_factory() as s:
        user = (await s.execute(select(User).where(User.email == "registry@example.com"))).scalar_one()
        user.role = "HR"
        user.status = "SUSPENDED"
        await s.commit()

    async with session_factory() as s:
        updated = await seed_admin(s, "registry@example.com", "SecondPass456", "Registry Admin")
        count = (await s.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1
    assert updated.role == "ADMIN"
    assert updated.status == "ACTIVE"
    assert verify_password("SecondPass456", updated.password_hash)
