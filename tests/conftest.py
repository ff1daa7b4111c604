import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-admissions.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("AUTH_TOKEN_URL", "https://identity.example.edu/oauth/token")

from dataclasses import dataclass  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import AsyncGenerator, Callable, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event, select  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from app.api.v1.student_numbers import event_service, service  # noqa: E402
from app.api.v1.student_numbers.schemas import StudentNumberRangeCreate, StudentNumberRangeResponse  # noqa: E402
from app.auth.models import User  # noqa: E402
from app.auth.security import create_access_token, hash_password  # noqa: E402
from app.core import notification  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.enums import AcceptanceStatus, UserRole  # noqa: E402
from app.core.models import Application, PersonalDetails, Programme  # noqa: E402
from app.db.session import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402


def _use_immediate_transactions(engine: AsyncEngine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE so concurrent writers queue up
    the way SELECT ... FOR UPDATE makes them queue on PostgreSQL."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest.fixture()
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite database per test, shared by every connection in the pool."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'admissions.db'}",
        connect_args={"timeout": 30},
    )
    _use_immediate_transactions(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; each request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def letter_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Write offer letters under the test's tmp dir and use the built-in body template."""
    target = tmp_path / "offer-letters"
    monkeypatch.setattr(settings, "offer_letter_dir", str(target))
    monkeypatch.setattr(settings, "offer_letter_template_path", str(tmp_path / "no-template.txt"))
    monkeypatch.setattr(settings, "offer_letter_logo_path", str(tmp_path / "no-logo.png"))
    return target


@dataclass
class SentEmail:
    to_address: str
    subject: str
    text: str
    attachment_path: Optional[Path]
    attachment_name: Optional[str]


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch: pytest.MonkeyPatch) -> List[SentEmail]:
    """Capture outgoing mail instead of talking to SMTP."""
    sent: List[SentEmail] = []

    async def fake_send(to_address, content, attachment_path=None, attachment_name=None):
        sent.append(SentEmail(to_address, content.subject, content.text, attachment_path, attachment_name))

    monkeypatch.setattr(notification, "send_email_async", fake_send)
    return sent


async def _create_user(session_factory: async_sessionmaker, role: str, email: str) -> User:
    async with session_factory() as s:
        user = User(
            full_name=f"{role.title()} User",
            email=email,
            password_hash=hash_password("StrongPass123"),
            role=role,
            status="ACTIVE",
        )
        s.add(user)
        await s.commit()
        return user


def _bearer(user: User) -> Dict[str, str]:
    token = create_access_token(subject={"user_id": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def staff_user(session_factory: async_sessionmaker) -> User:
    return await _create_user(session_factory, UserRole.ADMISSIONS_OFFICER.value, "officer@example.com")


@pytest.fixture()
async def admin_user(session_factory: async_sessionmaker) -> User:
    return await _create_user(session_factory, UserRole.ADMIN.value, "registry@example.com")


@pytest.fixture()
def staff_headers(staff_user: User) -> Dict[str, str]:
    return _bearer(staff_user)


@pytest.fixture()
def admin_headers(admin_user: User) -> Dict[str, str]:
    return _bearer(admin_user)


@pytest.fixture()
async def programme(session_factory: async_sessionmaker) -> Programme:
    async with session_factory() as s:
        prog = Programme(
            code="BSCPSY",
            name="BSc Honours in Psychology",
            programme_duration="4 years",
            programme_fee=1200,
            down_payment=300,
        )
        s.add(prog)
        await s.commit()
        return prog


@pytest.fixture()
def make_application(session_factory: async_sessionmaker) -> Callable:
    """Factory: insert an application (plus personal details) as the submission flow would."""

    async def _make(
        reference_number: str,
        *,
        programme: Optional[str] = "BSCPSY",
        email: Optional[str] = "applicant@example.com",
        status: str = AcceptanceStatus.PENDING.value,
        first_names: str = "Rudo",
        surname: str = "Moyo",
    ) -> Application:
        async with session_factory() as s:
            application = Application(
                reference_number=reference_number,
                programme=programme,
                accepted_status=status,
                year_of_commencement="2026",
            )
            s.add(application)
            await s.flush()
            s.add(
                PersonalDetails(
                    application_id=application.id,
                    title="Ms",
                    first_names=first_names,
                    surname=surname,
                    email=email,
                    postal_address="549 Arcturus Road, Harare",
                )
            )
            await s.commit()
            return application

    return _make


@pytest.fixture()
def open_range(session_factory: async_sessionmaker) -> Callable:
    """Factory: create and activate a range through the service layer."""

    async def _open(start: int, end: int, prefix: Optional[str] = "w") -> StudentNumberRangeResponse:
        async with session_factory() as s:
            return await service.create_range(
                s, StudentNumberRangeCreate(prefix=prefix, start_number=start, end_number=end)
            )

    return _open


@pytest.fixture()
def fail_event_log(monkeypatch: pytest.MonkeyPatch) -> Callable:
    """Call to make offer letter event inserts fail after running a query on the session."""

    def _install() -> None:
        async def query_then_fail(db, *args, **kwargs):
            await db.execute(select(Application.id))
            raise SQLAlchemyError("offer_letter_events is unavailable")

        monkeypatch.setattr(event_service, "record_offer_letter_event", query_then_fail)

    return _install
