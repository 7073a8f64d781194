"""
Test configuration and fixtures for the accreditation service.
"""
import io
import zipfile
from datetime import date
from types import SimpleNamespace
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

import accredit.models  # noqa: F401
from accredit.main import app
from accredit.core.config import settings
from accredit.core.security import get_password_hash, create_access_token
from accredit.db.base import Base, get_db
from accredit.models.academic_term import AcademicTerm, TermStatus
from accredit.models.application import Application, ApplicationType, VerifiedBy
from accredit.models.college import College, Course
from accredit.models.organization import Organization, Council, RecognitionStatus
from accredit.models.user import User, UserRole
from accredit.services.file_validation import IncomingFile
from accredit.services.guards import Owner, OwnerKind
from accredit.services.notifications import get_notifier


class RecordingNotifier:
    """Collects notifications instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[str, Any, dict]] = []

    async def notify(self, to_email, kind, payload) -> bool:
        self.sent.append((to_email, kind, payload))
        return True

    def of_kind(self, kind) -> list[tuple[str, Any, dict]]:
        return [n for n in self.sent if n[1] == kind]


class FailingNotifier:
    """Notifier whose transport is down."""

    async def notify(self, to_email, kind, payload) -> bool:
        raise RuntimeError("mail server unreachable")


# ============================================================================
# SAMPLE FILES
# ============================================================================

def pdf_bytes(size: int = 2048) -> bytes:
    header = b"%PDF-1.4\n"
    return header + b"0" * max(size - len(header), 0)


def docx_bytes() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("word/document.xml", "<w:document/>")
    return buffer.getvalue()


def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0" + b"\x00" * 256


@pytest.fixture
def sample():
    """Builders for upload payloads."""
    return SimpleNamespace(
        pdf=lambda name="proposal.pdf", size=2048: IncomingFile(name, pdf_bytes(size), "application/pdf"),
        docx=lambda name="revised.docx": IncomingFile(name, docx_bytes()),
        png=lambda name="photo.png": IncomingFile(name, png_bytes(), "image/png"),
        jpeg=lambda name="photo.jpg": IncomingFile(name, jpeg_bytes(), "image/jpeg"),
        pdf_bytes=pdf_bytes,
        docx_bytes=docx_bytes,
        png_bytes=png_bytes,
    )


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Store uploads in the test's temporary directory."""
    target = tmp_path / "uploads"
    target.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(target))
    return target


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine backed by a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, notifier: RecordingNotifier) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session and notifier overrides."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# DOMAIN DATA
# ============================================================================

@pytest_asyncio.fixture
async def term(db_session: AsyncSession) -> AcademicTerm:
    """The active academic term."""
    term = AcademicTerm(
        school_year="2025-2026",
        semester="First Semester",
        start_date=date(2025, 8, 1),
        end_date=date(2025, 12, 20),
        status=TermStatus.ACTIVE,
    )
    db_session.add(term)
    await db_session.commit()
    return term


@pytest_asyncio.fixture
async def college(db_session: AsyncSession) -> College:
    college = College(code="CEIT", name="College of Engineering and Information Technology")
    db_session.add(college)
    await db_session.commit()
    return college


@pytest_asyncio.fixture
async def course(db_session: AsyncSession, college: College) -> Course:
    course = Course(college_id=college.id, code="BSCS", name="BS Computer Science")
    db_session.add(course)
    await db_session.commit()
    return course


@pytest_asyncio.fixture
async def other_course(db_session: AsyncSession, college: College) -> Course:
    course = Course(college_id=college.id, code="BSIT", name="BS Information Technology")
    db_session.add(course)
    await db_session.commit()
    return course


@pytest_asyncio.fixture
async def osas_user(db_session: AsyncSession) -> User:
    user = User(
        username="osas.director",
        email="osas@cvsu.edu.ph",
        password_hash=get_password_hash("OsasPass123"),
        name="OSAS DIRECTOR",
        role=UserRole.OSAS,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def headers_for():
    """Authorization headers for a user."""
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}
    return _headers


@pytest.fixture
def make_application(db_session: AsyncSession, college: College, course: Course):
    """Create a pending application; organization by default."""
    async def _make(**overrides) -> Application:
        data = dict(
            application_type=ApplicationType.ORGANIZATION,
            college_id=college.id,
            course_id=course.id,
            org_code="CSS",
            org_name="Computer Science Society",
            president_name="JUAN DELA CRUZ",
            president_email="juan@cvsu.edu.ph",
            adviser_name="MARIA SANTOS",
            adviser_email="maria@cvsu.edu.ph",
            verified_by=VerifiedBy.PRESIDENT,
            verified_email="juan@cvsu.edu.ph",
        )
        if overrides.get("application_type") == ApplicationType.COUNCIL:
            data.update(course_id=None, org_code=None, org_name=None)
        data.update(overrides)
        application = Application(**data)
        db_session.add(application)
        await db_session.commit()
        return application
    return _make


@pytest.fixture
def make_entity(db_session: AsyncSession, term: AcademicTerm, college: College, course: Course):
    """Create an organization or council with president and adviser accounts."""
    async def _make(
        kind: OwnerKind = OwnerKind.ORGANIZATION,
        code: str = "CSS",
        name: str = "Computer Science Society",
        status: RecognitionStatus = RecognitionStatus.RECOGNIZED,
        course_id: str = None,
    ):
        if kind is OwnerKind.ORGANIZATION:
            roles = (UserRole.ORG_PRESIDENT, UserRole.ORG_ADVISER)
        else:
            roles = (UserRole.COUNCIL_PRESIDENT, UserRole.COUNCIL_ADVISER)
        slug = code.lower()
        president = User(
            username=f"president.{slug}",
            email=f"president.{slug}@cvsu.edu.ph",
            password_hash=get_password_hash("Secret123"),
            name="PRESIDENT " + code,
            role=roles[0],
        )
        adviser = User(
            username=f"adviser.{slug}",
            email=f"adviser.{slug}@cvsu.edu.ph",
            password_hash=get_password_hash("Secret123"),
            name="ADVISER " + code,
            role=roles[1],
        )
        db_session.add_all([president, adviser])
        await db_session.flush()

        common = dict(
            code=code,
            name=name,
            college_id=college.id,
            academic_term_id=term.id,
            president_id=president.id,
            adviser_id=adviser.id,
            president_name=president.name,
            adviser_name=adviser.name,
            status=status,
        )
        if kind is OwnerKind.ORGANIZATION:
            entity = Organization(course_id=course_id or course.id, **common)
        else:
            entity = Council(**common)
        db_session.add(entity)
        await db_session.commit()
        return SimpleNamespace(
            entity=entity,
            owner=Owner(kind, entity.id),
            president=president,
            adviser=adviser,
        )
    return _make
