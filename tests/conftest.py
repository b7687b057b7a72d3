import os
from typing import AsyncGenerator

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from coursetrack.auth.security import token_for_user
from coursetrack.core.enums import Role
from coursetrack.core.models import Program, StudentYear, Subject, User
from coursetrack.db.session import Base, build_engine, get_db
from coursetrack.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OFFICER_ID = 1
CHAIR_ID = 2
PROF_A_ID = 3
PROF_B_ID = 4
PROF_C_ID = 5
INACTIVE_ID = 6


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """One in-memory database per test, shared by every session through a static pool."""
    engine = build_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def seed(session_factory) -> dict:
    """Users, a program, year levels 1-4 and five subjects (ids 1-5)."""
    async with session_factory() as session:
        session.add_all(
            [
                User(id=OFFICER_ID, email="officer@example.ac.th", first_name_en="Olive"),
                User(id=CHAIR_ID, email="chair@example.ac.th", first_name_en="Chai"),
                User(id=PROF_A_ID, email="a@example.ac.th", first_name_en="Anan"),
                User(id=PROF_B_ID, email="b@example.ac.th", first_name_en="Busaba"),
                User(id=PROF_C_ID, email="c@example.ac.th", first_name_en="Chanin"),
                User(id=INACTIVE_ID, email="gone@example.ac.th", is_active=False),
                Program(id=1, code="CS", name_th="วิทยาการคอมพิวเตอร์", name_eng="Computer Science"),
                Program(id=2, code="DS", name_th="วิทยาการข้อมูล", name_eng="Data Science"),
            ]
        )
        years = [StudentYear(id=n, student_year=n, label=f"Year {n}") for n in (1, 2, 3, 4)]
        session.add_all(years)
        await session.flush()

        subjects = [
            Subject(id=1, program_id=1, code_eng="CS101", name_eng="Programming", credit="3(2-2-5)"),
            Subject(id=2, program_id=1, code_eng="CS201", name_eng="Data Structures", credit="3(3-0-6)"),
            Subject(id=3, program_id=1, code_eng="CS301", name_eng="Databases", credit="3(3-0-6)"),
            Subject(id=4, program_id=2, code_eng="DS101", name_eng="Statistics", credit="3(3-0-6)"),
            Subject(id=5, program_id=2, code_eng="DS401", name_eng="Capstone", credit="6(0-18-0)"),
        ]
        subjects[0].student_years = [years[0]]
        subjects[1].student_years = [years[1]]
        subjects[2].student_years = [years[2]]
        subjects[3].student_years = [years[0], years[1]]
        subjects[4].student_years = [years[3]]
        session.add_all(subjects)
        await session.commit()
    return {"subject_ids": [1, 2, 3, 4, 5]}


def _headers(user_id: int, *roles: Role) -> dict:
    return {"Authorization": f"Bearer {token_for_user(user_id, [r.value for r in roles])}"}


@pytest.fixture()
def officer_headers() -> dict:
    return _headers(OFFICER_ID, Role.ACADEMIC_OFFICER)


@pytest.fixture()
def chair_headers() -> dict:
    return _headers(CHAIR_ID, Role.PROGRAM_CHAIR)


@pytest.fixture()
def prof_a_headers() -> dict:
    return _headers(PROF_A_ID, Role.PROFESSOR)


@pytest.fixture()
def prof_b_headers() -> dict:
    return _headers(PROF_B_ID, Role.PROFESSOR)


@pytest.fixture()
def student_headers() -> dict:
    return _headers(PROF_C_ID, Role.STUDENT)


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


TERM_PAYLOAD = {
    "academic_year": 2568,
    "academic_sector": 1,
    "term_start_date": "2025-06-02",
    "term_end_date": "2025-09-26",
    "midterm_start_date": "2025-07-21",
    "midterm_end_date": "2025-07-27",
    "final_start_date": "2025-09-15",
    "final_end_date": "2025-09-26",
}


@pytest.fixture()
def term_payload() -> dict:
    return dict(TERM_PAYLOAD)


@pytest.fixture()
async def term(client, seed, officer_headers, term_payload) -> dict:
    """A term with subjects 1, 2 and 3 attached."""
    resp = await client.post(
        "/api/v1/terms",
        json={**term_payload, "subject_ids": [1, 2, 3]},
        headers=officer_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture()
async def term_subjects(client, term, officer_headers) -> dict:
    """subject_id -> term subject row for the fixture term."""
    resp = await client.get(f"/api/v1/terms/{term['id']}/subjects", headers=officer_headers)
    assert resp.status_code == 200
    return {row["subject_id"]: row for row in resp.json()}
