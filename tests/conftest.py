"""
FTTH Dash - Test Configuration and Fixtures
"""
import io
import os
from typing import Dict, Iterable, List, Sequence

# Set testing environment before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["BCRYPT_ROUNDS"] = "4"

import openpyxl
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.security import create_access_token, get_password_hash
from app.db.session import get_db
from app.main import app
from app.models import Project, ProjectLog, User, UserRole  # noqa: F401 (registers tables)

TEST_PASSWORD = "testpassword123"


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    """Test client sharing the test session"""
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(session: Session, email: str, roles: List[UserRole], division=None, **extra) -> User:
    user = User(
        email=email,
        password=get_password_hash(TEST_PASSWORD),
        full_name=email.split("@")[0].title(),
        roles=roles,
        division=division,
        **extra,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def planning_user(session) -> User:
    return _make_user(session, "planner@example.com", [UserRole.CONTROLLER], division="PLANNING")


@pytest.fixture
def deployment_user(session) -> User:
    return _make_user(session, "deployer@example.com", [UserRole.CONTROLLER], division="DEPLOYMENT")


@pytest.fixture
def admin_user(session) -> User:
    return _make_user(session, "admin@example.com", [UserRole.ADMIN], division="ADMIN")


@pytest.fixture
def owner_user(session) -> User:
    return _make_user(session, "owner@example.com", [UserRole.OWNER])


def auth_headers_for(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=user.email)}"}


@pytest.fixture
def planning_headers(planning_user) -> Dict[str, str]:
    return auth_headers_for(planning_user)


@pytest.fixture
def deployment_headers(deployment_user) -> Dict[str, str]:
    return auth_headers_for(deployment_user)


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def owner_headers(owner_user) -> Dict[str, str]:
    return auth_headers_for(owner_user)


@pytest.fixture
def make_workbook():
    """Build .xlsx bytes from {sheet name: [header, *rows]}"""
    def _make(sheets: Dict[str, Sequence[Iterable]]) -> bytes:
        workbook = openpyxl.Workbook()
        workbook.remove(workbook.active)
        for name, rows in sheets.items():
            worksheet = workbook.create_sheet(name)
            for row in rows:
                worksheet.append(list(row))
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_project(session):
    """Insert a project directly, bypassing the API"""
    def _make(no_project: str = "PRJ900", **fields) -> Project:
        values = dict(
            regional="JABAR",
            no_project=no_project,
            nama_project=f"Project {no_project}",
            pop="POP1",
            port="100",
            port_terisi="40",
            progress="CREATED BOQ",
            status="DESAIN",
            uic="PLANNING",
            persentase="1",
            revenue="1000",
            occupancy="40",
            capex="600",
            division="PLANNING",
        )
        values.update(fields)
        project = Project(**values)
        session.add(project)
        session.commit()
        session.refresh(project)
        return project

    return _make


@pytest.fixture
def make_user(session):
    """Create extra users: make_user(email, roles, division=None, **fields)"""
    def _make(email: str, roles: List[UserRole], division=None, **extra) -> User:
        return _make_user(session, email, roles, division=division, **extra)

    return _make


@pytest.fixture
def headers_for():
    return auth_headers_for
