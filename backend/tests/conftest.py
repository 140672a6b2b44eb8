"""
CampusGate - Test Configuration and Fixtures
"""
import os
from datetime import timedelta
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['NOTIFICATION_RELAY_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''

from gatepass.main import app
from gatepass.core.database import Base, get_db
from gatepass.core.security import create_access_token
from gatepass.core.types import utcnow
from gatepass.models.user import User, UserRole
from gatepass.models.gate_pass import GatePass, PassStatus, PassType, ApprovalDecision

fake = Faker()

DEPARTMENT = 'CSE'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


class RecordingPublisher:
    """Notification publisher that remembers every push"""

    def __init__(self):
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, room: str, payload: Dict[str, Any]) -> int:
        self.published.append((room, payload))
        return 1

    def rooms(self) -> List[str]:
        return [room for room, _ in self.published]

    def titles(self, room: Optional[str] = None) -> List[str]:
        return [p['title'] for r, p in self.published if room is None or r == room]


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


# ==================== Users ====================

async def create_user(db: AsyncSession, role: UserRole, **fields) -> User:
    values = dict(
        email=fake.unique.email(),
        full_name=fake.name(),
        phone=fake.msisdn()[:10],
        role=role,
        department=DEPARTMENT,
        is_active=True,
    )
    values.update(fields)
    user = User(**values)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def mentor(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.MENTOR)


@pytest.fixture
async def other_mentor(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.MENTOR)


@pytest.fixture
async def hod(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.HOD)


@pytest.fixture
async def other_hod(db_session: AsyncSession) -> User:
    """HOD of a different department"""
    return await create_user(db_session, UserRole.HOD, department='ECE')


@pytest.fixture
async def security_guard(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.SECURITY, department=None)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.ADMIN, department=None)


@pytest.fixture
async def student(db_session: AsyncSession, mentor: User) -> User:
    return await create_user(
        db_session,
        UserRole.STUDENT,
        mentor_id=mentor.id,
        year=2,
        student_id=f'21CS{fake.unique.random_int(1000, 9999)}',
        hostel_block='A',
        room_number='101',
    )


@pytest.fixture
async def other_student(db_session: AsyncSession, mentor: User) -> User:
    return await create_user(
        db_session,
        UserRole.STUDENT,
        mentor_id=mentor.id,
        student_id=f'21CS{fake.unique.random_int(1000, 9999)}',
    )


def headers_for(user: User) -> dict:
    """Generate authentication headers for a user"""
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(student: User) -> dict:
    return headers_for(student)


@pytest.fixture
def mentor_headers(mentor: User) -> dict:
    return headers_for(mentor)


@pytest.fixture
def hod_headers(hod: User) -> dict:
    return headers_for(hod)


@pytest.fixture
def security_headers(security_guard: User) -> dict:
    return headers_for(security_guard)


# ==================== Passes ====================

def pass_payload(**overrides) -> dict:
    """JSON body for POST /passes, leaving in an hour and back in five"""
    now = utcnow()
    payload = {
        'pass_type': 'local',
        'reason': 'Visiting the city library for project work',
        'destination': 'City Central Library',
        'exit_time': (now + timedelta(hours=1)).isoformat(),
        'return_time': (now + timedelta(hours=5)).isoformat(),
        'emergency_contact': '9876543210',
    }
    payload.update(overrides)
    return payload


async def create_gate_pass(
    db: AsyncSession,
    student: User,
    status: PassStatus = PassStatus.PENDING_MENTOR,
    **fields
) -> GatePass:
    """Insert a pass directly, bypassing the workflow"""
    now = utcnow()
    values = dict(
        student_id=student.id,
        mentor_id=student.mentor_id,
        department=student.department,
        pass_type=PassType.LOCAL,
        reason='Going home for the weekend',
        destination='Home',
        exit_time=now + timedelta(hours=1),
        return_time=now + timedelta(hours=6),
        status=status,
        mentor_decision=ApprovalDecision.PENDING,
        hod_decision=ApprovalDecision.PENDING,
        created_at=now,
        updated_at=now,
    )
    values.update(fields)
    gate_pass = GatePass(**values)
    db.add(gate_pass)
    await db.commit()
    await db.refresh(gate_pass)
    return gate_pass


@pytest.fixture
def make_pass(db_session: AsyncSession):
    """Factory fixture: await make_pass(student, PassStatus.APPROVED, qr_token=...)"""
    async def _make(student: User, status: PassStatus = PassStatus.PENDING_MENTOR, **fields) -> GatePass:
        return await create_gate_pass(db_session, student, status, **fields)
    return _make


@pytest.fixture
def new_pass_payload():
    return pass_payload


@pytest.fixture
def auth_headers_for():
    return headers_for


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory fixture: await make_user(UserRole.SECURITY, department=None)"""
    async def _make(role: UserRole, **fields) -> User:
        return await create_user(db_session, role, **fields)
    return _make


@pytest.fixture
def session_factory(db_session: AsyncSession):
    """Independent sessions on the test database, for concurrent writers"""
    return TestSessionLocal
