"""Pytest fixtures for testing"""

import uuid
import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from studio_core.api.main import create_app
from studio_core.domain.exceptions import StorageError
from studio_core.domain.models import ClassGroup, PlanType, Student
from studio_core.infrastructure.database.models import Base
from studio_core.infrastructure.database.repositories import RecordStore
from studio_core.infrastructure.database.session import get_db
from studio_core.services.studio import Studio, open_studio


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FlakyStore(RecordStore):
    """Record store that rejects chosen calls, to exercise failure paths"""

    def __init__(self, db: Session):
        super().__init__(db)
        self.fail_calls: set[tuple[str, str]] = set()  # (action, entity)
        self.fail_ids: set[uuid.UUID] = set()

    def _check(self, action: str, entity: str, record_id: uuid.UUID | None = None) -> None:
        if (action, entity) in self.fail_calls or (record_id is not None and record_id in self.fail_ids):
            raise StorageError(f"simulated {action} failure on {entity}")

    def insert(self, entity, fields):
        self._check("insert", entity)
        return super().insert(entity, fields)

    def insert_many(self, entity, rows):
        self._check("insert_many", entity)
        return super().insert_many(entity, rows)

    def update(self, entity, record_id, fields):
        self._check("update", entity, record_id)
        return super().update(entity, record_id, fields)

    def delete(self, entity, record_id):
        self._check("delete", entity, record_id)
        return super().delete(entity, record_id)

    def delete_where(self, entity, filters):
        self._check("delete_where", entity)
        return super().delete_where(entity, filters)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db: Session) -> FlakyStore:
    return FlakyStore(db)


@pytest.fixture
def studio(store: FlakyStore) -> Studio:
    """Services over an empty projection"""
    return open_studio(store)


@pytest.fixture
def monday_class(studio: Studio) -> ClassGroup:
    return studio.roster.add_class({"name": "Ceramics Mon", "day_of_week": 1, "time": "14:00", "activities": ["ceramics"]})


@pytest.fixture
def wednesday_class(studio: Studio) -> ClassGroup:
    return studio.roster.add_class({"name": "Painting Wed", "day_of_week": 3, "time": "15:30", "activities": ["painting"]})


@pytest.fixture
def alice(studio: Studio, monday_class: ClassGroup) -> Student:
    """Once-a-week student whose home class meets on Mondays"""
    result = studio.roster.enroll_student(
        {"name": "Alice", "class_id": monday_class.id, "monthly_fee": Decimal("150.00")},
        generate_payments=False,
    )
    return result.student


@pytest.fixture
def bea(studio: Studio, monday_class: ClassGroup, wednesday_class: ClassGroup) -> Student:
    """Twice-a-week student attending Monday and Wednesday"""
    result = studio.roster.enroll_student(
        {
            "name": "Bea",
            "class_id": monday_class.id,
            "class_id_2": wednesday_class.id,
            "plan": PlanType.TWICE_A_WEEK,
        },
        generate_payments=False,
    )
    return result.student


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
