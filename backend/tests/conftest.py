"""
Pytest configuration and fixtures
Provides test database, test client, fake object storage and common test data
"""
import io
import os
import sys
import pytest
from typing import Generator, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# The app engine is created at import time; keep it off the MySQL default
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Add parent directory to path to import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app
from core.database import get_db
from core.security import create_access_token, hash_password
from models import Base, User, Video, Comment
from services.storage import StorageError, get_storage_service


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")

TEST_PASSWORD = "secret-password"


class FakeStorageService:
    """In-memory stand-in for StorageService"""

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_uploads = False
        self.fail_folders = set()

    def upload_image(self, file_data, filename, folder, content_type=None):
        if self.fail_uploads or folder in self.fail_folders:
            raise StorageError("Failed to upload file: storage offline")
        object_key = f"{folder}/{len(self.objects) + 1}-{filename}"
        self.objects[object_key] = file_data.read()
        return f"http://storage.test/images/{object_key}", object_key

    def delete_file(self, object_key):
        self.objects.pop(object_key, None)
        self.deleted.append(object_key)


@pytest.fixture(scope="session")
def test_engine():
    """
    Create test database engine for the entire test session
    """
    options = {}
    if TEST_DATABASE_URL.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

    engine = create_engine(TEST_DATABASE_URL, echo=False, **options)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for each test
    Endpoints commit, so every table is emptied afterwards
    """
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture
def fake_storage() -> FakeStorageService:
    return FakeStorageService()


@pytest.fixture(scope="function")
def client(test_db: Session, fake_storage: FakeStorageService) -> Generator[TestClient, None, None]:
    """
    Create FastAPI test client with test database and fake storage
    https base URL so secure auth cookies round-trip
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: fake_storage

    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()


def create_test_user_in_db(db: Session, username: str, email: str, full_name: str = "Test User") -> User:
    """Helper to create a user in the database"""
    user = User(
        username=username,
        email=email,
        full_name=full_name,
        avatar=f"http://storage.test/images/avatars/{username}.png",
        avatar_key=f"avatars/{username}.png",
        cover_image="",
        password=hash_password(TEST_PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_auth_header(user: User) -> dict:
    """Helper to create authorization header"""
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def image_file(name: str = "avatar.png") -> tuple:
    """Multipart file tuple for TestClient uploads"""
    return (name, io.BytesIO(b"\x89PNG fake image bytes"), "image/png")


@pytest.fixture
def test_user(test_db: Session) -> User:
    """
    Create a test user
    """
    return create_test_user_in_db(test_db, "testuser", "testuser@example.com", "Test User")


@pytest.fixture
def other_user(test_db: Session) -> User:
    """
    Create a second user for ownership checks
    """
    return create_test_user_in_db(test_db, "otheruser", "other@example.com", "Other User")


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return get_auth_header(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return get_auth_header(other_user)


@pytest.fixture
def test_video(test_db: Session, test_user: User) -> Video:
    """
    Create a test video owned by test_user
    """
    video = Video(
        video_file="http://storage.test/videos/test-video.mp4",
        thumbnail="http://storage.test/thumbnails/test-video.jpg",
        title="Test Video",
        description="A test video",
        duration=300,
        owner_id=test_user.id,
    )
    test_db.add(video)
    test_db.commit()
    test_db.refresh(video)
    return video


@pytest.fixture
def test_comment(test_db: Session, test_user: User, test_video: Video) -> Comment:
    """
    Create a comment by test_user on test_video
    """
    comment = Comment(content="First!", video_id=test_video.id, owner_id=test_user.id)
    test_db.add(comment)
    test_db.commit()
    test_db.refresh(comment)
    return comment


@pytest.fixture
def sample_comments(test_db: Session, test_user: User, other_user: User, test_video: Video) -> List[Comment]:
    """
    Create 12 comments on test_video alternating between the two users
    """
    comments = []
    for i in range(1, 13):
        owner = test_user if i % 2 else other_user
        comment = Comment(content=f"Comment {i}", video_id=test_video.id, owner_id=owner.id)
        test_db.add(comment)
        test_db.commit()
        comments.append(comment)

    for comment in comments:
        test_db.refresh(comment)

    return comments
