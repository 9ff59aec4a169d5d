# tests/conftest.py
"""Shared fixtures: in-memory SQLite per test, seeded users, photo bucket in tmp_path."""

import sys
import os
import tempfile
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# must be set before intake.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_ORDER_URL"] = ""
os.environ["SERVICE_ORDER_API_KEY"] = ""
os.environ["LOG_DIR"] = ""
os.environ["PHOTO_STORAGE_DIR"] = os.path.join(tempfile.gettempdir(), "intake-test-photos")

import uuid
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from intake.database import create_tables
from intake.models.auth import AuthUser
from intake.models.client import Client
from intake.models.profile import Profile
from intake.models.user_role import UserRole
from intake.services.auth_service import hash_password, load_context
from intake.services.photo_storage import PhotoStorage
from intake.services.query_cache import query_cache
from intake.utils.constants import AppRole

PASSWORD = "s3cret-pass"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def clean_cache():
    query_cache.clear()
    yield
    query_cache.clear()


@pytest.fixture
def storage(tmp_path):
    return PhotoStorage(str(tmp_path / "photos"), "/photos")


def _make_user(db, username, role=AppRole.VIEWER, can_edit=False, can_checkin=False, can_checkout=False):
    user_id = str(uuid.uuid4())
    email = f"{username}@shop.test"
    db.add(AuthUser(id=user_id, email=email, password_hash=hash_password(PASSWORD)))
    db.add(Profile(id=user_id, email=email, username=username, full_name=username.title()))
    db.flush()
    db.add(UserRole(user_id=user_id, role=role, can_view=True, can_edit=can_edit,
                    can_checkin=can_checkin, can_checkout=can_checkout))
    db.commit()
    return load_context(db, user_id)


@pytest.fixture
def admin(db):
    return _make_user(db, "admin", AppRole.ADMIN)


@pytest.fixture
def manager(db):
    """Edits, checks in and checks out, but is not an admin."""
    return _make_user(db, "manager", AppRole.MANAGER, can_edit=True, can_checkin=True, can_checkout=True)


@pytest.fixture
def viewer(db):
    return _make_user(db, "viewer", AppRole.VIEWER)


@pytest.fixture
def client_row(db):
    client = Client(person_type="juridica", name="Transportes Alfa Ltda", cnpj="12.345.678/0001-90",
                    phone="(11) 98765-4321")
    db.add(client)
    db.commit()
    return client


@pytest.fixture
def make_user(db):
    def factory(username, role=AppRole.VIEWER, can_edit=False, can_checkin=False, can_checkout=False):
        return _make_user(db, username, role, can_edit, can_checkin, can_checkout)
    return factory
