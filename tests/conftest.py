"""Pytest configuration and fixtures

Provides:
- db: session on a fresh in-memory SQLite database
- client: TestClient with get_db bound to that session
- admin / editor / viewer: users; auth_headers(user) builds their bearer header
- enable_integration: publishes and registers an integration
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import enable_sqlite_foreign_keys, get_db, import_models
from app.core.db_base import Base
from app.core.security import create_access_token
from app.main import app as fastapi_app
from app.models.integration import IntegrationConfig
from app.models.user import User
from app.sync.hooks import field_change_hooks
from app.sync.integrations import integration_registry


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    import_models()
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def isolated_sync_registries():
    """Integration handlers and hooks are process-wide; restore them after each test"""
    integrations = dict(integration_registry._integrations)
    hooks = {object_type: list(items) for object_type, items in field_change_hooks._hooks.items()}
    yield
    integration_registry._integrations.clear()
    integration_registry._integrations.update(integrations)
    field_change_hooks._hooks.clear()
    field_change_hooks._hooks.update(hooks)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


def _make_user(db, username, is_admin=False, can_edit=False):
    user = User(username=username, is_admin=is_admin, can_edit=can_edit)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(subject=user.username)}"}

    return _headers


@pytest.fixture
def admin(db):
    return _make_user(db, "admin", is_admin=True, can_edit=True)


@pytest.fixture
def editor(db):
    return _make_user(db, "editor", can_edit=True)


@pytest.fixture
def viewer(db):
    return _make_user(db, "viewer")


@pytest.fixture
def enable_integration(db):
    def _enable(name, objects=("contact", "company"), register=True):
        if register:
            integration_registry.register(name, objects)
        config = IntegrationConfig(
            name=name, is_published=True, sync_enabled=True, sync_objects=list(objects)
        )
        db.add(config)
        db.commit()
        return config

    return _enable
