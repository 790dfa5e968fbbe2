import random

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from landing_ab.core.db import get_db
from landing_ab.main import create_app
from landing_ab.models.orm.base import Base
from landing_ab.models.orm import event  # noqa: F401
from landing_ab.models.schemas.catalog import DEFAULT_CATALOG
from landing_ab.services.assignment_service import AssignmentService
from landing_ab.services.emitter_service import EventEmitter
from landing_ab.services.router_service import RequestRouter

COLLECTOR_URL = "http://collector.test/api/analytics"


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stands in for requests.Session; records posts or fails on demand."""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code)

    def close(self):
        pass


@pytest.fixture
def catalog():
    return DEFAULT_CATALOG


@pytest.fixture
def assignment_service(catalog):
    return AssignmentService(catalog, rng=random.Random(1234))


@pytest.fixture
def request_router(assignment_service):
    return RequestRouter(assignment_service)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def emitter(fake_session):
    emitter = EventEmitter(COLLECTOR_URL, session=fake_session)
    yield emitter
    emitter.close()


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def app(catalog, emitter, db_session_factory):
    app = create_app(catalog=catalog, rng=random.Random(99), event_emitter=emitter)

    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app, follow_redirects=False)
