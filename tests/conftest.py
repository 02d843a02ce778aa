from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import planner.services.live as live_module
from planner.core.db import Base, get_db
from planner.main import app
from planner.services.live import LiveQueryHub
from planner.services.storage import BlobStorage, get_storage
from planner.services.store import EntityStore


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def hub(session_factory, monkeypatch) -> LiveQueryHub:
    hub = LiveQueryHub(session_factory)
    monkeypatch.setattr(live_module, "_hub", hub)
    return hub


@pytest.fixture()
def store(session_factory, hub) -> Generator[EntityStore, None, None]:
    db = session_factory()
    try:
        yield EntityStore(db, hub=hub)
    finally:
        db.close()


@pytest.fixture()
def storage(tmp_path) -> BlobStorage:
    return BlobStorage(tmp_path / "blobs", "test-secret", upload_ttl=60, download_ttl=60)


@pytest.fixture()
def client(session_factory, hub, storage) -> Generator[TestClient, None, None]:
    def override_get_db():
        test_db = session_factory()
        try:
            yield test_db
        finally:
            test_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def owner(client) -> TestClient:
    response = client.post("/session", data={"user_id": "user_a"})
    assert response.status_code == 200
    return client


@pytest.fixture()
def hierarchy(store):
    """Two projects; the first has two areas holding tasks, notes and resources."""
    with store.transaction():
        p1 = store.insert("projects", user_id="user_a", name="Renovation")
        p2 = store.insert("projects", user_id="user_a", name="Garden")
        a1 = store.insert("areas", user_id="user_a", project_id=p1.id, name="Kitchen")
        a2 = store.insert("areas", user_id="user_a", project_id=p1.id, name="Bath")
        b1 = store.insert("areas", user_id="user_a", project_id=p2.id, name="Beds")
        for area in (a1, a1, a2, b1):
            store.insert("tasks", user_id="user_a", project_id=area.project_id, area_id=area.id, title=f"Task in {area.name}")
        store.insert("notes", user_id="user_a", project_id=p1.id, area_id=a1.id, title="Kitchen note")
        store.insert("notes", user_id="user_a", project_id=p1.id, title="Project note")
        store.insert("notes", user_id="user_a", project_id=p2.id, area_id=b1.id, title="Beds note")
        store.insert("resources", user_id="user_a", project_id=p1.id, area_id=a2.id, title="Bath catalogue")
        store.insert("resources", user_id="user_a", project_id=p1.id, title="Contractor list")
        store.insert("resources", user_id="user_a", project_id=p2.id, title="Seed shop")
    return {"p1": p1.id, "p2": p2.id, "a1": a1.id, "a2": a2.id, "b1": b1.id}
