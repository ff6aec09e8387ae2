"""Shared fixtures: a throwaway SQLite database per test and an in-memory object store."""

import io
import os
import tempfile

# app.db reads DATABASE_URL at import time
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="catalog-tests-"), "app.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app import models  # noqa: F401
from app.db import Base, make_engine
from app.schemas import ImageFile
from app.service import CatalogService
from app.storage_client import ObjectStoreError, StoredObject


class FakeObjectStore:
    """Records every call; uploads/deletes fail for the names listed in fail_*."""

    def __init__(self):
        self.objects = {}
        self.uploads = []
        self.deletes = []
        self.fail_upload_on = set()
        self.fail_delete_on = set()
        self._counter = 0

    def upload(self, stream, filename, content_type=None):
        self.uploads.append(filename)
        if filename in self.fail_upload_on:
            raise ObjectStoreError(f"upload refused for {filename}")
        self._counter += 1
        storage_id = f"img-{self._counter}"
        self.objects[storage_id] = stream.read()
        return StoredObject(url=f"https://cdn.test/{storage_id}", storage_id=storage_id)

    def delete(self, storage_id):
        self.deletes.append(storage_id)
        if storage_id in self.fail_delete_on:
            raise ObjectStoreError(f"delete refused for {storage_id}")
        return self.objects.pop(storage_id, None) is not None

    def put(self, storage_id, content=b"x"):
        self.objects[storage_id] = content

    @property
    def call_count(self):
        return len(self.uploads) + len(self.deletes)


def make_image(name="shirt.jpg", content=b"\xff\xd8\xff fake jpeg", content_type="image/jpeg"):
    return ImageFile(filename=name, content_type=content_type, stream=io.BytesIO(content), size=len(content))


SHIRT = {
    "product_name": "Shirt A",
    "product_price": "100000",
    "product_description": "Cotton shirt",
    "category": "tops",
    "colors": ["red", "blue"],
    "sizes": ["M", "L"],
    "stock": "5",
}


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def leaks():
    return []


@pytest.fixture
def service(db, store, leaks):
    return CatalogService(db, store, on_leak=lambda storage_id, err: leaks.append(storage_id))


@pytest.fixture
def client(session_factory, store):
    from app.db import get_db
    from app.deps import get_object_store
    from app.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_object_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
