import os

# Point settings at a throwaway database before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["ADMIN_SECRET"] = "test-secret"
os.environ["SITE_URL"] = "https://luxe.test"
os.environ["LLM_API_KEY"] = "dummy_key"

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.api.deps import get_cache, get_llm_client
from app.cache import MemoryCacheStore
from app.core.db import engine, init_db
from app.main import app
from app.tests.utils import FakeLLM


@pytest.fixture
def db() -> Generator[Session, None, None]:
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        init_db(session)
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def cache() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def client(db: Session, cache: MemoryCacheStore, fake_llm: FakeLLM) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Secret": "test-secret"}
