"""Pytest configuration for order insights tests

WHAT: Shared fixtures for the ingestion routes and the processing function
WHY: Consistent environment, database isolation, and fakes for OpenAI and
     outbound HTTP so no test touches the network
REFERENCES:
    - order_insights/main.py: FastAPI application
    - order_insights/database.py: Database configuration
    - order_insights/deps.py: Settings and signed-body dependency
    - order_insights/pipeline/handler.py: Processing function
"""

import os
from types import SimpleNamespace
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Ensure backend is in path
import sys
from pathlib import Path
BACKEND_ROOT = Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Set test environment before any order_insights import reads it
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("SENTRY_DSN", None)
os.environ.pop("LANGFUSE_PUBLIC_KEY", None)

from order_insights.tests.helpers import APP_URL, TEST_SECRET, VALID_AI_CONTENT, FakeIngestionService  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine."""
    # One shared connection: TestClient runs sync routes on a worker thread
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    from order_insights.database import Base
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create test database session with rollback."""
    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )

    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def service_settings():
    from order_insights.deps import Settings
    return Settings(HMAC_SECRET=TEST_SECRET, BACKEND_CORS_ORIGINS="http://localhost:3000")


@pytest.fixture
def app(test_db_session, service_settings):
    """Create FastAPI test application."""
    from order_insights.main import create_app
    from order_insights.database import get_db
    from order_insights.deps import get_settings

    test_app = create_app()

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_settings] = lambda: service_settings

    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)


# ============================================================================
# Processing Function Fixtures
# ============================================================================

@pytest.fixture
def pipeline_settings():
    from order_insights.pipeline.config import PipelineSettings
    return PipelineSettings(
        OPENAI_API_KEY="test-api-key",
        OPENAI_MODEL="gpt-3.5-turbo",
        APP_URL=APP_URL + "/",
        HMAC_SECRET=TEST_SECRET,
        SHOPIFY_SHOP_DOMAIN=None,
        INCLUDE_CUSTOMER_NAME=False,
        FIRST_ORDER_WINDOW_SECONDS=60,
    )


@pytest.fixture
def fake_openai() -> Callable[..., SimpleNamespace]:
    """Factory for an OpenAI stand-in exposing chat.completions.create.

    The returned object records every call's kwargs in `.calls`.
    """

    def factory(content: Optional[str] = VALID_AI_CONTENT, error: Optional[Exception] = None, choices: bool = True):
        calls: List[Dict[str, Any]] = []

        def create(**kwargs):
            calls.append(kwargs)
            if error is not None:
                raise error
            message = SimpleNamespace(content=content)
            return SimpleNamespace(
                choices=[SimpleNamespace(message=message)] if choices else [],
                usage=SimpleNamespace(prompt_tokens=120, completion_tokens=80, total_tokens=200),
            )

        return SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
            calls=calls,
        )

    return factory


@pytest.fixture
def ingestion() -> FakeIngestionService:
    return FakeIngestionService()


@pytest.fixture
def http_client(ingestion) -> Generator[httpx.Client, None, None]:
    with httpx.Client(transport=httpx.MockTransport(ingestion)) as client:
        yield client


@pytest.fixture
def delivery(http_client, pipeline_settings):
    from order_insights.pipeline.http_client import DeliveryClient
    return DeliveryClient(http_client, base_url=pipeline_settings.APP_URL, secret=pipeline_settings.HMAC_SECRET)

