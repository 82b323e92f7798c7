import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import reviewplates.models  # noqa: F401
from reviewplates.config import settings
from reviewplates.db.base import Base
from reviewplates.db.session import engine as app_engine
from reviewplates.db.session import get_db
from reviewplates.dependencies import get_notification_dispatcher
from reviewplates.integrations.mailer import NoopMailer
from reviewplates.main import app
from reviewplates.observability import metrics_store
from reviewplates.services.notifications import NotificationDispatcher

TEST_WEBHOOK_SECRET = "shpss_test_webhook_secret_0123456789"


@pytest.fixture(scope="session", autouse=True)
def setup_test_schema():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield
    Base.metadata.drop_all(bind=app_engine)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield


@pytest.fixture(autouse=True)
def reset_metrics_store():
    metrics_store.reset()
    yield


@pytest.fixture(scope="session", autouse=True)
def enable_testing_mode():
    original = settings.testing
    settings.testing = True
    yield
    settings.testing = original


@pytest.fixture(autouse=True)
def webhook_secret():
    original_secret = settings.shopify_webhook_secret
    original_verify = settings.shopify_webhook_verify_signature
    settings.shopify_webhook_secret = TEST_WEBHOOK_SECRET
    settings.shopify_webhook_verify_signature = True
    yield TEST_WEBHOOK_SECRET
    settings.shopify_webhook_secret = original_secret
    settings.shopify_webhook_verify_signature = original_verify


@pytest.fixture
def db_session():
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def mailer():
    return NoopMailer()


@pytest.fixture
def notification_dispatcher(mailer):
    return NotificationDispatcher(
        mailer=mailer,
        recipient="ops@example.com",
        base_url="https://plates.example.com",
    )


@pytest.fixture
def client(db_session, notification_dispatcher):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db_session_lock = threading.Lock()

    def override_get_db():
        if db_session_lock.acquire(blocking=False):
            try:
                yield db_session
            finally:
                db_session_lock.release()
            return

        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: notification_dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
