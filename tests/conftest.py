import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from inventory_sync.config import Settings
from inventory_sync.database import build_engine, get_db, init_db
from inventory_sync.main import app
from inventory_sync.models.inventory_log import InventoryLog
from inventory_sync.schemas.product import ProductCreate
from inventory_sync.services import stock_service


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}", STATEMENT_TIMEOUT_MS=2000))
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    def _make(name="Test Product", reference=None, stock=0):
        return stock_service.create_product(db, ProductCreate(name=name, reference=reference, current_stock=stock))

    return _make


@pytest.fixture
def log_rows(db):
    """Logs of one product in insertion order, read fresh from the database."""

    def _rows(product_id):
        db.commit()  # end the read snapshot so writes from other sessions are visible
        return (
            db.query(InventoryLog)
            .filter(InventoryLog.product_id == product_id)
            .order_by(InventoryLog.id)
            .all()
        )

    return _rows
