# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from client_crud.main import app
from client_crud.core.database import Base, get_db
from client_crud.models.client import Client


# --------------------------------------------------------------------
# DB SQLite en mémoire pour les tests
# --------------------------------------------------------------------
# StaticPool: une seule connexion partagée entre le thread de test et le
# threadpool de FastAPI (sinon chaque thread verrait une base vide)
engine = create_engine(
    "sqlite:///:memory:",
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, future=True
)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Créer et détruire les tables pour toute la session de tests"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session():
    """Fournit une session DB propre pour chaque test."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.query(Client).delete()
        db.commit()
        db.close()


@pytest.fixture
def sofia():
    """Client de référence utilisé dans les scénarios."""
    return Client(
        name="Sofia Arroyos",
        email="sofiaarroyos@bit.com",
        phone="3215673499",
        address="Calle 123 #12-43",
        city="Buenos Aires",
    )


# --------------------------------------------------------------------
# Fournir un client FastAPI avec la DB de test
# --------------------------------------------------------------------
@pytest.fixture
def client(session):
    """Client API pour les tests d'intégration."""
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
