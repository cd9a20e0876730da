import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.api.deps import get_db
from backend.app.db.base import Base
from backend.app.db.models import models_v1  # noqa: F401  (tables)
from backend.app.db.models.core_types import CushionSize, StoreName
from backend.app.schemas.catalog import ColorIn, ProductCreate, VariationIn
from backend.services.catalog import add_color, create_product

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+pysqlite://")


@pytest.fixture(scope="function")
def engine():
    """
    Base isolée par test.

    SQLite en mémoire + StaticPool : une seule connexion partagée,
    donc le schéma créé ici est visible par la session ET par le TestClient.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        eng = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        eng = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Session:
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session):
    from backend.app.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def vocabulary(db_session):
    for name, hex_code in (
        ("Verde", "#008000"),
        ("Azul", "#0000FF"),
        ("Azul Marinho", "#000080"),
        ("Rosa", "#FFC0CB"),
    ):
        add_color(db_session, name, hex_code)
    db_session.commit()


@pytest.fixture
def make_product(db_session):
    """Produit 45x45 (capa 35 / cheia 45) avec le stock donné par magasin."""

    def _make(name="Lisa", color=("Verde", "#008000"), teca=0, ione=0, **extra):
        payload = ProductCreate(
            name=name,
            brand="Karsten",
            category="Lisa",
            colors=[ColorIn(name=color[0], hex=color[1])],
            variations=[
                VariationIn(
                    size=CushionSize.square_45,
                    price_cover=35,
                    price_full=45,
                    stock={StoreName.teca: teca, StoreName.ione: ione},
                )
            ],
            **extra,
        )
        p = create_product(db_session, payload)
        db_session.commit()
        return p

    return _make
