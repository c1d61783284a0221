"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import csv
import os
import tempfile
from pathlib import Path
from typing import Callable, Generator, Iterable

import pytest

_TEST_DIR = Path(tempfile.mkdtemp(prefix="catalog-importer-tests-"))

# SQLite file database by default; set TEST_DATABASE_URL to run against PostgreSQL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_TEST_DIR / 'catalog.db'}")

# Settings are read once, so the environment must be in place before the package is imported
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["MEDIA_ROOT"] = str(_TEST_DIR / "media")
os.environ["FAILURE_REPORT_DIR"] = str(_TEST_DIR / "reports")

import httpx  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from catalog_importer.core.config import get_settings  # noqa: E402
from catalog_importer.core.db import SessionLocal, engine, session_scope  # noqa: E402
from catalog_importer.importing.image_fetcher import ImageFetcher  # noqa: E402
from catalog_importer.models import Base, CategoryNode  # noqa: E402
from catalog_importer.services.image_storage import ImageStorage  # noqa: E402

if engine.dialect.name == "sqlite":
    # Emit BEGIN ourselves so SAVEPOINTs work; writers queue on the lock.

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA busy_timeout = 30000")

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


FIELDNAMES = [
    "ProduktID",
    "DisplayName",
    "EAN",
    "ItemUnit",
    "Nettopris",
    "Bruttopris",
    "LangProduktBeskrivelse",
    "ProduktGruppe",
    "Varetekst1",
    "Varetekst2",
    "Synonyms",
    "ProduktGruppeTekst",
    "Weight",
    "SupName",
    "SupplierURL",
    "ProductURL",
    "PakkeAntal",
    "Billede",
    "Kategori1",
    "Kategori2",
    "Kategori3",
    "Kategori4",
    "Specifications",
    "SupplierProductNumber",
    "Brand",
]

IMAGE_URL = "http://images.test/hammer.jpg"
IMAGE_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


@pytest.fixture(scope="session")
def db_engine():
    """Create the schema once for the whole test session."""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> Generator[sessionmaker, None, None]:
    """Application session factory; every table is emptied after the test."""
    yield SessionLocal

    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Tests that run importers alongside must commit and stop using it first:
    every transaction holds the SQLite write lock.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def category_tree(session_factory) -> dict[str, int]:
    """Seed a small category tree and return node ids by path."""
    tree = {
        "Værktøj": {
            "Håndværktøj": {"Hamre": {"Klaphamre": {}, "Forhamre": {}}},
            "El-værktøj": {"Boremaskiner": {"Slagboremaskiner": {}}},
        },
        "Have": {
            "Redskaber": {"Skovle": {"Spadestik": {}}},
            # Two siblings with one name make this level ambiguous
            "Dublet": {"Spande": {"Murerspande": {}}},
        },
    }
    ids: dict[str, int] = {}

    def add(session: Session, children: dict, parent: CategoryNode | None, prefix: str) -> None:
        for name, grandchildren in children.items():
            node = CategoryNode(name=name, parent=parent)
            session.add(node)
            session.flush()
            path = f"{prefix}/{name}" if prefix else name
            ids[path] = node.id
            add(session, grandchildren, node, path)

    with session_scope(session_factory) as session:
        add(session, tree, None, "")
        have = session.get(CategoryNode, ids["Have"])
        session.add(CategoryNode(name="Dublet", parent=have))

    return ids


@pytest.fixture
def storage(tmp_path: Path) -> ImageStorage:
    return ImageStorage(tmp_path / "media")


@pytest.fixture
def image_routes() -> dict[str, httpx.Response | Exception]:
    """URL -> canned response (or exception to raise). Tests may add routes."""
    return {
        IMAGE_URL: httpx.Response(200, headers={"content-type": "image/jpeg"}, content=IMAGE_BYTES),
        "http://images.test/saw.png": httpx.Response(
            200, headers={"content-type": "image/png"}, content=b"\x89PNGfake"
        ),
        "http://images.test/missing.jpg": httpx.Response(404),
        "http://images.test/page": httpx.Response(
            200, headers={"content-type": "text/html; charset=utf-8"}, content=b"<html></html>"
        ),
        "http://images.test/empty.jpg": httpx.Response(200, headers={"content-type": "image/jpeg"}, content=b""),
    }


@pytest.fixture
def image_transport(image_routes) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        route = image_routes.get(str(request.url))
        if isinstance(route, Exception):
            raise route
        if route is None:
            return httpx.Response(404)
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    return httpx.MockTransport(handler)


@pytest.fixture
def fetcher(image_transport) -> Generator[ImageFetcher, None, None]:
    client = httpx.Client(transport=image_transport)
    yield ImageFetcher(client)
    client.close()


@pytest.fixture
def settings():
    return get_settings()


def build_row(**overrides: str) -> dict[str, str]:
    """Build a complete, importable catalog row."""
    row = {
        "ProduktID": "1001",
        "DisplayName": "Klaphammer Æblegrøn 500g",
        "EAN": "5701234567890",
        "ItemUnit": "stk",
        "Nettopris": "79,50",
        "Bruttopris": "129,95",
        "LangProduktBeskrivelse": "Solid hammer med skaft af ask",
        "ProduktGruppe": "H1",
        "Varetekst1": "Klaphammer",
        "Varetekst2": "500g",
        "Synonyms": "hammer",
        "ProduktGruppeTekst": "Hamre",
        "Weight": "0,65",
        "SupName": "Værktøjsgrossisten",
        "SupplierURL": "http://supplier.test",
        "ProductURL": "http://supplier.test/p/1001",
        "PakkeAntal": "1",
        "Billede": IMAGE_URL,
        "Kategori1": "Værktøj",
        "Kategori2": "Håndværktøj",
        "Kategori3": "Hamre",
        "Kategori4": "Klaphamre",
        "Specifications": "Vægt 500 g",
        "SupplierProductNumber": "VG-1001",
        "Brand": "Fiskars",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_row() -> Callable[..., dict[str, str]]:
    return build_row


@pytest.fixture
def write_catalog(tmp_path: Path) -> Callable[..., Path]:
    """Write rows as a Latin-1, semicolon separated catalog file."""

    def write(
        rows: Iterable[dict[str, str]],
        fieldnames: list[str] | None = None,
        name: str = "catalog.csv",
    ) -> Path:
        path = tmp_path / name
        with open(path, "w", encoding="iso-8859-1", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames or FIELDNAMES, delimiter=";", lineterminator="\r\n")
            writer.writeheader()
            writer.writerows(rows)
        return path

    return write

