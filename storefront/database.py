"""Database connection and session management."""
from decimal import Decimal
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator
import logging

from storefront.config import (
    DATABASE_URL,
    DB_MAX_OVERFLOW,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_STATEMENT_TIMEOUT_MS,
    SEED_DATA,
)
from storefront.models import Base, Product, User

logger = logging.getLogger(__name__)


def _configure_sqlite(engine: Engine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two transactions
    hold shared locks and then deadlock on upgrade. Emitting BEGIN IMMEDIATE
    ourselves serializes writers instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str = DATABASE_URL) -> Engine:
    """
    Create an engine backed by a bounded connection pool.

    Args:
        url: Database connection string

    Returns:
        Configured engine
    """
    pool_options = dict(
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=DB_POOL_TIMEOUT,  # Max wait for a free connection
    )

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": DB_POOL_TIMEOUT},
            **pool_options
        )
        _configure_sqlite(engine)
        return engine

    connect_args = {}
    if url.startswith("postgresql"):
        connect_args["options"] = f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}"
    return create_engine(url, connect_args=connect_args, **pool_options)


engine = create_db_engine()

# Objects stay readable after commit so results can be built once the scope closes
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(seed: bool = SEED_DATA) -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    if not seed:
        return

    db = SessionLocal()
    try:
        if db.query(Product).count() == 0:
            users = [
                User(username="alice", email="alice@example.com"),
                User(username="bob", email="bob@example.com"),
                User(username="carol", email="carol@example.com"),
            ]
            products = [
                Product(name="Laptop", price=Decimal("999.99"), stock_quantity=50, category="Electronics"),
                Product(name="Smartphone", price=Decimal("599.99"), stock_quantity=100, category="Electronics"),
                Product(name="Headphones", price=Decimal("99.99"), stock_quantity=200, category="Electronics"),
                Product(name="Desk Chair", price=Decimal("199.99"), stock_quantity=30, category="Furniture"),
                Product(name="Monitor", price=Decimal("299.99"), stock_quantity=75, category="Electronics"),
                Product(name="Keyboard", price=Decimal("79.99"), stock_quantity=150, category="Electronics"),
                Product(name="Mouse", price=Decimal("29.99"), stock_quantity=300, category="Electronics"),
                Product(name="Webcam", price=Decimal("89.99"), stock_quantity=100, category="Electronics"),
            ]
            db.add_all(users + products)
            db.commit()
            logger.info("Seeded database with sample users and products")
    finally:
        db.close()
