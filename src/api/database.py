"""
Database Module
===============

SQLAlchemy models for the churn source tables and read operations
against the external store.
"""

from typing import Dict, Optional

import pandas as pd
from sqlalchemy import (
    create_engine,
    text,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    String,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from loguru import logger

from config import get_config, DATA_DIR
from src.data import DataLoader


# Get configuration
config = get_config()
db_config = config.get("database", {})
table_names = db_config.get("tables", {})

# Database URL
DATABASE_URL = db_config.get("url") or f"sqlite:///{DATA_DIR}/churn_analytics.db"

# Create engine
engine = create_engine(
    DATABASE_URL,
    echo=db_config.get("echo", False),
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {}
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


class Account(Base):
    """One row per customer account."""

    __tablename__ = table_names.get("accounts", "saas_accounts")

    account_id = Column(String, primary_key=True)
    industry = Column(String, nullable=True, index=True)
    plan_tier = Column(String, nullable=True, index=True)
    signup_date = Column(Date, nullable=False)


class Subscription(Base):
    """Subscriptions and their monthly recurring revenue."""

    __tablename__ = table_names.get("subscriptions", "saas_subscriptions")

    subscription_id = Column(String, primary_key=True)
    account_id = Column(String, nullable=False, index=True)
    mrr_amount = Column(Float, nullable=True)


class ChurnEvent(Base):
    """Cancellation events; the source does not limit them to one per account."""

    __tablename__ = table_names.get("churn_events", "churn_events")

    churn_event_id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String, nullable=False, index=True)
    churn_date = Column(Date, nullable=True)
    reason_code = Column(String, nullable=True)
    refund_amount_usd = Column(Float, nullable=True)


class FeatureUsage(Base):
    """Daily feature usage counts per subscription."""

    __tablename__ = table_names.get("feature_usage", "feature_usage")

    usage_id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(String, nullable=False, index=True)
    account_id = Column(String, nullable=True, index=True)
    feature_name = Column(String, nullable=False)
    usage_date = Column(DateTime, nullable=False)
    usage_count = Column(Integer, nullable=True)


class SupportTicket(Base):
    """Support tickets raised by accounts."""

    __tablename__ = table_names.get("support_tickets", "support_tickets")

    ticket_id = Column(String, primary_key=True)
    account_id = Column(String, nullable=False, index=True)
    created_date = Column(DateTime, nullable=False)


SOURCE_MODELS = {
    "accounts": Account,
    "subscriptions": Subscription,
    "churn_events": ChurnEvent,
    "feature_usage": FeatureUsage,
    "support_tickets": SupportTicket,
}


def create_tables(bind: Optional[Engine] = None):
    """Create the source tables, for local development stores."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class DatabaseManager:
    """Manager class for reading the churn source tables."""

    def __init__(self, bind: Optional[Engine] = None, config: Optional[dict] = None):
        """
        Initialize DatabaseManager.

        Args:
            bind: Engine to read from; defaults to the configured engine
            config: Configuration dictionary
        """
        self.engine = bind or engine
        self.config = config or get_config()

    def load_tables(self) -> Dict[str, pd.DataFrame]:
        """
        Read all five source tables.

        Returns:
            Mapping of logical table name to DataFrame
        """
        names = {name: model.__tablename__ for name, model in SOURCE_MODELS.items()}
        loader = DataLoader(self.config)
        return loader.load_from_database(self.engine, table_names=names)

    def table_counts(self, db: Session) -> Dict[str, int]:
        """
        Count rows per source table.

        Args:
            db: Database session

        Returns:
            Mapping of logical table name to row count
        """
        return {name: db.query(model).count() for name, model in SOURCE_MODELS.items()}

    def check_connection(self) -> bool:
        """Return True if the store answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            return False


# Create global database manager instance
db_manager = DatabaseManager()
