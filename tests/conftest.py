"""
Pytest configuration and shared fixtures for QT miner tests.

This module provides:
- In-memory datasets (discrete, mixed)
- Temporary SQLite database with sample tables
- Settings reset between tests
"""

import os

import pytest
from sqlalchemy import (
    Column,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
)

# Set test environment variables
os.environ["TESTING"] = "true"
os.environ["LOG_LEVEL"] = "DEBUG"


PLAYTENNIS_ROWS = [
    ("sunny", 30.3, "high", "weak", "no"),
    ("sunny", 30.3, "high", "strong", "no"),
    ("overcast", 30.0, "high", "weak", "yes"),
    ("rain", 13.0, "high", "weak", "yes"),
    ("rain", 0.0, "normal", "weak", "yes"),
    ("rain", 0.0, "normal", "strong", "no"),
    ("overcast", 0.1, "normal", "strong", "yes"),
    ("sunny", 13.0, "high", "weak", "no"),
    ("sunny", 0.1, "normal", "weak", "yes"),
    ("rain", 12.0, "normal", "weak", "yes"),
    ("sunny", 12.5, "normal", "strong", "yes"),
    ("overcast", 12.5, "high", "strong", "yes"),
    ("overcast", 29.21, "normal", "weak", "yes"),
    ("rain", 12.5, "high", "strong", "no"),
]

PLAYTENNIS_COLUMNS = ["outlook", "temperature", "humidity", "wind", "play"]


# =============================================================================
# Dataset Fixtures
# =============================================================================

@pytest.fixture
def discrete_data():
    """
    Two obvious groups over three discrete attributes.

    Rows 0-2 share (a, x, p) except for one value; rows 3-5 share (b, y, q).
    """
    from qtminer.data.dataset import Data

    rows = [
        ("a", "x", "p"),
        ("a", "x", "q"),
        ("a", "y", "p"),
        ("b", "y", "q"),
        ("b", "y", "p"),
        ("b", "x", "q"),
    ]
    return Data.from_rows(["c1", "c2", "c3"], rows)


@pytest.fixture
def mixed_data():
    """Mixed discrete/continuous dataset with unique discrete keys."""
    from qtminer.data.dataset import Data

    rows = [
        ("r1", 0.0),
        ("r2", 2.5),
        ("r3", 5.0),
        ("r4", 7.5),
        ("r5", 10.0),
    ]
    return Data.from_rows(["key", "value"], rows)


@pytest.fixture
def playtennis_data():
    """The classic play-tennis dataset with a numeric temperature."""
    from qtminer.data.dataset import Data

    return Data.from_rows(PLAYTENNIS_COLUMNS, PLAYTENNIS_ROWS)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def sqlite_url(tmp_path):
    """
    SQLite database file holding:
    - playtennis: sample table
    - emptytable: no rows
    - nulltable: a NULL cell
    - blobtable: no supported column
    """
    url = f"sqlite:///{tmp_path / 'qtminer_test.db'}"
    engine = create_engine(url)
    metadata = MetaData()

    playtennis = Table(
        "playtennis",
        metadata,
        Column("outlook", String(10)),
        Column("temperature", Float),
        Column("humidity", String(10)),
        Column("wind", String(10)),
        Column("play", String(10)),
    )
    Table("emptytable", metadata, Column("name", String(10)), Column("score", Integer))
    nulltable = Table("nulltable", metadata, Column("name", String(10)), Column("score", Integer))
    Table("blobtable", metadata, Column("payload", LargeBinary))

    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(
            playtennis.insert(),
            [dict(zip(PLAYTENNIS_COLUMNS, row)) for row in PLAYTENNIS_ROWS],
        )
        # Duplicate row: distinct rows only are clustered.
        conn.execute(playtennis.insert(), [dict(zip(PLAYTENNIS_COLUMNS, PLAYTENNIS_ROWS[0]))])
        conn.execute(
            nulltable.insert(),
            [{"name": "alpha", "score": 1}, {"name": None, "score": 2}],
        )
    engine.dispose()

    return url


@pytest.fixture
def database_settings(sqlite_url):
    """Database settings pointing at the temporary SQLite file."""
    from qtminer.config.settings_loader import DatabaseSettings

    return DatabaseSettings(url=sqlite_url, connect_retries=1, retry_delay=0.0)


@pytest.fixture
def db(database_settings):
    """Open DbAccess on the temporary database."""
    from qtminer.database.db_access import DbAccess

    access = DbAccess(settings=database_settings)
    access.init_connection()
    yield access
    access.close_connection()


@pytest.fixture
def config_file(tmp_path, sqlite_url):
    """Settings YAML for CLI runs against the temporary database."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        "clustering:\n"
        "  ordering: centroid\n"
        "database:\n"
        f"  url: {sqlite_url}\n"
        "  connect_retries: 1\n"
        "  retry_delay: 0.0\n"
        "storage:\n"
        f"  output_dir: {tmp_path / 'clusters'}\n"
        "logging:\n"
        "  level: WARNING\n"
    )
    return path


# =============================================================================
# Cleanup
# =============================================================================

@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings around each test."""
    from qtminer.config.settings_loader import ConfigManager

    ConfigManager._settings = None
    yield
    ConfigManager._settings = None


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests for full workflows"
    )
