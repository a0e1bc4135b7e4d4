"""
Pytest Configuration and Fixtures for the Netrunner engine tests
================================================================

Purpose
-------
Shared fixtures for the unit and integration suites: a frozen clock, a
scripted random source, the YAML-backed ConfigManager, an event recorder,
a fully wired engine over the in-memory store, and PostgreSQL testcontainer
fixtures for the SQL store.

Architecture Notes
------------------
- Unit tests run every service against `InMemoryStore` (fast, isolated)
- Integration tests run against a real PostgreSQL via testcontainers
- Fixtures follow scope hierarchy: session > function
- Seeded characters start with full pools and a checkpoint at "now", so
  no regeneration happens until a test advances the clock
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Dict, Generator, Optional, Sequence

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

import netrunner.database.models  # noqa: F401  (registers tables on Base.metadata)
from netrunner.core.config.manager import ConfigManager
from netrunner.core.database.base import Base
from netrunner.core.database.service import DatabaseService
from netrunner.core.event.bus import EventBus
from netrunner.core.logging.logger import get_logger
from netrunner.core.services.container import ServiceContainer
from netrunner.domain.enums import PoolName
from netrunner.domain.models.character import Attributes, Character, ClassBaseline
from netrunner.domain.models.equipment import AmplifierItem, HardwareItem, Loadout
from netrunner.domain.models.pools import PoolState
from netrunner.modules.stats.calculator import DerivedStatCalculator
from netrunner.store.memory import InMemoryStore
from tests.factories import DECKER, DEFAULT_ATTRIBUTES, EventRecorder, FrozenClock, ScriptedRandom

logger = get_logger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def config_manager() -> ConfigManager:
    """Balance config loaded from the repository's config/ directory."""
    return ConfigManager.from_directory(CONFIG_DIR)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(mocker, event_bus: EventBus) -> EventRecorder:
    return EventRecorder(mocker.spy(event_bus, "publish"))


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests that only assert on publish calls.

    Scope: function
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def engine(store, config_manager, event_bus, recorder, rng, clock) -> ServiceContainer:
    """Every engine service wired over the in-memory store."""
    container = ServiceContainer(store, config_manager, event_bus, rng=rng, clock=clock)
    container.initialize()
    return container


@pytest.fixture
def seed(store: InMemoryStore, clock: FrozenClock):
    """
    Seed a character with the decker baseline.

    Pools start at their derived maxima (load pools at zero) with the
    regeneration checkpoint at the current clock time.

        character = seed(7, hardware=make_hardware())
    """

    def _seed(
        character_id: int = 7,
        *,
        attributes: Attributes = DEFAULT_ATTRIBUTES,
        level: int = 1,
        experience: int = 0,
        unallocated_points: int = 0,
        hardware: Optional[HardwareItem] = None,
        amplifiers: Sequence[AmplifierItem] = (),
        baseline: ClassBaseline = DECKER,
        current: Optional[Dict[PoolName, int]] = None,
    ) -> Character:
        store.add_class_baseline(baseline)
        character = Character(
            character_id,
            class_id=baseline.class_id,
            attributes=attributes,
            level=level,
            experience=experience,
            unallocated_points=unallocated_points,
        )
        loadout = Loadout(character_id=character_id, hardware=hardware, amplifiers=list(amplifiers))
        stats = DerivedStatCalculator().calculate(character, baseline, loadout)

        pools = PoolState(character_id, maxima=dict(stats.maxima), last_regeneration=clock())
        pools.fill()
        for pool, value in (current or {}).items():
            pools.set_current(pool, value)
        pools.stat_snapshot = stats.to_snapshot()

        store.add_character(character, pools)
        store.set_loadout(loadout)
        return character

    return _seed


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()
    logger.info("PostgreSQL testcontainer started")

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def database(postgres_container: PostgresContainer) -> AsyncGenerator[DatabaseService, None]:
    """
    DatabaseService with a fresh schema per test.

    Scope: function (tables are created before and dropped after each test)
    """
    service = DatabaseService(postgres_container.get_connection_url(), use_null_pool=True, echo=False)
    await service.initialize()
    async with service.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield service

    async with service.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await service.shutdown()
