"""
Shared fixtures: an in-memory store with one initialized world and two nations.
"""

import pytest

from strategy_turns.models import Nation, NationResources, Region
from strategy_turns.systems.store import StrategyStore
from strategy_turns.systems.turn_coordinator import TurnCoordinator
from strategy_turns.tools.registry import build_registry


WORLD = "w1"


@pytest.fixture
def store() -> StrategyStore:
    return StrategyStore()


@pytest.fixture
def coordinator(store) -> TurnCoordinator:
    return TurnCoordinator(store)


@pytest.fixture
def nation_a(store) -> Nation:
    """Aldoria: the stronger of the two starting nations."""
    return store.add_nation(Nation(
        id="nation-a",
        world_id=WORLD,
        name="Aldoria",
        leader="Queen Maren",
        gdp=1000,
        resources=NationResources(food=100, metal=50, oil=10),
    ))


@pytest.fixture
def nation_b(store) -> Nation:
    return store.add_nation(Nation(
        id="nation-b",
        world_id=WORLD,
        name="Brevik",
        leader="Chief Orm",
        gdp=900,
        resources=NationResources(food=100, metal=50, oil=10),
    ))


@pytest.fixture
def region(store) -> Region:
    return store.add_region(Region(id="r1", world_id=WORLD, name="Greenvale"))


@pytest.fixture
def world(coordinator, nation_a, nation_b, region):
    """Initialized world w1 with Aldoria, Brevik and an unowned region."""
    coordinator.init(WORLD)
    return WORLD


@pytest.fixture
def registry(coordinator, store):
    return build_registry(coordinator, store)
