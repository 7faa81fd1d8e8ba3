"""
Shared fixtures for CardGraph tests.

Graphs are built in memory; every test gets fresh stores and a fresh engine.
"""

import pytest

from cardgraph.config import Config
from cardgraph.core.graph_store.memory_store import InMemoryCardStore
from cardgraph.core.library.memory_library import InMemoryDocumentLibrary
from cardgraph.models.card import Card
from cardgraph.services.ancestor_collector import AncestorCollector
from cardgraph.services.context_engine import ContextEngine
from cardgraph.services.graph_resolver import GraphResolver

SKY_ANSWER = "The sky is blue because of Rayleigh scattering."


@pytest.fixture
def config() -> Config:
    """Default configuration (summarization off)."""
    return Config()


@pytest.fixture
def store() -> InMemoryCardStore:
    """Empty in-memory card store."""
    return InMemoryCardStore()


@pytest.fixture
def library() -> InMemoryDocumentLibrary:
    """Empty in-memory document library."""
    return InMemoryDocumentLibrary()


@pytest.fixture
def resolver(store) -> GraphResolver:
    return GraphResolver(store)


@pytest.fixture
def collector(resolver) -> AncestorCollector:
    return AncestorCollector(resolver)


@pytest.fixture
def engine(store, library, config) -> ContextEngine:
    """Engine over the shared store and library."""
    return ContextEngine(store=store, config=config, library=library)


@pytest.fixture
def chain_engine(engine) -> ContextEngine:
    """
    Linear chain A → B → C, each card generated once.

    Every card carries a saved fingerprint and nothing is stale.
    """
    engine.add_card(Card(id="A", prompt="What is light?"))
    engine.add_card(Card(id="B", prompt="Why is the sky blue?", parent_ids=["A"]))
    engine.add_card(Card(id="C", prompt="And sunsets?", parent_ids=["B"]))
    engine.commit_generation("A", "Light is electromagnetic radiation.")
    engine.commit_generation("B", SKY_ANSWER)
    engine.commit_generation("C", "Sunsets are red because blue light scatters away.")
    return engine
