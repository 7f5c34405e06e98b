"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from rhizome.graph.index import GraphIndex
from rhizome.models import Node
from rhizome.vault.loader import load_notes


@pytest.fixture
def fixture_vault_path() -> Path:
    """Path to the sample fixture vault."""
    return Path(__file__).parent / "fixtures" / "sample_vault"


@pytest.fixture
def fixture_nodes(fixture_vault_path: Path) -> list[Node]:
    """Load the sample fixture vault."""
    return load_notes(fixture_vault_path)


@pytest.fixture
def fixture_index(fixture_nodes: list[Node]) -> GraphIndex:
    """Index of the "work" workspace of the fixture vault."""
    return GraphIndex.build(fixture_nodes, workspace_id="work")
