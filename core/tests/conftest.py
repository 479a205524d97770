"""Shared fixtures for sequencer tests."""

import logging

import pytest

from sequencer.graph import DecisionNode, NodeIdStrategy, SimpleNode
from sequencer.observability import clear_trace_context


@pytest.fixture(autouse=True)
def clean_trace_context():
    clear_trace_context()
    yield
    clear_trace_context()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Never read the developer's real ~/.sequencer/configuration.json."""
    monkeypatch.setattr(
        "sequencer.config.SEQUENCER_CONFIG_FILE", tmp_path / "no-config" / "configuration.json"
    )
    for var in (
        "SEQUENCER_LOG_LEVEL",
        "SEQUENCER_LOG_FORMAT",
        "SEQUENCER_MAX_STEPS",
        "SEQUENCER_CONFIRM_DECISIONS",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def visited():
    """Records node ids in the order their actions ran."""
    return []


@pytest.fixture
def scenario_nodes(visited):
    """node1 -> node2 -> decision1 -> [node3 -> node6 | node4 | node5], wired leaves first."""

    def record(ctx):
        visited.append(ctx.node_id)

    node6 = SimpleNode("node6", action=record)
    node5 = SimpleNode("node5", action=record)
    node4 = SimpleNode("node4", action=record)
    node3 = SimpleNode("node3", node6, action=record)
    decision1 = DecisionNode("decision1", [node3, node4, node5], NodeIdStrategy("node4"))
    node2 = SimpleNode("node2", decision1, action=record)
    node1 = SimpleNode("node1", node2, action=record)
    return {n.id: n for n in (node1, node2, decision1, node3, node4, node5, node6)}


@pytest.fixture
def restore_root_logger():
    """configure_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
