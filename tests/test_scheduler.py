"""
Tests for layered topological scheduling and cycle detection.
"""

import random

import pytest

from dappforge.errors import CyclicDependencyError
from dappforge.services.graph_builder import DependencyGraph, build_dependency_graph
from dappforge.services.scheduler import find_minimal_cycle, schedule

from helpers import make_blueprint, make_edge, make_node, make_registry, mock_plugin


@pytest.fixture
def registry():
    return make_registry(mock_plugin("step"))


def graph_for(registry, node_ids, edges) -> DependencyGraph:
    blueprint = make_blueprint(
        [make_node(nid, "step") for nid in node_ids],
        [make_edge(u, v) for u, v in edges],
    )
    return build_dependency_graph(blueprint, registry)


class TestSchedule:
    """Tests for schedule"""

    def test_independent_nodes_share_one_layer(self, registry):
        """Nodes without edges all run in the first layer, in blueprint order."""
        plan = schedule(graph_for(registry, ["c", "a", "b"], []))

        assert plan.as_lists() == [["c", "a", "b"]]

    def test_chain(self, registry):
        """A chain gets one layer per node."""
        plan = schedule(graph_for(registry, ["a", "b", "c"], [("a", "b"), ("b", "c")]))

        assert plan.as_lists() == [["a"], ["b"], ["c"]]
        assert plan.order == ["a", "b", "c"]

    def test_diamond(self, registry):
        """Both branches of a diamond run together."""
        plan = schedule(graph_for(
            registry,
            ["top", "right", "left", "bottom"],
            [("top", "left"), ("top", "right"), ("left", "bottom"), ("right", "bottom")],
        ))

        assert plan.as_lists() == [["top"], ["right", "left"], ["bottom"]]

    def test_blueprint_order_breaks_ties_within_a_layer(self, registry):
        """Layer order follows the node list, not edge or set order."""
        plan = schedule(graph_for(registry, ["z", "y", "root"], [("root", "y"), ("root", "z")]))

        assert plan.as_lists() == [["root"], ["z", "y"]]

    def test_order_respects_every_edge(self, registry):
        """On random DAGs, each edge's source is scheduled in an earlier layer than its target."""
        rng = random.Random(7)
        for _ in range(20):
            count = rng.randint(2, 12)
            ids = [f"n{i}" for i in range(count)]
            edges = {
                (ids[i], ids[j])
                for i in range(count)
                for j in range(i + 1, count)
                if rng.random() < 0.3
            }
            shuffled = ids[:]
            rng.shuffle(shuffled)

            plan = schedule(graph_for(registry, shuffled, sorted(edges)))

            layer_of = {nid: i for i, layer in enumerate(plan.layers) for nid in layer}
            assert sorted(plan.order) == sorted(ids)
            for u, v in edges:
                assert layer_of[u] < layer_of[v]

    def test_cycle_is_rejected(self, registry):
        """A three-node cycle raises with the cycle path in the message."""
        with pytest.raises(CyclicDependencyError) as exc_info:
            schedule(graph_for(registry, ["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")]))

        assert exc_info.value.cycle == ["a", "b", "c"]
        assert "a -> b -> c -> a" in exc_info.value.message
        assert {d.node_id for d in exc_info.value.diagnostics} == {"a", "b", "c"}

    def test_shortest_cycle_is_reported(self, registry):
        """With overlapping cycles the two-node one is named."""
        with pytest.raises(CyclicDependencyError) as exc_info:
            schedule(graph_for(
                registry,
                ["a", "b", "c", "d"],
                [("a", "b"), ("b", "c"), ("c", "a"), ("b", "d"), ("d", "b")],
            ))

        assert exc_info.value.cycle == ["b", "d"]

    def test_cycle_downstream_of_valid_nodes(self, registry):
        """Nodes that could run are not part of the reported cycle."""
        with pytest.raises(CyclicDependencyError) as exc_info:
            schedule(graph_for(registry, ["ok", "x", "y"], [("ok", "x"), ("x", "y"), ("y", "x")]))

        assert exc_info.value.cycle == ["x", "y"]

    def test_large_ring_terminates(self, registry):
        """A long ring is reported in full."""
        ids = [f"r{i:02d}" for i in range(50)]
        edges = [(ids[i], ids[(i + 1) % 50]) for i in range(50)]

        with pytest.raises(CyclicDependencyError) as exc_info:
            schedule(graph_for(registry, ids, edges))

        assert exc_info.value.cycle == ids


class TestFindMinimalCycle:
    """Tests for find_minimal_cycle"""

    def test_candidates_without_cycle_are_returned(self, registry):
        """If no cycle runs through the candidates they are returned as-is."""
        graph = graph_for(registry, ["a", "b"], [("a", "b")])

        assert find_minimal_cycle(graph, ["b"]) == ["b"]
