"""
Dependency graph construction.

Turns a Blueprint into a directed graph over node ids. An edge u -> v exists
when an explicit blueprint edge connects an output port of u to an input
port of v, or when v's plugin declares a required dependency on u's type.
Optional plugin dependencies never create edges.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from dappforge.errors import GraphValidationError, MissingDependencyError
from dappforge.models.blueprint import Blueprint, BlueprintNode
from dappforge.models.codegen import CompilationDiagnostic
from dappforge.models.node_registry import PluginPort, PluginRegistry

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    # Node ids in blueprint order
    nodes: list[str]
    node_types: dict[str, str]
    successors: dict[str, set[str]] = field(default_factory=dict)
    predecessors: dict[str, set[str]] = field(default_factory=dict)

    def add_edge(self, source: str, target: str) -> None:
        self.successors[source].add(target)
        self.predecessors[target].add(source)

    def edges(self) -> list[tuple[str, str]]:
        position = {nid: i for i, nid in enumerate(self.nodes)}
        return sorted(
            ((u, v) for u, targets in self.successors.items() for v in targets),
            key=lambda e: (position[e[0]], position[e[1]]),
        )


def _diag(message: str, node_id: str | None = None, field_name: str | None = None) -> CompilationDiagnostic:
    return CompilationDiagnostic(
        code=GraphValidationError.code,
        message=message,
        node_id=node_id,
        field=field_name,
    )


def _types_compatible(source: PluginPort, target: PluginPort) -> bool:
    """'any' on either end accepts every data type; otherwise types must match."""
    if source.data_type == "any" or target.data_type == "any":
        return True
    return source.data_type == target.data_type


def validate_structure(blueprint: Blueprint, registry: PluginRegistry) -> None:
    """
    Check ids, node types, edges and ports of the blueprint.

    Raises:
        GraphValidationError: with one diagnostic per problem found.
    """
    diags: list[CompilationDiagnostic] = []

    if not blueprint.nodes:
        raise GraphValidationError([_diag("Blueprint must contain at least one node")])

    node_map: dict[str, BlueprintNode] = {}
    for node in blueprint.nodes:
        if not node.id:
            diags.append(_diag("Node missing 'id' field"))
            continue
        if node.id in node_map:
            diags.append(_diag(f"Duplicate node ID '{node.id}'", node.id))
            continue
        node_map[node.id] = node

    for nid, node in node_map.items():
        if not registry.has(node.type):
            diags.append(_diag(f"Unknown node type '{node.type}'", nid))

    wired_inputs: set[tuple[str, str]] = set()

    for edge in blueprint.edges:
        src = edge.source.node_id
        tgt = edge.target.node_id
        src_handle = edge.source.port_id
        tgt_handle = edge.target.port_id

        if src not in node_map:
            diags.append(_diag(f"Edge '{edge.id}' references unknown source node '{src}'"))
            continue
        if tgt not in node_map:
            diags.append(_diag(f"Edge '{edge.id}' references unknown target node '{tgt}'"))
            continue
        if src == tgt:
            diags.append(_diag(f"Edge '{edge.id}' connects node '{src}' to itself", src))
            continue

        src_plugin = registry.get(node_map[src].type)
        tgt_plugin = registry.get(node_map[tgt].type)
        if src_plugin is None or tgt_plugin is None:
            # Already reported as unknown type
            continue

        src_port = src_plugin.port(src_handle)
        tgt_port = tgt_plugin.port(tgt_handle)

        if src_port is None or src_port.direction != "output":
            diags.append(_diag(f"Node '{src}' has no output port '{src_handle}'", src, src_handle))
        if tgt_port is None or tgt_port.direction != "input":
            diags.append(_diag(f"Node '{tgt}' has no input port '{tgt_handle}'", tgt, tgt_handle))

        if (
            src_port is not None and src_port.direction == "output"
            and tgt_port is not None and tgt_port.direction == "input"
        ):
            if not _types_compatible(src_port, tgt_port):
                diags.append(_diag(
                    f"Data type mismatch: {src}.{src_handle} ({src_port.data_type}) -> "
                    f"{tgt}.{tgt_handle} ({tgt_port.data_type})",
                    tgt,
                    tgt_handle,
                ))
            wired_inputs.add((tgt, tgt_handle))

    # Required inputs are wired
    for nid, node in node_map.items():
        plugin = registry.get(node.type)
        if plugin is None:
            continue
        for port in plugin.input_ports:
            if port.required and (nid, port.id) not in wired_inputs:
                diags.append(_diag(f"Required input '{port.id}' is not connected", nid, port.id))

    if diags:
        raise GraphValidationError(diags)


def build_dependency_graph(blueprint: Blueprint, registry: PluginRegistry) -> DependencyGraph:
    """
    Build the dependency graph of a structurally valid blueprint.

    Raises:
        GraphValidationError: the blueprint is structurally invalid.
        MissingDependencyError: a required plugin dependency has no node of its
            type in the blueprint. Checked in node order, before scheduling.
    """
    validate_structure(blueprint, registry)

    node_ids = [n.id for n in blueprint.nodes]
    graph = DependencyGraph(
        nodes=node_ids,
        node_types={n.id: n.type for n in blueprint.nodes},
        successors={nid: set() for nid in node_ids},
        predecessors={nid: set() for nid in node_ids},
    )

    nodes_by_type: dict[str, list[str]] = defaultdict(list)
    for node in blueprint.nodes:
        nodes_by_type[node.type].append(node.id)

    # Required plugin dependencies
    for node in blueprint.nodes:
        plugin = registry.get_or_raise(node.type)
        for dep in plugin.required_dependencies:
            producers = nodes_by_type.get(dep.plugin_id)
            if not producers:
                raise MissingDependencyError(dep.plugin_id, node.id, required_by=plugin.id)
            for producer in producers:
                if producer != node.id:
                    graph.add_edge(producer, node.id)

    # Explicit edges; parallel edges collapse into one dependency
    for edge in blueprint.edges:
        graph.add_edge(edge.source.node_id, edge.target.node_id)

    logger.debug(
        "Built dependency graph for blueprint %s: %d nodes, %d edges",
        blueprint.id,
        len(graph.nodes),
        len(graph.edges()),
    )
    return graph
