"""
Plugin execution engine.

Takes an ExecutionPlan and runs each node's plugin generate() layer by
layer. Nodes inside a layer have no dependency on each other and run
concurrently, bounded by a worker semaphore; the next layer starts only when
every node of the current one has finished.

Key concepts:
- Each node gets its own read-only ExecutionContext. Its node_outputs view only
  holds outputs of already-completed dependencies (graph predecessors plus
  optional-dependency producers that finished in earlier layers).
- Plugins may be async or plain functions; plain functions run on threads.
- On failure the remaining siblings of the layer finish, then the run aborts
  with one PluginExecutionError. No further layers are scheduled.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import defaultdict
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel

from dappforge.config import settings
from dappforge.errors import PluginExecutionError
from dappforge.models.blueprint import Blueprint, BlueprintConfig, BlueprintNode
from dappforge.models.codegen import CodegenOutput, NodeExecutionResult
from dappforge.models.context import ExecutionContext, PathContext
from dappforge.models.node_registry import NodePlugin, PluginRegistry
from dappforge.services.graph_builder import DependencyGraph
from dappforge.services.scheduler import ExecutionPlan

logger = logging.getLogger(__name__)


class _NodeLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['node_id']}] {msg}", kwargs


def _plugin_logger(node_id: str, plugin_id: str) -> logging.LoggerAdapter:
    return _NodeLoggerAdapter(
        logging.getLogger(f"dappforge.plugins.{plugin_id}"),
        {"node_id": node_id, "plugin_id": plugin_id},
    )


def _coerce_output(result: Any) -> CodegenOutput:
    if isinstance(result, CodegenOutput):
        return result
    if isinstance(result, Mapping):
        return CodegenOutput.model_validate(dict(result))
    raise TypeError(
        f"generate() must return a CodegenOutput, got {type(result).__name__}"
    )


def _snapshot(output: CodegenOutput) -> CodegenOutput:
    return output.model_copy(deep=True)


def _resolve_inputs(
    node: BlueprintNode,
    plugin: NodePlugin,
    blueprint: Blueprint,
    visible: Mapping[str, CodegenOutput],
) -> dict[str, tuple[CodegenOutput, ...]]:
    """
    Map consumer slots to producer outputs.

    Explicit edges feed the target port id; plugin dependencies feed the
    consumer slots of their data mapping. Slots whose producers are not
    (yet) available are left out, so plugins fall back to defaults.
    """
    slots: dict[str, list[str]] = defaultdict(list)

    for edge in blueprint.edges:
        if edge.target.node_id != node.id:
            continue
        producer_id = edge.source.node_id
        if producer_id in visible and producer_id not in slots[edge.target.port_id]:
            slots[edge.target.port_id].append(producer_id)

    for dep in plugin.dependencies:
        producer_ids = [
            n.id for n in blueprint.nodes
            if n.type == dep.plugin_id and n.id in visible and n.id != node.id
        ]
        for consumer_slot in dep.data_mapping.values():
            for producer_id in producer_ids:
                if producer_id not in slots[consumer_slot]:
                    slots[consumer_slot].append(producer_id)

    return {
        slot: tuple(visible[nid] for nid in producer_ids)
        for slot, producer_ids in slots.items()
        if producer_ids
    }


def _visible_outputs(
    node: BlueprintNode,
    plugin: NodePlugin,
    blueprint: Blueprint,
    graph: DependencyGraph,
    completed: Mapping[str, CodegenOutput],
) -> dict[str, CodegenOutput]:
    visible_ids = set(graph.predecessors[node.id])
    optional_types = {d.plugin_id for d in plugin.optional_dependencies}
    for other in blueprint.nodes:
        if other.id != node.id and other.type in optional_types:
            visible_ids.add(other.id)
    return {
        nid: _snapshot(completed[nid])
        for nid in graph.nodes
        if nid in visible_ids and nid in completed
    }


async def _invoke(plugin: NodePlugin, node: BlueprintNode, context: ExecutionContext) -> Any:
    if inspect.iscoroutinefunction(plugin.generate):
        return await plugin.generate(node, context)
    result = await asyncio.to_thread(plugin.generate, node, context)
    if inspect.isawaitable(result):
        result = await result
    return result


async def execute_plan(
    blueprint: Blueprint,
    plan: ExecutionPlan,
    graph: DependencyGraph,
    registry: PluginRegistry,
    configs: Mapping[str, BaseModel],
    path_context: PathContext,
    *,
    run_id: str,
    blueprint_config: BlueprintConfig | None = None,
    max_workers: int | None = None,
) -> list[NodeExecutionResult]:
    """
    Run every node's plugin once, in plan order.

    Returns one NodeExecutionResult per node in scheduler order.

    Raises:
        PluginExecutionError: a plugin failed; carries the other failures of
            the same layer.
    """
    node_map = {n.id: n for n in blueprint.nodes}
    resolved_config = blueprint_config or blueprint.resolved_config()
    semaphore = asyncio.Semaphore(max_workers or settings.MAX_WORKERS)

    # Append-only: written between layers, never while a layer runs
    completed: dict[str, CodegenOutput] = {}
    results: dict[str, NodeExecutionResult] = {}

    async def execute_single_node(node_id: str) -> NodeExecutionResult:
        node = node_map[node_id]
        plugin = registry.get_or_raise(node.type)
        visible = _visible_outputs(node, plugin, blueprint, graph, completed)
        context = ExecutionContext(
            blueprint_id=blueprint.id,
            run_id=run_id,
            node_id=node_id,
            blueprint_config=resolved_config,
            path_context=path_context,
            config=configs[node_id],
            logger=_plugin_logger(node_id, plugin.id),
            node_outputs=MappingProxyType(visible),
            inputs=MappingProxyType(_resolve_inputs(node, plugin, blueprint, visible)),
        )

        async with semaphore:
            node_start = time.perf_counter()
            logger.debug("Started generation for node %s (%s)", node_id, plugin.id)
            try:
                output = _coerce_output(await _invoke(plugin, node, context))
            except Exception as e:
                logger.exception("Node %s failed: %s: %s", node_id, type(e).__name__, e)
                raise PluginExecutionError(node_id, plugin.id, e) from e

        elapsed_ms = int((time.perf_counter() - node_start) * 1000)
        return NodeExecutionResult(
            node_id=node_id,
            node_type=node.type,
            status="completed",
            output=_snapshot(output),
            execution_time_ms=elapsed_ms,
        )

    for index, layer in enumerate(plan.layers):
        logger.info("Executing layer %d/%d: %s", index + 1, len(plan.layers), ", ".join(layer))
        outcomes = await asyncio.gather(
            *(execute_single_node(nid) for nid in layer),
            return_exceptions=True,
        )

        failures: list[PluginExecutionError] = []
        for node_id, outcome in zip(layer, outcomes):
            if isinstance(outcome, PluginExecutionError):
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[node_id] = outcome

        if failures:
            first, *others = failures
            raise PluginExecutionError(
                first.node_id,
                first.plugin_id,
                first.cause,
                sibling_failures=others,
            ) from first.cause

        for node_id in layer:
            completed[node_id] = results[node_id].output

    return [results[nid] for nid in plan.order]
