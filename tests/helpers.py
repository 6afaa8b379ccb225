"""
Builders shared by the compiler tests: blueprint snapshots and mock plugins.
"""

import asyncio
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel

from dappforge.models.blueprint import (
    Blueprint,
    BlueprintConfig,
    BlueprintEdge,
    BlueprintNode,
    EdgeEndpoint,
    ProjectMetadata,
)
from dappforge.models.codegen import CodegenOutput
from dappforge.models.node_registry import (
    EmptyConfig,
    NodePlugin,
    PluginDependency,
    PluginMetadata,
    PluginPort,
    PluginRegistry,
    node_plugin,
)
from dappforge.services.graph_builder import build_dependency_graph
from dappforge.services.path_router import build_path_context
from dappforge.services.plugin_executor import execute_plan
from dappforge.services.scheduler import schedule
from dappforge.services.schema_validator import validate_blueprint_configs

# Generic ports so any mock node can be wired to any other
IN_PORT = PluginPort(id="in", name="In", direction="input", data_type="any")
OUT_PORT = PluginPort(id="out", name="Out", direction="output", data_type="any")


def make_node(node_id: str, node_type: str, config: Optional[dict] = None) -> BlueprintNode:
    return BlueprintNode(id=node_id, type=node_type, config=config or {})


def make_edge(source: str, target: str, source_port: str = "out", target_port: str = "in", edge_id: Optional[str] = None) -> BlueprintEdge:
    return BlueprintEdge(
        id=edge_id or f"{source}.{source_port}->{target}.{target_port}",
        source=EdgeEndpoint(node_id=source, port_id=source_port),
        target=EdgeEndpoint(node_id=target, port_id=target_port),
    )


def make_blueprint(
    nodes: Iterable[BlueprintNode],
    edges: Iterable[BlueprintEdge] = (),
    *,
    blueprint_id: str = "test-blueprint",
    name: str = "Test App",
    generate_docs: bool = True,
) -> Blueprint:
    return Blueprint(
        id=blueprint_id,
        nodes=list(nodes),
        edges=list(edges),
        config=BlueprintConfig(project=ProjectMetadata(name=name), generate_docs=generate_docs),
    )


def mock_plugin(
    plugin_id: str,
    *,
    files: Iterable[dict] = (),
    env_vars: Iterable[dict] = (),
    scripts: Iterable[dict] = (),
    docs: Iterable[dict] = (),
    dependencies: Iterable[dict] = (),
    ports: Iterable[PluginPort] = (IN_PORT, OUT_PORT),
    plugin_dependencies: Iterable[PluginDependency] = (),
    config_schema: type[BaseModel] = EmptyConfig,
    component_path_mappings: Optional[dict] = None,
    delay: float = 0.0,
    log: Optional[list] = None,
    error: Optional[Exception] = None,
    on_generate: Optional[Callable[[BlueprintNode, Any], None]] = None,
) -> NodePlugin:
    """
    Async plugin that returns a fixed CodegenOutput.

    `log` receives (node_id, "start") / (node_id, "end") events; `on_generate`
    is called with the node and its context before the output is built.
    """
    payload = {
        "files": list(files),
        "envVars": list(env_vars),
        "scripts": list(scripts),
        "docs": list(docs),
        "dependencies": list(dependencies),
    }

    @node_plugin(
        metadata=PluginMetadata(id=plugin_id, name=plugin_id.replace("-", " ").title(), category="app"),
        config_schema=config_schema,
        ports=ports,
        dependencies=plugin_dependencies,
        component_path_mappings=component_path_mappings,
    )
    async def generate(node, context):
        if log is not None:
            log.append((node.id, "start"))
        await asyncio.sleep(delay)
        if on_generate is not None:
            on_generate(node, context)
        if log is not None:
            log.append((node.id, "end"))
        if error is not None:
            raise error
        return CodegenOutput.model_validate(payload)

    return generate


def make_registry(*plugins: NodePlugin) -> PluginRegistry:
    registry = PluginRegistry()
    for plugin in plugins:
        registry.register(plugin)
    return registry


async def run_plan(blueprint: Blueprint, registry: PluginRegistry, max_workers: Optional[int] = None):
    """Validate, schedule and execute a blueprint; returns the per-node results."""
    configs = validate_blueprint_configs(blueprint, registry)
    graph = build_dependency_graph(blueprint, registry)
    plan = schedule(graph)
    return await execute_plan(
        blueprint,
        plan,
        graph,
        registry,
        configs,
        build_path_context(blueprint.nodes, configs),
        run_id="test-run",
        max_workers=max_workers,
    )
