"""
Blueprint compiler: turns a blueprint graph into one conflict-free project tree.

Pipeline: Validate configs → Build graph → Schedule → Execute plugins → Route → Merge → Root files
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

from pydantic import BaseModel

from dappforge.errors import CompileError, PluginExecutionError
from dappforge.models.blueprint import Blueprint
from dappforge.models.codegen import CompilationResult, NodeExecutionResult, ProjectTree
from dappforge.models.node_registry import PluginRegistry, get_default_registry
from dappforge.services.graph_builder import DependencyGraph, build_dependency_graph
from dappforge.services.merge_engine import Contribution, add_files, merge_outputs
from dappforge.services.path_router import UnsafePathError, build_path_context, route_output
from dappforge.services.plugin_executor import execute_plan
from dappforge.services.project_files import render_root_files
from dappforge.services.scheduler import ExecutionPlan, schedule
from dappforge.services.schema_validator import validate_blueprint_configs

logger = logging.getLogger(__name__)

ROOT_FILES_ORIGIN = "dappforge"


@dataclass(frozen=True)
class ValidatedBlueprint:
    """Everything known about a blueprint before any plugin runs."""

    configs: dict[str, BaseModel]
    graph: DependencyGraph
    plan: ExecutionPlan


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_blueprint(
    blueprint: Blueprint,
    registry: PluginRegistry | None = None,
) -> ValidatedBlueprint:
    """
    Validate configs, build the dependency graph and schedule it.

    No plugin code runs.

    Raises:
        SchemaError, GraphValidationError, MissingDependencyError,
        CyclicDependencyError
    """
    registry = registry or get_default_registry()
    configs = validate_blueprint_configs(blueprint, registry)
    graph = build_dependency_graph(blueprint, registry)
    plan = schedule(graph)
    return ValidatedBlueprint(configs=configs, graph=graph, plan=plan)


async def compile_blueprint(
    blueprint: Blueprint,
    registry: PluginRegistry | None = None,
    *,
    max_workers: int | None = None,
) -> ProjectTree:
    """
    Compile a blueprint into a ProjectTree.

    Raises:
        CompileError: any subclass; no partial tree is returned.
    """
    tree, _ = await _compile(blueprint, registry, max_workers=max_workers)
    return tree


async def compile_blueprint_result(
    blueprint: Blueprint,
    registry: PluginRegistry | None = None,
    *,
    max_workers: int | None = None,
) -> CompilationResult:
    """
    Compile a blueprint and report the outcome instead of raising.

    Returns a CompilationResult with either a tree or diagnostics.
    """
    try:
        tree, node_results = await _compile(blueprint, registry, max_workers=max_workers)
    except CompileError as exc:
        return CompilationResult(success=False, diagnostics=exc.diagnostics)
    return CompilationResult(success=True, tree=tree, node_results=node_results)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

async def _compile(
    blueprint: Blueprint,
    registry: PluginRegistry | None,
    *,
    max_workers: int | None,
) -> tuple[ProjectTree, list[NodeExecutionResult]]:
    registry = registry or get_default_registry()
    run_id = str(uuid.uuid4())
    start_time = time.perf_counter()
    logger.info("Compiling blueprint %s (run %s, %d nodes)", blueprint.id, run_id, len(blueprint.nodes))

    try:
        # 1-3. Validate, build graph, schedule
        validated = validate_blueprint(blueprint, registry)
        blueprint_config = blueprint.resolved_config()

        # 4. Path context, computed once and shared by every node
        path_context = build_path_context(blueprint.nodes, validated.configs)

        # 5. Execute plugins layer by layer
        node_results = await execute_plan(
            blueprint,
            validated.plan,
            validated.graph,
            registry,
            validated.configs,
            path_context,
            run_id=run_id,
            blueprint_config=blueprint_config,
            max_workers=max_workers,
        )

        # 6. Route every output to its final paths
        contributions: list[Contribution] = []
        for result in node_results:
            plugin = registry.get_or_raise(result.node_type)
            try:
                routed = route_output(result.output, plugin.component_path_mappings, path_context)
            except UnsafePathError as e:
                raise PluginExecutionError(result.node_id, plugin.id, e) from e
            contributions.append(Contribution(result.node_id, plugin.id, routed))

        # 7. Merge, then add the root project files under the same collision rule
        tree = merge_outputs(contributions, include_docs=blueprint_config.generate_docs)
        tree = add_files(
            tree,
            render_root_files(tree, blueprint_config, blueprint, registry),
            origin=ROOT_FILES_ORIGIN,
            node_plugins={c.node_id: c.plugin_id for c in contributions},
        )
        tree = tree.model_copy(update={"layers": validated.plan.as_lists()})
    except CompileError as exc:
        logger.warning("Compilation of blueprint %s failed: %s", blueprint.id, exc.message)
        raise

    elapsed_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info(
        "Compiled blueprint %s in %dms: %d files across %d layers",
        blueprint.id,
        elapsed_ms,
        len(tree.files),
        len(tree.layers),
    )
    return tree, node_results
