"""
Schema validation of node configs against their plugin's config schema.
"""

from __future__ import annotations

from pydantic import BaseModel, ValidationError

from dappforge.errors import SchemaError
from dappforge.models.blueprint import Blueprint, BlueprintNode
from dappforge.models.codegen import CompilationDiagnostic
from dappforge.models.node_registry import NodePlugin, PluginRegistry


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def _diagnostics_for(node: BlueprintNode, exc: ValidationError) -> list[CompilationDiagnostic]:
    return [
        CompilationDiagnostic(
            code=SchemaError.code,
            message=f"Node '{node.id}' config '{_field_path(err['loc']) or '<root>'}': {err['msg']}",
            node_id=node.id,
            field=_field_path(err["loc"]),
        )
        for err in exc.errors()
    ]


def validate_node_config(node: BlueprintNode, plugin: NodePlugin) -> BaseModel:
    """
    Validate one node's config and return the typed config model.

    Raises:
        SchemaError: naming the node, the first failing field path and the
            violated constraint; every issue is listed in its diagnostics.
    """
    try:
        return plugin.config_schema.model_validate(node.config)
    except ValidationError as exc:
        first = exc.errors()[0]
        raise SchemaError(
            node_id=node.id,
            field=_field_path(first["loc"]),
            constraint=first["msg"],
            diagnostics=_diagnostics_for(node, exc),
        ) from exc


def validate_blueprint_configs(
    blueprint: Blueprint,
    registry: PluginRegistry,
) -> dict[str, BaseModel]:
    """
    Validate every node with a registered plugin, in blueprint order.

    Nodes of unknown type are skipped here; the graph builder reports them.
    All issues across all nodes are collected before raising, and the raised
    SchemaError names the first one.
    """
    configs: dict[str, BaseModel] = {}
    first_error: SchemaError | None = None
    diagnostics: list[CompilationDiagnostic] = []

    for node in blueprint.nodes:
        plugin = registry.get(node.type)
        if plugin is None:
            continue
        try:
            configs[node.id] = validate_node_config(node, plugin)
        except SchemaError as exc:
            if first_error is None:
                first_error = exc
            diagnostics.extend(exc.diagnostics)

    if first_error is not None:
        raise SchemaError(
            node_id=first_error.node_id,
            field=first_error.field,
            constraint=first_error.constraint,
            diagnostics=diagnostics,
        ) from first_error.__cause__

    return configs
