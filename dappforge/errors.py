"""
Compile error taxonomy.

Every failure of a compilation run is one of these. Each error carries
structured diagnostics with enough context (node ids, plugin ids, paths,
field names) to point the user at the offending blueprint node.
"""

from __future__ import annotations

from typing import Sequence

from dappforge.models.codegen import CompilationDiagnostic


class CompileError(Exception):
    """Base class for terminal compilation failures."""

    code = "compile_error"

    def __init__(self, message: str, diagnostics: Sequence[CompilationDiagnostic] | None = None):
        self.message = message
        self.diagnostics = list(diagnostics) if diagnostics else [
            CompilationDiagnostic(code=self.code, message=message)
        ]
        super().__init__(message)


class SchemaError(CompileError):
    """A node's config does not satisfy its plugin's schema."""

    code = "schema_error"

    def __init__(
        self,
        node_id: str,
        field: str,
        constraint: str,
        diagnostics: Sequence[CompilationDiagnostic] | None = None,
    ):
        self.node_id = node_id
        self.field = field
        self.constraint = constraint
        message = f"Node '{node_id}' has invalid config at '{field or '<root>'}': {constraint}"
        super().__init__(message, diagnostics or [
            CompilationDiagnostic(code=self.code, message=message, node_id=node_id, field=field)
        ])


class GraphValidationError(CompileError):
    """The blueprint graph is structurally invalid (ids, types, edges, ports)."""

    code = "graph_error"

    def __init__(self, diagnostics: Sequence[CompilationDiagnostic]):
        messages = "; ".join(d.message for d in diagnostics)
        super().__init__(f"Blueprint graph is invalid: {messages}", diagnostics)


class MissingDependencyError(CompileError):
    """A plugin requires a producer type that has no node in the blueprint."""

    code = "missing_dependency"

    def __init__(self, plugin_id: str, node_id: str, required_by: str | None = None):
        self.plugin_id = plugin_id
        self.node_id = node_id
        self.required_by = required_by
        owner = f" ({required_by})" if required_by else ""
        message = (
            f"Node '{node_id}'{owner} requires a '{plugin_id}' node, "
            f"but the blueprint has none"
        )
        super().__init__(message, [
            CompilationDiagnostic(
                code=self.code,
                message=message,
                node_id=node_id,
                plugin_ids=[plugin_id],
            )
        ])


class CyclicDependencyError(CompileError):
    """The dependency graph contains a cycle."""

    code = "cyclic_dependency"

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else ""
        message = f"Dependency cycle detected: {path}"
        super().__init__(message, [
            CompilationDiagnostic(code=self.code, message=message, node_id=node_id)
            for node_id in self.cycle
        ])


class PluginExecutionError(CompileError):
    """A plugin's generate() failed or returned something unusable."""

    code = "plugin_execution"

    def __init__(
        self,
        node_id: str,
        plugin_id: str,
        cause: BaseException,
        sibling_failures: Sequence["PluginExecutionError"] = (),
    ):
        self.node_id = node_id
        self.plugin_id = plugin_id
        self.cause = cause
        self.sibling_failures = list(sibling_failures)
        message = f"Plugin '{plugin_id}' failed for node '{node_id}': {type(cause).__name__}: {cause}"
        diagnostics = [
            CompilationDiagnostic(
                code=self.code,
                message=message,
                node_id=node_id,
                plugin_ids=[plugin_id],
            )
        ]
        for sibling in self.sibling_failures:
            diagnostics.extend(sibling.diagnostics)
        super().__init__(message, diagnostics)


class PathCollisionError(CompileError):
    """Two contributions wrote different content to the same final path."""

    code = "path_collision"

    def __init__(
        self,
        path: str,
        plugin_ids: Sequence[str],
        node_ids: Sequence[str] = (),
        diagnostics: Sequence[CompilationDiagnostic] | None = None,
    ):
        self.path = path
        self.plugin_ids = list(plugin_ids)
        self.node_ids = list(node_ids)
        message = (
            f"Different content generated for '{path}' by plugins: "
            f"{', '.join(self.plugin_ids)}"
        )
        super().__init__(message, diagnostics or [
            CompilationDiagnostic(
                code=self.code,
                message=message,
                path=path,
                plugin_ids=self.plugin_ids,
            )
        ])


class MergeConflictError(CompileError):
    """Conflicting env var defaults, script commands or dependency versions."""

    code = "merge_conflict"

    def __init__(
        self,
        kind: str,
        key: str,
        values: Sequence[str],
        node_ids: Sequence[str] = (),
        diagnostics: Sequence[CompilationDiagnostic] | None = None,
    ):
        self.kind = kind
        self.key = key
        self.values = list(values)
        self.node_ids = list(node_ids)
        message = f"Conflicting {kind} values for '{key}': {', '.join(repr(v) for v in self.values)}"
        super().__init__(message, diagnostics or [
            CompilationDiagnostic(code=self.code, message=message, field=key)
        ])
