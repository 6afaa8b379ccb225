"""
Merge engine: reduces every node's routed CodegenOutput into one ProjectTree.

Merge rules:
- Files (and rendered docs) are keyed by final path. Identical content from
  several contributors merges; different content is a PathCollisionError.
- Env vars are keyed by name: required/secret are OR-ed, and at most one
  non-placeholder default may exist.
- Scripts are keyed by name: identical commands merge, different ones conflict.
- Package dependencies are a set union keyed by name; different version
  constraints for one name conflict.

Every step groups contributions by key before deciding, so the result is the
same for any permutation of the contributions. Contribution order only
affects which of several conflicts is raised first, and that is pinned to
key order as well.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from dappforge.errors import CompileError, MergeConflictError, PathCollisionError
from dappforge.models.codegen import (
    CodegenOutput,
    CompilationDiagnostic,
    DocIndexEntry,
    GeneratedFile,
    MergedDependency,
    MergedEnvVar,
    MergedScript,
    ProjectTree,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contribution:
    """One node's routed output (files already at their final paths)."""

    node_id: str
    plugin_id: str
    output: CodegenOutput


@dataclass(frozen=True)
class _Entry:
    node_id: str
    plugin_id: str
    value: str


def _is_placeholder(value: str | None) -> bool:
    return value is None or not value.strip()


def _merge_descriptions(descriptions: Iterable[str | None]) -> str:
    return "; ".join(sorted({d.strip() for d in descriptions if d and d.strip()}))


def _origins(entries: Iterable[_Entry]) -> list[str]:
    return sorted({e.node_id for e in entries})


def _plugin_ids(entries: Iterable[_Entry]) -> list[str]:
    return sorted({e.plugin_id for e in entries})


# ---------------------------------------------------------------------------
# Files and docs
# ---------------------------------------------------------------------------


def _collision(path: str, entries: Sequence[_Entry]) -> PathCollisionError:
    plugin_ids = _plugin_ids(entries)
    node_ids = _origins(entries)
    message = (
        f"Different content generated for '{path}' by plugins: {', '.join(plugin_ids)} "
        f"(nodes: {', '.join(node_ids)})"
    )
    return PathCollisionError(
        path,
        plugin_ids,
        node_ids,
        diagnostics=[CompilationDiagnostic(
            code=PathCollisionError.code,
            message=message,
            path=path,
            plugin_ids=plugin_ids,
        )],
    )


def _merge_files(
    by_path: dict[str, list[_Entry]],
) -> tuple[dict[str, str], dict[str, list[str]], list[CompileError]]:
    files: dict[str, str] = {}
    origins: dict[str, list[str]] = {}
    conflicts: list[CompileError] = []

    for path in sorted(by_path):
        entries = by_path[path]
        contents = {e.value for e in entries}
        if len(contents) > 1:
            conflicts.append(_collision(path, entries))
            continue
        files[path] = entries[0].value
        origins[path] = _origins(entries)

    return files, origins, conflicts


# ---------------------------------------------------------------------------
# Env vars, scripts, dependencies
# ---------------------------------------------------------------------------


def _conflict(kind: str, key: str, entries: Sequence[_Entry]) -> MergeConflictError:
    values = sorted({e.value for e in entries})
    node_ids = _origins(entries)
    plugin_ids = _plugin_ids(entries)
    message = (
        f"Conflicting {kind} values for '{key}': {', '.join(repr(v) for v in values)} "
        f"(nodes: {', '.join(node_ids)})"
    )
    return MergeConflictError(
        kind,
        key,
        values,
        node_ids,
        diagnostics=[CompilationDiagnostic(
            code=MergeConflictError.code,
            message=message,
            field=key,
            plugin_ids=plugin_ids,
        )],
    )


def _merge_env_vars(contributions: Sequence[Contribution]) -> tuple[list[MergedEnvVar], list[CompileError]]:
    grouped: dict[str, list[tuple[Contribution, object]]] = defaultdict(list)
    for c in contributions:
        for spec in c.output.env_vars:
            grouped[spec.key].append((c, spec))

    merged: list[MergedEnvVar] = []
    conflicts: list[CompileError] = []
    for key in sorted(grouped):
        specs = [spec for _, spec in grouped[key]]
        defaults = [
            _Entry(c.node_id, c.plugin_id, spec.default_value)
            for c, spec in grouped[key]
            if not _is_placeholder(spec.default_value)
        ]
        if len({e.value for e in defaults}) > 1:
            conflicts.append(_conflict("env var default", key, defaults))
            continue
        merged.append(MergedEnvVar(
            key=key,
            description=_merge_descriptions(s.description for s in specs),
            required=any(s.required for s in specs),
            secret=any(s.secret for s in specs),
            default_value=defaults[0].value if defaults else None,
            origins=sorted({c.node_id for c, _ in grouped[key]}),
        ))
    return merged, conflicts


def _merge_scripts(contributions: Sequence[Contribution]) -> tuple[list[MergedScript], list[CompileError]]:
    grouped: dict[str, list[tuple[Contribution, object]]] = defaultdict(list)
    for c in contributions:
        for spec in c.output.scripts:
            grouped[spec.name].append((c, spec))

    merged: list[MergedScript] = []
    conflicts: list[CompileError] = []
    for name in sorted(grouped):
        entries = [_Entry(c.node_id, c.plugin_id, spec.command) for c, spec in grouped[name]]
        if len({e.value for e in entries}) > 1:
            conflicts.append(_conflict("script", name, entries))
            continue
        merged.append(MergedScript(
            name=name,
            command=entries[0].value,
            description=_merge_descriptions(spec.description for _, spec in grouped[name]) or None,
            origins=_origins(entries),
        ))
    return merged, conflicts


def _merge_dependencies(
    contributions: Sequence[Contribution],
) -> tuple[list[MergedDependency], list[CompileError]]:
    grouped: dict[str, list[tuple[Contribution, object]]] = defaultdict(list)
    for c in contributions:
        for dep in c.output.dependencies:
            grouped[dep.name].append((c, dep))

    merged: list[MergedDependency] = []
    conflicts: list[CompileError] = []
    for name in sorted(grouped):
        entries = [_Entry(c.node_id, c.plugin_id, dep.version.strip()) for c, dep in grouped[name]]
        if len({e.value for e in entries}) > 1:
            conflicts.append(_conflict("dependency version", name, entries))
            continue
        merged.append(MergedDependency(
            name=name,
            version=entries[0].value,
            dev=all(dep.dev for _, dep in grouped[name]),
            origins=_origins(entries),
        ))
    return merged, conflicts


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _raise_first(conflicts: list[CompileError]) -> None:
    if not conflicts:
        return
    first = conflicts[0]
    if len(conflicts) > 1:
        first.diagnostics = [d for c in conflicts for d in c.diagnostics]
    raise first


def merge_outputs(
    contributions: Sequence[Contribution],
    *,
    include_docs: bool = True,
) -> ProjectTree:
    """
    Merge every contribution into one ProjectTree.

    Raises:
        PathCollisionError: different content at one path (files or docs).
        MergeConflictError: conflicting env var defaults, scripts or
            dependency versions.
    """
    by_path: dict[str, list[_Entry]] = defaultdict(list)
    doc_titles: dict[str, set[str]] = defaultdict(set)

    for c in contributions:
        for file in c.output.files:
            by_path[file.path].append(_Entry(c.node_id, c.plugin_id, file.content))
        if include_docs:
            for doc in c.output.docs:
                by_path[doc.path].append(_Entry(c.node_id, c.plugin_id, doc.render()))
                doc_titles[doc.path].add(doc.title)

    files, origins, conflicts = _merge_files(by_path)
    env_vars, env_conflicts = _merge_env_vars(contributions)
    scripts, script_conflicts = _merge_scripts(contributions)
    dependencies, dep_conflicts = _merge_dependencies(contributions)

    _raise_first(conflicts + env_conflicts + script_conflicts + dep_conflicts)

    docs = [
        DocIndexEntry(path=path, title=min(doc_titles[path]), origins=origins[path])
        for path in sorted(doc_titles)
    ]

    logger.info(
        "Merged %d contributions into %d files (%d env vars, %d scripts, %d dependencies)",
        len(contributions),
        len(files),
        len(env_vars),
        len(scripts),
        len(dependencies),
    )
    return ProjectTree(
        files=files,
        origins=origins,
        env_vars=env_vars,
        scripts=scripts,
        docs=docs,
        dependencies=dependencies,
    )


def add_files(
    tree: ProjectTree,
    files: Sequence[GeneratedFile],
    *,
    origin: str,
    node_plugins: Mapping[str, str] | None = None,
) -> ProjectTree:
    """
    Return a new tree with extra files, under the same collision rule.

    node_plugins maps the node ids already in the tree to their plugin ids,
    so a collision names the plugin that wrote the existing file.

    Raises:
        PathCollisionError: a file differs from content already in the tree.
    """
    merged_files = dict(tree.files)
    merged_origins = {path: list(nodes) for path, nodes in tree.origins.items()}
    conflicts: list[CompileError] = []
    node_plugins = node_plugins or {}

    for file in sorted(files, key=lambda f: f.path):
        existing = merged_files.get(file.path)
        if existing is None:
            merged_files[file.path] = file.content
            merged_origins[file.path] = [origin]
        elif existing == file.content:
            merged_origins[file.path] = sorted({*merged_origins[file.path], origin})
        else:
            entries = [_Entry(n, node_plugins.get(n, n), existing) for n in merged_origins[file.path]]
            entries.append(_Entry(origin, origin, file.content))
            conflicts.append(_collision(file.path, entries))

    _raise_first(conflicts)

    return tree.model_copy(update={
        "files": dict(sorted(merged_files.items())),
        "origins": dict(sorted(merged_origins.items())),
    })
