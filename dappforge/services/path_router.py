"""
Path router for generated files.

Routes plugin files to their category folders (frontend, backend, contracts,
shared) based on which shaping node types are present in the blueprint.
The router only reads the PathContext built once at the start of a run, so a
category always resolves to the same directory whichever plugin produced the
file.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Literal, Mapping

from pydantic import BaseModel

from dappforge.config import settings
from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput, GeneratedFile, PathCategory
from dappforge.models.context import PathContext

# Node types that change the base-directory table
FRONTEND_SCAFFOLD_TYPES = frozenset({"frontend-scaffold"})
BACKEND_SCAFFOLD_TYPES: frozenset[str] = frozenset()
CONTRACT_TYPES = frozenset({
    "stylus-contract",
    "stylus-zk-contract",
    "erc20-stylus",
    "erc721-stylus",
    "erc1155-stylus",
    "eip7702-smart-eoa",
    "erc8004-agent-runtime",
})


@dataclass(frozen=True)
class CategoryRoute:
    domain: Literal["frontend", "backend", "contract", "shared"]
    subdir: str


CATEGORY_CONFIG: dict[str, CategoryRoute] = {
    # Frontend
    "frontend-app": CategoryRoute("frontend", "app"),
    "frontend-components": CategoryRoute("frontend", "components"),
    "frontend-hooks": CategoryRoute("frontend", "hooks"),
    "frontend-lib": CategoryRoute("frontend", "lib"),
    "frontend-types": CategoryRoute("frontend", "types"),
    "frontend-styles": CategoryRoute("frontend", "styles"),
    "frontend-public": CategoryRoute("frontend", "public"),
    # Backend
    "backend-routes": CategoryRoute("backend", "routes"),
    "backend-services": CategoryRoute("backend", "services"),
    "backend-middleware": CategoryRoute("backend", "middleware"),
    "backend-lib": CategoryRoute("backend", "lib"),
    "backend-types": CategoryRoute("backend", "types"),
    # Contracts
    "contract": CategoryRoute("contract", ""),
    "contract-test": CategoryRoute("contract", "tests"),
    "contract-source": CategoryRoute("contract", ""),
    "contract-scripts": CategoryRoute("shared", "scripts"),
    # Shared
    "docs": CategoryRoute("shared", "docs"),
    "root": CategoryRoute("shared", ""),
    "shared-types": CategoryRoute("shared", "shared/types"),
}


class UnsafePathError(ValueError):
    """A generated path is absolute or escapes the project root."""


def build_path_context(
    nodes: Iterable[BlueprintNode],
    configs: Mapping[str, BaseModel] | None = None,
) -> PathContext:
    """
    Build the path context from the blueprint's nodes.

    `configs` holds validated node configs; the frontend scaffold's
    `src_directory` flag decides whether its code lives under src/.
    """
    nodes = list(nodes)
    node_types = frozenset(n.type for n in nodes)

    frontend_node = next((n for n in nodes if n.type in FRONTEND_SCAFFOLD_TYPES), None)
    use_src_directory = True
    if frontend_node is not None:
        frontend_config = (configs or {}).get(frontend_node.id)
        if frontend_config is not None:
            use_src_directory = getattr(frontend_config, "src_directory", True) is not False
        else:
            use_src_directory = frontend_node.config.get("srcDirectory", True) is not False

    return PathContext(
        node_types=node_types,
        has_frontend=bool(node_types & FRONTEND_SCAFFOLD_TYPES),
        has_backend=bool(node_types & BACKEND_SCAFFOLD_TYPES),
        has_contracts=bool(node_types & CONTRACT_TYPES),
        frontend_path=settings.FRONTEND_PATH,
        frontend_src_path="src" if use_src_directory else "",
        backend_path=settings.BACKEND_PATH,
        backend_src_path="src",
        contracts_path=settings.CONTRACTS_PATH,
    )


def _join(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def resolve_base_directory(category: PathCategory, context: PathContext) -> str:
    """Base directory of a category under the given project shape ('' is the root)."""
    route = CATEGORY_CONFIG[category]
    frontend_root = _join(context.frontend_path, context.frontend_src_path)

    if route.domain == "frontend":
        if context.has_frontend:
            if category == "frontend-public":
                return _join(context.frontend_path, "public")
            return _join(frontend_root, route.subdir)
        # Standalone library layout
        return _join("src", route.subdir)

    if route.domain == "backend":
        if context.has_backend:
            return _join(context.backend_path, context.backend_src_path, route.subdir)
        if context.has_frontend:
            # Backend code lands in the app framework's API routes or lib
            if category == "backend-routes":
                return _join(frontend_root, "app", "api")
            return _join(frontend_root, "lib")
        return "src/lib"

    if route.domain == "contract":
        return _join(context.contracts_path, route.subdir)

    return route.subdir


def normalize_path(path: str) -> str:
    """
    POSIX-normalize a generated path relative to the project root.

    Raises:
        UnsafePathError: the path is empty, absolute or escapes the root.
    """
    cleaned = path.replace("\\", "/").strip()
    if not cleaned or cleaned.startswith("/") or re.match(r"^[A-Za-z]:/", cleaned):
        raise UnsafePathError(f"Generated path '{path}' must be relative to the project root")
    normalized = posixpath.normpath(cleaned)
    if normalized in (".", "") or normalized == ".." or normalized.startswith("../"):
        raise UnsafePathError(f"Generated path '{path}' escapes the project root")
    return normalized


@lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    """'**' matches across segments, '*' within one segment, '?' one character."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def match_glob(path: str, pattern: str) -> bool:
    return _glob_regex(pattern).match(path.replace("\\", "/")) is not None


def _literal_prefix(pattern: str) -> str:
    """Directory part of a pattern before its first wildcard segment."""
    segments = pattern.split("/")
    literal: list[str] = []
    for segment in segments[:-1]:
        if any(ch in segment for ch in "*?"):
            break
        literal.append(segment)
    return "/".join(literal)


def apply_path_mappings(
    file: GeneratedFile,
    mappings: Mapping[str, PathCategory],
) -> GeneratedFile:
    """
    Assign a category to an uncategorized file from the plugin's glob mappings.

    The first matching pattern wins. The file keeps its path relative to the
    pattern's literal directory prefix, so 'src/hooks/**' turns
    'src/hooks/useX.ts' into 'useX.ts' under the hooks directory.
    """
    if file.category is not None or not mappings:
        return file
    path = file.path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    for pattern, category in mappings.items():
        if match_glob(path, pattern):
            prefix = _literal_prefix(pattern)
            relative = path[len(prefix) + 1:] if prefix and path.startswith(prefix + "/") else path
            return file.model_copy(update={"path": relative, "category": category})
    return file


def resolve_output_path(file: GeneratedFile, context: PathContext) -> str:
    """Final, normalized path of a file."""
    relative = normalize_path(file.path)
    if file.category is None:
        return relative
    base = resolve_base_directory(file.category, context)
    return normalize_path(_join(base, relative)) if base else relative


def route_output(
    output: CodegenOutput,
    mappings: Mapping[str, PathCategory],
    context: PathContext,
) -> CodegenOutput:
    """
    Return a copy of the output with every file at its final path.

    Routed files carry no category. Doc paths are normalized but not
    categorized.

    Raises:
        UnsafePathError: a file or doc path is unsafe.
    """
    routed_files = []
    for file in output.files:
        mapped = apply_path_mappings(file, mappings)
        routed_files.append(GeneratedFile(
            path=resolve_output_path(mapped, context),
            content=mapped.content,
        ))
    routed_docs = [
        doc.model_copy(update={"path": normalize_path(doc.path)})
        for doc in output.docs
    ]
    return output.model_copy(update={"files": routed_files, "docs": routed_docs})
