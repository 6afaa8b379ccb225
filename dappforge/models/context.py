"""
Per-run context handed to plugins.

PathContext is computed once per run from the node types present and never
changes afterwards. ExecutionContext is built per node by the executor and
is read-only for the plugin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict

from dappforge.models.blueprint import BlueprintConfig
from dappforge.models.codegen import CodegenOutput


class PathContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_types: frozenset[str]
    has_frontend: bool
    has_backend: bool
    has_contracts: bool
    frontend_path: str = "apps/web"
    # Empty when the frontend scaffold opts out of a src/ directory
    frontend_src_path: str = "src"
    backend_path: str = "apps/api"
    backend_src_path: str = "src"
    contracts_path: str = "contracts"


def _empty() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class ExecutionContext:
    blueprint_id: str
    run_id: str
    node_id: str
    blueprint_config: BlueprintConfig
    path_context: PathContext
    # Validated node config (an instance of the plugin's config schema)
    config: BaseModel
    logger: logging.LoggerAdapter
    node_outputs: Mapping[str, CodegenOutput] = field(default_factory=_empty)
    inputs: Mapping[str, tuple[CodegenOutput, ...]] = field(default_factory=_empty)

    def input(self, slot: str, default: CodegenOutput | None = None) -> CodegenOutput | None:
        """First producer output wired to a slot, or the default when none is available."""
        producers = self.inputs.get(slot)
        if not producers:
            return default
        return producers[0]
