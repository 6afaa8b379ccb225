"""
Blueprint models: the graph snapshot handed to the compiler.

Blueprints are created and edited by the canvas UI and arrive here as an
immutable snapshot per compilation run. The compiler only reads them.
Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged with the UI (camelCase JSON, snake_case attributes)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class NodePosition(WireModel):
    x: float = 0
    y: float = 0


class BlueprintNode(WireModel):
    id: str
    type: str
    config: dict[str, Any] = Field(default_factory=dict)
    # UI-only; never read by the compiler
    position: NodePosition | None = None


class EdgeEndpoint(WireModel):
    node_id: str
    port_id: str


class BlueprintEdge(WireModel):
    id: str
    source: EdgeEndpoint
    target: EdgeEndpoint


class ProjectMetadata(WireModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    version: str = Field(default="0.1.0", pattern=r"^\d+\.\d+\.\d+$")
    author: str | None = None
    license: Literal["MIT", "Apache-2.0", "GPL-3.0", "UNLICENSED"] = "MIT"
    keywords: list[str] = Field(default_factory=list, max_length=10)


class NetworkConfig(WireModel):
    chain_id: int = Field(gt=0)
    name: str
    rpc_url: str | None = None
    explorer_url: str | None = None
    is_testnet: bool = False


class BlueprintConfig(WireModel):
    project: ProjectMetadata
    network: NetworkConfig | None = None
    generate_docs: bool = True


class Blueprint(WireModel):
    id: str
    nodes: list[BlueprintNode] = Field(default_factory=list)
    edges: list[BlueprintEdge] = Field(default_factory=list)
    config: BlueprintConfig | None = None

    def resolved_config(self) -> BlueprintConfig:
        """Blueprint config, defaulting the project name to the blueprint id."""
        if self.config is not None:
            return self.config
        return BlueprintConfig(project=ProjectMetadata(name=self.id[:100] or "generated-app"))

    def node_index(self) -> dict[str, int]:
        """Position of each node id in the node list (first occurrence wins)."""
        index: dict[str, int] = {}
        for position, node in enumerate(self.nodes):
            index.setdefault(node.id, position)
        return index
