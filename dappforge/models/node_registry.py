"""
Plugin registry: source of truth for what each node type accepts and produces.

Maps blueprint node type strings to a NodePlugin capability record: metadata,
config schema, ports, dependencies on other plugins, component path mappings
and the generate() function.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput, PathCategory
from dappforge.models.context import ExecutionContext


PluginCategory = Literal[
    "contracts",
    "payments",
    "agents",
    "app",
    "quality",
    "telegram",
    "intelligence",
    "superposition",
    "analytics",
]
PortDirection = Literal["input", "output"]
PortDataType = Literal["contract", "api", "types", "config", "code", "any"]

GenerateResult = Union[CodegenOutput, dict[str, Any]]
GenerateFn = Callable[
    [BlueprintNode, ExecutionContext],
    Union[GenerateResult, Awaitable[GenerateResult]],
]


class PluginMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    version: str = "0.1.0"
    description: str = ""
    category: PluginCategory
    tags: tuple[str, ...] = ()


class PluginPort(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    direction: PortDirection
    data_type: PortDataType = "any"
    required: bool = False


class PluginDependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    plugin_id: str
    required: bool = False
    # producer port id -> consumer slot
    data_mapping: dict[str, str] = Field(default_factory=dict)


class EmptyConfig(BaseModel):
    model_config = ConfigDict(extra="allow")


class NodePlugin(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    metadata: PluginMetadata
    config_schema: type[BaseModel] = EmptyConfig
    ports: tuple[PluginPort, ...] = ()
    dependencies: tuple[PluginDependency, ...] = ()
    # glob pattern -> category, evaluated in declaration order
    component_path_mappings: dict[str, PathCategory] = Field(default_factory=dict)
    generate: GenerateFn

    @property
    def id(self) -> str:
        return self.metadata.id

    def port(self, port_id: str) -> PluginPort | None:
        return next((p for p in self.ports if p.id == port_id), None)

    @property
    def input_ports(self) -> list[PluginPort]:
        return [p for p in self.ports if p.direction == "input"]

    @property
    def required_dependencies(self) -> list[PluginDependency]:
        return [d for d in self.dependencies if d.required]

    @property
    def optional_dependencies(self) -> list[PluginDependency]:
        return [d for d in self.dependencies if not d.required]


def node_plugin(
    *,
    metadata: PluginMetadata,
    config_schema: type[BaseModel] = EmptyConfig,
    ports: Iterable[PluginPort] = (),
    dependencies: Iterable[PluginDependency] = (),
    component_path_mappings: dict[str, PathCategory] | None = None,
) -> Callable[[GenerateFn], NodePlugin]:
    """
    Decorator that turns a generate function into a NodePlugin record.

    Usage:
        @node_plugin(metadata=PluginMetadata(id="my-node", name="My Node", category="app"))
        def my_node(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
            output = CodegenOutput()
            output.add_file("hello.ts", "export {}", "frontend-lib")
            return output
    """
    def decorator(fn: GenerateFn) -> NodePlugin:
        return NodePlugin(
            metadata=metadata,
            config_schema=config_schema,
            ports=tuple(ports),
            dependencies=tuple(dependencies),
            component_path_mappings=dict(component_path_mappings or {}),
            generate=fn,
        )
    return decorator


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class PluginRegistry:
    """Node type -> NodePlugin. Optionally restricted to an allow-list of plugin ids."""

    def __init__(self, allowed_plugin_ids: Iterable[str] | None = None):
        self._plugins: dict[str, NodePlugin] = {}
        self._allowed = frozenset(allowed_plugin_ids) if allowed_plugin_ids else frozenset()

    def register(self, plugin: NodePlugin) -> NodePlugin:
        plugin_id = plugin.id
        if self._allowed and plugin_id not in self._allowed:
            raise ValueError(f"Plugin '{plugin_id}' is not in the allowed plugins list")
        if plugin_id in self._plugins:
            raise ValueError(f"Plugin '{plugin_id}' is already registered")
        self._plugins[plugin_id] = plugin
        return plugin

    def get(self, node_type: str) -> NodePlugin | None:
        return self._plugins.get(node_type)

    def get_or_raise(self, node_type: str) -> NodePlugin:
        plugin = self._plugins.get(node_type)
        if plugin is None:
            raise KeyError(f"Plugin '{node_type}' not found in registry")
        return plugin

    def has(self, node_type: str) -> bool:
        return node_type in self._plugins

    def ids(self) -> list[str]:
        return list(self._plugins)

    def by_category(self, category: PluginCategory) -> list[NodePlugin]:
        return [p for p in self._plugins.values() if p.metadata.category == category]

    def __iter__(self):
        return iter(self._plugins.values())

    def __len__(self) -> int:
        return len(self._plugins)


_default_registry: PluginRegistry | None = None


def get_default_registry() -> PluginRegistry:
    """Registry populated with the built-in plugin catalog."""
    global _default_registry
    if _default_registry is None:
        from dappforge.plugins.catalog import BUILTIN_PLUGINS

        registry = PluginRegistry()
        for plugin in BUILTIN_PLUGINS:
            registry.register(plugin)
        _default_registry = registry
    return _default_registry
