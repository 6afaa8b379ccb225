"""
Plugin catalog API endpoints.
"""

from typing import Any, Dict, List

from fastapi import APIRouter

from dappforge.models.node_registry import NodePlugin, get_default_registry

router = APIRouter(prefix="/plugins")


def describe_plugin(plugin: NodePlugin) -> Dict[str, Any]:
    """Wire description of a plugin (everything but its generate function)."""
    return {
        "metadata": plugin.metadata.model_dump(),
        "ports": [
            {
                "id": port.id,
                "name": port.name,
                "direction": port.direction,
                "dataType": port.data_type,
                "required": port.required,
            }
            for port in plugin.ports
        ],
        "dependencies": [
            {
                "pluginId": dep.plugin_id,
                "required": dep.required,
                "dataMapping": dict(dep.data_mapping),
            }
            for dep in plugin.dependencies
        ],
        "componentPathMappings": dict(plugin.component_path_mappings),
        "configSchema": plugin.config_schema.model_json_schema(by_alias=True),
    }


@router.get("")
async def list_plugins() -> List[Dict[str, Any]]:
    """List every registered plugin with its ports and dependencies."""
    return [describe_plugin(p) for p in get_default_registry()]
