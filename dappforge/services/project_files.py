"""
Root project files rendered from the merged artifacts.

package.json carries the merged scripts and dependencies, .env.example the
merged env vars, and README.md (only when docs are enabled) an overview of
the nodes with an index of every generated doc.
"""

from __future__ import annotations

import json
import re

from dappforge.models.blueprint import Blueprint, BlueprintConfig
from dappforge.models.codegen import GeneratedFile, MergedEnvVar, ProjectTree
from dappforge.models.node_registry import PluginRegistry


def package_name(name: str) -> str:
    """npm-style package name: lower-case, whitespace collapsed to dashes."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return slug or "generated-app"


def render_package_json(tree: ProjectTree, config: BlueprintConfig) -> str:
    project = config.project
    manifest: dict = {
        "name": package_name(project.name),
        "version": project.version,
        "private": True,
    }
    if project.description:
        manifest["description"] = project.description
    if project.author:
        manifest["author"] = project.author
    manifest["license"] = project.license
    if project.keywords:
        manifest["keywords"] = list(project.keywords)

    manifest["scripts"] = {s.name: s.command for s in tree.scripts}
    manifest["dependencies"] = {d.name: d.version for d in tree.dependencies if not d.dev}
    manifest["devDependencies"] = {d.name: d.version for d in tree.dependencies if d.dev}

    return json.dumps(manifest, indent=2) + "\n"


def _env_block(var: MergedEnvVar) -> str:
    comment = f"# {var.description or var.key}"
    if var.required:
        comment += " (required)"
    if var.secret:
        comment += " [secret]"
    return f"{comment}\n{var.key}={var.default_value or ''}"


def render_env_example(tree: ProjectTree, config: BlueprintConfig) -> str:
    header = f"# Environment variables for {config.project.name}\n# Copy to .env and fill in the values\n"
    if not tree.env_vars:
        return header + "\n# No environment variables required\n"
    return header + "\n" + "\n\n".join(_env_block(v) for v in tree.env_vars) + "\n"


def render_readme(
    tree: ProjectTree,
    config: BlueprintConfig,
    blueprint: Blueprint,
    registry: PluginRegistry,
) -> str:
    project = config.project
    lines = [f"# {project.name}", ""]
    if project.description:
        lines += [project.description, ""]
    if config.network is not None:
        network = config.network
        kind = "testnet" if network.is_testnet else "mainnet"
        lines += [f"Network: {network.name} (chain id {network.chain_id}, {kind})", ""]

    lines += ["## Components", ""]
    for node in blueprint.nodes:
        plugin = registry.get(node.type)
        label = plugin.metadata.name if plugin is not None else node.type
        lines.append(f"- {label} (`{node.id}`)")
    lines.append("")

    if tree.scripts:
        lines += ["## Scripts", ""]
        for script in tree.scripts:
            suffix = f": {script.description}" if script.description else ""
            lines.append(f"- `npm run {script.name}`{suffix}")
        lines.append("")

    if tree.env_vars:
        lines += ["## Environment", "", "See `.env.example`.", ""]
        for var in tree.env_vars:
            marker = " (required)" if var.required else ""
            lines.append(f"- `{var.key}`{marker}")
        lines.append("")

    if tree.docs:
        lines += ["## Documentation", ""]
        for doc in tree.docs:
            lines.append(f"- [{doc.title}]({doc.path})")
        lines.append("")

    return "\n".join(lines)


def render_root_files(
    tree: ProjectTree,
    config: BlueprintConfig,
    blueprint: Blueprint,
    registry: PluginRegistry,
) -> list[GeneratedFile]:
    files = [
        GeneratedFile(path="package.json", content=render_package_json(tree, config)),
        GeneratedFile(path=".env.example", content=render_env_example(tree, config)),
    ]
    if config.generate_docs:
        files.append(GeneratedFile(
            path="README.md",
            content=render_readme(tree, config, blueprint, registry),
        ))
    return files
