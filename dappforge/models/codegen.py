"""
Codegen models: what plugins produce and what the compiler hands back.

A CodegenOutput is produced once per node. The compiler routes its files,
merges every output into a ProjectTree, and reports problems as
CompilationDiagnostics.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


PathCategory = Literal[
    # Frontend
    "frontend-app",
    "frontend-components",
    "frontend-hooks",
    "frontend-lib",
    "frontend-types",
    "frontend-styles",
    "frontend-public",
    # Backend
    "backend-routes",
    "backend-services",
    "backend-middleware",
    "backend-lib",
    "backend-types",
    # Contracts
    "contract",
    "contract-test",
    "contract-source",
    "contract-scripts",
    # Shared
    "docs",
    "root",
    "shared-types",
]


class CodegenModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Plugin output
# ---------------------------------------------------------------------------


class GeneratedFile(CodegenModel):
    path: str
    content: str
    # When set, the final path is resolved by the path router
    category: PathCategory | None = None


class EnvVarSpec(CodegenModel):
    key: str = Field(min_length=1)
    description: str = ""
    required: bool = True
    default_value: str | None = None
    secret: bool = False


class ScriptSpec(CodegenModel):
    name: str = Field(min_length=1)
    command: str
    description: str | None = None


class DocSpec(CodegenModel):
    path: str
    title: str
    content: str

    def render(self) -> str:
        return f"# {self.title}\n\n{self.content}"


class PackageDependency(CodegenModel):
    name: str = Field(min_length=1)
    version: str
    dev: bool = False


class CodegenOutput(CodegenModel):
    files: list[GeneratedFile] = Field(default_factory=list)
    env_vars: list[EnvVarSpec] = Field(default_factory=list)
    scripts: list[ScriptSpec] = Field(default_factory=list)
    docs: list[DocSpec] = Field(default_factory=list)
    dependencies: list[PackageDependency] = Field(default_factory=list)

    def add_file(self, path: str, content: str, category: PathCategory | None = None) -> None:
        self.files.append(GeneratedFile(path=path, content=content, category=category))

    def add_env_var(
        self,
        key: str,
        description: str,
        *,
        required: bool = True,
        default_value: str | None = None,
        secret: bool = False,
    ) -> None:
        self.env_vars.append(EnvVarSpec(
            key=key,
            description=description,
            required=required,
            default_value=default_value,
            secret=secret,
        ))

    def add_script(self, name: str, command: str, description: str | None = None) -> None:
        self.scripts.append(ScriptSpec(name=name, command=command, description=description))

    def add_doc(self, path: str, title: str, content: str) -> None:
        self.docs.append(DocSpec(path=path, title=title, content=content))

    def add_dependency(self, name: str, version: str, *, dev: bool = False) -> None:
        self.dependencies.append(PackageDependency(name=name, version=version, dev=dev))


# ---------------------------------------------------------------------------
# Compiler output
# ---------------------------------------------------------------------------


class MergedEnvVar(CodegenModel):
    key: str
    description: str = ""
    required: bool = False
    default_value: str | None = None
    secret: bool = False
    origins: list[str] = Field(default_factory=list)


class MergedScript(CodegenModel):
    name: str
    command: str
    description: str | None = None
    origins: list[str] = Field(default_factory=list)


class DocIndexEntry(CodegenModel):
    path: str
    title: str
    origins: list[str] = Field(default_factory=list)


class MergedDependency(CodegenModel):
    name: str
    version: str
    dev: bool = False
    origins: list[str] = Field(default_factory=list)


class ProjectTree(CodegenModel):
    """Final, conflict-free project: path -> content plus aggregated artifacts."""

    files: dict[str, str] = Field(default_factory=dict)
    # path -> node ids that contributed it
    origins: dict[str, list[str]] = Field(default_factory=dict)
    env_vars: list[MergedEnvVar] = Field(default_factory=list)
    scripts: list[MergedScript] = Field(default_factory=list)
    docs: list[DocIndexEntry] = Field(default_factory=list)
    dependencies: list[MergedDependency] = Field(default_factory=list)
    layers: list[list[str]] = Field(default_factory=list)

    def manifest(self) -> list[dict[str, int | str]]:
        """Path and size of every file, in path order."""
        return [
            {"path": path, "size": len(content.encode("utf-8"))}
            for path, content in self.files.items()
        ]


class NodeExecutionResult(CodegenModel):
    node_id: str
    node_type: str
    status: Literal["completed", "error"]
    output: CodegenOutput | None = None
    error: str | None = None
    execution_time_ms: int = 0


class CompilationDiagnostic(CodegenModel):
    level: Literal["error", "warning"] = "error"
    code: str
    message: str
    node_id: str | None = None
    field: str | None = None
    path: str | None = None
    plugin_ids: list[str] = Field(default_factory=list)


class CompilationResult(CodegenModel):
    success: bool
    tree: ProjectTree | None = None
    diagnostics: list[CompilationDiagnostic] = Field(default_factory=list)
    node_results: list[NodeExecutionResult] = Field(default_factory=list)
