"""
Repository quality gates plugin.

Generates CI, linting, formatting, testing and pre-commit configuration at
the project root.
"""

from __future__ import annotations

import json
from typing import Literal

from pydantic import Field

from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput
from dappforge.models.context import ExecutionContext
from dappforge.models.node_registry import PluginMetadata, PluginPort, node_plugin
from dappforge.plugins.common import PACKAGE_VERSIONS, NodeConfig


class RepoQualityGatesConfig(NodeConfig):
    ci_provider: Literal["github-actions", "gitlab-ci", "circleci"] = "github-actions"
    test_framework: Literal["vitest", "jest", "mocha"] = "vitest"
    linter: Literal["eslint", "biome"] = "biome"
    formatter: Literal["prettier", "biome"] = "biome"
    typecheck: bool = True
    pre_commit_hooks: bool = True
    coverage_threshold: int = Field(default=80, ge=0, le=100)
    security_scanning: bool = True
    dependency_audit: bool = True


LINT_COMMANDS = {
    "biome": ("biome lint .", "biome lint --write ."),
    "eslint": ("eslint .", "eslint --fix ."),
}
FORMAT_COMMANDS = {
    "biome": ("biome format --write .", "biome format ."),
    "prettier": ("prettier --write .", "prettier --check ."),
}
TEST_COMMANDS = {
    "vitest": ("vitest run", "vitest run --coverage"),
    "jest": ("jest", "jest --coverage"),
    "mocha": ("mocha", "mocha --reporter spec"),
}


@node_plugin(
    metadata=PluginMetadata(
        id="repo-quality-gates",
        name="Repository Quality Gates",
        description="Generate CI/CD pipelines, testing, linting, and formatting configuration",
        category="quality",
        tags=("ci", "testing", "lint", "format", "quality"),
    ),
    config_schema=RepoQualityGatesConfig,
    ports=[
        PluginPort(id="config-out", name="Quality Config", direction="output", data_type="config"),
    ],
)
def repo_quality_gates(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
    config: RepoQualityGatesConfig = context.config
    project_name = context.blueprint_config.project.name
    output = CodegenOutput()

    if config.ci_provider == "github-actions":
        output.add_file(".github/workflows/ci.yml", _github_workflow(config, project_name), "root")
    elif config.ci_provider == "gitlab-ci":
        output.add_file(".gitlab-ci.yml", _gitlab_ci(config), "root")
    else:
        output.add_file(".circleci/config.yml", _circleci(config), "root")

    if config.linter == "biome" or config.formatter == "biome":
        output.add_file("biome.json", _biome_config(config), "root")
        output.add_dependency("@biomejs/biome", PACKAGE_VERSIONS["@biomejs/biome"], dev=True)
    if config.linter == "eslint":
        output.add_file("eslint.config.js", _eslint_config(), "root")
        output.add_dependency("eslint", PACKAGE_VERSIONS["eslint"], dev=True)
    if config.formatter == "prettier":
        output.add_file(".prettierrc", '{\n  "singleQuote": true,\n  "semi": true\n}\n', "root")
        output.add_file(".prettierignore", "dist/\n.next/\nnode_modules/\ncoverage/\ntarget/\n", "root")
        output.add_dependency("prettier", PACKAGE_VERSIONS["prettier"], dev=True)

    if config.test_framework == "vitest":
        output.add_file("vitest.config.ts", _vitest_config(config), "root")
        output.add_dependency("vitest", PACKAGE_VERSIONS["vitest"], dev=True)
        output.add_dependency("@vitest/coverage-v8", PACKAGE_VERSIONS["@vitest/coverage-v8"], dev=True)
    elif config.test_framework == "jest":
        output.add_file("jest.config.js", _jest_config(config), "root")
        output.add_dependency("jest", PACKAGE_VERSIONS["jest"], dev=True)
    else:
        output.add_dependency("mocha", PACKAGE_VERSIONS["mocha"], dev=True)

    if config.typecheck:
        output.add_file("tsconfig.json", _tsconfig(), "root")
        output.add_script("typecheck", "tsc --noEmit", "Run type checker")
        output.add_dependency("typescript", PACKAGE_VERSIONS["typescript"], dev=True)

    if config.pre_commit_hooks:
        output.add_file(".husky/pre-commit", _pre_commit_hook(config), "root")
        output.add_file(".lintstagedrc", _lint_staged(config), "root")
        output.add_script("prepare", "husky", "Set up git hooks")
        output.add_dependency("husky", PACKAGE_VERSIONS["husky"], dev=True)
        output.add_dependency("lint-staged", PACKAGE_VERSIONS["lint-staged"], dev=True)

    output.add_file(".editorconfig", _editor_config(), "root")

    lint, lint_fix = LINT_COMMANDS[config.linter]
    fmt, fmt_check = FORMAT_COMMANDS[config.formatter]
    test, test_coverage = TEST_COMMANDS[config.test_framework]
    output.add_script("lint", lint, "Run linter")
    output.add_script("lint:fix", lint_fix, "Fix lint errors")
    output.add_script("format", fmt, "Format code")
    output.add_script("format:check", fmt_check, "Check formatting")
    output.add_script("test", test, "Run tests")
    output.add_script("test:coverage", test_coverage, "Run tests with coverage")

    output.add_doc("docs/development/quality.md", "Code Quality Guidelines", _quality_docs(config))

    context.logger.info(
        "Generated repository quality gates (%s, %s)",
        config.ci_provider,
        config.test_framework,
    )
    return output


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _ci_steps(config: RepoQualityGatesConfig) -> list[str]:
    steps = ["pnpm lint", "pnpm format:check"]
    if config.typecheck:
        steps.append("pnpm typecheck")
    steps.append("pnpm test:coverage")
    if config.dependency_audit:
        steps.append("pnpm audit --audit-level high")
    return steps


def _github_workflow(config: RepoQualityGatesConfig, project_name: str) -> str:
    steps = "\n".join(f"      - run: {step}" for step in _ci_steps(config))
    security = """
  security:
    runs-on: ubuntu-latest
    permissions:
      security-events: write
    steps:
      - uses: actions/checkout@v4
      - uses: github/codeql-action/init@v3
        with:
          languages: javascript-typescript
      - uses: github/codeql-action/analyze@v3
""" if config.security_scanning else ""
    return f"""name: CI ({project_name})

on:
  push:
    branches: [main]
  pull_request:

jobs:
  quality:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - uses: pnpm/action-setup@v4
      - uses: actions/setup-node@v4
        with:
          node-version: 20
          cache: pnpm
      - run: pnpm install --frozen-lockfile
{steps}
{security}"""


def _gitlab_ci(config: RepoQualityGatesConfig) -> str:
    steps = "\n".join(f"    - {step}" for step in _ci_steps(config))
    return f"""image: node:20

quality:
  script:
    - corepack enable
    - pnpm install --frozen-lockfile
{steps}
"""


def _circleci(config: RepoQualityGatesConfig) -> str:
    steps = "\n".join(f"      - run: {step}" for step in _ci_steps(config))
    return f"""version: 2.1

jobs:
  quality:
    docker:
      - image: cimg/node:20.11
    steps:
      - checkout
      - run: corepack enable && pnpm install --frozen-lockfile
{steps}

workflows:
  ci:
    jobs:
      - quality
"""


def _biome_config(config: RepoQualityGatesConfig) -> str:
    return json.dumps({
        "$schema": "https://biomejs.dev/schemas/1.8.3/schema.json",
        "organizeImports": {"enabled": True},
        "linter": {"enabled": config.linter == "biome", "rules": {"recommended": True}},
        "formatter": {"enabled": config.formatter == "biome", "indentStyle": "space", "indentWidth": 2},
        "files": {"ignore": ["node_modules", ".next", "dist", "coverage", "target"]},
    }, indent=2) + "\n"


def _eslint_config() -> str:
    return """import js from '@eslint/js';

export default [
  js.configs.recommended,
  { ignores: ['node_modules/', '.next/', 'dist/', 'coverage/'] },
];
"""


def _vitest_config(config: RepoQualityGatesConfig) -> str:
    threshold = config.coverage_threshold
    return f"""import {{ defineConfig }} from 'vitest/config';

export default defineConfig({{
  test: {{
    coverage: {{
      provider: 'v8',
      thresholds: {{ lines: {threshold}, functions: {threshold}, branches: {threshold}, statements: {threshold} }},
    }},
  }},
}});
"""


def _jest_config(config: RepoQualityGatesConfig) -> str:
    threshold = config.coverage_threshold
    return f"""module.exports = {{
  testEnvironment: 'node',
  coverageThreshold: {{
    global: {{ lines: {threshold}, functions: {threshold}, branches: {threshold}, statements: {threshold} }},
  }},
}};
"""


def _tsconfig() -> str:
    return json.dumps({
        "compilerOptions": {
            "target": "ES2022",
            "module": "ESNext",
            "moduleResolution": "bundler",
            "strict": True,
            "skipLibCheck": True,
            "noEmit": True,
        },
        "exclude": ["node_modules", "dist", "coverage"],
    }, indent=2) + "\n"


def _pre_commit_hook(config: RepoQualityGatesConfig) -> str:
    typecheck = "pnpm typecheck\n" if config.typecheck else ""
    return f"""#!/usr/bin/env sh
npx lint-staged
{typecheck}"""


def _lint_staged(config: RepoQualityGatesConfig) -> str:
    lint_fix = "biome lint --write" if config.linter == "biome" else "eslint --fix"
    fmt = "biome format --write" if config.formatter == "biome" else "prettier --write"
    return json.dumps({
        "*.{js,jsx,ts,tsx}": [lint_fix, fmt],
        "*.{json,md,yml,yaml}": [fmt],
    }, indent=2) + "\n"


def _editor_config() -> str:
    return """root = true

[*]
indent_style = space
indent_size = 2
end_of_line = lf
charset = utf-8
trim_trailing_whitespace = true
insert_final_newline = true

[*.md]
trim_trailing_whitespace = false

[*.{rs,toml}]
indent_size = 4
"""


def _quality_docs(config: RepoQualityGatesConfig) -> str:
    rows = [
        f"| {config.linter} | Linting | `pnpm lint` |",
        f"| {config.formatter} | Formatting | `pnpm format` |",
        f"| {config.test_framework} | Testing | `pnpm test` |",
    ]
    if config.typecheck:
        rows.append("| TypeScript | Type Checking | `pnpm typecheck` |")
    table = "\n".join(rows)
    return f"""This project runs the following quality gates locally and in CI ({config.ci_provider}).

| Tool | Purpose | Command |
|------|---------|---------|
{table}

Coverage must stay at or above {config.coverage_threshold}%.
"""
