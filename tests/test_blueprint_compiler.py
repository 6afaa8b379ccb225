"""
End-to-end tests for blueprint compilation with the built-in plugins.
"""

import json

import pytest

from dappforge.errors import (
    CyclicDependencyError,
    GraphValidationError,
    MissingDependencyError,
    PathCollisionError,
    PluginExecutionError,
    SchemaError,
)
from dappforge.models.node_registry import PluginDependency
from dappforge.services.blueprint_compiler import (
    ROOT_FILES_ORIGIN,
    compile_blueprint,
    compile_blueprint_result,
    validate_blueprint,
)

from helpers import make_blueprint, make_edge, make_node, make_registry, mock_plugin

ROOT_FILES = {"package.json", ".env.example", "README.md"}


def plugin_files(tree) -> set[str]:
    """Paths written by plugins (everything but root files and docs)."""
    return {
        path for path, origins in tree.origins.items()
        if origins != [ROOT_FILES_ORIGIN] and not path.startswith("docs/")
    }


# ============================================================================
# Scenarios
# ============================================================================

class TestFrontendOnly:
    """A blueprint with only a frontend scaffold"""

    @pytest.mark.asyncio
    async def test_files_live_under_the_app(self):
        """Plugin files go under apps/web; root files sit at the root."""
        tree = await compile_blueprint(make_blueprint([make_node("fe", "frontend-scaffold")]))

        assert plugin_files(tree)
        assert all(path.startswith("apps/web/") for path in plugin_files(tree))
        assert ROOT_FILES <= set(tree.files)
        assert "apps/web/src/app/layout.tsx" in tree.files
        assert "apps/web/src/components/wallet-button.tsx" in tree.files
        assert "apps/web/next.config.js" in tree.files
        assert "docs/frontend/README.md" in tree.files
        assert tree.layers == [["fe"]]

    @pytest.mark.asyncio
    async def test_package_json_collects_scripts_and_dependencies(self):
        """The root package.json reflects merged scripts and dependencies."""
        tree = await compile_blueprint(make_blueprint([make_node("fe", "frontend-scaffold")], name="Web Shop"))

        manifest = json.loads(tree.files["package.json"])
        assert manifest["name"] == "web-shop"
        assert "dev" in manifest["scripts"]
        assert "next" in manifest["dependencies"]
        assert "typescript" in manifest["devDependencies"]
        assert tree.origins["package.json"] == [ROOT_FILES_ORIGIN]

    @pytest.mark.asyncio
    async def test_without_src_directory(self):
        """srcDirectory=false drops the src/ segment from frontend paths."""
        tree = await compile_blueprint(make_blueprint([
            make_node("fe", "frontend-scaffold", {"srcDirectory": False}),
        ]))

        assert "apps/web/app/layout.tsx" in tree.files
        assert not any(path.startswith("apps/web/src/") for path in tree.files)


class TestContractWithFrontend:
    """An ERC-721 contract with and without a frontend scaffold"""

    @pytest.mark.asyncio
    async def test_panel_lands_in_app_components(self):
        """With a scaffold the NFT panel is a component of the app."""
        tree = await compile_blueprint(make_blueprint(
            [make_node("nft", "erc721-stylus"), make_node("fe", "frontend-scaffold")],
            [make_edge("nft", "fe", "nft-out", "contract-in")],
        ))

        assert "apps/web/src/components/ERC721NFTPanel.tsx" in tree.files
        assert "apps/web/src/lib/erc721-nft.ts" in tree.files
        assert "apps/web/src/lib/cn.ts" in tree.files
        assert "contracts/src/lib.rs" in tree.files
        assert "contracts/Cargo.toml" in tree.files
        assert "scripts/deploy-erc721.ts" in tree.files
        assert tree.layers == [["nft"], ["fe"]]

    @pytest.mark.asyncio
    async def test_connected_contract_gets_hooks(self):
        """A wired contract's address feeds the scaffold's contract hooks."""
        tree = await compile_blueprint(make_blueprint(
            [make_node("nft", "erc721-stylus"), make_node("fe", "frontend-scaffold")],
            [make_edge("nft", "fe", "nft-out", "contract-in")],
        ))

        assert "NEXT_PUBLIC_NFT_ADDRESS" in tree.files["apps/web/src/hooks/useContracts.ts"]

    @pytest.mark.asyncio
    async def test_panel_without_scaffold(self):
        """Without a scaffold the same category resolves to the library layout."""
        tree = await compile_blueprint(make_blueprint([make_node("nft", "erc721-stylus")]))

        assert "src/components/ERC721NFTPanel.tsx" in tree.files
        assert "src/lib/cn.ts" in tree.files
        assert "contracts/src/lib.rs" in tree.files
        assert not any(path.startswith("apps/") for path in tree.files)

    @pytest.mark.asyncio
    async def test_env_example_lists_contract_variables(self):
        """Merged env vars end up in .env.example."""
        tree = await compile_blueprint(make_blueprint([make_node("nft", "erc721-stylus")]))

        env_example = tree.files[".env.example"]
        assert "NEXT_PUBLIC_NFT_ADDRESS=" in env_example
        assert "PRIVATE_KEY=" in env_example
        secret = next(v for v in tree.env_vars if v.key == "PRIVATE_KEY")
        assert secret.secret is True


class TestTelegramCollision:
    """Both Telegram plugins write a different shared bot client"""

    @pytest.mark.asyncio
    async def test_bot_client_collides(self):
        """The collision names the path and both plugins."""
        blueprint = make_blueprint([
            make_node("notify", "telegram-notifications"),
            make_node("commands", "telegram-commands"),
        ])

        with pytest.raises(PathCollisionError) as exc_info:
            await compile_blueprint(blueprint)

        err = exc_info.value
        assert err.path == "src/lib/telegram/bot-client.ts"
        assert err.plugin_ids == ["telegram-commands", "telegram-notifications"]
        assert err.node_ids == ["commands", "notify"]

    @pytest.mark.asyncio
    async def test_result_reports_instead_of_raising(self):
        """compile_blueprint_result returns the diagnostics and no tree."""
        blueprint = make_blueprint([
            make_node("notify", "telegram-notifications"),
            make_node("commands", "telegram-commands"),
        ])

        result = await compile_blueprint_result(blueprint)

        assert result.success is False
        assert result.tree is None
        assert result.diagnostics[0].code == "path_collision"
        assert result.diagnostics[0].path == "src/lib/telegram/bot-client.ts"


class TestMissingDependency:
    """A required plugin dependency with no producer in the blueprint"""

    @pytest.mark.asyncio
    async def test_fails_before_any_plugin_runs(self):
        """No generate() is called when a required producer type is absent."""
        log = []
        registry = make_registry(
            mock_plugin("x-plugin", log=log),
            mock_plugin("needs-x", log=log, plugin_dependencies=[PluginDependency(plugin_id="x-plugin", required=True)]),
            mock_plugin("bystander", log=log),
        )
        blueprint = make_blueprint([make_node("b", "bystander"), make_node("n", "needs-x")])

        with pytest.raises(MissingDependencyError) as exc_info:
            await compile_blueprint(blueprint, registry)

        assert exc_info.value.plugin_id == "x-plugin"
        assert exc_info.value.node_id == "n"
        assert log == []


# ============================================================================
# Pipeline properties
# ============================================================================

class TestCompilePipeline:
    """Tests for compile_blueprint as a whole"""

    def full_blueprint(self, generate_docs: bool = True):
        return make_blueprint(
            [
                make_node("auth", "wallet-auth", {"appName": "Shop"}),
                make_node("nft", "erc721-stylus", {"collectionName": "Shop Pass", "collectionSymbol": "PASS"}),
                make_node("fe", "frontend-scaffold", {"appName": "Shop"}),
                make_node("qa", "repo-quality-gates"),
            ],
            [make_edge("nft", "fe", "nft-out", "contract-in")],
            name="Shop",
            generate_docs=generate_docs,
        )

    @pytest.mark.asyncio
    async def test_compilation_is_idempotent(self):
        """Compiling the same blueprint twice gives byte-identical trees."""
        first = await compile_blueprint(self.full_blueprint())
        second = await compile_blueprint(self.full_blueprint(), max_workers=1)

        assert first.model_dump_json() == second.model_dump_json()

    @pytest.mark.asyncio
    async def test_full_blueprint_merges_cleanly(self):
        """Shared env vars and dependencies merge across plugins."""
        tree = await compile_blueprint(self.full_blueprint())

        app_name = next(v for v in tree.env_vars if v.key == "NEXT_PUBLIC_APP_NAME")
        assert app_name.default_value == "Shop"
        assert app_name.origins == ["auth", "fe"]
        viem = next(d for d in tree.dependencies if d.name == "viem")
        assert viem.origins == ["auth", "fe", "nft"]
        assert ".github/workflows/ci.yml" in tree.files
        assert "apps/web/src/lib/auth/wallet-auth.ts" in tree.files
        assert list(tree.files) == sorted(tree.files)

    @pytest.mark.asyncio
    async def test_generate_docs_false_drops_docs_and_readme(self):
        """No docs, doc index or README when docs are disabled."""
        tree = await compile_blueprint(self.full_blueprint(generate_docs=False))

        assert tree.docs == []
        assert "README.md" not in tree.files
        assert not any(path.startswith("docs/") for path in tree.files)

    @pytest.mark.asyncio
    async def test_readme_indexes_docs(self):
        """The README links every generated doc."""
        tree = await compile_blueprint(self.full_blueprint())

        readme = tree.files["README.md"]
        for doc in tree.docs:
            assert f"]({doc.path})" in readme

    @pytest.mark.asyncio
    async def test_result_carries_node_results(self):
        """A successful result has the tree and one result per node."""
        result = await compile_blueprint_result(self.full_blueprint())

        assert result.success is True
        assert result.diagnostics == []
        assert [r.node_id for r in result.node_results] == result.tree.layers[0] + result.tree.layers[1]

    @pytest.mark.asyncio
    async def test_schema_error_is_raised_before_execution(self):
        """Invalid config stops compilation with a schema error."""
        blueprint = make_blueprint([make_node("qa", "repo-quality-gates", {"coverageThreshold": 101})])

        with pytest.raises(SchemaError) as exc_info:
            await compile_blueprint(blueprint)

        assert exc_info.value.field == "coverageThreshold"

    @pytest.mark.asyncio
    async def test_unsafe_plugin_path(self):
        """A plugin writing outside the project root fails as a plugin error."""
        registry = make_registry(mock_plugin("escaper", files=[{"path": "../outside.ts", "content": "x"}]))

        with pytest.raises(PluginExecutionError) as exc_info:
            await compile_blueprint(make_blueprint([make_node("e", "escaper")]), registry)

        assert exc_info.value.node_id == "e"
        assert exc_info.value.plugin_id == "escaper"

    @pytest.mark.asyncio
    async def test_plugin_cannot_overwrite_root_files(self):
        """A plugin's package.json collides with the generated one."""
        registry = make_registry(mock_plugin("packager", files=[{"path": "package.json", "content": "{}"}]))

        with pytest.raises(PathCollisionError) as exc_info:
            await compile_blueprint(make_blueprint([make_node("p", "packager")]), registry)

        assert exc_info.value.path == "package.json"
        assert exc_info.value.plugin_ids == ["dappforge", "packager"]
        assert exc_info.value.node_ids == ["dappforge", "p"]


class TestValidateBlueprint:
    """Tests for validate_blueprint"""

    def test_returns_plan_without_running_plugins(self):
        """Validation schedules the graph and runs nothing."""
        log = []
        registry = make_registry(mock_plugin("step", log=log))
        blueprint = make_blueprint([make_node("a", "step"), make_node("b", "step")], [make_edge("a", "b")])

        validated = validate_blueprint(blueprint, registry)

        assert validated.plan.as_lists() == [["a"], ["b"]]
        assert set(validated.configs) == {"a", "b"}
        assert log == []

    def test_unknown_type(self):
        """Unknown node types fail graph validation."""
        with pytest.raises(GraphValidationError):
            validate_blueprint(make_blueprint([make_node("x", "no-such-plugin")]))

    def test_cycle(self):
        """Cycles are reported before execution."""
        registry = make_registry(mock_plugin("step"))
        blueprint = make_blueprint(
            [make_node("a", "step"), make_node("b", "step")],
            [make_edge("a", "b"), make_edge("b", "a")],
        )

        with pytest.raises(CyclicDependencyError):
            validate_blueprint(blueprint, registry)
