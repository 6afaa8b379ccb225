"""
Tests for layer-parallel plugin execution.

Uses mock plugins that record start/end events to check that nodes of one
layer overlap, that layers never overlap, and that a failure stops the run
after its siblings finish.
"""

import pytest

from dappforge.errors import PluginExecutionError
from dappforge.models.codegen import CodegenOutput
from dappforge.models.node_registry import PluginDependency, PluginMetadata, node_plugin

from helpers import make_blueprint, make_edge, make_node, make_registry, mock_plugin, run_plan

FILE = {"path": "out.ts", "content": "export {}\n", "category": "frontend-lib"}


# ============================================================================
# Parallelism and ordering
# ============================================================================

class TestLayerExecution:
    """Tests for execution order across and within layers"""

    @pytest.mark.asyncio
    async def test_independent_nodes_overlap(self):
        """Nodes in the same layer start before any of them finishes."""
        log = []
        registry = make_registry(mock_plugin("slow", delay=0.05, log=log))
        blueprint = make_blueprint([make_node(n, "slow") for n in ("a", "b", "c")])

        results = await run_plan(blueprint, registry, max_workers=3)

        assert [r.node_id for r in results] == ["a", "b", "c"]
        assert [event for _, event in log[:3]] == ["start", "start", "start"]

    @pytest.mark.asyncio
    async def test_single_worker_serializes_a_layer(self):
        """With one worker each node finishes before the next starts."""
        log = []
        registry = make_registry(mock_plugin("slow", delay=0.01, log=log))
        blueprint = make_blueprint([make_node(n, "slow") for n in ("a", "b")])

        await run_plan(blueprint, registry, max_workers=1)

        assert [event for _, event in log] == ["start", "end", "start", "end"]

    @pytest.mark.asyncio
    async def test_dependents_wait_for_their_layer(self):
        """A downstream node starts only after every upstream node has ended."""
        log = []
        registry = make_registry(mock_plugin("slow", delay=0.02, log=log))
        blueprint = make_blueprint(
            [make_node("a", "slow"), make_node("b", "slow"), make_node("c", "slow")],
            [make_edge("a", "c")],
        )

        results = await run_plan(blueprint, registry, max_workers=4)

        assert [r.node_id for r in results] == ["a", "b", "c"]
        c_start = log.index(("c", "start"))
        assert log.index(("a", "end")) < c_start
        assert log.index(("b", "end")) < c_start

    @pytest.mark.asyncio
    async def test_results_carry_outputs(self):
        """Each result holds the node's output and status."""
        registry = make_registry(mock_plugin("writer", files=[FILE]))
        blueprint = make_blueprint([make_node("w", "writer")])

        results = await run_plan(blueprint, registry)

        assert results[0].status == "completed"
        assert results[0].node_type == "writer"
        assert results[0].output.files[0].path == "out.ts"

    @pytest.mark.asyncio
    async def test_sync_plugins_and_dict_results(self):
        """Plain functions run too, and dict results are coerced to CodegenOutput."""
        @node_plugin(metadata=PluginMetadata(id="plain", name="Plain", category="app"))
        def plain(node, context):
            return {"files": [{"path": f"{node.id}.ts", "content": "x"}]}

        blueprint = make_blueprint([make_node("p", "plain")])

        results = await run_plan(blueprint, make_registry(plain))

        assert isinstance(results[0].output, CodegenOutput)
        assert results[0].output.files[0].path == "p.ts"


# ============================================================================
# Context visibility
# ============================================================================

class TestExecutionContext:
    """Tests for what a plugin can see while it runs"""

    @pytest.mark.asyncio
    async def test_only_predecessor_outputs_are_visible(self):
        """A node sees its dependencies' outputs, not unrelated nodes."""
        seen = {}
        registry = make_registry(
            mock_plugin("writer", files=[FILE]),
            mock_plugin("reader", on_generate=lambda node, ctx: seen.update({node.id: set(ctx.node_outputs)})),
        )
        blueprint = make_blueprint(
            [make_node("a", "writer"), make_node("b", "writer"), make_node("r", "reader")],
            [make_edge("a", "r")],
        )

        await run_plan(blueprint, registry)

        assert seen == {"r": {"a"}}

    @pytest.mark.asyncio
    async def test_inputs_are_keyed_by_target_port(self):
        """An edge feeds the producer's output into the consumer's port slot."""
        seen = {}
        registry = make_registry(
            mock_plugin("writer", files=[FILE]),
            mock_plugin("reader", on_generate=lambda node, ctx: seen.update({"in": ctx.input("in")})),
        )
        blueprint = make_blueprint(
            [make_node("a", "writer"), make_node("r", "reader")],
            [make_edge("a", "r")],
        )

        await run_plan(blueprint, registry)

        assert seen["in"].files[0].path == "out.ts"

    @pytest.mark.asyncio
    async def test_optional_dependency_from_earlier_layer(self):
        """An optional producer that finished earlier fills its mapped slot."""
        seen = {}
        registry = make_registry(
            mock_plugin("producer", files=[FILE]),
            mock_plugin("base"),
            mock_plugin(
                "consumer",
                plugin_dependencies=[PluginDependency(plugin_id="producer", data_mapping={"out": "producer-data"})],
                on_generate=lambda node, ctx: seen.update({
                    "slot": ctx.input("producer-data"),
                    "visible": set(ctx.node_outputs),
                }),
            ),
        )
        blueprint = make_blueprint(
            [make_node("p", "producer"), make_node("x", "base"), make_node("c", "consumer")],
            [make_edge("x", "c")],
        )

        await run_plan(blueprint, registry)

        assert seen["slot"].files[0].path == "out.ts"
        assert seen["visible"] == {"p", "x"}

    @pytest.mark.asyncio
    async def test_optional_dependency_in_same_layer_is_absent(self):
        """A producer running in the same layer is not visible; the slot falls back to its default."""
        seen = {}
        registry = make_registry(
            mock_plugin("producer", files=[FILE]),
            mock_plugin(
                "consumer",
                plugin_dependencies=[PluginDependency(plugin_id="producer", data_mapping={"out": "producer-data"})],
                on_generate=lambda node, ctx: seen.update({"slot": ctx.input("producer-data", "fallback")}),
            ),
        )
        blueprint = make_blueprint([make_node("p", "producer"), make_node("c", "consumer")])

        await run_plan(blueprint, registry)

        assert seen["slot"] == "fallback"

    @pytest.mark.asyncio
    async def test_node_outputs_are_read_only_copies(self):
        """A plugin cannot alter what its dependencies produced."""
        def tamper(node, ctx):
            with pytest.raises(TypeError):
                ctx.node_outputs["other"] = CodegenOutput()
            ctx.node_outputs["a"].files.clear()

        registry = make_registry(
            mock_plugin("writer", files=[FILE]),
            mock_plugin("tamperer", on_generate=tamper),
        )
        blueprint = make_blueprint(
            [make_node("a", "writer"), make_node("t", "tamperer")],
            [make_edge("a", "t")],
        )

        results = await run_plan(blueprint, registry)

        assert len(results[0].output.files) == 1

    @pytest.mark.asyncio
    async def test_context_carries_run_metadata(self):
        """Plugins receive their node id, validated config and blueprint settings."""
        seen = {}

        def capture(node, ctx):
            seen.update(
                node_id=ctx.node_id,
                blueprint_id=ctx.blueprint_id,
                run_id=ctx.run_id,
                project=ctx.blueprint_config.project.name,
                has_frontend=ctx.path_context.has_frontend,
            )

        registry = make_registry(mock_plugin("capture", on_generate=capture))
        blueprint = make_blueprint([make_node("n", "capture")], name="Context App")

        await run_plan(blueprint, registry)

        assert seen == {
            "node_id": "n",
            "blueprint_id": "test-blueprint",
            "run_id": "test-run",
            "project": "Context App",
            "has_frontend": False,
        }


# ============================================================================
# Failures
# ============================================================================

class TestFailures:
    """Tests for plugin failures"""

    @pytest.mark.asyncio
    async def test_failure_stops_later_layers_after_siblings_finish(self):
        """A failing node lets its layer finish, then no further layer runs."""
        log = []
        registry = make_registry(
            mock_plugin("slow", delay=0.05, log=log),
            mock_plugin("broken", error=ValueError("boom"), log=log),
            mock_plugin("after", log=log),
        )
        blueprint = make_blueprint(
            [make_node("s", "slow"), make_node("b", "broken"), make_node("later", "after")],
            [make_edge("s", "later")],
        )

        with pytest.raises(PluginExecutionError) as exc_info:
            await run_plan(blueprint, registry, max_workers=2)

        err = exc_info.value
        assert err.node_id == "b"
        assert err.plugin_id == "broken"
        assert isinstance(err.cause, ValueError)
        assert err.code == "plugin_execution"
        assert ("s", "end") in log
        assert ("later", "start") not in log

    @pytest.mark.asyncio
    async def test_sibling_failures_are_attached(self):
        """When several nodes of a layer fail, the first in layer order is raised with the rest attached."""
        registry = make_registry(
            mock_plugin("broken", error=RuntimeError("first")),
            mock_plugin("also-broken", error=KeyError("second")),
        )
        blueprint = make_blueprint([make_node("x", "broken"), make_node("y", "also-broken")])

        with pytest.raises(PluginExecutionError) as exc_info:
            await run_plan(blueprint, registry)

        err = exc_info.value
        assert err.node_id == "x"
        assert [s.node_id for s in err.sibling_failures] == ["y"]
        assert [d.node_id for d in err.diagnostics] == ["x", "y"]

    @pytest.mark.asyncio
    async def test_unusable_return_value(self):
        """Returning something other than an output is a plugin failure."""
        @node_plugin(metadata=PluginMetadata(id="wrong", name="Wrong", category="app"))
        async def wrong(node, context):
            return "not an output"

        blueprint = make_blueprint([make_node("w", "wrong")])

        with pytest.raises(PluginExecutionError) as exc_info:
            await run_plan(blueprint, make_registry(wrong))

        assert isinstance(exc_info.value.cause, TypeError)
