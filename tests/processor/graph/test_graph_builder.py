"""Tests for the ModuleGraphBuilder."""

import asyncio

import pytest

from docgraph.processor.errors import LoadError, ParseError, ResolutionError
from docgraph.processor.graph.graph_builder import ModuleGraphBuilder, build
from docgraph.processor.graph.models import CycleNotice, GraphNode, InvalidTransitionError, NodeState

pytestmark = [pytest.mark.processor, pytest.mark.graph]


# --- Fixtures ---


@pytest.fixture
def diamond(memory_loader):
	"""/a imports /b and /c, both import /d."""
	return memory_loader(
		{
			"/a.ts": "./b.ts\n./c.ts\n",
			"/b.ts": "./d.ts\n",
			"/c.ts": "./d.ts\n",
			"/d.ts": "",
		}
	)


# --- Test Cases ---


@pytest.mark.asyncio
async def test_single_module_without_imports(memory_loader, import_parser):
	"""An entry without imports yields one resolved node."""
	loader = memory_loader({"/a.ts": ""})
	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	assert list(result.nodes) == ["/a.ts"]
	assert result.entry.state is NodeState.RESOLVED
	assert result.entry.outgoing == []
	assert result.cycles == []


@pytest.mark.asyncio
async def test_diamond_loads_shared_dependency_once(diamond, import_parser):
	"""A module imported from two places is loaded and parsed exactly once."""
	result = await build("/a.ts", diamond, import_parser)

	assert result.ok
	assert set(result.nodes) == {"/a.ts", "/b.ts", "/c.ts", "/d.ts"}
	assert all(count == 1 for count in diamond.loads.values())
	assert import_parser.parses["/d.ts"] == 1
	assert {edge.from_specifier for edge in result.incoming("/d.ts")} == {"/b.ts", "/c.ts"}
	assert result.cycles == []


@pytest.mark.asyncio
async def test_discovery_order_is_breadth_first(diamond, import_parser):
	"""Discovery order follows outgoing edges in source order."""
	diamond.delays["/b.ts"] = 0.02
	result = await build("/a.ts", diamond, import_parser)

	assert result.discovery_order == ["/a.ts", "/b.ts", "/c.ts", "/d.ts"]


@pytest.mark.asyncio
async def test_two_module_cycle(memory_loader, import_parser):
	"""A -> B -> A terminates with both nodes resolved and one cycle notice."""
	loader = memory_loader({"/a.ts": "./b.ts\n", "/b.ts": "./a.ts\n"})
	result = await build("/a.ts", loader, import_parser)

	assert result.nodes["/a.ts"].state is NodeState.RESOLVED
	assert result.nodes["/b.ts"].state is NodeState.RESOLVED
	assert result.cycles == [CycleNotice("/b.ts", "/a.ts")]
	assert loader.loads == {"/a.ts": 1, "/b.ts": 1}


@pytest.mark.asyncio
async def test_self_import_is_a_cycle(memory_loader, import_parser):
	"""A module importing itself is recorded as a cycle."""
	loader = memory_loader({"/a.ts": "./a.ts\n"})
	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	assert result.cycles == [CycleNotice("/a.ts", "/a.ts")]
	assert [edge.to_specifier for edge in result.entry.outgoing] == ["/a.ts"]


@pytest.mark.asyncio
@pytest.mark.parametrize("slow", [None, "/b.ts", "/c.ts"])
async def test_cycle_between_siblings_is_reported(memory_loader, import_parser, slow):
	"""B and C importing each other below a common parent is a cycle, whatever the scheduling."""
	loader = memory_loader({"/a.ts": "./b.ts\n./c.ts\n", "/b.ts": "./c.ts\n", "/c.ts": "./b.ts\n"})
	if slow is not None:
		loader.delays[slow] = 0.02

	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	assert all(node.state is NodeState.RESOLVED for node in result.nodes.values())
	assert result.cycles == [CycleNotice("/c.ts", "/b.ts")]
	assert loader.loads == {"/a.ts": 1, "/b.ts": 1, "/c.ts": 1}


@pytest.mark.asyncio
async def test_diamond_without_back_edge_has_no_cycle(diamond, import_parser):
	"""Two paths to the same module are not a cycle."""
	diamond.delays["/c.ts"] = 0.02
	result = await build("/a.ts", diamond, import_parser)

	assert result.cycles == []


@pytest.mark.asyncio
async def test_missing_dependency_fails_only_that_node(memory_loader, import_parser):
	"""A load failure is contained in its node."""
	loader = memory_loader({"/a.ts": "./b.ts\n./missing.ts\n", "/b.ts": ""})
	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	assert result.nodes["/b.ts"].state is NodeState.RESOLVED
	missing = result.nodes["/missing.ts"]
	assert missing.state is NodeState.FAILED
	assert isinstance(missing.error, LoadError)
	assert missing.referrer == "/a.ts"
	assert [str(d) for d in result.diagnostics()] == ["Module not found: /missing.ts at /missing.ts"]


@pytest.mark.asyncio
async def test_parse_error_keeps_diagnostics(memory_loader, import_parser):
	"""A parse failure stores the ParseError and its diagnostics on the node."""
	loader = memory_loader({"/a.ts": "./b.ts\n", "/b.ts": "!error"})
	result = await build("/a.ts", loader, import_parser)

	node = result.nodes["/b.ts"]
	assert node.state is NodeState.FAILED
	assert isinstance(node.error, ParseError)
	assert [str(d) for d in node.diagnostics()] == ["Unexpected token at /b.ts:1:1"]
	assert result.failed_nodes() == [node]


@pytest.mark.asyncio
async def test_entry_failure(memory_loader, import_parser):
	"""A failing entry makes the result not ok and exposes the error."""
	loader = memory_loader({})
	result = await build("/a.ts", loader, import_parser)

	assert not result.ok
	assert isinstance(result.entry_error, LoadError)
	assert result.entry.state is NodeState.FAILED


@pytest.mark.asyncio
async def test_unresolvable_specifier_becomes_failed_node(memory_loader, import_parser):
	"""Bare specifiers fail under their raw name."""
	loader = memory_loader({"/a.ts": "lodash\n"})
	result = await build("/a.ts", loader, import_parser)

	node = result.nodes["lodash"]
	assert node.state is NodeState.FAILED
	assert isinstance(node.error, ResolutionError)
	assert node.error.referrer == "/a.ts"
	assert result.entry.outgoing[0].to_specifier == "lodash"
	assert loader.loads["lodash"] == 0


@pytest.mark.asyncio
async def test_concurrent_discoverers_share_one_visit(memory_loader, import_parser):
	"""Modules discovered while another visit is in flight are not loaded twice."""
	loader = memory_loader(
		{
			"/a.ts": "./b.ts\n./c.ts\n./e.ts\n",
			"/b.ts": "./d.ts\n",
			"/c.ts": "./d.ts\n",
			"/e.ts": "./d.ts\n",
			"/d.ts": "",
		}
	)
	gate = asyncio.Event()
	loader.gates["/d.ts"] = gate

	task = asyncio.create_task(build("/a.ts", loader, import_parser))
	for _ in range(20):
		await asyncio.sleep(0)
	assert loader.loads["/d.ts"] == 1
	gate.set()
	result = await task

	assert loader.loads["/d.ts"] == 1
	assert result.nodes["/d.ts"].state is NodeState.RESOLVED
	assert loader.max_in_flight > 1


@pytest.mark.asyncio
async def test_timeout_drops_unsettled_nodes(memory_loader, import_parser):
	"""Nodes still in flight when the timeout fires are not in the result."""
	loader = memory_loader({"/a.ts": "./b.ts\n./slow.ts\n", "/b.ts": "", "/slow.ts": ""})
	loader.gates["/slow.ts"] = asyncio.Event()

	result = await ModuleGraphBuilder(loader, import_parser).build("/a.ts", timeout=0.05)

	assert result.timed_out
	assert result.ok
	assert "/slow.ts" not in result.nodes
	assert result.nodes["/b.ts"].state is NodeState.RESOLVED
	assert all(node.state.is_terminal for node in result.nodes.values())


@pytest.mark.asyncio
async def test_unexpected_loader_error_is_wrapped(memory_loader, import_parser, mocker):
	"""OS errors from a loader become LoadErrors."""
	loader = memory_loader({"/a.ts": ""})
	mocker.patch.object(loader, "load", side_effect=PermissionError("denied"))

	result = await build("/a.ts", loader, import_parser)

	assert isinstance(result.entry_error, LoadError)
	assert "denied" in result.entry_error.message


@pytest.mark.asyncio
async def test_unexpected_parser_error_fails_only_that_module(memory_loader, import_parser, mocker):
	"""A parser crash in one dependency leaves its siblings and the entry intact."""
	loader = memory_loader({"/a.ts": "./b.ts\n./c.ts\n", "/b.ts": "", "/c.ts": ""})
	parse = import_parser.parse

	def crash_on_b(specifier, source_text, syntax):
		if specifier == "/b.ts":
			raise KeyError("grammar bug")
		return parse(specifier, source_text, syntax)

	mocker.patch.object(import_parser, "parse", side_effect=crash_on_b)

	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	failed = result.nodes["/b.ts"]
	assert failed.state is NodeState.FAILED
	assert isinstance(failed.error, ParseError)
	assert "grammar bug" in failed.error.message
	assert result.nodes["/c.ts"].state is NodeState.RESOLVED


@pytest.mark.asyncio
async def test_unexpected_resolver_error_becomes_failed_node(memory_loader, import_parser, mocker):
	"""Any resolver crash is recorded as a ResolutionError node."""
	loader = memory_loader({"/a.ts": "./b.ts\n"})
	mocker.patch.object(loader, "resolve", side_effect=LookupError("no table"))

	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	failed = result.nodes["./b.ts"]
	assert isinstance(failed.error, ResolutionError)
	assert failed.referrer == "/a.ts"


@pytest.mark.asyncio
async def test_async_parser_is_awaited(memory_loader, import_parser):
	"""Parsers may return awaitables."""

	class AsyncParser:
		async def parse(self, specifier, source_text, syntax):
			return import_parser.parse(specifier, source_text, syntax)

	loader = memory_loader({"/a.ts": "./b.ts\n", "/b.ts": ""})
	result = await build("/a.ts", loader, AsyncParser())

	assert result.ok
	assert result.nodes["/b.ts"].state is NodeState.RESOLVED


@pytest.mark.asyncio
async def test_async_resolver_is_awaited(memory_loader, import_parser, mocker):
	"""Resolvers may return awaitables; a shared target is still loaded once."""
	loader = memory_loader({"/a.ts": "./b.ts\n./c.ts\n", "/b.ts": "./d.ts\n", "/c.ts": "./d.ts\n", "/d.ts": ""})
	resolve = loader.resolve

	async def resolve_later(raw_specifier, referrer):
		await asyncio.sleep(0)
		return resolve(raw_specifier, referrer)

	mocker.patch.object(loader, "resolve", side_effect=resolve_later)

	result = await build("/a.ts", loader, import_parser)

	assert result.ok
	assert [edge.to_specifier for edge in result.entry.outgoing] == ["/b.ts", "/c.ts"]
	assert loader.loads["/d.ts"] == 1
	assert result.discovery_order == ["/a.ts", "/b.ts", "/c.ts", "/d.ts"]


@pytest.mark.unit
def test_node_transitions_only_move_forward():
	"""Settled nodes reject further transitions."""
	node = GraphNode(specifier="/a.ts")
	with pytest.raises(InvalidTransitionError):
		node.fail(LoadError("/a.ts", "boom"))

	node.begin_visit()
	node.fail(LoadError("/a.ts", "boom"))
	assert node.state is NodeState.FAILED
	with pytest.raises(InvalidTransitionError):
		node.begin_visit()
