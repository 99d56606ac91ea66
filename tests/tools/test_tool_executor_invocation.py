"""Tests for ToolExecutor: lookup, argument checks and failure conversion."""

import asyncio

import pytest

from inkagent.tools import (
    Capability,
    InvocationRequest,
    InvocationResult,
    ParameterSpec,
    ToolExecutor,
    ToolRegistry,
    format_jsonrpc_response,
)


def _request(name, arguments=None, call_id="call_1"):
    return InvocationRequest(id=call_id, capability_name=name, arguments=arguments or {})


@pytest.mark.asyncio
async def test_sync_handler_result_wrapped_as_success(registry):
    result, call_id = await ToolExecutor(registry).execute(
        _request("echo", {"text": "hi"})
    )

    assert result == InvocationResult.success("hi")
    assert call_id == "call_1"


@pytest.mark.asyncio
async def test_async_handler_is_awaited():
    async def handler(args):
        await asyncio.sleep(0)
        return {"sum": args["a"] + args["b"]}

    registry = ToolRegistry()
    registry.register(
        Capability(
            "add",
            "add numbers",
            {"a": ParameterSpec("number"), "b": ParameterSpec("number")},
            handler,
        )
    )

    result, _ = await ToolExecutor(registry).execute(_request("add", {"a": 1, "b": 2}))

    assert result.ok
    assert result.data == {"sum": 3}


@pytest.mark.asyncio
async def test_unknown_capability_is_a_failure(registry):
    result, call_id = await ToolExecutor(registry).execute(
        _request("missing", call_id=42)
    )

    assert not result.ok
    assert result.error == "capability missing not found"
    assert call_id == 42


@pytest.mark.asyncio
async def test_first_missing_required_parameter_reported():
    calls = []
    registry = ToolRegistry()
    registry.register(
        Capability(
            "multi",
            "needs several",
            {
                "alpha": ParameterSpec("string"),
                "beta": ParameterSpec("string", required=False),
                "gamma": ParameterSpec("string"),
                "delta": ParameterSpec("string"),
            },
            calls.append,
        )
    )

    result, _ = await ToolExecutor(registry).execute(_request("multi", {"alpha": "x"}))

    assert result == InvocationResult.failure("missing required parameter: gamma")
    assert calls == []


@pytest.mark.asyncio
async def test_optional_parameter_may_be_omitted():
    registry = ToolRegistry()
    registry.register(
        Capability(
            "opt",
            "optional only",
            {"limit": ParameterSpec("number", required=False)},
            lambda args: args.get("limit", 5),
        )
    )

    result, _ = await ToolExecutor(registry).execute(_request("opt"))

    assert result == InvocationResult.success(5)


@pytest.mark.asyncio
async def test_handler_exception_becomes_failure():
    def boom(args):
        raise RuntimeError("disk on fire")

    registry = ToolRegistry()
    registry.register(Capability("boom", "fails", {}, boom))

    result, _ = await ToolExecutor(registry).execute(_request("boom"))

    assert result == InvocationResult.failure("disk on fire")


@pytest.mark.asyncio
async def test_exception_without_message_uses_class_name():
    async def boom(args):
        raise KeyError()

    registry = ToolRegistry()
    registry.register(Capability("boom", "fails", {}, boom))

    result, _ = await ToolExecutor(registry).execute(_request("boom"))

    assert not result.ok
    assert result.error == "KeyError"


@pytest.mark.asyncio
async def test_handler_returned_failure_passes_through():
    registry = ToolRegistry()
    registry.register(
        Capability(
            "validate",
            "refuses",
            {},
            lambda args: InvocationResult.failure("limit 必须在 1-20 之间"),
        )
    )

    result, _ = await ToolExecutor(registry).execute(_request("validate"))

    assert result == InvocationResult.failure("limit 必须在 1-20 之间")


@pytest.mark.asyncio
async def test_cancellation_is_not_swallowed():
    async def hang(args):
        await asyncio.sleep(3600)

    registry = ToolRegistry()
    registry.register(Capability("hang", "never returns", {}, hang))

    task = asyncio.create_task(ToolExecutor(registry).execute(_request("hang")))
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


def test_jsonrpc_success_envelope():
    envelope = format_jsonrpc_response("call_1", InvocationResult.success({"a": 1}))
    assert envelope == {"jsonrpc": "2.0", "result": {"a": 1}, "id": "call_1"}


def test_jsonrpc_failure_envelope():
    envelope = format_jsonrpc_response(3, InvocationResult.failure("nope"))
    assert envelope == {
        "jsonrpc": "2.0",
        "error": {"code": -32000, "message": "nope"},
        "id": 3,
    }
