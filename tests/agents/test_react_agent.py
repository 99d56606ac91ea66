"""Tests for the reasoning loop and the events it reports."""

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk, HumanMessage, SystemMessage

from inkagent.agents import AgentState, ReactAgent, history_messages
from inkagent.domain.events import (
    ActionEvent,
    AnswerEvent,
    DoneEvent,
    ErrorEvent,
    EventType,
    ObservationEvent,
    ThoughtEvent,
)
from inkagent.tools import CONTINUE_INSTRUCTION, TIMEOUT_ANSWER

ECHO_CALL = '<tool_call name="echo" id="c1">{"text": "hi"}</tool_call>'


class Recorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)

    @property
    def types(self):
        return [event.type for event in self.events]


def _agent(model, registry, **kwargs):
    return ReactAgent(model, "system prompt", registry=registry, **kwargs)


@pytest.mark.asyncio
async def test_direct_answer_without_tool_calls(scripted_model, registry):
    model = scripted_model([["Paris ", "is the capital."]])
    sink = Recorder()

    state = await _agent(model, registry).run("capital of France?", on_event=sink)

    assert state is AgentState.ANSWERED
    assert sink.events == [
        ThoughtEvent(content="Paris "),
        ThoughtEvent(content="is the capital."),
        AnswerEvent(content="Paris is the capital."),
        DoneEvent(),
    ]
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_tool_call_then_answer(scripted_model, registry):
    model = scripted_model([["Let me check. ", ECHO_CALL], ["The echo said hi."]])
    sink = Recorder()

    state = await _agent(model, registry).run("echo hi", on_event=sink)

    assert state is AgentState.ANSWERED
    assert sink.types == [
        EventType.THOUGHT,
        EventType.THOUGHT,
        EventType.ACTION,
        EventType.OBSERVATION,
        EventType.THOUGHT,
        EventType.ANSWER,
        EventType.DONE,
    ]
    action = sink.events[2]
    assert action == ActionEvent(method="echo", params={"text": "hi"}, id="c1")
    assert sink.events[3] == ObservationEvent(
        envelope={"jsonrpc": "2.0", "result": "hi", "id": "c1"}
    )
    assert sink.events[5] == AnswerEvent(content="The echo said hi.")

    second_turn = model.calls[1]
    assert isinstance(second_turn[-2], AIMessage)
    assert second_turn[-2].content.startswith("Let me check. " + ECHO_CALL)
    assert '"hi"' in second_turn[-2].content
    assert second_turn[-1] == HumanMessage(content=CONTINUE_INSTRUCTION)


@pytest.mark.asyncio
async def test_unknown_tool_reported_as_error_envelope(scripted_model, registry):
    model = scripted_model([['<tool_call name="nope" id="9">{}</tool_call>'], ["ok"]])
    sink = Recorder()

    await _agent(model, registry).run("go", on_event=sink)

    observation = next(e for e in sink.events if isinstance(e, ObservationEvent))
    assert observation.envelope == {
        "jsonrpc": "2.0",
        "error": {"code": -32000, "message": "capability nope not found"},
        "id": 9,
    }


@pytest.mark.asyncio
async def test_iteration_limit_produces_timeout_answer(scripted_model, registry):
    model = scripted_model([[ECHO_CALL], [ECHO_CALL], [ECHO_CALL]])
    sink = Recorder()

    state = await _agent(model, registry, max_iterations=2).run("loop", on_event=sink)

    assert state is AgentState.TIMED_OUT
    assert len(model.calls) == 2
    assert [e.type for e in sink.events].count(EventType.ACTION) == 2
    assert sink.events[-2:] == [AnswerEvent(content=TIMEOUT_ANSWER), DoneEvent()]


@pytest.mark.asyncio
async def test_model_failure_reports_error_then_done(scripted_model, registry):
    model = scripted_model([["partial ", RuntimeError("upstream 502")]])
    sink = Recorder()

    state = await _agent(model, registry).run("hi", on_event=sink)

    assert state is AgentState.FAILED
    assert sink.events == [
        ThoughtEvent(content="partial "),
        ErrorEvent(message="upstream 502"),
        DoneEvent(),
    ]
    assert model.closed == 1


@pytest.mark.asyncio
async def test_empty_output_emits_only_done(scripted_model, registry):
    model = scripted_model([["", "   "]])
    sink = Recorder()

    state = await _agent(model, registry).run("hi", on_event=sink)

    assert state is AgentState.ANSWERED
    assert sink.events == [ThoughtEvent(content="   "), DoneEvent()]


@pytest.mark.asyncio
async def test_answer_falls_back_to_marker_stripping(scripted_model, registry):
    # Only an unparseable block: no calls, and whole-block stripping leaves nothing
    model = scripted_model([['<tool_call name="echo">not json</tool_call>']])
    sink = Recorder()

    await _agent(model, registry).run("hi", on_event=sink)

    assert sink.events[-2] == AnswerEvent(content="not json")


@pytest.mark.asyncio
async def test_unusual_call_ids_and_oversized_arguments_do_not_fail_the_run(
    scripted_model, registry
):
    huge_int = "9" * 5000
    model = scripted_model(
        [
            [
                f'<tool_call name="echo">{{"n": {huge_int}}}</tool_call>',
                '<tool_call name="echo" id="²">{"text": "hi"}</tool_call>',
            ],
            ["The echo said hi."],
        ]
    )
    sink = Recorder()

    state = await _agent(model, registry).run("echo hi", on_event=sink)

    assert state is AgentState.ANSWERED
    assert EventType.ERROR not in sink.types
    actions = [e for e in sink.events if isinstance(e, ActionEvent)]
    assert actions == [ActionEvent(method="echo", params={"text": "hi"}, id="²")]
    assert sink.events[-2:] == [AnswerEvent(content="The echo said hi."), DoneEvent()]


@pytest.mark.asyncio
async def test_message_chunks_are_accepted(scripted_model, registry):
    model = scripted_model([[AIMessageChunk(content="Hello"), AIMessageChunk(content="!")]])
    sink = Recorder()

    await _agent(model, registry).run("hi", on_event=sink)

    assert sink.events[-2] == AnswerEvent(content="Hello!")


@pytest.mark.asyncio
async def test_history_and_system_prompt_are_sent(scripted_model, registry):
    model = scripted_model([["ok"]])
    history = [
        {"role": "user", "content": "earlier question"},
        {"role": "assistant", "content": "earlier answer"},
    ]

    await _agent(model, registry).run("now", history=history)

    assert model.calls[0] == [
        SystemMessage(content="system prompt"),
        HumanMessage(content="earlier question"),
        AIMessage(content="earlier answer"),
        HumanMessage(content="now"),
    ]


@pytest.mark.asyncio
async def test_sync_sink_is_supported(scripted_model, registry):
    events = []
    model = scripted_model([["done"]])

    await _agent(model, registry).run("hi", on_event=events.append)

    assert [e.type for e in events] == [EventType.THOUGHT, EventType.ANSWER, EventType.DONE]


@pytest.mark.asyncio
async def test_sink_failure_ends_run_with_single_done(scripted_model, registry):
    events = []

    def flaky_sink(event):
        events.append(event)
        if isinstance(event, AnswerEvent):
            raise ConnectionError("client went away")

    model = scripted_model([["answer"]])

    state = await _agent(model, registry).run("hi", on_event=flaky_sink)

    assert state is AgentState.FAILED
    assert [e.type for e in events] == [
        EventType.THOUGHT,
        EventType.ANSWER,
        EventType.ERROR,
        EventType.DONE,
    ]
    assert events[2] == ErrorEvent(message="client went away")


@pytest.mark.asyncio
async def test_terminal_sink_failure_is_not_raised(scripted_model, registry):
    def closed_sink(event):
        raise ConnectionError("closed")

    model = scripted_model([["answer"]])

    state = await _agent(model, registry).run("hi", on_event=closed_sink)

    assert state is AgentState.FAILED


@pytest.mark.asyncio
async def test_every_turn_stream_is_closed(scripted_model, registry):
    model = scripted_model([[ECHO_CALL], ["final"]])

    await _agent(model, registry).run("hi")

    assert model.closed == 2


def test_max_iterations_must_be_positive(scripted_model, registry):
    with pytest.raises(ValueError):
        _agent(scripted_model([]), registry, max_iterations=0)


def test_history_messages_accepts_objects():
    class Turn:
        def __init__(self, role, content):
            self.role = role
            self.content = content

    messages = history_messages([Turn("user", "a"), Turn("assistant", "b")])

    assert messages == [HumanMessage(content="a"), AIMessage(content="b")]
