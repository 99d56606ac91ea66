"""Tests for extracting tool calls from model output."""

from inkagent.tools import parse_tool_calls, strip_tool_call_markers, strip_tool_calls


def test_no_calls_in_plain_text():
    assert parse_tool_calls("Just an answer, nothing to run.") == []


def test_single_call_with_generated_id():
    text = '我来查一下。\n<tool_call name="echo">\n{"text": "hi"}\n</tool_call>'

    (request,) = parse_tool_calls(text)

    assert request.capability_name == "echo"
    assert request.arguments == {"text": "hi"}
    assert isinstance(request.id, str)
    assert request.id.startswith("call_")
    assert len(request.id) == len("call_") + 8


def test_calls_returned_in_textual_order():
    text = (
        '<tool_call name="first">{"n": 1}</tool_call> then '
        '<tool_call name="second">{"n": 2}</tool_call>'
    )

    requests = parse_tool_calls(text)

    assert [r.capability_name for r in requests] == ["first", "second"]
    assert requests[0].id != requests[1].id


def test_explicit_id_attribute_is_kept():
    text = '<tool_call name="echo" id="abc-1">{"text": "x"}</tool_call>'
    (request,) = parse_tool_calls(text)
    assert request.id == "abc-1"


def test_numeric_id_attribute_becomes_int():
    text = "<tool_call name='echo' id='7'>{}</tool_call>"
    (request,) = parse_tool_calls(text)
    assert request.id == 7
    assert request.arguments == {}


def test_non_ascii_digit_id_stays_a_string():
    text = (
        '<tool_call name="first" id="²">{}</tool_call>'
        '<tool_call name="second" id="3">{}</tool_call>'
    )

    requests = parse_tool_calls(text)

    assert [(r.capability_name, r.id) for r in requests] == [("first", "²"), ("second", 3)]


def test_overlong_numeric_id_stays_a_string():
    long_id = "9" * 5000
    text = f'<tool_call name="echo" id="{long_id}">{{}}</tool_call>'

    (request,) = parse_tool_calls(text)

    assert request.id == long_id


def test_arguments_json_decoder_limits_skip_the_block():
    huge_int = "9" * 5000
    deep = "[" * 100_000 + "]" * 100_000
    text = (
        f'<tool_call name="big">{{"n": {huge_int}}}</tool_call>'
        f'<tool_call name="deep">{{"n": {deep}}}</tool_call>'
        '<tool_call name="good">{"text": "ok"}</tool_call>'
    )

    requests = parse_tool_calls(text)

    assert [r.capability_name for r in requests] == ["good"]


def test_braces_inside_strings_do_not_end_object():
    text = '<tool_call name="echo">{"text": "a } b { \\" }"}</tool_call>'
    (request,) = parse_tool_calls(text)
    assert request.arguments == {"text": 'a } b { " }'}


def test_nested_objects():
    text = '<tool_call name="cfg">{"a": {"b": {"c": [1, 2]}}}</tool_call>'
    (request,) = parse_tool_calls(text)
    assert request.arguments == {"a": {"b": {"c": [1, 2]}}}


def test_malformed_block_is_skipped_and_later_block_found():
    text = (
        '<tool_call name="bad">{"text": oops}</tool_call>\n'
        '<tool_call name="good">{"text": "ok"}</tool_call>'
    )

    requests = parse_tool_calls(text)

    assert [r.capability_name for r in requests] == ["good"]


def test_missing_name_is_skipped():
    assert parse_tool_calls('<tool_call>{"a": 1}</tool_call>') == []


def test_missing_close_marker_is_skipped():
    text = '<tool_call name="echo">{"text": "hi"}'
    assert parse_tool_calls(text) == []


def test_non_object_arguments_are_skipped():
    assert parse_tool_calls('<tool_call name="echo">["hi"]</tool_call>') == []


def test_unterminated_open_then_valid_block():
    text = (
        '<tool_call name="echo" {"text": "x"}\n'
        '<tool_call name="echo">{"text": "y"}</tool_call>'
    )
    requests = parse_tool_calls(text)
    assert [r.arguments for r in requests] == [{"text": "y"}]


def test_unknown_capability_names_are_not_filtered():
    (request,) = parse_tool_calls('<tool_call name="nope">{}</tool_call>')
    assert request.capability_name == "nope"


def test_similar_tag_names_are_ignored():
    assert parse_tool_calls('<tool_calls name="echo">{}</tool_calls>') == []


def test_strip_tool_calls_removes_whole_blocks():
    text = 'Before <tool_call name="echo">{"text": "hi"}</tool_call> after'
    assert strip_tool_calls(text) == "Before  after"


def test_strip_tool_calls_drops_unterminated_tail():
    assert strip_tool_calls('Answer.\n<tool_call name="echo">{"te') == "Answer."


def test_strip_markers_keeps_wrapped_text():
    text = '<tool_call name="echo">{"text": "hi"}</tool_call>'
    assert strip_tool_call_markers(text) == '{"text": "hi"}'
