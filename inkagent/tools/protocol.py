"""Invocation wire grammar and JSON-RPC observation envelopes.

The model requests a capability with a tag-wrapped JSON object::

    <tool_call name="search_articles">
    {"query": "..."}
    </tool_call>

An optional ``id="..."`` attribute on the open tag carries the correlation
token echoed back in the observation envelope.
"""

from __future__ import annotations

import json
from typing import Any

from .types import InvocationResult

TOOL_CALL_OPEN = "<tool_call"
TOOL_CALL_CLOSE = "</tool_call>"

JSONRPC_VERSION = "2.0"
JSONRPC_SERVER_ERROR = -32000

NO_TOOLS_AVAILABLE = "当前没有可用的工具。"

# Parsed by tools.parser in tests; keep the two in sync.
TOOL_CALL_EXAMPLE = """<tool_call name="工具名称">
{
  "参数名1": "参数值1",
  "参数名2": "参数值2"
}
</tool_call>"""

INVOCATION_GUIDE = f"""**工具调用格式：**
当你需要调用工具时，请使用以下 XML 标签格式：

{TOOL_CALL_EXAMPLE}

**重要说明：**
1. 工具调用必须使用 JSON 格式传递参数
2. 参数值必须是有效的 JSON 类型（字符串、数字、布尔值、对象、数组）
3. 只有在需要查询知识库或执行特定操作时才调用工具
4. 如果问题可以通过通用知识回答，不需要调用工具"""

OBSERVATION_HEADER = "工具执行结果（Observation）："
OBSERVATION_FOOTER = "基于以上工具执行结果，请给出最终答案。"
CONTINUE_INSTRUCTION = "请基于上述工具执行结果，给出最终答案。"
TIMEOUT_ANSWER = "抱歉，处理过程超时。已达到最大迭代次数。"


def format_jsonrpc_response(
    call_id: str | int, result: InvocationResult
) -> dict[str, Any]:
    """Wrap an invocation result into a JSON-RPC 2.0 response envelope."""
    if result.ok:
        return {"jsonrpc": JSONRPC_VERSION, "result": result.data, "id": call_id}
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": JSONRPC_SERVER_ERROR, "message": result.error},
        "id": call_id,
    }


def render_observation(envelope: dict[str, Any]) -> str:
    """Human-readable observation appended to the model's running turn."""
    body = envelope["result"] if "result" in envelope else envelope.get("error")
    rendered = json.dumps(body, ensure_ascii=False, indent=2, default=str)
    return f"\n\n{OBSERVATION_HEADER}\n{rendered}\n\n{OBSERVATION_FOOTER}"
