"""Chat service: builds agents and model streams for the chat routes.

Routers stay thin; everything that needs settings, the registry or the model
provider goes through here.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from inkagent.agents import ReactAgent, history_messages
from inkagent.config.settings import Settings
from inkagent.domain.events import LifecycleEvent
from inkagent.llm.provider import ChatModelProvider
from inkagent.prompts import get_agent_system_prompt, get_knowledge_system_prompt
from inkagent.services.knowledge import (
    ArticleGroup,
    ArticleSearcher,
    HttpArticleSearcher,
    format_articles_context,
    format_retrieval_narration,
    group_hits,
)
from inkagent.streaming.sse import agent_event_stream
from inkagent.streaming.tags import (
    ReasoningTagFilter,
    StreamTagGenerator,
    tagged_stream,
)
from inkagent.tools.registry import ToolRegistry, tool_registry
from inkagent.utils.logger import api_logger

EMPTY_MESSAGE = "消息内容不能为空"

SEARCHING_NARRATION = "🔍 **正在查询向量数据库...**\n"
PROMPT_NARRATION = "📝 **正在构建提示词，注入文章上下文...**\n"
ANSWERING_NARRATION = "🤖 **正在基于检索到的文章思考回答...**\n"
SEARCH_FAILED_NARRATION = "⚠️ **知识库检索失败，将在没有文章上下文的情况下回答。**\n"


class ChatService:
    def __init__(
        self,
        settings: Settings,
        registry: ToolRegistry | None = None,
        model_provider: ChatModelProvider | None = None,
        searcher: ArticleSearcher | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry if registry is not None else tool_registry
        self._model_provider = model_provider
        self._searcher = searcher

    def _get_model_provider(self) -> ChatModelProvider:
        if self._model_provider is None:
            self.settings.validate_or_raise()
            self._model_provider = ChatModelProvider.from_settings(self.settings)
        return self._model_provider

    def _get_searcher(self) -> ArticleSearcher:
        if self._searcher is not None:
            return self._searcher
        return HttpArticleSearcher(
            self.settings.search_url, timeout=self.settings.search_timeout
        )

    def invalidate_provider(self) -> None:
        """Drop the cached model provider so the next request picks up new config."""
        api_logger.info("Invalidating model provider cache")
        self._model_provider = None

    def create_agent(self) -> ReactAgent:
        provider = self._get_model_provider()
        return ReactAgent(
            model_call=provider.stream,
            system_prompt=get_agent_system_prompt(self.registry.describe_all()),
            registry=self.registry,
            max_iterations=self.settings.max_iterations,
            verbose=self.settings.agent_verbose,
        )

    def stream_agent_chat(
        self, message: str, history: Sequence[Any] | None = None
    ) -> AsyncIterator[LifecycleEvent]:
        """Start an agent run and return its lifecycle events.

        Raises:
            ValueError: empty message or unusable model configuration.
        """
        _require_message(message)
        agent = self.create_agent()
        api_logger.info(
            "Agent chat",
            model=self._get_model_provider().get_model_name(),
            history=len(history or []),
        )
        return agent_event_stream(agent, message, history or [])

    def stream_knowledge_chat(
        self, question: str, history: Sequence[Any] | None = None
    ) -> AsyncIterator[bytes]:
        """Answer from the knowledge base as a tagged byte stream.

        Validation happens here, before the first byte is produced.

        Raises:
            ValueError: empty question or unusable model configuration.
        """
        _require_message(question)
        provider = self._get_model_provider()
        return self._knowledge_stream(provider, question, history or [])

    async def _knowledge_stream(
        self,
        provider: ChatModelProvider,
        question: str,
        history: Sequence[Any],
    ) -> AsyncIterator[bytes]:
        generator = StreamTagGenerator()
        yield generator.generate_think(SEARCHING_NARRATION)

        articles = await self._retrieve(question)
        if articles is None:
            narration = [SEARCH_FAILED_NARRATION]
            articles = []
        else:
            narration = [format_retrieval_narration(articles)]
        narration += [PROMPT_NARRATION, ANSWERING_NARRATION]

        messages = [
            SystemMessage(
                content=get_knowledge_system_prompt(format_articles_context(articles))
            ),
            *history_messages(history),
            HumanMessage(content=question),
        ]
        reasoning_filter = ReasoningTagFilter(
            self.settings.reasoning_open_marker,
            self.settings.reasoning_close_marker,
        )
        async for piece in tagged_stream(
            narration, provider.stream(messages), reasoning_filter
        ):
            yield piece

    async def _retrieve(self, question: str) -> list[ArticleGroup] | None:
        """Search the knowledge base; ``None`` means the search itself failed."""
        limit = self.settings.retrieval_limit
        try:
            hits = await self._get_searcher().search(question, limit)
        except Exception as e:
            api_logger.error(
                "Knowledge retrieval failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        articles = group_hits(hits, limit=limit)
        api_logger.info("Knowledge retrieval done", articles=len(articles))
        return articles


def _require_message(message: str) -> None:
    if not message or not message.strip():
        raise ValueError(EMPTY_MESSAGE)
