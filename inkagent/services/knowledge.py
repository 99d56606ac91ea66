"""Knowledge base search: article hits, grouping and the ``search_articles`` capability.

Vector search itself runs in a separate service; this module only talks to it
over HTTP and shapes what comes back.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from inkagent.config.constants import DEFAULT_SEARCH_TIMEOUT
from inkagent.tools.types import Capability, InvocationResult, ParameterSpec
from inkagent.utils.logger import get_logger

logger = get_logger("inkagent.services.knowledge")

SEARCH_UNAVAILABLE = (
    "向量搜索服务暂时不可用，请稍后重试。如果问题持续，请检查 Qdrant 服务状态。"
)
EMPTY_QUERY = "查询文本不能为空"
LIMIT_OUT_OF_RANGE = "limit 必须在 1-20 之间"
NO_RESULTS = "未找到相关文章"
SEARCH_FAILED = "搜索失败"

DEFAULT_TOOL_LIMIT = 5
MAX_TOOL_LIMIT = 20
CHUNKS_PER_ARTICLE = 3


@dataclass(frozen=True)
class ArticleHit:
    """One matching chunk returned by the vector search service."""

    post_id: int
    title: str
    url: str | None
    chunk_index: int
    chunk_text: str
    score: float

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ArticleHit:
        post_id = raw.get("post_id", raw.get("postId"))
        if post_id is None:
            raise ValueError("search hit is missing post_id")
        return cls(
            post_id=int(post_id),
            title=str(raw.get("title") or f"文章 {post_id}"),
            url=raw.get("url") or raw.get("path") or None,
            chunk_index=int(raw.get("chunk_index", raw.get("chunkIndex", 0))),
            chunk_text=str(raw.get("chunk_text", raw.get("chunkText", ""))),
            score=float(raw.get("score", 0.0)),
        )


@dataclass
class ArticleGroup:
    post_id: int
    title: str
    url: str | None
    chunks: list[ArticleHit] = field(default_factory=list)

    @property
    def score(self) -> float:
        return max((chunk.score for chunk in self.chunks), default=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "post_id": self.post_id,
            "title": self.title,
            "url": self.url,
            "score": self.score,
            "chunks": [
                {
                    "chunk_index": chunk.chunk_index,
                    "chunk_text": chunk.chunk_text,
                    "score": chunk.score,
                }
                for chunk in self.chunks
            ],
        }


class ArticleSearcher(Protocol):
    async def search(self, query: str, limit: int) -> list[ArticleHit]: ...


class HttpArticleSearcher:
    """Searches articles through an HTTP endpoint accepting ``{query, limit}``.

    The endpoint answers with a JSON list of hits, or an object holding
    them under ``results``.
    """

    def __init__(
        self,
        search_url: str | None,
        *,
        timeout: float = DEFAULT_SEARCH_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.search_url = search_url
        self.timeout = timeout
        self._client = client

    async def search(self, query: str, limit: int) -> list[ArticleHit]:
        if not self.search_url:
            raise RuntimeError(
                "knowledge.search_url is not configured. Set it in "
                ".inkagent/config.json or via env KNOWLEDGE_SEARCH_URL."
            )

        payload = {"query": query, "limit": limit}
        if self._client is not None:
            response = await self._client.post(
                self.search_url, json=payload, timeout=self.timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.search_url, json=payload)
        response.raise_for_status()

        body = response.json()
        raw_hits = body.get("results", []) if isinstance(body, dict) else body
        if not isinstance(raw_hits, list):
            raise ValueError("search service returned an unexpected payload")

        hits = [ArticleHit.from_dict(item) for item in raw_hits]
        logger.info("Knowledge search finished", query=query, hits=len(hits))
        return hits


def group_hits(
    hits: list[ArticleHit],
    limit: int | None = None,
    chunks_per_article: int = CHUNKS_PER_ARTICLE,
) -> list[ArticleGroup]:
    """Group chunk hits by article.

    Articles are ordered by their best chunk score; each keeps its
    ``chunks_per_article`` highest scoring chunks.
    """
    groups: dict[int, ArticleGroup] = {}
    for hit in hits:
        group = groups.get(hit.post_id)
        if group is None:
            group = groups[hit.post_id] = ArticleGroup(
                post_id=hit.post_id, title=hit.title, url=hit.url
            )
        group.chunks.append(hit)

    ordered = sorted(groups.values(), key=lambda g: g.score, reverse=True)
    if limit is not None:
        ordered = ordered[:limit]
    for group in ordered:
        group.chunks.sort(key=lambda c: c.score, reverse=True)
        del group.chunks[chunks_per_article:]
    return ordered


def format_retrieval_narration(articles: list[ArticleGroup]) -> str:
    """Narration shown to the reader once retrieval is done."""
    if articles:
        listing = "\n".join(
            f"{index}. **{article.title}**（相关度: {article.score * 100:.1f}%）"
            for index, article in enumerate(articles, start=1)
        )
    else:
        listing = NO_RESULTS
    return f"✅ **找到 {len(articles)} 篇相关文章：**\n\n{listing}"


def format_articles_context(articles: list[ArticleGroup]) -> str:
    """Render grouped articles for injection into a system prompt."""
    if not articles:
        return "（未找到相关文章）"
    blocks = []
    for index, article in enumerate(articles, start=1):
        chunks = "\n\n".join(
            f"片段 {i}:\n{chunk.chunk_text}"
            for i, chunk in enumerate(article.chunks, start=1)
        )
        blocks.append(
            f"**文章 {index}**: {article.title}\n"
            f"相关度: {article.score * 100:.1f}%\n"
            f"URL: {article.url}\n"
            f"{chunks}"
        )
    return "\n\n---\n\n".join(blocks)


def make_search_articles_capability(searcher: ArticleSearcher) -> Capability:
    """Build the ``search_articles`` capability backed by ``searcher``."""

    async def search_articles(args: dict[str, Any]) -> InvocationResult:
        query = args.get("query")
        if not isinstance(query, str) or not query.strip():
            return InvocationResult.failure(EMPTY_QUERY)

        limit = args.get("limit")
        if limit is None:
            limit = DEFAULT_TOOL_LIMIT
        if (
            isinstance(limit, bool)
            or not isinstance(limit, int | float)
            or not 1 <= limit <= MAX_TOOL_LIMIT
        ):
            return InvocationResult.failure(LIMIT_OUT_OF_RANGE)

        try:
            hits = await searcher.search(query, int(limit))
        except httpx.TimeoutException:
            logger.error("Knowledge search timed out", query=query)
            return InvocationResult.failure(SEARCH_UNAVAILABLE)
        except httpx.HTTPError as e:
            logger.error("Knowledge search failed", query=query, error=str(e))
            return InvocationResult.failure(str(e) or SEARCH_FAILED)

        if not hits:
            return InvocationResult.success(
                {"query": query, "results": [], "message": NO_RESULTS}
            )

        articles = group_hits(hits)
        return InvocationResult.success(
            {
                "query": query,
                "results": [article.to_dict() for article in articles],
                "total_results": len(articles),
            }
        )

    return Capability(
        name="search_articles",
        description=(
            "在知识库中搜索与查询相关的文章。当用户询问关于博客文章、技术文档或"
            "知识库内容的问题时，使用此工具检索相关信息。"
        ),
        parameters={
            "query": ParameterSpec(
                type="string",
                description="搜索查询文本，描述用户想要查找的内容",
            ),
            "limit": ParameterSpec(
                type="number",
                description="返回结果数量限制，默认为 5",
                required=False,
            ),
        },
        handler=search_articles,
    )
