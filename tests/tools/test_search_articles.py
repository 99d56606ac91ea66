"""Tests for the knowledge search capability and its HTTP searcher."""

import json

import httpx
import pytest

from inkagent.services.knowledge import (
    SEARCH_UNAVAILABLE,
    ArticleHit,
    HttpArticleSearcher,
    format_retrieval_narration,
    group_hits,
    make_search_articles_capability,
)
from inkagent.tools import InvocationRequest, ToolExecutor, ToolRegistry, build_registry


def hit(post_id, chunk_index, score, title=None):
    return ArticleHit(
        post_id=post_id,
        title=title or f"Post {post_id}",
        url=f"/posts/{post_id}",
        chunk_index=chunk_index,
        chunk_text=f"chunk {post_id}-{chunk_index}",
        score=score,
    )


class FakeSearcher:
    def __init__(self, hits=None, error=None):
        self.hits = hits or []
        self.error = error
        self.queries = []

    async def search(self, query, limit):
        self.queries.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.hits


def test_group_hits_orders_by_best_score_and_keeps_top_chunks():
    hits = [
        hit(1, 0, 0.50),
        hit(2, 0, 0.90),
        hit(1, 1, 0.70),
        hit(1, 2, 0.60),
        hit(1, 3, 0.55),
        hit(2, 1, 0.40),
    ]

    groups = group_hits(hits)

    assert [g.post_id for g in groups] == [2, 1]
    assert groups[0].score == 0.90
    assert [c.chunk_index for c in groups[1].chunks] == [1, 2, 3]


def test_group_hits_limit():
    hits = [hit(i, 0, i / 10) for i in range(1, 6)]
    assert [g.post_id for g in group_hits(hits, limit=2)] == [5, 4]


def test_retrieval_narration():
    text = format_retrieval_narration(group_hits([hit(1, 0, 0.873, title="Rust")]))
    assert text == "✅ **找到 1 篇相关文章：**\n\n1. **Rust**（相关度: 87.3%）"
    assert format_retrieval_narration([]).endswith("未找到相关文章")


@pytest.mark.asyncio
async def test_search_articles_success():
    searcher = FakeSearcher([hit(1, 0, 0.8), hit(1, 1, 0.9)])
    capability = make_search_articles_capability(searcher)

    result = await capability.handler({"query": "rust", "limit": 3})

    assert result.ok
    assert searcher.queries == [("rust", 3)]
    assert result.data["total_results"] == 1
    article = result.data["results"][0]
    assert article["post_id"] == 1
    assert [c["chunk_index"] for c in article["chunks"]] == [1, 0]


@pytest.mark.asyncio
async def test_search_articles_default_limit_and_no_results():
    searcher = FakeSearcher([])
    capability = make_search_articles_capability(searcher)

    result = await capability.handler({"query": "nothing"})

    assert searcher.queries == [("nothing", 5)]
    assert result.data == {"query": "nothing", "results": [], "message": "未找到相关文章"}


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", None, 12])
async def test_search_articles_rejects_empty_query(query):
    capability = make_search_articles_capability(FakeSearcher())
    result = await capability.handler({"query": query})
    assert result.error == "查询文本不能为空"


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, 21, -1, "ten", True])
async def test_search_articles_rejects_bad_limit(limit):
    capability = make_search_articles_capability(FakeSearcher())
    result = await capability.handler({"query": "q", "limit": limit})
    assert result.error == "limit 必须在 1-20 之间"


@pytest.mark.asyncio
async def test_search_articles_timeout_is_reported():
    searcher = FakeSearcher(error=httpx.ReadTimeout("timed out"))
    capability = make_search_articles_capability(searcher)

    result = await capability.handler({"query": "q"})

    assert result.error == SEARCH_UNAVAILABLE


@pytest.mark.asyncio
async def test_search_articles_through_executor_requires_query():
    registry = build_registry(FakeSearcher(), registry=ToolRegistry())

    result, _ = await ToolExecutor(registry).execute(
        InvocationRequest(id="c1", capability_name="search_articles", arguments={})
    )

    assert result.error == "missing required parameter: query"


def test_build_registry_respects_exclude():
    registry = build_registry(
        FakeSearcher(), registry=ToolRegistry(), exclude={"search_articles"}
    )
    assert len(registry) == 0


def test_build_registry_without_searcher_is_empty():
    assert build_registry(registry=ToolRegistry()).names() == []


@pytest.mark.asyncio
async def test_http_searcher_posts_query_and_parses_hits():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "postId": 9,
                        "title": "Hello",
                        "path": "/2024/01/01/hello",
                        "chunkIndex": 2,
                        "chunkText": "text",
                        "score": 0.5,
                    }
                ]
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        searcher = HttpArticleSearcher("http://search.local/query", client=client)
        hits = await searcher.search("hello", 4)

    assert seen == {
        "url": "http://search.local/query",
        "body": {"query": "hello", "limit": 4},
    }
    assert hits == [
        ArticleHit(
            post_id=9,
            title="Hello",
            url="/2024/01/01/hello",
            chunk_index=2,
            chunk_text="text",
            score=0.5,
        )
    ]


@pytest.mark.asyncio
async def test_http_searcher_raises_on_server_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    async with httpx.AsyncClient(transport=transport) as client:
        searcher = HttpArticleSearcher("http://search.local/query", client=client)
        with pytest.raises(httpx.HTTPStatusError):
            await searcher.search("hello", 4)


@pytest.mark.asyncio
async def test_http_searcher_without_url_fails():
    with pytest.raises(RuntimeError):
        await HttpArticleSearcher(None).search("hello", 4)
