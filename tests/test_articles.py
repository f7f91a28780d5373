"""
Article endpoint tests — CRUD with author-only writes, favorites and the
follow feed (pagination, clamping and ordering).
"""
import pytest
from httpx import AsyncClient


async def _publish(client: AsyncClient, user: dict, title: str = "Title", content: str = "Body") -> dict:
    resp = await client.post("/api/v1/articles", headers=user["headers"], json={
        "title": title,
        "content": content,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _follow(client: AsyncClient, follower: dict, target: dict) -> None:
    resp = await client.post(
        f"/api/v1/users/{follower['id']}/following/{target['id']}", headers=follower["headers"]
    )
    assert resp.status_code == 204


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com", "Ada", "Lovelace")
    article = await _publish(async_client, ada, "Notes on the Engine", "Analytical.")
    assert article["title"] == "Notes on the Engine"
    assert article["author_id"] == ada["id"]
    assert article["author_name"] == "Ada Lovelace"
    assert article["favorited_count"] == 0
    assert article["publish_date"] is not None
    assert article["last_updated"] is not None


@pytest.mark.asyncio
async def test_create_article_requires_authentication(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/articles", json={"title": "T", "content": "C"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_article_empty_title_returns_422(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    resp = await async_client.post("/api/v1/articles", headers=ada["headers"], json={
        "title": "", "content": "C",
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_article_is_public(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    article = await _publish(async_client, ada)
    resp = await async_client.get(f"/api/v1/articles/{article['id']}")
    assert resp.status_code == 200
    assert resp.json()["id"] == article["id"]


@pytest.mark.asyncio
async def test_get_article_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/articles/99999")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_article_by_author(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    article = await _publish(async_client, ada, "Draft", "Old")
    resp = await async_client.put(f"/api/v1/articles/{article['id']}", headers=ada["headers"], json={
        "title": "Final", "content": "New",
    })
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["title"] == "Final"
    assert updated["content"] == "New"
    assert updated["last_updated"] >= article["last_updated"]


@pytest.mark.asyncio
async def test_update_article_by_other_user_is_forbidden(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    bob = await make_user("bob@example.com")
    article = await _publish(async_client, ada)
    resp = await async_client.put(f"/api/v1/articles/{article['id']}", headers=bob["headers"], json={
        "title": "Mine now", "content": "x",
    })
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_delete_article(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    bob = await make_user("bob@example.com")
    article = await _publish(async_client, ada)

    resp = await async_client.delete(f"/api/v1/articles/{article['id']}", headers=bob["headers"])
    assert resp.status_code == 403

    resp = await async_client.delete(f"/api/v1/articles/{article['id']}", headers=ada["headers"])
    assert resp.status_code == 204
    assert (await async_client.get(f"/api/v1/articles/{article['id']}")).status_code == 404

    resp = await async_client.delete(f"/api/v1/articles/{article['id']}", headers=ada["headers"])
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_favorite_and_unfavorite(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    bob = await make_user("bob@example.com")
    article = await _publish(async_client, ada)
    url = f"/api/v1/articles/{article['id']}/favorite"

    resp = await async_client.post(url, headers=bob["headers"])
    assert resp.status_code == 200
    assert resp.json()["favorited_count"] == 1

    resp = await async_client.post(url, headers=ada["headers"])
    assert resp.json()["favorited_count"] == 2

    resp = await async_client.delete(url, headers=bob["headers"])
    assert resp.status_code == 200
    assert resp.json()["favorited_count"] == 1

    detail = await async_client.get(f"/api/v1/articles/{article['id']}")
    assert detail.json()["favorited_count"] == 1


@pytest.mark.asyncio
async def test_favorite_twice_counts_once(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    article = await _publish(async_client, ada)
    url = f"/api/v1/articles/{article['id']}/favorite"
    await async_client.post(url, headers=ada["headers"])
    resp = await async_client.post(url, headers=ada["headers"])
    assert resp.json()["favorited_count"] == 1


@pytest.mark.asyncio
async def test_unfavorite_without_edge_is_noop(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    article = await _publish(async_client, ada)
    resp = await async_client.delete(
        f"/api/v1/articles/{article['id']}/favorite", headers=ada["headers"]
    )
    assert resp.status_code == 200
    assert resp.json()["favorited_count"] == 0


@pytest.mark.asyncio
async def test_favorite_unknown_article_returns_404(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    resp = await async_client.post("/api/v1/articles/99999/favorite", headers=ada["headers"])
    assert resp.status_code == 404
    resp = await async_client.delete("/api/v1/articles/99999/favorite", headers=ada["headers"])
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_user_favorites_listing(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    bob = await make_user("bob@example.com")
    first = await _publish(async_client, ada, "First")
    await _publish(async_client, ada, "Second")
    await async_client.post(f"/api/v1/articles/{first['id']}/favorite", headers=bob["headers"])

    resp = await async_client.get(f"/api/v1/users/{bob['id']}/favorites", headers=bob["headers"])
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [first["id"]]


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feed_requires_authentication(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/articles/feed")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_feed_empty_when_following_nobody(async_client: AsyncClient, make_user):
    ada = await make_user("ada@example.com")
    await _publish(async_client, ada, "Own article")
    resp = await async_client.get("/api/v1/articles/feed", headers=ada["headers"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["items"] == []
    assert body["total"] == 0


@pytest.mark.asyncio
async def test_feed_contains_only_followed_authors(async_client: AsyncClient, make_user):
    reader = await make_user("reader@example.com")
    followed = await make_user("followed@example.com")
    stranger = await make_user("stranger@example.com")
    await _follow(async_client, reader, followed)

    mine = await _publish(async_client, followed, "Followed post")
    await _publish(async_client, stranger, "Stranger post")

    resp = await async_client.get("/api/v1/articles/feed", headers=reader["headers"])
    assert [a["id"] for a in resp.json()["items"]] == [mine["id"]]


@pytest.mark.asyncio
async def test_feed_pages_are_disjoint_and_recency_ordered(async_client: AsyncClient, make_user):
    reader = await make_user("reader@example.com")
    author = await make_user("author@example.com")
    await _follow(async_client, reader, author)
    created = [await _publish(async_client, author, f"Post {i}") for i in range(20)]

    page1 = (await async_client.get(
        "/api/v1/articles/feed", params={"page_index": 1, "page_size": 10}, headers=reader["headers"]
    )).json()
    page2 = (await async_client.get(
        "/api/v1/articles/feed", params={"page_index": 2, "page_size": 10}, headers=reader["headers"]
    )).json()

    ids1 = [a["id"] for a in page1["items"]]
    ids2 = [a["id"] for a in page2["items"]]
    assert len(ids1) == 10 and len(ids2) == 10
    assert set(ids1).isdisjoint(ids2)
    assert set(ids1) | set(ids2) == {a["id"] for a in created}
    # Newest first across both pages.
    assert ids1 + ids2 == [a["id"] for a in reversed(created)]
    assert page1["total"] == 20
    assert page1["pages"] == 2


@pytest.mark.asyncio
async def test_feed_page_size_is_clamped(async_client: AsyncClient, make_user):
    reader = await make_user("reader@example.com")
    author = await make_user("author@example.com")
    await _follow(async_client, reader, author)
    for i in range(20):
        await _publish(async_client, author, f"Post {i}")

    resp = await async_client.get(
        "/api/v1/articles/feed", params={"page_size": 100}, headers=reader["headers"]
    )
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["items"]) == 15
    assert body["page_size"] == 15


@pytest.mark.asyncio
@pytest.mark.parametrize("page_index", [0, -3])
async def test_feed_non_positive_page_index_is_first_page(
    async_client: AsyncClient, make_user, page_index: int
):
    reader = await make_user("reader@example.com")
    author = await make_user("author@example.com")
    await _follow(async_client, reader, author)
    for i in range(3):
        await _publish(async_client, author, f"Post {i}")

    first = await async_client.get(
        "/api/v1/articles/feed", params={"page_index": 1}, headers=reader["headers"]
    )
    odd = await async_client.get(
        "/api/v1/articles/feed", params={"page_index": page_index}, headers=reader["headers"]
    )
    assert odd.status_code == 200
    assert odd.json()["page"] == 1
    assert odd.json()["items"] == first.json()["items"]


@pytest.mark.asyncio
async def test_feed_reflects_unfollow(async_client: AsyncClient, make_user):
    reader = await make_user("reader@example.com")
    author = await make_user("author@example.com")
    await _follow(async_client, reader, author)
    await _publish(async_client, author)

    await async_client.delete(
        f"/api/v1/users/{reader['id']}/following/{author['id']}", headers=reader["headers"]
    )
    resp = await async_client.get("/api/v1/articles/feed", headers=reader["headers"])
    assert resp.json()["items"] == []
