import pytest

from cms.config import settings
from cms.main import app
from cms.posts.payload import get_image_store


@pytest.fixture()
async def author(create_author):
    return await create_author()


async def test_create_post_defaults(author, create_post):
    post = await create_post(author["id"], slug="Hello-World")
    assert post["slug"] == "hello-world"
    assert post["status"] == "draft"
    assert post["publishedAt"] is None
    assert post["image"] == settings.DEFAULT_POST_IMAGE
    assert post["tags"] == []
    assert post["author"] == {"id": author["id"], "name": "Jane", "email": "jane@example.com"}


async def test_create_published_post_sets_published_at(author, create_post):
    post = await create_post(author["id"], status="published", tags="express, node ,,")
    assert post["status"] == "published"
    assert post["publishedAt"] is not None
    assert post["tags"] == ["express", "node"]


async def test_create_deleted_post_is_rejected(client, admin_headers, author):
    payload = {
        "title": "Hello world",
        "slug": "hello-world",
        "content": "Some long enough content.",
        "author": author["id"],
        "status": "deleted",
    }
    res = await client.post("/api/posts", json=payload, headers=admin_headers)
    assert res.status_code == 400

    res = await client.get("/api/posts", headers=admin_headers)
    assert res.json()["total"] == 0


async def test_create_post_with_unknown_author(client, admin_headers):
    payload = {"title": "Hello world", "slug": "hello-world", "content": "Some long enough content.", "author": 99}
    res = await client.post("/api/posts", json=payload, headers=admin_headers)
    assert res.status_code == 400
    assert res.json() == {"error": "Author 99 does not exist"}


async def test_create_post_rejects_bad_image(client, admin_headers, author):
    payload = {
        "title": "Hello world",
        "slug": "hello-world",
        "content": "Some long enough content.",
        "author": author["id"],
        "image": "ftp://example.com/cat.png",
    }
    res = await client.post("/api/posts", json=payload, headers=admin_headers)
    assert res.status_code == 400


async def test_duplicate_slug_is_conflict(client, admin_headers, author, create_post):
    await create_post(author["id"])
    payload = {"title": "Another", "slug": "hello-world", "content": "Some long enough content.", "author": author["id"]}
    res = await client.post("/api/posts", json=payload, headers=admin_headers)
    assert res.status_code == 409
    assert res.json() == {"error": "Slug already in use"}


async def test_publish_then_unpublish(client, admin_headers, author, create_post):
    post = await create_post(author["id"], tags=["a", "b"])

    res = await client.patch(f"/api/posts/{post['id']}", json={"status": "published"}, headers=admin_headers)
    assert res.status_code == 200
    published = res.json()["data"]
    assert published["status"] == "published"
    assert published["publishedAt"] is not None
    assert published["tags"] == ["a", "b"]

    res = await client.patch(f"/api/posts/{post['id']}", json={"status": "draft", "tags": ["c"]}, headers=admin_headers)
    draft = res.json()["data"]
    assert draft["publishedAt"] is None
    assert draft["tags"] == ["c"]


async def test_update_post_fields(client, admin_headers, author, create_post, create_author):
    post = await create_post(author["id"])
    other = await create_author(name="Bob", email="bob@example.com")

    res = await client.patch(
        f"/api/posts/{post['id']}",
        json={"title": "  New title  ", "author": other["id"], "image": ""},
        headers=admin_headers,
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["title"] == "New title"
    assert data["author"]["id"] == other["id"]
    assert data["image"] == settings.DEFAULT_POST_IMAGE

    res = await client.patch(f"/api/posts/{post['id']}", json={"author": 999}, headers=admin_headers)
    assert res.status_code == 400


async def test_status_update_to_deleted_hides_post(client, admin_headers, author, create_post):
    post = await create_post(author["id"])
    res = await client.patch(f"/api/posts/{post['id']}", json={"status": "deleted"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["deletedAt"] is not None

    assert (await client.get(f"/api/posts/{post['id']}", headers=admin_headers)).status_code == 404
    res = await client.patch(f"/api/posts/{post['id']}", json={"status": "draft"}, headers=admin_headers)
    assert res.status_code == 404


async def test_delete_post_twice(client, admin_headers, author, create_post):
    post = await create_post(author["id"])

    assert (await client.delete(f"/api/posts/{post['id']}", headers=admin_headers)).status_code == 204
    res = await client.delete(f"/api/posts/{post['id']}", headers=admin_headers)
    assert res.status_code == 404
    assert res.json() == {"error": "Post not found"}


async def test_list_posts_search_with_limit(client, admin_headers, author, create_post):
    for i in range(7):
        await create_post(author["id"], slug=f"express-{i}", title=f"Express tips {i}")
    await create_post(author["id"], slug="django-basics", title="Django basics")

    res = await client.get("/api/posts", params={"q": "express", "page": 1, "limit": 5}, headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["page"] == 1
    assert body["limit"] == 5
    assert body["total"] == 7
    assert body["totalPages"] == 2
    assert body["results"] == len(body["data"]) == 5
    assert all("express" in p["title"].lower() or "express" in p["slug"] for p in body["data"])

    res = await client.get("/api/posts", params={"q": "express", "page": 2, "limit": 5}, headers=admin_headers)
    assert res.json()["results"] == 2


async def test_list_posts_filters(client, admin_headers, author, create_author, create_post):
    other = await create_author(name="Bob", email="bob@example.com")
    await create_post(author["id"], slug="first", status="published", tags=["python"])
    await create_post(author["id"], slug="second", tags=["go"])
    await create_post(other["id"], slug="third", tags=["python"])

    res = await client.get("/api/posts", params={"tag": "python", "sort": "slug", "order": "asc"}, headers=admin_headers)
    assert [p["slug"] for p in res.json()["data"]] == ["first", "third"]

    res = await client.get("/api/posts", params={"status": "published"}, headers=admin_headers)
    assert [p["slug"] for p in res.json()["data"]] == ["first"]

    res = await client.get("/api/posts", params={"authorId": other["id"]}, headers=admin_headers)
    assert [p["slug"] for p in res.json()["data"]] == ["third"]

    res = await client.get("/api/posts", params={"author": "abc"}, headers=admin_headers)
    assert res.status_code == 400


async def test_list_posts_by_author(client, admin_headers, author, create_author, create_post):
    other = await create_author(name="Bob", email="bob@example.com")
    await create_post(author["id"], slug="mine-1")
    deleted = await create_post(author["id"], slug="mine-2")
    await create_post(other["id"], slug="theirs")
    await client.delete(f"/api/posts/{deleted['id']}", headers=admin_headers)

    res = await client.get(f"/api/posts/author/{author['id']}", headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["author"] == author["id"]
    assert body["total"] == 1
    assert [p["slug"] for p in body["data"]] == ["mine-1"]


async def test_list_is_stable_for_same_timestamp(client, admin_headers, author, create_post):
    for i in range(3):
        await create_post(author["id"], slug=f"post-{i}")

    res = await client.get("/api/posts", params={"sort": "createdAt", "order": "asc"}, headers=admin_headers)
    ids = [p["id"] for p in res.json()["data"]]
    assert ids == sorted(ids)


async def test_search_matches_content_only(client, admin_headers, author, create_post):
    await create_post(author["id"], slug="routing-guide", title="Routing guide", content="Middleware in EXPRESS apps.")
    await create_post(author["id"], slug="unrelated", title="Unrelated", content="Nothing to see here at all.")

    res = await client.get("/api/posts", params={"q": "express"}, headers=admin_headers)
    assert [p["slug"] for p in res.json()["data"]] == ["routing-guide"]


async def test_create_post_from_form(client, admin_headers, author):
    form = {
        "title": "Form post",
        "slug": "form-post",
        "content": "Sent as multipart form data.",
        "author": str(author["id"]),
        "tags": "a, b",
    }
    res = await client.post(
        "/api/posts",
        data=form,
        files={"image": ("cover.png", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    data = res.json()["data"]
    assert data["tags"] == ["a", "b"]
    assert data["status"] == "draft"
    assert data["author"]["id"] == author["id"]
    # 저장소가 없으면 업로드 파일 대신 기본 이미지를 씁니다.
    assert data["image"] == settings.DEFAULT_POST_IMAGE


async def test_form_image_goes_through_image_store(client, admin_headers, author):
    stored = []

    async def fake_store(upload):
        stored.append((upload.filename, await upload.read()))
        return "https://cdn.example.com/cover.png"

    app.dependency_overrides[get_image_store] = lambda: fake_store
    form = {"title": "Form post", "slug": "form-post", "content": "Sent as multipart form data.", "author": str(author["id"])}
    res = await client.post(
        "/api/posts",
        data=form,
        files={"image": ("cover.png", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.text
    assert res.json()["data"]["image"] == "https://cdn.example.com/cover.png"
    assert stored == [("cover.png", b"\x89PNG")]


async def test_update_post_from_form(client, admin_headers, author, create_post):
    post = await create_post(author["id"])
    res = await client.patch(
        f"/api/posts/{post['id']}",
        data={"status": "published", "tags": '["x", "y"]'},
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["status"] == "published"
    assert data["tags"] == ["x", "y"]


async def test_form_validation_error_shape(client, admin_headers, author):
    res = await client.post(
        "/api/posts",
        data={"title": "Hi", "slug": "form-post", "content": "Sent as form data.", "author": "abc"},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"].startswith("Validation failed")


async def test_malformed_json_body(client, admin_headers):
    res = await client.post(
        "/api/posts",
        content=b"{not json",
        headers={**admin_headers, "Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json() == {"error": "Validation failed: body: Invalid JSON"}
