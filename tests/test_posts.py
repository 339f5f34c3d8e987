"""Tests for the post and profile views.

이 모듈은 블로그 백엔드를 사용하는 뷰를 테스트합니다:
1. 공개 포스트 목록/상세
2. 로그인이 필요한 대시보드와 포스트 변경
3. 백엔드 오류 및 세션 만료 처리
4. 프로필 조회/수정

각 테스트는 Given-When-Then 패턴을 따릅니다.
"""
from tests.fakes import VALID_USER_ID, post_payload


def _messages(body):
    return [notification["message"] for notification in body["notifications"]]


def test_list_posts(client, fake_blog):
    fake_blog.add(
        "GET",
        "/posts",
        (200, {"posts": [post_payload("p1")], "pagination": {"page": 1, "limit": 10, "total": 1, "pages": 1}}),
    )

    response = client.get("/posts?search=hello")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [post["id"] for post in data["posts"]] == ["p1"]
    assert data["pagination"]["total"] == 1
    request = fake_blog.requests[0]
    assert request.url.params["search"] == "hello"
    assert "Authorization" not in request.headers


def test_post_detail(client, fake_blog):
    fake_blog.add("GET", "/posts/p1", (200, {"post": post_payload("p1", updated_at="2024-02-01T00:00:00Z")}))

    response = client.get("/posts/p1")

    post = response.json()["data"]["post"]
    assert post["title"] == "Post p1"
    assert post["was_edited"] is True


def test_post_detail_not_found(client):
    response = client.get("/posts/missing")

    assert response.status_code == 404
    assert _messages(response.json()) == ["Post not found"]


def test_dashboard_requires_login(client, fake_blog):
    """로그인하지 않은 사용자는 로그인 화면으로 안내.

    Given: 로그인하지 않은 상태에서
    When: /dashboard를 요청하면
    Then: 401과 /login 이동 경로가 반환되고 백엔드는 호출되지 않아야 함
    """
    response = client.get("/dashboard")

    assert response.status_code == 401
    assert response.json()["redirect"] == "/login"
    assert fake_blog.requests == []


def test_dashboard_stats(logged_in_client, fake_blog):
    fake_blog.add(
        "GET",
        "/posts/user/my-posts",
        (200, {
            "posts": [post_payload("p1"), post_payload("p2", published=False), post_payload("p3")],
            "pagination": {"page": 1, "limit": 10, "total": 3, "pages": 1},
        }),
    )

    response = logged_in_client.get("/dashboard")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == VALID_USER_ID
    assert data["stats"] == {"total": 3, "published": 2, "drafts": 1}
    assert fake_blog.requests[0].headers["Authorization"].startswith("Bearer ")


def test_create_post(logged_in_client, fake_blog):
    """로그인한 사용자의 포스트 작성.

    Given: 로그인한 사용자가
    When: 제목과 내용으로 포스트를 작성하면
    Then: 201, 성공 알림, 대시보드 이동 경로가 반환되어야 함
    """
    fake_blog.add("POST", "/posts", (201, {"post": post_payload("p9", published=False)}))

    response = logged_in_client.post("/posts", json={"title": "Post p9", "content": "Body"})

    assert response.status_code == 201
    body = response.json()
    assert body["data"]["post"]["id"] == "p9"
    assert body["redirect"] == "/dashboard"
    assert _messages(body) == ["Post created successfully!"]
    assert fake_blog.requests[0].headers["Authorization"].startswith("Bearer ")


def test_create_post_validation(logged_in_client, fake_blog):
    response = logged_in_client.post("/posts", json={"title": "", "content": "Body"})

    assert response.status_code == 422
    assert fake_blog.requests == []


def test_toggle_and_delete(logged_in_client, fake_blog):
    fake_blog.add("PATCH", "/posts/p1/toggle-publish", (200, {"post": post_payload("p1", published=False)}))
    fake_blog.add("DELETE", "/posts/p1", (204, None))

    toggled = logged_in_client.patch("/posts/p1/toggle-publish")
    deleted = logged_in_client.delete("/posts/p1")

    assert toggled.json()["data"]["post"]["published"] is False
    assert _messages(toggled.json()) == ["Post status updated"]
    assert _messages(deleted.json()) == ["Post deleted successfully"]


def test_backend_server_error(client, fake_blog):
    fake_blog.add("GET", "/posts", (500, {"message": "Internal error"}))

    response = client.get("/posts")

    assert response.status_code == 502
    assert _messages(response.json()) == ["Internal error"]


def test_session_expired_during_request(logged_in_client, fake_blog, fake_auth):
    """백엔드 401 후 갱신이 실패하면 세션 만료 처리.

    Given: 로그인한 사용자의 토큰을 백엔드가 거부하고 갱신도 실패하면
    When: 대시보드를 요청하면
    Then: 401, 세션 만료 알림, /login 이동 경로가 반환되고 세션이 정리되어야 함
    """
    # Given
    fake_auth.fail_refresh = True
    fake_blog.add("GET", "/posts/user/my-posts", (401, {"message": "Unauthorized"}))

    # When
    response = logged_in_client.get("/dashboard")

    # Then
    assert response.status_code == 401
    body = response.json()
    assert body["redirect"] == "/login"
    assert "Session expired. Please log in again." in _messages(body)
    assert len(fake_blog.requests_to("GET", "/posts/user/my-posts")) == 1
    assert logged_in_client.get("/session").json()["data"]["is_authenticated"] is False


def test_expired_token_is_refreshed_and_replayed(logged_in_client, fake_blog):
    fake_blog.add(
        "GET",
        "/posts/user/my-posts",
        (401, {"message": "jwt expired"}),
        (200, {"posts": []}),
    )

    response = logged_in_client.get("/dashboard")

    assert response.status_code == 200
    requests = fake_blog.requests_to("GET", "/posts/user/my-posts")
    assert len(requests) == 2
    assert all(request.headers["Authorization"].startswith("Bearer ") for request in requests)


def test_profile(client, fake_blog):
    fake_blog.add("GET", f"/users/{VALID_USER_ID}", (200, {"user": {"id": VALID_USER_ID, "name": "Reader"}}))
    fake_blog.add("GET", f"/users/{VALID_USER_ID}/posts", (200, {"posts": [post_payload()]}))

    response = client.get(f"/profile/{VALID_USER_ID}")

    data = response.json()["data"]
    assert data["user"]["name"] == "Reader"
    assert len(data["posts"]) == 1


def test_profile_not_found(client):
    response = client.get("/profile/nobody")

    assert response.status_code == 404
    assert _messages(response.json()) == ["User not found"]


def test_update_profile_updates_session_user(logged_in_client, fake_blog):
    fake_blog.add(
        "PUT",
        "/users/profile",
        (200, {"user": {"id": VALID_USER_ID, "name": "Renamed", "bio": "Hi"}}),
    )

    response = logged_in_client.put("/profile", json={"name": "Renamed", "bio": "Hi"})

    assert _messages(response.json()) == ["Profile updated successfully!"]
    assert logged_in_client.get("/session").json()["data"]["user"]["name"] == "Renamed"
