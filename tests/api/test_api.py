from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import bcrypt
import pytest
from fastapi.testclient import TestClient

from app.clients.contracts import FetchResult, FetchState
from app.dependencies import Services
from app.errors import SummaryGenerationError
from app.main import create_app
from app.services.auth import AuthService
from app.services.blog_store import BlogStore, InMemoryBlogRepository
from app.services.github_projects import GitHubProjectService
from app.services.state_store import StateStore
from app.services.summary_cache import SummaryCache, SummaryService

PASSWORD = "s3cret-pass"
PASSWORD_HASH = bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


def repo_payload(name: str, **overrides: Any) -> dict[str, Any]:
    payload = {
        "id": len(name),
        "name": name,
        "full_name": f"octo/{name}",
        "html_url": f"https://github.com/octo/{name}",
        "updated_at": "2026-01-01T00:00:00Z",
        "language": "Python",
        "topics": [],
    }
    payload.update(overrides)
    return payload


@dataclass
class FakeGitHubClient:
    repos: dict[str, dict[str, Any]] = field(default_factory=dict)
    upstream_down: bool = False

    async def get_user(self, username: str) -> FetchResult[dict[str, Any]]:
        return FetchResult(state=FetchState.OK, data={"login": username, "id": 1, "public_repos": len(self.repos)})

    async def get_repo(self, _owner: str, repo: str) -> FetchResult[dict[str, Any]]:
        if self.upstream_down:
            return FetchResult(state=FetchState.FAILED, status_code=503, error="Service Unavailable")
        if repo not in self.repos:
            return FetchResult(state=FetchState.FAILED, status_code=404, error="Not Found")
        return FetchResult(state=FetchState.OK, data=self.repos[repo])

    async def list_user_repos(self, _username: str, **_: Any) -> FetchResult[list[dict[str, Any]]]:
        return FetchResult(state=FetchState.OK, data=list(self.repos.values()))

    async def get_readme(self, _owner: str, _repo: str, *, ref: str) -> FetchResult[str]:
        if ref == "main":
            return FetchResult(state=FetchState.OK, data="# Readme")
        return FetchResult(state=FetchState.FAILED, status_code=404)

    async def list_commits(self, _owner: str, _repo: str, **_: Any) -> FetchResult[list[dict[str, Any]]]:
        return FetchResult(
            state=FetchState.OK,
            data=[
                {"commit": {"author": {"date": "2026-01-02T10:00:00Z"}}},
                {"commit": {"author": {"date": "2026-01-02T11:00:00Z"}}},
                {"commit": {"author": {"date": "2026-01-01T09:00:00Z"}}},
            ],
        )


@dataclass
class FakeSummarizer:
    fail: bool = False
    calls: int = 0

    async def generate(self, project) -> str:
        self.calls += 1
        if self.fail:
            raise SummaryGenerationError("Failed to generate AI summary")
        return f"Résumé de {project.name}"


@dataclass
class ApiHarness:
    client: TestClient
    github: FakeGitHubClient
    summarizer: FakeSummarizer
    services: Services

    def login(self) -> dict[str, str]:
        response = self.client.post("/api/auth/login", json={"username": "admin", "password": PASSWORD})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def api(tmp_path: Path) -> ApiHarness:
    github = FakeGitHubClient(
        repos={
            "demo": repo_payload("demo", topics=["featured"]),
            "tool": repo_payload("tool", topics=["cli"]),
            "forked": repo_payload("forked", fork=True),
        }
    )
    summarizer = FakeSummarizer()
    state = StateStore(tmp_path / "state.json")
    projects = GitHubProjectService(github, username="octo")
    blog = BlogStore(InMemoryBlogRepository(), default_author="Test Author")
    blog.seed_defaults()
    services = Services(
        projects=projects,
        summaries=SummaryService(summarizer, SummaryCache(ttl_seconds=3600), projects=projects),
        blog=blog,
        auth=AuthService(
            state_store=state,
            username="admin",
            password_hash=PASSWORD_HASH,
            display_name="Site Admin",
            jwt_secret="api-test-secret-with-at-least-32-bytes",
        ),
        state=state,
    )
    with TestClient(create_app(services)) as client:
        yield ApiHarness(client=client, github=github, summarizer=summarizer, services=services)


def test_health(api: ApiHarness) -> None:
    response = api.client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_project_listing_and_filters(api: ApiHarness) -> None:
    names = [repo["name"] for repo in api.client.get("/api/projects").json()]
    with_forks = [repo["name"] for repo in api.client.get("/api/projects", params={"exclude_forks": False}).json()]
    by_topic = [repo["name"] for repo in api.client.get("/api/projects", params={"topics": "cli, other"}).json()]
    featured = [repo["name"] for repo in api.client.get("/api/projects/featured").json()]

    assert names == ["demo", "tool"]
    assert "forked" in with_forks
    assert by_topic == ["tool"]
    assert featured == ["demo"]


def test_project_detail_includes_readme_and_stats(api: ApiHarness) -> None:
    response = api.client.get("/api/projects/demo")

    assert response.status_code == 200
    body = response.json()
    assert body["repo"]["name"] == "demo"
    assert body["readme_content"] == "# Readme"
    assert body["commit_stats"] == [
        {"date": "2026-01-01", "count": 1},
        {"date": "2026-01-02", "count": 2},
    ]


def test_project_errors_map_to_http_status(api: ApiHarness) -> None:
    assert api.client.get("/api/projects/missing").status_code == 404

    api.github.upstream_down = True
    response = api.client.get("/api/projects/demo")
    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to fetch data from GitHub"


def test_summary_is_generated_once_then_cached(api: ApiHarness) -> None:
    assert api.client.get("/api/projects/demo/summary/cached").status_code == 404

    first = api.client.get("/api/projects/demo/summary").json()
    second = api.client.get("/api/projects/demo/summary").json()
    cached = api.client.get("/api/projects/demo/summary/cached").json()

    assert first["cached"] is False
    assert first["summary"] == "Résumé de demo"
    assert second["cached"] is True
    assert cached["generated_at"] == first["generated_at"]
    assert api.summarizer.calls == 1
    assert api.client.get("/api/summaries/stats").json() == {
        "total_entries": 1,
        "valid_entries": 1,
        "expired_entries": 0,
    }


def test_summary_failure_returns_502(api: ApiHarness) -> None:
    api.summarizer.fail = True

    response = api.client.get("/api/projects/demo/summary")

    assert response.status_code == 502
    assert response.json() == {"detail": "Failed to generate AI summary"}
    assert api.client.get("/api/summaries/stats").json()["total_entries"] == 0


def test_clearing_summaries_requires_admin(api: ApiHarness) -> None:
    api.client.get("/api/projects/demo/summary")

    assert api.client.delete("/api/projects/demo/summary").status_code == 401

    headers = api.login()
    assert api.client.delete("/api/projects/demo/summary", headers=headers).status_code == 204
    assert api.client.get("/api/projects/demo/summary/cached").status_code == 404
    assert api.client.delete("/api/summaries", headers=headers).status_code == 204


def test_login_flow(api: ApiHarness) -> None:
    bad = api.client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid username or password"

    headers = api.login()
    me = api.client.get("/api/auth/me", headers=headers)
    assert me.json() == {"username": "admin", "display_name": "Site Admin"}
    assert api.services.auth.is_logged_in() is True

    assert api.client.post("/api/auth/logout").status_code == 401
    assert api.services.auth.is_logged_in() is True

    assert api.client.post("/api/auth/logout", headers=headers).status_code == 204
    assert api.services.auth.is_logged_in() is False
    assert api.client.get("/api/admin/blog/posts", headers=headers).status_code == 401
    assert api.client.get("/api/auth/me", headers=headers).json()["detail"] == "Session revoked"


def test_new_login_revokes_previous_token(api: ApiHarness) -> None:
    first = api.login()
    second = api.login()

    assert api.client.get("/api/admin/blog/posts", headers=first).status_code == 401
    assert api.client.get("/api/admin/blog/posts", headers=second).status_code == 200


def test_admin_routes_reject_missing_or_bad_token(api: ApiHarness) -> None:
    assert api.client.get("/api/admin/blog/posts").status_code == 401
    response = api.client.get("/api/admin/blog/posts", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid session token"


def test_public_blog_listing(api: ApiHarness) -> None:
    posts = api.client.get("/api/blog/posts").json()

    assert [post["slug"] for post in posts] == ["spacecraft-control-systems", "react-performance-optimization"]
    assert api.client.get("/api/blog/posts", params={"tag": "React"}).json()[0]["slug"] == "react-performance-optimization"
    assert api.client.get("/api/blog/posts", params={"search": "spacecraft"}).json()[0]["category"] == "Aerospace"
    assert api.client.get("/api/blog/categories").json() == ["Aerospace", "Web Development"]
    assert "Autonomy" in api.client.get("/api/blog/tags").json()


def test_drafts_only_visible_to_admin(api: ApiHarness) -> None:
    headers = api.login()
    created = api.client.post(
        "/api/admin/blog/posts",
        json={"title": "Work In Progress", "content": "tbd", "category": "Notes", "is_draft": True},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["slug"] == "work-in-progress"

    assert api.client.get("/api/blog/posts/work-in-progress").status_code == 404
    assert api.client.get("/api/blog/posts/work-in-progress", headers=headers).status_code == 200
    assert "work-in-progress" not in [post["slug"] for post in api.client.get("/api/blog/posts").json()]
    admin_slugs = [post["slug"] for post in api.client.get("/api/admin/blog/posts", headers=headers).json()]
    assert "work-in-progress" in admin_slugs


def test_admin_update_changes_slug(api: ApiHarness) -> None:
    headers = api.login()

    response = api.client.put(
        "/api/admin/blog/posts/react-performance-optimization",
        json={"title": "Faster React"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["slug"] == "faster-react"
    assert api.client.get("/api/blog/posts/react-performance-optimization").status_code == 404
    assert api.client.get("/api/blog/posts/faster-react").status_code == 200


def test_admin_write_errors(api: ApiHarness) -> None:
    headers = api.login()

    missing = api.client.delete("/api/admin/blog/posts/nope", headers=headers)
    unknown_update = api.client.put("/api/admin/blog/posts/nope", json={"title": "x"}, headers=headers)
    duplicate = api.client.post(
        "/api/admin/blog/posts",
        json={"title": "Spacecraft Control Systems", "content": "x", "category": "Aerospace"},
        headers=headers,
    )
    invalid = api.client.post("/api/admin/blog/posts", json={"title": "No body"}, headers=headers)

    assert missing.status_code == 404
    assert unknown_update.status_code == 404
    assert duplicate.status_code == 409
    assert invalid.status_code == 400
    assert invalid.json()["fields"] == ["content", "category"]
    assert len(api.client.get("/api/blog/posts").json()) == 2


def test_admin_delete(api: ApiHarness) -> None:
    headers = api.login()

    assert api.client.delete("/api/admin/blog/posts/spacecraft-control-systems", headers=headers).status_code == 204
    assert api.client.get("/api/blog/posts/spacecraft-control-systems").status_code == 404


def test_markdown_import_and_export(api: ApiHarness) -> None:
    headers = api.login()
    markdown = "---\ntitle: Imported Post\ncategory: Notes\ntags: [a, b]\ndate: 2025-05-05\n---\n\nImported body\n"

    imported = api.client.post("/api/admin/blog/posts/import", json={"markdown": markdown}, headers=headers)
    assert imported.status_code == 201
    assert imported.json()["slug"] == "imported-post"
    assert imported.json()["date"] == "2025-05-05"
    assert imported.json()["content"] == "Imported body"

    exported = api.client.get("/api/blog/posts/imported-post/markdown")
    assert exported.status_code == 200
    assert exported.text.startswith("---\nslug: imported-post\n")
    assert exported.text.endswith("Imported body")

    broken = api.client.post("/api/admin/blog/posts/import", json={"markdown": "no frontmatter"}, headers=headers)
    assert broken.status_code == 400

    mistyped = api.client.post(
        "/api/admin/blog/posts/import",
        json={"markdown": "---\ntitle: Typed\ncategory: Notes\nisDraft: sometimes\n---\n\nbody\n"},
        headers=headers,
    )
    assert mistyped.status_code == 400
    assert mistyped.json()["detail"].startswith("Invalid frontmatter")

    scalar_tags = api.client.post(
        "/api/admin/blog/posts/import",
        json={"markdown": "---\ntitle: Typed\ncategory: Notes\ntags: 5\n---\n\nbody\n"},
        headers=headers,
    )
    assert scalar_tags.status_code == 201
    assert scalar_tags.json()["tags"] == ["5"]


def test_theme_preference_is_per_client(api: ApiHarness) -> None:
    assert api.client.get("/api/preferences/theme").json() == {"theme": "light"}

    response = api.client.put("/api/preferences/theme", json={"theme": "dark"})
    assert response.json() == {"theme": "dark"}
    assert response.cookies.get("theme") == "dark"
    assert api.client.get("/api/preferences/theme").json() == {"theme": "dark"}
    assert api.services.state.get_theme() == "light"

    with TestClient(api.client.app) as other_visitor:
        assert other_visitor.get("/api/preferences/theme").json() == {"theme": "light"}

    assert api.client.put("/api/preferences/theme", json={"theme": "neon"}).status_code == 400


def test_site_default_theme_requires_admin(api: ApiHarness) -> None:
    assert api.client.put("/api/admin/preferences/theme", json={"theme": "dark"}).status_code == 401

    headers = api.login()
    assert api.client.put("/api/admin/preferences/theme", json={"theme": "dark"}, headers=headers).json() == {"theme": "dark"}
    assert api.client.put("/api/admin/preferences/theme", json={"theme": "neon"}, headers=headers).status_code == 400
    assert api.client.get("/api/preferences/theme").json() == {"theme": "dark"}
