"""Blog post CRUD over a pluggable repository."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from sqlalchemy.exc import IntegrityError

from app.config.settings import settings
from app.errors import BlogValidationError, DuplicateSlugError
from app.models.blog_post import BlogPostRecord
from app.schemas.blog import BlogPost, BlogPostDraft, BlogPostPatch

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "content", "category")

DEFAULT_POSTS = (
    {
        "id": "1",
        "slug": "spacecraft-control-systems",
        "title": "Modern Approaches to Spacecraft Control Systems",
        "excerpt": "An exploration of recent advancements in spacecraft control systems and their applications in autonomous navigation.",
        "date": "2023-12-15",
        "category": "Aerospace",
        "tags": ["Spacecraft", "Control Systems", "Autonomy"],
        "cover_image": "🛰️",
        "author": "Alexandre Lebegue",
        "content": "",
    },
    {
        "id": "2",
        "slug": "react-performance-optimization",
        "title": "Performance Optimization Techniques for React Applications",
        "excerpt": "A deep dive into strategies for improving the performance of React applications, from code splitting to memoization.",
        "date": "2023-11-02",
        "category": "Web Development",
        "tags": ["React", "JavaScript", "Performance", "Optimization"],
        "cover_image": "⚛️",
        "author": "Alexandre Lebegue",
        "content": "",
    },
)


def generate_slug(title: str) -> str:
    """Derive a URL-safe slug: `"Hello, World!"` -> `"hello-world"`."""

    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class BlogRepository(Protocol):
    def list_all(self) -> list[BlogPost]: ...

    def get(self, slug: str) -> Optional[BlogPost]: ...

    def add(self, post: BlogPost) -> None: ...

    def replace(self, slug: str, post: BlogPost) -> None: ...

    def remove(self, slug: str) -> bool: ...


class InMemoryBlogRepository:
    """Ordered list of posts; lives only as long as the process."""

    def __init__(self, posts: Optional[list[BlogPost]] = None) -> None:
        self._posts: list[BlogPost] = list(posts or [])

    def list_all(self) -> list[BlogPost]:
        return list(self._posts)

    def get(self, slug: str) -> Optional[BlogPost]:
        return next((post for post in self._posts if post.slug == slug), None)

    def add(self, post: BlogPost) -> None:
        if self.get(post.slug) is not None:
            raise DuplicateSlugError(post.slug)
        self._posts.insert(0, post)

    def replace(self, slug: str, post: BlogPost) -> None:
        for index, existing in enumerate(self._posts):
            if existing.slug == slug:
                self._posts[index] = post
                return
        raise KeyError(slug)

    def remove(self, slug: str) -> bool:
        for index, existing in enumerate(self._posts):
            if existing.slug == slug:
                del self._posts[index]
                return True
        return False


class SQLAlchemyBlogRepository:
    """Posts persisted in the `blog_posts` table, one session per operation."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        self._session_factory = session_factory

    def list_all(self) -> list[BlogPost]:
        db = self._session_factory()
        try:
            rows = db.query(BlogPostRecord).order_by(BlogPostRecord.date.desc()).all()
            return [self._to_post(row) for row in rows]
        finally:
            db.close()

    def get(self, slug: str) -> Optional[BlogPost]:
        db = self._session_factory()
        try:
            row = db.query(BlogPostRecord).filter_by(slug=slug).first()
            return self._to_post(row) if row is not None else None
        finally:
            db.close()

    def add(self, post: BlogPost) -> None:
        db = self._session_factory()
        try:
            db.add(BlogPostRecord(**post.model_dump()))
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateSlugError(post.slug) from exc
        finally:
            db.close()

    def replace(self, slug: str, post: BlogPost) -> None:
        db = self._session_factory()
        try:
            row = db.query(BlogPostRecord).filter_by(slug=slug).first()
            if row is None:
                raise KeyError(slug)
            for field, value in post.model_dump(exclude={"id"}).items():
                setattr(row, field, value)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicateSlugError(post.slug) from exc
        finally:
            db.close()

    def remove(self, slug: str) -> bool:
        db = self._session_factory()
        try:
            deleted = db.query(BlogPostRecord).filter_by(slug=slug).delete()
            db.commit()
            return deleted > 0
        finally:
            db.close()

    @staticmethod
    def _to_post(row: BlogPostRecord) -> BlogPost:
        return BlogPost(
            id=row.id,
            slug=row.slug,
            title=row.title,
            date=row.date,
            author=row.author or "",
            tags=list(row.tags or []),
            category=row.category or "",
            excerpt=row.excerpt or "",
            cover_image=row.cover_image or "",
            content=row.content or "",
            is_draft=bool(row.is_draft),
        )


class BlogStore:
    """Blog CRUD operations keyed by slug.

    A title change without an explicit slug regenerates the slug, so the old
    URL stops resolving. Drafts are hidden from `list()` unless requested.
    """

    def __init__(
        self,
        repository: BlogRepository,
        *,
        clock: Callable[[], float] = time.time,
        default_author: Optional[str] = None,
        default_cover_image: Optional[str] = None,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._default_author = default_author or settings.BLOG_DEFAULT_AUTHOR
        self._default_cover_image = default_cover_image or settings.BLOG_DEFAULT_COVER_IMAGE

    def list(self, *, include_drafts: bool = False) -> list[BlogPost]:
        posts = self._repository.list_all()
        if not include_drafts:
            posts = [post for post in posts if not post.is_draft]
        return sorted(posts, key=lambda post: post.date, reverse=True)

    def get_by_slug(self, slug: str, *, include_drafts: bool = True) -> Optional[BlogPost]:
        post = self._repository.get(slug)
        if post is None or (post.is_draft and not include_drafts):
            return None
        return post

    def create(self, draft: BlogPostDraft) -> BlogPost:
        self._validate(draft.model_dump())

        slug = draft.slug or generate_slug(draft.title)
        if not slug:
            raise BlogValidationError(["slug"])

        post = BlogPost(
            id=self._next_id(),
            slug=slug,
            title=draft.title.strip(),
            date=draft.date or self._today(),
            author=draft.author or self._default_author,
            tags=_clean_tags(draft.tags),
            category=draft.category.strip(),
            excerpt=draft.excerpt or draft.title.strip(),
            cover_image=draft.cover_image or self._default_cover_image,
            content=draft.content,
            is_draft=draft.is_draft,
        )
        self._repository.add(post)
        logger.info("Blog post created", extra={"slug": post.slug, "is_draft": post.is_draft})
        return post

    def update(self, slug: str, patch: BlogPostPatch) -> Optional[BlogPost]:
        existing = self._repository.get(slug)
        if existing is None:
            return None

        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        if patch.title and not patch.slug:
            new_slug = generate_slug(patch.title)
        else:
            new_slug = patch.slug or slug
        if not new_slug:
            raise BlogValidationError(["slug"])

        if "tags" in changes:
            changes["tags"] = _clean_tags(changes["tags"])
        merged = existing.model_dump() | changes | {"slug": new_slug}
        self._validate(merged, names=[name for name in REQUIRED_FIELDS if name in changes])

        if new_slug != slug and self._repository.get(new_slug) is not None:
            raise DuplicateSlugError(new_slug)

        updated = BlogPost(**merged)
        self._repository.replace(slug, updated)
        if new_slug != slug:
            logger.info("Blog post slug changed", extra={"old_slug": slug, "new_slug": new_slug})
        return updated

    def delete(self, slug: str) -> bool:
        removed = self._repository.remove(slug)
        if removed:
            logger.info("Blog post deleted", extra={"slug": slug})
        return removed

    def categories(self, *, include_drafts: bool = False) -> list[str]:
        return _unique(post.category for post in self.list(include_drafts=include_drafts))

    def tags(self, *, include_drafts: bool = False) -> list[str]:
        return _unique(tag for post in self.list(include_drafts=include_drafts) for tag in post.tags)

    def search(
        self,
        *,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        query: Optional[str] = None,
        include_drafts: bool = False,
    ) -> list[BlogPost]:
        posts = self.list(include_drafts=include_drafts)
        if category:
            posts = [post for post in posts if post.category == category]
        if tag:
            posts = [post for post in posts if tag in post.tags]
        if query:
            needle = query.lower()
            posts = [
                post
                for post in posts
                if needle in post.title.lower() or needle in post.excerpt.lower() or needle in post.content.lower()
            ]
        return posts

    def seed_defaults(self) -> int:
        """Insert the starter posts into an empty store; returns how many were added."""

        if self._repository.list_all():
            return 0
        for payload in DEFAULT_POSTS:
            self._repository.add(BlogPost(**payload))
        logger.info("Seeded default blog posts", extra={"count": len(DEFAULT_POSTS)})
        return len(DEFAULT_POSTS)

    @staticmethod
    def _validate(fields: dict[str, Any], names=REQUIRED_FIELDS) -> None:
        missing = [name for name in names if not str(fields.get(name) or "").strip()]
        if missing:
            raise BlogValidationError(missing)

    def _next_id(self) -> str:
        candidate = int(self._clock() * 1000)
        taken = {post.id for post in self._repository.list_all()}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def _today(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).date().isoformat()


def _clean_tags(tags: list[str]) -> list[str]:
    return _unique(tag.strip() for tag in tags if tag and tag.strip())


def _unique(values) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered
