"""Blog post models"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class BlogPost(BaseModel):
    """A blog post with its metadata and markdown content."""

    id: str
    slug: str
    title: str
    date: str  # YYYY-MM-DD
    author: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = ""
    excerpt: str = ""
    cover_image: str = ""
    content: str = ""
    is_draft: bool = False


class BlogPostDraft(BaseModel):
    """A post as submitted from the admin editor; slug and date are optional."""

    title: str
    content: str = ""
    category: str = ""
    slug: Optional[str] = None
    date: Optional[str] = None
    author: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    is_draft: bool = False


class BlogPostPatch(BaseModel):
    """Partial update; only fields that were explicitly set are applied."""

    title: Optional[str] = None
    slug: Optional[str] = None
    date: Optional[str] = None
    author: Optional[str] = None
    tags: Optional[list[str]] = None
    category: Optional[str] = None
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    content: Optional[str] = None
    is_draft: Optional[bool] = None
