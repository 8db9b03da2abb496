"""Markdown frontmatter (de)serialization for blog posts."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from app.errors import FrontmatterError
from app.schemas.blog import BlogPost, BlogPostDraft

_FRONTMATTER_RE = re.compile(r"^---\r?\n(.*?)\r?\n---\r?\n?(.*)$", re.DOTALL)

# post attribute -> frontmatter key
_FIELD_KEYS = (
    ("slug", "slug"),
    ("title", "title"),
    ("date", "date"),
    ("author", "author"),
    ("tags", "tags"),
    ("category", "category"),
    ("excerpt", "excerpt"),
    ("cover_image", "coverImage"),
    ("is_draft", "isDraft"),
)


def parse_frontmatter(markdown: str) -> tuple[dict[str, Any], str]:
    """Split a markdown document into its frontmatter mapping and body."""

    match = _FRONTMATTER_RE.match(markdown.lstrip("\ufeff"))
    if not match:
        raise FrontmatterError("Invalid markdown format: frontmatter not found")

    raw_block, content = match.groups()
    try:
        loaded = yaml.safe_load(raw_block) if raw_block.strip() else {}
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"Invalid frontmatter: {exc}") from exc

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise FrontmatterError("Invalid frontmatter: expected a key/value mapping")

    frontmatter = {str(key): _normalize_value(value) for key, value in loaded.items()}
    return frontmatter, content.strip()


def render_markdown(post: BlogPost) -> str:
    """Render a post as frontmatter + markdown body (the id is not exported)."""

    frontmatter = {key: getattr(post, attr) for attr, key in _FIELD_KEYS}
    block = yaml.safe_dump(
        frontmatter,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=None,
    )
    return f"---\n{block}---\n\n{post.content}"


def post_from_markdown(markdown: str, *, slug: Optional[str] = None) -> BlogPostDraft:
    frontmatter, content = parse_frontmatter(markdown)
    fields: dict[str, Any] = {"content": content}
    for attr, key in _FIELD_KEYS:
        if key in frontmatter and frontmatter[key] is not None:
            fields[attr] = frontmatter[key]
    if slug:
        fields["slug"] = slug

    if not fields.get("title"):
        raise FrontmatterError("Invalid frontmatter: title is required")

    tags = fields.get("tags")
    if isinstance(tags, str):
        fields["tags"] = [tag.strip() for tag in tags.split(",") if tag.strip()]
    elif tags is not None and not isinstance(tags, list):
        fields["tags"] = [str(tags)]
    for attr in ("title", "slug", "date", "author", "category", "excerpt", "cover_image"):
        if attr in fields:
            fields[attr] = str(fields[attr])
    try:
        return BlogPostDraft(**fields)
    except ValidationError as exc:
        raise FrontmatterError(f"Invalid frontmatter: {exc}") from exc


def _normalize_value(value: Any) -> Any:
    # YAML turns unquoted ISO dates into date objects
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [str(item) for item in value]
    return value
