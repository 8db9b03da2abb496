"""Database models"""

from app.models.blog_post import BlogPostRecord

__all__ = [
    "BlogPostRecord",
]
