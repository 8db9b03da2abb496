"""Blog post model"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, String, Text

from app.config.database import Base


class BlogPostRecord(Base):
    """Blog post entity mapped to `blog_posts` table."""

    __tablename__ = "blog_posts"

    id = Column(String(32), primary_key=True)
    slug = Column(String(200), unique=True, nullable=False, index=True)
    title = Column(String(300), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    author = Column(String(100), nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    category = Column(String(100), nullable=False, default="")
    excerpt = Column(Text, nullable=False, default="")
    cover_image = Column(String(500), nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    is_draft = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_blog_posts_date", "date"),
    )

    def __repr__(self):
        return f"<BlogPostRecord {self.slug}>"
