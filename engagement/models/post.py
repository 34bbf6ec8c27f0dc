"""Editorial and community post models.

Editorial posts keep their counts in a separate aggregate (``BlogPostStats``);
community posts carry denormalized counters that are updated atomically.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    excerpt = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    published = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    stats = relationship("BlogPostStats", back_populates="post", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<BlogPost(id={self.id}, slug={self.slug})>"


class CommunityPost(Base):
    __tablename__ = "community_posts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    excerpt = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    published = Column(Boolean, default=True, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Denormalized counters, only ever changed with UPDATE ... SET col = col + n
    view_count = Column(Integer, default=0, nullable=False)
    registered_view_count = Column(Integer, default=0, nullable=False)
    anonymous_view_count = Column(Integer, default=0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)
    last_viewed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("idx_community_posts_trending", "last_viewed_at", "view_count"),)

    def __repr__(self) -> str:
        return f"<CommunityPost(id={self.id}, slug={self.slug}, views={self.view_count})>"
