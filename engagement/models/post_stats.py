from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer
from sqlalchemy.orm import relationship

from engagement.database import Base
from engagement.utils.clock import utcnow


class BlogPostStats(Base):
    """
    Materialized per-post aggregate for editorial posts.

    Always recomputed from scratch out of ``blog_post_views`` and
    ``blog_post_likes``, so rewriting it is safe at any time.
    """

    __tablename__ = "blog_post_stats"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), unique=True, nullable=False)
    total_views = Column(Integer, default=0, nullable=False)
    unique_views = Column(Integer, default=0, nullable=False)
    registered_views = Column(Integer, default=0, nullable=False)
    anonymous_views = Column(Integer, default=0, nullable=False)
    total_likes = Column(Integer, default=0, nullable=False)
    avg_view_duration = Column(Float, default=0.0, nullable=False)
    last_viewed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    post = relationship("BlogPost", back_populates="stats")

    def __repr__(self) -> str:
        return f"<BlogPostStats(post={self.post_id}, views={self.total_views}, likes={self.total_likes})>"
