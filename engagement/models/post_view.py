"""View event model for editorial posts.

Rows are never deleted and their request details never change. The one later
write is `view_duration`, filled in from an engagement sample of the same
session.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from engagement.database import Base
from engagement.utils.clock import utcnow


class BlogPostView(Base):
    __tablename__ = "blog_post_views"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(String(128), nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    is_bot = Column(Boolean, default=False, nullable=False)
    view_duration = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_blog_post_views_post_created", "post_id", "created_at"),
        Index("idx_blog_post_views_session", "post_id", "session_id"),
    )
