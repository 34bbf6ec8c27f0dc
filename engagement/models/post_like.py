"""
Like relations for both post types.

A row means "viewer currently likes post"; there is no boolean flag.
Each viewer can like a post at most once.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint

from engagement.database import Base
from engagement.utils.clock import utcnow


class BlogPostLike(Base):
    __tablename__ = "blog_post_likes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_blog_post_like_user"),)

    def __repr__(self) -> str:
        return f"<BlogPostLike(post={self.post_id}, user={self.user_id})>"


class CommunityPostLike(Base):
    __tablename__ = "community_post_likes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_community_post_like_user"),)

    def __repr__(self) -> str:
        return f"<CommunityPostLike(post={self.post_id}, user={self.user_id})>"
