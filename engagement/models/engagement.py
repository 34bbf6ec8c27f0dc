"""Per-session engagement samples (editorial posts only)."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint

from engagement.database import Base
from engagement.utils.clock import utcnow


class UserEngagement(Base):
    __tablename__ = "user_engagements"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(String(128), nullable=False)
    scroll_depth = Column(Float, default=0.0, nullable=False)  # running max, 0-100
    time_on_page = Column(Integer, default=0, nullable=False)  # cumulative seconds
    clicks = Column(Integer, default=0, nullable=False)
    shares = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("session_id", "post_id", name="uq_user_engagement_session_post"),)

    def __repr__(self) -> str:
        return f"<UserEngagement(post={self.post_id}, session={self.session_id})>"
