from sqlalchemy import Column, DateTime, Integer, String

from engagement.database import Base
from engagement.utils.clock import utcnow


# Viewer identity; owned by the auth system, only read here
class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, index=True)
    email = Column(String, unique=True, nullable=False)
    role = Column(String(32), default="user", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
