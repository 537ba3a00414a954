"""
SessionRecord model: the single current refresh session of a user.
Fields:
- user_id (String(36)) - FK to users.id, unique: one record per user
- session_id - id carried by the only refresh token currently accepted
- created_at - login time; rotation keeps it, so it anchors the absolute expiry
"""
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class SessionRecord(BaseModel, Base):
    __tablename__ = "session_records"
    __table_args__ = (UniqueConstraint("user_id", name="uq_session_records_user_id"),)

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(128), nullable=False)

    user = relationship("User", back_populates="session")

    def __repr__(self):
        return f"<SessionRecord user={self.user_id}>"
