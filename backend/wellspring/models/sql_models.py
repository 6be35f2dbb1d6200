from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..db.base import Base
from ..pagination import utcnow


class ChatSession(Base):
    """SQLAlchemy model for chat sessions."""

    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # NULL while the session is active; set exactly once on end
    end_time = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<ChatSession(id={self.id}, user_id={self.user_id}, ended={self.end_time is not None})>"


class ChatMessage(Base):
    """SQLAlchemy model for chat messages."""

    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_session_sent", "session_id", "sent_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    sender = Column(String(20), nullable=False)  # 'user' or 'assistant'

    # Relationships
    session = relationship("ChatSession", back_populates="messages")

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, sender='{self.sender}')>"


class Journal(Base):
    """SQLAlchemy model for journal entries."""

    __tablename__ = "journals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Journal(id={self.id}, user_id={self.user_id})>"


class MoodEntry(Base):
    """SQLAlchemy model for mood entries."""

    __tablename__ = "mood_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    journal_id = Column(Integer, ForeignKey("journals.id", ondelete="SET NULL"), nullable=True)
    entry_type = Column(String(20), nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    primary_emotion = Column(String(50), nullable=False)
    intensity_level = Column(Float, nullable=False)
    trigger_factor = Column(Text, nullable=True)
    coping_strategy = Column(Text, nullable=True)

    def __repr__(self):
        return f"<MoodEntry(id={self.id}, emotion='{self.primary_emotion}', intensity={self.intensity_level})>"


class ActivityLog(Base):
    """Append-only audit trail of user actions."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    activity = Column(String(255), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, activity='{self.activity}')>"
