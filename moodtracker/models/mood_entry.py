from sqlalchemy import BigInteger, Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from moodtracker.db.base import Base


class MoodEntryRecord(Base):
    """One persisted mood observation. Rows are append-only."""

    __tablename__ = "mood_entries"
    # AUTOINCREMENT keeps SQLite from reusing ids of the highest rows.
    __table_args__ = ({"sqlite_autoincrement": True},)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    mood: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    # Milliseconds since epoch, set by the producer.
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
