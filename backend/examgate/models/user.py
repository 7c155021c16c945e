"""
User model - a student who can log in and take the test.

Users are created on the first login attempt for an unknown name and are
never deleted. Lookups go through name_key, the trimmed and lower-cased
name kept in Python so non-ASCII names fold the same way everywhere.
There is no unique constraint; uniqueness is enforced under the users lock.
"""

from sqlalchemy import Column, Text, DateTime, BigInteger, Boolean, Index
from sqlalchemy.orm import validates
from examgate.database import Base
from examgate.timestamps import utcnow


def normalize_name(name: str) -> str:
    """Lookup key for a name: trimmed and Unicode lower-cased."""
    return name.strip().lower()


class User(Base):
    """
    SQLAlchemy model for the users table.

    `can_retake` gates whether the student may (re)attempt the test. It is
    cleared when a finalized result is submitted and set again by a second
    chance or an admin reset.
    """
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, autoincrement=False,
                doc="Creation time in epoch milliseconds")
    name = Column(Text, nullable=False,
                  doc="Login name as registered (trimmed)")
    name_key = Column(Text, nullable=False,
                      doc="normalize_name(name), used for every lookup")
    password = Column(Text, nullable=False,
                      doc="Plaintext password, compared verbatim")
    can_retake = Column(Boolean, nullable=False, default=True,
                        doc="Whether the student may take the test")
    created_at = Column(DateTime, nullable=False, default=utcnow,
                        doc="When the user registered (UTC)")

    __table_args__ = (
        Index("ix_users_name_key", "name_key"),
    )

    @validates("name")
    def _set_name_key(self, key, value):
        self.name_key = normalize_name(value)
        return value

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', can_retake={self.can_retake})>"
