from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from tabsy.database import Base


class User(Base):
    """The account all data is scoped to (a single implicit owner for now)."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
