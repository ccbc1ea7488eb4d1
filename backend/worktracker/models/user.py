from sqlalchemy import Column, String

from worktracker.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column("passwordHash", String, nullable=False)
    name = Column(String(255), nullable=False)
    created_at = Column("createdAt", String(40), nullable=False)
