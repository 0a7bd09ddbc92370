from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    TIMESTAMP,
    Text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.base import Base
from app.core.schemas import UserRole


# =========================
# User
# =========================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    username = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)
    # API token used by upload/shorten clients (ShareX, Flameshot, curl)
    token = Column(String, nullable=False, unique=True, index=True)
    role = Column(String, nullable=False, server_default=UserRole.USER.value)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Relationships
    images = relationship(
        "Image",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    urls = relationship(
        "Url",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =========================
# Image (stored object)
# =========================
class Image(Base):
    """
    Any object stored in the datasource, not only pictures.
    `file` is the key of the object inside the datasource.
    """

    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)

    file = Column(String, nullable=False, unique=True)
    mimetype = Column(String, nullable=False, server_default="image/png")
    views = Column(Integer, nullable=False, server_default="0", default=0)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    owner = relationship("User", back_populates="images")


# =========================
# Url (shortened link)
# =========================
class Url(Base):
    __tablename__ = "urls"

    id = Column(String, primary_key=True)

    vanity = Column(String, nullable=True, unique=True)
    destination = Column(Text, nullable=False)
    views = Column(Integer, nullable=False, server_default="0", default=0)
    max_views = Column(Integer, nullable=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    owner = relationship("User", back_populates="urls")

    invisible = relationship(
        "InvisibleUrl",
        back_populates="url",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =========================
# InvisibleUrl (zero-width alias of a Url)
# =========================
class InvisibleUrl(Base):
    __tablename__ = "invisible_urls"

    id = Column(Integer, primary_key=True, autoincrement=True)

    invis = Column(String, nullable=False, unique=True, index=True)

    url_id = Column(
        String,
        ForeignKey("urls.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    url = relationship("Url", back_populates="invisible")
