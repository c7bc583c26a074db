from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()

ROLE_USER = "user"
ROLE_ADMIN = "admin"

# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for an account that owns cards.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(128), unique=True, nullable=False)
    hashed_password = Column(String(256), nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_USER)
    avatar = Column(String(512), nullable=True)
    bio = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    cards = relationship("Card", back_populates="owner")

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

# PUBLIC_INTERFACE
class Card(Base):
    """
    SQLAlchemy model for a shareable business card.

    ``content`` holds the sections in the flat markup handled by
    ``cards_backend.utils.markup``. ``short_code`` and ``created_by`` never
    change after insert.
    """
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, index=True)
    short_code = Column(String(32), unique=True, index=True, nullable=False)

    title = Column(String(100), nullable=False)
    subtitle = Column(String(150), nullable=False, default="")
    content = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(512), nullable=False, default="")

    background_color = Column(String(7), nullable=False, default="#ffffff")
    text_color = Column(String(7), nullable=False, default="#000000")
    button_color = Column(String(7), nullable=False, default="#3b82f6")

    font_family = Column(String(64), nullable=False, default="Inter")
    title_font = Column(String(64), nullable=False, default="Inter")
    subtitle_font = Column(String(64), nullable=False, default="Inter")
    title_layout = Column(String(16), nullable=False, default="inline")
    title_size = Column(String(16), nullable=False, default="xl")
    title_bold = Column(Boolean, nullable=False, default=True)
    subtitle_bold = Column(Boolean, nullable=False, default=False)

    description_font = Column(String(64), nullable=True)
    description_size = Column(String(16), nullable=False, default="base")
    description_color = Column(String(7), nullable=True)
    description_align = Column(String(16), nullable=False, default="left")
    description_bold = Column(Boolean, nullable=False, default=False)

    views = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    owner = relationship("User", back_populates="cards")
