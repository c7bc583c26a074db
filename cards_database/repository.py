"""
Persistence helpers for users and cards.

Every query the services need lives here; callers pass the SQLAlchemy
session in, the way the API's dependency injection hands it out.
"""
from sqlalchemy import func, update

from cards_database.models import Card, User


# Users

def get_user(db, user_id: int):
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_username(db, username: str):
    return db.query(User).filter(User.username == username).first()

def get_user_by_email(db, email: str):
    return db.query(User).filter(User.email == email).first()

def username_taken(db, username: str, exclude_id=None) -> bool:
    query = db.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None

def email_taken(db, email: str, exclude_id=None) -> bool:
    query = db.query(User.id).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None

def insert_user(db, user: User) -> User:
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def save_user(db, user: User) -> User:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user

def list_users(db):
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


# Cards

# PUBLIC_INTERFACE
def find_card_by_short_code(db, code: str, active_only: bool = True):
    """Return the card published under ``code`` or None."""
    query = db.query(Card).filter(Card.short_code == code)
    if active_only:
        query = query.filter(Card.is_active.is_(True))
    return query.first()

# PUBLIC_INTERFACE
def exists_short_code(db, code: str) -> bool:
    """True when any card, active or not, already uses ``code``."""
    return db.query(Card.id).filter(Card.short_code == code).first() is not None

def get_card(db, card_id: int):
    return db.query(Card).filter(Card.id == card_id).first()

# PUBLIC_INTERFACE
def insert_card(db, card: Card) -> Card:
    """Persist a new card. Raises ``IntegrityError`` on a short-code clash."""
    db.add(card)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(card)
    return card

# PUBLIC_INTERFACE
def increment_views(db, card_id: int) -> None:
    """
    Add one view to the card.

    Runs as a single UPDATE so concurrent readers cannot lose increments.
    ``updated_at`` is left alone; a view is not an edit.
    """
    db.execute(
        update(Card)
        .where(Card.id == card_id)
        .values(views=Card.views + 1, updated_at=Card.updated_at)
    )
    db.commit()

# PUBLIC_INTERFACE
def find_cards_by_owner(db, owner_id: int):
    """All cards created by ``owner_id``, newest first."""
    return (
        db.query(Card)
        .filter(Card.created_by == owner_id)
        .order_by(Card.created_at.desc(), Card.id.desc())
        .all()
    )

# PUBLIC_INTERFACE
def update_card(db, card: Card, patch: dict) -> Card:
    """Apply ``patch`` to ``card`` and commit."""
    for key, value in patch.items():
        setattr(card, key, value)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(card)
    return card

# PUBLIC_INTERFACE
def delete_card(db, card: Card) -> None:
    db.delete(card)
    db.commit()

def list_cards(db, skip: int = 0, limit: int = 10):
    return (
        db.query(Card)
        .order_by(Card.created_at.desc(), Card.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

def count_cards(db) -> int:
    return db.query(func.count(Card.id)).scalar() or 0
