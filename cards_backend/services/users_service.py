"""
Account management: registration, login checks, profile and password changes.
"""
import logging

from passlib.context import CryptContext

from cards_backend.errors import ConflictError, ValidationError
from cards_database import repository
from cards_database.models import ROLE_ADMIN, ROLE_USER, User

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6
MAX_BIO_LENGTH = 500


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)


# PUBLIC_INTERFACE
def register_user(db, username: str, email: str, password: str, role: str = ROLE_USER) -> User:
    """Create an account; username and email must both be unused."""
    if repository.username_taken(db, username):
        raise ConflictError("Username already taken.")
    if repository.email_taken(db, email):
        raise ConflictError("Email already in use.")
    user = repository.insert_user(db, User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
    ))
    logger.info("registered user id=%s username=%s", user.id, user.username)
    return user


# PUBLIC_INTERFACE
def authenticate_user(db, login: str, password: str):
    """Match ``login`` against usernames first, then emails. None on failure."""
    for lookup in (repository.get_user_by_username, repository.get_user_by_email):
        user = lookup(db, login)
        if user and verify_password(password, user.hashed_password):
            return user
    return None


# PUBLIC_INTERFACE
def update_profile(db, user: User, username=None, email=None, bio=None, avatar=None, storage=None) -> User:
    """
    Change username, email, bio and/or avatar.

    ``avatar`` is an ``ImageUpload``; it is stored before the account row is
    touched and the previous managed avatar is removed afterwards.
    """
    changes = {}
    if username and username != user.username:
        if repository.username_taken(db, username, exclude_id=user.id):
            raise ConflictError("Username already taken.")
        changes["username"] = username
    if email and email != user.email:
        if repository.email_taken(db, email, exclude_id=user.id):
            raise ConflictError("Email already taken.")
        changes["email"] = email
    if bio is not None:
        if len(bio) > MAX_BIO_LENGTH:
            raise ValidationError(f"Bio must be at most {MAX_BIO_LENGTH} characters.")
        changes["bio"] = bio

    old_avatar = None
    new_avatar = None
    if avatar is not None:
        avatar.validate()
        uploaded = storage.upload_image(avatar.data, avatar.filename, avatar.content_type, user.id)
        old_avatar = user.avatar
        new_avatar = uploaded["url"]
        changes["avatar"] = new_avatar

    for key, value in changes.items():
        setattr(user, key, value)
    try:
        user = repository.save_user(db, user)
    except Exception:
        if new_avatar and storage.is_managed_url(new_avatar):
            storage.delete_image(new_avatar)
        raise

    if old_avatar and storage.is_managed_url(old_avatar):
        storage.delete_image(old_avatar)
    return user


# PUBLIC_INTERFACE
def change_password(db, user: User, current_password: str, new_password: str) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required.")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if not verify_password(current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect.")
    user.hashed_password = get_password_hash(new_password)
    repository.save_user(db, user)
    logger.info("password changed for user id=%s", user.id)


def list_users(db):
    return repository.list_users(db)


def ensure_admin(db, username: str, email: str, password: str) -> User:
    """Create an admin account, or promote the existing account with that username."""
    user = repository.get_user_by_username(db, username)
    if user is None:
        return register_user(db, username, email, password, role=ROLE_ADMIN)
    user.role = ROLE_ADMIN
    return repository.save_user(db, user)
