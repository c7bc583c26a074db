from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from cards_backend.config import Settings
from cards_backend.services.storage_service import SupabaseStorage
from cards_database import repository
from cards_database.db import SessionLocal
from cards_database.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

_storage = None


# DATABASE Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_storage():
    """Object storage collaborator, built once from settings."""
    global _storage
    if _storage is None:
        _storage = SupabaseStorage.from_settings()
    return _storage

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Generates JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta if expires_delta else timedelta(minutes=Settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, Settings.SECRET_KEY, algorithm=Settings.ALGORITHM)
    return encoded_jwt

def token_for(user: User) -> str:
    # "sub" must be a string for the JWT claim checks
    return create_access_token(data={"sub": str(user.id)})

def get_current_user(token: str = Depends(oauth2_scheme), db=Depends(get_db)):
    """Decodes JWT and retrieves user from DB."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, Settings.SECRET_KEY, algorithms=[Settings.ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        user_id = int(user_id)
    except (JWTError, ValueError):
        raise credentials_exception
    user = repository.get_user(db, user_id)
    if user is None:
        raise credentials_exception
    return user

def require_admin(user: User = Depends(get_current_user)):
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required.")
    return user
