from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import TypeAdapter, EmailStr, ValidationError as PydanticValidationError

from cards_backend.api.deps import get_current_user, get_db, get_storage, token_for
from cards_backend.api.schemas import PasswordChange, RegisterOut, Token, UserCreate, UserOut
from cards_backend.errors import ValidationError
from cards_backend.services import users_service
from cards_backend.services.storage_service import ImageUpload
from cards_database.models import User

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

_email_adapter = TypeAdapter(EmailStr)


def read_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    if upload is None or not upload.filename:
        return None
    return ImageUpload(
        data=upload.file.read(),
        filename=upload.filename,
        content_type=upload.content_type or "",
    )


# PUBLIC_INTERFACE
@router.post("/register", response_model=RegisterOut, status_code=201, summary="Register a new user")
def register(user: UserCreate, db=Depends(get_db)):
    """
    Register a new user.
    Returns the new user record (excluding password) and an access token.
    """
    user_obj = users_service.register_user(db, user.username, user.email, user.password)
    return {"access_token": token_for(user_obj), "token_type": "bearer", "user": user_obj}

# PUBLIC_INTERFACE
@router.post("/login", response_model=Token, summary="Login and get JWT token")
def login(form_data: OAuth2PasswordRequestForm = Depends(), db=Depends(get_db)):
    """
    User login.
    Use the 'username' field for either username or email.
    """
    user = users_service.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return {"access_token": token_for(user), "token_type": "bearer"}

# PUBLIC_INTERFACE
@router.get("/me", response_model=UserOut, summary="Get current user profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return current_user

# PUBLIC_INTERFACE
@router.put("/profile", response_model=UserOut, summary="Update profile and avatar")
def update_profile(
    username: Optional[str] = Form(None, min_length=3, max_length=64),
    email: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    db=Depends(get_db),
    storage=Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    """
    Update username, email, bio and avatar of the authenticated user.
    Sent as multipart form data so an avatar file can ride along.
    """
    if email:
        try:
            email = _email_adapter.validate_python(email)
        except PydanticValidationError:
            raise ValidationError("Invalid email address.")
    image = read_upload(avatar)
    return users_service.update_profile(
        db, current_user, username=username, email=email, bio=bio, avatar=image, storage=storage,
    )

# PUBLIC_INTERFACE
@router.post("/change-password", summary="Change password")
def change_password(payload: PasswordChange, db=Depends(get_db), current_user: User = Depends(get_current_user)):
    users_service.change_password(db, current_user, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully."}
