from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional
from datetime import datetime

from cards_backend.services.cards_service import card_sections, card_share_url

# Pydantic models for serialization and validation

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"
SectionLayout = Literal["block", "inline"]
FontSize = Literal["small", "base", "large", "xl"]


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, description="User's username")
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=256)

class UserOut(UserBase):
    id: int
    role: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str

class RegisterOut(Token):
    user: UserOut

class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class OwnerOut(BaseModel):
    id: int
    username: str
    email: str

    class Config:
        from_attributes = True


class SectionIn(BaseModel):
    label: str = Field("", max_length=100)
    content: str = Field("", max_length=1000)
    layout: SectionLayout = "block"
    font_family: Optional[str] = Field(None, max_length=64)
    font_size: FontSize = "base"
    italic: bool = False
    bold: bool = False

class SectionOut(BaseModel):
    label: str
    content: str
    layout: str
    font_family: Optional[str] = None
    font_size: str
    italic: bool
    bold: bool


class CardStyle(BaseModel):
    background_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    text_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    button_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    font_family: Optional[str] = Field(None, max_length=64)
    title_font: Optional[str] = Field(None, max_length=64)
    subtitle_font: Optional[str] = Field(None, max_length=64)
    title_layout: Optional[Literal["inline", "stacked"]] = None
    title_size: Optional[Literal["base", "large", "xl", "2xl", "3xl"]] = None
    title_bold: Optional[bool] = None
    subtitle_bold: Optional[bool] = None
    description_font: Optional[str] = Field(None, max_length=64)
    description_size: Optional[FontSize] = None
    description_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    description_align: Optional[Literal["left", "center", "right"]] = None
    description_bold: Optional[bool] = None

class CardCreate(CardStyle):
    title: str = Field(..., min_length=1, max_length=100)
    subtitle: Optional[str] = Field(None, max_length=150)
    content: Optional[str] = Field(None, description="Section markup; ignored when sections are given")
    sections: Optional[List[SectionIn]] = None
    description: Optional[str] = Field(None, max_length=500)

class CardUpdate(CardStyle):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    subtitle: Optional[str] = Field(None, max_length=150)
    content: Optional[str] = None
    sections: Optional[List[SectionIn]] = None
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class CardOut(BaseModel):
    id: int
    short_code: str
    title: str
    subtitle: str
    content: str
    description: str
    image_url: str
    background_color: str
    text_color: str
    button_color: str
    font_family: str
    title_font: str
    subtitle_font: str
    title_layout: str
    title_size: str
    title_bold: bool
    subtitle_bold: bool
    description_font: Optional[str] = None
    description_size: str
    description_color: Optional[str] = None
    description_align: str
    description_bold: bool
    views: int
    is_active: bool
    created_by: int
    owner: Optional[OwnerOut] = None
    created_at: datetime
    updated_at: datetime
    sections: List[SectionOut] = []
    share_url: str = ""

    class Config:
        from_attributes = True

    @classmethod
    def from_card(cls, card):
        out = cls.model_validate(card)
        out.sections = [SectionOut(**s.to_dict()) for s in card_sections(card)]
        out.share_url = card_share_url(card)
        return out


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class CardPage(BaseModel):
    cards: List[CardOut]
    pagination: Pagination
