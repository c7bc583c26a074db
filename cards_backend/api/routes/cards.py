from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from cards_backend.api.deps import get_current_user, get_db, get_storage
from cards_backend.api.routes.auth import read_upload
from cards_backend.api.schemas import CardCreate, CardOut, CardUpdate
from cards_backend.errors import ValidationError
from cards_backend.services import cards_service
from cards_backend.services.qr_service import render_qr_svg
from cards_database.models import User

router = APIRouter(prefix="/api/cards", tags=["Cards"])


def _card_data(model) -> dict:
    data = model.model_dump(exclude_unset=True)
    if data.get("sections") is None:
        data.pop("sections", None)
    return data


# PUBLIC_INTERFACE
@router.post("", response_model=CardOut, status_code=201, summary="Create a new card")
def create_card(card: CardCreate, db=Depends(get_db), storage=Depends(get_storage),
                current_user: User = Depends(get_current_user)):
    """
    Create a card for the authenticated user.
    Either ``content`` (raw section markup) or ``sections`` must be given.
    """
    card_obj = cards_service.create_card(db, current_user, _card_data(card), storage)
    return CardOut.from_card(card_obj)

# PUBLIC_INTERFACE
@router.post("/with-image", response_model=CardOut, status_code=201, summary="Create a card with an image")
def create_card_with_image(card: str = Form(..., description="CardCreate as JSON"),
                           image: UploadFile = File(None), db=Depends(get_db),
                           storage=Depends(get_storage), current_user: User = Depends(get_current_user)):
    """
    Multipart create: the card fields travel as a JSON ``card`` form field
    next to an optional ``image`` file. The image is stored first; if the
    card cannot be written it is removed again.
    """
    try:
        parsed = CardCreate.model_validate_json(card)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"]) or "card"
        raise ValidationError(f"{where}: {first['msg']}")
    card_obj = cards_service.create_card(db, current_user, _card_data(parsed), storage, image=read_upload(image))
    return CardOut.from_card(card_obj)

# PUBLIC_INTERFACE
@router.get("", response_model=List[CardOut], summary="List own cards")
def list_cards(db=Depends(get_db), current_user: User = Depends(get_current_user)):
    return [CardOut.from_card(c) for c in cards_service.list_owner_cards(db, current_user)]

# PUBLIC_INTERFACE
@router.get("/{short_code}/qr", summary="QR code for a card's share link")
def card_qr(short_code: str, db=Depends(get_db)):
    card = cards_service.find_public_card(db, short_code)
    return Response(content=render_qr_svg(cards_service.card_share_url(card)), media_type="image/svg+xml")

# PUBLIC_INTERFACE
@router.get("/{short_code}", response_model=CardOut, summary="View a card by short code")
def view_card(short_code: str, db=Depends(get_db)):
    """
    Public lookup; no authentication. Inactive cards are not found.
    Every successful lookup counts one view.
    """
    return CardOut.from_card(cards_service.get_public_card(db, short_code))

# PUBLIC_INTERFACE
@router.put("/{card_id}", response_model=CardOut, summary="Update a card")
def update_card(card_id: int, card_update: CardUpdate, db=Depends(get_db), storage=Depends(get_storage),
                current_user: User = Depends(get_current_user)):
    card_obj = cards_service.update_card(db, current_user, card_id, _card_data(card_update), storage)
    return CardOut.from_card(card_obj)

# PUBLIC_INTERFACE
@router.put("/{card_id}/image", response_model=CardOut, summary="Upload or replace a card image")
def upload_card_image(card_id: int, image: UploadFile = File(...), db=Depends(get_db),
                      storage=Depends(get_storage), current_user: User = Depends(get_current_user)):
    card_obj = cards_service.update_card(db, current_user, card_id, {}, storage, image=read_upload(image))
    return CardOut.from_card(card_obj)

# PUBLIC_INTERFACE
@router.delete("/{card_id}/image", response_model=CardOut, summary="Remove a card image")
def remove_card_image(card_id: int, db=Depends(get_db), storage=Depends(get_storage),
                      current_user: User = Depends(get_current_user)):
    card_obj = cards_service.update_card(db, current_user, card_id, {}, storage, remove_image=True)
    return CardOut.from_card(card_obj)

# PUBLIC_INTERFACE
@router.delete("/{card_id}", status_code=204, summary="Delete a card")
def delete_card(card_id: int, db=Depends(get_db), storage=Depends(get_storage),
                current_user: User = Depends(get_current_user)):
    cards_service.delete_card(db, current_user, card_id, storage)
    return Response(status_code=204)
