from typing import List

from fastapi import APIRouter, Depends, Query

from cards_backend.api.deps import get_db, get_storage, require_admin
from cards_backend.api.schemas import CardOut, CardPage, CardUpdate, UserOut
from cards_backend.services import cards_service, users_service

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


# PUBLIC_INTERFACE
@router.get("/cards", response_model=CardPage, summary="All cards, paginated")
def all_cards(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100), db=Depends(get_db)):
    result = cards_service.list_all_cards(db, page=page, limit=limit)
    return {
        "cards": [CardOut.from_card(c) for c in result["cards"]],
        "pagination": result["pagination"],
    }

# PUBLIC_INTERFACE
@router.get("/users", response_model=List[UserOut], summary="All users")
def all_users(db=Depends(get_db)):
    return users_service.list_users(db)

# PUBLIC_INTERFACE
@router.put("/cards/{card_id}", response_model=CardOut, summary="Update any card")
def admin_update_card(card_id: int, card_update: CardUpdate, db=Depends(get_db), storage=Depends(get_storage)):
    data = card_update.model_dump(exclude_unset=True)
    if data.get("sections") is None:
        data.pop("sections", None)
    return CardOut.from_card(cards_service.admin_update_card(db, card_id, data, storage))
