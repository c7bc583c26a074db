"""
Card rules: creation with a unique short code, public lookup, owner/admin
gated edits and deletes, admin pagination.

Images are uploaded before the card row is written, so a failed upload never
leaves a card pointing at a missing object.
"""
import logging
import math
import re
from functools import partial

from sqlalchemy.exc import IntegrityError

from cards_backend.config import Settings
from cards_backend.errors import NotFoundOrForbidden, ShortCodeExhaustedError, ValidationError
from cards_backend.utils.markup import Section, decode_sections, encode_sections
from cards_backend.utils.shortcode import generate_unique_short_code
from cards_database import repository
from cards_database.models import Card

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_SUBTITLE_LENGTH = 150
MAX_CONTENT_LENGTH = 1000
MAX_DESCRIPTION_LENGTH = 500

EDITABLE_FIELDS = (
    "title", "subtitle", "content", "description", "image_url",
    "background_color", "text_color", "button_color",
    "font_family", "title_font", "subtitle_font",
    "title_layout", "title_size", "title_bold", "subtitle_bold",
    "description_font", "description_size", "description_color",
    "description_align", "description_bold",
    "is_active",
)
COLOR_FIELDS = ("background_color", "text_color", "button_color", "description_color")
COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def _as_section(value):
    if isinstance(value, Section):
        return value
    return Section(**{k: v for k, v in dict(value).items() if k in Section.__dataclass_fields__})


def _prepare(data: dict) -> dict:
    """Keep editable fields only and fold ``sections`` into ``content``."""
    data = dict(data)
    sections = data.pop("sections", None)
    patch = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if sections is not None:
        patch["content"] = encode_sections(_as_section(s) for s in sections)
    return patch


def _validate(patch: dict, creating: bool) -> None:
    if creating or "title" in patch:
        title = (patch.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required.")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters.")
        patch["title"] = title
    if creating or "content" in patch:
        content = patch.get("content") or ""
        if not content.strip():
            raise ValidationError("Content is required.")
        if len(content) > MAX_CONTENT_LENGTH:
            raise ValidationError(f"Content must be at most {MAX_CONTENT_LENGTH} characters.")
    if len(patch.get("subtitle") or "") > MAX_SUBTITLE_LENGTH:
        raise ValidationError(f"Subtitle must be at most {MAX_SUBTITLE_LENGTH} characters.")
    if len(patch.get("description") or "") > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters.")
    for field in COLOR_FIELDS:
        value = patch.get(field)
        if value and not COLOR_RE.match(value):
            raise ValidationError(f"{field} must be a hex colour like #1a2b3c.")
    # Nullable columns only accept None for these two
    for field in list(patch):
        if patch[field] is None and field not in ("description_font", "description_color"):
            del patch[field]


def _upload(storage, image, owner_id):
    image.validate()
    return storage.upload_image(image.data, image.filename, image.content_type, owner_id)["url"]


def _discard(storage, url):
    if url and storage.is_managed_url(url):
        if not storage.delete_image(url):
            logger.warning("could not remove image %s", url)


# PUBLIC_INTERFACE
def card_sections(card: Card):
    """Sections decoded from the stored content."""
    return decode_sections(card.content)


# PUBLIC_INTERFACE
def card_share_url(card: Card) -> str:
    return f"{Settings.PUBLIC_BASE_URL}/card/{card.short_code}"


# PUBLIC_INTERFACE
def create_card(db, owner, data: dict, storage, image=None) -> Card:
    """
    Create a card owned by ``owner``.

    ``data`` holds card fields, plus optionally ``sections`` which replace
    ``content``. The short code is drawn until it is unused; a unique-index
    violation at insert (a concurrent creator got the same code) uses up an
    attempt as well.
    """
    patch = _prepare(data)
    patch.pop("image_url", None)
    _validate(patch, creating=True)

    image_url = _upload(storage, image, owner.id) if image is not None else ""
    try:
        exists = partial(repository.exists_short_code, db)
        # One budget for both predicate collisions and insert-time clashes
        for _ in range(Settings.SHORT_CODE_MAX_ATTEMPTS):
            try:
                code = generate_unique_short_code(exists, max_attempts=1, length=Settings.SHORT_CODE_LENGTH)
            except ShortCodeExhaustedError:
                continue
            card = Card(**patch, image_url=image_url, short_code=code, created_by=owner.id)
            try:
                card = repository.insert_card(db, card)
            except IntegrityError:
                if not repository.exists_short_code(db, code):
                    raise
                logger.warning("short code %s taken at insert, retrying", code)
                continue
            logger.info("card id=%s short_code=%s created by user id=%s", card.id, card.short_code, owner.id)
            return card
        raise ShortCodeExhaustedError()
    except Exception:
        _discard(storage, image_url)
        raise


# PUBLIC_INTERFACE
def get_public_card(db, short_code: str) -> Card:
    """Look up an active card by short code and count one view."""
    card = repository.find_card_by_short_code(db, short_code, active_only=True)
    if card is None:
        raise NotFoundOrForbidden("Card not found.")
    repository.increment_views(db, card.id)
    db.refresh(card)
    return card


# PUBLIC_INTERFACE
def find_public_card(db, short_code: str) -> Card:
    """Like ``get_public_card`` without counting a view."""
    card = repository.find_card_by_short_code(db, short_code, active_only=True)
    if card is None:
        raise NotFoundOrForbidden("Card not found.")
    return card


# PUBLIC_INTERFACE
def list_owner_cards(db, owner):
    return repository.find_cards_by_owner(db, owner.id)


# PUBLIC_INTERFACE
def get_owned_card(db, actor, card_id: int) -> Card:
    """
    Return the card if ``actor`` created it or is an admin.

    Missing and foreign cards raise the same ``NotFoundOrForbidden``.
    """
    card = repository.get_card(db, card_id)
    if card is None or (card.created_by != actor.id and not actor.is_admin):
        raise NotFoundOrForbidden()
    return card


def _apply_update(db, card, data, storage, image=None, remove_image=False):
    patch = _prepare(data)
    patch.pop("image_url", None)
    _validate(patch, creating=False)

    old_image = None
    new_image = None
    if image is not None:
        new_image = _upload(storage, image, card.created_by)
        old_image = card.image_url
        patch["image_url"] = new_image
    elif remove_image:
        old_image = card.image_url
        patch["image_url"] = ""

    try:
        card = repository.update_card(db, card, patch)
    except Exception:
        _discard(storage, new_image)
        raise

    if old_image and old_image != card.image_url:
        _discard(storage, old_image)
    logger.info("card id=%s updated (%s)", card.id, ", ".join(sorted(patch)) or "no changes")
    return card


# PUBLIC_INTERFACE
def update_card(db, actor, card_id: int, data: dict, storage, image=None, remove_image=False) -> Card:
    """Owner-or-admin update. ``short_code`` and ``created_by`` are never patched."""
    card = get_owned_card(db, actor, card_id)
    return _apply_update(db, card, data, storage, image=image, remove_image=remove_image)


# PUBLIC_INTERFACE
def admin_update_card(db, card_id: int, data: dict, storage, image=None) -> Card:
    card = repository.get_card(db, card_id)
    if card is None:
        raise NotFoundOrForbidden("Card not found.")
    return _apply_update(db, card, data, storage, image=image)


# PUBLIC_INTERFACE
def delete_card(db, actor, card_id: int, storage) -> None:
    card = get_owned_card(db, actor, card_id)
    image_url = card.image_url
    repository.delete_card(db, card)
    logger.info("card id=%s deleted by user id=%s", card_id, actor.id)
    _discard(storage, image_url)


# PUBLIC_INTERFACE
def list_all_cards(db, page: int = 1, limit: int = 10) -> dict:
    """Admin listing, newest first, with page metadata."""
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    total = repository.count_cards(db)
    cards = repository.list_cards(db, skip=(page - 1) * limit, limit=limit)
    return {
        "cards": cards,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }
