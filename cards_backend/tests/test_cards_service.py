import pytest
from sqlalchemy.exc import IntegrityError

from cards_backend.config import Settings
from cards_backend.errors import NotFoundOrForbidden, ShortCodeExhaustedError, UpstreamStorageError
from cards_backend.services import cards_service, users_service
from cards_backend.services.storage_service import ImageUpload
from cards_backend.utils import shortcode
from cards_backend.utils.markup import Section
from cards_database import repository
from cards_database.models import Card


@pytest.fixture
def owner(db_session):
    return users_service.register_user(db_session, "carol", "carol@example.com", "carolpassword")

@pytest.fixture
def image():
    return ImageUpload(data=b"\x89PNG", filename="logo.png", content_type="image/png")


def test_create_encodes_sections(db_session, owner, storage):
    card = cards_service.create_card(db_session, owner, {
        "title": "  Card  ",
        "sections": [Section(label="Tel", content="123", bold=True)],
        "content": "ignored: yes",
    }, storage)
    assert card.title == "Card"
    assert card.content == "Tel|bold: 123"
    assert cards_service.card_sections(card) == [Section(label="Tel", content="123", bold=True)]

def test_forced_collision_exhausts_without_persisting(db_session, owner, storage, monkeypatch):
    monkeypatch.setattr(repository, "exists_short_code", lambda db, code: True)
    with pytest.raises(ShortCodeExhaustedError):
        cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    assert db_session.query(Card).count() == 0

def clash():
    return IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: cards.short_code"))

def test_insert_race_retries_with_fresh_code(db_session, owner, storage, monkeypatch):
    calls = []
    clashed = set()
    real_insert = repository.insert_card

    def flaky_insert(db, card):
        calls.append(card.short_code)
        if len(calls) == 1:
            clashed.add(card.short_code)
            raise clash()
        return real_insert(db, card)

    monkeypatch.setattr(repository, "exists_short_code", lambda db, code: code in clashed)
    monkeypatch.setattr(repository, "insert_card", flaky_insert)
    card = cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    assert len(calls) == 2
    assert card.short_code == calls[1]

def test_insert_race_exhausts_and_discards_uploaded_image(db_session, owner, storage, image, monkeypatch):
    clashed = set()

    def always_clash(db, card):
        clashed.add(card.short_code)
        raise clash()

    monkeypatch.setattr(repository, "exists_short_code", lambda db, code: code in clashed)
    monkeypatch.setattr(repository, "insert_card", always_clash)
    with pytest.raises(ShortCodeExhaustedError):
        cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage, image=image)
    assert storage.objects == {}
    assert len(storage.deleted) == 1

def test_collisions_and_insert_clashes_share_one_budget(db_session, owner, storage, monkeypatch):
    draws = []
    clashed = set()
    real_generate = shortcode.generate_short_code

    def counting_generate(length):
        code = real_generate(length)
        draws.append(code)
        return code

    def exists(db, code):
        # every other fresh draw is reported as taken
        return code in clashed or len(draws) % 2 == 1

    def always_clash(db, card):
        clashed.add(card.short_code)
        raise clash()

    monkeypatch.setattr(shortcode, "generate_short_code", counting_generate)
    monkeypatch.setattr(repository, "exists_short_code", exists)
    monkeypatch.setattr(repository, "insert_card", always_clash)
    with pytest.raises(ShortCodeExhaustedError):
        cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    assert len(draws) == Settings.SHORT_CODE_MAX_ATTEMPTS

def test_unrelated_integrity_error_is_not_a_short_code_clash(db_session, owner, storage, monkeypatch):
    calls = []

    def broken_insert(db, card):
        calls.append(card.short_code)
        raise IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: cards.title"))

    monkeypatch.setattr(repository, "insert_card", broken_insert)
    with pytest.raises(IntegrityError):
        cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    assert len(calls) == 1


def test_create_with_image(db_session, owner, storage, image):
    card = cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage, image=image)
    assert storage.is_managed_url(card.image_url)
    assert storage.objects[card.image_url] == b"\x89PNG"

def test_failed_upload_aborts_creation(db_session, owner, storage, image):
    storage.fail_uploads = True
    with pytest.raises(UpstreamStorageError):
        cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage, image=image)
    assert db_session.query(Card).count() == 0

def test_image_url_cannot_be_set_directly(db_session, owner, storage):
    card = cards_service.create_card(db_session, owner, {
        "title": "t", "content": "a: b", "image_url": "https://elsewhere.test/x.png",
    }, storage)
    assert card.image_url == ""

def test_inactive_card_not_found_publicly(db_session, owner, storage):
    card = cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b", "is_active": False}, storage)
    with pytest.raises(NotFoundOrForbidden):
        cards_service.get_public_card(db_session, card.short_code)
    assert repository.find_card_by_short_code(db_session, card.short_code, active_only=False).id == card.id

def test_views_increment_by_one(db_session, owner, storage):
    card = cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    before = card.updated_at
    for _ in range(4):
        cards_service.get_public_card(db_session, card.short_code)
    db_session.refresh(card)
    assert card.views == 4
    assert card.updated_at == before

def test_ownership_gate(db_session, owner, storage):
    card = cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    stranger = users_service.register_user(db_session, "dave", "dave@example.com", "davepassword")
    with pytest.raises(NotFoundOrForbidden) as foreign:
        cards_service.update_card(db_session, stranger, card.id, {"title": "x"}, storage)
    with pytest.raises(NotFoundOrForbidden) as missing:
        cards_service.update_card(db_session, stranger, 4242, {"title": "x"}, storage)
    assert str(foreign.value) == str(missing.value)

    admin = users_service.ensure_admin(db_session, "dave", "dave@example.com", "davepassword")
    assert cards_service.update_card(db_session, admin, card.id, {"title": "x"}, storage).title == "x"

def test_failed_profile_save_discards_new_avatar(db_session, owner, storage, image, monkeypatch):
    def broken_save(db, user):
        raise IntegrityError("UPDATE", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repository, "save_user", broken_save)
    with pytest.raises(IntegrityError):
        users_service.update_profile(db_session, owner, bio="new bio", avatar=image, storage=storage)
    assert storage.objects == {}
    assert len(storage.deleted) == 1

def test_save_user_rolls_back_failed_commit(db_session, owner):
    other = users_service.register_user(db_session, "erin", "erin@example.com", "erinpassword")
    other.username = owner.username
    with pytest.raises(IntegrityError):
        repository.save_user(db_session, other)
    # session is usable again and the clash was not kept
    assert repository.get_user_by_username(db_session, "erin").id == other.id

def test_list_all_cards_clamps_arguments(db_session, owner, storage):
    cards_service.create_card(db_session, owner, {"title": "t", "content": "a: b"}, storage)
    result = cards_service.list_all_cards(db_session, page=0, limit=0)
    assert result["pagination"] == {"page": 1, "limit": 1, "total": 1, "pages": 1}
    assert cards_service.list_all_cards(db_session, limit=1000)["pagination"]["limit"] == 100
