import math

import pytest

from backend.wellspring.errors import NotFound, ValidationError
from backend.wellspring.models.mood import EntryKind


def test_journal_crud_is_owner_scoped(journal_service):
    journal = journal_service.create(1, "first entry")

    assert journal_service.get(journal.id, 1).content == "first entry"
    with pytest.raises(NotFound):
        journal_service.get(journal.id, 2)
    with pytest.raises(NotFound):
        journal_service.update(journal.id, 2, "hijack")

    updated = journal_service.update(journal.id, 1, "edited entry")
    assert updated.content == "edited entry"
    assert updated.updated_at >= updated.created_at

    journal_service.delete(journal.id, 1)
    with pytest.raises(NotFound):
        journal_service.get(journal.id, 1)


def test_journal_rejects_empty_content(journal_service):
    with pytest.raises(ValidationError):
        journal_service.create(1, "")
    journal = journal_service.create(1, "ok")
    with pytest.raises(ValidationError):
        journal_service.update(journal.id, 1, "   ")


def test_journal_list_newest_first(journal_service):
    ids = [journal_service.create(1, f"entry {i}").id for i in range(3)]

    items, total = journal_service.list(1, limit=2)

    assert total == 3
    assert [j.id for j in items] == [ids[2], ids[1]]


@pytest.mark.parametrize("intensity", [-0.1, 1.01, math.nan])
def test_mood_intensity_out_of_range(mood_service, intensity):
    with pytest.raises(ValidationError):
        mood_service.create(1, "daily", "calm", intensity)


def test_mood_rejects_unknown_kind(mood_service):
    with pytest.raises(ValidationError):
        mood_service.create(1, "weekly", "calm", 0.5)


def test_mood_link_requires_owned_journal(mood_service, journal_service):
    journal = journal_service.create(1, "mine")

    with pytest.raises(NotFound):
        mood_service.create(2, "reflection", "calm", 0.6, journal_id=journal.id)

    entry = mood_service.create(1, "reflection", "calm", 0.6, journal_id=journal.id)
    assert entry.journal_id == journal.id


def test_deleting_journal_unlinks_mood_entry(mood_service, journal_service):
    journal = journal_service.create(1, "to be removed")
    entry = mood_service.create(1, EntryKind.EVENT, "surprise", 0.7, journal_id=journal.id)

    journal_service.delete(journal.id, 1)

    assert mood_service.get(entry.id, 1).journal_id is None


def test_mood_list_filters_by_kind(mood_service):
    mood_service.create(1, "daily", "calm", 0.6)
    mood_service.create(1, "event", "fear", 0.3)
    mood_service.create(2, "daily", "joy", 1.0)

    items, total = mood_service.list(1, entry_type="daily")
    assert total == 1
    assert items[0].primary_emotion == "calm"

    with pytest.raises(NotFound):
        mood_service.get(items[0].id, 2)
