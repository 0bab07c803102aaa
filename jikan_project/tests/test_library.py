import json
import logging

import pytest

from jikan_project.library import (
    FAVORITES_KEY,
    RECENTS_KEY,
    AnimeLibrary,
    JsonFileStorage,
    LibraryError,
    MemoryStorage,
)


def anime(mal_id, title=None):
    return {"mal_id": mal_id, "title": title or f"Anime {mal_id}"}


def loaded_library(storage=None):
    library = AnimeLibrary(storage or MemoryStorage())
    library.load()
    return library


def test_toggle_favorite_adds_and_removes():
    storage = MemoryStorage()
    library = loaded_library(storage)

    assert library.toggle_favorite(anime(1)) is True
    assert library.toggle_favorite(anime(2)) is True
    assert library.is_favorite(1)
    assert [item["mal_id"] for item in library.favorites] == [1, 2]

    assert library.toggle_favorite(anime(1, "renamed")) is False
    assert not library.is_favorite(1)
    assert json.loads(storage.get(FAVORITES_KEY)) == [anime(2)]


def test_recents_are_most_recent_first_and_deduplicated():
    library = loaded_library()
    library.add_to_recents(anime(1))
    library.add_to_recents(anime(2))
    library.add_to_recents(anime(1))
    assert [item["mal_id"] for item in library.recents] == [1, 2]


def test_recents_are_capped():
    storage = MemoryStorage()
    library = loaded_library(storage)
    for mal_id in range(15):
        library.add_to_recents(anime(mal_id))
    assert len(library.recents) == 10
    assert library.recents[0]["mal_id"] == 14
    assert library.recents[-1]["mal_id"] == 5
    assert len(json.loads(storage.get(RECENTS_KEY))) == 10


def test_load_restores_saved_state():
    storage = MemoryStorage()
    first = loaded_library(storage)
    first.toggle_favorite(anime(7))
    first.add_to_recents(anime(8))

    second = loaded_library(storage)
    assert second.favorites == (anime(7),)
    assert second.recents == (anime(8),)


def test_corrupt_slot_is_discarded(caplog):
    storage = MemoryStorage({FAVORITES_KEY: "{not json", RECENTS_KEY: json.dumps({"mal_id": 1})})
    with caplog.at_level(logging.ERROR, logger="jikan_project.library"):
        library = loaded_library(storage)
    assert library.favorites == ()
    assert library.recents == ()
    assert len(caplog.records) == 2


def test_mutation_requires_load():
    library = AnimeLibrary(MemoryStorage())
    assert not library.loaded
    with pytest.raises(LibraryError):
        library.toggle_favorite(anime(1))
    with pytest.raises(LibraryError):
        library.add_to_recents(anime(1))


def test_entry_without_id_is_rejected():
    library = loaded_library()
    with pytest.raises(LibraryError):
        library.toggle_favorite({"title": "no id"})


def test_snapshots_are_read_only():
    library = loaded_library()
    library.toggle_favorite(anime(1))
    snapshot = library.favorites
    library.toggle_favorite(anime(2))
    assert snapshot == (anime(1),)


def test_json_file_storage(tmp_path):
    path = tmp_path / "state" / "library.json"
    storage = JsonFileStorage(path)
    assert storage.get(FAVORITES_KEY) is None

    library = loaded_library(storage)
    library.toggle_favorite(anime(5114, "Fullmetal Alchemist: Brotherhood"))
    library.add_to_recents(anime(20, "ナルト"))

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert set(on_disk) == {FAVORITES_KEY, RECENTS_KEY}

    reloaded = loaded_library(JsonFileStorage(path))
    assert reloaded.is_favorite(5114)
    assert reloaded.recents[0]["title"] == "ナルト"


def test_json_file_storage_rejects_non_object(tmp_path):
    path = tmp_path / "library.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(LibraryError):
        JsonFileStorage(path).get(FAVORITES_KEY)
