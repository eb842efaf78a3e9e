"""
Test encryption key store
"""
import uuid

import pytest

from vod_pipeline.exceptions import InvalidParameter, NotFound
from vod_pipeline.services.key_store import KEY_SIZE, KeyStore, get_key_store


def test_generate_and_read_key(key_store):
    video_id = uuid.uuid4()
    key = key_store.generate_key(video_id)

    assert len(key) == KEY_SIZE
    assert key_store.get_key(video_id) == key
    assert key_store.exists(video_id)
    assert key_store.key_path(video_id) == f"{video_id}/enc.key"


def test_key_is_written_once(key_store):
    video_id = uuid.uuid4()
    key = key_store.generate_key(video_id)

    with pytest.raises(InvalidParameter):
        key_store.generate_key(video_id)
    assert key_store.get_key(video_id) == key


def test_keys_are_unique_per_video(key_store):
    assert key_store.generate_key(uuid.uuid4()) != key_store.generate_key(uuid.uuid4())


def test_missing_key_raises_not_found(key_store, tmp_path):
    with pytest.raises(NotFound):
        key_store.get_key(uuid.uuid4())
    with pytest.raises(NotFound):
        key_store.get_key_as_local_file(uuid.uuid4(), tmp_path / "work")


def test_save_key_rejects_wrong_length(key_store):
    with pytest.raises(InvalidParameter):
        key_store.save_key(uuid.uuid4(), b"short")


def test_key_as_local_file(key_store, tmp_path):
    video_id = uuid.uuid4()
    key = key_store.generate_key(video_id)

    path = key_store.get_key_as_local_file(video_id, tmp_path / "work" / "key")

    assert path.endswith("enc.key")
    with open(path, "rb") as f:
        assert f.read() == key


def test_delete_removes_key(key_store):
    video_id = uuid.uuid4()
    key_store.generate_key(video_id)

    key_store.delete(video_id)
    key_store.delete(video_id)

    assert not key_store.exists(video_id)


def test_object_store_keys_use_keys_prefix(memory_store):
    store = KeyStore(memory_store, "keys")
    video_id = uuid.uuid4()
    store.generate_key(video_id)

    assert list(memory_store.objects) == [f"keys/{video_id}/enc.key"]
    assert memory_store.content_types[f"keys/{video_id}/enc.key"] == "application/octet-stream"


def test_get_key_store_falls_back_to_local_disk(settings, tmp_path):
    store = get_key_store(settings)
    video_id = uuid.uuid4()
    store.generate_key(video_id)

    assert (tmp_path / "keys" / str(video_id) / "enc.key").is_file()
