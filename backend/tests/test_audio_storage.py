"""Tests for audio storage helpers and the local filesystem backend."""

import asyncio
import base64
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tempo.config import settings
from tempo.middleware.error_handling import AudioNotFoundError, StorageError
from tempo.services.audio_storage import (
    audio_extension,
    content_type_for,
    decode_audio_payload,
    delete_audio,
    feedback_audio_path,
    is_remote,
    read_audio,
    save_audio,
    segment_audio_path,
    session_audio_path,
)


class TestDecode:

    def test_plain_base64(self):
        assert decode_audio_payload(base64.b64encode(b"abc").decode()) == b"abc"

    def test_data_url_prefix(self):
        payload = "data:audio/webm;base64," + base64.b64encode(b"xyz").decode()
        assert decode_audio_payload(payload) == b"xyz"

    def test_invalid_raises_value_error(self):
        with pytest.raises(ValueError):
            decode_audio_payload("not base64!!")


class TestPaths:

    def test_extension_from_file_name(self):
        assert audio_extension("take1.MP3") == ".mp3"
        assert audio_extension("no_extension") == ".webm"
        assert audio_extension(None) == ".webm"

    def test_content_types(self):
        assert content_type_for("a/b/c.mp3") == "audio/mpeg"
        assert content_type_for("a/b/c.webm") == "audio/webm"
        assert content_type_for("a/b/c.m4a") == "audio/mp4"

    def test_path_layout(self):
        assert session_audio_path("s1", "sess1", "x.wav") == "audio/s1/sess1/recording.wav"
        assert feedback_audio_path("seg1", "fb.ogg") == "audio/feedback/seg1/teacher-feedback.ogg"
        seg = segment_audio_path("s1", "sess1", "x.mp3")
        assert seg.startswith("audio/segments/s1/sess1/") and seg.endswith(".mp3")

    def test_is_remote(self):
        assert is_remote("https://blob.example.com/a.webm")
        assert not is_remote("/tmp/uploads/a.webm")


class TestLocalBackend:
    """Without a blob token, audio lives under UPLOAD_DIR."""

    @pytest.fixture(autouse=True)
    def _local(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
        monkeypatch.setattr(settings, "BLOB_READ_WRITE_TOKEN", "")
        self.root = tmp_path

    def test_save_read_delete(self):
        ref = asyncio.run(save_audio(b"hello", "audio/s1/sess1/recording.mp3"))
        assert ref.startswith(str(self.root.resolve()))

        data, content_type = asyncio.run(read_audio(ref))
        assert data == b"hello"
        assert content_type == "audio/mpeg"

        assert asyncio.run(delete_audio(ref)) is True
        assert asyncio.run(delete_audio(ref)) is False

    def test_read_missing_raises(self):
        with pytest.raises(AudioNotFoundError):
            asyncio.run(read_audio(str(self.root / "missing.webm")))

    def test_too_large_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "MAX_AUDIO_BYTES", 4)
        with pytest.raises(StorageError) as exc:
            asyncio.run(save_audio(b"12345", "audio/big.webm"))
        assert exc.value.status_code == 413

    def test_escape_upload_dir_rejected(self):
        with pytest.raises(StorageError):
            asyncio.run(save_audio(b"x", "../outside.webm"))

    def test_delete_none_is_noop(self):
        assert asyncio.run(delete_audio(None)) is False

    def test_remote_delete_without_token_is_noop(self):
        assert asyncio.run(delete_audio("https://blob.example.com/a.webm")) is False
