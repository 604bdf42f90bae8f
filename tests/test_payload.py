from __future__ import annotations

import json

import pytest

from helpers import media_item, song_item
from midicue.errors import MalformedPayloadError
from midicue.identity import item_fingerprint
from midicue.models import SetlistItem, new_item_id
from midicue.payload import CuePayload, item_from_payload, payload_from_item
from midicue.protocol import ItemType


def test_json_is_compact_sorted_and_ascii() -> None:
    text = CuePayload(title="שלום", item_type="media", media_name="x").to_json()
    assert " " not in text
    assert text.isascii()
    assert list(json.loads(text)) == sorted(json.loads(text))
    assert "slides" not in json.loads(text)


def test_song_payload_has_no_item_type() -> None:
    p = payload_from_item(song_item("Song", "line one"))
    assert p.item_type is None
    assert p.slides == [{"original_text": "line one", "verse_type": "Verse1"}]


def test_from_text_requires_marker() -> None:
    assert CuePayload.from_text('{"title": "x"}') is None
    assert CuePayload.from_text('midicue:{"title":"x"}').title == "x"


@pytest.mark.parametrize(
    "text",
    ["{", "[]", '{"slides": []}', '{"title": 5}', '{"title": "x", "item_type": "hologram"}'],
)
def test_malformed_payloads(text: str) -> None:
    with pytest.raises(MalformedPayloadError):
        CuePayload.from_json(text)


def test_unknown_keys_are_ignored() -> None:
    assert CuePayload.from_json('{"title": "x", "future_field": 1}').title == "x"


@pytest.mark.parametrize(
    "item",
    [
        song_item("Amazing Grace", "Amazing grace how sweet"),
        song_item("John 3:16", "For God so loved", item_type=ItemType.BIBLE),
        media_item("clip.mp4"),
        SetlistItem(id=new_item_id(), type=ItemType.COUNTDOWN, countdown_time=300, countdown_message="Soon"),
        SetlistItem(id=new_item_id(), type=ItemType.YOUTUBE, title="Video", youtube_video_id="abcDEF"),
        SetlistItem(id=new_item_id(), type=ItemType.MESSAGES, messages=["one", "two"]),
    ],
)
def test_rebuilt_item_keeps_identity(item: SetlistItem) -> None:
    rebuilt = item_from_payload(CuePayload.from_text(payload_from_item(item).to_text()))
    assert rebuilt.type is item.type
    assert rebuilt.id != item.id
    assert item_fingerprint(rebuilt) == item_fingerprint(item)


@pytest.mark.parametrize(
    "text",
    [
        '{"title": "x", "slides": "abc"}',
        '{"title": "x", "slides": [{"original_text": 3}]}',
        '{"title": "x", "messages": 5}',
        '{"title": "x", "tags": ["a", 1]}',
        '{"title": "x", "presentation_slides": ["one"]}',
        '{"title": "x", "countdown_time": "300"}',
        '{"title": "x", "countdown_time": true}',
        '{"title": "x", "media_duration": "long"}',
        '{"title": "x", "media_name": 42}',
    ],
)
def test_wrongly_typed_fields_are_malformed(text: str) -> None:
    with pytest.raises(MalformedPayloadError):
        CuePayload.from_json(text)


def test_null_fields_fall_back_to_defaults() -> None:
    p = CuePayload.from_json('{"title": "x", "messages": null, "media_duration": 12}')
    assert p.messages == []
    assert p.media_duration == 12


def test_item_from_payload_checks_hand_built_payloads() -> None:
    with pytest.raises(MalformedPayloadError):
        item_from_payload(CuePayload(title="x", item_type="media", messages=5))
