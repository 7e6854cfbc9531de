import json

from galleria.services import codec
from tests.fakes import make_record


def test_encode_uses_camel_case_keys():
    raw = codec.encode(make_record(1))
    data = json.loads(raw)
    assert list(data) == ["id", "url", "pathname", "filename", "mimeType", "size", "uploadedBy", "uploadedAt"]
    assert data["mimeType"] == "image/jpeg"


def test_encode_is_deterministic():
    assert codec.encode(make_record(2)) == codec.encode(make_record(2))


def test_roundtrip():
    record = make_record(3)
    assert codec.decode(codec.encode(record)) == codec.Ok(record)


def test_absent_is_not_found():
    assert codec.decode(None) == codec.NotFound()


def test_empty_is_malformed():
    assert isinstance(codec.decode(""), codec.Malformed)
    assert isinstance(codec.decode("   "), codec.Malformed)


def test_garbage_is_malformed():
    result = codec.decode("{not json")
    assert isinstance(result, codec.Malformed)
    assert result.reason.startswith("unreadable record")


def test_missing_url_is_malformed():
    assert isinstance(codec.decode(json.dumps({"id": "image:1:x"})), codec.Malformed)


def test_legacy_record_with_only_id_and_url_decodes():
    result = codec.decode(json.dumps({"id": "image:1:x", "url": "https://x/a.jpg", "extra": 1}))
    assert isinstance(result, codec.Ok)
    assert result.record.url == "https://x/a.jpg"
    assert result.record.uploaded_at is None


def test_bytes_input_accepted():
    record = make_record(4)
    assert codec.decode(codec.encode(record).encode("utf-8")) == codec.Ok(record)


def test_javascript_iso_timestamp_decodes():
    raw = json.dumps({
        "id": "image:1:x",
        "url": "https://x/a.jpg",
        "uploadedAt": "2024-03-05T10:20:30.123Z",
    })
    result = codec.decode(raw)
    assert result.record.uploaded_at.year == 2024
    assert result.record.uploaded_at.microsecond == 123000
