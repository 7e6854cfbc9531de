# tests/test_props.py
"""Property-based tests to catch logic bugs early"""

import datetime as dt
import string

from hypothesis import given, strategies as st

from galleria.schemas.image import ImageRecord
from galleria.services import codec
from galleria.services.reconcile import DEFECT_MARKER, repair_filename, repair_url
from galleria.services.upload import display_filename

fragments = st.lists(
    st.sampled_from(["undefined", "-", "_", ".", "abc", "123", "unde", "fined", "jpg", "/"]),
    max_size=12,
).map("".join)

records = st.builds(
    ImageRecord,
    id=st.text(string.ascii_letters + string.digits + ":", min_size=1, max_size=40),
    url=st.text(min_size=1, max_size=80),
    pathname=st.text(max_size=40),
    filename=st.text(max_size=40),
    mime_type=st.sampled_from(["image/jpeg", "image/png", "image/gif", "image/webp"]),
    size=st.integers(min_value=0, max_value=10 * 1024 * 1024),
    uploaded_by=st.emails(),
    uploaded_at=st.none() | st.datetimes(timezones=st.just(dt.timezone.utc)),
)


@given(records)
def test_codec_roundtrip(record):
    """Whatever we encode decodes back to the same record"""
    assert codec.decode(codec.encode(record)) == codec.Ok(record)


@given(st.text(max_size=60))
def test_decode_never_raises(raw):
    assert isinstance(codec.decode(raw), (codec.Ok, codec.NotFound, codec.Malformed))


@given(st.text(max_size=20), fragments, st.text(max_size=20))
def test_repair_url_is_clean_and_idempotent(head, middle, tail):
    url = head + middle + tail
    fixed = repair_url(url)
    assert DEFECT_MARKER not in fixed
    assert repair_url(fixed) == fixed


@given(fragments, fragments)
def test_repair_filename_drops_marker(name, fallback):
    fixed = repair_filename(name, fallback)
    assert "undefined" not in fixed
    assert repair_filename(fixed, fallback) == fixed


@given(st.none() | st.text(max_size=60))
def test_display_filename_is_never_empty(declared):
    name = display_filename(declared, "generated.jpg")
    assert name
    assert "/" not in name
