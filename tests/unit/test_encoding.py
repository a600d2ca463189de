import pytest

from jwdoc.encoding import (
    base64url_decode,
    base64url_encode,
    canonical_json,
    decode_segment,
    encode_segment,
    signing_input,
)


def test_base64url_is_unpadded_and_url_safe():
    assert base64url_encode(b"\xfb\xff") == "-_8"
    assert base64url_decode("-_8") == b"\xfb\xff"
    assert base64url_encode("hi") == "aGk"


@pytest.mark.parametrize("text", ["ab=c", "a+bc", "a/bc", "a", "ab$c"])
def test_base64url_decode_rejects_non_base64url(text):
    with pytest.raises(ValueError):
        base64url_decode(text)


def test_canonical_json_keeps_member_order_and_unicode():
    assert canonical_json({"b": 1, "a": "é"}) == '{"b":1,"a":"é"}'


def test_segment_round_trip():
    value = {"sub": "alice", "n": [1, 2]}
    assert decode_segment(encode_segment(value)) == value


def test_signing_input_joins_encoded_segments():
    header = {"alg": "none"}
    payload = {"sub": "alice"}
    expected = f"{encode_segment(header)}.{encode_segment(payload)}".encode("ascii")
    assert signing_input(header, payload) == expected
    assert signing_input(header, payload).startswith(b"eyJhbGciOiJub25lIn0.")
