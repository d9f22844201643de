import json

import pytest

from kvstore.codec import DecodeError, EncodingError, copy_value, decode, encode, read_snapshot, write_snapshot


def test_encode_decode_preserves_json_values():
    mapping = {
        "text": "hello",
        "number": 42,
        "float": 1.5,
        "flag": False,
        "nothing": None,
        "items": [1, "two", {"three": 3}],
        "nested": {"a": {"b": [True, None]}},
    }
    assert decode(encode(mapping)) == mapping


def test_encode_produces_json_object():
    raw = encode({"b": "2", "a": "1"})
    assert json.loads(raw) == {"a": "1", "b": "2"}
    assert raw.endswith(b"\n")


def test_encode_rejects_unrepresentable_values():
    with pytest.raises(EncodingError):
        encode({"bad": {1, 2}})
    with pytest.raises(EncodingError):
        encode({"nan": float("nan")})


def test_decode_empty_inputs():
    assert decode(b"{}") == {}
    assert decode(b"") == {}
    assert decode(b"  \n") == {}


@pytest.mark.parametrize("raw", [b"{not json", b"[1, 2]", b'"text"', b"\xff\xfe"])
def test_decode_rejects_malformed_documents(raw):
    with pytest.raises(DecodeError):
        decode(raw)


def test_copy_value_detaches_containers():
    original = {"list": [1, {"x": 1}]}
    copied = copy_value(original)
    original["list"][1]["x"] = 2
    original["list"].append(3)
    assert copied == {"list": [1, {"x": 1}]}


def test_write_and_read_snapshot(tmp_path):
    path = tmp_path / "nested" / "data.json"
    assert read_snapshot(path) is None

    write_snapshot(path, encode({"a": "1"}))
    assert decode(read_snapshot(path)) == {"a": "1"}
    assert not path.with_suffix(".json.tmp").exists()
