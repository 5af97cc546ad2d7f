"""Golden vectors and properties for source id serialization."""

import hashlib

import pytest
from hypothesis import given
from hypothesis import strategies as st

from FedoraMigrate.php_serialize import (
    SerializationError,
    content_hash,
    serialize,
    source_ids_hash,
)

components = st.lists(st.text(min_size=0, max_size=20), min_size=1, max_size=5)


def test_serialize_two_components():
    assert serialize(["vcu:38191", "JPG"]) == b'a:2:{i:0;s:9:"vcu:38191";i:1;s:3:"JPG";}'


def test_serialize_single_component():
    assert serialize(["namespace:123"]) == b'a:1:{i:0;s:13:"namespace:123";}'


def test_source_ids_hash_golden_vector():
    assert (
        source_ids_hash(["vcu:38191", "JPG"])
        == "000004fd2f49c175d5642673755c3ee43f90b5eebad2694ac52eda44496c611f"
    )


def test_lengths_are_utf8_byte_lengths():
    # "é" is two bytes in UTF-8
    assert serialize(["é"]) == 'a:1:{i:0;s:2:"é";}'.encode("utf-8")


def test_empty_string_component():
    assert serialize([""]) == b'a:1:{i:0;s:0:"";}'


def test_delimiters_are_not_escaped():
    assert serialize(['a";b']) == b'a:1:{i:0;s:4:"a";b";}'


def test_content_hash_is_sha256_hex():
    assert content_hash(b"abc") == hashlib.sha256(b"abc").hexdigest()
    assert len(content_hash(b"")) == 64


@pytest.mark.parametrize("bad", [[], (), "vcu:1", b"vcu:1"])
def test_rejects_empty_or_bare_string(bad):
    with pytest.raises(SerializationError):
        serialize(bad)


def test_rejects_non_string_component():
    with pytest.raises(SerializationError, match="int"):
        serialize(["vcu:1", 3])


def test_order_matters():
    assert serialize(["a", "b"]) != serialize(["b", "a"])
    assert source_ids_hash(["a", "b"]) != source_ids_hash(["b", "a"])


def test_count_matters():
    assert serialize(["a"]) != serialize(["a", "a"])


def test_component_boundaries_matter():
    assert source_ids_hash(["ab", "c"]) != source_ids_hash(["a", "bc"])
    assert source_ids_hash(["a"]) != source_ids_hash(["a", ""])


@given(components)
def test_hash_is_deterministic(values):
    assert source_ids_hash(values) == source_ids_hash(list(values))
    assert source_ids_hash(values) == content_hash(serialize(values))


@given(components)
def test_serialized_shape(values):
    data = serialize(values)
    assert data.startswith(b"a:%d:{" % len(values))
    assert data.endswith(b"}")
    for index, value in enumerate(values):
        encoded = value.encode("utf-8")
        assert b'i:%d;s:%d:"%s";' % (index, len(encoded), encoded) in data
