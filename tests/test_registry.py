import pytest
from hypothesis import given
from hypothesis import strategies as st

from FedoraMigrate.entities import EntityType
from FedoraMigrate.errors import ReferenceNotFound, RegistryError
from FedoraMigrate.registry import IdentifierRegistry

keys = st.lists(st.text(alphabet="0123456789abcdef", min_size=1, max_size=8), max_size=30)


def test_reserve_assigns_offset_plus_first_seen_index():
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.USER, offset=2)
    assert registry.reserve(EntityType.USER, "a") == 2
    assert registry.reserve(EntityType.USER, "b") == 3
    assert registry.reserve(EntityType.USER, "a") == 2
    assert registry.reserve(EntityType.USER, "c") == 4


def test_pin_does_not_consume_a_positional_index():
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.USER, offset=2)
    registry.pin(EntityType.USER, "admin", 1)
    assert registry.reserve(EntityType.USER, "alice") == 2
    registry.seal(EntityType.USER)
    assert registry.lookup(EntityType.USER, "admin") == 1


def test_conflicting_pin_is_rejected():
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.USER)
    registry.reserve(EntityType.USER, "k")
    with pytest.raises(RegistryError):
        registry.pin(EntityType.USER, "k", 99)


def test_slice_is_written_once():
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.FILE)
    registry.seal(EntityType.FILE)
    with pytest.raises(RegistryError):
        registry.open_slice(EntityType.FILE)
    with pytest.raises(RegistryError):
        registry.reserve(EntityType.FILE, "late")


def test_reserve_requires_open_slice():
    with pytest.raises(RegistryError):
        IdentifierRegistry().reserve(EntityType.MEDIA, "k")


def test_negative_offset_rejected():
    with pytest.raises(RegistryError):
        IdentifierRegistry().open_slice(EntityType.MEDIA, offset=-1)


def test_lookup_against_unsealed_slice_fails():
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.MEDIA)
    registry.reserve(EntityType.MEDIA, "k")
    with pytest.raises(ReferenceNotFound):
        registry.lookup(EntityType.MEDIA, "k")
    registry.seal(EntityType.MEDIA)
    assert registry.lookup(EntityType.MEDIA, "k") == 0


def test_lookup_unknown_key_or_type():
    registry = IdentifierRegistry()
    with pytest.raises(ReferenceNotFound) as excinfo:
        registry.lookup(EntityType.USER, "nobody")
    assert excinfo.value.entity_type is EntityType.USER
    assert excinfo.value.source_key == "nobody"

    registry.open_slice(EntityType.USER)
    registry.seal(EntityType.USER)
    with pytest.raises(ReferenceNotFound):
        registry.lookup(EntityType.USER, "nobody")


def test_slice_view_is_read_only():
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.NODE)
    registry.reserve(EntityType.NODE, "k")
    view = registry.slice(EntityType.NODE)
    with pytest.raises(TypeError):
        view["other"] = 5  # type: ignore[index]
    assert EntityType.NODE in registry
    assert list(registry) == [EntityType.NODE]
    assert not registry.is_sealed(EntityType.NODE)


@given(keys, st.integers(min_value=0, max_value=1000))
def test_ids_are_dense_and_unique(source_keys, offset):
    registry = IdentifierRegistry()
    registry.open_slice(EntityType.FILE, offset=offset)
    for key in source_keys:
        registry.reserve(EntityType.FILE, key)
    registry.seal(EntityType.FILE)

    distinct = list(dict.fromkeys(source_keys))
    ids = registry.slice(EntityType.FILE)
    assert list(ids) == distinct
    assert list(ids.values()) == list(range(offset, offset + len(distinct)))
