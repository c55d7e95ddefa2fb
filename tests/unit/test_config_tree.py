"""Test config tree merging."""

from collections import OrderedDict
from types import MappingProxyType

import pytest

from apbatch.domain.config_tree import ConfigMerger, NodeKind, freeze, merge, node_kind, to_plain
from apbatch.domain.exceptions import ConfigKeyMismatchError


@pytest.fixture
def base():
    return {
        "SegmentDuration": 60,
        "ResampleRate": 22050,
        "LdSpectrogramConfig": {
            "ColorMap1": "ACI-ENT-EVN",
            "ColorMap2": "BGN-PMN-R3D",
        },
        "Profiles": ["a", "b"],
    }


def test_node_kind():
    """Values classify into the three node shapes."""
    assert node_kind({"a": 1}) is NodeKind.MAPPING
    assert node_kind([1, 2]) is NodeKind.SEQUENCE
    assert node_kind("text") is NodeKind.SCALAR
    assert node_kind(3.5) is NodeKind.SCALAR
    assert node_kind(None) is NodeKind.SCALAR


def test_empty_overrides_return_copy(base):
    """Merging nothing yields an equal but separate tree."""
    result = merge(base, {})
    assert result == base
    assert result is not base
    assert result["LdSpectrogramConfig"] is not base["LdSpectrogramConfig"]


def test_scalar_replaced(base):
    """A scalar override replaces the base value."""
    result = merge(base, {"SegmentDuration": 30})
    assert result["SegmentDuration"] == 30
    assert result["ResampleRate"] == 22050


def test_nested_mapping_merged_key_by_key(base):
    """Nested mappings are merged, untouched siblings survive."""
    result = merge(base, {"LdSpectrogramConfig": {"ColorMap1": "ACI-TEN-CVR"}})
    assert result["LdSpectrogramConfig"] == {
        "ColorMap1": "ACI-TEN-CVR",
        "ColorMap2": "BGN-PMN-R3D",
    }


def test_sequence_replaced_not_appended(base):
    """Sequences are replaced outright."""
    result = merge(base, {"Profiles": ["c"]})
    assert result["Profiles"] == ["c"]


def test_mapping_replaces_scalar(base):
    """A mapping over a scalar replaces it."""
    result = merge(base, {"SegmentDuration": {"Minutes": 1}})
    assert result["SegmentDuration"] == {"Minutes": 1}


def test_scalar_replaces_mapping(base):
    """A scalar over a mapping replaces it."""
    result = merge(base, {"LdSpectrogramConfig": None})
    assert result["LdSpectrogramConfig"] is None


def test_unknown_key_added_when_permissive(base):
    """Permissive merges add keys missing from the base."""
    result = merge(base, {"EventThreshold": 0.3})
    assert result["EventThreshold"] == 0.3


def test_strict_rejects_unknown_key(base):
    """Strict merges report the dotted path of the unknown key."""
    with pytest.raises(ConfigKeyMismatchError) as exc_info:
        ConfigMerger(strict=True).merge(base, {"LdSpectrogramConfig": {"ColorMap3": "x"}})

    assert exc_info.value.key_path == ("LdSpectrogramConfig", "ColorMap3")
    assert "LdSpectrogramConfig.ColorMap3" in str(exc_info.value)


def test_strict_accepts_known_keys(base):
    """Strict merges behave normally when every key exists."""
    result = ConfigMerger(strict=True).merge(base, {"LdSpectrogramConfig": {"ColorMap2": "x"}})
    assert result["LdSpectrogramConfig"]["ColorMap2"] == "x"


def test_inputs_not_mutated(base):
    """Neither base nor overrides change."""
    overrides = {"LdSpectrogramConfig": {"ColorMap1": "X"}, "New": [1]}
    base_before = {"SegmentDuration": 60, "ResampleRate": 22050,
                   "LdSpectrogramConfig": {"ColorMap1": "ACI-ENT-EVN", "ColorMap2": "BGN-PMN-R3D"},
                   "Profiles": ["a", "b"]}

    result = merge(base, overrides)
    result["New"].append(2)

    assert base == base_before
    assert overrides == {"LdSpectrogramConfig": {"ColorMap1": "X"}, "New": [1]}


def test_merge_is_idempotent(base):
    """Applying the same overrides twice changes nothing further."""
    overrides = {"SegmentDuration": 30, "LdSpectrogramConfig": {"ColorMap1": "X"}}
    once = merge(base, overrides)
    assert merge(once, overrides) == once


@pytest.mark.parametrize("mapping_type", [OrderedDict, MappingProxyType])
def test_mapping_types_become_dicts(base, mapping_type):
    """Any Mapping override is merged and stored as a plain dict."""
    value = mapping_type({"ColorMap1": "X", "Inner": mapping_type({"A": 1})})

    result = merge(base, {"LdSpectrogramConfig": value, "New": value})

    assert result["LdSpectrogramConfig"] == {"ColorMap1": "X", "ColorMap2": "BGN-PMN-R3D", "Inner": {"A": 1}}
    assert type(result["New"]) is dict
    assert type(result["New"]["Inner"]) is dict
    assert type(result["LdSpectrogramConfig"]["Inner"]) is dict


def test_read_only_base_is_rebuilt():
    """A frozen base still yields a mutable resolved tree."""
    result = merge(MappingProxyType({"Section": MappingProxyType({"A": 1})}), {"Section": {"B": 2}})

    assert result == {"Section": {"A": 1, "B": 2}}
    assert type(result["Section"]) is dict


def test_tuple_override_becomes_separate_lists(base):
    """A reused tuple yields two independent lists."""
    shared = ("ACI", "ENT")

    result = merge(base, {"Profiles": shared, "New": shared})

    assert result["Profiles"] == ["ACI", "ENT"]
    assert result["New"] == ["ACI", "ENT"]
    assert result["Profiles"] is not result["New"]


def test_to_plain_and_freeze():
    tree = {"A": [1, {"B": (2, 3)}], "C": "text"}

    frozen = freeze(tree)
    assert isinstance(frozen, MappingProxyType)
    assert isinstance(frozen["A"], tuple)
    assert frozen["A"][1]["B"] == (2, 3)
    with pytest.raises(TypeError):
        frozen["A"][1]["B"] = 4

    assert to_plain(frozen) == {"A": [1, {"B": [2, 3]}], "C": "text"}
