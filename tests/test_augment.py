"""Tests for extending structs with serde derives."""

from __future__ import annotations

from wit_provider_generator.augment import add_serde_derives
from wit_provider_generator.syntax import Attribute, StructItem

SERDE = ["::serde::Serialize", "::serde::Deserialize"]


def _struct(*attributes: Attribute) -> StructItem:
    return StructItem(name="Greeting", attributes=list(attributes), text="pub struct Greeting {}")


def test_derive_group_is_extended():
    struct = _struct(Attribute.derive("Clone", "Debug"))
    assert add_serde_derives(struct)
    assert struct.derive_groups[0].arguments == ["Clone", "Debug", *SERDE]
    assert struct.derive_groups[0].render() == "#[derive(Clone, Debug, ::serde::Serialize, ::serde::Deserialize)]"


def test_augmenting_twice_changes_nothing():
    struct = _struct(Attribute.derive("Clone"))
    assert add_serde_derives(struct)
    assert not add_serde_derives(struct)
    assert struct.derive_groups[0].arguments == ["Clone", *SERDE]


def test_existing_capabilities_are_recognized_by_name():
    struct = _struct(Attribute.derive("Clone", "serde::Serialize"))
    assert add_serde_derives(struct)
    assert struct.derive_groups[0].arguments == ["Clone", "serde::Serialize", "::serde::Deserialize"]


def test_capabilities_in_other_derive_groups_are_recognized():
    struct = _struct(Attribute.derive("Clone"), Attribute.derive("Deserialize"))
    assert add_serde_derives(struct)
    assert [group.arguments for group in struct.derive_groups] == [["Clone", "::serde::Serialize"], ["Deserialize"]]


def test_fully_derived_struct_is_unchanged():
    struct = _struct(Attribute.derive("Serialize", "Deserialize"))
    assert not add_serde_derives(struct)
    assert struct.derive_groups[0].arguments == ["Serialize", "Deserialize"]


def test_struct_without_derive_group_is_left_alone():
    doc = Attribute(path="doc", text='#[doc = "A greeting"]')
    struct = _struct(doc)
    assert not add_serde_derives(struct)
    assert struct.attributes == [doc]
