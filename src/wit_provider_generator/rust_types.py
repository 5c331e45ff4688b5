"""Names and paths of the Rust surface that generated provider code relies on."""

from __future__ import annotations

EXPORTS_MODULE_NAME = "exports"
"""Module name wit-bindgen uses for the subtree holding all exported interfaces."""

DERIVE_ATTRIBUTE = "derive"

SERDE_SERIALIZE = "::serde::Serialize"
SERDE_DESERIALIZE = "::serde::Deserialize"

DEFAULT_SDK_CRATE = "::wasmcloud_provider_sdk"

RAW_IDENTIFIER_PREFIX = "r#"

# Borrowed scalar target -> owned replacement. Slices are handled separately, as `Vec<T>`.
OWNED_SCALARS = {
    "str": "String",
}

OWNED_SEQUENCE = "Vec"

PRIMITIVE_TYPES = frozenset(
    {
        "bool",
        "char",
        "u8",
        "u16",
        "u32",
        "u64",
        "u128",
        "usize",
        "i8",
        "i16",
        "i32",
        "i64",
        "i128",
        "isize",
        "f32",
        "f64",
    }
)

INVOCATION_SUFFIX = "Invocation"
WIRE_METHOD_PREFIX = "Message."

# Lifecycle hooks of ProviderHandler, mapped to the underscore-prefixed methods the user implements.
LIFECYCLE_HOOKS = (
    ("put_link", "ld: &{sdk}::core::LinkDefinition", "bool", "ld"),
    ("delete_link", "actor_id: &str", "", "actor_id"),
    ("shutdown", "", "", ""),
)


class RustItemKind:
    """Kinds of tree-sitter item nodes the reader distinguishes."""

    MODULE = "mod_item"
    STRUCT = "struct_item"
    FUNCTION = "function_item"
    ATTRIBUTE = "attribute_item"
    INNER_ATTRIBUTE = "inner_attribute_item"
    MACRO_INVOCATION = "macro_invocation"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"


class RustTypeKind:
    """Kinds of tree-sitter type nodes the reader converts."""

    REFERENCE = "reference_type"
    PRIMITIVE = "primitive_type"
    IDENTIFIER = "type_identifier"
    SCOPED = "scoped_type_identifier"
    GENERIC = "generic_type"
    GENERIC_TURBOFISH = "generic_type_with_turbofish"
    ARRAY = "array_type"
    TUPLE = "tuple_type"
    UNIT = "unit_type"
