"""Helper functionality that is used in other modules of this package."""

from __future__ import annotations

import re

from wit_provider_generator.rust_types import INVOCATION_SUFFIX, RAW_IDENTIFIER_PREFIX, WIRE_METHOD_PREFIX

# Words inside a separator-free chunk: acronyms followed by a capitalized word, capitalized or
# lowercase words (digits stick to the preceding letters), and trailing acronyms.
_WORD_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z0-9]+")
_SEPARATOR_PATTERN = re.compile(r"[^A-Za-z0-9]+")


def strip_raw_identifier(name: str) -> str:
    """Remove the raw identifier prefix from a Rust identifier.

    E.g. `r#type` becomes `type`.

    Args:
        name (str): The identifier, possibly raw.

    Returns:
        str: The identifier without the `r#` prefix.
    """
    if name.startswith(RAW_IDENTIFIER_PREFIX):
        return name[len(RAW_IDENTIFIER_PREFIX) :]
    return name


def split_words(name: str) -> list[str]:
    """Split an identifier into its words.

    Word boundaries are separators (`_`, `-`, whitespace, ...), lowercase to uppercase
    transitions and the end of an acronym that is followed by a capitalized word.

    Args:
        name (str): The identifier to split.

    Returns:
        list[str]: The words, in order.

    Examples:
        >>> split_words("request_multi")
        ['request', 'multi']
        >>> split_words("HTTPServer")
        ['HTTP', 'Server']
    """
    words: list[str] = []
    for chunk in _SEPARATOR_PATTERN.split(strip_raw_identifier(name)):
        words.extend(_WORD_PATTERN.findall(chunk))
    return words


def to_upper_camel_case(name: str) -> str:
    """Convert an identifier to upper camel case.

    E.g. `request_multi` becomes `RequestMulti`, `HTTPServer` becomes `HttpServer`.

    Args:
        name (str): The identifier to convert.

    Returns:
        str: The upper camel case identifier.
    """
    return "".join(word[0].upper() + word[1:].lower() for word in split_words(name))


def wire_method_name(func_name: str) -> str:
    """Name under which a function is invoked over the lattice.

    E.g. `request_multi` becomes `Message.RequestMulti`.
    """
    return f"{WIRE_METHOD_PREFIX}{to_upper_camel_case(func_name)}"


def invocation_struct_name(package: str, interface: str, func_name: str) -> str:
    """Name of the record that an incoming invocation of a function is deserialized into.

    The name follows a `<Package><Interface><Function>Invocation` pattern,
    e.g. `MessagingConsumerRequestMultiInvocation`.

    Args:
        package (str): The WIT package name.
        interface (str): The WIT interface name.
        func_name (str): The function name.

    Returns:
        str: The record type name.
    """
    return (
        f"{to_upper_camel_case(package)}{to_upper_camel_case(interface)}"
        f"{to_upper_camel_case(func_name)}{INVOCATION_SUFFIX}"
    )


def normalize_whitespace(text: str) -> str:
    """Collapse all runs of whitespace into single spaces."""
    return " ".join(text.split())


def normalize_path(text: str) -> str:
    """Remove all whitespace from a Rust path, e.g. `:: serde :: Serialize` becomes `::serde::Serialize`."""
    return "".join(text.split())


def last_path_segment(path: str) -> str:
    """The final segment of a Rust path, e.g. `Serialize` for `::serde::Serialize`."""
    return normalize_path(path).rsplit("::", 1)[-1]


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split text on a separator that is not nested in (), [], {} or <>.

    Empty parts (e.g. from a trailing comma) are dropped and all parts are stripped.

    Args:
        text (str): The text to split.
        separator (str): A single separator character.

    Returns:
        list[str]: The top-level parts.
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "([{<":
            depth += 1
        elif char in ")]}>":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]
