"""Validation of the generator input: `<ProviderStruct>, <wit-bindgen args...>`."""

from __future__ import annotations

from dataclasses import dataclass

from wit_provider_generator.errors import InvocationError

# Token kinds.
TOK_IDENT = "IDENT"
TOK_PUNCT = "PUNCT"
TOK_LITERAL = "LITERAL"
TOK_GROUP = "GROUP"

_OPENING = {"(": ")", "[": "]", "{": "}"}
_CLOSING = set(_OPENING.values())

EXPECTED_SHAPE = """expected input of the form `<ProviderStruct>, <wit-bindgen args...>`, e.g.

    MyProvider, "wit/provider.wit"
    MyProvider, { world: "provider", path: "wit" }
"""


@dataclass
class TokenTree:
    """A top-level token of the input. Delimited groups count as a single token.

    Attributes:
        kind: The token kind
        value: The token source text
        offset: Offset of the token in the input
    """

    kind: str
    value: str
    offset: int


@dataclass
class Invocation:
    """The parts of a valid generator input.

    Attributes:
        target: Name of the provider struct the generated code is implemented for
        bindgen_args: The remaining input, passed on to the binding generator unmodified
    """

    target: str
    bindgen_args: str


def tokenize(text: str) -> list[TokenTree]:
    """Split input text into top-level token trees.

    Handles identifiers (including raw identifiers), string, char and numeric literals,
    delimited groups and single punctuation characters. Comments and whitespace are skipped.

    Raises:
        InvocationError: On unterminated groups, strings or comments.
    """
    tokens: list[TokenTree] = []
    i = 0
    n = len(text)

    while i < n:
        char = text[i]

        if char.isspace():
            i += 1
            continue

        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end + 1
            continue

        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise InvocationError(f"unterminated block comment at offset {i}, {EXPECTED_SHAPE}")
            i = end + 2
            continue

        if char in _OPENING:
            end = _skip_group(text, i)
            tokens.append(TokenTree(TOK_GROUP, text[i:end], i))
            i = end
            continue

        if char in _CLOSING:
            raise InvocationError(f"unbalanced '{char}' at offset {i}, {EXPECTED_SHAPE}")

        if char == '"' or (char in "br" and _starts_string(text, i)):
            end = _skip_string(text, i)
            tokens.append(TokenTree(TOK_LITERAL, text[i:end], i))
            i = end
            continue

        if char.isalpha() or char == "_":
            j = i + 2 if text.startswith("r#", i) else i
            while j < n and (text[j].isalnum() or text[j] == "_"):
                j += 1
            tokens.append(TokenTree(TOK_IDENT, text[i:j], i))
            i = j
            continue

        if char.isdigit():
            j = i
            while j < n and (text[j].isalnum() or text[j] in "._"):
                j += 1
            tokens.append(TokenTree(TOK_LITERAL, text[i:j], i))
            i = j
            continue

        tokens.append(TokenTree(TOK_PUNCT, char, i))
        i += 1

    return tokens


def parse_invocation(text: str) -> Invocation:
    """Validate generator input and split it into the target struct name and the bindgen args.

    Args:
        text (str): The generator input.

    Returns:
        Invocation: The target name and the unmodified remaining input.

    Raises:
        InvocationError: When there are fewer than three tokens, or the input does not start with `<identifier> ,`.
    """
    tokens = tokenize(text)
    if len(tokens) < 3:
        raise InvocationError(f"invalid token length ({len(tokens)}), {EXPECTED_SHAPE}")

    target, comma = tokens[0], tokens[1]
    if target.kind != TOK_IDENT or comma.kind != TOK_PUNCT or comma.value != ",":
        raise InvocationError(f"missing/invalid arguments, {EXPECTED_SHAPE}")

    return Invocation(target=target.value, bindgen_args=text[tokens[2].offset :].strip())


def _starts_string(text: str, i: int) -> bool:
    """Whether a byte (`b"`) or raw (`r"`, `r#"`, `br"`) string literal starts at i."""
    j = i
    if text.startswith("b", j):
        j += 1
    if text.startswith("r", j):
        j += 1
        while j < len(text) and text[j] == "#":
            j += 1
    return j > i and j < len(text) and text[j] == '"'


def _skip_string(text: str, i: int) -> int:
    """Offset just past the string literal starting at i."""
    j = i
    if text[j] == "b":
        j += 1
    if text[j] == "r":
        j += 1
        hashes = 0
        while text[j] == "#":
            hashes += 1
            j += 1
        terminator = '"' + "#" * hashes
        end = text.find(terminator, j + 1)
        if end == -1:
            raise InvocationError(f"unterminated raw string at offset {i}, {EXPECTED_SHAPE}")
        return end + len(terminator)

    j += 1
    while j < len(text):
        if text[j] == "\\":
            j += 2
            continue
        if text[j] == '"':
            return j + 1
        j += 1
    raise InvocationError(f"unterminated string at offset {i}, {EXPECTED_SHAPE}")


def _skip_group(text: str, i: int) -> int:
    """Offset just past the delimited group opening at i."""
    stack = [_OPENING[text[i]]]
    j = i + 1
    while j < len(text):
        char = text[j]
        if char == '"' or (char in "br" and _starts_string(text, j) and not _ident_continues(text, j)):
            j = _skip_string(text, j)
            continue
        if char in _OPENING:
            stack.append(_OPENING[char])
        elif char in _CLOSING:
            if char != stack.pop():
                raise InvocationError(f"mismatched '{char}' at offset {j}, {EXPECTED_SHAPE}")
            if not stack:
                return j + 1
        j += 1
    raise InvocationError(f"unterminated group at offset {i}, {EXPECTED_SHAPE}")


def _ident_continues(text: str, i: int) -> bool:
    return i > 0 and (text[i - 1].isalnum() or text[i - 1] == "_")
