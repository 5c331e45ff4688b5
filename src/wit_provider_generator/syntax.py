"""In-memory syntax tree of binding generator output.

Only the parts of the tree the generator looks into are modelled in detail (modules, structs
and the signatures of free functions). Every other item is kept as verbatim source text so the
tree can be written back out unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing_extensions import override

from wit_provider_generator import helper
from wit_provider_generator.rust_types import DERIVE_ATTRIBUTE

# ===== Attributes =====


@dataclass
class Attribute:
    """An outer attribute attached to an item, e.g. `#[derive(Clone, Debug)]`.

    Attributes:
        path: The attribute path, e.g. `derive` or `doc`. Empty for a comment kept between attributes
        text: The attribute source text, used for writing non-derive attributes back out
        arguments: The comma separated arguments of a list-style attribute, if any
    """

    path: str
    text: str
    arguments: list[str] | None = None

    @property
    def is_derive(self) -> bool:
        """Whether this is a `derive(...)` group."""
        return self.path == DERIVE_ATTRIBUTE and self.arguments is not None

    def render(self) -> str:
        """Source text of the attribute. Derive groups reflect their current arguments."""
        if self.is_derive:
            assert self.arguments is not None
            return f"#[{DERIVE_ATTRIBUTE}({', '.join(self.arguments)})]"
        return self.text

    @classmethod
    def derive(cls, *paths: str) -> Attribute:
        """Build a derive group from capability paths."""
        arguments = list(paths)
        return cls(path=DERIVE_ATTRIBUTE, text=f"#[{DERIVE_ATTRIBUTE}({', '.join(arguments)})]", arguments=arguments)


# ===== Types =====


@dataclass(frozen=True)
class PathType:
    """A (possibly generic) type path, e.g. `u32`, `Option<&str>` or `wit_bindgen::rt::string::String`."""

    segments: tuple[str, ...]
    arguments: tuple[TypeRef, ...] = ()
    leading_colon: bool = False

    @property
    def name(self) -> str:
        """The last segment of the path."""
        return self.segments[-1]

    @property
    def is_single_segment(self) -> bool:
        return len(self.segments) == 1 and not self.leading_colon

    @override
    def __str__(self) -> str:
        path = "::".join(self.segments)
        if self.leading_colon:
            path = f"::{path}"
        if self.arguments:
            path += f"<{', '.join(str(argument) for argument in self.arguments)}>"
        return path


@dataclass(frozen=True)
class ReferenceType:
    """A borrowed type, e.g. `&str` or `&'a mut T`."""

    inner: TypeRef
    mutable: bool = False
    lifetime: str | None = None

    @override
    def __str__(self) -> str:
        prefix = "&"
        if self.lifetime:
            prefix += f"{self.lifetime} "
        if self.mutable:
            prefix += "mut "
        return f"{prefix}{self.inner}"


@dataclass(frozen=True)
class SliceType:
    """A dynamically sized slice, e.g. `[u8]`."""

    element: TypeRef

    @override
    def __str__(self) -> str:
        return f"[{self.element}]"


@dataclass(frozen=True)
class ArrayType:
    """A fixed size array, e.g. `[u8; 16]`."""

    element: TypeRef
    length: str

    @override
    def __str__(self) -> str:
        return f"[{self.element}; {self.length}]"


@dataclass(frozen=True)
class TupleType:
    """A tuple type. The empty tuple is the unit type `()`."""

    elements: tuple[TypeRef, ...] = ()

    @override
    def __str__(self) -> str:
        if len(self.elements) == 1:
            return f"({self.elements[0]},)"
        return f"({', '.join(str(element) for element in self.elements)})"


@dataclass(frozen=True)
class OpaqueType:
    """Any type the generator does not look into, kept as normalized source text."""

    text: str

    @property
    def has_borrow(self) -> bool:
        return "&" in self.text or self.text.startswith(("dyn ", "impl "))

    @override
    def __str__(self) -> str:
        return self.text


TypeRef = PathType | ReferenceType | SliceType | ArrayType | TupleType | OpaqueType


def contains_reference(type_ref: TypeRef) -> bool:
    """Whether a borrow appears anywhere inside a type."""
    if isinstance(type_ref, ReferenceType):
        return True
    if isinstance(type_ref, PathType):
        return any(contains_reference(argument) for argument in type_ref.arguments)
    if isinstance(type_ref, (SliceType, ArrayType)):
        return contains_reference(type_ref.element)
    if isinstance(type_ref, TupleType):
        return any(contains_reference(element) for element in type_ref.elements)
    return type_ref.has_borrow


# ===== Items =====


@dataclass
class Param:
    """A function parameter.

    Attributes:
        name: The bound identifier, or None when the pattern is not a plain identifier
        type: The declared type, or None for `self` receivers
        pattern: The source text of the pattern
        mutable: Whether the binding is declared `mut`
    """

    name: str | None
    type: TypeRef | None
    pattern: str = ""
    mutable: bool = False

    @property
    def is_receiver(self) -> bool:
        return self.type is None

    @override
    def __str__(self) -> str:
        if self.type is None:
            return self.pattern
        return f"{self.pattern or self.name}: {self.type}"


@dataclass
class FunctionItem:
    """A free function, e.g. `pub fn greet(name: &str) -> Result<String, String> { ... }`."""

    name: str
    params: list[Param] = field(default_factory=list)
    return_type: TypeRef | None = None
    attributes: list[Attribute] = field(default_factory=list)
    text: str = ""

    @property
    def signature(self) -> str:
        """A one-line rendering of the signature, used in messages."""
        rendered = f"fn {self.name}({', '.join(str(param) for param in self.params)})"
        if self.return_type is not None:
            rendered += f" -> {self.return_type}"
        return rendered


@dataclass
class StructItem:
    """A struct declaration. `text` is the declaration without its outer attributes."""

    name: str
    attributes: list[Attribute] = field(default_factory=list)
    text: str = ""

    @property
    def derive_groups(self) -> list[Attribute]:
        return [attribute for attribute in self.attributes if attribute.is_derive]


@dataclass
class ModuleItem:
    """A module. `items` is None for out-of-line modules (`mod name;`)."""

    name: str
    items: list[Item] | None = field(default_factory=list)
    attributes: list[Attribute] = field(default_factory=list)
    visibility: str = ""

    @property
    def heading(self) -> str:
        prefix = f"{self.visibility} " if self.visibility else ""
        return f"{prefix}mod {self.name}"


@dataclass
class VerbatimItem:
    """Any other item (impls, traits, enums, uses, macros, comments...) kept as source text.

    Attributes:
        kind: The tree-sitter node kind, e.g. `impl_item` or `macro_invocation`
        text: The item source text, without its outer attributes
        attributes: Outer attributes attached to the item
        macro_name: The invoked macro name (last path segment) for macro invocations
    """

    kind: str
    text: str
    attributes: list[Attribute] = field(default_factory=list)
    macro_name: str | None = None


Item = ModuleItem | StructItem | FunctionItem | VerbatimItem


@dataclass
class SourceFile:
    """The root of a binding generator output.

    Attributes:
        items: The top-level items
        has_error: Whether the reader met syntax it could not parse
        error_line: 1-based line of the first syntax error, if any
    """

    items: list[Item] = field(default_factory=list)
    has_error: bool = False
    error_line: int | None = None

    def walk_modules(self) -> list[ModuleItem]:
        """All modules of the tree, depth first, in declaration order."""
        modules: list[ModuleItem] = []
        pending = [item for item in reversed(self.items) if isinstance(item, ModuleItem)]
        while pending:
            module = pending.pop()
            modules.append(module)
            if module.items:
                pending.extend(item for item in reversed(module.items) if isinstance(item, ModuleItem))
        return modules


def path_type(path: str, *arguments: TypeRef) -> PathType:
    """Build a PathType from path text, e.g. `path_type("Option", path_type("u32"))`."""
    path = helper.normalize_path(path)
    leading_colon = path.startswith("::")
    segments = tuple(segment for segment in path.split("::") if segment)
    return PathType(segments=segments, arguments=tuple(arguments), leading_colon=leading_colon)
