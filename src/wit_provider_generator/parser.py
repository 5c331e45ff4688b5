"""Read binding generator output (Rust source) into a `syntax.SourceFile`, using tree-sitter."""

from __future__ import annotations

import logging

import tree_sitter_rust
from tree_sitter import Language, Node, Parser

from wit_provider_generator import helper
from wit_provider_generator.rust_types import RustItemKind, RustTypeKind
from wit_provider_generator.syntax import (
    ArrayType,
    Attribute,
    FunctionItem,
    Item,
    ModuleItem,
    OpaqueType,
    Param,
    ReferenceType,
    SliceType,
    SourceFile,
    StructItem,
    TupleType,
    TypeRef,
    VerbatimItem,
    path_type,
)

logger = logging.getLogger(__name__)

RUST_LANGUAGE = Language(tree_sitter_rust.language())

# Nodes inside a declaration list / source file that are not items.
_PUNCTUATION = {"{", "}", ";"}


class RustSourceReader:
    """Converts a tree-sitter parse of Rust source into the generator's syntax tree."""

    def __init__(self, source: str):
        """Initialize the reader.

        Args:
            source (str): The Rust source text.
        """
        self._source_bytes = source.encode("utf-8")
        self._parser = Parser(RUST_LANGUAGE)

    def text(self, node: Node) -> str:
        """Source text spanned by a node."""
        return self._source_bytes[node.start_byte : node.end_byte].decode("utf-8")

    def read(self) -> SourceFile:
        """Parse the source and build the syntax tree.

        Returns:
            SourceFile: The root of the tree. Syntax errors are reported on the result, not raised.
        """
        tree = self._parser.parse(self._source_bytes)
        root = tree.root_node

        source_file = SourceFile(items=self._read_items(root))
        if root.has_error:
            source_file.has_error = True
            error_node = _first_error(root)
            if error_node is not None:
                source_file.error_line = error_node.start_point[0] + 1
            logger.debug("syntax error in binding output at line %s", source_file.error_line)

        return source_file

    # ===== Items =====

    def _read_items(self, container: Node) -> list[Item]:
        items: list[Item] = []
        pending_attributes: list[Attribute] = []

        for child in container.children:
            if child.type in _PUNCTUATION:
                continue

            if child.type == RustItemKind.ATTRIBUTE:
                pending_attributes.append(self._read_attribute(child))
                continue

            # Comments between outer attributes and their item stay in between on write.
            if pending_attributes and child.type in (RustItemKind.LINE_COMMENT, RustItemKind.BLOCK_COMMENT):
                pending_attributes.append(Attribute(path="", text=self.text(child).rstrip()))
                continue

            if child.type in (RustItemKind.INNER_ATTRIBUTE, RustItemKind.LINE_COMMENT, RustItemKind.BLOCK_COMMENT):
                items.append(VerbatimItem(kind=child.type, text=self.text(child)))
                continue

            items.append(self._read_item(child, pending_attributes))
            pending_attributes = []

        # Attributes with no item following them are kept, so they are not lost on write.
        for attribute in pending_attributes:
            items.append(VerbatimItem(kind=RustItemKind.ATTRIBUTE, text=attribute.text))

        return items

    def _read_item(self, node: Node, attributes: list[Attribute]) -> Item:
        if node.type == RustItemKind.MODULE:
            return self._read_module(node, attributes)
        if node.type == RustItemKind.STRUCT:
            return self._read_struct(node, attributes)
        if node.type == RustItemKind.FUNCTION:
            return self._read_function(node, attributes)

        macro_name = None
        macro_node = _find_macro_invocation(node)
        if macro_node is not None:
            macro_path = macro_node.child_by_field_name("macro")
            if macro_path is not None:
                macro_name = helper.last_path_segment(self.text(macro_path))

        kind = RustItemKind.MACRO_INVOCATION if macro_name is not None else node.type
        return VerbatimItem(kind=kind, text=self.text(node), attributes=attributes, macro_name=macro_name)

    def _read_module(self, node: Node, attributes: list[Attribute]) -> ModuleItem:
        name = self.text(node.child_by_field_name("name"))
        body = node.child_by_field_name("body")
        items = self._read_items(body) if body is not None else None
        return ModuleItem(name=name, items=items, attributes=attributes, visibility=self._visibility(node))

    def _read_struct(self, node: Node, attributes: list[Attribute]) -> StructItem:
        name = self.text(node.child_by_field_name("name"))
        return StructItem(name=name, attributes=attributes, text=self.text(node))

    def _read_function(self, node: Node, attributes: list[Attribute]) -> FunctionItem:
        name = self.text(node.child_by_field_name("name"))

        params: list[Param] = []
        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            for child in parameters.named_children:
                if child.type == "parameter":
                    params.append(self._read_param(child))
                elif child.type == "self_parameter":
                    params.append(Param(name=None, type=None, pattern=helper.normalize_whitespace(self.text(child))))

        return_node = node.child_by_field_name("return_type")
        return_type = self.read_type(return_node) if return_node is not None else None

        return FunctionItem(
            name=name,
            params=params,
            return_type=return_type,
            attributes=attributes,
            text=self.text(node),
        )

    def _read_param(self, node: Node) -> Param:
        pattern = node.child_by_field_name("pattern")
        type_node = node.child_by_field_name("type")
        mutable = any(child.type == "mutable_specifier" for child in node.children)

        pattern_text = helper.normalize_whitespace(self.text(pattern)) if pattern is not None else ""
        name = pattern_text if pattern is not None and pattern.type == "identifier" else None
        if mutable:
            pattern_text = f"mut {pattern_text}"

        return Param(
            name=name,
            type=self.read_type(type_node) if type_node is not None else OpaqueType(""),
            pattern=pattern_text,
            mutable=mutable,
        )

    def _read_attribute(self, node: Node) -> Attribute:
        text = self.text(node)
        attribute = next((child for child in node.named_children if child.type == "attribute"), None)
        if attribute is None or not attribute.named_children:
            return Attribute(path="", text=text)

        path = helper.normalize_path(self.text(attribute.named_children[0]))
        arguments = None
        token_tree = attribute.child_by_field_name("arguments")
        if token_tree is not None:
            arguments_text = self.text(token_tree)
            if arguments_text.startswith("(") and arguments_text.endswith(")"):
                arguments = [
                    helper.normalize_path(argument) for argument in helper.split_top_level(arguments_text[1:-1])
                ]

        return Attribute(path=path, text=text, arguments=arguments)

    def _visibility(self, node: Node) -> str:
        for child in node.children:
            if child.type == "visibility_modifier":
                return helper.normalize_whitespace(self.text(child))
        return ""

    # ===== Types =====

    def read_type(self, node: Node) -> TypeRef:
        """Convert a tree-sitter type node.

        Args:
            node (Node): The type node.

        Returns:
            TypeRef: The converted type. Shapes the generator does not look into become `OpaqueType`.
        """
        kind = node.type

        if kind == RustTypeKind.REFERENCE:
            inner = node.child_by_field_name("type")
            lifetime = next((self.text(child) for child in node.children if child.type == "lifetime"), None)
            mutable = any(child.type == "mutable_specifier" for child in node.children)
            if inner is None:
                return self._opaque(node)
            return ReferenceType(inner=self.read_type(inner), mutable=mutable, lifetime=lifetime)

        if kind in (RustTypeKind.PRIMITIVE, RustTypeKind.IDENTIFIER, RustTypeKind.SCOPED):
            text = helper.normalize_path(self.text(node))
            if "<" in text:
                return self._opaque(node)
            return path_type(text)

        if kind in (RustTypeKind.GENERIC, RustTypeKind.GENERIC_TURBOFISH):
            return self._read_generic(node)

        if kind == RustTypeKind.ARRAY:
            element = node.child_by_field_name("element")
            length = node.child_by_field_name("length")
            if element is None:
                return self._opaque(node)
            if length is None:
                return SliceType(element=self.read_type(element))
            return ArrayType(element=self.read_type(element), length=helper.normalize_whitespace(self.text(length)))

        if kind == RustTypeKind.TUPLE:
            return TupleType(elements=tuple(self.read_type(child) for child in node.named_children))

        if kind == RustTypeKind.UNIT:
            return TupleType()

        return self._opaque(node)

    def _read_generic(self, node: Node) -> TypeRef:
        base_node = node.child_by_field_name("type")
        arguments_node = node.child_by_field_name("type_arguments")
        if base_node is None or arguments_node is None:
            return self._opaque(node)

        base = helper.normalize_path(self.text(base_node)).removesuffix("::")
        if "<" in base:
            return self._opaque(node)

        arguments: list[TypeRef] = []
        for child in arguments_node.named_children:
            if child.type == "lifetime":
                continue
            arguments.append(self.read_type(child))

        return path_type(base, *arguments)

    def _opaque(self, node: Node) -> OpaqueType:
        return OpaqueType(helper.normalize_whitespace(self.text(node)))


def _first_error(node: Node) -> Node | None:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def _find_macro_invocation(node: Node) -> Node | None:
    """The macro invocation an item consists of, e.g. `::core::compile_error! { ... }`."""
    if node.type == RustItemKind.MACRO_INVOCATION:
        return node
    if node.type == "expression_statement" and node.named_children:
        child = node.named_children[0]
        if child.type == RustItemKind.MACRO_INVOCATION:
            return child
    return None


def parse_source(source: str) -> SourceFile:
    """Read Rust source text into a syntax tree.

    Args:
        source (str): The binding generator output.

    Returns:
        SourceFile: The syntax tree.
    """
    return RustSourceReader(source).read()
