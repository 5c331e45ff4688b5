"""Turn collected functions into lattice methods, converting borrowed parameters to owned data.

wit-bindgen generates import functions that borrow, regardless of the ownership option, e.g.:

- fn request(subject: &str, body: Option<&[u8]>, timeout_ms: u32) -> Result<BrokerMessage, String>
- fn publish(msg: &BrokerMessage) -> Result<(), String>

Invocations arrive as serialized records, which cannot hold borrows, so every parameter is
classified into one of a closed set of shapes and rewritten to an owned equivalent.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from wit_provider_generator import helper
from wit_provider_generator.errors import UnsupportedParameterShapeError
from wit_provider_generator.rust_types import OWNED_SCALARS, OWNED_SEQUENCE, PRIMITIVE_TYPES
from wit_provider_generator.syntax import (
    ArrayType,
    FunctionItem,
    OpaqueType,
    Param,
    PathType,
    ReferenceType,
    SliceType,
    TupleType,
    TypeRef,
    contains_reference,
    path_type,
)
from wit_provider_generator.visitor import StructPathTable
from wit_provider_generator.writer_dto import DispatchTable, LatticeMethod, RecordField

logger = logging.getLogger(__name__)


class ParamShape:
    """Shapes of parameter types."""

    OWNED = "owned"
    """No borrow anywhere, e.g. `u32` or `Vec<u8>`."""

    BORROWED_SCALAR = "borrowed scalar"
    """A borrowed string or slice, e.g. `&str` or `&[u8]`."""

    WRAPPED_BORROWED_SCALAR = "wrapped borrowed scalar"
    """A generic whose arguments are borrowed strings or slices, e.g. `Option<&str>`."""

    BORROWED_AGGREGATE = "borrowed aggregate"
    """A borrowed named type or tuple, e.g. `&BrokerMessage`."""

    WRAPPED_BORROWED_AGGREGATE = "wrapped borrowed aggregate"
    """A generic with a borrowed named type among its arguments, e.g. `Option<&BrokerMessage>`."""


class _Unsupported(Exception):
    """Internal signal that a type has no owned equivalent."""

    pass


class SignatureTransformer:
    """Converts function parameters to owned record fields.

    Local struct names are replaced by their fully-qualified paths, since the generated records
    do not live in the module scope of the functions they mirror.
    """

    def __init__(self, struct_paths: StructPathTable, scope: Sequence[str] = ()):
        """Initialize the transformer.

        Args:
            struct_paths (StructPathTable): The paths of structs declared in the binding output.
            scope (Sequence[str]): Identifiers of the module the transformed functions are declared in.
        """
        self.struct_paths = struct_paths
        self.scope = tuple(scope)

    # ===== Classification =====

    def classify(self, type_ref: TypeRef) -> str:
        """Classify the shape of a parameter type.

        Args:
            type_ref (TypeRef): The parameter type.

        Returns:
            str: One of the `ParamShape` values.

        Raises:
            UnsupportedParameterShapeError: If the type borrows in a way that has no owned equivalent.
        """
        try:
            return self._classify(type_ref)
        except _Unsupported as e:
            raise UnsupportedParameterShapeError(f"unsupported parameter type `{type_ref}`: {e}") from e

    def _classify(self, type_ref: TypeRef) -> str:
        if not contains_reference(type_ref):
            return ParamShape.OWNED

        if isinstance(type_ref, ReferenceType):
            return ParamShape.BORROWED_SCALAR if self._is_scalar_target(type_ref) else ParamShape.BORROWED_AGGREGATE

        if isinstance(type_ref, PathType):
            borrowed = [argument for argument in type_ref.arguments if contains_reference(argument)]
            for argument in borrowed:
                if not isinstance(argument, ReferenceType):
                    raise _Unsupported(f"borrow nested below `{argument}`")
                self._own_reference(argument)
            if all(self._is_scalar_target(argument) for argument in borrowed):
                return ParamShape.WRAPPED_BORROWED_SCALAR
            return ParamShape.WRAPPED_BORROWED_AGGREGATE

        raise _Unsupported(f"borrow inside `{type_ref}`")

    def _is_scalar_target(self, reference: ReferenceType) -> bool:
        self._own_reference(reference)
        inner = reference.inner
        if isinstance(inner, SliceType):
            return _is_scalar_element(inner.element)
        return isinstance(inner, PathType) and inner.is_single_segment and inner.name in OWNED_SCALARS

    # ===== Rewriting =====

    def owned_type(self, type_ref: TypeRef) -> TypeRef:
        """The owned equivalent of a parameter type.

        Structs declared in the binding output are replaced by their full paths, wherever
        they appear in the type.

        Args:
            type_ref (TypeRef): The parameter type.

        Returns:
            TypeRef: The type to use for the record field.

        Raises:
            UnsupportedParameterShapeError: If the type borrows in a way that has no owned equivalent.
        """
        shape = self.classify(type_ref)

        if shape == ParamShape.OWNED:
            return self.qualify(type_ref)

        if shape in (ParamShape.BORROWED_SCALAR, ParamShape.BORROWED_AGGREGATE):
            assert isinstance(type_ref, ReferenceType)
            return self._own_reference(type_ref)

        assert isinstance(type_ref, PathType)
        arguments = tuple(
            self._own_reference(argument) if isinstance(argument, ReferenceType) else argument
            for argument in type_ref.arguments
        )
        owned = PathType(segments=type_ref.segments, arguments=arguments, leading_colon=type_ref.leading_colon)
        return self.qualify(owned)

    def _own_reference(self, reference: ReferenceType) -> TypeRef:
        if reference.mutable:
            raise _Unsupported("mutable borrows cannot be received over the lattice")

        inner = reference.inner

        if isinstance(inner, PathType):
            if any(contains_reference(argument) for argument in inner.arguments):
                raise _Unsupported(f"borrow nested below `{inner}`")
            if inner.is_single_segment and not inner.arguments and inner.name in OWNED_SCALARS:
                return path_type(OWNED_SCALARS[inner.name])
            return self.qualify(inner)

        if isinstance(inner, SliceType):
            element = inner.element
            if isinstance(element, ReferenceType):
                element = self._own_reference(element)
            elif contains_reference(element):
                raise _Unsupported(f"borrow nested below `{element}`")
            return path_type(OWNED_SEQUENCE, self.qualify(element))

        if isinstance(inner, (TupleType, ArrayType)) and not contains_reference(inner):
            return self.qualify(inner)

        if isinstance(inner, OpaqueType) and not inner.has_borrow:
            return inner

        raise _Unsupported(f"cannot take ownership of `{inner}`")

    def qualify(self, type_ref: TypeRef) -> TypeRef:
        """Replace the names of structs declared in the binding output by their full paths.

        Generic arguments, slice and array elements and tuple elements are qualified too.
        Other types are used as is.

        Args:
            type_ref (TypeRef): A type as written in the module of the transformed functions.

        Returns:
            TypeRef: The type as written outside of that module.
        """
        if isinstance(type_ref, PathType):
            arguments = tuple(self.qualify(argument) for argument in type_ref.arguments)
            path = self.struct_paths.resolve(type_ref.name, self.scope) if type_ref.is_single_segment else None
            if path is None:
                return PathType(segments=type_ref.segments, arguments=arguments, leading_colon=type_ref.leading_colon)
            return PathType(segments=path, arguments=arguments)

        if isinstance(type_ref, SliceType):
            return SliceType(element=self.qualify(type_ref.element))

        if isinstance(type_ref, ArrayType):
            return ArrayType(element=self.qualify(type_ref.element), length=type_ref.length)

        if isinstance(type_ref, TupleType):
            return TupleType(elements=tuple(self.qualify(element) for element in type_ref.elements))

        return type_ref

    # ===== Functions =====

    def transform(self, func: FunctionItem) -> tuple[list[RecordField], list[str]]:
        """Build the record fields and the forwarding argument list of a function.

        Args:
            func (FunctionItem): The function to transform.

        Returns:
            tuple[list[RecordField], list[str]]: The record fields and the parameter names, both in parameter order.

        Raises:
            UnsupportedParameterShapeError: If a parameter cannot be received over the lattice.
        """
        fields: list[RecordField] = []
        invocation_args: list[str] = []

        for param in func.params:
            name, type_ref = self._check_param(func, param)
            invocation_args.append(name)
            try:
                fields.append(RecordField(name=name, type=self.owned_type(type_ref)))
            except UnsupportedParameterShapeError as e:
                raise UnsupportedParameterShapeError(f"fn {func.name}, parameter '{name}': {e}") from e

        return fields, invocation_args

    @staticmethod
    def _check_param(func: FunctionItem, param: Param) -> tuple[str, TypeRef]:
        if param.is_receiver:
            raise UnsupportedParameterShapeError(
                f"fn {func.name}: receiver `{param.pattern}` cannot be invoked remotely"
            )
        if param.name is None:
            raise UnsupportedParameterShapeError(
                f"fn {func.name}: parameter pattern `{param.pattern}` is not a plain identifier"
            )
        assert param.type is not None
        return param.name, param.type


def _is_scalar_element(element: TypeRef) -> bool:
    """Whether slices of the element are scalars, i.e. `[u8]`, `[&str]` or `[String]`."""
    if isinstance(element, ReferenceType):
        element = element.inner
        return isinstance(element, PathType) and element.is_single_segment and element.name in OWNED_SCALARS
    return (
        isinstance(element, PathType)
        and element.is_single_segment
        and not element.arguments
        and (element.name in PRIMITIVE_TYPES or element.name in OWNED_SCALARS.values())
    )


def build_lattice_method(
    package: str,
    interface: str,
    func: FunctionItem,
    transformer: SignatureTransformer,
) -> LatticeMethod:
    """Build the lattice method for a function of an imported interface.

    Args:
        package (str): The WIT package name.
        interface (str): The WIT interface name.
        func (FunctionItem): The function.
        transformer (SignatureTransformer): The transformer for the interface module.

    Returns:
        LatticeMethod: The method.
    """
    fields, invocation_args = transformer.transform(func)
    return LatticeMethod(
        interface=interface,
        wire_name=helper.wire_method_name(func.name),
        struct_name=helper.invocation_struct_name(package, interface, func.name),
        func_name=func.name,
        fields=tuple(fields),
        invocation_args=tuple(invocation_args),
        return_type=transformer.qualify(func.return_type) if func.return_type is not None else None,
    )


def build_dispatch_table(
    target: str,
    namespace: str,
    package: str,
    struct_paths: StructPathTable,
    import_functions: dict[str, list[FunctionItem]],
) -> DispatchTable:
    """Build the lattice methods of all imported interfaces.

    Args:
        target (str): Name of the provider struct.
        namespace (str): The WIT namespace name.
        package (str): The WIT package name.
        struct_paths (StructPathTable): The paths of structs declared in the binding output.
        import_functions (dict[str, list[FunctionItem]]): Collected functions, by interface name.

    Returns:
        DispatchTable: The methods, grouped by interface trait name, in discovery order.

    Raises:
        UnsupportedParameterShapeError: If a parameter cannot be received over the lattice.
        DuplicateMethodError: If two functions would share a wire name or record name.
    """
    table = DispatchTable(target=target)

    for interface, funcs in import_functions.items():
        transformer = SignatureTransformer(struct_paths, scope=(namespace, package, interface))
        trait_name = helper.to_upper_camel_case(interface)

        for func in funcs:
            method = build_lattice_method(package, interface, func, transformer)
            logger.debug(
                "built lattice method %s -> %s(%s)", method.wire_name, method.struct_name, method.params
            )
            table.add(trait_name, method)

    return table
