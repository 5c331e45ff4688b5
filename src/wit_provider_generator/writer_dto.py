"""Data Transfer Objects passed from the signature transformer to the writer."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing_extensions import override

from wit_provider_generator.errors import DuplicateMethodError
from wit_provider_generator.syntax import TypeRef


@dataclass(frozen=True)
class RecordField:
    """A field of an invocation record, i.e. a function parameter converted to owned data."""

    name: str
    type: TypeRef

    @override
    def __str__(self) -> str:
        return f"{self.name}: {self.type}"


@dataclass(frozen=True)
class LatticeMethod:
    """A function that can be invoked over the lattice.

    Attributes:
        interface: The WIT interface the function belongs to
        wire_name: The method name used on the lattice (e.g. "Message.RequestMulti")
        struct_name: The record an invocation is deserialized into (e.g. "MessagingConsumerRequestMultiInvocation")
        func_name: The method called on the provider once an invocation is received
        fields: The record fields, in parameter order
        invocation_args: The original parameter names, in order, used when forwarding calls
        return_type: The original return type, if any
    """

    interface: str
    wire_name: str
    struct_name: str
    func_name: str
    fields: tuple[RecordField, ...]
    invocation_args: tuple[str, ...]
    return_type: TypeRef | None = None

    @property
    def params(self) -> str:
        """The record fields rendered as a parameter list, e.g. `subject: String, timeout_ms: u32`."""
        return ", ".join(str(record_field) for record_field in self.fields)

    @property
    def return_clause(self) -> str:
        """The ` -> T` suffix of the method signature, or an empty string."""
        return f" -> {self.return_type}" if self.return_type is not None else ""


@dataclass
class DispatchTable:
    """All lattice methods of one generation, for a single provider struct.

    Methods are grouped by interface; interfaces and methods keep their discovery order.
    Wire names and record names must be unique across all interfaces, since every method
    ends up in the single dispatch routine of the provider.
    """

    target: str
    interfaces: dict[str, list[LatticeMethod]] = field(default_factory=dict)
    _wire_names: dict[str, LatticeMethod] = field(default_factory=dict, init=False, repr=False)
    _struct_names: dict[str, LatticeMethod] = field(default_factory=dict, init=False, repr=False)

    def add(self, trait_name: str, method: LatticeMethod) -> None:
        """Add a method to the trait of its interface.

        Args:
            trait_name: The name of the trait generated for the interface
            method: The method to add

        Raises:
            DuplicateMethodError: If the wire name or record name of the method is already taken.
        """
        existing = self._wire_names.get(method.wire_name)
        if existing is not None:
            raise DuplicateMethodError(
                f"functions '{existing.interface}::{existing.func_name}' and '{method.interface}::{method.func_name}' "
                f"would both be invoked as '{method.wire_name}'"
            )
        existing = self._struct_names.get(method.struct_name)
        if existing is not None:
            raise DuplicateMethodError(
                f"functions '{existing.interface}::{existing.func_name}' and '{method.interface}::{method.func_name}' "
                f"would both be received as '{method.struct_name}'"
            )

        self._wire_names[method.wire_name] = method
        self._struct_names[method.struct_name] = method
        self.interfaces.setdefault(trait_name, []).append(method)

    @property
    def methods(self) -> Iterator[LatticeMethod]:
        """All methods, interface by interface, in discovery order."""
        for methods in self.interfaces.values():
            yield from methods

    @property
    def wire_names(self) -> list[str]:
        return [method.wire_name for method in self.methods]

    def __len__(self) -> int:
        return len(self._wire_names)

    @override
    def __repr__(self) -> str:
        return f"DispatchTable(target={self.target!r}, interfaces={list(self.interfaces)}, methods={len(self)})"
