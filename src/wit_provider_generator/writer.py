"""Write provider bindings: the augmented binding output followed by the lattice dispatch code."""

from __future__ import annotations

import logging

from wit_provider_generator.rust_types import DEFAULT_SDK_CRATE, LIFECYCLE_HOOKS, SERDE_DESERIALIZE, SERDE_SERIALIZE
from wit_provider_generator.scope import NoParentError, Scope
from wit_provider_generator.syntax import Attribute, Item, ModuleItem, SourceFile
from wit_provider_generator.writer_dto import DispatchTable, LatticeMethod

logger = logging.getLogger(__name__)

BINDGEN_START = "// START => Codegen performed by wit-bindgen"
BINDGEN_END = "// END => Codegen performed by wit-bindgen"
RECORDS_START = "// START => Generated imports for method invocations via lattice"
RECORDS_END = "// END => Generated imports for method invocations via lattice"
TRAITS_START = "// START => per-interface traits & impl"
TRAITS_END = "// END => per-interface traits & impl"

ASYNC_TRAIT = "#[async_trait]"


class Writer:
    """Writes the generated source for one provider struct."""

    def __init__(
        self,
        target: str,
        source_file: SourceFile,
        dispatch_table: DispatchTable,
        sdk_crate: str = DEFAULT_SDK_CRATE,
    ):
        """Initialize the writer.

        Args:
            target (str): Name of the provider struct the generated code is implemented for.
            source_file (SourceFile): The binding output, with structs already extended.
            dispatch_table (DispatchTable): The lattice methods to generate dispatch code for.
            sdk_crate (str): Path of the provider SDK crate.
        """
        self.target = target
        self.source_file = source_file
        self.dispatch_table = dispatch_table
        self.sdk = sdk_crate

        self.root = Scope(name="")
        self.scope = self.root

    # ===== Scopes =====

    def new_scope(self, name: str, heading: str) -> Scope:
        """Open a brace-delimited block below the current scope.

        Args:
            name (str): The name of the new scope.
            heading (str): The line that opens the block, without the opening brace.

        Returns:
            Scope: The parent of the new scope.
        """
        parent = self.scope
        self.scope = Scope(name=name, parent=parent, heading=heading)
        return parent

    def return_from_scope(self) -> None:
        """Close the current block and return to its parent."""
        if self.scope.parent is None:
            raise NoParentError("The current scope is the root scope and cannot be returned from.")
        parent = self.scope.parent
        parent.lines.extend(self.scope.close())
        self.scope = parent

    def _add_attributes(self, attributes: list[Attribute]) -> None:
        for attribute in attributes:
            self.scope.add_verbatim(attribute.render())

    # ===== Binding output =====

    def gen_item(self, item: Item) -> None:
        """Write an item of the binding output back out."""
        self._add_attributes(item.attributes)

        if isinstance(item, ModuleItem):
            self.gen_module(item)
        else:
            self.scope.add_verbatim(item.text)

    def gen_module(self, module: ModuleItem) -> None:
        """Write a module and, recursively, its items."""
        if module.items is None:
            self.scope.add(f"{module.heading};")
            return

        self.new_scope(module.name, module.heading)
        for item in module.items:
            self.gen_item(item)
        self.return_from_scope()

    def gen_bindgen_output(self) -> None:
        self.scope.add(BINDGEN_START)
        for item in self.source_file.items:
            self.gen_item(item)
        self.scope.add(BINDGEN_END)

    # ===== Provider =====

    def gen_provider_handler(self) -> None:
        """Write the lifecycle hooks, forwarding to the `_`-prefixed methods of the provider struct."""
        self.scope.add(
            "/// ProviderHandler ensures that your provider handles the basic",
            "/// required functionality of all Providers on a wasmCloud lattice.",
            "///",
            "/// This implementation is a stub and must be filled out by implementers",
            ASYNC_TRAIT,
        )
        self.new_scope("ProviderHandler", f"impl {self.sdk}::ProviderHandler for {self.target}")
        for index, (hook, hook_params, return_type, args) in enumerate(LIFECYCLE_HOOKS):
            if index:
                self.scope.add("")
            params = ", ".join(filter(None, ["&self", hook_params.format(sdk=self.sdk)]))
            return_clause = f" -> {return_type}" if return_type else ""
            self.new_scope(hook, f"async fn {hook}({params}){return_clause}")
            self.scope.add(f"self._{hook}({args}).await")
            self.return_from_scope()
        self.return_from_scope()
        self.scope.add(
            "",
            "/// Given the implementation of ProviderHandler and MessageDispatch,",
            "/// the implementation for your struct is a guaranteed",
            f"impl {self.sdk}::Provider for {self.target} {{}}",
        )

    def gen_invocation_record(self, method: LatticeMethod) -> None:
        """Write the record an invocation of a method is deserialized into."""
        self.scope.add(Attribute.derive("Debug", SERDE_SERIALIZE, SERDE_DESERIALIZE).render())
        self.new_scope(method.struct_name, f"struct {method.struct_name}")
        for record_field in method.fields:
            self.scope.add(f"{record_field},")
        self.return_from_scope()

    def gen_invocation_records(self) -> None:
        self.scope.add(RECORDS_START)
        for method in self.dispatch_table.methods:
            self.gen_invocation_record(method)
        self.scope.add(RECORDS_END)

    def gen_dispatch_arm(self, method: LatticeMethod) -> None:
        """Write the match arm that receives one method: deserialize, call, serialize."""
        args = ", ".join(["ctx", *(f"input.{arg}" for arg in method.invocation_args)])
        self.new_scope(method.wire_name, f'"{method.wire_name}" =>')
        self.scope.add(
            f"let input: {method.struct_name} = {self.sdk}::deserialize(&body)?;",
            f"let result = self.{method.func_name}({args}).await.map_err(|e| {{",
            f"    {self.sdk}::error::ProviderInvocationError::Provider(e.to_string())",
            "})?;",
            f"Ok({self.sdk}::serialize(&result)?)",
        )
        self.return_from_scope()

    def gen_message_dispatch(self) -> None:
        """Write the single dispatch routine of the provider, covering the methods of all interfaces."""
        self.scope.add(
            "/// MessageDispatch ensures that your provider can receive and",
            "/// process messages sent to it over the lattice",
            "///",
            "/// This implementation is a stub and must be filled out by implementers",
            ASYNC_TRAIT,
        )
        self.new_scope("MessageDispatch", f"impl {self.sdk}::MessageDispatch for {self.target}")
        self.scope.add(
            "async fn dispatch<'a>(",
            "    &'a self,",
            f"    ctx: {self.sdk}::Context,",
            "    method: String,",
            "    body: std::borrow::Cow<'a, [u8]>,",
        )
        self.new_scope("dispatch", f") -> Result<Vec<u8>, {self.sdk}::error::ProviderInvocationError>")
        self.new_scope("match", "match method.as_str()")

        for method in self.dispatch_table.methods:
            self.gen_dispatch_arm(method)

        self.scope.add(
            f"_ => Err({self.sdk}::error::InvocationError::Malformed(format!(",
            '    "Invalid method name {method}",',
            "))",
            ".into()),",
        )
        self.return_from_scope()
        self.return_from_scope()
        self.return_from_scope()

    def _method_signature(self, method: LatticeMethod) -> str:
        params = ", ".join(["&self", f"ctx: {self.sdk}::Context", *(str(f) for f in method.fields)])
        return f"async fn {method.func_name}({params}){method.return_clause}"

    def gen_interface(self, trait_name: str, methods: list[LatticeMethod]) -> None:
        """Write the trait of an interface and its forwarding implementation for the provider struct.

        The implementation calls the identically named method of the provider, so one struct can
        implement the traits of several interfaces.
        """
        self.scope.add(ASYNC_TRAIT)
        self.new_scope(trait_name, f"pub trait {trait_name}")
        for method in methods:
            self.scope.add(f"{self._method_signature(method)};")
        self.return_from_scope()

        self.scope.add("", ASYNC_TRAIT)
        self.new_scope(trait_name, f"impl {trait_name} for {self.target}")
        for index, method in enumerate(methods):
            if index:
                self.scope.add("")
            args = ", ".join(["ctx", *method.invocation_args])
            self.new_scope(method.func_name, self._method_signature(method))
            self.scope.add(f"self.{method.func_name}({args}).await")
            self.return_from_scope()
        self.return_from_scope()

    def gen_interfaces(self) -> None:
        self.scope.add(TRAITS_START)
        for index, (trait_name, methods) in enumerate(self.dispatch_table.interfaces.items()):
            if index:
                self.scope.add("")
            self.gen_interface(trait_name, methods)
        self.scope.add(TRAITS_END)

    # ===== Output =====

    def generate_all(self) -> None:
        """Write all sections, in order."""
        assert self.scope.is_root

        self.scope.add(
            "use ::serde::{Serialize, Deserialize};",
            "use ::async_trait::async_trait;",
            "",
        )
        self.gen_bindgen_output()
        self.scope.add("")
        self.gen_provider_handler()
        self.scope.add("")
        self.gen_invocation_records()
        self.scope.add("")
        self.gen_message_dispatch()
        self.scope.add("")
        self.gen_interfaces()

        logger.debug(
            "generated %d invocation record(s) and %d interface trait(s) for %s",
            len(self.dispatch_table),
            len(self.dispatch_table.interfaces),
            self.target,
        )

    def dumps(self) -> str:
        """Generates the output source.

        Returns:
            str: The output string.
        """
        if not self.root.lines:
            self.generate_all()
        assert self.scope.is_root
        return "\n".join(self.root.lines) + "\n"
