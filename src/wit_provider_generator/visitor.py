"""Walk binding generator output to classify its modules and collect the declarations generation needs.

The output of wit-bindgen is laid out positionally:

    <namespace>
        <package>
            <interface>         imported interfaces, free functions we must stub
    exports
        <namespace>
            <package>
                <interface>     exported interfaces, already fully defined

The visitor recognizes namespace, package and exports roots by depth and ancestry alone,
collects the functions of imported interfaces and records (and extends) every struct.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from wit_provider_generator.augment import add_serde_derives
from wit_provider_generator.errors import ClassificationError
from wit_provider_generator.rust_types import EXPORTS_MODULE_NAME
from wit_provider_generator.syntax import FunctionItem, Item, ModuleItem, SourceFile, StructItem

logger = logging.getLogger(__name__)

StructPath = tuple[str, ...]


class StructPathTable:
    """Fully-qualified paths of the structs declared in the binding output.

    Entries are keyed by full path, so same-named structs from different interfaces are all kept.
    Looking a bare name up resolves it from the scope it is used in.
    """

    def __init__(self) -> None:
        self._paths: dict[StructPath, None] = {}
        self._by_name: dict[str, list[StructPath]] = {}

    def register(self, module_path: Sequence[str], name: str) -> StructPath:
        """Record a struct declared in the given module.

        Args:
            module_path (Sequence[str]): Identifiers of the enclosing modules, outermost first.
            name (str): The struct name.

        Returns:
            StructPath: The fully-qualified path of the struct.
        """
        path = (*module_path, name)
        if path not in self._paths:
            self._paths[path] = None
            self._by_name.setdefault(name, []).append(path)
        return path

    def resolve(self, name: str, scope: Sequence[str] = ()) -> StructPath | None:
        """Find the struct a bare name refers to when used inside the given module.

        The struct whose module shares the longest prefix with the scope wins. Among equally
        close candidates the most recently discovered one wins.

        Args:
            name (str): The bare struct name.
            scope (Sequence[str]): Identifiers of the modules the name is used in.

        Returns:
            StructPath | None: The fully-qualified path, or None for names that are not local structs.
        """
        candidates = self._by_name.get(name)
        if not candidates:
            return None

        best = candidates[0]
        best_shared = -1
        for candidate in candidates:
            shared = _shared_prefix_length(candidate[:-1], scope)
            if shared >= best_shared:
                best, best_shared = candidate, shared
        return best

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[StructPath]:
        return iter(self._paths)


def _shared_prefix_length(left: Sequence[str], right: Sequence[str]) -> int:
    shared = 0
    for a, b in zip(left, right):
        if a != b:
            break
        shared += 1
    return shared


class BindgenOutputVisitor:
    """Visits the output of wit-bindgen, gathering the declarations we care about.

    Structs are extended with serde derives while they are visited; nothing else in the
    tree is modified.
    """

    def __init__(self) -> None:
        """Initialize an empty visitor."""
        # The detected namespace of the WIT file
        self.namespace: str | None = None

        # The detected package of the WIT file
        self.package: str | None = None

        # Parents of the current module being traversed
        self.parents: list[str] = []

        # The ('exports' -> <namespace>) module holding all exported interfaces
        self.exports_module: ModuleItem | None = None

        # Paths of all structs, which were extended to derive Serialize/Deserialize
        self.struct_paths = StructPathTable()

        # Functions of imported interfaces that need lattice stubs, by interface name
        self.import_functions: dict[str, list[FunctionItem]] = {}

    # ===== Position =====

    @property
    def current_module_level(self) -> int:
        return len(self.parents)

    @property
    def current_module_name(self) -> str | None:
        return self.parents[-1] if self.parents else None

    def at_child_of_module(self, name: str | None) -> bool:
        """Whether the direct parent has the given name."""
        return name is not None and self.current_module_name == name

    def at_exported_module(self) -> bool:
        """Whether we are currently *below* the 'exports' module."""
        return EXPORTS_MODULE_NAME in self.parents

    def at_interface_module(self) -> bool:
        """Whether we are directly inside an imported interface module, i.e. `<namespace>::<package>::<interface>`."""
        return (
            self.package is not None
            and self.current_module_level == 3
            and self.parents[0] == self.namespace
            and self.parents[1] == self.package
            and not self.at_exported_module()
        )

    def _trace_prefix(self) -> str:
        level = self.current_module_level
        return f"{'=' * level}> [(lvl {level}) module:{self.current_module_name}]"

    # ===== Visiting =====

    def visit_file(self, source_file: SourceFile) -> None:
        """Visit all items of a binding output."""
        for item in source_file.items:
            self.visit_item(item)

    def visit_item(self, item: Item) -> None:
        """Visit a single item, dispatching on its kind. Items we do not look into are passed over."""
        if isinstance(item, ModuleItem):
            self.visit_module(item)
        elif isinstance(item, FunctionItem):
            self.visit_function(item)
        elif isinstance(item, StructItem):
            self.visit_struct(item)

    def visit_module(self, module: ModuleItem) -> None:
        """Classify a module by its position, then traverse into it."""
        level = self.current_module_level
        logger.debug("%s> [(lvl %d) module:%s]", "=" * level, level, module.name)

        # ASSUMPTION: the WIT namespace is a module at level zero
        if level == 0 and module.name != EXPORTS_MODULE_NAME and self.namespace is None:
            self.namespace = module.name
            logger.debug("detected WIT namespace: %s", module.name)

        # ASSUMPTION: the level one module directly under the namespace is the WIT package
        if (
            level == 1
            and self.at_child_of_module(self.namespace)
            and not self.at_exported_module()
            and self.package is None
        ):
            self.package = module.name
            logger.debug("detected WIT package: %s", module.name)

        # ASSUMPTION: all exported interfaces are put into a level zero 'exports' module,
        # which contains the namespace again
        if level == 1 and self.at_child_of_module(EXPORTS_MODULE_NAME) and self.exports_module is None:
            self.exports_module = module
            logger.debug("detected exports root: %s::%s", EXPORTS_MODULE_NAME, module.name)

        if module.items is None:
            logger.debug("empty module: [%s]", module.name)
            return

        self.parents.append(module.name)
        try:
            for item in module.items:
                self.visit_item(item)
        finally:
            self.parents.pop()

        logger.debug("<%s [(lvl %d) module:%s]", "=" * level, level, module.name)

    def visit_function(self, func: FunctionItem) -> None:
        """Collect functions of imported interfaces, which must be made invocable over the lattice."""
        logger.debug("%s visiting fn %s", self._trace_prefix(), func.name)

        if self.at_interface_module():
            interface = self.current_module_name
            assert interface is not None
            self.import_functions.setdefault(interface, []).append(func)
            logger.debug("collected `%s` of interface %s", func.signature, interface)

    def visit_struct(self, struct: StructItem) -> None:
        """Record the path of a struct and make it serializable."""
        logger.debug("%s visiting struct %s", self._trace_prefix(), struct.name)

        add_serde_derives(struct)
        self.struct_paths.register(self.parents, struct.name)

    # ===== Results =====

    def require_package(self) -> tuple[str, str]:
        """The detected namespace and package.

        Returns:
            tuple[str, str]: The namespace and package names.

        Raises:
            ClassificationError: If either was not found.
        """
        if self.namespace is None:
            raise ClassificationError("failed to detect the top-level WIT namespace while reading bindgen output")
        if self.package is None:
            raise ClassificationError(
                f"failed to detect the top-level WIT package under namespace '{self.namespace}' "
                "while reading bindgen output"
            )
        return self.namespace, self.package


def collect_declarations(source_file: SourceFile) -> BindgenOutputVisitor:
    """Run the visitor over a binding output and check that its namespace and package were found.

    Args:
        source_file (SourceFile): The binding output. Its structs are extended in place.

    Returns:
        BindgenOutputVisitor: The visitor holding the collected declarations.

    Raises:
        ClassificationError: If the namespace or package could not be detected.
    """
    visitor = BindgenOutputVisitor()
    visitor.visit_file(source_file)
    visitor.require_package()
    return visitor
