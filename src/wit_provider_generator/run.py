"""Top-level module for provider binding generation."""

from __future__ import annotations

import argparse
import logging
import os.path
import subprocess
import sys
import tempfile
from pathlib import Path

from wit_provider_generator.bindgen import (
    BindingGenerator,
    CommandBindingGenerator,
    FileBindingGenerator,
    check_bindgen_output,
)
from wit_provider_generator.invocation import parse_invocation
from wit_provider_generator.parser import parse_source
from wit_provider_generator.rust_types import DEFAULT_SDK_CRATE
from wit_provider_generator.transform import build_dispatch_table
from wit_provider_generator.visitor import collect_declarations
from wit_provider_generator.writer import Writer

logger = logging.getLogger(__name__)

RUST_SUFFIX = ".rs"
RUSTFMT_EDITION = "2021"


def generate(
    macro_input: str,
    binding_generator: BindingGenerator,
    sdk_crate: str = DEFAULT_SDK_CRATE,
) -> str:
    """Entry-point for generating provider bindings.

    The input is validated before the binding generator runs. Any failure raises before
    output exists, so a failed generation never yields partial declarations.

    Args:
        macro_input (str): `<ProviderStruct>, <wit-bindgen args...>`.
        binding_generator (BindingGenerator): Produces the wit-bindgen output for the args.
        sdk_crate (str): Path of the provider SDK crate used by the generated code.

    Returns:
        str: The generated Rust source.

    Raises:
        GenerationError: If the input, the binding output or one of its functions cannot be handled.
    """
    invocation = parse_invocation(macro_input)
    logger.debug("generating provider bindings for %s with %r", invocation.target, binding_generator)

    source_file = parse_source(binding_generator.generate(invocation.bindgen_args))
    check_bindgen_output(source_file)
    logger.debug("read %d module(s) from binding output", len(source_file.walk_modules()))

    visitor = collect_declarations(source_file)
    namespace, package = visitor.require_package()
    logger.debug("found %d struct(s) in %s:%s", len(visitor.struct_paths), namespace, package)

    dispatch_table = build_dispatch_table(
        invocation.target,
        namespace,
        package,
        visitor.struct_paths,
        visitor.import_functions,
    )
    logger.debug("%r: %s", dispatch_table, ", ".join(dispatch_table.wire_names))

    writer = Writer(invocation.target, source_file, dispatch_table, sdk_crate=sdk_crate)
    return writer.dumps()


def format_output(raw_output: str) -> str:
    """Formats generated source using rustfmt.

    Args:
        raw_output (str): The unformatted source.

    Returns:
        str: The formatted source, or the unformatted source if rustfmt is unavailable or fails.
    """
    with tempfile.NamedTemporaryFile(mode="w", suffix=RUST_SUFFIX, delete=False, encoding="utf-8") as f:
        temp_path = Path(f.name)
        f.write(raw_output)

    try:
        subprocess.run(
            ["rustfmt", "--edition", RUSTFMT_EDITION, str(temp_path)],
            capture_output=True,
            check=True,
        )
        return temp_path.read_text(encoding="utf-8")

    except FileNotFoundError:
        logger.warning("rustfmt not found, writing unformatted output")
        return raw_output
    except subprocess.CalledProcessError as e:
        logger.error(f"rustfmt formatting failed: {e}")
        logger.error(f"Stderr: {e.stderr.decode('utf-8', errors='replace')}")
        return raw_output
    finally:
        temp_path.unlink(missing_ok=True)


def _binding_generator(args: argparse.Namespace, root_directory: str) -> BindingGenerator:
    bindings: str | None = getattr(args, "bindings", None)
    if bindings:
        return FileBindingGenerator(os.path.join(root_directory, bindings))
    return CommandBindingGenerator(args.bindgen_command)


def run(args: argparse.Namespace, root_directory: str):
    """Run the generator with the arguments of the command-line interface.

    Args:
        args (argparse.Namespace): The arguments that were passed when calling the generator.
        root_directory (str): The directory, from which the generator is executed.
    """
    output: str = getattr(args, "output", "")
    sdk_crate: str = getattr(args, "sdk_crate", DEFAULT_SDK_CRATE)
    skip_format: bool = getattr(args, "skip_format", False)

    generated = generate(args.invocation, _binding_generator(args, root_directory), sdk_crate=sdk_crate)

    if not skip_format:
        generated = format_output(generated)

    if not output:
        sys.stdout.write(generated)
        return

    output_path = os.path.join(root_directory, output)
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "w", encoding="utf8") as output_file:
        output_file.write(generated)

    logger.info("Wrote provider bindings to '%s'.", output_path)
