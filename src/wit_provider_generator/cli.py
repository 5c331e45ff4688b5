"""Command-line interface for generating wasmCloud provider bindings from wit-bindgen output.

Notes:
    - The generated code expects the `serde` and `async-trait` crates, and the provider SDK crate,
      to be dependencies of the crate it is included in.
"""

from __future__ import annotations

import argparse
import logging
import os
import os.path
from collections.abc import Sequence

from wit_provider_generator.errors import GenerationError
from wit_provider_generator.rust_types import DEFAULT_SDK_CRATE
from wit_provider_generator.run import run

logger = logging.getLogger(__name__)

DEBUG_ENVIRONMENT_VARIABLE = "WIT_PROVIDER_GENERATOR_DEBUG"
DEBUG_ENABLED_VALUES = {"1", "true", "yes", "on"}


def _add_bindings_source_arguments(parser: argparse.ArgumentParser):
    """Add the mutually exclusive sources of wit-bindgen output to a parser.

    Args:
        parser (argparse.ArgumentParser): The parser to add the arguments to.
    """
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "-b",
        "--bindings",
        type=str,
        default=None,
        help="path to a file holding the expanded wit-bindgen output.",
    )
    group.add_argument(
        "-c",
        "--bindgen-command",
        type=str,
        default=None,
        help="command that prints the wit-bindgen output; the bindgen arguments are appended to it.",
    )


def _debug_from_environment() -> bool:
    """Whether the environment enables diagnostic mode, e.g. `WIT_PROVIDER_GENERATOR_DEBUG=1`."""
    return os.environ.get(DEBUG_ENVIRONMENT_VARIABLE, "").strip().lower() in DEBUG_ENABLED_VALUES


def setup_parser() -> argparse.ArgumentParser:
    """Setup for the parser.

    Returns:
        argparse.ArgumentParser: The parser after setup.
    """
    parser = argparse.ArgumentParser(description="Generate wasmCloud capability provider bindings from WIT.")

    parser.add_argument(
        "-i",
        "--invocation",
        type=str,
        required=True,
        help="the macro input: the provider struct name, followed by the wit-bindgen arguments.",
    )

    _add_bindings_source_arguments(parser)

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default="",
        help="file to write the generated bindings to; defaults to stdout if omitted.",
    )

    parser.add_argument(
        "--sdk-crate",
        type=str,
        default=DEFAULT_SDK_CRATE,
        help=f"path of the provider SDK crate used by the generated code (default: {DEFAULT_SDK_CRATE}).",
    )

    parser.add_argument(
        "--no-format",
        dest="skip_format",
        default=False,
        action="store_true",
        help="skip rustfmt formatting of the generated bindings.",
    )

    parser.add_argument(
        "-d",
        "--debug",
        default=False,
        action="store_true",
        help=f"trace module classification and code generation; also enabled by {DEBUG_ENVIRONMENT_VARIABLE}.",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the provider binding generator.

    Args:
        argv (Sequence[str] | None, optional): Run arguments. Defaults to None.

    Returns:
        int: Error code.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    debug = args.debug or _debug_from_environment()
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)

    root_directory = os.getcwd()
    logging.info("Working from root directory: %s", root_directory)

    try:
        run(args, root_directory)
    except GenerationError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    return 0
