"""Adapters for the upstream binding generator (wit-bindgen) and checks on its output."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import Protocol

from typing_extensions import override

from wit_provider_generator.errors import BindgenError
from wit_provider_generator.rust_types import RustItemKind
from wit_provider_generator.syntax import SourceFile, VerbatimItem

logger = logging.getLogger(__name__)

COMPILE_ERROR_MACRO = "compile_error"

_STRING_LITERAL = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)


class BindingGenerator(Protocol):
    """Produces Rust source for a set of wit-bindgen arguments."""

    def generate(self, bindgen_args: str) -> str: ...


class FileBindingGenerator:
    """Uses binding generator output that was produced ahead of time."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def generate(self, bindgen_args: str) -> str:
        """Read the pre-generated output. The bindgen args only appear in the debug log."""
        logger.debug("reading pre-generated bindings from %s (args: %s)", self.path, bindgen_args)
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise BindgenError(f"failed to read binding generator output '{self.path}': {e}") from e

    @override
    def __repr__(self) -> str:
        return f"FileBindingGenerator({str(self.path)!r})"


class CommandBindingGenerator:
    """Runs an external command that prints binding generator output to stdout.

    The bindgen args are passed as the final command line argument.
    """

    def __init__(self, command: str | list[str]):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)

    def generate(self, bindgen_args: str) -> str:
        """Run the command and return its stdout.

        Raises:
            BindgenError: If the command cannot be started or exits with a non-zero status.
        """
        command = [*self.command, bindgen_args]
        logger.debug("running binding generator: %s", shlex.join(command))

        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise BindgenError(f"binding generator command not found: {self.command[0]}") from e
        except subprocess.SubprocessError as e:
            raise BindgenError(f"error running binding generator: {e}") from e

        if result.returncode != 0:
            raise BindgenError(
                f"binding generator exited with status {result.returncode}:\n\n{result.stderr.strip()}"
            )

        return result.stdout

    @override
    def __repr__(self) -> str:
        return f"CommandBindingGenerator({shlex.join(self.command)!r})"


def check_bindgen_output(source_file: SourceFile) -> None:
    """Make sure binding generator output can be used for generation.

    wit-bindgen reports failures (e.g. a malformed WIT package) by expanding to a single
    `compile_error!` invocation instead of declarations.

    Args:
        source_file (SourceFile): The parsed output.

    Raises:
        BindgenError: If the output reports a failure, is empty or could not be parsed.
    """
    for item in source_file.items:
        if (
            isinstance(item, VerbatimItem)
            and item.kind == RustItemKind.MACRO_INVOCATION
            and item.macro_name == COMPILE_ERROR_MACRO
        ):
            raise BindgenError(f"binding generation failed: {_compile_error_message(item.text)}")

    if source_file.has_error:
        line = source_file.error_line if source_file.error_line is not None else "?"
        raise BindgenError(f"failed to parse binding generator output (syntax error near line {line})")

    comments = (RustItemKind.LINE_COMMENT, RustItemKind.BLOCK_COMMENT)
    if all(isinstance(item, VerbatimItem) and item.kind in comments for item in source_file.items):
        raise BindgenError("binding generator produced no declarations")


def _compile_error_message(text: str) -> str:
    match = _STRING_LITERAL.search(text)
    if match is None:
        return text
    return match.group(1).replace("\\n", "\n").replace('\\"', '"')
