"""Tests for the binding generator adapters and upstream failure detection."""

from __future__ import annotations

import pytest

from wit_provider_generator.bindgen import CommandBindingGenerator, FileBindingGenerator, check_bindgen_output
from wit_provider_generator.errors import BindgenError
from wit_provider_generator.parser import parse_source


class TestFileBindingGenerator:
    def test_reads_file(self, bindings_file, greeter_bindings):
        assert FileBindingGenerator(bindings_file).generate('"wit"') == greeter_bindings

    def test_missing_file(self, tmp_path):
        with pytest.raises(BindgenError, match="failed to read"):
            FileBindingGenerator(tmp_path / "missing.rs").generate('"wit"')


class TestCommandBindingGenerator:
    def test_args_are_appended(self):
        assert CommandBindingGenerator("echo pub mod").generate("wasmcloud {}") == "pub mod wasmcloud {}\n"

    def test_command_list(self):
        assert CommandBindingGenerator(["echo", "-n"]).generate("x") == "x"

    def test_missing_command(self):
        with pytest.raises(BindgenError, match="not found"):
            CommandBindingGenerator("wit-provider-generator-no-such-command").generate("x")

    def test_failing_command(self):
        with pytest.raises(BindgenError, match="exited with status 1"):
            CommandBindingGenerator("false").generate("x")


class TestCheckBindgenOutput:
    def test_valid_output(self, greeter_bindings):
        check_bindgen_output(parse_source(greeter_bindings))

    @pytest.mark.parametrize(
        "source",
        [
            'compile_error!("failed to parse package: wit/provider.wit");',
            '::core::compile_error! { "failed to parse package: wit/provider.wit" }',
        ],
    )
    def test_compile_error(self, source):
        with pytest.raises(BindgenError) as excinfo:
            check_bindgen_output(parse_source(source))
        assert "binding generation failed: failed to parse package: wit/provider.wit" in str(excinfo.value)

    def test_escaped_compile_error_message(self):
        with pytest.raises(BindgenError, match='unknown type "foo"\n'):
            check_bindgen_output(parse_source(r'compile_error!("unknown type \"foo\"\n");'))

    @pytest.mark.parametrize("source", ["", "// nothing was generated\n", "/* empty */"])
    def test_empty_output(self, source):
        with pytest.raises(BindgenError, match="no declarations"):
            check_bindgen_output(parse_source(source))

    def test_syntax_error(self):
        with pytest.raises(BindgenError, match="syntax error near line"):
            check_bindgen_output(parse_source("pub mod a {}\n\npub fn broken( {}\n"))
