"""CLI tests for wit-provider-generator.

Tests cover:
- Argument parsing and validation
- Path handling (absolute/relative)
- Output to files and stdout
- Error handling for invalid inputs
- Debug logging
"""

from __future__ import annotations

import argparse
import logging
import subprocess

import pytest

from wit_provider_generator import run as run_module
from wit_provider_generator.cli import DEBUG_ENVIRONMENT_VARIABLE, main, setup_parser
from wit_provider_generator.run import format_output


class TestArgumentParsing:
    def test_parser_setup(self):
        parser = setup_parser()
        assert isinstance(parser, argparse.ArgumentParser)
        assert parser.description is not None

    def test_default_arguments(self):
        args = setup_parser().parse_args(["-i", "P, x", "-b", "bindings.rs"])
        assert args.invocation == "P, x"
        assert args.bindings == "bindings.rs"
        assert args.bindgen_command is None
        assert args.output == ""
        assert args.sdk_crate == "::wasmcloud_provider_sdk"
        assert args.skip_format is False
        assert args.debug is False

    def test_long_options(self):
        args = setup_parser().parse_args(
            [
                "--invocation",
                "P, x",
                "--bindgen-command",
                "cargo run -q --",
                "--output",
                "out.rs",
                "--sdk-crate",
                "crate::sdk",
                "--no-format",
                "--debug",
            ]
        )
        assert args.bindgen_command == "cargo run -q --"
        assert args.output == "out.rs"
        assert args.sdk_crate == "crate::sdk"
        assert args.skip_format is True
        assert args.debug is True

    def test_invocation_is_required(self):
        with pytest.raises(SystemExit):
            setup_parser().parse_args(["-b", "bindings.rs"])

    def test_a_bindings_source_is_required(self):
        with pytest.raises(SystemExit):
            setup_parser().parse_args(["-i", "P, x"])

    def test_bindings_sources_are_exclusive(self):
        with pytest.raises(SystemExit):
            setup_parser().parse_args(["-i", "P, x", "-b", "bindings.rs", "-c", "cat"])


class TestMain:
    def test_writes_output_file(self, bindings_file, tmp_path):
        output = tmp_path / "generated" / "provider.rs"
        exit_code = main(["-i", 'MyProvider, "wit"', "-b", str(bindings_file), "-o", str(output), "--no-format"])

        assert exit_code == 0
        generated = output.read_text(encoding="utf-8")
        assert "impl ::wasmcloud_provider_sdk::MessageDispatch for MyProvider {" in generated
        assert "struct ExampleGreeterGreetInvocation {" in generated

    def test_relative_paths(self, bindings_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        exit_code = main(["-i", "MyProvider, x", "-b", bindings_file.name, "-o", "provider.rs", "--no-format"])

        assert exit_code == 0
        assert (tmp_path / "provider.rs").exists()

    def test_writes_to_stdout(self, bindings_file, capsys):
        exit_code = main(["-i", "MyProvider, x", "-b", str(bindings_file), "--no-format"])

        assert exit_code == 0
        assert "pub trait Messaging {" in capsys.readouterr().out

    def test_bindgen_command(self, bindings_file, tmp_path):
        output = tmp_path / "provider.rs"
        command = f"sh -c 'cat \"$1\"' sh {bindings_file}"
        exit_code = main(["-i", "MyProvider, x", "-c", command, "-o", str(output), "--no-format"])

        assert exit_code == 0
        assert "pub trait Greeter {" in output.read_text(encoding="utf-8")

    def test_failing_bindgen_command(self, tmp_path, caplog):
        output = tmp_path / "provider.rs"
        exit_code = main(["-i", "MyProvider, x", "-c", "false", "-o", str(output), "--no-format"])

        assert exit_code == 1
        assert not output.exists()
        assert "BindgenError" in caplog.text

    def test_malformed_invocation(self, bindings_file, tmp_path, caplog):
        output = tmp_path / "provider.rs"
        exit_code = main(["-i", "MyProvider", "-b", str(bindings_file), "-o", str(output), "--no-format"])

        assert exit_code == 1
        assert not output.exists()
        assert "InvocationError" in caplog.text

    def test_missing_bindings_file(self, tmp_path, caplog):
        exit_code = main(["-i", "MyProvider, x", "-b", str(tmp_path / "missing.rs"), "--no-format"])

        assert exit_code == 1
        assert "BindgenError" in caplog.text

    def test_unsupported_parameter(self, tmp_path, caplog):
        bindings = tmp_path / "bindings.rs"
        bindings.write_text("pub mod ns { pub mod pkg { pub mod iface { pub fn f(x: &mut u8) {} } } }")
        exit_code = main(["-i", "MyProvider, x", "-b", str(bindings), "--no-format"])

        assert exit_code == 1
        assert "UnsupportedParameterShapeError" in caplog.text

    def test_debug_trace(self, bindings_file, caplog):
        with caplog.at_level(logging.DEBUG):
            main(["-i", "MyProvider, x", "-b", str(bindings_file), "--no-format", "--debug"])
        assert "detected WIT namespace: wasmcloud" in caplog.text
        assert "==> [(lvl 2) module:greeter]" in caplog.text

    @pytest.mark.parametrize(
        ("argv", "environment", "level"),
        [
            ([], None, logging.INFO),
            (["--debug"], None, logging.DEBUG),
            ([], "1", logging.DEBUG),
            ([], "true", logging.DEBUG),
            ([], " YES ", logging.DEBUG),
            ([], "0", logging.INFO),
            ([], "false", logging.INFO),
            ([], "", logging.INFO),
            (["--debug"], "0", logging.DEBUG),
        ],
    )
    def test_log_level(self, bindings_file, monkeypatch, argv, environment, level):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        if environment is None:
            monkeypatch.delenv(DEBUG_ENVIRONMENT_VARIABLE, raising=False)
        else:
            monkeypatch.setenv(DEBUG_ENVIRONMENT_VARIABLE, environment)

        main(["-i", "MyProvider, x", "-b", str(bindings_file), "--no-format", *argv])
        assert calls == [{"level": level}]

    def test_output_is_formatted(self, bindings_file, monkeypatch, capsys):
        monkeypatch.setattr(run_module, "format_output", lambda text: "// formatted\n")
        exit_code = main(["-i", "MyProvider, x", "-b", str(bindings_file)])

        assert exit_code == 0
        assert capsys.readouterr().out == "// formatted\n"


class TestFormatOutput:
    def test_missing_rustfmt_keeps_the_output(self, monkeypatch, caplog):
        def missing(*args, **kwargs):
            raise FileNotFoundError("rustfmt")

        monkeypatch.setattr(subprocess, "run", missing)
        assert format_output("fn main(){}\n") == "fn main(){}\n"
        assert "rustfmt not found" in caplog.text

    def test_failing_rustfmt_keeps_the_output(self, monkeypatch):
        def failing(*args, **kwargs):
            raise subprocess.CalledProcessError(1, "rustfmt", stderr=b"error: expected item")

        monkeypatch.setattr(subprocess, "run", failing)
        assert format_output("fn main({}\n") == "fn main({}\n"
