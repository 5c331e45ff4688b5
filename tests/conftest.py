"""Pytest configuration and fixtures for provider binding generator tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from wit_provider_generator.syntax import Attribute, FunctionItem, ModuleItem, Param, SourceFile, StructItem, path_type

TESTS_DIR = Path(__file__).parent

# Shaped like the output of wit-bindgen for a world importing `wasmcloud:example/greeter` and
# `wasmcloud:example/messaging`, and exporting `wasmcloud:example/handler`.
GREETER_BINDINGS = """\
#[allow(clippy::all)]
pub mod wasmcloud {
    pub mod example {
        #[allow(clippy::all)]
        pub mod greeter {
            #[derive(Clone)]
            pub struct Greeting {
                pub message: wit_bindgen::rt::string::String,
                pub lang: Option<wit_bindgen::rt::string::String>,
            }
            impl ::core::fmt::Debug for Greeting {
                fn fmt(&self, f: &mut ::core::fmt::Formatter<'_>) -> ::core::fmt::Result {
                    f.debug_struct("Greeting").finish()
                }
            }
            #[allow(clippy::all)]
            pub fn greet(name: &str,) -> Result<String, String> {
                unsafe { unimplemented!() }
            }
            #[allow(clippy::all)]
            pub fn send_greeting(greeting: &Greeting, retries: Option<u32>) -> Result<(), String> {
                unsafe { unimplemented!() }
            }
        }

        #[allow(clippy::all)]
        pub mod messaging {
            #[derive(Clone, Debug)]
            pub struct BrokerMessage {
                pub subject: wit_bindgen::rt::string::String,
                pub body: Option<wit_bindgen::rt::vec::Vec<u8>>,
            }
            #[allow(clippy::all)]
            pub fn request(subject: &str, body: Option<&[u8]>, timeout_ms: u32) -> Result<BrokerMessage, String> {
                unsafe { unimplemented!() }
            }
            #[allow(clippy::all)]
            pub fn publish(msg: &BrokerMessage) -> Result<(), String> {
                unsafe { unimplemented!() }
            }
        }
    }
}
pub mod exports {
    pub mod wasmcloud {
        pub mod example {
            #[allow(clippy::all)]
            pub mod handler {
                #[derive(Clone)]
                pub struct Greeting {
                    pub message: wit_bindgen::rt::string::String,
                }
                pub trait Handler {
                    fn handle_message(msg: Greeting) -> Result<(), String>;
                }
                pub fn call_handle_message(arg0: i32) -> i32 {
                    unimplemented!()
                }
            }
        }
    }
}
"""

GREETER_ONLY_BINDINGS = """\
pub mod wasmcloud {
    pub mod example {
        pub mod greeter {
            pub fn greet(name: &str) -> Result<String, String> {
                unsafe { unimplemented!() }
            }
        }
    }
}
"""


class StaticBindingGenerator:
    """Binding generator returning fixed output, recording the args it was called with."""

    def __init__(self, output: str):
        self.output = output
        self.calls: list[str] = []

    def generate(self, bindgen_args: str) -> str:
        self.calls.append(bindgen_args)
        return self.output


@pytest.fixture
def greeter_bindings() -> str:
    return GREETER_BINDINGS


@pytest.fixture
def greeter_only_bindings() -> str:
    return GREETER_ONLY_BINDINGS


@pytest.fixture
def bindings_file(tmp_path: Path) -> Path:
    """The greeter bindings, written to a file."""
    path = tmp_path / "bindings.rs"
    path.write_text(GREETER_BINDINGS, encoding="utf-8")
    return path


def _function(name: str, *params: tuple[str, str]) -> FunctionItem:
    return FunctionItem(
        name=name,
        params=[
            Param(name=param_name, type=path_type(type_name), pattern=param_name) for param_name, type_name in params
        ],
        return_type=path_type("u32"),
        text=f"pub fn {name}() {{}}",
    )


def _struct(name: str) -> StructItem:
    return StructItem(name=name, attributes=[Attribute.derive("Clone")], text=f"pub struct {name} {{}}")


@pytest.fixture
def hand_built_tree() -> SourceFile:
    """A syntax tree built without the reader, with imported and exported interfaces."""
    return SourceFile(
        items=[
            ModuleItem(
                name="wasmcloud",
                items=[
                    ModuleItem(
                        name="example",
                        items=[
                            ModuleItem(
                                name="greeter",
                                items=[
                                    _struct("Greeting"),
                                    _function("greet", ("name", "u32")),
                                    ModuleItem(name="nested", items=[_function("too_deep")]),
                                ],
                            ),
                            ModuleItem(name="keyvalue", items=[_function("get", ("key", "u64"))]),
                            _function("not_in_interface"),
                        ],
                    ),
                    ModuleItem(name="other", items=[]),
                ],
            ),
            ModuleItem(name="external", items=None),
            ModuleItem(
                name="exports",
                items=[
                    ModuleItem(
                        name="wasmcloud",
                        items=[
                            ModuleItem(
                                name="example",
                                items=[ModuleItem(name="handler", items=[_struct("Greeting"), _function("handle")])],
                            )
                        ],
                    )
                ],
            ),
        ]
    )

