"""Generate wasmCloud capability provider bindings from the output of wit-bindgen."""
