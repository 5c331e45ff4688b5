"""Tests for validation of the generator input."""

from __future__ import annotations

import pytest

from wit_provider_generator.errors import GenerationError, InvocationError
from wit_provider_generator.invocation import TOK_GROUP, TOK_IDENT, TOK_LITERAL, TOK_PUNCT, parse_invocation, tokenize


class TestTokenize:
    def test_groups_are_single_tokens(self):
        tokens = tokenize('MyProvider, { world: "provider", path: ["wit", "deps"] }')
        assert [token.kind for token in tokens] == [TOK_IDENT, TOK_PUNCT, TOK_GROUP]

    def test_literals(self):
        tokens = tokenize('"wit/provider.wit" r#"raw "string""# 42')
        assert [token.kind for token in tokens] == [TOK_LITERAL, TOK_LITERAL, TOK_LITERAL]
        assert tokens[1].value == 'r#"raw "string""#'

    def test_comments_are_skipped(self):
        tokens = tokenize("MyProvider /* the target */ , // trailing\n inline")
        assert [token.value for token in tokens] == ["MyProvider", ",", "inline"]

    def test_strings_inside_groups_may_hold_closing_delimiters(self):
        tokens = tokenize('{ path: "}" }')
        assert len(tokens) == 1
        assert tokens[0].value == '{ path: "}" }'

    def test_unbalanced_group(self):
        with pytest.raises(InvocationError, match="unterminated group"):
            tokenize('MyProvider, { world: "provider"')

    def test_unterminated_string(self):
        with pytest.raises(InvocationError, match="unterminated string"):
            tokenize('MyProvider, "wit')


class TestParseInvocation:
    def test_path_argument(self):
        invocation = parse_invocation('MyProvider, "wit/provider.wit"')
        assert invocation.target == "MyProvider"
        assert invocation.bindgen_args == '"wit/provider.wit"'

    def test_remaining_input_is_passed_unmodified(self):
        invocation = parse_invocation('MyProvider,\n    {\n        world: "provider",\n        path: "wit",\n    }\n')
        assert invocation.target == "MyProvider"
        assert invocation.bindgen_args == '{\n        world: "provider",\n        path: "wit",\n    }'

    @pytest.mark.parametrize("text", ["", "MyProvider", "MyProvider,"])
    def test_too_few_tokens(self, text):
        with pytest.raises(InvocationError, match="invalid token length") as excinfo:
            parse_invocation(text)
        assert "<ProviderStruct>, <wit-bindgen args...>" in str(excinfo.value)

    @pytest.mark.parametrize(
        "text",
        [
            '"MyProvider", "wit"',
            'MyProvider "wit" x',
            'MyProvider; "wit"',
            '{ world: "x" }, MyProvider, "wit"',
        ],
    )
    def test_invalid_leading_tokens(self, text):
        with pytest.raises(InvocationError, match="missing/invalid arguments"):
            parse_invocation(text)

    def test_errors_are_generation_errors(self):
        with pytest.raises(GenerationError):
            parse_invocation("MyProvider")
