"""Tests for tool definitions and argument validation."""

import dataclasses

import pytest
from pydantic import ValidationError

from gemini_cli_mcp.operations import (
    MODELS_TOOL,
    OPERATIONS,
    PROMPT_TOOL,
    RAW_TOOL,
    PromptArgs,
    RawArgs,
    describe_validation_error,
    get_operation,
)


def test_exactly_three_operations():
    """Test that the three Gemini tools are defined in order."""
    assert [op.name for op in OPERATIONS] == [PROMPT_TOOL, MODELS_TOOL, RAW_TOOL]


def test_prompt_schema():
    """Test the advertised schema of gemini_prompt."""
    schema = get_operation(PROMPT_TOOL).input_schema
    assert schema["required"] == ["prompt"]
    assert schema["properties"]["prompt"]["type"] == "string"
    assert schema["properties"]["model"]["type"] == "string"


def test_models_schema_has_no_parameters():
    """Test that gemini_models takes no parameters."""
    schema = get_operation(MODELS_TOOL).input_schema
    assert schema["properties"] == {}
    assert schema["required"] == []


def test_raw_schema():
    """Test the advertised schema of gemini_raw."""
    schema = get_operation(RAW_TOOL).input_schema
    assert schema["required"] == ["args"]
    assert schema["properties"]["args"] == {
        "type": "array",
        "items": {"type": "string"},
        "description": "Array of CLI arguments to pass to gemini command",
    }


def test_operation_specs_are_immutable():
    """Test that operation specs cannot be modified after creation."""
    op = get_operation(PROMPT_TOOL)
    with pytest.raises(dataclasses.FrozenInstanceError):
        op.name = "other"
    with pytest.raises(TypeError):
        op.input_schema["required"] = []


def test_unknown_operation():
    """Test lookup of an unknown tool name."""
    assert get_operation("gemini_unknown") is None


def test_prompt_args_valid():
    """Test parsing valid prompt arguments."""
    args = get_operation(PROMPT_TOOL).parse({"prompt": "Hello", "model": "model-x"})
    assert isinstance(args, PromptArgs)
    assert args.prompt == "Hello"
    assert args.model == "model-x"


def test_prompt_args_model_optional():
    """Test that the model argument may be omitted or null."""
    assert get_operation(PROMPT_TOOL).parse({"prompt": "Hello"}).model is None
    assert get_operation(PROMPT_TOOL).parse({"prompt": "Hello", "model": None}).model is None


@pytest.mark.parametrize(
    "arguments",
    [None, {}, {"prompt": ""}, {"prompt": 42}, {"prompt": ["Hello"]}],
)
def test_prompt_args_invalid(arguments):
    """Test that a missing, empty, or non-string prompt is rejected."""
    with pytest.raises(ValidationError) as exc_info:
        get_operation(PROMPT_TOOL).parse(arguments)
    assert describe_validation_error(exc_info.value) == "prompt is required and must be a string"


def test_prompt_args_model_must_be_string():
    """Test that a non-string model is rejected rather than coerced."""
    with pytest.raises(ValidationError) as exc_info:
        get_operation(PROMPT_TOOL).parse({"prompt": "Hello", "model": 3})
    assert describe_validation_error(exc_info.value) == "model must be a string"


def test_raw_args_valid():
    """Test parsing raw arguments, including an empty list."""
    args = get_operation(RAW_TOOL).parse({"args": ["--help"]})
    assert isinstance(args, RawArgs)
    assert args.args == ["--help"]
    assert get_operation(RAW_TOOL).parse({"args": []}).args == []


@pytest.mark.parametrize(
    "arguments",
    [{}, {"args": "--help"}, {"args": ["ok", 1]}, {"args": {"a": "b"}}],
)
def test_raw_args_invalid(arguments):
    """Test that anything but an array of strings is rejected."""
    with pytest.raises(ValidationError) as exc_info:
        get_operation(RAW_TOOL).parse(arguments)
    assert describe_validation_error(exc_info.value) == "args must be an array of strings"


def test_models_args_ignore_extras():
    """Test that unexpected arguments to gemini_models are ignored."""
    get_operation(MODELS_TOOL).parse({"unexpected": True})
