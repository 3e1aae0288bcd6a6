"""Tool definitions advertised to MCP clients.

Each operation pairs the JSON schema shown in ``tools/list`` with a pydantic
model that validates incoming ``tools/call`` arguments. Strict field types keep
the two in agreement: a number is never accepted where the schema says string.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

PROMPT_TOOL = "gemini_prompt"
MODELS_TOOL = "gemini_models"
RAW_TOOL = "gemini_raw"


class PromptArgs(BaseModel):
    """Arguments of ``gemini_prompt``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    prompt: StrictStr = Field(min_length=1)
    model: Optional[StrictStr] = None


class ModelsArgs(BaseModel):
    """``gemini_models`` takes no arguments."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class RawArgs(BaseModel):
    """Arguments of ``gemini_raw``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    args: list[StrictStr]


@dataclass(frozen=True)
class OperationSpec:
    """A named tool with its advertised schema and argument model."""

    name: str
    description: str
    input_schema: Mapping[str, Any]
    arguments: type[BaseModel]

    def parse(self, arguments: Mapping[str, Any] | None) -> BaseModel:
        """Validate raw call arguments.

        Raises:
            pydantic.ValidationError: If required arguments are missing or mistyped.
        """
        return self.arguments.model_validate(dict(arguments or {}))


OPERATIONS: tuple[OperationSpec, ...] = (
    OperationSpec(
        name=PROMPT_TOOL,
        description="Send a prompt to Google Gemini CLI. Uses the locally installed and authenticated Gemini CLI.",
        input_schema=MappingProxyType(
            {
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "The prompt to send to Gemini",
                    },
                    "model": {
                        "type": "string",
                        "description": 'Optional model to use (e.g., "gemini-2.5-flash"). Uses CLI default if not specified.',
                    },
                },
                "required": ["prompt"],
            }
        ),
        arguments=PromptArgs,
    ),
    OperationSpec(
        name=MODELS_TOOL,
        description="List available Gemini models via the CLI.",
        input_schema=MappingProxyType({"type": "object", "properties": {}, "required": []}),
        arguments=ModelsArgs,
    ),
    OperationSpec(
        name=RAW_TOOL,
        description="Execute raw Gemini CLI command with arbitrary arguments. Use with caution.",
        input_schema=MappingProxyType(
            {
                "type": "object",
                "properties": {
                    "args": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Array of CLI arguments to pass to gemini command",
                    },
                },
                "required": ["args"],
            }
        ),
        arguments=RawArgs,
    ),
)

_BY_NAME = {op.name: op for op in OPERATIONS}

# Messages for the common failure of each required argument
_FIELD_MESSAGES = {
    "prompt": "prompt is required and must be a string",
    "model": "model must be a string",
    "args": "args must be an array of strings",
}


def get_operation(name: str) -> OperationSpec | None:
    """Look up an operation by tool name."""
    return _BY_NAME.get(name)


def describe_validation_error(error: ValidationError) -> str:
    """Turn a pydantic validation error into a single human-readable line."""
    messages = []
    for detail in error.errors():
        loc = detail.get("loc") or ()
        field_name = str(loc[0]) if loc else ""
        message = _FIELD_MESSAGES.get(field_name)
        if message is None:
            message = f"{field_name}: {detail.get('msg')}" if field_name else str(detail.get("msg"))
        if message not in messages:
            messages.append(message)
    return "; ".join(messages)
