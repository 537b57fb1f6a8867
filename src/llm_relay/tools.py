"""Example tools served by ``python -m llm_relay``."""

from __future__ import annotations

from typing import Any

from llm_relay.types import ToolDescriptor

__all__ = ["GET_WEATHER", "CALCULATE_SUM", "EXAMPLE_TOOLS", "EXAMPLE_HANDLERS", "get_weather", "calculate_sum"]

GET_WEATHER = ToolDescriptor(
    name="get_weather",
    description="Get the current weather in a given location",
    input_schema={
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "The city and state, e.g. San Francisco, CA",
            },
            "unit": {
                "type": "string",
                "enum": ["celsius", "fahrenheit"],
                "description": 'The unit of temperature, either "celsius" or "fahrenheit"',
            },
        },
        "required": ["location"],
        "additionalProperties": False,
    },
)

CALCULATE_SUM = ToolDescriptor(
    name="calculate_sum",
    description="Calculate the sum of two numbers",
    input_schema={
        "type": "object",
        "properties": {
            "a": {"type": "number", "description": "First number"},
            "b": {"type": "number", "description": "Second number"},
        },
        "required": ["a", "b"],
        "additionalProperties": False,
    },
)

EXAMPLE_TOOLS: list[ToolDescriptor] = [GET_WEATHER, CALCULATE_SUM]


def get_weather(arguments: dict[str, Any]) -> dict[str, Any]:
    """Canned forecast; there is no weather backend."""
    unit = arguments.get("unit") or "celsius"
    temperature = "20°C" if unit == "celsius" else "68°F"
    return {
        "location": arguments.get("location", "unknown"),
        "temperature": temperature,
        "condition": "Sunny",
    }


def calculate_sum(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        a = float(arguments["a"])
        b = float(arguments["b"])
    except KeyError as exc:
        raise ValueError(f"Missing argument: {exc.args[0]}") from None
    total = a + b
    return {"result": int(total) if total.is_integer() else total}


EXAMPLE_HANDLERS = {
    GET_WEATHER.name: get_weather,
    CALCULATE_SUM.name: calculate_sum,
}
