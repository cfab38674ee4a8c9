"""Unit tests for the tool contract.

This module tests ToolParameter, Tool execution and error conversion,
argument validation, schema generation, and functional tools.
"""

from typing import Annotated
from unittest.mock import Mock

import pytest

from multi_agent_runtime.platform.agent.context import RunContext, ToolContext
from multi_agent_runtime.platform.agent.errors import AgentConfigurationError
from multi_agent_runtime.platform.agent.tools import (
    FunctionTool,
    Tool,
    ToolParameter,
    build_args_model,
    function_tool,
    param,
    snake_case,
)


class AddTool(Tool):
    description = "Add two numbers"
    parameters = (param("a", "integer", "First number"), param("b", "integer", "Second number"))

    def perform(self, context, a, b):
        return str(a + b)


class WeatherLookupTool(Tool):
    parameters = (param("city"), param("unit", required=False))

    def perform(self, context, city, unit=None):
        return {"city": city, "unit": unit or "celsius"}


class FailingTool(Tool):
    def perform(self, context):
        raise RuntimeError("backend down")


@pytest.fixture
def tool_context() -> ToolContext:
    return ToolContext(RunContext({"user": "ada"}), call_id="call_1")


class TestSnakeCase:
    """Tests for snake_case name derivation."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Billing", "billing"),
            ("Billing Agent", "billing_agent"),
            ("WeatherLookup", "weather_lookup"),
            ("HTTPClient", "http_client"),
            ("customer-support", "customer_support"),
        ],
    )
    def test_conversion(self, value, expected):
        """Names are lower-cased and separated by underscores."""
        assert snake_case(value) == expected


class TestToolParameter:
    """Tests for ToolParameter declarations."""

    def test_defaults(self):
        """Parameters default to required strings."""
        parameter = ToolParameter(name="query")
        assert parameter.type == "string"
        assert parameter.required is True

    def test_unsupported_type_rejected(self):
        """Unknown JSON types are a configuration error."""
        with pytest.raises(AgentConfigurationError):
            ToolParameter(name="when", type="datetime")

    def test_schema_uses_description(self):
        """Schema carries the type and description."""
        assert param("a", "integer", "First").to_schema() == {"type": "integer", "description": "First"}

    def test_schema_description_falls_back_to_name(self):
        """A missing description is derived from the name."""
        assert param("user_id").to_schema()["description"] == "User id"


class TestToolNaming:
    """Tests for default tool names and descriptions."""

    def test_name_derived_from_class(self):
        """The class name without the Tool suffix becomes the name."""
        assert AddTool().name == "add"
        assert WeatherLookupTool().name == "weather_lookup"

    def test_default_description(self):
        """Tools without a description get a generic one."""
        assert WeatherLookupTool().description == "Tool: weather_lookup"

    def test_constructor_overrides(self):
        """Name, description, and parameters can be given per instance."""
        tool = AddTool(name="plus", description="Sum", parameters=[param("x", "number")])
        assert tool.name == "plus"
        assert tool.description == "Sum"
        assert [p.name for p in tool.parameters] == ["x"]

    def test_duplicate_parameter_names_rejected(self):
        """Two parameters with one name are a configuration error."""
        with pytest.raises(AgentConfigurationError):
            AddTool(parameters=[param("a"), param("a")])


class TestToolExecute:
    """Tests for Tool.execute."""

    def test_returns_perform_result(self, tool_context):
        """A successful perform result is returned as a string."""
        assert AddTool().execute(tool_context, a=2, b=3) == "5"

    def test_coerces_arguments(self, tool_context):
        """Arguments are coerced to the declared types."""
        assert AddTool().execute(tool_context, a="2", b=3) == "5"

    def test_dict_result_serialized_as_json(self, tool_context):
        """Dict results are JSON encoded."""
        assert WeatherLookupTool().execute(tool_context, city="Paris") == '{"city": "Paris", "unit": "celsius"}'

    def test_unknown_arguments_ignored(self, tool_context):
        """Arguments not declared by the tool are dropped."""
        assert AddTool().execute(tool_context, a=1, b=1, c=9) == "2"

    def test_exception_converted_to_error_string(self, tool_context):
        """A raising perform yields the default error message."""
        assert FailingTool().execute(tool_context) == "Error executing failing: backend down"

    def test_missing_required_argument_reported(self, tool_context):
        """Validation failures are reported, not raised."""
        result = AddTool().execute(tool_context, a=1)
        assert result.startswith("Error executing add:")

    def test_custom_error_handler(self, tool_context):
        """A custom handler renders the failure."""
        handler = Mock(return_value="Service unavailable, try later")
        tool = FailingTool(on_error=handler)

        assert tool.execute(tool_context) == "Service unavailable, try later"
        error, context = handler.call_args.args
        assert isinstance(error, RuntimeError)
        assert context is tool_context

    def test_failing_error_handler_falls_back_to_default(self, tool_context):
        """A raising custom handler does not escape execute."""
        tool = FailingTool(on_error=Mock(side_effect=ValueError("handler bug")))
        assert tool.execute(tool_context) == "Error executing failing: backend down"

    def test_execute_call_reports_failure_flag(self, tool_context):
        """execute_call returns the result and whether it failed."""
        assert AddTool().execute_call(tool_context, {"a": 1, "b": 2}) == ("3", False)
        result, failed = FailingTool().execute_call(tool_context, {})
        assert failed is True
        assert result == "Error executing failing: backend down"

    def test_base_perform_not_implemented(self, tool_context):
        """A Tool without perform reports the missing implementation."""
        result = Tool(name="empty").execute(tool_context)
        assert result.startswith("Error executing empty:")

    def test_tool_can_write_context(self, tool_context):
        """Tools communicate through the run context."""

        class RememberTool(Tool):
            parameters = (param("value"),)

            def perform(self, context, value):
                context["remembered"] = value
                return "ok"

        RememberTool().execute(tool_context, value="blue")
        assert tool_context.run_context.get("remembered") == "blue"


class TestStringify:
    """Tests for result conversion."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, ""), ("text", "text"), (42, "42"), ([1, 2], "[1, 2]"), ({"a": 1}, '{"a": 1}')],
    )
    def test_values(self, value, expected):
        """Results of common types are converted to strings."""
        assert Tool.stringify(value) == expected

    def test_unserializable_dict_uses_str(self):
        """Dicts that are not JSON serializable fall back to str()."""
        value = {"when": object}
        assert Tool.stringify(value) == str(value)


class TestSchema:
    """Tests for function-calling schemas."""

    def test_schema_shape(self):
        """Schema follows the function-calling format."""
        schema = WeatherLookupTool().to_schema()
        assert schema["type"] == "function"
        function = schema["function"]
        assert function["name"] == "weather_lookup"
        assert function["parameters"]["type"] == "object"
        assert set(function["parameters"]["properties"]) == {"city", "unit"}
        assert function["parameters"]["required"] == ["city"]

    def test_args_model_none_without_parameters(self):
        """No parameters means no validation model."""
        assert build_args_model("noop", ()) is None

    def test_args_model_optional_fields(self):
        """Optional parameters default to None."""
        model = build_args_model("lookup", (param("city"), param("unit", required=False)))
        validated = model.model_validate({"city": "Oslo"})
        assert validated.unit is None


class TestFunctionTool:
    """Tests for tools derived from functions."""

    def test_derives_name_description_and_parameters(self):
        """Signature and docstring define the tool."""

        def forecast(context, city: Annotated[str, "City name"], days: int = 3) -> str:
            """Look up the forecast.

            Longer explanation that is not part of the description.
            """
            return f"{city}:{days}"

        tool = FunctionTool(forecast)

        assert tool.name == "forecast"
        assert tool.description == "Look up the forecast."
        city, days = tool.parameters
        assert (city.name, city.type, city.description, city.required) == ("city", "string", "City name", True)
        assert (days.name, days.type, days.required) == ("days", "integer", False)

    def test_defaults_apply_when_argument_omitted(self, tool_context):
        """Omitted optional arguments use the function default."""

        def forecast(context, city: str, days: int = 3) -> str:
            """Forecast."""
            return f"{city}:{days}"

        assert FunctionTool(forecast).execute(tool_context, city="Oslo") == "Oslo:3"

    def test_optional_annotation_unwrapped(self):
        """Optional[T] maps to T's JSON type."""

        def search(context, limit: int | None = None, tags: list[str] | None = None) -> str:
            """Search."""
            return ""

        limit, tags = FunctionTool(search).parameters
        assert limit.type == "integer"
        assert tags.type == "array"

    def test_decorator_without_arguments(self, tool_context):
        """@function_tool turns a function into a Tool."""

        @function_tool
        def greet(context: ToolContext, name: str) -> str:
            """Greet someone."""
            return f"Hello {name}, from {context.get('user')}"

        assert isinstance(greet, Tool)
        assert greet.execute(tool_context, name="Bob") == "Hello Bob, from ada"

    def test_decorator_with_arguments(self):
        """Name and description can be overridden."""

        @function_tool(name="lookup_user", description="Find a user")
        def find(context: ToolContext, user_id: int) -> str:
            return str(user_id)

        assert find.name == "lookup_user"
        assert find.description == "Find a user"

    def test_decorated_function_errors_isolated(self, tool_context):
        """Exceptions from the function are converted like any tool."""

        @function_tool
        def divide(context: ToolContext, a: float, b: float) -> str:
            """Divide a by b."""
            return str(a / b)

        assert divide.execute(tool_context, a=1, b=0) == "Error executing divide: float division by zero"
