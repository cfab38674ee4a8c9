"""Tool contract.

Every capability an agent can invoke through model function-calling is a
Tool. Tool instances hold configuration only and receive all per-call state
through a ToolContext, so one instance can serve concurrent runs.
"""

import inspect
import json
import logging
import re
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from opentelemetry import trace
from pydantic import BaseModel, ConfigDict, Field, create_model

from multi_agent_runtime.platform.agent.context import ToolContext
from multi_agent_runtime.platform.agent.errors import AgentConfigurationError, ToolExecutionError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

type ErrorHandler = Callable[[Exception, ToolContext], str]

JSON_TYPES: dict[str, type] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "object": dict,
    "array": list,
}

_PYTHON_TO_JSON: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
    tuple: "array",
}


def snake_case(value: str) -> str:
    """Convert a display or class name to snake_case ("Billing Agent" -> "billing_agent")."""
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", value)
    value = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", value)
    value = re.sub(r"[^0-9a-zA-Z]+", "_", value)
    return value.strip("_").lower()


@dataclass(frozen=True)
class ToolParameter:
    """Declaration of a single named tool parameter.

    Attributes:
        name: Parameter name as seen by the model
        type: JSON schema type (string, integer, number, boolean, array, object)
        description: Human-readable description sent to the model
        required: Whether the model must supply the parameter
    """

    name: str
    type: str = "string"
    description: str = ""
    required: bool = True

    def __post_init__(self) -> None:
        if self.type not in JSON_TYPES:
            raise AgentConfigurationError(
                f"Unsupported type '{self.type}' for parameter '{self.name}'. "
                f"Expected one of: {', '.join(JSON_TYPES)}"
            )

    def to_schema(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description or self.name.replace("_", " ").capitalize(),
        }


def param(
    name: str,
    type: str = "string",
    description: str = "",
    required: bool = True,
) -> ToolParameter:
    """Shorthand for declaring a ToolParameter."""
    return ToolParameter(name=name, type=type, description=description, required=required)


def build_args_model(tool_name: str, parameters: tuple[ToolParameter, ...]) -> type[BaseModel] | None:
    """Build a Pydantic model validating a tool's arguments.

    Args:
        tool_name: Tool name, used to name the model
        parameters: Declared tool parameters

    Returns:
        Dynamically created Pydantic model class, or None when no parameters are declared
    """
    if not parameters:
        return None

    fields: dict[str, Any] = {}
    for parameter in parameters:
        field_type: Any = JSON_TYPES[parameter.type]
        if parameter.required:
            fields[parameter.name] = (field_type, Field(description=parameter.description))
        else:
            fields[parameter.name] = (
                field_type | None,
                Field(default=None, description=parameter.description),
            )

    model_name = f"{snake_case(tool_name).title().replace('_', '')}Args"
    return create_model(  # type: ignore[call-overload]
        model_name,
        __config__=ConfigDict(extra="ignore"),
        **fields,
    )


class Tool:
    """Base class for all agent tools.

    Subclasses declare `name`, `description` and `parameters` as class
    attributes and implement `perform`. The Runner only ever calls `execute`,
    which never raises: failures come back as a string the model can read.

    Example:
        class AddTool(Tool):
            description = "Add two numbers"
            parameters = (param("a", "number"), param("b", "number"))

            def perform(self, context, a, b):
                return str(a + b)
    """

    name: str = ""
    description: str = ""
    parameters: tuple[ToolParameter, ...] = ()

    def __init__(
        self,
        name: str | None = None,
        description: str | None = None,
        parameters: tuple[ToolParameter, ...] | list[ToolParameter] | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        """Initialize the tool configuration.

        Args:
            name: Overrides the class-level name (defaults to snake_case class name without "Tool")
            description: Overrides the class-level description
            parameters: Overrides the class-level parameter declaration
            on_error: Custom handler turning a perform() failure into the result string
        """
        self.name = name or self.name or snake_case(re.sub(r"Tool$", "", type(self).__name__))
        self.description = description or self.description or f"Tool: {self.name}"
        self.parameters = tuple(parameters if parameters is not None else self.parameters)
        self._on_error = on_error

        names = [parameter.name for parameter in self.parameters]
        if len(names) != len(set(names)):
            raise AgentConfigurationError(f"Duplicate parameter names on tool '{self.name}'")
        self._args_model = build_args_model(self.name, self.parameters)

    def perform(self, context: ToolContext, **params: Any) -> Any:
        """Perform the tool's action. Subclasses must implement this method."""
        raise NotImplementedError("Tools must implement perform(context, **params)")

    def execute(self, context: ToolContext, **params: Any) -> str:
        """Validate arguments, run perform, and convert any failure into a result string.

        Args:
            context: Fresh per-call context handle
            **params: Arguments supplied by the model

        Returns:
            The tool's result, or an error message if the tool failed
        """
        result, _ = self.execute_call(context, params)
        return result

    def execute_call(self, context: ToolContext, arguments: dict[str, Any]) -> tuple[str, bool]:
        """Like execute, but also reports whether the call failed.

        Returns:
            Tuple of (result string, failed flag)
        """
        with tracer.start_as_current_span(f"tool.{self.name}") as span:
            span.set_attribute("tool.name", self.name)
            try:
                validated = self.validate_arguments(arguments)
                result = self.perform(context, **validated)
            except Exception as e:
                span.record_exception(e)
                logger.warning("Tool '%s' failed: %s", self.name, e, exc_info=True)
                return self.handle_error(e, context), True
            return self.stringify(result), False

    def validate_arguments(self, params: dict[str, Any]) -> dict[str, Any]:
        """Validate and coerce model-supplied arguments against the declaration."""
        if self._args_model is None:
            return dict(params)
        validated = self._args_model.model_validate(params)
        return validated.model_dump(exclude_unset=True)

    def handle_error(self, error: Exception, context: ToolContext) -> str:
        """Render a perform() failure as the tool result."""
        default = str(ToolExecutionError(self.name, error))
        if self._on_error is None:
            return default
        try:
            return str(self._on_error(error, context))
        except Exception:
            logger.exception("Error handler of tool '%s' failed", self.name)
            return default

    @staticmethod
    def stringify(result: Any) -> str:
        if result is None:
            return ""
        if isinstance(result, str):
            return result
        if isinstance(result, (dict, list)):
            try:
                return json.dumps(result)
            except TypeError:
                return str(result)
        return str(result)

    def to_schema(self) -> dict[str, Any]:
        """Function-calling schema consumed by the model backend."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {p.name: p.to_schema() for p in self.parameters},
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionTool(Tool):
    """Tool backed by a plain function taking the ToolContext first."""

    def __init__(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._func = func
        doc = inspect.getdoc(func) or ""
        super().__init__(
            name=name or func.__name__,
            description=description or doc.split("\n\n", 1)[0].strip(),
            parameters=self._parameters_from_signature(func),
            on_error=on_error,
        )

    def perform(self, context: ToolContext, **params: Any) -> Any:
        return self._func(context, **params)

    @classmethod
    def _parameters_from_signature(cls, func: Callable[..., Any]) -> tuple[ToolParameter, ...]:
        """Derive parameter declarations from the function signature.

        The first positional parameter receives the ToolContext and is skipped.
        Parameters with a default are optional. `Annotated[T, "description"]`
        supplies the description.
        """
        signature = inspect.signature(func)
        hints = get_type_hints(func, include_extras=True)
        parameters = list(signature.parameters.values())[1:]

        declared = []
        for parameter in parameters:
            if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            annotation = hints.get(parameter.name, str)
            description = ""
            if get_origin(annotation) is Annotated:
                annotation, *extras = get_args(annotation)
                description = next((e for e in extras if isinstance(e, str)), "")
            declared.append(
                ToolParameter(
                    name=parameter.name,
                    type=cls._json_type(annotation),
                    description=description,
                    required=parameter.default is inspect.Parameter.empty,
                )
            )
        return tuple(declared)

    @staticmethod
    def _json_type(annotation: Any) -> str:
        """Map a Python annotation to a JSON schema type, defaulting to string."""
        origin = get_origin(annotation)
        if origin in (Union, types.UnionType):
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            annotation = members[0] if members else str
            origin = get_origin(annotation)
        return _PYTHON_TO_JSON.get(origin or annotation, "string")


def function_tool(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    on_error: ErrorHandler | None = None,
) -> Any:
    """Decorator turning a function into a Tool.

    Example:
        @function_tool
        def add(context: ToolContext, a: int, b: int) -> str:
            \"\"\"Add two integers.\"\"\"
            return str(a + b)
    """

    def decorator(fn: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(fn, name=name, description=description, on_error=on_error)

    if func is not None:
        return decorator(func)
    return decorator
