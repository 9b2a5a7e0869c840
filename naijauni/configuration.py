"""Client configuration and server URL resolution."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_USER_AGENT = "OpenAPI-Generator/1.0.0/python"
DEFAULT_SERVER_URL = "http://localhost:8080"
DEFAULT_SERVER_DESCRIPTION = "No description provided"


class ContextKey(str, Enum):
    """Keys understood in a request context mapping."""

    SERVER_INDEX = "serverIndex"
    OPERATION_SERVER_INDICES = "serverOperationIndices"
    SERVER_VARIABLES = "serverVariables"
    OPERATION_SERVER_VARIABLES = "serverOperationVariables"

    def __str__(self) -> str:
        return f"auth {self.value}"


@dataclass
class ServerVariable:
    """A templated variable in a server URL."""

    description: str = ""
    default_value: str = ""
    enum_values: list[str] = field(default_factory=list)


@dataclass
class ServerConfiguration:
    """A server the API can be reached at."""

    url: str
    description: str = ""
    variables: dict[str, ServerVariable] = field(default_factory=dict)


def _default_servers() -> list[ServerConfiguration]:
    return [ServerConfiguration(DEFAULT_SERVER_URL, DEFAULT_SERVER_DESCRIPTION)]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _type_name(value: Any) -> str:
    return type(value).__name__


def format_server_url(
    servers: Sequence[ServerConfiguration],
    index: int,
    variables: Mapping[str, str] | None,
) -> str:
    """Return the URL of ``servers[index]`` with its variables filled in."""
    if index < 0 or index >= len(servers):
        raise IndexError(f"index {index} out of range {len(servers) - 1}")
    server = servers[index]
    url = server.url
    given = variables or {}
    for name, variable in server.variables.items():
        placeholder = "{" + name + "}"
        if name in given:
            value = given[name]
            if variable.enum_values and value not in variable.enum_values:
                allowed = "[" + " ".join(variable.enum_values) + "]"
                raise ValueError(
                    f"the variable {name} in the server URL has invalid value "
                    f"{value}. Must be {allowed}"
                )
            url = url.replace(placeholder, value)
        else:
            url = url.replace(placeholder, variable.default_value)
    return url


def _server_index(context: Mapping[Any, Any]) -> int:
    index = context.get(ContextKey.SERVER_INDEX)
    if index is None:
        return 0
    if not _is_int(index):
        raise TypeError(f"invalid type {_type_name(index)} should be int")
    return index


def _server_operation_index(context: Mapping[Any, Any], endpoint: str) -> int:
    indices = context.get(ContextKey.OPERATION_SERVER_INDICES)
    if indices is not None:
        if not isinstance(indices, Mapping):
            raise TypeError(
                f"invalid type {_type_name(indices)} should be a mapping of str to int"
            )
        if endpoint in indices:
            index = indices[endpoint]
            if not _is_int(index):
                raise TypeError(f"invalid type {_type_name(index)} should be int")
            return index
    return _server_index(context)


def _server_variables(context: Mapping[Any, Any]) -> Mapping[str, str] | None:
    variables = context.get(ContextKey.SERVER_VARIABLES)
    if variables is None:
        return None
    if not isinstance(variables, Mapping):
        raise TypeError(
            f"context value of {ContextKey.SERVER_VARIABLES} has invalid type "
            f"{_type_name(variables)} should be a mapping of str to str"
        )
    return variables


def _server_operation_variables(
    context: Mapping[Any, Any], endpoint: str
) -> Mapping[str, str] | None:
    per_operation = context.get(ContextKey.OPERATION_SERVER_VARIABLES)
    if per_operation is not None:
        if not isinstance(per_operation, Mapping):
            raise TypeError(
                f"context value of {ContextKey.OPERATION_SERVER_VARIABLES} has invalid "
                f"type {_type_name(per_operation)} should be a mapping of str to mapping"
            )
        if endpoint in per_operation:
            return per_operation[endpoint]
    return _server_variables(context)


@dataclass
class Configuration:
    """Settings shared by every request an API client makes."""

    host: str = ""
    scheme: str = ""
    default_header: dict[str, str] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT
    debug: bool = False
    servers: list[ServerConfiguration] = field(default_factory=_default_servers)
    operation_servers: dict[str, list[ServerConfiguration]] = field(default_factory=dict)
    http_client: Any = None

    def add_default_header(self, key: str, value: str) -> None:
        """Add a header sent with every request."""
        self.default_header[key] = value

    def server_url(self, index: int, variables: Mapping[str, str] | None) -> str:
        """Return the URL of the configured server at ``index``."""
        return format_server_url(self.servers, index, variables)

    def server_url_with_context(
        self, context: Mapping[Any, Any] | None, endpoint: str
    ) -> str:
        """Return the base URL for ``endpoint`` as selected by ``context``."""
        servers = self.operation_servers.get(endpoint, self.servers)
        if context is None:
            return format_server_url(servers, 0, None)
        index = _server_operation_index(context, endpoint)
        variables = _server_operation_variables(context, endpoint)
        return format_server_url(servers, index, variables)