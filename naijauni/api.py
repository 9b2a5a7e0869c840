"""Operations offered by the universities API."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from xml.etree.ElementTree import ParseError

from .client import (
    APIClient,
    APIError,
    HTTPResponse,
    add_parameter,
    select_header_accept,
    select_header_content_type,
)
from .models import University, UniversityNameRequest

_ACCEPTS = ("application/json",)


class DefaultAPI:
    """Looks up universities by listing them all, by name or by abbreviation."""

    def __init__(self, client: APIClient | None = None) -> None:
        self.client = client if client is not None else APIClient()

    def _base_url(self, context: Mapping[Any, Any] | None, operation: str) -> str:
        try:
            return self.client.config.server_url_with_context(context, operation)
        except (IndexError, ValueError, TypeError) as err:
            raise APIError(str(err)) from err

    def _execute(
        self,
        context: Mapping[Any, Any] | None,
        operation: str,
        path: str,
        method: str,
        target: Any,
        *,
        body: Any = None,
        query: list[tuple[str, str]] | None = None,
        content_types: Sequence[str] = (),
    ) -> tuple[Any, HTTPResponse]:
        url = self._base_url(context, operation) + path
        headers: dict[str, str] = {}
        content_type = select_header_content_type(list(content_types))
        if content_type:
            headers["Content-Type"] = content_type
        accept = select_header_accept(list(_ACCEPTS))
        if accept:
            headers["Accept"] = accept

        request = self.client.prepare_request(
            context, url, method, body, headers, query or [], [], []
        )
        response = self.client.call_api(request)

        if response.status_code >= 300:
            raise APIError(response.status, body=response.body)
        try:
            result = self.client.decode(
                target, response.body, response.header("Content-Type")
            )
        except (ValueError, TypeError, ParseError) as err:
            raise APIError(str(err), body=response.body) from err
        return result, response

    def root_get(
        self, context: Mapping[Any, Any] | None = None
    ) -> tuple[list[University], HTTPResponse]:
        """Return every university, with the server's reply."""
        result, response = self._execute(
            context, "DefaultAPIService.RootGet", "/", "GET", list[University]
        )
        return (result if result is not None else []), response

    def search_post(
        self,
        university_name_request: UniversityNameRequest | None,
        context: Mapping[Any, Any] | None = None,
    ) -> tuple[University | None, HTTPResponse]:
        """Return the university with the requested name, with the server's reply."""
        if university_name_request is None:
            raise ValueError("universityNameRequest is required and must be specified")
        return self._execute(
            context,
            "DefaultAPIService.SearchPost",
            "/search",
            "POST",
            University,
            body=university_name_request,
            content_types=("application/json",),
        )

    def searchab_get(
        self,
        abbreviation: str | None,
        context: Mapping[Any, Any] | None = None,
    ) -> tuple[University | None, HTTPResponse]:
        """Return the university with the given abbreviation, with the server's reply."""
        if abbreviation is None:
            raise ValueError("abbreviation is required and must be specified")
        query: list[tuple[str, str]] = []
        add_parameter(query, "abbreviation", abbreviation, "form", "")
        return self._execute(
            context,
            "DefaultAPIService.SearchabGet",
            "/searchab",
            "GET",
            University,
            query=query,
        )