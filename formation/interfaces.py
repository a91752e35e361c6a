"""Capability protocols supplied by the host application.

The form builder never reaches into a session, router or auth layer on its
own. Everything it needs is injected through one of these narrow interfaces.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class OldInputSource(Protocol):
    """Submitted input replayed after a failed validation round-trip."""

    def has(self, key: str) -> bool:
        """Check whether a value was submitted under the dotted key."""
        ...

    def get(self, key: str) -> Any:
        """Return the submitted value for the dotted key, or None."""
        ...

    def is_empty(self) -> bool:
        """True when nothing was submitted at all."""
        ...


@runtime_checkable
class EntitySource(Protocol):
    """A data entity a form can be bound to.

    Entities may also define ``get_form_value(name)`` to override how a
    field's value is read, and ``get_editable_fields()`` to declare the
    fields ``Formation`` should render.
    """

    def get_attribute(self, key: str) -> Any:
        ...


@runtime_checkable
class UrlResolver(Protocol):
    """URL generation supplied by the web framework."""

    def to(self, path: str, params: Iterable[Any] | None = None, secure: bool | None = None) -> str:
        ...

    def route(self, name: str, params: Mapping[str, Any] | None = None) -> str:
        ...

    def action(self, action: str, params: Mapping[str, Any] | None = None) -> str:
        ...

    def asset(self, path: str, secure: bool | None = None) -> str:
        ...

    def current(self) -> str:
        ...

    def previous(self) -> str:
        ...


@runtime_checkable
class CurrentUser(Protocol):
    def has_any_role(self, roles: Iterable[str]) -> bool:
        ...


@runtime_checkable
class CsrfTokenProvider(Protocol):
    def token(self) -> str:
        ...


OptionProvider = Callable[[], Any]
