"""Litestar adapters for the form builder's capability protocols.

Usage (inside a route handler):

    builder = form_builder_for(request)
    formation = Formation(project, builder=builder, current_user=session_user(request))

After a failed validation, store the submitted values so the next GET can
repopulate the form:

    flash_old_input(request, await request.form())
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from formation.config import FormationSettings
from formation.elements import CSRF_FIELD_NAME, FormBuilder
from formation.html import HtmlBuilder
from formation.values import MappingOldInput

if TYPE_CHECKING:
    from litestar import Request

OLD_INPUT_SESSION_KEY = "_old_input"
CSRF_SESSION_KEY = "_csrf_token"
ROLES_SESSION_KEY = "user_roles"

_BRACKET_SEGMENT = re.compile(r"\[([^\]]*)\]")


def _key_path(name: str) -> list[str]:
    base, bracket, rest = name.partition("[")
    if not bracket:
        return [name]
    return [base, *_BRACKET_SEGMENT.findall(bracket + rest)]


def _assign(target: dict, path: list[str], value: Any) -> None:
    head, *rest = path
    if not rest:
        target[head] = value
        return

    if rest == [""]:
        # foo[] collects every posted value into a list
        bucket = target.get(head)
        if not isinstance(bucket, list):
            bucket = target[head] = []
        if isinstance(value, (list, tuple)):
            bucket.extend(value)
        else:
            bucket.append(value)
        return

    child = target.get(head)
    if not isinstance(child, dict):
        child = target[head] = {}
    _assign(child, rest, value)


def expand_form_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Nest bracketed form names the way the value resolver looks them up.

    ``address[city]`` becomes ``{"address": {"city": ...}}`` and every value
    posted as ``tags[]`` lands in ``{"tags": [...]}``. Multidicts (such as
    Litestar's ``FormMultiDict``) keep repeated values.
    """
    items = data.multi_items() if hasattr(data, "multi_items") else data.items()
    expanded: dict[str, Any] = {}
    for name, value in items:
        if name == CSRF_FIELD_NAME:
            continue
        _assign(expanded, _key_path(name), value)
    return expanded


def flash_old_input(request: "Request", data: Mapping[str, Any]) -> None:
    """Store submitted values (minus the CSRF token) for the next request."""
    request.session[OLD_INPUT_SESSION_KEY] = expand_form_data(data)


def pop_old_input(request: "Request") -> MappingOldInput:
    """Take the stored old input out of the session (it is only replayed once)."""
    return MappingOldInput(request.session.pop(OLD_INPUT_SESSION_KEY, None) or {})


class SessionCsrfToken:
    """CSRF token kept in the session, created on first use."""

    def __init__(self, request: "Request"):
        self.request = request

    def token(self) -> str:
        if CSRF_SESSION_KEY not in self.request.session:
            self.request.session[CSRF_SESSION_KEY] = secrets.token_urlsafe(32)
        return self.request.session[CSRF_SESSION_KEY]


class RequestUrlResolver:
    """URL generation backed by the current request and the app's route names."""

    def __init__(self, request: "Request"):
        self.request = request

    def _base(self, secure: bool | None = None) -> str:
        base = str(self.request.base_url).rstrip("/")
        if secure and base.startswith("http://"):
            base = "https://" + base[len("http://"):]
        return base

    def to(self, path: str, params: Iterable[Any] | None = None, secure: bool | None = None) -> str:
        if path.startswith(("http://", "https://", "//", "#", "mailto:")):
            return path
        segments = [str(p) for p in (params or [])]
        return "/".join([self._base(secure), path.lstrip("/"), *segments]).rstrip("/")

    def route(self, name: str, params: Mapping[str, Any] | None = None) -> str:
        return self.request.app.route_reverse(name, **dict(params or {}))

    def action(self, action: str, params: Mapping[str, Any] | None = None) -> str:
        # Litestar names handlers, so actions resolve like routes
        return self.route(action, params)

    def asset(self, path: str, secure: bool | None = None) -> str:
        return self.to(path, None, secure)

    def current(self) -> str:
        return str(self.request.url)

    def previous(self) -> str:
        referer = self.request.headers.get("referer")
        return referer or self._base() + "/"


@dataclass
class RoleSetUser:
    """A user known only by the set of role names they hold."""

    roles: set[str] = field(default_factory=set)

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return not self.roles.isdisjoint(roles)


def session_user(request: "Request", key: str = ROLES_SESSION_KEY) -> RoleSetUser:
    return RoleSetUser(set(request.session.get(key) or []))


def form_builder_for(
    request: "Request",
    *,
    model: Any = None,
    settings: FormationSettings | None = None,
) -> FormBuilder:
    """A FormBuilder wired to the request's session, CSRF token and URLs."""
    return FormBuilder(
        HtmlBuilder(RequestUrlResolver(request)),
        old_input=pop_old_input(request),
        model=model,
        csrf=SessionCsrfToken(request),
        settings=settings,
    )
