"""Form element builder: inputs, selects, labels and form open/close tags."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping
from typing import Any

from markupsafe import Markup, escape

from formation.config import FormationSettings, get_settings
from formation.html import HtmlBuilder, attributes
from formation.interfaces import CsrfTokenProvider, OldInputSource
from formation.values import ValueResolver, is_collection, to_str

CSRF_FIELD_NAME = "_token"
METHOD_FIELD_NAME = "_method"

# Input types that never pull a value from old input or the bound entity
SKIP_VALUE_TYPES = frozenset({"file", "password", "checkbox", "radio"})

SPOOFED_METHODS = frozenset({"DELETE", "PATCH", "PUT"})

RESERVED_OPEN_ATTRS = ("method", "url", "route", "action", "files")


def format_rfc3339(value: dt.datetime) -> str:
    """RFC3339 timestamp; naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.isoformat(timespec="seconds")


def _is_date(value: Any) -> bool:
    return isinstance(value, (dt.date, dt.datetime))


def _option_pairs(options: Any) -> Iterable[tuple[Any, Any]]:
    if options is None:
        return ()
    if isinstance(options, Mapping):
        return options.items()
    return options


class FormBuilder:
    """Builds form elements, filling values from old input or a bound entity.

    Usage:
        builder = FormBuilder(old_input=MappingOldInput(session_old_input))
        builder.label("email")
        builder.email("email", None, {"class": "form-control"})

    One builder serves one render pass. The set of emitted label names
    (used to derive element ids) lives on the instance.
    """

    def __init__(
        self,
        html: HtmlBuilder | None = None,
        *,
        old_input: OldInputSource | None = None,
        model: Any = None,
        csrf: CsrfTokenProvider | None = None,
        settings: FormationSettings | None = None,
    ):
        self.html = html or HtmlBuilder()
        self.values = ValueResolver(old_input, model)
        self.csrf = csrf
        self.settings = settings or get_settings()
        self.labels: set[str] = set()

    # -- Bound entity --

    @property
    def model(self) -> Any:
        return self.values.model

    def set_model(self, model: Any) -> None:
        self.values.model = model

    def reset_labels(self) -> None:
        self.labels = set()

    # -- Form tags --

    def open(self, attrs: dict | None = None) -> Markup:
        """Open a form, adding the spoofed method and CSRF token when needed.

        Recognized options: ``method``, ``url``, ``route``, ``action``
        (each a string or a ``(target, params)`` pair) and ``files``.
        """
        attrs = dict(attrs or {})
        method = str(attrs.get("method", "post")).upper()

        form_attrs: dict[str, Any] = {
            "method": self._form_method(method),
            "action": self._form_action(attrs),
            "accept-charset": "UTF-8",
        }
        if attrs.get("files"):
            form_attrs["enctype"] = "multipart/form-data"

        for key, value in attrs.items():
            if key not in RESERVED_OPEN_ATTRS:
                form_attrs[key] = value

        appendage = self._appendage(method)
        return Markup(f"<form{attributes(form_attrs)}>{appendage}")

    def model_form(self, model: Any, attrs: dict | None = None) -> Markup:
        """Bind an entity and open the form."""
        self.set_model(model)
        return self.open(attrs)

    def close(self) -> Markup:
        self.reset_labels()
        self.set_model(None)
        return Markup("</form>")

    def token(self) -> Markup:
        """Hidden input carrying the current CSRF token."""
        if self.csrf is None:
            raise RuntimeError("No CSRF token provider configured for this builder")
        return self.hidden(CSRF_FIELD_NAME, self.csrf.token())

    @staticmethod
    def _form_method(method: str) -> str:
        return method if method == "GET" else "POST"

    def _form_action(self, attrs: dict) -> str:
        for option in ("url", "route", "action"):
            if attrs.get(option) is None:
                continue
            target, params = attrs[option], None
            if isinstance(target, (list, tuple)):
                target, params = target[0], (target[1] if len(target) > 1 else None)
            url = self.html.require_url()
            if option == "url":
                return url.to(target, params)
            if option == "route":
                return url.route(target, params)
            return url.action(target, params)
        if self.html.url is None:
            return ""
        return self.html.url.current()

    def _appendage(self, method: str) -> str:
        appendage = ""
        if method in SPOOFED_METHODS:
            appendage += str(self.hidden(METHOD_FIELD_NAME, method))
        if method != "GET":
            appendage += str(self.token())
        return appendage

    # -- Labels --

    def label(self, name: str, value: str | None = None, attrs: dict | None = None, escape_html: bool = True) -> Markup:
        """Create a ``<label for=name>``; later elements named ``name`` get a matching id."""
        self.labels.add(name)
        text = self._format_label(name, value)
        if escape_html:
            text = escape(text)
        return Markup(f'<label for="{escape(name)}"{attributes(attrs)}>{text}</label>')

    @staticmethod
    def _format_label(name: str, value: str | None) -> str:
        if value:
            return value
        return " ".join(word[:1].upper() + word[1:] for word in name.replace("_", " ").split(" "))

    def id_attribute(self, name: str | None, attrs: Mapping[str, Any]) -> Any:
        if "id" in attrs:
            return attrs["id"]
        if name is not None and name in self.labels:
            return name
        return None

    # -- Inputs --

    def input(self, input_type: str, name: str | None, value: Any = None, attrs: dict | None = None) -> Markup:
        attrs = dict(attrs or {})
        if "name" not in attrs:
            attrs["name"] = name

        element_id = self.id_attribute(name, attrs)

        if input_type not in SKIP_VALUE_TYPES:
            value = self.values.value(name, value)

        attrs.update({"type": input_type, "value": value, "id": element_id})
        return Markup(f"<input{attributes(attrs)}>")

    def text(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("text", name, value, attrs)

    def password(self, name: str, attrs: dict | None = None) -> Markup:
        return self.input("password", name, "", attrs)

    def hidden(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("hidden", name, value, attrs)

    def email(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("email", name, value, attrs)

    def tel(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("tel", name, value, attrs)

    def number(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("number", name, value, attrs)

    def date(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        if _is_date(value):
            value = value.strftime("%Y-%m-%d")
        return self.input("date", name, value, attrs)

    def datetime(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        if isinstance(value, dt.datetime):
            value = format_rfc3339(value)
        return self.input("datetime", name, value, attrs)

    def datetime_local(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        if isinstance(value, dt.datetime):
            value = value.strftime("%Y-%m-%dT%H:%M")
        return self.input("datetime-local", name, value, attrs)

    def time(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("time", name, value, attrs)

    def url(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("url", name, value, attrs)

    def color(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("color", name, value, attrs)

    def file(self, name: str, attrs: dict | None = None) -> Markup:
        return self.input("file", name, None, attrs)

    def image(self, url: str, name: str | None = None, attrs: dict | None = None) -> Markup:
        attrs = dict(attrs or {})
        attrs["src"] = self.html.asset_url(url)
        return self.input("image", name, None, attrs)

    def submit(self, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("submit", None, value, attrs)

    def reset(self, value: Any = None, attrs: dict | None = None) -> Markup:
        return self.input("reset", None, value, attrs)

    def button(self, value: Any = None, attrs: dict | None = None) -> Markup:
        """A ``<button>``; its content is inserted as raw markup."""
        attrs = dict(attrs or {})
        attrs.setdefault("type", "button")
        content = "" if value is None else value
        return Markup(f"<button{attributes(attrs)}>{content}</button>")

    # -- Textarea --

    def textarea(self, name: str, value: Any = None, attrs: dict | None = None) -> Markup:
        attrs = dict(attrs or {})
        if "name" not in attrs:
            attrs["name"] = name

        attrs = self._textarea_size(attrs)
        attrs["id"] = self.id_attribute(name, attrs)
        attrs.pop("size", None)

        resolved = self.values.value(name, value)
        content = "" if resolved is None else resolved
        return Markup(f"<textarea{attributes(attrs)}>{escape(content)}</textarea>")

    def _textarea_size(self, attrs: dict) -> dict:
        if attrs.get("size"):
            # "COLSxROWS" shorthand wins over discrete cols/rows
            cols, _, rows = str(attrs["size"]).partition("x")
            attrs.update({
                "cols": cols or self.settings.textarea_cols,
                "rows": rows or self.settings.textarea_rows,
            })
            return attrs
        attrs["cols"] = attrs.get("cols", self.settings.textarea_cols)
        attrs["rows"] = attrs.get("rows", self.settings.textarea_rows)
        return attrs

    # -- Selects --

    def select(self, name: str, options: Any = None, selected: Any = None, attrs: dict | None = None) -> Markup:
        """Create a select box from a mapping or ``(value, label)`` pairs.

        A mapping as a label renders an ``<optgroup>``; ``selected`` may be a
        collection for multi-selects. A ``placeholder`` attribute becomes a
        leading empty option.
        """
        selected = self.values.value(name, selected)

        attrs = dict(attrs or {})
        attrs["id"] = self.id_attribute(name, attrs)
        if "name" not in attrs:
            attrs["name"] = name

        html = []
        placeholder = attrs.pop("placeholder", None)
        if placeholder is not None:
            html.append(self._placeholder_option(placeholder, selected))

        for value, display in _option_pairs(options):
            html.append(self._select_option(display, value, selected))

        return Markup(f"<select{attributes(attrs)}>{''.join(html)}</select>")

    def select_range(self, name: str, begin: int, end: int, selected: Any = None, attrs: dict | None = None) -> Markup:
        step = 1 if end >= begin else -1
        values = range(begin, end + step, step)
        return self.select(name, {value: value for value in values}, selected, attrs)

    def select_year(self, name: str, begin: int, end: int, selected: Any = None, attrs: dict | None = None) -> Markup:
        return self.select_range(name, begin, end, selected, attrs)

    def select_month(self, name: str, selected: Any = None, attrs: dict | None = None, fmt: str = "%B") -> Markup:
        months = {month: dt.date(2000, month, 1).strftime(fmt) for month in range(1, 13)}
        return self.select(name, months, selected, attrs)

    def _select_option(self, display: Any, value: Any, selected: Any) -> str:
        if isinstance(display, Mapping):
            return self._option_group(display, value, selected)
        return self._option(display, value, selected)

    def _option_group(self, options: Mapping, label: Any, selected: Any) -> str:
        html = "".join(self._option(display, value, selected) for value, display in options.items())
        return f'<optgroup label="{escape(label)}">{html}</optgroup>'

    def _option(self, display: Any, value: Any, selected: Any) -> str:
        attrs = {"value": value, "selected": self._selected_value(value, selected)}
        return f"<option{attributes(attrs)}>{escape(display)}</option>"

    def _placeholder_option(self, display: Any, selected: Any) -> str:
        attrs = {"selected": self._selected_value(None, selected), "value": ""}
        return f"<option{attributes(attrs)}>{escape(display)}</option>"

    @staticmethod
    def _selected_value(value: Any, selected: Any) -> str | None:
        if is_collection(selected):
            return "selected" if to_str(value) in {to_str(item) for item in selected} else None
        return "selected" if to_str(value) == to_str(selected) else None

    # -- Checkables --

    def checkbox(self, name: str, value: Any = 1, checked: bool | None = None, attrs: dict | None = None) -> Markup:
        return self._checkable("checkbox", name, value, checked, attrs)

    def radio(self, name: str, value: Any = None, checked: bool | None = None, attrs: dict | None = None) -> Markup:
        if value is None:
            value = name
        return self._checkable("radio", name, value, checked, attrs)

    def _checkable(self, input_type: str, name: str, value: Any, checked: bool | None, attrs: dict | None) -> Markup:
        attrs = dict(attrs or {})
        if self.values.checked_state(input_type, name, value, checked):
            attrs["checked"] = "checked"
        return self.input(input_type, name, value, attrs)
