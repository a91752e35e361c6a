"""Generic HTML helpers: attribute serialization, links, lists and meta tags."""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from typing import Any

from markupsafe import Markup, escape

from formation.interfaces import UrlResolver


def _is_numeric_key(key: Any) -> bool:
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return True
    return isinstance(key, str) and key.isdigit()


def attribute_element(key: Any, value: Any) -> str | None:
    """Render one ``key="value"`` pair, or None when the attribute is omitted."""
    # Integer keys mark boolean attributes: {0: "required"} -> required="required"
    if _is_numeric_key(key):
        key = value

    if value is None or value is False:
        return None

    name = str(key).rstrip("_") or str(key)
    if value is True:
        value = name
    return f'{name}="{escape(value)}"'


def attributes(attrs: Mapping[Any, Any] | None) -> str:
    """Render a dict as HTML attributes string. Returns '' or ' key="val" key2="val2"'."""
    if not attrs:
        return ""
    parts = []
    for key, value in attrs.items():
        element = attribute_element(key, value)
        if element is not None:
            parts.append(element)
    return " " + " ".join(parts) if parts else ""


class HtmlBuilder:
    """Builds small standalone HTML fragments.

    Every method returns ``Markup`` so results can be dropped straight into
    Jinja templates or concatenated with other fragments.
    """

    def __init__(self, url: UrlResolver | None = None):
        self.url = url

    # -- Escaping --

    def entities(self, value: Any) -> str:
        """Convert a value to HTML entities (already-safe Markup is kept)."""
        return str(escape(value))

    def attributes(self, attrs: Mapping[Any, Any] | None) -> str:
        return attributes(attrs)

    def obfuscate(self, value: str) -> str:
        """Randomly encode each character so naive scrapers can't read the value."""
        safe = ""
        for letter in value:
            if ord(letter) > 128:
                safe += letter
                continue
            choice = random.randint(1, 3)
            if choice == 1:
                safe += f"&#{ord(letter)};"
            elif choice == 2:
                safe += f"&#x{ord(letter):x};"
            else:
                safe += letter
        return safe

    def email_address(self, email: str) -> str:
        return self.obfuscate(email).replace("@", "&#64;")

    # -- Assets --

    def asset_url(self, path: str, secure: bool | None = None) -> str:
        if self.url is None:
            return path
        return self.url.asset(path, secure)

    def script(self, url: str, attrs: dict | None = None, secure: bool | None = None) -> Markup:
        attrs = dict(attrs or {})
        attrs["src"] = self.asset_url(url, secure)
        return Markup(f"<script{attributes(attrs)}></script>\n")

    def style(self, url: str, attrs: dict | None = None, secure: bool | None = None) -> Markup:
        defaults = {"media": "all", "type": "text/css", "rel": "stylesheet"}
        attrs = dict(attrs or {})
        for key, value in defaults.items():
            attrs.setdefault(key, value)
        attrs["href"] = self.asset_url(url, secure)
        return Markup(f"<link{attributes(attrs)}>\n")

    def image(self, url: str, alt: str | None = None, attrs: dict | None = None, secure: bool | None = None) -> Markup:
        attrs = dict(attrs or {})
        attrs["alt"] = alt
        src = escape(self.asset_url(url, secure))
        return Markup(f'<img src="{src}"{attributes(attrs)}>')

    def favicon(self, url: str, attrs: dict | None = None, secure: bool | None = None) -> Markup:
        defaults = {"rel": "shortcut icon", "type": "image/x-icon"}
        attrs = dict(attrs or {})
        for key, value in defaults.items():
            attrs.setdefault(key, value)
        attrs["href"] = self.asset_url(url, secure)
        return Markup(f"<link{attributes(attrs)}>\n")

    # -- Links --

    def link(self, url: str, title: str | None = None, attrs: dict | None = None, secure: bool | None = None) -> Markup:
        if self.url is not None:
            url = self.url.to(url, None, secure)
        if title is None or title is False:
            title = url
        return Markup(f'<a href="{escape(url)}"{attributes(attrs)}>{escape(title)}</a>')

    def secure_link(self, url: str, title: str | None = None, attrs: dict | None = None) -> Markup:
        return self.link(url, title, attrs, True)

    def link_asset(self, url: str, title: str | None = None, attrs: dict | None = None, secure: bool | None = None) -> Markup:
        url = self.asset_url(url, secure)
        return self.link(url, title or url, attrs, secure)

    def link_secure_asset(self, url: str, title: str | None = None, attrs: dict | None = None) -> Markup:
        return self.link_asset(url, title, attrs, True)

    def link_route(self, name: str, title: str | None = None, params: dict | None = None, attrs: dict | None = None) -> Markup:
        return self.link(self.require_url().route(name, params or {}), title, attrs)

    def link_action(self, action: str, title: str | None = None, params: dict | None = None, attrs: dict | None = None) -> Markup:
        return self.link(self.require_url().action(action, params or {}), title, attrs)

    def mailto(self, email: str, title: str | None = None, attrs: dict | None = None) -> Markup:
        email = self.email_address(email)
        title = title or email
        href = self.obfuscate("mailto:") + email
        # The obfuscated title is already entity encoded
        text = Markup(title) if title == email else escape(title)
        return Markup(f'<a href="{href}"{attributes(attrs)}>{text}</a>')

    def require_url(self) -> UrlResolver:
        if self.url is None:
            raise RuntimeError("No URL resolver configured for this builder")
        return self.url

    # -- Lists --

    def ol(self, items: Iterable | Mapping, attrs: dict | None = None) -> Markup:
        return self._listing("ol", items, attrs)

    def ul(self, items: Iterable | Mapping, attrs: dict | None = None) -> Markup:
        return self._listing("ul", items, attrs)

    def dl(self, items: Mapping[Any, Any], attrs: dict | None = None) -> Markup:
        html = f"<dl{attributes(attrs)}>"
        for term, definitions in items.items():
            if isinstance(definitions, str) or not isinstance(definitions, Iterable):
                definitions = [definitions]
            html += f"<dt>{escape(term)}</dt>"
            for definition in definitions:
                html += f"<dd>{escape(definition)}</dd>"
        html += "</dl>"
        return Markup(html)

    def _listing(self, list_type: str, items: Iterable | Mapping, attrs: dict | None = None) -> Markup:
        pairs = items.items() if isinstance(items, Mapping) else enumerate(items)
        html = ""
        count = 0
        for key, value in pairs:
            html += self._listing_element(key, list_type, value)
            count += 1
        if count == 0:
            return Markup("")
        return Markup(f"<{list_type}{attributes(attrs)}>{html}</{list_type}>")

    def _listing_element(self, key: Any, list_type: str, value: Any) -> str:
        if isinstance(value, (list, tuple, Mapping)):
            # Integer keys mean an anonymous nested list, named keys get a heading item
            if isinstance(key, int):
                return str(self._listing(list_type, value))
            return f"<li>{escape(key)}{self._listing(list_type, value)}</li>"
        return f"<li>{escape(value)}</li>"

    # -- Tags --

    def meta(self, name: str, content: str, attrs: dict | None = None) -> Markup:
        merged = {"name": name, "content": content, **(attrs or {})}
        return Markup(f"<meta{attributes(merged)}>\n")

    def tag(self, tag: str, content: Any, attrs: dict | None = None) -> Markup:
        """Wrap content in a tag. Content is trusted markup; lists are joined by newlines."""
        if isinstance(content, (list, tuple)):
            content = "\n".join(str(part) for part in content)
        return Markup(f"<{tag}{attributes(attrs)}>\n{content}\n</{tag}>\n")
