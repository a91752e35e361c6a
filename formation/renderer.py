"""Declarative form renderer.

Formation turns a list of field declarations (usually taken from an entity's
``get_editable_fields()``) into a horizontal Bootstrap-style form body.
Each visible field becomes a ``div.form-group`` holding a
``label.col-sm-2.control-label`` and a ``div.col-sm-10`` around the input.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from markupsafe import Markup, escape

from formation.config import FormationSettings, get_settings
from formation.elements import FormBuilder
from formation.fields import FieldDescriptor, is_blank, normalize, normalize_field
from formation.html import HtmlBuilder
from formation.interfaces import CurrentUser, EntitySource, UrlResolver
from formation.options import OptionRegistry
from formation.values import data_get

logger = logging.getLogger(__name__)


class Formation:
    """Renders a set of normalized fields into form markup.

    Usage:
        formation = Formation(project, current_user=user, registry=registry)
        body = formation.render()
        buttons = formation.render_submit()
    """

    def __init__(
        self,
        entity: Any = None,
        *,
        builder: FormBuilder | None = None,
        current_user: CurrentUser | None = None,
        registry: OptionRegistry | None = None,
        url: UrlResolver | None = None,
        settings: FormationSettings | None = None,
    ):
        self.settings = settings or get_settings()
        self.builder = builder or FormBuilder(HtmlBuilder(url), settings=self.settings)
        self.current_user = current_user
        self.registry = registry
        self.fields: list[FieldDescriptor] = []

        if entity is not None:
            self.set_model(entity)

    @property
    def html(self) -> HtmlBuilder:
        return self.builder.html

    # -- Field set --

    def set_fields(self, raw_fields: Iterable[str | Mapping[str, Any]]) -> None:
        self.fields = normalize(raw_fields, self.registry, self.settings)

    def add_field(self, field: str | Mapping[str, Any], position: int | None = None) -> FieldDescriptor | None:
        """Normalize and append one field, or insert it at ``position``."""
        descriptor = normalize_field(field, self.registry, self.settings)
        if descriptor is None:
            return None
        if position is None:
            self.fields.append(descriptor)
        else:
            self.fields.insert(position, descriptor)
        return descriptor

    def set_model(self, entity: EntitySource) -> bool:
        """Take the fields an entity declares as editable and default them to its values.

        Returns False (and leaves the field set alone) when the entity declares
        no editable fields.
        """
        get_editable_fields = getattr(entity, "get_editable_fields", None)
        if not callable(get_editable_fields):
            logger.debug("%r declares no editable fields", type(entity).__name__)
            return False

        self.set_fields(get_editable_fields())
        self.set_field_values_from_model(entity)
        return True

    def set_field_values_from_model(self, entity: Any) -> None:
        for field in self.fields:
            value = _entity_attribute(entity, field.name)
            if not is_blank(value):
                self.set_field_value(field.name, value)

    def set_field_value(self, name: str, value: Any) -> bool:
        if is_blank(value):
            return False
        for field in self.fields:
            if field.name == name:
                field.value = value
        return True

    # -- Rendering --

    def visible_fields(self, current_user: CurrentUser | None = None) -> list[FieldDescriptor]:
        """Fields the user may see; a field with roles needs at least one of them."""
        user = current_user or self.current_user
        visible = []
        for field in self.fields:
            if field.roles:
                if user is None or not user.has_any_role(field.roles):
                    logger.debug("Skipping field %s: user lacks roles %s", field.name, sorted(field.roles))
                    continue
            visible.append(field)
        return visible

    def render(self, current_user: CurrentUser | None = None) -> Markup:
        self.builder.reset_labels()
        html = self.html
        settings = self.settings

        rendered = ""
        for field in self.visible_fields(current_user):
            label = self.builder.label(field.name, field.display_name, {"class": settings.label_class})
            element = self.render_element(field)
            wrapper = html.tag("div", element, {"class": settings.field_wrapper_class})
            group = html.tag("div", label + wrapper, {"class": settings.group_class})
            rendered += group

        return Markup(rendered)

    def render_element(self, field: FieldDescriptor) -> Markup:
        """Render the input element for one field."""
        attrs: dict[str, Any] = {"class": self.settings.input_class}
        if field.placeholder:
            attrs["placeholder"] = field.placeholder

        if field.type == "date":
            return self._render_date(field, attrs)
        if field.type == "select":
            options = field.resolve_options(self.registry)
            return self.builder.select(field.name, options, field.value, attrs)
        if field.type == "textarea":
            return self.builder.textarea(field.name, field.value, attrs)
        if field.type == "password":
            return self.builder.password(field.name, attrs)
        if field.type == "file":
            return self.builder.file(field.name, attrs)
        if field.type == "checkbox":
            return self.builder.checkbox(field.name, 1, bool(field.value), attrs)
        return self.builder.input(field.type, field.name, field.value, attrs)

    def _render_date(self, field: FieldDescriptor, attrs: dict[str, Any]) -> Markup:
        attrs["class"] += f" {self.settings.datepicker_class}"
        attrs["data-date-format"] = self.settings.datepicker_format
        if isinstance(field.value, (dt.date, dt.datetime)):
            attrs["data-default-date"] = field.value.strftime(self.settings.default_date_format)
        # The picker fills the input from data-default-date
        return self.builder.input("text", field.name, "", attrs)

    def render_submit(self) -> Markup:
        url = self.html.url
        previous = url.previous() if url is not None else "#"
        settings = self.settings
        return Markup(
            f'<div class="{escape(settings.group_class)}">\n'
            f'<div class="{escape(settings.submit_wrapper_class)}">\n'
            f'<a href="{escape(previous)}" class="btn btn-default pull-right">Cancel</a>\n'
            '<button type="submit" class="btn btn-success text-right">Save</button>\n'
            "</div>\n"
            "</div>\n"
        )

    def __html__(self) -> str:
        return str(self.render())

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)


def _entity_attribute(entity: Any, name: str) -> Any:
    getter = getattr(entity, "get_attribute_value", None)
    if callable(getter):
        return getter(name)
    return data_get(entity, name)
