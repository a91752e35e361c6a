"""Field declarations and their normalization."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from formation.config import FormationSettings, get_settings
from formation.exceptions import ConfigurationError
from formation.options import OptionRegistry, parse_action_reference

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """None, empty strings and empty collections count as blank.

    0 and False are real values, so an entity holding them still replaces a
    field default.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def label_from_field_name(name: str, word_order: str = "reversed") -> str:
    """Humanize a field name. first_name -> "Name First" (or "First Name" in natural order)"""
    words = [word.title() for word in name.replace("_", " ").split()]
    if word_order == "reversed":
        words.reverse()
    return " ".join(words)


class FieldDescriptor(BaseModel):
    """A normalized form field.

    Unknown keys from the raw declaration are kept as extra attributes.
    """

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    name: str
    type: str = "text"
    display_name: str = ""
    value: Any = ""
    placeholder: str = ""
    options: Any = None
    options_action: str | None = None
    options_entity: str | None = None
    roles: set[str] | None = None

    @field_validator("roles", mode="before")
    @classmethod
    def _wrap_single_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {value}
        return value

    @property
    def has_option_source(self) -> bool:
        return not (is_blank(self.options) and is_blank(self.options_action) and is_blank(self.options_entity))

    def resolve_options(self, registry: OptionRegistry | None) -> Any:
        """Return the select options: literal options, then action, then entity."""
        if not is_blank(self.options):
            return self.options
        if self.options_action:
            return self._require_registry(registry).action_options(self.options_action)
        if self.options_entity:
            return self._require_registry(registry).entity_options(self.options_entity)
        return {}

    def _require_registry(self, registry: OptionRegistry | None) -> OptionRegistry:
        if registry is None:
            raise ConfigurationError(
                f"Field '{self.name}' uses an option source but no option registry was given"
            )
        return registry


def normalize_field(
    raw: str | Mapping[str, Any],
    registry: OptionRegistry | None = None,
    settings: FormationSettings | None = None,
) -> FieldDescriptor | None:
    """Normalize one raw declaration. Returns None for maps without a name."""
    settings = settings or get_settings()

    if isinstance(raw, str):
        return FieldDescriptor(
            name=raw,
            type="text",
            display_name=label_from_field_name(raw, settings.label_word_order),
            value="",
        )

    data = dict(raw)
    name = data.get("name")
    if is_blank(name):
        logger.warning("Skipping field declaration without a name: %r", raw)
        return None

    if is_blank(data.get("type")):
        data["type"] = "text"

    if data["type"] == "select":
        _check_option_source(name, data, registry)

    if is_blank(data.get("display_name")):
        data["display_name"] = label_from_field_name(name, settings.label_word_order)

    if is_blank(data.get("value")):
        data["value"] = ""

    if is_blank(data.get("placeholder")):
        data["placeholder"] = ""

    return FieldDescriptor(**data)


def _check_option_source(name: str, data: dict, registry: OptionRegistry | None) -> None:
    if all(is_blank(data.get(key)) for key in ("options", "options_action", "options_entity")):
        raise ConfigurationError(f"Select field '{name}' must have an `options` specifier.")

    if not is_blank(data.get("options")):
        return

    action = data.get("options_action")
    if not is_blank(action):
        parse_action_reference(action)
        if registry is not None:
            registry.get_action(action)
        return

    if registry is not None:
        registry.get_entity(data["options_entity"])


def normalize(
    raw_fields: Iterable[str | Mapping[str, Any]],
    registry: OptionRegistry | None = None,
    settings: FormationSettings | None = None,
) -> list[FieldDescriptor]:
    """Normalize raw field declarations (names or maps) in order.

    Raises ConfigurationError for select fields without an option source and
    for malformed or unregistered option references.
    """
    fields = []
    for raw in raw_fields:
        field = normalize_field(raw, registry, settings)
        if field is not None:
            fields.append(field)
    return fields
