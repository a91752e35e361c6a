"""Value resolution for form fields.

A field's value comes from the first of these sources that is not None:

1. Old input replayed after a failed validation round-trip
2. The explicit value passed by the caller
3. The bound entity (``get_form_value()`` override, else attribute lookup)

Checkbox and radio inputs resolve a *checked state* instead of a value.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from formation.interfaces import OldInputSource

_MISSING = object()


def transform_key(key: str) -> str:
    """Convert bracket array syntax to dot syntax. foo[bar] -> foo.bar, foo[] -> foo"""
    for old, new in ((".", "_"), ("[]", ""), ("[", "."), ("]", "")):
        key = key.replace(old, new)
    return key


def _get_segment(target: Any, segment: str) -> Any:
    if isinstance(target, Mapping):
        return target.get(segment)
    if isinstance(target, Sequence) and not isinstance(target, str):
        if segment.isdigit() and int(segment) < len(target):
            return target[int(segment)]
        return None
    getter = getattr(target, "get_attribute", None)
    if callable(getter):
        return getter(segment)
    return getattr(target, segment, None)


def data_get(target: Any, key: str) -> Any:
    """Walk a dotted key through mappings, sequences and object attributes."""
    for segment in key.split("."):
        if target is None:
            return None
        target = _get_segment(target, segment)
    return target


def to_str(value: Any) -> str:
    """String form used for loose comparisons. None -> '', True -> '1', False -> ''."""
    if value is None or value is False:
        return ""
    if value is True:
        return "1"
    return str(value)


def is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _record_id(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get("id", _MISSING)
    return getattr(item, "id", _MISSING)


class MappingOldInput:
    """Old input backed by a plain (possibly nested) dict."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self.data = dict(data or {})

    def has(self, key: str) -> bool:
        return data_get(self.data, key) is not None

    def get(self, key: str) -> Any:
        return data_get(self.data, key)

    def is_empty(self) -> bool:
        return len(self.data) == 0

    def __repr__(self) -> str:
        return f"MappingOldInput({self.data!r})"


class ValueResolver:
    """Resolves field values and checked states from old input, explicit values and a bound entity."""

    def __init__(self, old_input: OldInputSource | None = None, model: Any = None):
        self.old_input = old_input
        self.model = model

    # -- Sources --

    def old(self, name: str) -> Any:
        """Get a value from the old input, or None."""
        if self.old_input is None:
            return None
        return self.old_input.get(transform_key(name))

    def old_input_is_empty(self) -> bool:
        return self.old_input is not None and self.old_input.is_empty()

    def model_value(self, name: str) -> Any:
        """Get a value from the bound entity, or None."""
        if self.model is None:
            return None
        override = getattr(self.model, "get_form_value", None)
        if callable(override):
            return override(name)
        return data_get(self.model, transform_key(name))

    def missing_old_and_model(self, name: str) -> bool:
        return self.old(name) is None and self.model_value(name) is None

    # -- Resolution --

    def value(self, name: str | None, explicit: Any = None) -> Any:
        """Get the value that should be assigned to the field."""
        if name is None:
            return explicit

        old = self.old(name)
        if old is not None:
            return old

        if explicit is not None:
            return explicit

        if self.model is not None:
            return self.model_value(name)
        return None

    def checked_state(self, input_type: str, name: str, value: Any, checked: bool | None) -> bool:
        if input_type == "checkbox":
            return self.checkbox_checked(name, value, checked)
        if input_type == "radio":
            return self.radio_checked(name, value, checked)
        return to_str(self.value(name)) == to_str(value)

    def checkbox_checked(self, name: str, value: Any, checked: bool | None) -> bool:
        # Submitted form without this box means it was left unticked
        if self.old_input is not None and not self.old_input_is_empty() and self.old(name) is None:
            return False

        if self.missing_old_and_model(name):
            return bool(checked)

        posted = self.value(name, checked)

        if is_collection(posted):
            return any(self._matches(item, value) for item in posted)
        return bool(posted)

    def radio_checked(self, name: str, value: Any, checked: bool | None) -> bool:
        if self.missing_old_and_model(name):
            return bool(checked)
        return to_str(self.value(name)) == to_str(value)

    @staticmethod
    def _matches(item: Any, value: Any) -> bool:
        record_id = _record_id(item)
        if record_id is not _MISSING:
            return to_str(record_id) == to_str(value)
        return to_str(item) == to_str(value)
