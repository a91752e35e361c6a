"""Registry of option providers for select fields.

Select fields can point at their options indirectly:

    {"name": "status_id", "type": "select", "options_action": "ProjectStatuses@all_as_list"}
    {"name": "owner_id", "type": "select", "options_entity": "User"}

Each reference must be registered up front; nothing is imported by name.

Usage:
    registry = OptionRegistry()

    @registry.action("ProjectStatuses@all_as_list")
    def project_statuses():
        return {1: "Upcoming", 2: "Wireframing"}

    registry.register_entity("User", lambda: users)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from formation.exceptions import ConfigurationError
from formation.interfaces import OptionProvider

logger = logging.getLogger(__name__)

ACTION_PATTERN = re.compile(r"^(.*)@(.*)$")


def parse_action_reference(reference: str) -> tuple[str, str]:
    """Split ``"Key@method"`` into its parts. Raises ConfigurationError if malformed."""
    match = ACTION_PATTERN.match(reference or "")
    if match is None or not match.group(1) or not match.group(2):
        raise ConfigurationError(f"Invalid action {reference!r}. Expected 'Key@method'.")
    return match.group(1), match.group(2)


def _record_value(record: Any, attr: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(attr)
    return getattr(record, attr, None)


def pluck(records: Iterable[Any], label: str = "name", key: str = "id") -> dict[Any, Any]:
    """Reduce records to an ordered ``{key: label}`` mapping."""
    return {_record_value(record, key): _record_value(record, label) for record in records}


class OptionRegistry:
    """Maps option source references to callables producing select options."""

    def __init__(self) -> None:
        self._actions: dict[str, OptionProvider] = {}
        self._entities: dict[str, OptionProvider] = {}

    # -- Registration --

    def register_action(self, reference: str, provider: OptionProvider) -> None:
        parse_action_reference(reference)
        self._actions[reference] = provider

    def register_entity(self, reference: str, provider: OptionProvider) -> None:
        """Register a callable returning every record of an entity (objects or dicts with id/name)."""
        self._entities[reference] = provider

    def action(self, reference: str) -> Callable[[OptionProvider], OptionProvider]:
        """Decorator form of register_action."""

        def decorator(func: OptionProvider) -> OptionProvider:
            self.register_action(reference, func)
            return func

        return decorator

    def has_action(self, reference: str) -> bool:
        return reference in self._actions

    def has_entity(self, reference: str) -> bool:
        return reference in self._entities

    # -- Lookup --

    def get_action(self, reference: str) -> OptionProvider:
        parse_action_reference(reference)
        try:
            return self._actions[reference]
        except KeyError:
            available = ", ".join(sorted(self._actions)) or "(none)"
            raise ConfigurationError(
                f"No option action named '{reference}'. Registered: {available}"
            )

    def get_entity(self, reference: str) -> OptionProvider:
        try:
            return self._entities[reference]
        except KeyError:
            available = ", ".join(sorted(self._entities)) or "(none)"
            raise ConfigurationError(
                f"No option entity named '{reference}'. Registered: {available}"
            )

    def action_options(self, reference: str) -> Mapping[Any, Any]:
        logger.debug("Resolving select options from action %s", reference)
        options = self.get_action(reference)()
        if isinstance(options, Mapping):
            return options
        return dict(options)

    def entity_options(self, reference: str, label: str = "name", key: str = "id") -> dict[Any, Any]:
        logger.debug("Resolving select options from entity %s", reference)
        return pluck(self.get_entity(reference)(), label=label, key=key)
