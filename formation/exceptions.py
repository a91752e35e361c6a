"""Exceptions raised while building forms."""


class FormationError(Exception):
    """Base class for all form builder errors."""


class ConfigurationError(FormationError):
    """A field or option source is declared incorrectly.

    Raised while normalizing field declarations (e.g. a select without any
    option source, or a malformed ``"Key@method"`` reference).
    """
