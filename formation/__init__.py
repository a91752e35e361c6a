"""Formation - server-side HTML form builder with old-input and entity value binding."""

from formation.elements import FormBuilder
from formation.exceptions import ConfigurationError, FormationError
from formation.fields import FieldDescriptor, normalize
from formation.html import HtmlBuilder, attributes
from formation.options import OptionRegistry
from formation.renderer import Formation
from formation.values import MappingOldInput, ValueResolver, transform_key

__all__ = [
    "ConfigurationError",
    "FieldDescriptor",
    "FormBuilder",
    "Formation",
    "FormationError",
    "HtmlBuilder",
    "MappingOldInput",
    "OptionRegistry",
    "ValueResolver",
    "attributes",
    "normalize",
    "transform_key",
]
