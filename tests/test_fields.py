"""Tests for field normalization in formation.fields."""

import pytest

from formation.config import FormationSettings
from formation.exceptions import ConfigurationError
from formation.fields import FieldDescriptor, is_blank, label_from_field_name, normalize, normalize_field
from formation.options import OptionRegistry


class TestLabelFromFieldName:
    def test_single_word(self):
        assert label_from_field_name("email") == "Email"

    def test_reversed_word_order(self):
        assert label_from_field_name("first_name") == "Name First"

    def test_natural_word_order(self):
        assert label_from_field_name("first_name", "natural") == "First Name"


class TestIsBlank:
    @pytest.mark.parametrize("value", [None, "", [], {}, set(), ()])
    def test_blank(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [0, False, "0", " ", [0]])
    def test_not_blank(self, value):
        assert not is_blank(value)


class TestNormalize:
    def test_string_shorthand(self):
        fields = normalize(["email"])
        assert len(fields) == 1
        field = fields[0]
        assert field.name == "email"
        assert field.type == "text"
        assert field.display_name == "Email"
        assert field.value == ""

    def test_map_defaults(self):
        (field,) = normalize([{"name": "last_name"}])
        assert field.type == "text"
        assert field.display_name == "Name Last"
        assert field.value == ""
        assert field.placeholder == ""
        assert field.roles is None

    def test_explicit_values_are_kept(self):
        (field,) = normalize([{
            "name": "first_name",
            "display_name": "Your first name",
            "value": "1234",
            "placeholder": "Jane",
        }])
        assert field.display_name == "Your first name"
        assert field.value == "1234"
        assert field.placeholder == "Jane"

    def test_order_is_preserved(self):
        fields = normalize(["b", {"name": "a"}, "c"])
        assert [f.name for f in fields] == ["b", "a", "c"]

    def test_maps_without_name_are_dropped(self):
        assert normalize([{"type": "text"}, {"name": ""}]) == []

    def test_extra_keys_are_kept(self):
        (field,) = normalize([{"name": "x", "help_text": "Some help"}])
        assert field.help_text == "Some help"

    def test_roles_accept_list_or_string(self):
        fields = normalize([{"name": "a", "roles": ["admin", "editor"]}, {"name": "b", "roles": "admin"}])
        assert fields[0].roles == {"admin", "editor"}
        assert fields[1].roles == {"admin"}

    def test_natural_word_order_setting(self):
        settings = FormationSettings(label_word_order="natural")
        (field,) = normalize(["first_name"], settings=settings)
        assert field.display_name == "First Name"


class TestSelectFields:
    def test_select_without_options_fails(self):
        with pytest.raises(ConfigurationError):
            normalize([{"name": "status", "type": "select"}])

    def test_select_with_empty_options_fails(self):
        with pytest.raises(ConfigurationError):
            normalize([{"name": "status", "type": "select", "options": {}}])

    def test_select_with_literal_options(self):
        (field,) = normalize([{"name": "status", "type": "select", "options": {1: "A"}}])
        assert field.resolve_options(None) == {1: "A"}

    def test_malformed_action_reference_fails(self):
        with pytest.raises(ConfigurationError, match="Invalid action"):
            normalize([{"name": "status", "type": "select", "options_action": "NoMethodHere"}])

    def test_unregistered_action_fails_when_registry_given(self):
        with pytest.raises(ConfigurationError, match="No option action"):
            normalize(
                [{"name": "status", "type": "select", "options_action": "Statuses@all"}],
                registry=OptionRegistry(),
            )

    def test_unregistered_entity_fails_when_registry_given(self):
        with pytest.raises(ConfigurationError, match="No option entity"):
            normalize(
                [{"name": "owner_id", "type": "select", "options_entity": "User"}],
                registry=OptionRegistry(),
            )

    def test_action_resolved_through_registry(self):
        registry = OptionRegistry()
        registry.register_action("Statuses@all", lambda: {1: "Upcoming", 2: "Wireframing"})
        (field,) = normalize(
            [{"name": "status", "type": "select", "options_action": "Statuses@all"}],
            registry=registry,
        )
        assert field.resolve_options(registry) == {1: "Upcoming", 2: "Wireframing"}

    def test_entity_resolved_to_id_name_mapping(self):
        registry = OptionRegistry()
        registry.register_entity("User", lambda: [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bo"}])
        (field,) = normalize(
            [{"name": "owner_id", "type": "select", "options_entity": "User"}],
            registry=registry,
        )
        assert field.resolve_options(registry) == {1: "Ann", 2: "Bo"}

    def test_reference_without_registry_fails_at_resolution(self):
        field = normalize_field({"name": "s", "type": "select", "options_entity": "User"})
        with pytest.raises(ConfigurationError):
            field.resolve_options(None)


class TestFieldDescriptor:
    def test_value_can_be_reassigned(self):
        field = FieldDescriptor(name="first_name")
        field.value = "Jane"
        assert field.value == "Jane"

    def test_has_option_source(self):
        assert FieldDescriptor(name="s", type="select", options_action="A@b").has_option_source
        assert not FieldDescriptor(name="s", type="select").has_option_source
