"""Tests for the Litestar and SQLAlchemy adapters."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from litestar.datastructures import FormMultiDict

from formation.elements import CSRF_FIELD_NAME, FormBuilder
from formation.integrations.litestar import (
    CSRF_SESSION_KEY,
    OLD_INPUT_SESSION_KEY,
    RequestUrlResolver,
    RoleSetUser,
    SessionCsrfToken,
    expand_form_data,
    flash_old_input,
    form_builder_for,
    pop_old_input,
    session_user,
)
from formation.integrations.sqlalchemy import fetch_options, register_model_options
from formation.options import OptionRegistry
from formation.values import ValueResolver


# ---------------------------------------------------------------------------
# Litestar
# ---------------------------------------------------------------------------


class TestOldInput:
    def test_flash_strips_csrf_token(self, mock_request_factory):
        request = mock_request_factory()
        flash_old_input(request, {"name": "Jane", CSRF_FIELD_NAME: "tok"})
        assert request.session[OLD_INPUT_SESSION_KEY] == {"name": "Jane"}

    def test_pop_old_input_consumes_session(self, mock_request_factory):
        request = mock_request_factory(session={OLD_INPUT_SESSION_KEY: {"name": "Jane"}})
        old = pop_old_input(request)
        assert old.get("name") == "Jane"
        assert OLD_INPUT_SESSION_KEY not in request.session
        assert pop_old_input(request).is_empty()

    def test_bracket_names_resolve_after_round_trip(self, mock_request_factory):
        request = mock_request_factory()
        flash_old_input(request, {"address[city]": "Oslo", "tags[]": "a", "name": "Jane"})
        resolver = ValueResolver(pop_old_input(request))
        assert resolver.value("address[city]") == "Oslo"
        assert resolver.value("tags[]") == ["a"]
        assert resolver.value("name") == "Jane"

    def test_repeated_values_from_multidict_are_kept(self, mock_request_factory):
        request = mock_request_factory()
        form = FormMultiDict([("tags[]", "a"), ("tags[]", "c"), (CSRF_FIELD_NAME, "tok")])
        flash_old_input(request, form)
        assert request.session[OLD_INPUT_SESSION_KEY] == {"tags": ["a", "c"]}

    def test_array_checkboxes_stay_checked(self, mock_request_factory):
        request = mock_request_factory()
        flash_old_input(request, FormMultiDict([("tags[]", "a"), ("tags[]", "c")]))
        builder = FormBuilder(old_input=pop_old_input(request))
        assert "checked" in builder.checkbox("tags[]", "a")
        assert "checked" not in builder.checkbox("tags[]", "b")
        assert "checked" in builder.checkbox("tags[]", "c")


class TestExpandFormData:
    def test_nested_keys(self):
        assert expand_form_data({"user[address][zip]": "0150"}) == {"user": {"address": {"zip": "0150"}}}

    def test_list_value_for_array_name(self):
        assert expand_form_data({"ids[]": ["1", "2"]}) == {"ids": ["1", "2"]}

    def test_plain_names_untouched(self):
        assert expand_form_data({"title": "Hi", "_token": "x"}) == {"title": "Hi"}


class TestSessionCsrfToken:
    def test_creates_token_once(self, mock_request_factory):
        request = mock_request_factory()
        provider = SessionCsrfToken(request)
        token = provider.token()
        assert token
        assert request.session[CSRF_SESSION_KEY] == token
        assert provider.token() == token

    def test_uses_existing_token(self, mock_request_factory):
        request = mock_request_factory(session={CSRF_SESSION_KEY: "existing"})
        assert SessionCsrfToken(request).token() == "existing"


class TestRequestUrlResolver:
    def test_to_joins_base_path_and_params(self, mock_request_factory):
        urls = RequestUrlResolver(mock_request_factory())
        assert urls.to("projects", [3, "edit"]) == "http://testserver/projects/3/edit"

    def test_to_keeps_absolute_urls(self, mock_request_factory):
        urls = RequestUrlResolver(mock_request_factory())
        assert urls.to("https://other.test/x") == "https://other.test/x"

    def test_secure_switches_scheme(self, mock_request_factory):
        urls = RequestUrlResolver(mock_request_factory())
        assert urls.asset("css/app.css", secure=True) == "https://testserver/css/app.css"

    def test_route_uses_route_reverse(self, mock_request_factory):
        request = mock_request_factory()
        request.app.route_reverse.return_value = "/projects/3"
        urls = RequestUrlResolver(request)
        assert urls.route("projects.show", {"project_id": 3}) == "/projects/3"
        request.app.route_reverse.assert_called_once_with("projects.show", project_id=3)

    def test_current_and_previous(self, mock_request_factory):
        request = mock_request_factory(headers={"referer": "http://testserver/list"})
        urls = RequestUrlResolver(request)
        assert urls.current() == "http://testserver/items/1"
        assert urls.previous() == "http://testserver/list"

    def test_previous_without_referer(self, mock_request_factory):
        assert RequestUrlResolver(mock_request_factory()).previous() == "http://testserver/"


class TestRoles:
    def test_role_set_user(self):
        user = RoleSetUser({"editor"})
        assert user.has_any_role(["admin", "editor"])
        assert not user.has_any_role(["admin"])

    def test_session_user(self, mock_request_factory):
        request = mock_request_factory(session={"user_roles": ["admin"]})
        assert session_user(request).has_any_role({"admin"})
        assert not session_user(mock_request_factory()).has_any_role({"admin"})


class TestFormBuilderFor:
    def test_wires_session_and_urls(self, mock_request_factory):
        request = mock_request_factory(session={
            OLD_INPUT_SESSION_KEY: {"title": "Old"},
            CSRF_SESSION_KEY: "tok",
        })
        builder = form_builder_for(request)
        assert 'value="Old"' in builder.text("title", "New")
        html = builder.open({"url": "pages"})
        assert 'action="http://testserver/pages"' in html
        assert '<input name="_token" type="hidden" value="tok">' in html


# ---------------------------------------------------------------------------
# SQLAlchemy
# ---------------------------------------------------------------------------


class Project:
    """Minimal mapped-class stand-in exposing sortable columns."""

    id = MagicMock()
    name = MagicMock()


def _session_returning(records):
    result = MagicMock()
    result.scalars.return_value.all.return_value = records
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    return session


@pytest.fixture
def patched_select(monkeypatch):
    query = MagicMock()
    query.order_by.return_value = query
    select = MagicMock(return_value=query)
    monkeypatch.setattr("formation.integrations.sqlalchemy.select", select)
    return select


class TestSqlalchemyOptions:
    @pytest.mark.asyncio
    async def test_fetch_options(self, patched_select):
        session = _session_returning([SimpleNamespace(id=1, name="Apollo"), SimpleNamespace(id=2, name="Gemini")])
        options = await fetch_options(session, Project)
        assert options == {1: "Apollo", 2: "Gemini"}
        patched_select.assert_called_once_with(Project)
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_register_model_options(self, patched_select):
        session = _session_returning([SimpleNamespace(id=7, name="Mercury")])
        registry = OptionRegistry()
        records = await register_model_options(registry, "Project", session, Project)
        assert len(records) == 1
        assert registry.entity_options("Project") == {7: "Mercury"}
