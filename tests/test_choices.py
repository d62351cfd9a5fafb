"""Unit tests for the option tables and Selection (shipkit_cli.choices).

Tests cover:
- Dependent tables checked for every upstream value
- Auth availability per framework
- Selection.validate / to_payload
"""

from __future__ import annotations

import pytest

from shipkit_cli.choices import (
    AUTH_CHOICES,
    BASE_FRAMEWORK_CHOICES,
    DATABASE_CHOICES,
    DATABASES_BY_ORM,
    FRAMEWORK_CHOICES,
    FRAMEWORKS_BY_BASE,
    ORM_CHOICES,
    PACKAGE_MANAGER_CHOICES,
    UNAVAILABLE_AUTH_BY_FRAMEWORK,
    Selection,
    database_options,
    default_auth,
    framework_options,
    unavailable_auth,
)
from shipkit_cli.errors import Outcome, SelectionError


def _selection(**overrides) -> Selection:
    values = dict(
        base_framework="astro",
        framework="svelte",
        orm="drizzle",
        database="turso",
        auth="supabase",
        output="vercel",
        manager="pnpm",
    )
    values.update(overrides)
    return Selection(**values)


# ---------------------------------------------------------------------------
# Dependent tables
# ---------------------------------------------------------------------------


class TestDependentTables:
    def test_every_base_framework_has_frameworks(self):
        assert set(FRAMEWORKS_BY_BASE) == set(BASE_FRAMEWORK_CHOICES)
        for base, frameworks in FRAMEWORKS_BY_BASE.items():
            assert frameworks, base
            assert set(frameworks) <= set(FRAMEWORK_CHOICES)

    def test_every_orm_has_databases(self):
        assert set(DATABASES_BY_ORM) == set(ORM_CHOICES)
        for orm, databases in DATABASES_BY_ORM.items():
            assert databases, orm
            assert set(databases) <= set(DATABASE_CHOICES)

    def test_prisma_databases(self):
        assert set(database_options("prisma")) == {"mysql", "postgresql", "sqlite"}

    def test_drizzle_databases(self):
        assert set(database_options("drizzle")) == {"mysql", "neon", "postgresql", "sqlite", "turso"}

    def test_next_only_offers_react(self):
        assert list(framework_options("next")) == ["react"]

    def test_astro_offers_several_frameworks(self):
        assert list(framework_options("astro")) == ["react", "svelte", "vue", "solid"]

    def test_auth_table_covers_every_framework(self):
        assert set(UNAVAILABLE_AUTH_BY_FRAMEWORK) == set(FRAMEWORK_CHOICES)
        for framework, disabled in UNAVAILABLE_AUTH_BY_FRAMEWORK.items():
            assert disabled <= set(AUTH_CHOICES)
            # At least one provider stays selectable
            assert set(AUTH_CHOICES) - disabled, framework

    @pytest.mark.parametrize("framework", list(FRAMEWORK_CHOICES))
    def test_default_auth_is_available(self, framework):
        assert default_auth(framework) not in unavailable_auth(framework)

    def test_unavailable_auth(self):
        assert unavailable_auth("react") == frozenset()
        assert unavailable_auth("svelte") == {"clerk"}
        assert unavailable_auth("solid") == {"clerk", "authjs"}

    def test_package_managers(self):
        assert set(PACKAGE_MANAGER_CHOICES) == {"bun", "npm", "pnpm", "yarn"}


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class TestSelection:
    def test_valid_selection_returns_itself(self):
        selection = _selection()
        assert selection.validate() is selection

    def test_payload_has_exactly_seven_fields(self):
        payload = _selection().to_payload()
        assert payload == {
            "baseFramework": "astro",
            "framework": "svelte",
            "orm": "drizzle",
            "database": "turso",
            "auth": "supabase",
            "output": "vercel",
            "manager": "pnpm",
        }

    def test_is_immutable(self):
        selection = _selection()
        with pytest.raises(AttributeError):
            selection.orm = "prisma"

    @pytest.mark.parametrize("orm", list(DATABASES_BY_ORM))
    def test_every_offered_database_validates(self, orm):
        for database in DATABASES_BY_ORM[orm]:
            _selection(orm=orm, database=database).validate()

    def test_database_not_offered_for_orm(self):
        with pytest.raises(SelectionError) as exc_info:
            _selection(orm="prisma", database="turso").validate()
        assert "turso" in str(exc_info.value)
        assert exc_info.value.outcome is Outcome.INVALID_SELECTION

    def test_framework_not_offered_for_base(self):
        with pytest.raises(SelectionError):
            _selection(base_framework="next", framework="svelte").validate()

    def test_unavailable_auth_rejected(self):
        with pytest.raises(SelectionError, match="not available"):
            _selection(framework="svelte", auth="clerk").validate()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("base_framework", "remix"),
            ("orm", "sequelize"),
            ("auth", "okta"),
            ("output", "heroku"),
            ("manager", "pip"),
        ],
    )
    def test_unknown_values_rejected(self, field, value):
        with pytest.raises(SelectionError, match="Invalid"):
            _selection(**{field: value}).validate()

    def test_summary(self):
        summary = _selection().summary()
        assert summary["base framework"] == "astro"
        assert summary["manager"] == "pnpm"
