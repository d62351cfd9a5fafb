"""Project options offered by the ShipKit builder.

Options are dicts of ``key -> label`` (the shape ``select_with_arrows``
takes). Options that depend on an earlier answer are lookup tables keyed by
that answer.
"""

from dataclasses import dataclass, fields
from typing import Dict, FrozenSet

from .errors import SelectionError
from .installer import INSTALL_COMMANDS


BASE_FRAMEWORK_CHOICES = {
    "astro": "Astro",
    "next": "Next.js",
}

FRAMEWORK_CHOICES = {
    "react": "React",
    "svelte": "Svelte",
    "vue": "Vue",
    "solid": "Solid",
}

FRAMEWORKS_BY_BASE: Dict[str, tuple] = {
    "astro": ("react", "svelte", "vue", "solid"),
    "next": ("react",),
}

ORM_CHOICES = {
    "drizzle": "Drizzle",
    "prisma": "Prisma",
}

DATABASE_CHOICES = {
    "mysql": "MySQL",
    "neon": "Neon (PostgreSQL)",
    "postgresql": "PostgreSQL",
    "sqlite": "SQLite",
    "turso": "Turso (libSQL)",
}

DATABASES_BY_ORM: Dict[str, tuple] = {
    "drizzle": ("mysql", "neon", "postgresql", "sqlite", "turso"),
    "prisma": ("mysql", "postgresql", "sqlite"),
}

AUTH_CHOICES = {
    "lucia": "Lucia",
    "supabase": "Supabase",
    "clerk": "Clerk",
    "authjs": "Auth.js",
}

# Providers listed but not selectable for a framework
UNAVAILABLE_AUTH_BY_FRAMEWORK: Dict[str, FrozenSet[str]] = {
    "react": frozenset(),
    "svelte": frozenset({"clerk"}),
    "vue": frozenset({"clerk"}),
    "solid": frozenset({"clerk", "authjs"}),
}

OUTPUT_CHOICES = {
    "vercel": "Vercel",
    "netlify": "Netlify",
    "cloudflare": "Cloudflare Pages",
    "node": "Node.js server",
}

PACKAGE_MANAGER_CHOICES = {manager: manager for manager in INSTALL_COMMANDS}


def framework_options(base_framework: str) -> Dict[str, str]:
    return {key: FRAMEWORK_CHOICES[key] for key in FRAMEWORKS_BY_BASE[base_framework]}


def database_options(orm: str) -> Dict[str, str]:
    return {key: DATABASE_CHOICES[key] for key in DATABASES_BY_ORM[orm]}


def unavailable_auth(framework: str) -> FrozenSet[str]:
    return UNAVAILABLE_AUTH_BY_FRAMEWORK.get(framework, frozenset())


def default_auth(framework: str) -> str:
    """First auth provider that is available for ``framework``."""
    disabled = unavailable_auth(framework)
    return next(key for key in AUTH_CHOICES if key not in disabled)


@dataclass(frozen=True)
class Selection:
    """Complete project configuration sent to the build API."""

    base_framework: str
    framework: str
    orm: str
    database: str
    auth: str
    output: str
    manager: str

    def validate(self) -> "Selection":
        """Check every value, including the ones that depend on earlier answers.

        Raises:
            SelectionError: A value is unknown or not offered for its upstream choice
        """
        check_choice("base framework", self.base_framework, BASE_FRAMEWORK_CHOICES)
        check_choice("framework", self.framework, framework_options(self.base_framework))
        check_choice("ORM", self.orm, ORM_CHOICES)
        check_choice("database", self.database, database_options(self.orm))
        check_choice("auth provider", self.auth, AUTH_CHOICES)
        if self.auth in unavailable_auth(self.framework):
            raise SelectionError(
                f"Auth provider '{self.auth}' is not available for {FRAMEWORK_CHOICES[self.framework]}"
            )
        check_choice("output", self.output, OUTPUT_CHOICES)
        check_choice("package manager", self.manager, PACKAGE_MANAGER_CHOICES)
        return self

    def to_payload(self) -> Dict[str, str]:
        """JSON body for the build endpoint."""
        return {
            "baseFramework": self.base_framework,
            "framework": self.framework,
            "orm": self.orm,
            "database": self.database,
            "auth": self.auth,
            "output": self.output,
            "manager": self.manager,
        }

    def summary(self) -> Dict[str, str]:
        return {f.name.replace("_", " "): getattr(self, f.name) for f in fields(self)}


def check_choice(label: str, value: str, options: Dict[str, str]) -> str:
    if value not in options:
        raise SelectionError(
            f"Invalid {label} '{value}'. Choose from: {', '.join(options)}"
        )
    return value
