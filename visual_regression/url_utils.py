"""Shared URL utilities: build capture URLs and derive stable artifact names."""

from __future__ import annotations

import re


def route_url(origin: str, route: str) -> str:
    """Join an origin and a route path."""
    return origin.rstrip("/") + "/" + route.lstrip("/")


def safe_name(name: str) -> str:
    """Replace anything outside [A-Za-z0-9_.-] so the name stays one path segment."""
    return re.sub(r"[^A-Za-z0-9_.-]", "-", name)


def route_stem(route: str) -> str:
    """Filesystem-safe name for a route: "/" -> "home", "/contact" -> "homecontact"."""
    stem = route.replace("/", "_")
    stem = re.sub(r"^_", "home", stem)
    return safe_name(stem)


def artifact_stem(route: str, viewport: str, browser: str) -> str:
    """Deterministic per-combination file stem so repeated runs overwrite."""
    return f"{route_stem(route)}_{safe_name(viewport)}_{browser}"
