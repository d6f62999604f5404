"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- A description of the subscribe endpoint's rate limit, including the
  throttling headers returned with 429 responses

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.config import settings


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata.

    - Adds tags metadata if not present
    - Documents the per-IP rate limit and the 429 response headers on every
      operation that is throttled (``POST .../subscribe``)
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        # Tags metadata
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Waitlist",
                "description": "Join the waitlist and read its size.",
            },
            {
                "name": "Health",
                "description": "Liveness and storage connectivity.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        window_minutes = settings.app.rate_limit_window_seconds / 60
        limit_note = (
            f"Rate limited to {settings.app.rate_limit_requests} requests per "
            f"{window_minutes:g} minutes per client IP."
        )
        throttle_headers = {
            name: {"schema": {"type": "integer"}, "description": description}
            for name, description in (
                ("Retry-After", "Seconds until the window resets."),
                ("X-RateLimit-Limit", "Requests allowed per window."),
                ("X-RateLimit-Remaining", "Requests left in the current window."),
                ("X-RateLimit-Reset", "UNIX time when the window resets."),
            )
        }

        for path, methods in schema.get("paths", {}).items():
            if not path.endswith("/subscribe"):
                continue
            operation = methods.get("post")
            if not isinstance(operation, dict):
                continue
            description = operation.get("description", "")
            operation["description"] = f"{description}\n\n{limit_note}".strip()
            too_many = operation.setdefault("responses", {}).setdefault(
                "429", {"description": "Too many requests"}
            )
            if settings.app.rate_limit_include_headers:
                too_many["headers"] = throttle_headers

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
