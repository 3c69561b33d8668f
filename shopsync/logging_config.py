"""Logfire setup and helpers for keeping Admin API credentials out of logs."""

import logging
from typing import Any

import logfire
from fastapi import FastAPI

from shopsync import __version__
from shopsync.config import get_settings

# Header and field names whose values are credentials
SENSITIVE_KEYS = frozenset(
    {
        "x-shopify-access-token",
        "access_token",
        "accesstoken",
        "authorization",
        "token",
        "api_key",
        "secret",
        "password",
    }
)


def setup_logfire(app: FastAPI) -> None:
    """
    Configure Logfire for the API process.

    Traces incoming requests, outgoing storefront and Admin API calls and
    pydantic validation. Stdlib loggers (used by the routers) get a readable
    format locally and bare messages elsewhere, where Logfire adds structure.
    """
    settings = get_settings()

    options: dict[str, Any] = {
        "service_name": "shopsync",
        "service_version": __version__,
        "environment": settings.env,
    }
    if settings.logfire_token:
        options["token"] = settings.logfire_token
    logfire.configure(**options)

    logfire.instrument_fastapi(app)
    logfire.instrument_httpx()
    logfire.instrument_pydantic()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.env == "local":
        fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    else:
        fmt = "%(message)s"
    logging.basicConfig(level=level, format=fmt)


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Mask a credential, keeping its ``shpat_``-style prefix and last characters.

    >>> mask_secret("shpat_0123456789abcdef")
    'shpat_************cdef'
    """
    if not value:
        return ""

    prefix, sep, rest = value.partition("_")
    if not sep or not rest:
        prefix, sep, rest = "", "", value

    if len(rest) <= visible:
        return prefix + sep + "*" * len(rest)
    return prefix + sep + "*" * (len(rest) - visible) + rest[-visible:]


def redact_tokens(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with credential values masked.

    Keys match case-insensitively; nested dicts are walked.
    """
    redacted: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            redacted[key] = redact_tokens(value)
        elif key.lower() in SENSITIVE_KEYS and isinstance(value, str):
            redacted[key] = mask_secret(value)
        else:
            redacted[key] = value
    return redacted
