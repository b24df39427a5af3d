# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for s3recon.

These helpers centralize wording for common configuration and upload errors
so that all modules present consistent, actionable messages.
"""


def explain_invalid_int_env(name: str, value: str | None) -> str:
    """
    Explain that an integer environment variable could not be parsed.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "It must be a positive integer."
    )


def explain_invalid_bool_env(name: str, value: str | None) -> str:
    """
    Explain that a boolean environment variable could not be parsed.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "Expected one of: 'true', 'false', '1', '0', 'yes', 'no', 'on', 'off'."
    )


def explain_invalid_source_system(value: str | None, allowed: tuple) -> str:
    """
    Explain that RECON_SOURCE_SYSTEM names an unknown origin tag.
    """

    return (
        f"Invalid RECON_SOURCE_SYSTEM value: {value!r}. "
        f"Expected one of: {', '.join(repr(v) for v in allowed)}."
    )


def explain_no_file_provided() -> str:
    """
    Explain that the multipart request carried no 'file' part.
    """

    return "No file provided"


def explain_file_too_large(limit_bytes: int) -> str:
    """
    Explain that an upload exceeded the configured size limit.
    """

    limit_mb = limit_bytes / (1024 * 1024)
    if limit_mb.is_integer():
        return f"File too large. Maximum size is {int(limit_mb)}MB."
    return f"File too large. Maximum size is {limit_bytes} bytes."
