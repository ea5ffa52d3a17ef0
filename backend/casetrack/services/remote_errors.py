"""
Translate database driver errors into the application's error categories.

Only the row-level-security / privilege rejection gets special treatment;
everything else the database raises is a plain remote failure.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from casetrack.utils.exceptions import ErrorCategory

# SQLSTATE insufficient_privilege (raised for RLS policy violations too)
INSUFFICIENT_PRIVILEGE = "42501"


def error_code(exc: BaseException) -> Optional[str]:
    """
    Best-effort SQLSTATE lookup.

    psycopg2 exposes ``pgcode``, psycopg 3 ``sqlstate``; SQLAlchemy wraps both
    in ``exc.orig``. Objects that already look like a driver error (or a
    PostgREST-style error carrying ``code``) are inspected directly.
    """
    candidates = [getattr(exc, "orig", None), exc]
    for candidate in candidates:
        if candidate is None:
            continue
        attrs = ("pgcode", "sqlstate")
        # SQLAlchemyError.code is a documentation link id, not a SQLSTATE
        if not isinstance(candidate, SQLAlchemyError):
            attrs += ("code",)
        for attr in attrs:
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def classify_remote_error(exc: BaseException) -> ErrorCategory:
    if error_code(exc) == INSUFFICIENT_PRIVILEGE:
        return ErrorCategory.authorization_denied
    return ErrorCategory.remote_failure


def is_permission_error(exc: BaseException) -> bool:
    return classify_remote_error(exc) is ErrorCategory.authorization_denied
