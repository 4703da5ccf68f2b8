from __future__ import annotations

from sqlalchemy.engine import make_url

_PSYCOPG_SCHEME = "postgresql+psycopg://"
_LEGACY_SCHEMES = ("postgresql+psycopg2://", "postgresql://", "postgres://")


def normalize_database_url(url: str) -> str:
    """Point SQLAlchemy at the psycopg 3 driver whatever postgres scheme the URL carries."""
    if url.startswith(_PSYCOPG_SCHEME):
        return url
    for scheme in _LEGACY_SCHEMES:
        if url.startswith(scheme):
            return url.replace(scheme, _PSYCOPG_SCHEME, 1)
    return url


def redact_database_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)
