from __future__ import annotations

import os

# Texas; no feature data is needed to show the initial map.
DEFAULT_CENTER: tuple[float, float] = (-99.3832, 31.2504)
DEFAULT_ZOOM = 6.0

# Camera transition used when fitting a reconciliation's features.
FIT_PADDING_PX = 50
FIT_DURATION_MS = 1000


def tomtom_api_key() -> str | None:
    v = os.getenv("TOMTOM_API_KEY") or os.getenv("NEXT_PUBLIC_TOMTOM_API_KEY")
    return (v or "").strip() or None


def style_base_url() -> str:
    return (os.getenv("CIRCLE30_STYLE_BASE_URL") or "https://api.tomtom.com").rstrip("/")


def style_version_pattern() -> str:
    # Newest version matching this glob is picked from the provider's version list.
    return (os.getenv("CIRCLE30_STYLE_VERSION") or "0.*").strip()


def style_map_name() -> str:
    return (os.getenv("CIRCLE30_STYLE_MAP") or "basic_street-light").strip()


def backend_url() -> str:
    return (os.getenv("BACKEND_URL") or "http://localhost:5002").rstrip("/")


def http_timeout_s() -> float:
    try:
        return float(os.getenv("CIRCLE30_HTTP_TIMEOUT_S") or 30.0)
    except ValueError:
        return 30.0


def cors_origins() -> list[str]:
    raw = os.getenv("CIRCLE30_CORS_ORIGINS") or "http://localhost:3000"
    return [o.strip() for o in raw.split(",") if o.strip()]
