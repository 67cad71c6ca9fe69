from typing import Any

from fastapi import FastAPI
from fastapi import routing as fastapi_routing
from fastapi.dependencies.models import Dependant
from fastapi.routing import APIRoute

from loggers import get_logger
from src.user.auth.dependencies import AccessTokenGuard

logger = get_logger(__name__)

DOCS_PATHS = frozenset({"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"})
DOCS_ROUTE_NAMES = frozenset({"swagger_ui_html", "swagger_ui_redirect", "redoc_html"})


def iter_api_routes(application: FastAPI) -> list[Any]:
    """
    API routes with their effective path, methods, tags and dependant.

    Recent FastAPI releases keep included routers nested in `application.routes`
    and expose the flattened view through `iter_route_contexts`. Older releases
    copy every route onto the application router.
    """
    iter_route_contexts = getattr(fastapi_routing, "iter_route_contexts", None)
    if iter_route_contexts is None:
        return [r for r in application.routes if isinstance(r, APIRoute)]
    return [
        context
        for context in iter_route_contexts(application.routes)
        if isinstance(context.original_route, APIRoute)
    ]


def _is_docs_route(route: Any) -> bool:
    if getattr(route, "path", None) in DOCS_PATHS:
        return True
    name = getattr(route, "name", "") or ""
    return name.startswith("openapi") or name in DOCS_ROUTE_NAMES


def _is_guarded(dependant: Dependant) -> bool:
    """Whether an access token guard sits anywhere in the dependency tree."""
    for dependency in dependant.dependencies:
        if isinstance(dependency.call, AccessTokenGuard) or _is_guarded(dependency):
            return True
    return False


def log_routes_summary(application: FastAPI, include_debug_list: bool = False) -> None:
    routes = iter_api_routes(application)
    custom_routes = [r for r in routes if not _is_docs_route(r)]

    by_method: dict[str, int] = {}
    by_tag: dict[str, int] = {}
    guarded = 0

    for r in custom_routes:
        for m in r.methods or set():
            by_method[m] = by_method.get(m, 0) + 1
        for t in r.tags or ["<untagged>"]:
            by_tag[str(t)] = by_tag.get(str(t), 0) + 1
        if _is_guarded(r.dependant):
            guarded += 1

    logger.info(
        "API endpoints summary: total=%s guarded=%s public=%s methods=%s tags=%s",
        len(custom_routes),
        guarded,
        len(custom_routes) - guarded,
        by_method,
        by_tag,
    )

    if include_debug_list:
        for r in sorted(
            custom_routes, key=lambda x: (min(x.methods) if x.methods else "", x.path)
        ):
            methods = ",".join(sorted(r.methods)) if r.methods else ""
            access = "token" if _is_guarded(r.dependant) else "public"
            logger.debug("Route: %s %s [%s] -> %s", methods, r.path, access, r.name)
