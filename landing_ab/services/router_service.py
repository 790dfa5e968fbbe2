# services/router_service.py
"""
Decides, per inbound request, which variant page serves it.

Two strategies can run side by side:

- host-based: a known subdomain alias (``variant-b.example.com``) pins the
  variant. No assignment is drawn and no cookie is touched.
- path-based: the entry path (``/landing``) reads the ``ab_variant`` cookie,
  resolves a variant through the AssignmentService and persists it.

When both are enabled the host strategy wins. Either way the result is an
internal rewrite to ``{entry_path}/{variant}``; the visible URL never
changes. Everything else is passed through untouched.
"""

import logging
from typing import Mapping, Optional, Protocol

from landing_ab.models.schemas.assignment import (
    PASS_THROUGH,
    VARIANT_COOKIE_NAME,
    PersistedAssignment,
    RoutingDecision,
    RoutingStrategy,
)
from landing_ab.services.assignment_service import AssignmentService

logger = logging.getLogger(__name__)

SUBDOMAIN_VARIANTS = {
    "variant-a": "A",
    "variant-b": "B",
    "variant-c": "C",
    "variant-d": "D",
    # Short aliases
    "a": "A",
    "b": "B",
    "c": "C",
    "d": "D",
}

EXCLUDED_PREFIXES = ("/api", "/static", "/favicon.ico")
EXCLUDED_SUFFIXES = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico")


class CookieJar(Protocol):
    def get_cookie(self, name: str) -> Optional[str]:
        ...


class MappingCookieJar:
    """Read-only cookie jar over an already parsed mapping (e.g. request.cookies)."""

    def __init__(self, cookies: Optional[Mapping[str, str]] = None):
        self.cookies = cookies or {}

    def get_cookie(self, name: str) -> Optional[str]:
        return self.cookies.get(name)


class RequestRouter:
    def __init__(
        self,
        assignment_service: AssignmentService,
        entry_path: str = "/landing",
        subdomain_variants: Optional[Mapping[str, str]] = None,
        host_routing: bool = True,
        path_routing: bool = True,
        cookie_name: str = VARIANT_COOKIE_NAME,
    ):
        self.assignment_service = assignment_service
        self.catalog = assignment_service.catalog
        self.entry_path = "/" + entry_path.strip("/")
        self.host_routing = host_routing
        self.path_routing = path_routing
        self.cookie_name = cookie_name

        # Aliases for variants the catalog does not serve are dropped up front.
        aliases = SUBDOMAIN_VARIANTS if subdomain_variants is None else subdomain_variants
        self.subdomain_variants = {
            alias.lower(): variant
            for alias, variant in aliases.items()
            if self.catalog.is_valid(variant)
        }

    def variant_path(self, variant: str) -> str:
        return f"{self.entry_path}/{variant}"

    def _is_excluded(self, path: str) -> bool:
        if path.lower().endswith(EXCLUDED_SUFFIXES):
            return True
        return any(path == prefix or path.startswith(prefix + "/") for prefix in EXCLUDED_PREFIXES)

    def _is_variant_page(self, path: str) -> bool:
        # Any child of the entry path is left to the page route, which 404s
        # unknown variants. Rewriting it again would loop.
        prefix = self.entry_path + "/"
        return path.startswith(prefix) and len(path) > len(prefix)

    def _is_entry_path(self, path: str) -> bool:
        return path in (self.entry_path, self.entry_path + "/")

    def variant_for_host(self, host: Optional[str]) -> Optional[str]:
        """Maps the leftmost label of a host header to a variant, if it is an alias."""
        if not host or host.startswith("["):
            return None

        hostname = host.split(":", 1)[0].strip().rstrip(".").lower()
        labels = hostname.split(".")

        # variant-a.localhost in development, variant-a.example.com in production
        if labels[-1] == "localhost":
            has_subdomain = len(labels) >= 2
        else:
            has_subdomain = len(labels) >= 3
        if not has_subdomain:
            return None

        return self.subdomain_variants.get(labels[0])

    def _read_prior(self, cookies: Optional[CookieJar]) -> Optional[str]:
        if cookies is None:
            return None
        try:
            value = cookies.get_cookie(self.cookie_name)
        except Exception as e:
            # An unreadable cookie is the same as no assignment.
            logger.debug("Could not read %s cookie: %s", self.cookie_name, e)
            return None
        if value is not None and not isinstance(value, str):
            return None
        return value

    def route(
        self,
        path: str,
        host: Optional[str] = None,
        cookies: Optional[CookieJar] = None,
    ) -> RoutingDecision:
        """
        Produces the internal rewrite (and cookie, if any) for one request.

        Never raises for bad client input; the worst case is a pass-through.
        """
        path = path or "/"

        if self._is_excluded(path) or self._is_variant_page(path):
            return PASS_THROUGH

        if self.host_routing:
            variant = self.variant_for_host(host)
            if variant is not None:
                return RoutingDecision(
                    rewritten_path=self.variant_path(variant),
                    variant=variant,
                    strategy=RoutingStrategy.HOST,
                )

        if self.path_routing and self._is_entry_path(path):
            prior = self._read_prior(cookies)
            decision = self.assignment_service.decide(prior)
            cookie = PersistedAssignment(name=self.cookie_name, value=decision.variant) if decision.is_new else None
            return RoutingDecision(
                rewritten_path=self.variant_path(decision.variant),
                cookie_to_set=cookie,
                variant=decision.variant,
                strategy=RoutingStrategy.PATH,
            )

        return PASS_THROUGH
