"""Tests for request routing decisions, independent of any HTTP server."""

import pytest

from landing_ab.models.schemas.assignment import (
    VARIANT_COOKIE_MAX_AGE,
    VARIANT_COOKIE_NAME,
    RoutingStrategy,
)
from landing_ab.services.router_service import MappingCookieJar, RequestRouter


class ExplodingCookieJar:
    def get_cookie(self, name):
        raise ValueError("garbled cookie header")


def jar(value=None):
    return MappingCookieJar({VARIANT_COOKIE_NAME: value} if value is not None else {})


class TestPathStrategy:
    def test_first_visit_assigns_and_sets_cookie(self, request_router):
        decision = request_router.route("/landing", host="example.com", cookies=jar())

        assert decision.strategy == RoutingStrategy.PATH
        assert decision.variant in ("A", "B", "C", "D")
        assert decision.rewritten_path == f"/landing/{decision.variant}"

        cookie = decision.cookie_to_set
        assert cookie is not None
        assert cookie.name == "ab_variant"
        assert cookie.value == decision.variant
        assert cookie.max_age == VARIANT_COOKIE_MAX_AGE == 2592000
        assert cookie.path == "/"
        assert cookie.samesite == "lax"

    def test_trailing_slash_entry_path(self, request_router):
        decision = request_router.route("/landing/", host="example.com", cookies=jar())
        assert decision.strategy == RoutingStrategy.PATH

    def test_returning_visitor_keeps_variant_without_cookie(self, request_router):
        decision = request_router.route("/landing", host="example.com", cookies=jar("C"))
        assert decision.rewritten_path == "/landing/C"
        assert decision.cookie_to_set is None

    def test_repeated_requests_are_idempotent(self, request_router):
        first = request_router.route("/landing", host="example.com", cookies=jar("B"))
        second = request_router.route("/landing", host="example.com", cookies=jar("B"))
        assert first == second

    @pytest.mark.parametrize("forged", ["E", "b", "", "A,B"])
    def test_forged_cookie_is_replaced(self, request_router, forged):
        decision = request_router.route("/landing", host="example.com", cookies=jar(forged))
        assert decision.variant in ("A", "B", "C", "D")
        assert decision.cookie_to_set is not None
        assert decision.cookie_to_set.value == decision.variant

    def test_unreadable_cookie_counts_as_no_assignment(self, request_router):
        decision = request_router.route("/landing", host="example.com", cookies=ExplodingCookieJar())
        assert decision.variant in ("A", "B", "C", "D")
        assert decision.cookie_to_set is not None

    def test_missing_cookie_jar(self, request_router):
        decision = request_router.route("/landing")
        assert decision.cookie_to_set is not None

    def test_cookie_is_set_only_when_new(self, request_router):
        for prior in [None, "A", "B", "C", "D", "Q"]:
            decision = request_router.route("/landing", cookies=jar(prior))
            expect_cookie = prior is None or prior != decision.variant
            assert (decision.cookie_to_set is not None) is expect_cookie

    def test_custom_entry_path(self, assignment_service):
        router = RequestRouter(assignment_service, entry_path="/welcome/")
        decision = router.route("/welcome", cookies=jar("D"))
        assert decision.rewritten_path == "/welcome/D"
        assert router.route("/landing", cookies=jar("D")).is_pass_through


class TestHostStrategy:
    @pytest.mark.parametrize(
        "host, variant",
        [
            ("variant-a.example.com", "A"),
            ("variant-b.example.com", "B"),
            ("c.example.com", "C"),
            ("VARIANT-D.Example.com:8443", "D"),
            ("variant-b.localhost", "B"),
            ("a.localhost:3000", "A"),
        ],
    )
    def test_alias_maps_to_variant(self, request_router, host, variant):
        decision = request_router.route("/", host=host, cookies=jar())
        assert decision.strategy == RoutingStrategy.HOST
        assert decision.rewritten_path == f"/landing/{variant}"
        assert decision.cookie_to_set is None

    def test_host_wins_over_cookie(self, request_router):
        decision = request_router.route("/landing", host="variant-b.example.com", cookies=jar("A"))
        assert decision.variant == "B"
        assert decision.cookie_to_set is None

    @pytest.mark.parametrize(
        "host",
        ["example.com", "a.com", "www.example.com", "localhost:8000", "[::1]:8000", "", None],
    )
    def test_unknown_or_bare_host_is_ignored(self, request_router, host):
        assert request_router.route("/pricing", host=host, cookies=jar()).is_pass_through

    def test_alias_for_unserved_variant_is_ignored(self, assignment_service):
        router = RequestRouter(assignment_service, subdomain_variants={"beta": "Z", "b": "B"})
        assert router.variant_for_host("beta.example.com") is None
        assert router.variant_for_host("b.example.com") == "B"

    def test_host_routing_can_be_disabled(self, assignment_service):
        router = RequestRouter(assignment_service, host_routing=False)
        assert router.route("/", host="variant-b.example.com").is_pass_through


class TestPassThrough:
    def test_unrelated_path_and_host(self, request_router):
        decision = request_router.route("/about", host="example.com", cookies=jar("A"))
        assert decision.is_pass_through
        assert decision.cookie_to_set is None
        assert decision.strategy == RoutingStrategy.PASS_THROUGH

    @pytest.mark.parametrize("path", ["/landing/A", "/landing/D", "/landing/X"])
    def test_variant_pages_are_not_rewritten_again(self, request_router, path):
        assert request_router.route(path, host="example.com", cookies=jar()).is_pass_through
        assert request_router.route(path, host="variant-b.example.com", cookies=jar()).is_pass_through

    @pytest.mark.parametrize(
        "path",
        ["/api/analytics", "/api", "/static/app.css", "/favicon.ico", "/hero.webp", "/img/logo.SVG"],
    )
    def test_api_and_assets_are_never_routed(self, request_router, path):
        assert request_router.route(path, host="variant-a.example.com", cookies=jar()).is_pass_through

    def test_path_routing_can_be_disabled(self, assignment_service):
        router = RequestRouter(assignment_service, path_routing=False)
        assert router.route("/landing", cookies=jar()).is_pass_through
