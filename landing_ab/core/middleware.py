import logging

from starlette.requests import Request

from landing_ab.services.router_service import MappingCookieJar

logger = logging.getLogger(__name__)


async def variant_routing_middleware(request: Request, call_next):
    """
    Applies the RequestRouter decision to a live request.

    The rewrite happens on the ASGI scope, so routing sees the variant page
    while the browser keeps the URL it asked for.
    """
    router = request.app.state.request_router
    decision = router.route(
        path=request.url.path,
        host=request.headers.get("host"),
        cookies=MappingCookieJar(request.cookies),
    )

    if decision.is_pass_through:
        return await call_next(request)

    logger.debug(
        "Rewriting %s -> %s (%s)",
        request.url.path,
        decision.rewritten_path,
        decision.strategy.value,
    )
    request.scope["path"] = decision.rewritten_path
    request.scope["raw_path"] = decision.rewritten_path.encode("utf-8")
    request.state.variant = decision.variant

    response = await call_next(request)

    if decision.cookie_to_set is not None:
        response.set_cookie(**decision.cookie_to_set.as_cookie_kwargs())
        emitter = getattr(request.app.state, "event_emitter", None)
        if emitter is not None:
            emitter.track_variant_assignment(decision.variant)

    return response
