from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

VARIANT_COOKIE_NAME = "ab_variant"
VARIANT_COOKIE_MAX_AGE = 60 * 60 * 24 * 30  # 30 days


class AssignmentDecision(BaseModel):
    """Result of resolving a visitor's variant for one request."""

    model_config = ConfigDict(frozen=True)

    variant: str
    is_new: bool = Field(..., description="True when the cookie must be (re)written.")


class PersistedAssignment(BaseModel):
    """The client-held cookie that keeps a visitor in the same variant."""

    model_config = ConfigDict(frozen=True)

    name: str = VARIANT_COOKIE_NAME
    value: str
    max_age: int = VARIANT_COOKIE_MAX_AGE
    path: str = "/"
    samesite: str = "lax"

    def as_cookie_kwargs(self) -> dict:
        """Keyword arguments for starlette's Response.set_cookie."""
        return {
            "key": self.name,
            "value": self.value,
            "max_age": self.max_age,
            "path": self.path,
            "samesite": self.samesite,
        }


class RoutingStrategy(str, Enum):
    HOST = "host"
    PATH = "path"
    PASS_THROUGH = "pass_through"


class RoutingDecision(BaseModel):
    """
    What the routing middleware should do with a request.

    ``rewritten_path`` of None means the request is served unmodified.
    """

    model_config = ConfigDict(frozen=True)

    rewritten_path: Optional[str] = None
    cookie_to_set: Optional[PersistedAssignment] = None
    variant: Optional[str] = None
    strategy: RoutingStrategy = RoutingStrategy.PASS_THROUGH

    @property
    def is_pass_through(self) -> bool:
        return self.rewritten_path is None


PASS_THROUGH = RoutingDecision()
