# services/assignment_service.py

import logging
import random
from typing import Optional

from landing_ab.models.schemas.assignment import AssignmentDecision
from landing_ab.models.schemas.catalog import VariantCatalog

logger = logging.getLogger(__name__)


class AssignmentService:
    """
    Resolves which landing page variant a visitor sees.

    Holds no per-visitor state: everything it needs arrives as arguments, so
    one instance is shared by all concurrent requests.
    """

    def __init__(self, catalog: VariantCatalog, rng: Optional[random.Random] = None):
        self.catalog = catalog
        # random.Random is safe to share; the module-level functions use one too.
        self.rng = rng or random.Random()

    def _allocate_variant(self) -> str:
        """
        Selects a variant based on configured traffic weights.
        """
        total_weight = self.catalog.total_weight
        r = self.rng.random() * total_weight

        cumulative_weight = 0
        for variant in self.catalog.variants:
            weight = self.catalog.weights[variant]
            cumulative_weight += weight
            if weight > 0 and cumulative_weight >= r:
                return variant

        # Fallback (should not be reached)
        logger.warning(
            "Weighted draw r=%s fell outside total weight %s; using %s",
            r,
            total_weight,
            self.catalog.variants[0],
        )
        return self.catalog.variants[0]

    def resolve(self, prior_value: Optional[str] = None) -> str:
        """
        Keeps a visitor in their existing variant, or draws a new one.

        A prior value that is not in the catalog (stale, forged or garbled)
        is ignored as if the visitor had never been assigned.
        """
        if prior_value is not None and self.catalog.is_valid(prior_value):
            return prior_value

        if prior_value is not None:
            logger.debug("Discarding unknown prior variant %r", prior_value)

        return self._allocate_variant()

    def decide(self, prior_value: Optional[str] = None) -> AssignmentDecision:
        """Resolves the variant and flags whether the cookie must be written."""
        variant = self.resolve(prior_value)
        return AssignmentDecision(
            variant=variant,
            is_new=not prior_value or prior_value != variant,
        )
