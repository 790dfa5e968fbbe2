from typing import Dict, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator


class VariantCatalog(BaseModel):
    """
    The closed set of landing page variants and their traffic weights.

    Declaration order of ``variants`` is the order the assignment engine walks
    when accumulating weights, so it must be stable across deploys.
    """

    model_config = ConfigDict(frozen=True)

    variants: Tuple[str, ...] = Field(..., description="Variant identifiers in walk order.")
    weights: Dict[str, int] = Field(
        ..., description="Non-negative integer weight per variant."
    )

    @model_validator(mode="after")
    def check_weight_table(self):
        if not self.variants:
            raise ValueError("Variant catalog must define at least one variant.")
        if len(set(self.variants)) != len(self.variants):
            raise ValueError(f"Variant identifiers must be unique. Got: {self.variants}")

        missing = [v for v in self.variants if v not in self.weights]
        if missing:
            raise ValueError(f"Variants without a weight: {missing}")

        unknown = [v for v in self.weights if v not in self.variants]
        if unknown:
            raise ValueError(f"Weights given for unknown variants: {unknown}")

        negative = {v: w for v, w in self.weights.items() if w < 0}
        if negative:
            raise ValueError(f"Variant weights must be non-negative. Got: {negative}")

        if sum(self.weights.values()) <= 0:
            raise ValueError("Total variant weight must be positive.")
        return self

    @property
    def total_weight(self) -> int:
        return sum(self.weights[v] for v in self.variants)

    def is_valid(self, candidate) -> bool:
        """Exact, case-sensitive membership test."""
        return isinstance(candidate, str) and candidate in self.variants

    @classmethod
    def from_weight_string(cls, value: str) -> "VariantCatalog":
        """
        Builds a catalog from a deploy-time string such as "A:25,B:25,C:25,D:25".

        Raises ValueError on anything malformed; callers are expected to let
        that abort startup.
        """
        variants = []
        weights = {}
        for entry in (value or "").split(","):
            entry = entry.strip()
            if not entry:
                continue
            name, sep, raw_weight = entry.partition(":")
            name = name.strip()
            if not sep or not name:
                raise ValueError(f"Malformed variant weight entry: '{entry}'")
            try:
                weight = int(raw_weight.strip())
            except ValueError:
                raise ValueError(f"Weight for variant '{name}' is not an integer: '{raw_weight}'")
            if name in weights:
                raise ValueError(f"Variant '{name}' is declared twice.")
            variants.append(name)
            weights[name] = weight

        return cls(variants=tuple(variants), weights=weights)


DEFAULT_CATALOG = VariantCatalog(
    variants=("A", "B", "C", "D"),
    weights={"A": 25, "B": 25, "C": 25, "D": 25},
)
