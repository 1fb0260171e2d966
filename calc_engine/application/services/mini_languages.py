"""String-literal mini-languages used by WEIGHTED_INDEX and BOOLEAN_SIGNAL."""

import re
from dataclasses import dataclass

from calc_engine.domain.enums import Comparison
from calc_engine.domain.errors import FormulaParseError

_WEIGHT_PAIR_RE = re.compile(r"\s*([A-Za-z0-9_\-]+)\s*:\s*(-?\d+(?:\.\d+)?)\s*")
_CONDITION_RE = re.compile(r"\s*([A-Za-z0-9_\-]+)\s*(>=|<=|==|>|<)\s*(-?\d+(?:\.\d+)?)\s*")


@dataclass(frozen=True)
class WeightedTerm:
    slug: str
    weight: float


@dataclass(frozen=True)
class Condition:
    slug: str
    comparison: Comparison
    threshold: float


def parse_weights(text: str, position: int = 0) -> list[WeightedTerm]:
    """Parse ``"slug1:w1,slug2:w2"`` into weighted terms.

    ``position`` is the formula offset of the literal, so errors point into
    the original formula text.
    """
    terms: list[WeightedTerm] = []
    seen: set[str] = set()
    offset = 0
    for piece in text.split(","):
        match = _WEIGHT_PAIR_RE.fullmatch(piece)
        if not match:
            raise FormulaParseError(f"Malformed weight pair {piece.strip()!r}, expected 'slug:weight'", position + offset)
        slug = match.group(1)
        if slug in seen:
            raise FormulaParseError(f"Duplicate indicator {slug!r} in weights", position + offset)
        seen.add(slug)
        terms.append(WeightedTerm(slug, float(match.group(2))))
        offset += len(piece) + 1
    return terms


def parse_condition(text: str, position: int = 0) -> Condition:
    """Parse ``"slug > 101"`` into a condition."""
    match = _CONDITION_RE.fullmatch(text)
    if not match:
        raise FormulaParseError(
            f"Malformed condition {text!r}, expected 'slug <op> number' with op one of > < >= <= ==",
            position,
        )
    return Condition(match.group(1), Comparison(match.group(2)), float(match.group(3)))
