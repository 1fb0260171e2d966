"""Formula syntax tree.

Nodes record the character offset they were parsed from. Offsets are
excluded from equality, so a re-parsed canonical formula compares equal
to the original tree.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NumberLiteral:
    value: float
    position: int = field(default=0, compare=False)


@dataclass(frozen=True)
class StringLiteral:
    text: str
    position: int = field(default=0, compare=False)


@dataclass(frozen=True)
class IndicatorRef:
    slug: str
    position: int = field(default=0, compare=False)


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]
    position: int = field(default=0, compare=False)


Node = NumberLiteral | StringLiteral | IndicatorRef | Call
