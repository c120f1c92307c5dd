# condparse/ast.py
"""Condition tree
- Expression: key:operator:value leaf
- ConditionNode: leaf or parenthesized group, plus the join operator to the *next* sibling
- Meta: unique keys/operators/values/expressions seen in accepted leaves
- ParseResult: parsed tree + unparsed tail (+ the recovered error, if any)
"""

from __future__     import annotations
from dataclasses    import dataclass, field
from typing         import Any, Dict, List, Optional, Tuple

# join operators, in the vocabulary the condition builder expects
AND     = "and"
OR      = "or"
AND_NOT = "andNot"
OR_NOT  = "orNot"

JOIN_OPERATORS = (AND, OR, AND_NOT, OR_NOT)


@dataclass
class Expression:
    key: str
    operator: str
    value: Any      # str as parsed; a transform may return anything

    def as_tuple(self) -> Tuple[str, str, Any]:
        return (self.key, self.operator, self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "operator": self.operator, "value": self.value}


@dataclass
class ConditionNode:
    """
    One term of a condition sequence.
    - operator  : join to the NEXT sibling ('and' | 'or' | 'andNot' | 'orNot')
    - expression: set for a leaf
    - condition : set for a parenthesized group (nested sequence)
    """
    operator: str
    expression: Optional[Expression] = None
    condition: Optional[List["ConditionNode"]] = None

    def __post_init__(self) -> None:
        if (self.expression is None) == (self.condition is None):
            raise ValueError("ConditionNode needs exactly one of expression/condition")

    @classmethod
    def leaf(cls, expression: Expression, operator: str) -> "ConditionNode":
        return cls(operator=operator, expression=expression)

    @classmethod
    def group(cls, operator: str) -> "ConditionNode":
        return cls(operator=operator, condition=[])

    @property
    def is_group(self) -> bool:
        return self.condition is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator": self.operator,
            "expression": self.expression.to_dict() if self.expression is not None else None,
            "condition": dump(self.condition) if self.condition is not None else None,
        }


ConditionDump = List[ConditionNode]


def dump(nodes: ConditionDump) -> List[Dict[str, Any]]:
    """Plain list/dict shape of a tree (JSON friendly, builder friendly)."""
    return [n.to_dict() for n in nodes]


@dataclass
class Meta:
    keys: List[str] = field(default_factory=list)
    operators: List[str] = field(default_factory=list)
    values: List[Any] = field(default_factory=list)
    expressions: List[Expression] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keys": list(self.keys),
            "operators": list(self.operators),
            "values": list(self.values),
            "expressions": [e.to_dict() for e in self.expressions],
        }


@dataclass
class ParseResult:
    parsed: ConditionDump
    unparsed: str
    meta: Meta
    # the failure that stopped parsing (diagnostics only, not part of to_dict)
    error: Optional[SyntaxError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parsed": dump(self.parsed),
            "unparsed": self.unparsed,
            "meta": self.meta.to_dict(),
        }
