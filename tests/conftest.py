import regex as re
import pytest

from condparse import ConditionDump

# builder-like renderer: join between node i and i+1 is nodes[i].operator
_JOIN_WORDS = {"and": "and", "or": "or", "andNot": "and not", "orNot": "or not"}
_NEEDS_QUOTES = re.compile(r"""[\s:()'"\\]""")


def _quote(s: str) -> str:
    if s and not _NEEDS_QUOTES.search(s):
        return s
    return '"' + s.replace('"', '\\"') + '"'


def _render(nodes: ConditionDump) -> str:
    parts = []
    for i, node in enumerate(nodes):
        if i:
            parts.append(_JOIN_WORDS[nodes[i - 1].operator])
        if node.is_group:
            parts.append("(" + _render(node.condition) + ")")
        else:
            e = node.expression
            parts.append(f"{_quote(e.key)}:{_quote(e.operator)}:{_quote(e.value)}")
    return " ".join(parts)


@pytest.fixture
def render():
    """Render a parsed tree back to explicit key:op:value notation."""
    return _render
