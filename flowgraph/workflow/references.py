"""
Reference tokens: ``{{nodeId.outputKey}}`` embedded in free-text config values.

A configuration value parses to one of two variants:

* ``Literal``   -- any non-string value, or a string with no well-formed token
* ``Templated`` -- a string holding one or more tokens mixed with text

Parsing never raises. Text that merely looks like a token (``{{n1}}``,
``{{a.b.c}}``, an unclosed ``{{``) stays literal text, so a value being
typed in an editor degrades to "unbound" rather than to an error.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Tuple, Union

# nodeId and outputKey: no braces, dots or whitespace
TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}.\s]+)\s*\.\s*([^{}.\s]+)\s*\}\}")


@dataclass(frozen=True)
class NodeRef:
    node_id: str
    output_key: str

    @property
    def token(self) -> str:
        return format_reference(self.node_id, self.output_key)

    def __str__(self) -> str:
        return self.token


@dataclass(frozen=True)
class Literal:
    value: Any

    @property
    def refs(self) -> Tuple[NodeRef, ...]:
        return ()

    def is_empty(self) -> bool:
        if self.value is None:
            return True
        if isinstance(self.value, str):
            return not self.value.strip()
        if isinstance(self.value, (list, dict)):
            return len(self.value) == 0
        return False


Segment = Union[str, NodeRef]


@dataclass(frozen=True)
class Templated:
    text: str
    segments: Tuple[Segment, ...]

    @property
    def refs(self) -> Tuple[NodeRef, ...]:
        return tuple(s for s in self.segments if isinstance(s, NodeRef))

    def is_empty(self) -> bool:
        return False

    def render(self, outputs: dict) -> str:
        """Substitute tokens from ``{node_id: {output_key: value}}``; unknown tokens are kept verbatim."""
        parts: List[str] = []
        for segment in self.segments:
            if isinstance(segment, NodeRef):
                node_outputs = outputs.get(segment.node_id) or {}
                if segment.output_key in node_outputs:
                    parts.append(str(node_outputs[segment.output_key]))
                else:
                    parts.append(segment.token)
            else:
                parts.append(segment)
        return "".join(parts)


ConfigValue = Union[Literal, Templated]


def format_reference(node_id: str, output_key: str) -> str:
    return "{{" + f"{node_id}.{output_key}" + "}}"


def parse_value(value: Any) -> ConfigValue:
    """Classify a configuration value. Never raises."""
    if not isinstance(value, str):
        return Literal(value)

    segments: List[Segment] = []
    pos = 0
    for match in TOKEN_PATTERN.finditer(value):
        if match.start() > pos:
            segments.append(value[pos:match.start()])
        segments.append(NodeRef(match.group(1), match.group(2)))
        pos = match.end()

    if not segments:
        return Literal(value)
    if pos < len(value):
        segments.append(value[pos:])
    return Templated(value, tuple(segments))


def has_reference(value: Any) -> bool:
    """True iff ``value`` contains at least one well-formed token."""
    return isinstance(parse_value(value), Templated)


def references_in(value: Any) -> List[NodeRef]:
    return list(parse_value(value).refs)


# Anything opened with "{{", up to the next "}}" or the end of the text.
_TOKEN_ATTEMPT = re.compile(r"\{\{.*?(?:\}\}|$)", re.DOTALL)


def malformed_tokens(value: Any) -> List[str]:
    """Token-like fragments of ``value`` that do not follow the grammar.

    Only the text around well-formed tokens is searched, so stray braces
    next to a valid token (``{{{n1.key}}}``) are not reported.
    """
    if not isinstance(value, str):
        return []
    parsed = parse_value(value)
    texts = [value] if isinstance(parsed, Literal) else [
        s for s in parsed.segments if isinstance(s, str)
    ]
    return [m.group(0) for text in texts for m in _TOKEN_ATTEMPT.finditer(text)]


def looks_like_reference(value: Any) -> bool:
    """True for text that tries to be a reference, well-formed or not."""
    return isinstance(value, str) and "{{" in value
