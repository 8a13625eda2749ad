"""
Expression Field References

Extracts the record fields an unevaluated workflow expression reads,
and resolves those fields against sampled output records.

Supported reference forms:
- {{ $json.body.email }}
- {{ $json["body"]["email"] }}
- {{ $node["Webhook"].json.body.email }} / {{ $('Webhook').item.json.body }}
- bare dotted paths: body.email
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

FieldPath = Tuple[Union[str, int], ...]

_MISSING = object()

_ACCESSOR = r"""(?:\s*\.\s*[A-Za-z_$][\w$]*|\s*\[\s*(?:"[^"]*"|'[^']*'|\d+)\s*\])"""

_RE_JSON_CHAIN = re.compile(r"(?:\$json|\.json)((?:" + _ACCESSOR + r")+)")
_RE_SEGMENT = re.compile(
    r"""\.\s*(?P<name>[A-Za-z_$][\w$]*)|\[\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<idx>\d+))\s*\]"""
)
_RE_BARE_CHAIN = re.compile(r"(?<![\w$.\]\"'])([A-Za-z_][\w]*(?:\.[A-Za-z_][\w]*)+)")
_RE_IDENTIFIER = re.compile(r"^[A-Za-z_][\w]*$")
_RE_STRING_LITERAL = re.compile(r"""(?:"[^"]*"|'[^']*'|`[^`]*`)""")


def _strip_template(expression: str) -> str:
    text = expression.strip()
    if text.startswith("="):
        text = text[1:]
    return text.replace("{{", " ").replace("}}", " ").strip()


def _segments(chain: str) -> List[Union[str, int]]:
    parts: List[Union[str, int]] = []
    for match in _RE_SEGMENT.finditer(chain):
        if match.group("name") is not None:
            parts.append(match.group("name"))
        elif match.group("dq") is not None:
            parts.append(match.group("dq"))
        elif match.group("sq") is not None:
            parts.append(match.group("sq"))
        else:
            parts.append(int(match.group("idx")))
    return parts


def _followed_by_call(text: str, end: int) -> bool:
    return text[end:].lstrip().startswith("(")


def referenced_fields(expression: Optional[str]) -> List[FieldPath]:
    """
    Field paths an expression reads, in order of first appearance.

    Trailing method calls (`.toLowerCase()`) are not fields and are dropped.
    """
    if not expression:
        return []

    text = _strip_template(expression)
    found: List[FieldPath] = []

    for match in _RE_JSON_CHAIN.finditer(text):
        parts = _segments(match.group(1))
        if parts and _followed_by_call(text, match.end()):
            parts = parts[:-1]
        if parts:
            found.append(tuple(parts))

    if not found:
        unquoted = _RE_STRING_LITERAL.sub('""', text)
        for match in _RE_BARE_CHAIN.finditer(unquoted):
            parts = match.group(1).split(".")
            if _followed_by_call(unquoted, match.end()):
                parts = parts[:-1]
            if parts and not parts[0].startswith("$"):
                found.append(tuple(parts))

    if not found and _RE_IDENTIFIER.match(text):
        found.append((text,))

    unique: List[FieldPath] = []
    for path in found:
        if path not in unique:
            unique.append(path)
    return unique


def resolve(record: Dict[str, Any], path: FieldPath) -> Tuple[bool, Any]:
    """Walk `path` into a record. Returns (found, value); never raises."""
    current: Any = record
    for part in path:
        value = _MISSING
        if isinstance(current, Mapping):
            value = current.get(part, _MISSING) if isinstance(part, str) else current.get(str(part), _MISSING)
        elif isinstance(current, (list, tuple)) and isinstance(part, int):
            value = current[part] if 0 <= part < len(current) else _MISSING
        if value is _MISSING:
            return False, None
        current = value
    return True, current


def has_field(record: Dict[str, Any], path: FieldPath) -> bool:
    return resolve(record, path)[0]


def format_path(path: FieldPath) -> str:
    return ".".join(str(part) for part in path)
