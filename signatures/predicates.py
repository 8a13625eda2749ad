"""
Evidence Predicates

Factories for the predicate families the catalog is built from.

DESIGN RULES:
- Every check is side-effect free
- Missing data is "no hit", never an exception
- Reasons are deterministic, human-auditable strings
"""

import re
from datetime import timedelta
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Set

from signatures.expressions import FieldPath, format_path, referenced_fields, resolve
from signatures.types import EvaluationContext, EvidencePredicate
from tracing.model import ExecutionStatus, ExecutionTrace, NodeRun

_RE_OPERATOR = re.compile(r"(?<![=!<>])(?:[+\-*/%](?!=)|[<>]=?|[!=]==?)")
_RE_STRING_LITERAL = re.compile(r"""(?:"[^"]*"|'[^']*'|`[^`]*`)""")
_RE_FILE_PATH = re.compile(r"(?<![:/\w])(?:~|\.{1,2})?(?:/[\w.\-]+){2,}")

_MAX_EXCERPT = 80


def _excerpt(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > _MAX_EXCERPT:
        return text[:_MAX_EXCERPT - 3] + "..."
    return text


def _symptom(trace: ExecutionTrace) -> Optional[NodeRun]:
    return trace.failure_node


def _upstream(trace: ExecutionTrace) -> List[NodeRun]:
    """Nodes before the symptom node, nearest first."""
    if trace.failure is None:
        return []
    return list(reversed(trace.nodes_before(trace.failure.node_ref)))


# --- Message signatures ---

def message_signature(name: str, pattern: str, weight: int, description: str = "") -> EvidencePredicate:
    """Failure message matches a family-specific signature (case-insensitive)."""
    compiled = re.compile(pattern, re.IGNORECASE)

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        if trace.failure is None or not trace.failure.message:
            return None
        match = compiled.search(trace.failure.message)
        if match is None:
            return None
        return f"failure message contains '{match.group(0)}': \"{_excerpt(trace.failure.message)}\""

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


# --- Structural ---

def preceding_producer(
    name: str,
    producer_tags: Iterable[str],
    weight: int,
    consumer_tags: Optional[Iterable[str]] = None,
    description: str = "",
) -> EvidencePredicate:
    """The node right before the symptom succeeded and plays the expected producer role."""
    producers = frozenset(producer_tags)
    consumers = frozenset(consumer_tags) if consumer_tags is not None else None

    def locate(trace: ExecutionTrace, candidate: NodeRun, ctx: EvaluationContext) -> Optional[str]:
        if candidate.succeeded and candidate.type_tag in producers:
            return f"'{candidate.name}' ({candidate.type_tag}) succeeded upstream of the failing node"
        return None

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        symptom = _symptom(trace)
        position = trace.failure_index
        if symptom is None or not position:
            return None
        if consumers is not None and symptom.type_tag not in consumers:
            return None
        previous = trace.node_at(position - 1)
        if locate(trace, previous, ctx) is None:
            return None
        return (
            f"'{previous.name}' ({previous.type_tag}) succeeded immediately before "
            f"'{symptom.name}' ({symptom.type_tag}) failed"
        )

    return EvidencePredicate(name=name, weight=weight, check=check, locate=locate, description=description)


def symptom_role(name: str, tags: Iterable[str], weight: int, description: str = "") -> EvidencePredicate:
    """The symptom node belongs to a role the family typically fails in."""
    roles = frozenset(tags)

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        symptom = _symptom(trace)
        if symptom is None or symptom.type_tag not in roles:
            return None
        return f"failing node '{symptom.name}' is a {symptom.type_tag} node"

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


# --- Sample inspection ---

def _sampled(trace: ExecutionTrace, node: NodeRun, ctx: EvaluationContext) -> List[Mapping[str, Any]]:
    sample = list(node.output_sample[:ctx.config.sampling_limit])
    if len(sample) < ctx.config.min_inconsistency_sample:
        return []
    return sample


def _sporadic_absence(trace: ExecutionTrace, node: NodeRun, fields: List[FieldPath],
                      ctx: EvaluationContext) -> Optional[str]:
    sample = _sampled(trace, node, ctx)
    if not sample:
        return None
    for path in fields:
        present = sum(1 for record in sample if resolve(record, path)[0])
        # Uniform absence means the field was never populated: a different root cause.
        if 0 < present < len(sample):
            return (
                f"field '{format_path(path)}' present in {present} of {len(sample)} "
                f"sampled records of '{node.name}'"
            )
    return None


def inconsistent_field(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """A field the failing expression reads is sporadically missing upstream."""

    def locate(trace: ExecutionTrace, candidate: NodeRun, ctx: EvaluationContext) -> Optional[str]:
        if trace.failure is None:
            return None
        fields = referenced_fields(trace.failure.failing_expression)
        if not fields:
            return None
        return _sporadic_absence(trace, candidate, fields, ctx)

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        for node in _upstream(trace):
            reason = locate(trace, node, ctx)
            if reason is not None:
                return reason
        return None

    return EvidencePredicate(name=name, weight=weight, check=check, locate=locate, description=description)


def _type_family(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def inconsistent_field_type(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """A field the failing expression reads carries different types across upstream records."""

    def locate(trace: ExecutionTrace, candidate: NodeRun, ctx: EvaluationContext) -> Optional[str]:
        if trace.failure is None:
            return None
        fields = referenced_fields(trace.failure.failing_expression)
        sample = _sampled(trace, candidate, ctx)
        for path in fields:
            families: Set[str] = set()
            for record in sample:
                found, value = resolve(record, path)
                family = _type_family(value) if found else None
                if family is not None:
                    families.add(family)
            if len(families) > 1:
                return (
                    f"field '{format_path(path)}' in '{candidate.name}' is "
                    f"{' and '.join(sorted(families))} across sampled records"
                )
        return None

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        for node in _upstream(trace):
            reason = locate(trace, node, ctx)
            if reason is not None:
                return reason
        return None

    return EvidencePredicate(name=name, weight=weight, check=check, locate=locate, description=description)


# --- Expression shape ---

def failing_expression_present(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """The error implicates an expression that reads record fields."""

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        if trace.failure is None:
            return None
        fields = referenced_fields(trace.failure.failing_expression)
        if not fields:
            return None
        listed = ", ".join(format_path(path) for path in fields)
        return f"failing expression reads {listed}"

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


def expression_operator(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """The failing expression performs arithmetic or a comparison."""

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        if trace.failure is None or not trace.failure.failing_expression:
            return None
        bare = _RE_STRING_LITERAL.sub('""', trace.failure.failing_expression)
        bare = bare.replace("{{", " ").replace("}}", " ")
        match = _RE_OPERATOR.search(bare)
        if match is None:
            return None
        return f"failing expression applies operator '{match.group(0)}'"

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


# --- Failure codes and timing ---

def status_code(name: str, codes: Iterable[str], weight: int, description: str = "") -> EvidencePredicate:
    """failure.code falls in a family-specific class."""
    accepted = frozenset(str(code).upper() for code in codes)

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        if trace.failure is None or trace.failure.code is None:
            return None
        code = trace.failure.code.upper()
        if code not in accepted:
            return None
        return f"failure code {code}"

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


def _configured_timeout(node: NodeRun) -> Optional[float]:
    for container in (node.config, node.config.get("options")):
        if isinstance(container, Mapping):
            value = container.get("timeout")
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
                return float(value)
    return None


def timing_proximity(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """Elapsed time is within the configured fraction of the timeout ceiling."""

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        symptom = _symptom(trace)
        if symptom is None:
            return None
        elapsed = symptom.exec_time_ms if symptom.exec_time_ms is not None else trace.duration_ms
        if elapsed is None:
            return None
        ceiling = _configured_timeout(symptom) or float(ctx.config.timeout_ceiling_ms)
        if elapsed < ctx.config.timeout_proximity * ceiling:
            return None
        return f"ran {elapsed}ms against a {int(ceiling)}ms ceiling ({elapsed / ceiling:.0%})"

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


def recent_success_history(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """The previous run succeeded recently and this is the first failure after it."""

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        if ctx.history is None:
            return None
        latest = ctx.history.latest_before(trace.started_at)
        if latest is None or latest.status != ExecutionStatus.SUCCESS:
            return None
        if trace.started_at is not None:
            window = timedelta(hours=ctx.config.history_recency_hours)
            if trace.started_at - latest.started_at > window:
                return None
        return f"previous execution {latest.execution_id} succeeded; this is the first failure since"

    return EvidencePredicate(name=name, weight=weight, check=check, description=description)


# --- Configuration cross-reference ---

def _config_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _config_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _config_strings(item)


def _file_paths(node: NodeRun) -> Set[str]:
    paths: Set[str] = set()
    for text in _config_strings(node.config):
        paths.update(_RE_FILE_PATH.findall(text))
    return paths


def shared_path_reference(name: str, weight: int, description: str = "") -> EvidencePredicate:
    """An upstream node's configuration names the same file path the symptom node uses."""

    def locate(trace: ExecutionTrace, candidate: NodeRun, ctx: EvaluationContext) -> Optional[str]:
        symptom = _symptom(trace)
        if symptom is None:
            return None
        shared = _file_paths(symptom) & _file_paths(candidate)
        if not shared:
            return None
        return f"'{candidate.name}' and '{symptom.name}' both reference {sorted(shared)[0]}"

    def check(trace: ExecutionTrace, ctx: EvaluationContext) -> Optional[str]:
        for node in _upstream(trace):
            reason = locate(trace, node, ctx)
            if reason is not None:
                return reason
        return None

    return EvidencePredicate(name=name, weight=weight, check=check, locate=locate, description=description)
