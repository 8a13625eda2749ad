"""
Signature Library

Registry of diagnosable failure families.

DESIGN RULES:
- Declarative (data, not code)
- Open for extension: register a pattern, touch nothing else
- Read-only once diagnosis starts
"""

from typing import Dict, Iterator, List, Optional

from signatures import predicates as p
from signatures.types import CausalDirection, RemediationClass, SignaturePattern

REMOTE_SHELL_TAGS = ("remote-shell",)
TRANSFORM_TAGS = ("transform", "set", "code", "function")

SESSION_VISIBILITY_MESSAGE = (
    r"no such file|file does not exist|does not exist|ENOENT|"
    r"(?:resource|file|path|directory) (?:was |could )?not (?:be )?found|"
    r"cannot (?:find|open|access) (?:the )?(?:file|path|directory)"
)
EXPRESSION_REFERENCE_MESSAGE = (
    r"cannot read propert(?:y|ies)|of (?:undefined|null)\b|is not defined|"
    r"undefined (?:field|property|value)|referenced (?:field|node|parameter)"
)
RATE_LIMIT_MESSAGE = r"too many requests|rate[ _-]?limit|throttl|quota (?:exceeded|exhausted)|\b429\b"
AUTHORIZATION_MESSAGE = (
    r"unauthori[sz]ed|forbidden|invalid (?:token|credentials?|api[ _-]?key|grant)|"
    r"(?:token|credentials?|session) (?:has )?expired|expired (?:token|credentials?)|"
    r"authentication (?:failed|required)|access denied"
)
TIMEOUT_MESSAGE = r"timed? ?out|timeout|ETIMEDOUT|ESOCKETTIMEDOUT|ECONNABORTED|deadline exceeded"
TYPE_MISMATCH_MESSAGE = (
    r"expected (?:type )?['\"]?[\w-]+['\"]? but (?:received|got|found)|"
    r"is not a (?:number|string|function|valid (?:number|date))|"
    r"cannot (?:convert|compare)|invalid (?:type|number)|wrong type|\bNaN\b"
)

RATE_LIMIT_CODES = ("429",)
AUTHORIZATION_CODES = ("401", "403")
TIMEOUT_CODES = ("ETIMEDOUT", "ESOCKETTIMEDOUT", "ECONNABORTED", "408", "504")


class SignatureLibrary:
    """
    Ordered registry of SignaturePattern instances.

    Iteration order is registration order; the scorer never relies on it.
    """

    def __init__(self, patterns: Optional[List[SignaturePattern]] = None):
        self._patterns: Dict[str, SignaturePattern] = {}
        for pattern in patterns or []:
            self.register(pattern)

    def register(self, pattern: SignaturePattern) -> None:
        if pattern.id in self._patterns:
            raise ValueError(f"Pattern '{pattern.id}' is already registered")
        self._patterns[pattern.id] = pattern

    def get(self, pattern_id: str) -> Optional[SignaturePattern]:
        return self._patterns.get(pattern_id)

    def ids(self) -> List[str]:
        return list(self._patterns)

    def __iter__(self) -> Iterator[SignaturePattern]:
        return iter(list(self._patterns.values()))

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._patterns


# --- Catalog ---

def session_visibility() -> SignaturePattern:
    """A file written in one remote session is read from another that cannot see it."""
    return SignaturePattern(
        id="session_visibility",
        display_name="Transient cross-session file visibility",
        remediation_class=RemediationClass.CONSOLIDATE_SESSION,
        predicates=(
            p.message_signature("resource_not_found_message", SESSION_VISIBILITY_MESSAGE, 40,
                                "error text says the file or resource does not exist"),
            p.preceding_producer("remote_shell_producer", REMOTE_SHELL_TAGS, 35,
                                 consumer_tags=REMOTE_SHELL_TAGS,
                                 description="remote-shell node succeeded right before a remote-shell failure"),
            p.shared_path_reference("shared_file_path", 15,
                                    "an upstream node names the same file path"),
            p.symptom_role("remote_shell_consumer", REMOTE_SHELL_TAGS, 10,
                           "the failing node runs in a remote shell"),
        ),
    )


def expression_reference() -> SignaturePattern:
    """An expression reads a field some upstream records do not carry."""
    return SignaturePattern(
        id="expression_reference",
        display_name="Missing or undefined field access in an expression",
        remediation_class=RemediationClass.GUARD_FIELD_ACCESS,
        predicates=(
            p.message_signature("undefined_access_message", EXPRESSION_REFERENCE_MESSAGE, 40,
                                "error text reports an undefined property or reference"),
            p.inconsistent_field("sporadic_field_absence", 35,
                                 "referenced field present in some upstream records only"),
            p.failing_expression_present("field_reading_expression", 15,
                                         "the error names an expression that reads record fields"),
            p.symptom_role("transform_consumer", TRANSFORM_TAGS, 10,
                           "the failing node shapes data from expressions"),
        ),
    )


def rate_limiting() -> SignaturePattern:
    """An upstream API rejected the call for exceeding its request quota."""
    return SignaturePattern(
        id="rate_limiting",
        display_name="Upstream rate-limit rejection",
        remediation_class=RemediationClass.THROTTLE_REQUESTS,
        predicates=(
            p.status_code("rate_limit_status", RATE_LIMIT_CODES, 60, "HTTP 429"),
            p.message_signature("rate_limit_message", RATE_LIMIT_MESSAGE, 40,
                                "error text mentions throttling or quota"),
        ),
    )


def authorization_expiry() -> SignaturePattern:
    """Credentials that used to work have expired or been revoked."""
    return SignaturePattern(
        id="authorization_expiry",
        display_name="Expired or invalid authorization",
        remediation_class=RemediationClass.REFRESH_CREDENTIALS,
        predicates=(
            p.status_code("authorization_status", AUTHORIZATION_CODES, 45, "HTTP 401 or 403"),
            p.message_signature("authorization_message", AUTHORIZATION_MESSAGE, 35,
                                "error text reports rejected or expired credentials"),
            p.recent_success_history("recent_success", 20,
                                     "last run succeeded recently, this is the first failure"),
        ),
    )


def timeout() -> SignaturePattern:
    """An operation ran into its time ceiling."""
    return SignaturePattern(
        id="timeout",
        display_name="Operation timeout",
        remediation_class=RemediationClass.EXTEND_TIMEOUT,
        predicates=(
            p.status_code("timeout_code", TIMEOUT_CODES, 35, "socket or gateway timeout code"),
            p.message_signature("timeout_message", TIMEOUT_MESSAGE, 35, "error text reports a timeout"),
            p.timing_proximity("near_ceiling", 30, "elapsed time close to the configured ceiling"),
        ),
    )


def type_mismatch() -> SignaturePattern:
    """Arithmetic or a comparison received a value of an unexpected type."""
    return SignaturePattern(
        id="type_mismatch",
        display_name="Implicit type mismatch in an operation",
        remediation_class=RemediationClass.COERCE_TYPES,
        predicates=(
            p.message_signature("type_mismatch_message", TYPE_MISMATCH_MESSAGE, 45,
                                "error text reports an unexpected type"),
            p.inconsistent_field_type("heterogeneous_field_type", 25,
                                      "referenced field has mixed types upstream"),
            p.expression_operator("operator_expression", 20,
                                  "failing expression does arithmetic or comparison"),
            p.symptom_role("transform_operation", TRANSFORM_TAGS, 10,
                           "the failing node computes values"),
        ),
    )


CATALOG = (
    session_visibility,
    authorization_expiry,
    rate_limiting,
    timeout,
    expression_reference,
    type_mismatch,
)


def default_library() -> SignatureLibrary:
    """Fresh library holding the six catalogued families."""
    return SignatureLibrary([build() for build in CATALOG])
