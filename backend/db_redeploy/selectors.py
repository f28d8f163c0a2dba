"""
Label selector formatting.

Turns a structured Deployment selector into the string form accepted by the
``label_selector`` parameter of the Kubernetes list calls.
"""
from typing import List, Optional, Tuple

from db_redeploy.kube_types import LabelSelector, LabelSelectorRequirement

IN = "In"
NOT_IN = "NotIn"
EXISTS = "Exists"
DOES_NOT_EXIST = "DoesNotExist"


class SelectorError(ValueError):
    """Raised when a label selector cannot be expressed as a query string."""


def _format_requirement(req: LabelSelectorRequirement) -> str:
    values = sorted(req.values or [])

    if req.operator in (IN, NOT_IN):
        if not values:
            raise SelectorError(f"operator {req.operator} on key '{req.key}' requires values")
        word = "in" if req.operator == IN else "notin"
        return f"{req.key} {word} ({','.join(values)})"

    if req.operator in (EXISTS, DOES_NOT_EXIST):
        if values:
            raise SelectorError(f"operator {req.operator} on key '{req.key}' takes no values")
        return req.key if req.operator == EXISTS else f"!{req.key}"

    raise SelectorError(f"unsupported selector operator '{req.operator}' on key '{req.key}'")


def format_label_selector(selector: Optional[LabelSelector]) -> str:
    """
    Format a label selector as a selector query string.

    Equality requirements from ``match_labels`` render as ``key=value``;
    set-based expressions render as ``key in (a,b)``, ``key notin (a,b)``,
    ``key`` and ``!key``. Requirements are ordered by key.

    Args:
        selector: Structured selector of a Deployment

    Returns:
        Selector query string, e.g. ``app=db,tier in (primary,replica)``

    Raises:
        SelectorError: If the selector is missing, empty or malformed
    """
    if selector is None:
        raise SelectorError("deployment has no selector")

    parts: List[Tuple[str, str]] = []
    for key, value in (selector.match_labels or {}).items():
        if not key:
            raise SelectorError("selector label key must not be empty")
        parts.append((key, f"{key}={value}"))
    for req in selector.match_expressions or []:
        if not req.key:
            raise SelectorError("selector expression key must not be empty")
        parts.append((req.key, _format_requirement(req)))

    # An empty selector would match every pod in the cluster
    if not parts:
        raise SelectorError("selector is empty")

    parts.sort(key=lambda item: item[0])
    return ",".join(text for _, text in parts)
