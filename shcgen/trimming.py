"""
SMART Health Card Bundle Trimming

Minimizes a FHIR Bundle to the profile carried inside a health card:
short "resource:<n>" references, no resource ids, metadata or narrative,
no display text where a code is present, and no Patient contact details.

The pruning rules are data (PRUNE_RULES) applied by a visitor over the
closed JSON document model. The input bundle is never mutated.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import SerializationFailure
from .logging_config import event_log


SHORT_REFERENCE_PREFIX = "resource:"

# Known incorrect terminology system URL -> canonical form
SYSTEM_URL_CORRECTIONS = {
    "https://www2a.cdc.gov/vaccines/iis/iisstandards/vaccines.asp?rpt=cvx": "http://hl7.org/fhir/sid/cvx",
}


class FieldAction(str, Enum):
    """What a matching rule does to a field."""
    DROP = "DROP"
    RESOLVE_REFERENCE = "RESOLVE_REFERENCE"
    CORRECT_SYSTEM = "CORRECT_SYSTEM"


@dataclass(frozen=True)
class PruneRule:
    """
    One (resourceType, depth, field) -> action entry.

    A None resource_type or depth matches any value. `requires` names
    sibling fields that must all be set for the rule to fire.
    """
    field: str
    action: FieldAction = FieldAction.DROP
    resource_type: Optional[str] = None
    depth: Optional[int] = None
    requires: Tuple[str, ...] = ()

    def matches(self, node: Dict[str, Any], depth: int) -> bool:
        if self.field not in node:
            return False
        if self.resource_type is not None and node.get("resourceType") != self.resource_type:
            return False
        if self.depth is not None and depth != self.depth:
            return False
        return all(_is_set(node.get(key)) for key in self.requires)


def _is_set(value: Any) -> bool:
    """Empty strings, zero, false and null do not count; empty containers do."""
    return bool(value) or isinstance(value, (dict, list))


PRUNE_RULES: Tuple[PruneRule, ...] = (
    # Patient profile is name + birth date; contact details are dropped
    PruneRule("telecom", resource_type="Patient"),
    PruneRule("contact", resource_type="Patient"),
    PruneRule("communication", resource_type="Patient"),
    PruneRule("address", resource_type="Patient"),
    # Resource level
    PruneRule("id", depth=1),
    PruneRule("meta", depth=1),
    PruneRule("text", depth=1),
    # Coded values make display text redundant
    PruneRule("text", requires=("coding",)),
    PruneRule("display", requires=("system", "code")),
    # Rewrites
    PruneRule("reference", action=FieldAction.RESOLVE_REFERENCE),
    PruneRule("system", action=FieldAction.CORRECT_SYSTEM),
)


def normalize_reference(url: str) -> str:
    """Reduce a full URL or relative reference to its last two path segments."""
    return "/".join(url.split("/")[-2:])


def short_reference(index: int) -> str:
    return f"{SHORT_REFERENCE_PREFIX}{index}"


def build_reference_map(entries: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    Map each entry's normalized fullUrl to its short reference.

    Later duplicates do not override earlier entries.
    """
    mapping: Dict[str, str] = {}
    for i, entry in enumerate(entries):
        full_url = entry.get("fullUrl") if isinstance(entry, dict) else None
        if isinstance(full_url, str):
            mapping.setdefault(normalize_reference(full_url), short_reference(i))
    return mapping


class BundleTrimmer:
    """
    Visitor applying PRUNE_RULES to every object in a bundle's resources.

    Depth 1 is the resource itself; each object key descended adds one,
    array elements keep the depth of the array.
    """

    def __init__(self, reference_map: Dict[str, str], rules: Tuple[PruneRule, ...] = PRUNE_RULES):
        self.reference_map = reference_map
        self.rules = rules
        self.fallbacks: List[str] = []
        self._active: set = set()

    def visit(self, value: Any, depth: int = 1) -> Any:
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        elif isinstance(value, (dict, list, tuple)):
            marker = id(value)
            if marker in self._active:
                raise SerializationFailure("Circular reference detected")
            self._active.add(marker)
            try:
                if isinstance(value, dict):
                    return self._visit_object(value, depth)
                return [self.visit(item, depth) for item in value]
            finally:
                self._active.discard(marker)
        else:
            raise SerializationFailure(f"Cannot trim value of type: {type(value).__name__}")

    def _visit_object(self, node: Dict[str, Any], depth: int) -> Dict[str, Any]:
        dropped = set()
        rewrites: Dict[str, Any] = {}

        for rule in self.rules:
            if not rule.matches(node, depth):
                continue
            if rule.action is FieldAction.DROP:
                dropped.add(rule.field)
            elif rule.action is FieldAction.RESOLVE_REFERENCE:
                rewrites[rule.field] = self.resolve(node[rule.field])
            elif rule.action is FieldAction.CORRECT_SYSTEM:
                system = node[rule.field]
                if isinstance(system, str):
                    rewrites[rule.field] = SYSTEM_URL_CORRECTIONS.get(system, system)

        result = {}
        for key, child in node.items():
            if key in dropped:
                continue
            if key in rewrites:
                result[key] = rewrites[key]
            else:
                result[key] = self.visit(child, depth + 1)
        return result

    def resolve(self, reference: Any) -> Any:
        """Rewrite a reference to its short form when it can be resolved."""
        if not isinstance(reference, str):
            return reference
        if reference in self.reference_map:
            return self.reference_map[reference]
        normalized = normalize_reference(reference)
        if normalized in self.reference_map:
            return self.reference_map[normalized]

        # Source bundles sometimes point at a Patient id that does not match
        # the Patient entry's fullUrl; the Patient is always the first entry.
        segments = reference.split("/")
        if len(segments) >= 2 and segments[-2] == "Patient" and self.reference_map:
            target = short_reference(0)
            self.fallbacks.append(reference)
            event_log.reference_fallback(reference, target)
            return target

        return reference


def trim_bundle(bundle: Dict[str, Any], trimmer: Optional[BundleTrimmer] = None) -> Dict[str, Any]:
    """
    Trim a FHIR Bundle for embedding in a health card.

    Args:
        bundle: FHIR Bundle document with an "entry" list
        trimmer: Optional pre-built visitor (exposes fallbacks to callers)

    Returns:
        A new trimmed bundle; the input is left untouched
    """
    if not isinstance(bundle, dict):
        raise SerializationFailure(f"Bundle must be an object, got {type(bundle).__name__}")

    entries = bundle.get("entry") or []
    if not isinstance(entries, list):
        raise SerializationFailure("Bundle entry must be an array")

    if trimmer is None:
        trimmer = BundleTrimmer(build_reference_map(entries))

    trimmed: Dict[str, Any] = {}
    for key, value in bundle.items():
        if key in ("id", "meta"):
            continue
        if key == "entry":
            trimmed[key] = [_trim_entry(entry, i, trimmer) for i, entry in enumerate(entries)]
        else:
            trimmed[key] = copy.deepcopy(value)
    return trimmed


def _trim_entry(entry: Any, index: int, trimmer: BundleTrimmer) -> Any:
    if not isinstance(entry, dict):
        raise SerializationFailure(f"Bundle entry {index} must be an object")

    trimmed = {}
    for key, value in entry.items():
        if key == "fullUrl":
            trimmed[key] = short_reference(index)
        elif key == "resource":
            trimmed[key] = trimmer.visit(value, depth=1)
        else:
            trimmed[key] = copy.deepcopy(value)
    return trimmed
