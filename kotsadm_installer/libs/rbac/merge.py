"""
RBAC Merge Helpers

Non-destructive merge rules for Role rules and binding subjects. Both merges
only ever add: rules or subjects already on the live object are kept in
place, in their original order.
"""

import copy
from typing import Any, Dict, List, Tuple

from ..core.models import Subject

RULE_FIELDS = ('apiGroups', 'resources', 'verbs', 'resourceNames', 'nonResourceURLs')

RuleKey = Tuple[Tuple[str, Tuple[str, ...]], ...]


def rule_key(rule: Dict[str, Any]) -> RuleKey:
    """
    Identity of a policy rule

    List order inside a field is irrelevant and missing, null and empty
    fields are equivalent.
    """
    return tuple(
        (name, tuple(sorted(str(v) for v in (rule.get(name) or []))))
        for name in RULE_FIELDS
    )


def merge_rules(existing: List[Dict[str, Any]],
                desired: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Union of existing and desired rules

    Args:
        existing: Rules on the live object
        desired: Rules the installer wants present

    Returns:
        Tuple of (merged rules, whether anything was added)
    """
    merged = [copy.deepcopy(rule) for rule in existing or []]
    seen = {rule_key(rule) for rule in merged}
    changed = False

    for rule in desired:
        key = rule_key(rule)
        if key in seen:
            continue
        merged.append(copy.deepcopy(rule))
        seen.add(key)
        changed = True

    return merged, changed


def has_subject(subjects: List[Dict[str, Any]], subject: Subject) -> bool:
    """Whether subject (matched on kind, name and namespace) is in subjects"""
    return any(Subject.from_dict(s) == subject for s in subjects or [])


def merge_subjects(existing: List[Dict[str, Any]], subject: Subject) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Append subject unless already present

    Returns:
        Tuple of (subjects, whether the subject was appended)
    """
    subjects = [copy.deepcopy(s) for s in existing or []]
    if has_subject(subjects, subject):
        return subjects, False

    subjects.append(subject.to_dict())
    return subjects, True
