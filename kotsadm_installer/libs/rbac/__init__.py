"""
RBAC Libraries

Scope resolution from the application descriptor and reconciliation of the
kotsadm RBAC objects.
"""

from .merge import merge_rules, merge_subjects, rule_key
from .reconciler import RBACReconciler
from .scope import Application, GroupVersionKind, SchemeRegistry, ScopeResolver, resolve_scope

__all__ = [
    'Application',
    'GroupVersionKind',
    'SchemeRegistry',
    'ScopeResolver',
    'resolve_scope',
    'RBACReconciler',
    'merge_rules',
    'merge_subjects',
    'rule_key'
]
