"""
Data Models Module

Typed data structures shared by the reconcile stages: the per-run deploy
options, the RBAC scope decision, and the result reported back to the caller.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import KotsadmConstants, ReconcileConstants


class ScopeDecision(Enum):
    """Permission scope granted to kotsadm for one install"""
    CLUSTER_SCOPED = "cluster_scoped"
    NAMESPACE_SCOPED = "namespace_scoped"


class Action(str, Enum):
    """What a reconcile step did to a single object"""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DeployOptions:
    """
    Immutable input to a single reconcile run.

    application_metadata holds the raw bytes of the kots.io Application
    descriptor, or None when the install carries no descriptor.
    """
    namespace: str
    application_metadata: Optional[bytes] = None
    kotsadm_registry: str = KotsadmConstants.DEFAULT_REGISTRY
    kotsadm_tag: str = KotsadmConstants.DEFAULT_TAG
    image_pull_policy: str = KotsadmConstants.DEFAULT_IMAGE_PULL_POLICY
    image_pull_secret: Optional[str] = None
    service_type: str = KotsadmConstants.DEFAULT_SERVICE_TYPE
    wait_for_ready: bool = True
    timeout_seconds: float = ReconcileConstants.DEFAULT_READY_TIMEOUT

    @property
    def kotsadm_image(self) -> str:
        """Fully qualified kotsadm image reference"""
        return f"{self.kotsadm_registry}/kotsadm:{self.kotsadm_tag}"

    def with_changes(self, **changes: Any) -> "DeployOptions":
        """Copy of these options with some fields replaced"""
        return replace(self, **changes)


@dataclass(frozen=True)
class Subject:
    """Identity of a ServiceAccount as referenced inside a binding"""
    kind: str
    name: str
    namespace: str

    @classmethod
    def service_account(cls, name: str, namespace: str) -> "Subject":
        return cls(kind="ServiceAccount", name=name, namespace=namespace)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subject":
        return cls(kind=data.get("kind", ""), name=data.get("name", ""), namespace=data.get("namespace") or "")

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "name": self.name, "namespace": self.namespace}


@dataclass(frozen=True)
class ObjectAction:
    """Outcome of reconciling one object"""
    kind: str
    name: str
    namespace: Optional[str]
    action: Action

    def __str__(self) -> str:
        target = f"{self.namespace}/{self.name}" if self.namespace else self.name
        return f"{self.kind} {target} {self.action}"


@dataclass
class ReconcileResult:
    """Everything a reconcile run reports back to its caller"""
    scope: Optional[ScopeDecision] = None
    actions: List[ObjectAction] = field(default_factory=list)
    documents: Dict[str, bytes] = field(default_factory=dict)
    ready: bool = False
    completed_stages: List[str] = field(default_factory=list)

    def count(self, action: Action) -> int:
        """Number of objects that ended with the given action"""
        return sum(1 for a in self.actions if a.action == action)

    @property
    def changed(self) -> bool:
        """True when the run created or updated at least one object"""
        return any(a.action != Action.UNCHANGED for a in self.actions)
