"""
RBAC Scope Resolution

Decides whether kotsadm is installed with cluster-wide or namespace-scoped
permissions. The decision is driven by the optional kots.io Application
descriptor shipped with the install; without a descriptor the permissive
cluster scope is used.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

import yaml

from ..core.constants import ApplicationConstants
from ..core.exceptions import DecodeError, SchemaMismatchError
from ..core.models import ScopeDecision

logger = logging.getLogger(__name__)


class GroupVersionKind(NamedTuple):
    """Identity of a Kubernetes object type"""
    group: str
    version: str
    kind: str

    @classmethod
    def from_type_meta(cls, api_version: str, kind: str) -> "GroupVersionKind":
        """Split apiVersion ('group/version' or core 'version') into a GVK"""
        group, _, version = api_version.rpartition('/')
        return cls(group, version, kind)

    def __str__(self) -> str:
        api_version = f"{self.group}/{self.version}" if self.group else self.version
        return f"{api_version}, Kind={self.kind}"


APPLICATION_GVK = GroupVersionKind(ApplicationConstants.GROUP, ApplicationConstants.VERSION,
                                   ApplicationConstants.KIND)


@dataclass
class UnstructuredObject:
    """Decoded object whose kind has no registered type"""
    gvk: GroupVersionKind
    content: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Application:
    """The fields of a kots.io/v1beta1 Application the installer reads"""
    name: str = ""
    title: str = ""
    require_minimal_rbac_privileges: bool = False

    @classmethod
    def from_object(cls, obj: Dict[str, Any]) -> "Application":
        """
        Build an Application from a decoded document

        Raises:
            DecodeError: If spec or requireMinimalRBACPrivileges have the wrong type
        """
        spec = obj.get('spec')
        if spec is None:
            spec = {}
        if not isinstance(spec, dict):
            raise DecodeError("application metadata spec must be a mapping")

        require_minimal = spec.get(ApplicationConstants.REQUIRE_MINIMAL_RBAC_FIELD)
        if require_minimal is None:
            require_minimal = False
        if not isinstance(require_minimal, bool):
            raise DecodeError(
                f"application metadata spec.{ApplicationConstants.REQUIRE_MINIMAL_RBAC_FIELD} "
                f"must be a boolean, got {require_minimal!r}"
            )

        metadata = obj.get('metadata') if isinstance(obj.get('metadata'), dict) else {}
        return cls(
            name=str(metadata.get('name') or ""),
            title=str(spec.get('title') or ""),
            require_minimal_rbac_privileges=require_minimal
        )


class SchemeRegistry:
    """
    Maps object identities to typed decoders.

    Constructed per reconcile run and handed to ScopeResolver, instead of
    relying on a process-wide scheme.
    """

    def __init__(self):
        self._types: Dict[GroupVersionKind, Callable[[Dict[str, Any]], Any]] = {}

    @classmethod
    def default(cls) -> "SchemeRegistry":
        """Registry that knows the kots.io Application type"""
        registry = cls()
        registry.register(APPLICATION_GVK, Application.from_object)
        return registry

    def register(self, gvk: GroupVersionKind, factory: Callable[[Dict[str, Any]], Any]) -> None:
        self._types[gvk] = factory

    def decode(self, data: bytes) -> Tuple[Any, GroupVersionKind]:
        """
        Decode YAML or JSON bytes into a typed object

        Args:
            data: Raw document bytes

        Returns:
            Tuple of (decoded object, its GroupVersionKind). Unregistered kinds
            decode into an UnstructuredObject.

        Raises:
            DecodeError: If the bytes are not a single Kubernetes object document
        """
        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"failed to decode application metadata: {e}") from e

        try:
            obj = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DecodeError(f"failed to decode application metadata: {e}") from e

        if not isinstance(obj, dict):
            raise DecodeError("failed to decode application metadata: document is not an object")

        api_version = obj.get('apiVersion')
        kind = obj.get('kind')
        if not isinstance(api_version, str) or not api_version:
            raise DecodeError("failed to decode application metadata: missing apiVersion")
        if not isinstance(kind, str) or not kind:
            raise DecodeError("failed to decode application metadata: missing kind")

        gvk = GroupVersionKind.from_type_meta(api_version, kind)
        factory = self._types.get(gvk)
        if factory is None:
            return UnstructuredObject(gvk=gvk, content=obj), gvk

        return factory(obj), gvk


class ScopeResolver:
    """Decides the permission scope of an install"""

    def __init__(self, registry: Optional[SchemeRegistry] = None):
        self.registry = registry or SchemeRegistry.default()

    def resolve(self, application_metadata: Optional[bytes]) -> ScopeDecision:
        """
        Decide the RBAC scope from the application descriptor

        Args:
            application_metadata: Raw descriptor bytes, or None when absent

        Returns:
            CLUSTER_SCOPED unless the descriptor sets requireMinimalRBACPrivileges

        Raises:
            DecodeError: If the descriptor cannot be parsed
            SchemaMismatchError: If the descriptor is not a kots.io/v1beta1 Application
        """
        if application_metadata is None:
            logger.debug("No application metadata, using cluster scoped RBAC")
            return ScopeDecision.CLUSTER_SCOPED

        obj, gvk = self.registry.decode(application_metadata)

        if gvk != APPLICATION_GVK or not isinstance(obj, Application):
            raise SchemaMismatchError(
                f"application metadata contained unexpected gvk {gvk}, expected {APPLICATION_GVK}",
                actual=str(gvk),
                expected=str(APPLICATION_GVK)
            )

        if obj.require_minimal_rbac_privileges:
            logger.info(f"Application {obj.name or obj.title} requires minimal RBAC privileges, "
                        f"using namespace scoped RBAC")
            return ScopeDecision.NAMESPACE_SCOPED

        return ScopeDecision.CLUSTER_SCOPED


def resolve_scope(application_metadata: Optional[bytes],
                  registry: Optional[SchemeRegistry] = None) -> ScopeDecision:
    """Convenience wrapper around ScopeResolver.resolve"""
    return ScopeResolver(registry).resolve(application_metadata)
