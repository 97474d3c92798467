"""
RBAC Reconciler

Ensures the kotsadm service account and its permissions exist.

Cluster scope uses a ClusterRole and ClusterRoleBinding shared by every
kotsadm install on the cluster; the binding accumulates one subject per
namespace and subjects added by other installs are never removed.
Namespace scope uses a Role and RoleBinding owned by the namespace.
"""

import logging
from typing import List

from ..core.base_reconciler import BaseReconciler
from ..core.constants import KotsadmConstants, KubernetesConstants, ReconcileConstants
from ..core.exceptions import AlreadyExistsError, ConflictError
from ..core.models import Action, DeployOptions, ObjectAction, ScopeDecision, Subject
from ..manifests import ManifestTemplates
from .merge import merge_rules, merge_subjects

logger = logging.getLogger(__name__)

Kind = KubernetesConstants.Kind


class RBACReconciler(BaseReconciler):
    """Reconciles Role/RoleBinding or ClusterRole/ClusterRoleBinding plus the ServiceAccount"""

    def __init__(self, kube, max_conflict_retries: int = ReconcileConstants.MAX_CONFLICT_RETRIES):
        super().__init__(kube)
        self.max_conflict_retries = max(1, max_conflict_retries)

    def ensure_rbac(self, options: DeployOptions, scope: ScopeDecision) -> List[ObjectAction]:
        """
        Ensure RBAC objects for the given scope

        Args:
            options: Deploy options of the install
            scope: Scope decided for this run; governs every object created

        Returns:
            Actions taken, in reconcile order

        Raises:
            APIError: On any API failure other than the expected not-found/already-exists signals
        """
        if scope == ScopeDecision.CLUSTER_SCOPED:
            return self.ensure_cluster_rbac(options)

        namespace = options.namespace
        return [
            self.ensure_role(namespace),
            self.ensure_role_binding(namespace),
            self.ensure_service_account(namespace),
        ]

    def ensure_cluster_rbac(self, options: DeployOptions) -> List[ObjectAction]:
        """Ensure the shared cluster role and binding, then the namespaced service account"""
        return [
            self.ensure_cluster_role(),
            self.ensure_cluster_role_binding(options.namespace),
            self.ensure_service_account(options.namespace),
        ]

    def ensure_cluster_role(self) -> ObjectAction:
        # Concurrent installs in other namespaces race on this create
        return self._create(Kind.CLUSTER_ROLE, ManifestTemplates.cluster_role())

    def ensure_cluster_role_binding(self, service_account_namespace: str) -> ObjectAction:
        """
        Ensure the shared ClusterRoleBinding includes this namespace's service account

        The subject list is extended with a read-modify-write guarded by the
        binding's resourceVersion. A conflicting write from another install
        triggers a fresh read, up to max_conflict_retries attempts. Losing the
        create race to another install is not a conflict: the binding it
        created is read back and merged into.

        Raises:
            ConflictError: If every update attempt lost a race
            APIError: On any other API failure
        """
        desired = ManifestTemplates.cluster_role_binding(service_account_namespace)
        name = desired['metadata']['name']
        subject = Subject.service_account(KotsadmConstants.SERVICE_ACCOUNT_NAME, service_account_namespace)

        for attempt in range(1, self.max_conflict_retries + 1):
            binding = self._get_or_none(Kind.CLUSTER_ROLE_BINDING, name)

            if binding is None:
                try:
                    self.kube.create(Kind.CLUSTER_ROLE_BINDING, desired)
                except AlreadyExistsError:
                    logger.debug(f"ClusterRoleBinding {name} was created concurrently, merging subjects")
                    binding = self.kube.get(Kind.CLUSTER_ROLE_BINDING, name)
                else:
                    logger.info(f"Created ClusterRoleBinding {name}")
                    return self._action(Kind.CLUSTER_ROLE_BINDING, desired, None, Action.CREATED)

            subjects, added = merge_subjects(binding.get('subjects'), subject)
            if not added:
                logger.debug(f"ClusterRoleBinding {name} already binds {service_account_namespace}")
                return self._action(Kind.CLUSTER_ROLE_BINDING, binding, None, Action.UNCHANGED)

            binding['subjects'] = subjects
            try:
                return self._update(Kind.CLUSTER_ROLE_BINDING, binding)
            except ConflictError:
                if attempt == self.max_conflict_retries:
                    raise
                logger.info(f"ClusterRoleBinding {name} changed while updating, retrying "
                            f"({attempt}/{self.max_conflict_retries})")

        raise ConflictError(
            f"failed to update ClusterRoleBinding {name}: still conflicting after "
            f"{self.max_conflict_retries} attempts",
            operation="replace", kind=Kind.CLUSTER_ROLE_BINDING.value, name=name
        )

    def ensure_role(self, namespace: str) -> ObjectAction:
        """
        Ensure the Role exists and grants at least the desired rules

        Rules added to the Role by anyone else are kept.
        """
        desired = ManifestTemplates.role(namespace)
        existing = self._get_or_none(Kind.ROLE, desired['metadata']['name'], namespace)

        if existing is None:
            return self._create(Kind.ROLE, desired, namespace)

        rules, changed = merge_rules(existing.get('rules'), desired['rules'])
        if not changed:
            return self._action(Kind.ROLE, existing, namespace, Action.UNCHANGED)

        existing['rules'] = rules
        return self._update(Kind.ROLE, existing, namespace)

    def ensure_role_binding(self, namespace: str) -> ObjectAction:
        return self._create_if_absent(Kind.ROLE_BINDING, ManifestTemplates.role_binding(namespace), namespace)

    def ensure_service_account(self, namespace: str) -> ObjectAction:
        return self._create_if_absent(Kind.SERVICE_ACCOUNT, ManifestTemplates.service_account(namespace), namespace)
