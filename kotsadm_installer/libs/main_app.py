"""
Main Application

Orchestrates a kotsadm install as an ordered list of named stages:
scope resolution, RBAC, application metadata, workload and (optionally) the
readiness wait. Each stage must succeed before the next one starts. There is
no rollback; re-running the whole reconcile is safe because every stage is
idempotent.
"""

import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from .core.exceptions import InstallerError, StageError
from .core.kube_client import KubeClient
from .core.models import Action, DeployOptions, ObjectAction, ReconcileResult, ScopeDecision
from .manifests import render_documents
from .rbac import RBACReconciler, SchemeRegistry, ScopeResolver
from .workload import ReadinessWaiter, WorkloadReconciler

logger = logging.getLogger(__name__)


class StageName:
    """Names of the reconcile stages, in execution order"""
    RESOLVE_SCOPE = "resolve-scope"
    ENSURE_RBAC = "ensure-rbac"
    ENSURE_APPLICATION_METADATA = "ensure-application-metadata"
    ENSURE_WORKLOAD = "ensure-workload"
    WAIT_FOR_READY = "wait-for-ready"


class Stage(NamedTuple):
    """
    One step of a reconcile run

    run receives the deploy options and the outputs of the stages that
    already ran, keyed by stage name.
    """
    name: str
    run: Callable[[DeployOptions, Dict[str, Any]], Any]


class KotsadmInstaller:
    """Main application orchestrator for the kotsadm installer"""

    def __init__(
        self,
        kube=None,
        scope_resolver: Optional[ScopeResolver] = None,
        rbac_reconciler: Optional[RBACReconciler] = None,
        workload_reconciler: Optional[WorkloadReconciler] = None,
        readiness_waiter: Optional[ReadinessWaiter] = None
    ):
        """
        Initialize the installer with dependency injection

        Args:
            kube: KubeClient used by the default reconcilers (not needed for render)
            scope_resolver: Scope resolver (defaults to one with a fresh SchemeRegistry)
            rbac_reconciler: RBAC reconciler (defaults to RBACReconciler(kube))
            workload_reconciler: Workload reconciler (defaults to WorkloadReconciler(kube))
            readiness_waiter: Readiness waiter (defaults to ReadinessWaiter(kube))
        """
        self.kube = kube
        self.scope_resolver = scope_resolver or ScopeResolver(SchemeRegistry.default())
        self.rbac_reconciler = rbac_reconciler or RBACReconciler(kube)
        self.workload_reconciler = workload_reconciler or WorkloadReconciler(kube)
        self.readiness_waiter = readiness_waiter or ReadinessWaiter(kube)

    def build_stages(self, options: DeployOptions) -> List[Stage]:
        """Ordered stages for one run; RBAC always precedes the workload that uses it"""
        stages = [
            Stage(StageName.RESOLVE_SCOPE,
                  lambda opts, results: self.scope_resolver.resolve(opts.application_metadata)),
            Stage(StageName.ENSURE_RBAC,
                  lambda opts, results: self.rbac_reconciler.ensure_rbac(opts, results[StageName.RESOLVE_SCOPE])),
            Stage(StageName.ENSURE_APPLICATION_METADATA,
                  lambda opts, results: self.workload_reconciler.ensure_application_metadata(opts)),
            Stage(StageName.ENSURE_WORKLOAD,
                  lambda opts, results: self.workload_reconciler.ensure_workload(opts)),
        ]

        if options.wait_for_ready:
            stages.append(Stage(StageName.WAIT_FOR_READY,
                                lambda opts, results: self.readiness_waiter.wait_until_ready(opts)))

        return stages

    def reconcile(self, options: DeployOptions, stages: Optional[List[Stage]] = None) -> ReconcileResult:
        """
        Converge the cluster to the desired kotsadm state

        Args:
            options: Deploy options of the install
            stages: Stages to run (defaults to build_stages(options))

        Returns:
            ReconcileResult describing what was applied

        Raises:
            InstallerError: The failing stage's error, with its stage recorded.
                Errors outside the installer taxonomy are wrapped in StageError.
        """
        stages = self.build_stages(options) if stages is None else stages
        outputs: Dict[str, Any] = {}
        result = ReconcileResult()

        for stage in stages:
            logger.debug(f"Running stage {stage.name}")
            try:
                value = stage.run(options, outputs)
            except InstallerError as e:
                if e.stage is None:
                    e.stage = stage.name
                logger.error(f"Stage {stage.name} failed: {e.message}")
                raise
            except Exception as e:
                logger.error(f"Stage {stage.name} failed unexpectedly: {e}")
                raise StageError(stage.name, e) from e

            outputs[stage.name] = value
            result.completed_stages.append(stage.name)

            if isinstance(value, ScopeDecision):
                result.scope = value
            elif isinstance(value, list):
                result.actions.extend(a for a in value if isinstance(a, ObjectAction))

        result.ready = StageName.WAIT_FOR_READY in outputs
        if result.scope is not None:
            result.documents = render_documents(options, result.scope)

        logger.info(f"kotsadm reconciled in {options.namespace}: "
                    f"{result.count(Action.CREATED)} created, {result.count(Action.UPDATED)} updated, "
                    f"{result.count(Action.UNCHANGED)} unchanged")
        return result

    def render(self, options: DeployOptions) -> Dict[str, bytes]:
        """Render the documents an install would apply, without contacting the cluster"""
        scope = self.scope_resolver.resolve(options.application_metadata)
        return render_documents(options, scope)


def create_installer(kube=None, api_client=None) -> KotsadmInstaller:
    """
    Factory function to create a KotsadmInstaller with default dependencies

    Args:
        kube: KubeClient to use (optional)
        api_client: Configured kubernetes ApiClient to build a KubeClient from (optional)

    Returns:
        Configured KotsadmInstaller instance
    """
    if kube is None and api_client is not None:
        kube = KubeClient(api_client)

    return KotsadmInstaller(kube=kube)
