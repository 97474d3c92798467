"""
Workload Libraries

Reconciliation of the kotsadm Deployment, Service and application metadata,
and the readiness wait that follows.
"""

from .readiness import ReadinessWaiter, is_pod_ready
from .reconciler import WorkloadReconciler, merge_deployment

__all__ = [
    'ReadinessWaiter',
    'WorkloadReconciler',
    'is_pod_ready',
    'merge_deployment'
]
