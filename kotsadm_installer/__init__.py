"""
kotsadm Installer

Converges a namespace to a running kotsadm admin console: RBAC scoped by the
application descriptor, the kotsadm Deployment and Service, and a bounded
wait for the pod to become ready.
"""

__version__ = "1.0.0"

from .libs import (
    DeployOptions,
    InstallerError,
    KotsadmInstaller,
    ReconcileResult,
    ScopeDecision,
    create_installer,
)

__all__ = [
    'DeployOptions',
    'InstallerError',
    'KotsadmInstaller',
    'ReconcileResult',
    'ScopeDecision',
    'create_installer'
]
