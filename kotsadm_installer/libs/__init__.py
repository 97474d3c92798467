"""
kotsadm Installer Library

Installs and upgrades the kotsadm admin console in a Kubernetes namespace.
"""

__version__ = "1.0.0"

# Core libraries
from .core import ClusterAuth, ConfigManager, KubeClient, DeployOptions, ScopeDecision, ReconcileResult
from .core.exceptions import InstallerError, ConfigurationError, AuthenticationError, APIError

# RBAC and workload libraries
from .rbac import RBACReconciler, SchemeRegistry, ScopeResolver
from .workload import ReadinessWaiter, WorkloadReconciler

# Main application
from .main_app import KotsadmInstaller, create_installer

__all__ = [
    # Core
    'ClusterAuth',
    'ConfigManager',
    'KubeClient',
    'DeployOptions',
    'ScopeDecision',
    'ReconcileResult',
    'InstallerError',
    'ConfigurationError',
    'AuthenticationError',
    'APIError',
    # RBAC and workload
    'RBACReconciler',
    'SchemeRegistry',
    'ScopeResolver',
    'ReadinessWaiter',
    'WorkloadReconciler',
    # Main
    'KotsadmInstaller',
    'create_installer'
]
