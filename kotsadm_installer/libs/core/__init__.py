"""
Core Libraries

Shared functionality for the kotsadm installer: configuration, cluster access,
error taxonomy and data models.
"""

from .auth import ClusterAuth
from .config import ConfigManager
from .exceptions import InstallerError, ConfigurationError, AuthenticationError, APIError
from .kube_client import KubeClient
from .models import DeployOptions, ScopeDecision, ReconcileResult
from .utils import setup_logging, disable_ssl_warnings

__all__ = [
    'ClusterAuth',
    'ConfigManager',
    'InstallerError',
    'ConfigurationError',
    'AuthenticationError',
    'APIError',
    'KubeClient',
    'DeployOptions',
    'ScopeDecision',
    'ReconcileResult',
    'setup_logging',
    'disable_ssl_warnings'
]
