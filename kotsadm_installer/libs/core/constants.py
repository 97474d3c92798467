"""
Constants Module

Centralized constants for the kotsadm installer to eliminate magic strings
and improve maintainability.
"""


class KubernetesConstants:
    """Kubernetes-related constants"""
    
    from enum import Enum
    
    DEFAULT_NAMESPACE = "default"
    
    # API Group constants
    RBAC_API_GROUP = "rbac.authorization.k8s.io"
    APPS_API_GROUP = "apps"
    
    MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
    INSTALLER_COMPONENT = "kotsadm-installer"
    
    class Kind(str, Enum):
        """Object kinds handled by the installer"""
        CLUSTER_ROLE = "ClusterRole"
        CLUSTER_ROLE_BINDING = "ClusterRoleBinding"
        ROLE = "Role"
        ROLE_BINDING = "RoleBinding"
        SERVICE_ACCOUNT = "ServiceAccount"
        DEPLOYMENT = "Deployment"
        SERVICE = "Service"
        CONFIG_MAP = "ConfigMap"
        POD = "Pod"
        
        def __str__(self) -> str:
            """Return the kind for use in manifests and messages"""
            return self.value
    
    class PodPhase(str, Enum):
        """Pod phases reported in pod status"""
        PENDING = "Pending"
        RUNNING = "Running"
        SUCCEEDED = "Succeeded"
        FAILED = "Failed"
        UNKNOWN = "Unknown"
        
        def __str__(self) -> str:
            return self.value


class KotsadmConstants:
    """Names and defaults of the objects owned by the installer"""
    
    APP_LABEL = "app"
    APP_NAME = "kotsadm"
    
    SERVICE_ACCOUNT_NAME = "kotsadm"
    DEPLOYMENT_NAME = "kotsadm"
    SERVICE_NAME = "kotsadm"
    CONTAINER_NAME = "kotsadm"
    
    # Role and ClusterRole intentionally share a name, as do the bindings
    ROLE_NAME = "kotsadm-role"
    ROLE_BINDING_NAME = "kotsadm-rolebinding"
    
    APPLICATION_METADATA_CONFIG_MAP = "kotsadm-application-metadata"
    APPLICATION_METADATA_KEY = "application.yaml"
    
    CONTAINER_PORT = 3000
    SERVICE_PORT = 3000
    PORT_NAME = "http"
    
    DEFAULT_REGISTRY = "kotsadm"
    DEFAULT_TAG = "latest"
    DEFAULT_IMAGE_PULL_POLICY = "IfNotPresent"
    DEFAULT_SERVICE_TYPE = "ClusterIP"
    
    @classmethod
    def label_selector(cls) -> str:
        """Label selector matching the kotsadm pods"""
        return f"{cls.APP_LABEL}={cls.APP_NAME}"


class ApplicationConstants:
    """Identity of the application descriptor that controls RBAC scope"""
    
    GROUP = "kots.io"
    VERSION = "v1beta1"
    KIND = "Application"
    
    REQUIRE_MINIMAL_RBAC_FIELD = "requireMinimalRBACPrivileges"


class ReconcileConstants:
    """Timing and retry limits of a single reconcile run"""
    
    # Readiness wait, seconds
    DEFAULT_READY_TIMEOUT = 120
    POLL_INTERVAL = 1.0
    
    # Read-modify-write attempts against the shared ClusterRoleBinding
    MAX_CONFLICT_RETRIES = 5


class NetworkConstants:
    """Network-related constants"""
    
    from enum import IntEnum
    
    class HTTPStatus(IntEnum):
        """HTTP status codes returned by the Kubernetes API"""
        NO_RESPONSE = 0
        UNAUTHORIZED = 401
        FORBIDDEN = 403
        NOT_FOUND = 404
        CONFLICT = 409
        TOO_MANY_REQUESTS = 429
        INTERNAL_SERVER_ERROR = 500
        BAD_GATEWAY = 502
        SERVICE_UNAVAILABLE = 503
        GATEWAY_TIMEOUT = 504
        
        @classmethod
        def get_transient_statuses(cls) -> list:
            """Statuses worth retrying while waiting for readiness"""
            return [
                cls.NO_RESPONSE,
                cls.TOO_MANY_REQUESTS,
                cls.INTERNAL_SERVER_ERROR,
                cls.BAD_GATEWAY,
                cls.SERVICE_UNAVAILABLE,
                cls.GATEWAY_TIMEOUT
            ]


class ErrorMessages:
    """Centralized error message templates"""
    
    from enum import Enum
    
    class SSLError(str, Enum):
        """SSL-related error message templates"""
        CERT_VERIFICATION_FAILED = (
            "SSL certificate verification failed. The cluster is using self-signed certificates.\n"
            "To resolve this issue, add the --skip-tls flag to your command."
        )
        
        CONNECTION_ERROR = (
            "SSL connection error occurred. If using self-signed certificates, add --skip-tls flag.\n"
            "Original error: {error}"
        )
        
        def __str__(self) -> str:
            return self.value
    
    class APIError(str, Enum):
        """Cluster API error message templates"""
        FORBIDDEN = (
            "Forbidden (403). Your credentials are valid but lack the permissions needed to {operation} "
            "{kind} '{name}'. Contact your cluster administrator to grant the required RBAC permissions."
        )
        UNAUTHORIZED = (
            "Unauthorized (401). Verify that your token or kubeconfig is valid."
        )
        
        def __str__(self) -> str:
            return self.value
    
    class ConfigError(str, Enum):
        """Configuration-related error message templates"""
        INVALID_NAMESPACE = "Invalid Kubernetes namespace format: {namespace}"
        NAMESPACE_TOO_LONG = "Namespace too long (max 63 chars): {namespace}"
        INVALID_API_URL = "Invalid Kubernetes API URL format: {url}"
        CONFIG_FILE_NOT_FOUND = "Configuration file not found: {config_path}"
        METADATA_FILE_NOT_FOUND = "Application metadata file not found: {path}"
        
        def __str__(self) -> str:
            return self.value


class FileConstants:
    """File related constants"""
    
    from enum import Enum
    
    class Document(str, Enum):
        """Names of the rendered documents, one per applied object"""
        ROLE = "kotsadm-role.yaml"
        ROLE_BINDING = "kotsadm-rolebinding.yaml"
        CLUSTER_ROLE = "kotsadm-clusterrole.yaml"
        CLUSTER_ROLE_BINDING = "kotsadm-clusterrolebinding.yaml"
        SERVICE_ACCOUNT = "kotsadm-serviceaccount.yaml"
        DEPLOYMENT = "kotsadm-deployment.yaml"
        SERVICE = "kotsadm-service.yaml"
        APPLICATION_METADATA = "kotsadm-application-metadata.yaml"
        
        def __str__(self) -> str:
            return self.value
