"""
Kubernetes Client

Kind-keyed access to the cluster API used by the reconcilers. Objects cross
this boundary as plain camelCase dicts, and API failures are translated into
the installer's error taxonomy.
"""

import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from .constants import ErrorMessages, KubernetesConstants, NetworkConstants
from .exceptions import (
    AlreadyExistsError,
    APIError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientAPIError,
)

logger = logging.getLogger(__name__)

Kind = KubernetesConstants.Kind
HTTPStatus = NetworkConstants.HTTPStatus


class KindOperations(NamedTuple):
    """Bound API methods for a single object kind"""
    read: Callable[..., Any]
    create: Callable[..., Any]
    replace: Callable[..., Any]
    namespaced: bool


def translate_api_exception(error: ApiException, operation: str, kind: str, name: str,
                            namespace: Optional[str] = None) -> APIError:
    """
    Map an ApiException onto the installer's error taxonomy.

    404 is only a "not found" signal for reads and 409 means "already exists"
    for creates and "conflict" for updates. Anything else is either an
    authorization failure, a transient server-side failure, or a plain APIError.

    Args:
        error: Exception raised by the kubernetes client
        operation: One of get, create, replace, list
        kind: Object kind
        name: Object name (or label selector for list)
        namespace: Object namespace, None for cluster-scoped objects

    Returns:
        APIError subclass instance (not raised)
    """
    status = error.status or 0
    target = f"{kind} {namespace}/{name}" if namespace else f"{kind} {name}"
    details = dict(operation=operation, kind=str(kind), name=name, namespace=namespace, status=status)

    if status == HTTPStatus.NOT_FOUND and operation == "get":
        return NotFoundError(f"{target} not found", **details)

    if status == HTTPStatus.CONFLICT and operation == "create":
        return AlreadyExistsError(f"{target} already exists", **details)

    if status == HTTPStatus.CONFLICT and operation == "replace":
        return ConflictError(f"failed to {operation} {target}: object was modified concurrently", **details)

    if status == HTTPStatus.FORBIDDEN:
        message = ErrorMessages.APIError.FORBIDDEN.format(operation=operation, kind=kind, name=name)
        return PermissionDeniedError(message, **details)

    if status == HTTPStatus.UNAUTHORIZED:
        return PermissionDeniedError(ErrorMessages.APIError.UNAUTHORIZED.value, **details)

    if status in HTTPStatus.get_transient_statuses():
        return TransientAPIError(f"failed to {operation} {target}: {status} {error.reason}", **details)

    return APIError(f"failed to {operation} {target}: {status} {error.reason}", **details)


def translate_transport_error(error: urllib3.exceptions.HTTPError, operation: str, kind: str, name: str,
                              namespace: Optional[str] = None) -> APIError:
    """Map a urllib3 transport failure; TLS failures are never transient"""
    target = f"{kind} {namespace}/{name}" if namespace else f"{kind} {name}"
    details = dict(operation=operation, kind=str(kind), name=name, namespace=namespace, status=None)

    reason = getattr(error, "reason", None)
    if isinstance(error, urllib3.exceptions.SSLError) or isinstance(reason, urllib3.exceptions.SSLError):
        return APIError(ErrorMessages.SSLError.CONNECTION_ERROR.format(error=error), **details)

    return TransientAPIError(f"failed to {operation} {target}: {error}", **details)


class KubeClient:
    """Thin, kind-keyed wrapper over the typed kubernetes API groups"""

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        """
        Initialize the client

        Args:
            api_client: Configured ApiClient (defaults to the process default configuration)
        """
        self.api_client = api_client or client.ApiClient()
        self.core_api = client.CoreV1Api(self.api_client)
        self.apps_api = client.AppsV1Api(self.api_client)
        self.rbac_api = client.RbacAuthorizationV1Api(self.api_client)

        rbac = self.rbac_api
        core = self.core_api
        apps = self.apps_api
        self._operations: Dict[str, KindOperations] = {
            Kind.CLUSTER_ROLE.value: KindOperations(
                rbac.read_cluster_role, rbac.create_cluster_role, rbac.replace_cluster_role, False),
            Kind.CLUSTER_ROLE_BINDING.value: KindOperations(
                rbac.read_cluster_role_binding, rbac.create_cluster_role_binding,
                rbac.replace_cluster_role_binding, False),
            Kind.ROLE.value: KindOperations(
                rbac.read_namespaced_role, rbac.create_namespaced_role, rbac.replace_namespaced_role, True),
            Kind.ROLE_BINDING.value: KindOperations(
                rbac.read_namespaced_role_binding, rbac.create_namespaced_role_binding,
                rbac.replace_namespaced_role_binding, True),
            Kind.SERVICE_ACCOUNT.value: KindOperations(
                core.read_namespaced_service_account, core.create_namespaced_service_account,
                core.replace_namespaced_service_account, True),
            Kind.SERVICE.value: KindOperations(
                core.read_namespaced_service, core.create_namespaced_service,
                core.replace_namespaced_service, True),
            Kind.CONFIG_MAP.value: KindOperations(
                core.read_namespaced_config_map, core.create_namespaced_config_map,
                core.replace_namespaced_config_map, True),
            Kind.DEPLOYMENT.value: KindOperations(
                apps.read_namespaced_deployment, apps.create_namespaced_deployment,
                apps.replace_namespaced_deployment, True),
        }

    def _ops(self, kind: str) -> KindOperations:
        try:
            return self._operations[str(kind)]
        except KeyError:
            raise ValueError(f"unsupported kind: {kind}")

    def _call(self, operation: str, kind: str, name: str, namespace: Optional[str], func: Callable[[], Any]) -> Any:
        try:
            return func()
        except ApiException as e:
            raise translate_api_exception(e, operation, kind, name, namespace) from e
        except urllib3.exceptions.HTTPError as e:
            raise translate_transport_error(e, operation, kind, name, namespace) from e

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        return self.api_client.sanitize_for_serialization(obj)

    def get(self, kind: str, name: str, namespace: Optional[str] = None) -> Dict[str, Any]:
        """
        Read a single object

        Raises:
            NotFoundError: If the object does not exist
            APIError: On any other API failure
        """
        ops = self._ops(kind)
        if ops.namespaced:
            obj = self._call("get", kind, name, namespace, lambda: ops.read(name=name, namespace=namespace))
        else:
            obj = self._call("get", kind, name, None, lambda: ops.read(name=name))
        return self._to_dict(obj)

    def create(self, kind: str, body: Dict[str, Any], namespace: Optional[str] = None) -> Dict[str, Any]:
        """
        Create an object

        Raises:
            AlreadyExistsError: If an object of that name already exists
            APIError: On any other API failure
        """
        ops = self._ops(kind)
        name = body["metadata"]["name"]
        if ops.namespaced:
            obj = self._call("create", kind, name, namespace, lambda: ops.create(namespace=namespace, body=body))
        else:
            obj = self._call("create", kind, name, None, lambda: ops.create(body=body))
        logger.debug(f"Created {kind} {name}")
        return self._to_dict(obj)

    def replace(self, kind: str, body: Dict[str, Any], namespace: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace an object, guarded by the resourceVersion carried in body

        Raises:
            ConflictError: If the object changed since body was read
            APIError: On any other API failure
        """
        ops = self._ops(kind)
        name = body["metadata"]["name"]
        if ops.namespaced:
            obj = self._call("replace", kind, name, namespace,
                             lambda: ops.replace(name=name, namespace=namespace, body=body))
        else:
            obj = self._call("replace", kind, name, None, lambda: ops.replace(name=name, body=body))
        logger.debug(f"Replaced {kind} {name}")
        return self._to_dict(obj)

    def list_pods(self, namespace: str, label_selector: str) -> List[Dict[str, Any]]:
        """List pods in namespace matching label_selector"""
        pods = self._call("list", Kind.POD, label_selector, namespace,
                          lambda: self.core_api.list_namespaced_pod(namespace=namespace,
                                                                    label_selector=label_selector))
        return self._to_dict(pods).get("items") or []
