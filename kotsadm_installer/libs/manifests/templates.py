"""
Manifest Templates

Desired-state builders for every object the installer owns. Each template
returns a plain manifest dict; the reconcilers treat them as opaque desired
state apart from the fields they explicitly merge.
"""

from typing import Any, Dict, List

from ..core.constants import KotsadmConstants, KubernetesConstants
from ..core.models import DeployOptions


def _labels(**extra: str) -> Dict[str, str]:
    labels = {KubernetesConstants.MANAGED_BY_LABEL: KubernetesConstants.INSTALLER_COMPONENT}
    labels.update(extra)
    return labels


def _app_labels() -> Dict[str, str]:
    return {KotsadmConstants.APP_LABEL: KotsadmConstants.APP_NAME}


class ManifestTemplates:
    """Templates for the kotsadm Kubernetes manifests"""

    @staticmethod
    def default_rules() -> List[Dict[str, Any]]:
        """Rule set granted to kotsadm by both the Role and the ClusterRole"""
        return [{
            'apiGroups': ['*'],
            'resources': ['*'],
            'verbs': ['*']
        }]

    @staticmethod
    def cluster_role() -> Dict[str, Any]:
        """ClusterRole manifest template"""
        return {
            'apiVersion': f'{KubernetesConstants.RBAC_API_GROUP}/v1',
            'kind': 'ClusterRole',
            'metadata': {
                'name': KotsadmConstants.ROLE_NAME,
                'labels': _labels()
            },
            'rules': ManifestTemplates.default_rules()
        }

    @staticmethod
    def cluster_role_binding(service_account_namespace: str) -> Dict[str, Any]:
        """ClusterRoleBinding manifest template, bound to a single service account"""
        return {
            'apiVersion': f'{KubernetesConstants.RBAC_API_GROUP}/v1',
            'kind': 'ClusterRoleBinding',
            'metadata': {
                'name': KotsadmConstants.ROLE_BINDING_NAME,
                'labels': _labels()
            },
            'roleRef': {
                'apiGroup': KubernetesConstants.RBAC_API_GROUP,
                'kind': 'ClusterRole',
                'name': KotsadmConstants.ROLE_NAME
            },
            'subjects': [{
                'kind': 'ServiceAccount',
                'name': KotsadmConstants.SERVICE_ACCOUNT_NAME,
                'namespace': service_account_namespace
            }]
        }

    @staticmethod
    def role(namespace: str) -> Dict[str, Any]:
        """Role manifest template"""
        return {
            'apiVersion': f'{KubernetesConstants.RBAC_API_GROUP}/v1',
            'kind': 'Role',
            'metadata': {
                'name': KotsadmConstants.ROLE_NAME,
                'namespace': namespace,
                'labels': _labels()
            },
            'rules': ManifestTemplates.default_rules()
        }

    @staticmethod
    def role_binding(namespace: str) -> Dict[str, Any]:
        """RoleBinding manifest template"""
        return {
            'apiVersion': f'{KubernetesConstants.RBAC_API_GROUP}/v1',
            'kind': 'RoleBinding',
            'metadata': {
                'name': KotsadmConstants.ROLE_BINDING_NAME,
                'namespace': namespace,
                'labels': _labels()
            },
            'roleRef': {
                'apiGroup': KubernetesConstants.RBAC_API_GROUP,
                'kind': 'Role',
                'name': KotsadmConstants.ROLE_NAME
            },
            'subjects': [{
                'kind': 'ServiceAccount',
                'name': KotsadmConstants.SERVICE_ACCOUNT_NAME,
                'namespace': namespace
            }]
        }

    @staticmethod
    def service_account(namespace: str) -> Dict[str, Any]:
        """ServiceAccount manifest template"""
        return {
            'apiVersion': 'v1',
            'kind': 'ServiceAccount',
            'metadata': {
                'name': KotsadmConstants.SERVICE_ACCOUNT_NAME,
                'namespace': namespace,
                'labels': _labels()
            }
        }

    @staticmethod
    def application_metadata_config_map(namespace: str, application_metadata: bytes) -> Dict[str, Any]:
        """ConfigMap carrying the raw application descriptor"""
        return {
            'apiVersion': 'v1',
            'kind': 'ConfigMap',
            'metadata': {
                'name': KotsadmConstants.APPLICATION_METADATA_CONFIG_MAP,
                'namespace': namespace,
                'labels': _labels()
            },
            'data': {
                KotsadmConstants.APPLICATION_METADATA_KEY: application_metadata.decode('utf-8')
            }
        }

    @staticmethod
    def deployment(options: DeployOptions) -> Dict[str, Any]:
        """
        Deployment manifest template

        Replicas are only set here; an existing deployment keeps whatever
        replica count the cluster operator has chosen.
        """
        container = {
            'name': KotsadmConstants.CONTAINER_NAME,
            'image': options.kotsadm_image,
            'imagePullPolicy': options.image_pull_policy,
            'ports': [{
                'name': KotsadmConstants.PORT_NAME,
                'containerPort': KotsadmConstants.CONTAINER_PORT
            }],
            'readinessProbe': {
                'httpGet': {
                    'path': '/healthz',
                    'port': KotsadmConstants.CONTAINER_PORT,
                    'scheme': 'HTTP'
                },
                'initialDelaySeconds': 10,
                'periodSeconds': 10,
                'failureThreshold': 3
            },
            'env': [
                {
                    'name': 'POD_NAMESPACE',
                    'valueFrom': {'fieldRef': {'fieldPath': 'metadata.namespace'}}
                },
                {
                    'name': 'POD_NAME',
                    'valueFrom': {'fieldRef': {'fieldPath': 'metadata.name'}}
                },
            ],
            'resources': {
                'limits': {'cpu': '1', 'memory': '2Gi'},
                'requests': {'cpu': '100m', 'memory': '100Mi'}
            },
            'volumeMounts': [],
        }

        pod_spec = {
            'serviceAccountName': KotsadmConstants.SERVICE_ACCOUNT_NAME,
            'restartPolicy': 'Always',
            'containers': [container],
            'volumes': [],
        }

        if options.application_metadata is not None:
            pod_spec['volumes'].append({
                'name': 'application-metadata',
                'configMap': {
                    'name': KotsadmConstants.APPLICATION_METADATA_CONFIG_MAP,
                    'optional': True
                }
            })
            container['volumeMounts'].append({
                'name': 'application-metadata',
                'mountPath': '/application',
                'readOnly': True
            })

        if options.image_pull_secret:
            pod_spec['imagePullSecrets'] = [{'name': options.image_pull_secret}]

        return {
            'apiVersion': f'{KubernetesConstants.APPS_API_GROUP}/v1',
            'kind': 'Deployment',
            'metadata': {
                'name': KotsadmConstants.DEPLOYMENT_NAME,
                'namespace': options.namespace,
                'labels': _labels(**_app_labels())
            },
            'spec': {
                'replicas': 1,
                'selector': {'matchLabels': _app_labels()},
                'template': {
                    'metadata': {'labels': _app_labels()},
                    'spec': pod_spec
                }
            }
        }

    @staticmethod
    def service(options: DeployOptions) -> Dict[str, Any]:
        """Service manifest template"""
        return {
            'apiVersion': 'v1',
            'kind': 'Service',
            'metadata': {
                'name': KotsadmConstants.SERVICE_NAME,
                'namespace': options.namespace,
                'labels': _labels(**_app_labels())
            },
            'spec': {
                'type': options.service_type,
                'selector': _app_labels(),
                'ports': [{
                    'name': KotsadmConstants.PORT_NAME,
                    'port': KotsadmConstants.SERVICE_PORT,
                    'targetPort': KotsadmConstants.PORT_NAME
                }]
            }
        }
