"""
Workload Reconciler

Ensures the kotsadm Deployment, Service and application metadata ConfigMap.

An existing Deployment is upgraded in place: only the fields the installer
owns are merged into the live object, so replica counts, annotations, extra
containers and other operator-applied settings survive an upgrade.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.base_reconciler import BaseReconciler
from ..core.constants import KotsadmConstants, KubernetesConstants
from ..core.exceptions import DeploymentMergeError
from ..core.models import Action, DeployOptions, ObjectAction
from ..manifests import ManifestTemplates

logger = logging.getLogger(__name__)

Kind = KubernetesConstants.Kind

# Container fields replaced from the desired container
OWNED_CONTAINER_FIELDS = ('image', 'imagePullPolicy', 'resources', 'readinessProbe')


def overlay(existing: Any, desired: Any) -> Any:
    """
    Lay desired over existing

    Mappings are merged key by key so that keys only the server sets (defaults
    such as a port's protocol) survive; any other value is taken from desired.
    """
    if isinstance(existing, dict) and isinstance(desired, dict):
        merged = copy.deepcopy(existing)
        for key, value in desired.items():
            merged[key] = overlay(existing.get(key), value)
        return merged
    return copy.deepcopy(desired)


def merge_named(existing: Optional[List[Dict[str, Any]]], desired: List[Dict[str, Any]],
                keep_unlisted: bool = True) -> List[Dict[str, Any]]:
    """
    Merge two lists of dicts keyed by 'name'

    Entries of existing keep their position and desired entries of the same
    name are laid over them; new desired entries are appended. With
    keep_unlisted False, existing entries not in desired are dropped.
    """
    desired_by_name = {item['name']: item for item in desired}
    merged = []
    seen = set()

    for item in existing or []:
        name = item.get('name')
        if name in desired_by_name:
            merged.append(overlay(item, desired_by_name[name]))
            seen.add(name)
        elif keep_unlisted:
            merged.append(copy.deepcopy(item))

    for item in desired:
        if item['name'] not in seen:
            merged.append(copy.deepcopy(item))

    return merged


def merge_env(existing: Optional[List[Dict[str, Any]]], desired: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Environment is owned wholesale; entries are overlaid only to keep server defaults"""
    merged = merge_named(existing, desired, keep_unlisted=False)
    desired_by_name = {item['name']: item for item in desired}
    for item in merged:
        source = desired_by_name[item['name']]
        if 'value' in source:
            item.pop('valueFrom', None)
        if 'valueFrom' in source:
            item.pop('value', None)
    return merged


def _find_container(containers: List[Dict[str, Any]], name: str) -> int:
    for idx, container in enumerate(containers):
        if container.get('name') == name:
            return idx
    return -1


def merge_deployment(existing: Dict[str, Any], desired: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Merge installer-owned fields of desired into a copy of existing

    Args:
        existing: Live Deployment
        desired: Desired Deployment from ManifestTemplates.deployment

    Returns:
        Tuple of (merged deployment, whether it differs from existing)

    Raises:
        DeploymentMergeError: If the live deployment has no kotsadm container
    """
    merged = copy.deepcopy(existing)
    desired_template = desired['spec']['template']
    desired_pod = desired_template['spec']
    desired_container = desired_pod['containers'][0]

    template = merged.setdefault('spec', {}).setdefault('template', {})
    pod = template.setdefault('spec', {})
    containers = pod.setdefault('containers', [])

    idx = _find_container(containers, desired_container['name'])
    if idx == -1:
        raise DeploymentMergeError(
            f"failed to find {desired_container['name']} container in deployment "
            f"{existing.get('metadata', {}).get('name')}"
        )

    container = containers[idx]
    for field_name in OWNED_CONTAINER_FIELDS:
        if field_name in desired_container:
            container[field_name] = overlay(container.get(field_name), desired_container[field_name])
        else:
            container.pop(field_name, None)
    container['env'] = merge_env(container.get('env'), desired_container.get('env', []))
    container['ports'] = merge_named(container.get('ports'), desired_container.get('ports', []))
    container['volumeMounts'] = merge_named(container.get('volumeMounts'), desired_container.get('volumeMounts', []))

    service_account = desired_pod['serviceAccountName']
    if pod.get('serviceAccountName') != service_account:
        pod['serviceAccountName'] = service_account
        # deprecated alias, must not contradict serviceAccountName
        pod.pop('serviceAccount', None)

    pod['volumes'] = merge_named(pod.get('volumes'), desired_pod.get('volumes', []))
    if desired_pod.get('imagePullSecrets') or pod.get('imagePullSecrets'):
        pod['imagePullSecrets'] = merge_named(pod.get('imagePullSecrets'), desired_pod.get('imagePullSecrets', []))

    metadata = template.setdefault('metadata', {})
    metadata['labels'] = overlay(metadata.get('labels') or {}, desired_template['metadata']['labels'])

    return merged, _normalized(merged) != _normalized(existing)


def _normalized(deployment: Dict[str, Any]) -> Dict[str, Any]:
    """Deployment with empty lists dropped, so [] and a missing field compare equal"""
    def strip(value):
        if isinstance(value, dict):
            return {k: strip(v) for k, v in value.items() if v != [] and v is not None}
        if isinstance(value, list):
            return [strip(v) for v in value]
        return value
    return strip(deployment)


class WorkloadReconciler(BaseReconciler):
    """Reconciles the kotsadm Deployment, Service and application metadata ConfigMap"""

    def ensure_workload(self, options: DeployOptions) -> List[ObjectAction]:
        """
        Ensure Deployment and Service

        Returns:
            Actions taken, in reconcile order

        Raises:
            DeploymentMergeError: If the live deployment cannot be merged
            APIError: On API failures
        """
        return [
            self.ensure_deployment(options),
            self.ensure_service(options),
        ]

    def ensure_deployment(self, options: DeployOptions) -> ObjectAction:
        desired = ManifestTemplates.deployment(options)
        existing = self._get_or_none(Kind.DEPLOYMENT, desired['metadata']['name'], options.namespace)

        if existing is None:
            return self._create(Kind.DEPLOYMENT, desired, options.namespace)

        merged, changed = merge_deployment(existing, desired)
        if not changed:
            logger.debug(f"Deployment {options.namespace}/{desired['metadata']['name']} is up to date")
            return self._action(Kind.DEPLOYMENT, existing, options.namespace, Action.UNCHANGED)

        return self._update(Kind.DEPLOYMENT, merged, options.namespace)

    def ensure_service(self, options: DeployOptions) -> ObjectAction:
        # The service shape is stable for the lifetime of an install
        return self._create_if_absent(Kind.SERVICE, ManifestTemplates.service(options), options.namespace)

    def ensure_application_metadata(self, options: DeployOptions) -> List[ObjectAction]:
        """
        Ensure the ConfigMap holding the application descriptor

        No-op when the install carries no descriptor. Only the descriptor key
        is written; other keys on an existing ConfigMap are kept.
        """
        if options.application_metadata is None:
            return []

        desired = ManifestTemplates.application_metadata_config_map(options.namespace, options.application_metadata)
        existing = self._get_or_none(Kind.CONFIG_MAP, desired['metadata']['name'], options.namespace)

        if existing is None:
            return [self._create(Kind.CONFIG_MAP, desired, options.namespace)]

        key = KotsadmConstants.APPLICATION_METADATA_KEY
        data = existing.get('data') or {}
        if data.get(key) == desired['data'][key]:
            return [self._action(Kind.CONFIG_MAP, existing, options.namespace, Action.UNCHANGED)]

        data[key] = desired['data'][key]
        existing['data'] = data
        return [self._update(Kind.CONFIG_MAP, existing, options.namespace)]
