"""
Document Renderer

Serializes the desired manifests of one install into named YAML documents,
one per object, so the caller can display or persist what was applied.
"""

from typing import Any, Dict

import yaml

from ..core.constants import FileConstants
from ..core.models import DeployOptions, ScopeDecision
from .templates import ManifestTemplates

Document = FileConstants.Document


class ManifestDumper(yaml.SafeDumper):
    """SafeDumper that writes multi-line strings as literal blocks"""


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if '\n' in data:
        return dumper.represent_scalar('tag:yaml.org,2002:str', data, style='|')
    return dumper.represent_scalar('tag:yaml.org,2002:str', data)


ManifestDumper.add_representer(str, _represent_str)


def dump_manifest(manifest: Dict[str, Any]) -> bytes:
    """Serialize a manifest dict to YAML, keeping key order"""
    return yaml.dump(manifest, Dumper=ManifestDumper, default_flow_style=False,
                     sort_keys=False).encode('utf-8')


def render_documents(options: DeployOptions, scope: ScopeDecision) -> Dict[str, bytes]:
    """
    Render the documents for every object an install with this scope applies

    Args:
        options: Deploy options of the install
        scope: RBAC scope decided for the install

    Returns:
        Dict mapping document file name to YAML bytes
    """
    manifests = {}

    if scope == ScopeDecision.CLUSTER_SCOPED:
        manifests[Document.CLUSTER_ROLE.value] = ManifestTemplates.cluster_role()
        manifests[Document.CLUSTER_ROLE_BINDING.value] = ManifestTemplates.cluster_role_binding(options.namespace)
    else:
        manifests[Document.ROLE.value] = ManifestTemplates.role(options.namespace)
        manifests[Document.ROLE_BINDING.value] = ManifestTemplates.role_binding(options.namespace)

    manifests[Document.SERVICE_ACCOUNT.value] = ManifestTemplates.service_account(options.namespace)

    if options.application_metadata is not None:
        manifests[Document.APPLICATION_METADATA.value] = ManifestTemplates.application_metadata_config_map(
            options.namespace, options.application_metadata
        )

    manifests[Document.DEPLOYMENT.value] = ManifestTemplates.deployment(options)
    manifests[Document.SERVICE.value] = ManifestTemplates.service(options)

    return {name: dump_manifest(manifest) for name, manifest in manifests.items()}
