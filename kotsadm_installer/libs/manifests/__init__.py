"""
Manifest Libraries

Desired-state templates for the kotsadm objects and their YAML rendering.
"""

from .renderer import dump_manifest, render_documents
from .templates import ManifestTemplates

__all__ = [
    'ManifestTemplates',
    'dump_manifest',
    'render_documents'
]
