"""
Base Reconciler

Shared create/read helpers for the object reconcilers. "Not found" on read is
the signal to create, and "already exists" on create is success.
"""

import logging
from typing import Any, Dict, Optional

from .exceptions import AlreadyExistsError, NotFoundError
from .models import Action, ObjectAction

logger = logging.getLogger(__name__)


class BaseReconciler:
    """Base class for reconcilers with common functionality"""

    def __init__(self, kube):
        """
        Args:
            kube: KubeClient (or any object with the same get/create/replace interface)
        """
        self.kube = kube

    @staticmethod
    def _action(kind: str, body: Dict[str, Any], namespace: Optional[str], action: Action) -> ObjectAction:
        return ObjectAction(kind=str(kind), name=body['metadata']['name'], namespace=namespace, action=action)

    def _get_or_none(self, kind: str, name: str, namespace: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Read an object, None when it does not exist"""
        try:
            return self.kube.get(kind, name, namespace)
        except NotFoundError:
            return None

    def _create(self, kind: str, body: Dict[str, Any], namespace: Optional[str] = None) -> ObjectAction:
        """Create an object; losing a creation race counts as success"""
        try:
            self.kube.create(kind, body, namespace)
        except AlreadyExistsError:
            logger.debug(f"{kind} {body['metadata']['name']} already exists")
            return self._action(kind, body, namespace, Action.UNCHANGED)

        logger.info(f"Created {kind} {body['metadata']['name']}")
        return self._action(kind, body, namespace, Action.CREATED)

    def _create_if_absent(self, kind: str, body: Dict[str, Any], namespace: Optional[str] = None) -> ObjectAction:
        """Create an object unless it already exists; existing objects are never updated"""
        if self._get_or_none(kind, body['metadata']['name'], namespace) is not None:
            logger.debug(f"{kind} {body['metadata']['name']} exists, leaving it as is")
            return self._action(kind, body, namespace, Action.UNCHANGED)

        return self._create(kind, body, namespace)

    def _update(self, kind: str, body: Dict[str, Any], namespace: Optional[str] = None) -> ObjectAction:
        self.kube.replace(kind, body, namespace)
        logger.info(f"Updated {kind} {body['metadata']['name']}")
        return self._action(kind, body, namespace, Action.UPDATED)
