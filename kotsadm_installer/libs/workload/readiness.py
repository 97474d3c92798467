"""
Readiness Waiter

Polls the kotsadm pods until one is running with a ready first container, or
until the deadline passes.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from ..core.constants import KotsadmConstants, KubernetesConstants, ReconcileConstants
from ..core.exceptions import ReadinessTimeoutError, TransientAPIError
from ..core.models import DeployOptions

logger = logging.getLogger(__name__)


def is_pod_ready(pod: Dict[str, Any]) -> bool:
    """
    Whether a pod counts as healthy

    The pod must be Running and its first container must report ready. A pod
    without container statuses is not ready.
    """
    status = pod.get('status') or {}
    if status.get('phase') != KubernetesConstants.PodPhase.RUNNING.value:
        return False

    container_statuses = status.get('containerStatuses') or []
    if not container_statuses:
        return False

    return container_statuses[0].get('ready') is True


def find_ready_pod(pods: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for pod in pods:
        if is_pod_ready(pod):
            return pod
    return None


class ReadinessWaiter:
    """Blocks until the kotsadm workload is healthy or the deadline expires"""

    def __init__(self, kube, poll_interval: float = ReconcileConstants.POLL_INTERVAL,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            kube: KubeClient used to list pods
            poll_interval: Seconds between polls
            clock: Monotonic clock, injectable for tests
            sleep: Sleep function, injectable for tests
        """
        self.kube = kube
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

    def wait_until_ready(self, options: DeployOptions, deadline: Optional[float] = None) -> Dict[str, Any]:
        """
        Poll until a kotsadm pod is ready

        Transient API failures (connection resets, 5xx, throttling) are retried
        on the next poll within the same deadline; any other API failure
        aborts the wait.

        Args:
            options: Deploy options of the install
            deadline: Seconds to wait, defaults to options.timeout_seconds

        Returns:
            The ready pod

        Raises:
            ReadinessTimeoutError: If no pod became ready in time
            APIError: If listing pods failed with a non-transient error
        """
        deadline = options.timeout_seconds if deadline is None else deadline
        label_selector = KotsadmConstants.label_selector()
        start = self.clock()

        logger.info(f"Waiting up to {deadline:g}s for kotsadm to become ready in {options.namespace}")

        while True:
            try:
                pods = self.kube.list_pods(options.namespace, label_selector)
            except TransientAPIError as e:
                logger.warning(f"Transient error listing kotsadm pods, will retry: {e}")
                pods = []

            pod = find_ready_pod(pods)
            if pod is not None:
                name = (pod.get('metadata') or {}).get('name')
                logger.info(f"kotsadm pod {name} is ready")
                return pod

            self.sleep(self.poll_interval)

            elapsed = self.clock() - start
            if elapsed > deadline:
                raise ReadinessTimeoutError(
                    f"timeout waiting for kotsadm pod after {elapsed:.0f}s",
                    elapsed=elapsed,
                    deadline=deadline
                )
