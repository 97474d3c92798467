"""
Test fakes

FakeCluster is an in-memory stand-in for KubeClient with the same
get/create/replace/list_pods interface and error semantics.
"""

import copy

from kotsadm_installer.libs.core.exceptions import AlreadyExistsError, ConflictError, NotFoundError


class FakeCluster:
    """In-memory object store keyed by (kind, namespace, name)"""

    def __init__(self):
        self.objects = {}
        self.pods = []
        self.calls = []
        self._version = 0

    def _key(self, kind, name, namespace):
        return (str(kind), namespace, name)

    def _bump(self, body):
        self._version += 1
        body.setdefault('metadata', {})['resourceVersion'] = str(self._version)

    def seed(self, kind, body, namespace=None):
        """Store an object directly, bypassing call recording"""
        body = copy.deepcopy(body)
        self._bump(body)
        self.objects[self._key(kind, body['metadata']['name'], namespace)] = body
        return body

    def stored(self, kind, name, namespace=None):
        return self.objects[self._key(kind, name, namespace)]

    def get(self, kind, name, namespace=None):
        self.calls.append(('get', str(kind), name))
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise NotFoundError(f"{kind} {name} not found", operation="get", kind=str(kind), name=name,
                                namespace=namespace, status=404)
        return copy.deepcopy(self.objects[key])

    def create(self, kind, body, namespace=None):
        name = body['metadata']['name']
        self.calls.append(('create', str(kind), name))
        key = self._key(kind, name, namespace)
        if key in self.objects:
            raise AlreadyExistsError(f"{kind} {name} already exists", operation="create", kind=str(kind),
                                     name=name, namespace=namespace, status=409)
        body = copy.deepcopy(body)
        self._bump(body)
        self.objects[key] = body
        return copy.deepcopy(body)

    def replace(self, kind, body, namespace=None):
        name = body['metadata']['name']
        self.calls.append(('replace', str(kind), name))
        key = self._key(kind, name, namespace)
        current = self.objects.get(key)
        if current is None:
            raise NotFoundError(f"{kind} {name} not found", operation="replace", kind=str(kind), name=name,
                                namespace=namespace, status=404)
        sent_version = body.get('metadata', {}).get('resourceVersion')
        if sent_version and sent_version != current['metadata']['resourceVersion']:
            raise ConflictError(f"{kind} {name} conflict", operation="replace", kind=str(kind), name=name,
                                namespace=namespace, status=409)
        body = copy.deepcopy(body)
        self._bump(body)
        self.objects[key] = body
        return copy.deepcopy(body)

    def list_pods(self, namespace, label_selector):
        self.calls.append(('list', 'Pod', label_selector))
        return copy.deepcopy(self.pods)

    def count(self, operation):
        return sum(1 for call in self.calls if call[0] == operation)

    def reset_calls(self):
        self.calls = []


APPLICATION_MINIMAL_RBAC = b"""apiVersion: kots.io/v1beta1
kind: Application
metadata:
  name: my-app
spec:
  title: My App
  requireMinimalRBACPrivileges: true
"""

APPLICATION_CLUSTER_RBAC = b"""apiVersion: kots.io/v1beta1
kind: Application
metadata:
  name: my-app
spec:
  title: My App
  requireMinimalRBACPrivileges: false
"""


def running_pod(name="kotsadm-abc", ready=True, phase="Running"):
    """Pod dict as returned by KubeClient.list_pods"""
    pod = {
        'metadata': {'name': name, 'labels': {'app': 'kotsadm'}},
        'status': {'phase': phase}
    }
    if phase == "Running":
        pod['status']['containerStatuses'] = [{'name': 'kotsadm', 'ready': ready}]
    return pod
