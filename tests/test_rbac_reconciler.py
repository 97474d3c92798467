"""
Tests for the RBAC reconciler and its merge helpers
"""

import pytest

from kotsadm_installer.libs.core.constants import KubernetesConstants
from kotsadm_installer.libs.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from kotsadm_installer.libs.core.models import Action, ScopeDecision, Subject
from kotsadm_installer.libs.manifests import ManifestTemplates
from kotsadm_installer.libs.rbac import RBACReconciler
from kotsadm_installer.libs.rbac.merge import merge_rules, merge_subjects, rule_key
from fakes import FakeCluster

Kind = KubernetesConstants.Kind

EXTERNAL_RULE = {'apiGroups': [''], 'resources': ['secrets'], 'verbs': ['get', 'list']}


def _subject(namespace):
    return {'kind': 'ServiceAccount', 'name': 'kotsadm', 'namespace': namespace}


class RacingCluster(FakeCluster):
    """Another install adds its subject to the binding right before each of our writes"""

    def __init__(self, racing_namespaces):
        super().__init__()
        self.racing_namespaces = list(racing_namespaces)

    def replace(self, kind, body, namespace=None):
        if str(kind) == Kind.CLUSTER_ROLE_BINDING.value and self.racing_namespaces:
            stored = self.stored(kind, body['metadata']['name'])
            stored['subjects'].append(_subject(self.racing_namespaces.pop(0)))
            self._bump(stored)
        return super().replace(kind, body, namespace)


class HiddenBindingCluster(FakeCluster):
    """The first read of the binding misses an object that a concurrent install just created"""

    def __init__(self):
        super().__init__()
        self.hidden = True

    def get(self, kind, name, namespace=None):
        if str(kind) == Kind.CLUSTER_ROLE_BINDING.value and self.hidden:
            self.hidden = False
            raise NotFoundError("not found", operation="get", kind=str(kind), name=name, status=404)
        return super().get(kind, name, namespace)


class TestMergeHelpers:
    """Pure merge functions"""

    def test_rule_key_ignores_order_and_empty_fields(self):
        a = {'apiGroups': ['apps', ''], 'resources': ['pods'], 'verbs': ['list', 'get'], 'resourceNames': []}
        b = {'verbs': ['get', 'list'], 'resources': ['pods'], 'apiGroups': ['', 'apps'], 'nonResourceURLs': None}

        assert rule_key(a) == rule_key(b)

    def test_rule_key_distinguishes_verbs(self):
        assert rule_key(EXTERNAL_RULE) != rule_key(dict(EXTERNAL_RULE, verbs=['get']))

    def test_merge_rules_appends_missing_rules_only(self):
        rules, changed = merge_rules([EXTERNAL_RULE], ManifestTemplates.default_rules())

        assert changed is True
        assert rules == [EXTERNAL_RULE] + ManifestTemplates.default_rules()

    def test_merge_rules_is_stable_when_covered(self):
        existing = [EXTERNAL_RULE] + ManifestTemplates.default_rules()
        rules, changed = merge_rules(existing, ManifestTemplates.default_rules())

        assert changed is False
        assert rules == existing

    def test_merge_subjects_appends_and_dedupes(self):
        subject = Subject.service_account('kotsadm', 'ns-a')

        subjects, added = merge_subjects([_subject('other-ns')], subject)
        assert added is True
        assert subjects == [_subject('other-ns'), _subject('ns-a')]

        again, added = merge_subjects(subjects, subject)
        assert added is False
        assert again == subjects

    def test_merge_subjects_handles_missing_list(self):
        subjects, added = merge_subjects(None, Subject.service_account('kotsadm', 'ns-a'))

        assert added is True
        assert subjects == [_subject('ns-a')]


class TestClusterScopedRBAC:
    """ClusterRole, shared ClusterRoleBinding and ServiceAccount"""

    def test_fresh_cluster_creates_all_objects(self, cluster, options):
        actions = RBACReconciler(cluster).ensure_rbac(options, ScopeDecision.CLUSTER_SCOPED)

        assert [(a.kind, a.action) for a in actions] == [
            ('ClusterRole', Action.CREATED),
            ('ClusterRoleBinding', Action.CREATED),
            ('ServiceAccount', Action.CREATED),
        ]
        binding = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')
        assert binding['subjects'] == [_subject('ns-a')]
        assert binding['roleRef']['name'] == 'kotsadm-role'
        assert cluster.stored(Kind.SERVICE_ACCOUNT, 'kotsadm', 'ns-a')
        assert (str(Kind.ROLE), 'ns-a', 'kotsadm-role') not in cluster.objects

    def test_binding_of_another_namespace_gains_subject(self, cluster, options):
        cluster.seed(Kind.CLUSTER_ROLE, ManifestTemplates.cluster_role())
        cluster.seed(Kind.CLUSTER_ROLE_BINDING, ManifestTemplates.cluster_role_binding('other-ns'))
        reconciler = RBACReconciler(cluster)

        action = reconciler.ensure_cluster_role_binding('ns-a')

        assert action.action == Action.UPDATED
        subjects = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects']
        assert subjects == [_subject('other-ns'), _subject('ns-a')]

        # Second run finds the subject and does not write
        cluster.reset_calls()
        assert reconciler.ensure_cluster_role_binding('ns-a').action == Action.UNCHANGED
        assert cluster.count('replace') == 0
        assert cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects'] == subjects

    def test_subjects_of_other_kinds_are_kept(self, cluster):
        binding = ManifestTemplates.cluster_role_binding('other-ns')
        binding['subjects'].insert(0, {'kind': 'User', 'name': 'admin', 'apiGroup': 'rbac.authorization.k8s.io'})
        cluster.seed(Kind.CLUSTER_ROLE_BINDING, binding)

        RBACReconciler(cluster).ensure_cluster_role_binding('ns-a')

        subjects = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects']
        assert [s['name'] for s in subjects] == ['admin', 'kotsadm', 'kotsadm']
        assert subjects[-1] == _subject('ns-a')

    def test_existing_cluster_role_is_success(self, cluster):
        custom = ManifestTemplates.cluster_role()
        custom['rules'] = [EXTERNAL_RULE]
        cluster.seed(Kind.CLUSTER_ROLE, custom)

        action = RBACReconciler(cluster).ensure_cluster_role()

        assert action.action == Action.UNCHANGED
        assert cluster.stored(Kind.CLUSTER_ROLE, 'kotsadm-role')['rules'] == [EXTERNAL_RULE]
        assert cluster.count('replace') == 0

    def test_binding_created_concurrently_is_merged(self):
        cluster = HiddenBindingCluster()
        cluster.seed(Kind.CLUSTER_ROLE_BINDING, ManifestTemplates.cluster_role_binding('other-ns'))

        action = RBACReconciler(cluster).ensure_cluster_role_binding('ns-a')

        assert action.action == Action.UPDATED
        subjects = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects']
        assert subjects == [_subject('other-ns'), _subject('ns-a')]

    def test_lost_create_race_does_not_use_up_conflict_retries(self):
        cluster = HiddenBindingCluster()
        cluster.seed(Kind.CLUSTER_ROLE_BINDING, ManifestTemplates.cluster_role_binding('other-ns'))

        action = RBACReconciler(cluster, max_conflict_retries=1).ensure_cluster_role_binding('ns-a')

        assert action.action == Action.UPDATED
        assert cluster.count('create') == 1
        assert cluster.count('replace') == 1
        subjects = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects']
        assert subjects == [_subject('other-ns'), _subject('ns-a')]

    def test_conflicting_write_is_retried_from_a_fresh_read(self):
        cluster = RacingCluster(['racer-ns'])
        cluster.seed(Kind.CLUSTER_ROLE_BINDING, ManifestTemplates.cluster_role_binding('other-ns'))

        action = RBACReconciler(cluster).ensure_cluster_role_binding('ns-a')

        assert action.action == Action.UPDATED
        assert cluster.count('replace') == 2
        subjects = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects']
        assert subjects == [_subject('other-ns'), _subject('racer-ns'), _subject('ns-a')]

    def test_conflict_retries_are_bounded(self):
        cluster = RacingCluster([f'racer-{i}' for i in range(10)])
        cluster.seed(Kind.CLUSTER_ROLE_BINDING, ManifestTemplates.cluster_role_binding('other-ns'))

        with pytest.raises(ConflictError):
            RBACReconciler(cluster, max_conflict_retries=5).ensure_cluster_role_binding('ns-a')

        assert cluster.count('replace') == 5
        subjects = cluster.stored(Kind.CLUSTER_ROLE_BINDING, 'kotsadm-rolebinding')['subjects']
        assert _subject('ns-a') not in subjects
        assert subjects[0] == _subject('other-ns')

    def test_permission_error_is_not_retried(self, cluster):
        def forbidden(kind, name, namespace=None):
            raise PermissionDeniedError("forbidden", operation="get", kind=str(kind), name=name, status=403)
        cluster.get = forbidden

        with pytest.raises(PermissionDeniedError):
            RBACReconciler(cluster).ensure_cluster_role_binding('ns-a')

        assert cluster.count('create') == 0


class TestNamespaceScopedRBAC:
    """Role, RoleBinding and ServiceAccount inside the install namespace"""

    def test_fresh_namespace_creates_all_objects(self, cluster, options):
        actions = RBACReconciler(cluster).ensure_rbac(options, ScopeDecision.NAMESPACE_SCOPED)

        assert [(a.kind, a.namespace, a.action) for a in actions] == [
            ('Role', 'ns-a', Action.CREATED),
            ('RoleBinding', 'ns-a', Action.CREATED),
            ('ServiceAccount', 'ns-a', Action.CREATED),
        ]
        assert cluster.stored(Kind.ROLE_BINDING, 'kotsadm-rolebinding', 'ns-a')['subjects'] == [_subject('ns-a')]
        assert not any(key[0].startswith('Cluster') for key in cluster.objects)

    def test_role_keeps_externally_added_rules(self, cluster):
        role = ManifestTemplates.role('ns-a')
        role['rules'] = [EXTERNAL_RULE]
        cluster.seed(Kind.ROLE, role, 'ns-a')
        reconciler = RBACReconciler(cluster)

        assert reconciler.ensure_role('ns-a').action == Action.UPDATED
        rules = cluster.stored(Kind.ROLE, 'kotsadm-role', 'ns-a')['rules']
        assert rules == [EXTERNAL_RULE] + ManifestTemplates.default_rules()

        cluster.reset_calls()
        assert reconciler.ensure_role('ns-a').action == Action.UNCHANGED
        assert cluster.count('replace') == 0

    def test_role_with_equivalent_rules_is_unchanged(self, cluster):
        role = ManifestTemplates.role('ns-a')
        role['rules'] = [{'verbs': ['*'], 'resources': ['*'], 'apiGroups': ['*'], 'resourceNames': []}]
        cluster.seed(Kind.ROLE, role, 'ns-a')

        assert RBACReconciler(cluster).ensure_role('ns-a').action == Action.UNCHANGED
        assert cluster.count('replace') == 0

    def test_role_binding_and_service_account_are_never_updated(self, cluster):
        binding = ManifestTemplates.role_binding('ns-a')
        binding['subjects'] = [{'kind': 'User', 'name': 'someone-else'}]
        cluster.seed(Kind.ROLE_BINDING, binding, 'ns-a')
        account = ManifestTemplates.service_account('ns-a')
        account['metadata']['annotations'] = {'owner': 'ops'}
        cluster.seed(Kind.SERVICE_ACCOUNT, account, 'ns-a')
        reconciler = RBACReconciler(cluster)

        assert reconciler.ensure_role_binding('ns-a').action == Action.UNCHANGED
        assert reconciler.ensure_service_account('ns-a').action == Action.UNCHANGED

        assert cluster.count('replace') == 0
        assert cluster.count('create') == 0
        assert cluster.stored(Kind.ROLE_BINDING, 'kotsadm-rolebinding', 'ns-a')['subjects'] == binding['subjects']
        assert cluster.stored(Kind.SERVICE_ACCOUNT, 'kotsadm', 'ns-a')['metadata']['annotations'] == {'owner': 'ops'}
