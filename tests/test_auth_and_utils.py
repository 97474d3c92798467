"""
Tests for cluster authentication, shared utilities and constants
"""

import logging

import pytest
from unittest.mock import patch
from kubernetes.config.config_exception import ConfigException

from kotsadm_installer.libs.core.auth import ClusterAuth
from kotsadm_installer.libs.core.constants import ErrorMessages, KotsadmConstants, KubernetesConstants
from kotsadm_installer.libs.core.exceptions import AuthenticationError, ConfigurationError, DecodeError
from kotsadm_installer.libs.core.utils import (
    handle_ssl_error,
    mask_sensitive_info,
    setup_logging,
    validate_api_url,
    validate_namespace,
)


class TestClusterAuth:
    """Test ApiClient construction for each credential source"""

    def test_token_configuration(self):
        """Test URL and token produce a bearer-token client"""
        # Act
        auth = ClusterAuth()
        api_client = auth.configure_auth("https://api.cluster.local:6443", "sha256~token")

        # Assert
        assert auth.api_client is api_client
        assert api_client.configuration.host == "https://api.cluster.local:6443"
        assert api_client.configuration.api_key == {"authorization": "sha256~token"}
        assert api_client.configuration.api_key_prefix == {"authorization": "Bearer"}

    def test_skip_tls_disables_verification(self):
        """Test --skip-tls turns off certificate verification"""
        # Act
        api_client = ClusterAuth(skip_tls=True).configure_auth("https://api.cluster.local:6443", "token")

        # Assert
        assert api_client.configuration.verify_ssl is False

    def test_invalid_url_is_a_configuration_error(self):
        """Test a malformed API URL is reported as a configuration problem"""
        with pytest.raises(ConfigurationError):
            ClusterAuth().configure_auth("api.cluster.local", "token")

    @patch('kotsadm_installer.libs.core.auth.config')
    def test_kubeconfig_discovery(self, mock_config):
        """Test kubeconfig is loaded into a fresh configuration"""
        # Act
        auth = ClusterAuth()
        auth.configure_auth(kubeconfig="/tmp/kubeconfig", context="admin")

        # Assert
        mock_config.load_kube_config.assert_called_once()
        kwargs = mock_config.load_kube_config.call_args.kwargs
        assert kwargs['config_file'] == "/tmp/kubeconfig"
        assert kwargs['context'] == "admin"
        mock_config.load_incluster_config.assert_not_called()
        assert auth.api_client is not None

    @patch('kotsadm_installer.libs.core.auth.config')
    def test_falls_back_to_in_cluster(self, mock_config):
        """Test in-cluster credentials are used when no kubeconfig exists"""
        # Arrange
        mock_config.load_kube_config.side_effect = ConfigException("Invalid kube-config file")

        # Act
        ClusterAuth().configure_auth()

        # Assert
        mock_config.load_incluster_config.assert_called_once()

    @patch('kotsadm_installer.libs.core.auth.config')
    def test_explicit_kubeconfig_does_not_fall_back(self, mock_config):
        """Test an unusable explicit kubeconfig fails instead of using in-cluster credentials"""
        # Arrange
        mock_config.load_kube_config.side_effect = ConfigException("context not found")

        # Act & Assert
        with pytest.raises(AuthenticationError):
            ClusterAuth().configure_auth(context="missing")
        mock_config.load_incluster_config.assert_not_called()

    @patch('kotsadm_installer.libs.core.auth.config')
    def test_no_credentials_anywhere(self, mock_config):
        """Test a clear error when neither kubeconfig nor in-cluster config exists"""
        # Arrange
        mock_config.load_kube_config.side_effect = ConfigException("Invalid kube-config file")
        mock_config.load_incluster_config.side_effect = ConfigException("Service host/port is not set")

        # Act & Assert
        with pytest.raises(AuthenticationError) as exc_info:
            ClusterAuth().configure_auth()
        assert "No kubeconfig or in-cluster configuration found" in str(exc_info.value)


class TestCentralizedErrorHandling:
    """Test centralized SSL error handling"""

    def test_ssl_error_handler_with_cert_error(self):
        """Test SSL error handler with certificate verification error"""
        # Arrange
        mock_error = Exception("certificate verify failed")

        # Act & Assert
        with pytest.raises(AuthenticationError) as exc_info:
            handle_ssl_error(mock_error)
        assert str(exc_info.value) == ErrorMessages.SSLError.CERT_VERIFICATION_FAILED.value

    def test_ssl_error_handler_with_custom_exception(self):
        """Test SSL error handler raises the requested exception class"""
        with pytest.raises(DecodeError):
            handle_ssl_error(Exception("SSL: WRONG_VERSION_NUMBER"), DecodeError)

    def test_ssl_error_handler_with_generic_error(self):
        """Test non-SSL failures are reported as connection errors"""
        with pytest.raises(AuthenticationError) as exc_info:
            handle_ssl_error(Exception("Connection refused"))
        assert "Connection error: Connection refused" in str(exc_info.value)


class TestUtilities:
    """Test validation and masking helpers"""

    @pytest.mark.parametrize("namespace", ["default", "kotsadm", "my-app-1", "a" * 63])
    def test_valid_namespaces(self, namespace):
        assert validate_namespace(namespace) is True

    @pytest.mark.parametrize("namespace", ["", "My-App", "-leading", "trailing-", "under_score", "a" * 64])
    def test_invalid_namespaces(self, namespace):
        with pytest.raises(ConfigurationError):
            validate_namespace(namespace)

    def test_api_url_validation(self):
        assert validate_api_url("https://api.cluster.local:6443") is True
        with pytest.raises(ConfigurationError):
            validate_api_url("ftp://api.cluster.local")

    def test_mask_sensitive_info(self):
        """Test tokens never reach log output"""
        # Act
        masked = mask_sensitive_info("Authorization: Bearer abc.def-123 for sha256~xyz", token="sha256~xyz")

        # Assert
        assert "abc.def-123" not in masked
        assert "sha256~xyz" not in masked
        assert "Bearer ***MASKED***" in masked

    def test_setup_logging_quiets_kubernetes_client(self):
        setup_logging(debug=False)

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("kubernetes").level == logging.WARNING


class TestConstants:
    """Test constants usage"""

    def test_kotsadm_names(self):
        """Test the object names kotsadm itself expects"""
        assert KotsadmConstants.SERVICE_ACCOUNT_NAME == "kotsadm"
        assert KotsadmConstants.ROLE_NAME == "kotsadm-role"
        assert KotsadmConstants.ROLE_BINDING_NAME == "kotsadm-rolebinding"
        assert KotsadmConstants.label_selector() == "app=kotsadm"

    def test_kind_string_form(self):
        assert str(KubernetesConstants.Kind.CLUSTER_ROLE_BINDING) == "ClusterRoleBinding"
        assert f"{KubernetesConstants.Kind.ROLE}" == "Role"
