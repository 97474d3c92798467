"""
Authentication Module

Builds a configured kubernetes ApiClient from an explicit URL and token, a
kubeconfig file, or the in-cluster service account.
"""

import logging
from typing import Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from .exceptions import AuthenticationError, ConfigurationError
from .utils import disable_ssl_warnings, handle_ssl_error, mask_sensitive_info, validate_api_url

logger = logging.getLogger(__name__)


class ClusterAuth:
    """Handles cluster authentication and context discovery"""

    def __init__(self, skip_tls: bool = False):
        """
        Initialize authentication handler

        Args:
            skip_tls: Whether to skip TLS verification for requests
        """
        self.skip_tls = skip_tls
        self.api_url: Optional[str] = None
        self.api_client: Optional[client.ApiClient] = None

    def configure_auth(self, api_url: str = None, token: str = None,
                       kubeconfig: str = None, context: str = None) -> client.ApiClient:
        """
        Configure authentication with provided URL and token, or discover from context

        Args:
            api_url: Kubernetes API URL (optional)
            token: Bearer token (optional, required with api_url)
            kubeconfig: Path to a kubeconfig file (optional)
            context: kubeconfig context to use (optional)

        Returns:
            Configured ApiClient

        Raises:
            AuthenticationError: If authentication configuration fails
            ConfigurationError: If provided parameters are invalid
        """
        try:
            if api_url and token:
                validate_api_url(api_url)
                logger.info("Using provided API URL and token for authentication")
                return self._configure_with_token(api_url, token)

            return self._discover_from_context(kubeconfig, context)

        except (ConfigurationError, AuthenticationError):
            raise
        except Exception as e:
            raise AuthenticationError(f"Failed to configure authentication: {e}") from e

    def _configure_with_token(self, api_url: str, token: str) -> client.ApiClient:
        try:
            configuration = client.Configuration()
            configuration.host = api_url
            configuration.api_key = {"authorization": token}
            configuration.api_key_prefix = {"authorization": "Bearer"}
            self._apply_tls_settings(configuration)

            self.api_url = api_url
            self.api_client = client.ApiClient(configuration)

            logger.info(f"Configured Kubernetes client for {mask_sensitive_info(api_url, token)}")
            return self.api_client

        except Exception as e:
            handle_ssl_error(e, AuthenticationError)

    def _discover_from_context(self, kubeconfig: str = None, context: str = None) -> client.ApiClient:
        """
        Discover authentication from kubeconfig or in-cluster config

        Raises:
            AuthenticationError: If neither source is usable
        """
        configuration = client.Configuration()

        try:
            config.load_kube_config(config_file=kubeconfig, context=context,
                                    client_configuration=configuration)
            logger.info("Loaded kubeconfig" + (f" context {context}" if context else ""))
        except (ConfigException, OSError) as kubeconfig_error:
            if kubeconfig or context:
                # An explicit kubeconfig must not silently fall back to in-cluster credentials
                raise AuthenticationError(f"Failed to load kubeconfig: {kubeconfig_error}") from kubeconfig_error

            logger.debug(f"No usable kubeconfig ({kubeconfig_error}), trying in-cluster config")
            try:
                config.load_incluster_config(client_configuration=configuration)
                logger.info("Loaded in-cluster config")
            except ConfigException as incluster_error:
                raise AuthenticationError(
                    f"No kubeconfig or in-cluster configuration found: {incluster_error}"
                ) from incluster_error

        self._apply_tls_settings(configuration)
        self.api_url = configuration.host
        self.api_client = client.ApiClient(configuration)
        return self.api_client

    def _apply_tls_settings(self, configuration: client.Configuration) -> None:
        if self.skip_tls:
            configuration.verify_ssl = False
            configuration.ssl_ca_cert = None
            disable_ssl_warnings()
