"""
Configuration Management

Loads the installer configuration file, applies environment and command line
overrides, and turns the result into DeployOptions for a reconcile run.

Precedence, highest first: command line flags, environment variables,
configuration file, built-in defaults.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from decouple import config as env_config

from .constants import ErrorMessages, KotsadmConstants, KubernetesConstants, ReconcileConstants
from .exceptions import ConfigurationError
from .models import DeployOptions
from .utils import validate_api_url, validate_namespace

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration loading and validation"""

    CONFIG_SCHEMA = {
        'kotsadm': {
            'type': dict,
            'required': False,
            'fields': {
                'namespace': {'type': str, 'required': False},
                'registry': {'type': str, 'required': False},
                'tag': {'type': str, 'required': False},
                'imagePullPolicy': {'type': str, 'required': False,
                                    'choices': ['Always', 'IfNotPresent', 'Never']},
                'imagePullSecret': {'type': str, 'required': False},
                'serviceType': {'type': str, 'required': False,
                                'choices': ['ClusterIP', 'NodePort', 'LoadBalancer']},
            }
        },
        'install': {
            'type': dict,
            'required': False,
            'fields': {
                'wait': {'type': bool, 'required': False},
                'timeoutSeconds': {'type': (int, float), 'required': False},
                'applicationMetadata': {'type': str, 'required': False},
            }
        },
        'global': {
            'type': dict,
            'required': False,
            'fields': {
                'skip_tls': {'type': bool, 'required': False},
                'debug': {'type': bool, 'required': False},
                'kubeconfig': {'type': str, 'required': False},
                'context': {'type': str, 'required': False},
                'apiUrl': {'type': str, 'required': False},
            }
        },
    }

    # Environment variable -> dotted config key
    ENVIRONMENT_OVERRIDES = {
        'KOTSADM_NAMESPACE': 'kotsadm.namespace',
        'KOTSADM_REGISTRY': 'kotsadm.registry',
        'KOTSADM_TAG': 'kotsadm.tag',
        'KUBE_API_URL': 'global.apiUrl',
    }

    def __init__(self):
        """Initialize configuration manager"""
        self.config_data: Dict[str, Any] = {}
        self.config_file_path: Optional[str] = None

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file

        Args:
            config_path: Path to configuration file

        Returns:
            Dict containing configuration data

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise ConfigurationError(ErrorMessages.ConfigError.CONFIG_FILE_NOT_FOUND.format(config_path=config_path))

        if not config_file.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_file, 'r') as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}")

        self.config_file_path = config_path
        logger.info(f"Loaded configuration from {config_path}")

        self._validate_config()
        return self.config_data

    def _validate_config(self) -> None:
        if not isinstance(self.config_data, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        self._validate_against_schema(self.config_data, self.CONFIG_SCHEMA, "config")

    def _validate_against_schema(self, data: Dict[str, Any], schema: Dict[str, Any], path: str = "") -> None:
        """
        Validate data against schema definition

        Args:
            data: Data to validate
            schema: Schema definition
            path: Current path for error reporting

        Raises:
            ConfigurationError: If data doesn't match schema
        """
        for key, field_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key in data:
                value = data[key]

                if value is None and not field_schema.get('required', False):
                    continue

                expected_type = field_schema['type']
                # bool is an int subclass but never a valid number here
                if not isinstance(value, expected_type) or (isinstance(value, bool) and expected_type is not bool):
                    if isinstance(expected_type, tuple):
                        type_name = " or ".join(t.__name__ for t in expected_type)
                    else:
                        type_name = expected_type.__name__
                    raise ConfigurationError(f"{current_path} must be a {type_name}")

                if 'choices' in field_schema and value not in field_schema['choices']:
                    choices_str = ', '.join(f"'{c}'" for c in field_schema['choices'])
                    raise ConfigurationError(f"{current_path} must be one of: {choices_str}")

                if expected_type == dict and 'fields' in field_schema:
                    self._validate_against_schema(value, field_schema['fields'], current_path)

            elif field_schema.get('required', False):
                raise ConfigurationError(f"Required field {current_path} is missing")

    def get_value(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key

        Args:
            key: Configuration key (supports dot notation like 'kotsadm.namespace')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config_data

        try:
            for k in key.split('.'):
                value = value[k]
            return default if value is None else value
        except (KeyError, TypeError):
            return default

    def apply_environment(self) -> None:
        """Overlay values from the environment (or a .env file) onto the loaded configuration"""
        for variable, key in self.ENVIRONMENT_OVERRIDES.items():
            value = env_config(variable, default=None)
            if value:
                section, option = key.split('.')
                self.config_data.setdefault(section, {})
                if self.config_data[section] is None:
                    self.config_data[section] = {}
                self.config_data[section][option] = value
                logger.debug(f"Using {variable} from environment for {key}")

    def build_deploy_options(self, overrides: Optional[Dict[str, Any]] = None) -> DeployOptions:
        """
        Resolve the effective DeployOptions

        Args:
            overrides: Values from the command line keyed by DeployOptions field
                name plus 'application_metadata_path'; None values are ignored

        Returns:
            DeployOptions for one reconcile run

        Raises:
            ConfigurationError: If the namespace is invalid or the metadata file is unreadable
        """
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        values = {
            'namespace': self.get_value('kotsadm.namespace', KubernetesConstants.DEFAULT_NAMESPACE),
            'kotsadm_registry': self.get_value('kotsadm.registry', KotsadmConstants.DEFAULT_REGISTRY),
            'kotsadm_tag': self.get_value('kotsadm.tag', KotsadmConstants.DEFAULT_TAG),
            'image_pull_policy': self.get_value('kotsadm.imagePullPolicy',
                                                KotsadmConstants.DEFAULT_IMAGE_PULL_POLICY),
            'image_pull_secret': self.get_value('kotsadm.imagePullSecret'),
            'service_type': self.get_value('kotsadm.serviceType', KotsadmConstants.DEFAULT_SERVICE_TYPE),
            'wait_for_ready': self.get_value('install.wait', True),
            'timeout_seconds': self.get_value('install.timeoutSeconds', ReconcileConstants.DEFAULT_READY_TIMEOUT),
        }
        metadata_path = overrides.pop('application_metadata_path', None) or self.get_value('install.applicationMetadata')
        values.update(overrides)

        validate_namespace(values['namespace'])

        if values['timeout_seconds'] <= 0:
            raise ConfigurationError(f"Readiness timeout must be positive: {values['timeout_seconds']}")

        if metadata_path:
            values['application_metadata'] = read_application_metadata(metadata_path)

        return DeployOptions(**values)

    def get_connection_settings(self, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Resolve cluster connection settings

        Returns:
            Dict with api_url, token, kubeconfig, context and skip_tls
        """
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        settings = {
            'api_url': self.get_value('global.apiUrl'),
            'token': env_config('KUBE_API_TOKEN', default=None),
            'kubeconfig': self.get_value('global.kubeconfig'),
            'context': self.get_value('global.context'),
            'skip_tls': self.get_value('global.skip_tls', False),
        }
        settings.update(overrides)

        if settings['api_url']:
            validate_api_url(settings['api_url'])
            if not settings['token']:
                raise ConfigurationError("An API token is required when an API URL is given")

        return settings


def read_application_metadata(path: str) -> bytes:
    """
    Read the raw application descriptor bytes

    Raises:
        ConfigurationError: If the file does not exist or cannot be read
    """
    metadata_file = Path(path)
    if not metadata_file.is_file():
        raise ConfigurationError(ErrorMessages.ConfigError.METADATA_FILE_NOT_FOUND.format(path=path))

    try:
        return metadata_file.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Failed to read application metadata {path}: {e}")
