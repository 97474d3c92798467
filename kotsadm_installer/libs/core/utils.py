"""
Core Utilities

Logging setup, input validation and TLS error helpers shared by the installer.
"""

import logging
import re
import urllib3
from typing import Type

from .constants import ErrorMessages
from .exceptions import AuthenticationError, ConfigurationError, InstallerError

# RFC 1123 label, the form Kubernetes requires for namespace names
NAMESPACE_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
NAMESPACE_MAX_LENGTH = 63

API_URL_PATTERN = re.compile(r'^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?(?:/.*)?$')

BEARER_PATTERN = re.compile(r'(Bearer\s+)\S+')
MASK = "***MASKED***"


def setup_logging(debug: bool = False) -> None:
    """
    Configure root logging for a CLI run.

    Args:
        debug: Log at DEBUG instead of INFO
    """
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(console_handler)

    # The kubernetes client logs every request body at DEBUG
    logging.getLogger("kubernetes").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger(__name__).debug("Debug logging enabled")


def disable_ssl_warnings() -> None:
    """Silence urllib3's per-request warning once TLS verification is off"""
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


def mask_sensitive_info(text: str, token: str = None) -> str:
    """
    Hide the API token in text that is about to be logged.

    Both the literal token and any Authorization bearer value are replaced.
    """
    if not text:
        return text

    if token:
        text = text.replace(token, MASK)
    return BEARER_PATTERN.sub(rf'\g<1>{MASK}', text)


def validate_namespace(namespace: str) -> bool:
    """
    Check that namespace is a usable Kubernetes namespace name.

    Raises:
        ConfigurationError: If the name is empty, malformed or too long
    """
    if not namespace or not isinstance(namespace, str):
        raise ConfigurationError("Namespace cannot be empty")

    if not NAMESPACE_PATTERN.match(namespace):
        raise ConfigurationError(ErrorMessages.ConfigError.INVALID_NAMESPACE.format(namespace=namespace))

    if len(namespace) > NAMESPACE_MAX_LENGTH:
        raise ConfigurationError(ErrorMessages.ConfigError.NAMESPACE_TOO_LONG.format(namespace=namespace))

    return True


def validate_api_url(url: str) -> bool:
    """
    Check that url looks like an http(s) Kubernetes API endpoint.

    Raises:
        ConfigurationError: If URL is invalid
    """
    if not url or not isinstance(url, str):
        raise ConfigurationError("Kubernetes API URL cannot be empty")

    if not API_URL_PATTERN.match(url):
        raise ConfigurationError(ErrorMessages.ConfigError.INVALID_API_URL.format(url=url))

    return True


def handle_ssl_error(error: Exception, exception_class: Type[InstallerError] = AuthenticationError) -> None:
    """
    Re-raise a connection failure as an installer error with a readable message

    Args:
        error: The caught exception
        exception_class: Installer error type to raise

    Raises:
        InstallerError: Always, of type exception_class
    """
    message = str(error)

    if "certificate verify failed" in message or "CERTIFICATE_VERIFY_FAILED" in message:
        raise exception_class(ErrorMessages.SSLError.CERT_VERIFICATION_FAILED.value) from error
    if "SSLError" in message or "SSL:" in message:
        raise exception_class(ErrorMessages.SSLError.CONNECTION_ERROR.format(error=error)) from error
    raise exception_class(f"Connection error: {error}") from error
