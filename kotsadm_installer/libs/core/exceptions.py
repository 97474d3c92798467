"""
Exceptions Module

Exception hierarchy for the kotsadm installer. Every error raised by the
reconcile stages derives from InstallerError so callers can catch one type and
still tell stages and causes apart.
"""

from typing import Optional


class InstallerError(Exception):
    """Base exception for the kotsadm installer"""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class ConfigurationError(InstallerError):
    """Invalid configuration, flags or input files"""


class AuthenticationError(InstallerError):
    """Cluster credentials could not be loaded"""


class DecodeError(InstallerError):
    """Application metadata could not be parsed as a Kubernetes object"""


class SchemaMismatchError(InstallerError):
    """Application metadata decoded to an unexpected group/version/kind"""

    def __init__(self, message: str, actual: Optional[str] = None, expected: Optional[str] = None):
        super().__init__(message)
        self.actual = actual
        self.expected = expected


class APIError(InstallerError):
    """
    Error returned by the Kubernetes API.

    Carries the operation and object identity so the failure can be diagnosed
    without re-running at a higher verbosity.
    """

    def __init__(self, message: str, operation: str = "", kind: str = "", name: str = "",
                 namespace: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.status = status

    @property
    def target(self) -> str:
        """Human readable object identity, e.g. Role default/kotsadm-role"""
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


class NotFoundError(APIError):
    """Object does not exist (expected signal to create it)"""


class AlreadyExistsError(APIError):
    """Object was created concurrently (treated as success by callers)"""


class ConflictError(APIError):
    """Update rejected because the object changed since it was read"""


class PermissionDeniedError(APIError):
    """Credentials are invalid or lack the RBAC permissions for the call"""


class TransientAPIError(APIError):
    """Transport failure or server-side error that may succeed on retry"""


class DeploymentMergeError(InstallerError):
    """Existing deployment cannot be merged with the desired one"""


class ReadinessTimeoutError(InstallerError):
    """The workload did not become ready before the deadline"""

    def __init__(self, message: str, elapsed: float, deadline: float):
        super().__init__(message)
        self.elapsed = elapsed
        self.deadline = deadline


class StageError(InstallerError):
    """Unexpected failure inside a reconcile stage"""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"unexpected error: {cause}", stage=stage)
        self.cause = cause
