"""Exceptions raised by pybos."""

from typing import Any, Optional


class BosError(Exception):
    """Base exception for all pybos errors."""


# Local component tree


class BosLocalError(BosError):
    """Local components could not be loaded."""


class BosIoError(BosLocalError):
    """Local filesystem could not be read or written."""


class BosMalformedMetadataError(BosLocalError):
    """A local metadata file does not have the expected shape."""


# Remote store


class BosRpcError(BosError):
    """Remote RPC call failed (transport or response envelope)."""


class BosNetworkError(BosRpcError):
    """Network error while talking to the RPC server."""


class BosInvalidResponseError(BosRpcError):
    """RPC server returned a response that could not be parsed."""


class BosConfigError(BosError):
    """Invalid or missing configuration."""


# Deposit policy


class BosDepositPolicyError(BosError):
    """The signer cannot attach the deposit required for the write."""


class BosPermissionDeniedError(BosDepositPolicyError):
    """The signer has no standing to write to the target namespace."""


class BosInsufficientKeyScopeError(BosDepositPolicyError):
    """A function-call access key cannot cover the required deposit."""


# Submission


class BosSubmitError(BosError):
    """The write transaction was not confirmed as successful."""

    def __init__(self, message: str, status: Optional[Any] = None):
        super().__init__(message)
        self.status = status
