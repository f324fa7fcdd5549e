"""pybos - download, diff, deploy and delete BOS components stored in SocialDB."""

from .api import SocialDbClient
from .exceptions import (
    BosConfigError,
    BosDepositPolicyError,
    BosError,
    BosInsufficientKeyScopeError,
    BosInvalidResponseError,
    BosIoError,
    BosLocalError,
    BosMalformedMetadataError,
    BosNetworkError,
    BosPermissionDeniedError,
    BosRpcError,
    BosSubmitError,
)
from .models import Component, ComponentMetadata, MetadataImage

__all__ = [
    "SocialDbClient",
    "Component",
    "ComponentMetadata",
    "MetadataImage",
    "BosConfigError",
    "BosDepositPolicyError",
    "BosError",
    "BosInsufficientKeyScopeError",
    "BosInvalidResponseError",
    "BosIoError",
    "BosLocalError",
    "BosMalformedMetadataError",
    "BosNetworkError",
    "BosPermissionDeniedError",
    "BosRpcError",
    "BosSubmitError",
]
