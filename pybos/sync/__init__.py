"""Component sync for pybos - download, diff, deploy and delete."""

from .comparator import ComponentComparator, SyncAction, SyncDecision, classify
from .deposit import (
    FullAccess,
    FunctionCallPermission,
    Permission,
    compute_deposit,
    select_base_required,
)
from .download import download_components, parse_manifest
from .engine import DeployEngine, DeployResult, DeployStage, SignerKey
from .operations import (
    ExportSubmitter,
    FunctionCallTransaction,
    SubmitResult,
    Submitter,
    build_delete_payload,
    build_write_payload,
)
from .remote import RemoteComponentClient
from .scanner import ComponentScanner, LocalComponentFile, load_local_records

__all__ = [
    "DeployEngine",
    "DeployResult",
    "DeployStage",
    "SignerKey",
    "ComponentComparator",
    "SyncAction",
    "SyncDecision",
    "classify",
    "FullAccess",
    "FunctionCallPermission",
    "Permission",
    "compute_deposit",
    "select_base_required",
    "download_components",
    "parse_manifest",
    "ExportSubmitter",
    "FunctionCallTransaction",
    "SubmitResult",
    "Submitter",
    "build_delete_payload",
    "build_write_payload",
    "RemoteComponentClient",
    "ComponentScanner",
    "LocalComponentFile",
    "load_local_records",
]
