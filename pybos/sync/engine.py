"""Deploy engine: runs one local -> SocialDB synchronization or deletion."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import BosSubmitError
from ..output import OutputFormatter
from ..utils import DEFAULT_SET_GAS, YOCTO_PER_NEAR
from .comparator import ComponentComparator, SyncAction, SyncDecision
from .deposit import Permission, compute_deposit, select_base_required
from .operations import (
    FunctionCallTransaction,
    SubmitResult,
    Submitter,
    build_delete_payload,
    build_write_payload,
    payload_component_names,
)
from .remote import RemoteComponentClient
from .scanner import load_local_records

logger = logging.getLogger(__name__)

FAILURE_NOUNS = {"deploy": "deployment", "delete": "deletion"}


class DeployStage(str, Enum):
    """Stages of a deploy, in the order they are reached."""

    IDLE = "idle"
    LOCAL_LOADED = "local_loaded"
    REMOTE_FETCHED = "remote_fetched"
    DIFFED = "diffed"
    NO_CHANGES = "no_changes"
    PAYLOAD_BUILT = "payload_built"
    DEPOSIT_COMPUTED = "deposit_computed"
    SUBMITTED = "submitted"
    REPORTED = "reported"
    FAILED = "failed"


@dataclass
class SignerKey:
    """Account and key that will sign the write."""

    account_id: str
    public_key: str
    permission: Optional[Permission] = None
    """Key permission; looked up over RPC when not given"""


@dataclass
class DeployResult:
    """Outcome of a deploy or delete that did not fail."""

    stage: DeployStage
    target: str
    decisions: list[SyncDecision] = field(default_factory=list)
    deployed: list[str] = field(default_factory=list)
    """Names written by a confirmed deploy transaction"""

    deleted: list[str] = field(default_factory=list)
    """Names removed by a confirmed delete transaction"""

    exported: list[str] = field(default_factory=list)
    """Names in a transaction handed to an external signer, not yet confirmed"""

    deposit: int = 0
    transaction: Optional[FunctionCallTransaction] = None
    submit_result: Optional[SubmitResult] = None
    dry_run: bool = False
    operation: str = "deploy"

    @property
    def has_changes(self) -> bool:
        return self.stage is not DeployStage.NO_CHANGES

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "stage": self.stage.value,
            "target": self.target,
            "dry_run": self.dry_run,
            "deposit": str(self.deposit),
            "decisions": {d.name: d.action.value for d in self.decisions},
            "deployed": self.deployed,
            "deleted": self.deleted,
            "exported": self.exported,
        }


class DeployEngine:
    """Deploys changed local components to one SocialDB owner.

    A deploy loads the local tree, fetches the matching remote components,
    keeps only new or changed ones, prices the write and hands it to the
    submitter. Every error before submission leaves both sides untouched.
    """

    def __init__(
        self,
        remote: RemoteComponentClient,
        submitter: Optional[Submitter] = None,
        output: Optional[OutputFormatter] = None,
        minimal_deposit: int = 1,
        new_account_deposit: int = YOCTO_PER_NEAR,
        gas: int = DEFAULT_SET_GAS,
    ):
        """Initialize deploy engine.

        Args:
            remote: Remote component client
            submitter: Signs and sends the transaction (required unless dry run)
            output: Output formatter for displaying progress/status
            minimal_deposit: Deposit for self-writes without a grant (yoctoNEAR)
            new_account_deposit: Deposit for owners without components (yoctoNEAR)
            gas: Gas attached to the ``set`` call
        """
        self.remote = remote
        self.submitter = submitter
        self.output = output or OutputFormatter()
        self.comparator = ComponentComparator()
        self.minimal_deposit = minimal_deposit
        self.new_account_deposit = new_account_deposit
        self.gas = gas
        self.stage = DeployStage.IDLE

    def _advance(self, stage: DeployStage) -> None:
        logger.debug(f"Deploy stage: {self.stage.value} -> {stage.value}")
        self.stage = stage

    def deploy(
        self,
        root: Path,
        target: str,
        signer: SignerKey,
        dry_run: bool = False,
    ) -> DeployResult:
        """Deploy new and modified components from ``root`` to ``target``.

        Args:
            root: Local component directory
            target: Account receiving the components
            signer: Signing account and key
            dry_run: Stop after computing the deposit

        Returns:
            DeployResult in stage NO_CHANGES, DEPOSIT_COMPUTED (dry run),
            SUBMITTED (exported for an external signer) or REPORTED

        Raises:
            BosLocalError: Local tree could not be loaded
            BosRpcError: Remote state could not be fetched
            BosDepositPolicyError: The signer cannot pay for the write
            BosSubmitError: The write was not confirmed
        """
        self.stage = DeployStage.IDLE

        local = load_local_records(root)
        self._advance(DeployStage.LOCAL_LOADED)
        if not local:
            self.output.info(f"There are no components in {root}. Goodbye.")
            self._advance(DeployStage.NO_CHANGES)
            return DeployResult(stage=self.stage, target=target, dry_run=dry_run)

        remote = self.remote.fetch_records(target, local.keys())
        self._advance(DeployStage.REMOTE_FETCHED)

        decisions = self.comparator.compare(local, remote)
        self._advance(DeployStage.DIFFED)
        self._display_decisions(decisions, target, remote_is_empty=not remote)

        changed = {d.name: d.local for d in decisions if d.action.needs_write}
        if not changed:
            self.output.info(
                f"There are no new or modified components in {root}. Goodbye."
            )
            self._advance(DeployStage.NO_CHANGES)
            return DeployResult(
                stage=self.stage, target=target, decisions=decisions, dry_run=dry_run
            )

        args = build_write_payload(target, changed)
        self._advance(DeployStage.PAYLOAD_BUILT)

        result = DeployResult(
            stage=self.stage, target=target, decisions=decisions, dry_run=dry_run
        )
        return self._price_and_submit(result, signer, args, bool(remote))

    def delete(
        self,
        target: str,
        names: Iterable[str],
        signer: SignerKey,
        dry_run: bool = False,
    ) -> DeployResult:
        """Remove the named components from ``target``.

        Names that do not exist remotely are skipped. The local tree is not
        read, so the run goes straight from IDLE to REMOTE_FETCHED.

        Returns:
            DeployResult with ``operation == "delete"``; stages as for deploy

        Raises:
            BosRpcError: Remote state could not be fetched
            BosDepositPolicyError: The signer cannot pay for the write
            BosSubmitError: The write was not confirmed
        """
        self.stage = DeployStage.IDLE

        requested = sorted(set(names))
        remote = self.remote.fetch_records(target, requested)
        self._advance(DeployStage.REMOTE_FETCHED)

        existing = [name for name in requested if name in remote]
        for name in requested:
            if name not in remote:
                self.output.warning(
                    f"Component <{name}> does not exist on <{target}>, skipping"
                )
        if not existing:
            self.output.info("There are no components to delete. Goodbye.")
            self._advance(DeployStage.NO_CHANGES)
            return DeployResult(
                stage=self.stage, target=target, dry_run=dry_run, operation="delete"
            )
        for name in existing:
            self.output.info(f"Component <{name}> will be deleted from <{target}>")

        args = build_delete_payload(target, existing)
        self._advance(DeployStage.PAYLOAD_BUILT)

        result = DeployResult(
            stage=self.stage, target=target, dry_run=dry_run, operation="delete"
        )
        return self._price_and_submit(result, signer, args, True)

    def _price_and_submit(
        self,
        result: DeployResult,
        signer: SignerKey,
        args: dict,
        target_has_components: bool,
    ) -> DeployResult:
        target = result.target
        deposit = self._compute_deposit(signer, target, target_has_components)
        transaction = FunctionCallTransaction(
            signer_id=signer.account_id,
            public_key=signer.public_key,
            receiver_id=self.remote.contract_id,
            args=args,
            deposit=deposit,
            gas=self.gas,
        )
        self._advance(DeployStage.DEPOSIT_COMPUTED)
        result.stage = self.stage
        result.deposit = deposit
        result.transaction = transaction

        if result.dry_run:
            self.output.info("Dry run: No transaction will be submitted")
            return result

        if self.submitter is None:
            raise ValueError("A submitter is required unless dry_run is set")

        try:
            submit_result = self.submitter.submit(transaction)
        except Exception:
            self._advance(DeployStage.FAILED)
            result.stage = self.stage
            raise
        self._advance(DeployStage.SUBMITTED)
        result.stage = self.stage
        result.submit_result = submit_result

        if not submit_result.success:
            self._advance(DeployStage.FAILED)
            result.stage = self.stage
            raise BosSubmitError(
                f"Components {FAILURE_NOUNS[result.operation]} failed!",
                status=submit_result.status,
            )

        names = payload_component_names(transaction.args, target)
        if not submit_result.confirmed:
            result.exported = names
            return result

        if result.operation == "delete":
            result.deleted = names
        else:
            result.deployed = names
        self._advance(DeployStage.REPORTED)
        result.stage = self.stage
        return result

    def _compute_deposit(
        self, signer: SignerKey, target: str, target_has_components: bool
    ) -> int:
        base_required = select_base_required(
            target_has_components, self.new_account_deposit
        )
        permission = signer.permission
        if permission is None:
            permission = self.remote.get_access_key_permission(
                signer.account_id, signer.public_key
            )
        deposit = compute_deposit(
            signer=signer.account_id,
            signer_public_key=signer.public_key,
            permission=permission,
            target=target,
            store_contract=self.remote.contract_id,
            is_grant=self.remote.is_write_permission_granted,
            base_required=base_required,
            minimal_deposit=self.minimal_deposit,
        )
        logger.debug(f"Deposit for <{target}>: {deposit} yoctoNEAR")
        return deposit

    def _display_decisions(
        self, decisions: list[SyncDecision], target: str, remote_is_empty: bool
    ) -> None:
        if self.output.quiet:
            return
        if remote_is_empty:
            self.output.info(
                f"All local components will be deployed to <{target}> as new."
            )
            return
        for decision in decisions:
            if decision.action is SyncAction.NEW:
                self.output.info(f"Found new component <{decision.name}> to deploy")
            elif decision.action is SyncAction.UNCHANGED:
                self.output.info(f"Component <{decision.name}> has not changed")
            else:
                self.output.info(f"Component <{decision.name}>: {decision.reason}")
