"""Tests for the deploy engine."""

from unittest.mock import Mock

import pytest

from pybos.exceptions import (
    BosInsufficientKeyScopeError,
    BosIoError,
    BosNetworkError,
    BosPermissionDeniedError,
    BosSubmitError,
)
from pybos.models import Component, ComponentMetadata
from pybos.sync import (
    DeployEngine,
    DeployStage,
    FullAccess,
    FunctionCallPermission,
    SignerKey,
    SubmitResult,
)

NEW_ACCOUNT = 10**24

SIGNER = SignerKey(
    account_id="alice.near", public_key="ed25519:key", permission=FullAccess()
)


class TestDeployEngine:
    """Test DeployEngine functionality."""

    @pytest.fixture
    def mock_submitter(self):
        submitter = Mock()
        submitter.submit.return_value = SubmitResult(success=True, status="ok")
        return submitter

    @pytest.fixture
    def engine(self, mock_remote, mock_submitter, mock_output):
        return DeployEngine(
            mock_remote,
            mock_submitter,
            mock_output,
            minimal_deposit=1,
            new_account_deposit=NEW_ACCOUNT,
        )

    @pytest.fixture
    def src(self, temp_dir):
        (temp_dir / "a.jsx").write_text("X")
        (temp_dir / "b.jsx").write_text("Y")
        return temp_dir

    def test_create_engine(self, mock_remote, mock_submitter, mock_output):
        engine = DeployEngine(mock_remote, mock_submitter, mock_output)
        assert engine.remote == mock_remote
        assert engine.submitter == mock_submitter
        assert engine.stage == DeployStage.IDLE

    def test_deploys_only_new_component(
        self, engine, src, mock_remote, mock_submitter
    ):
        """Local {a, b}, remote {a}: only b is written, deposit 0."""
        mock_remote.fetch_records.return_value = {"a": Component(code="X")}
        mock_remote.is_write_permission_granted.return_value = True

        result = engine.deploy(src, "alice.near", SIGNER)

        mock_remote.fetch_records.assert_called_once()
        owner, names = mock_remote.fetch_records.call_args[0]
        assert owner == "alice.near"
        assert set(names) == {"a", "b"}

        [transaction] = mock_submitter.submit.call_args[0]
        assert transaction.args == {
            "data": {"alice.near": {"widget": {"b": {"": "Y"}}}}
        }
        assert transaction.receiver_id == "social.near"
        assert transaction.method_name == "set"
        assert transaction.deposit == 0
        assert result.deposit == 0
        assert result.deployed == ["b"]
        assert result.stage == DeployStage.REPORTED
        assert engine.stage == DeployStage.REPORTED

    def test_new_owner_pays_account_allocation(
        self, engine, temp_dir, mock_remote, mock_submitter
    ):
        """No remote components at all: everything is new, base is nonzero."""
        (temp_dir / "only.jsx").write_text("code")

        result = engine.deploy(temp_dir, "alice.near", SIGNER)

        [transaction] = mock_submitter.submit.call_args[0]
        assert transaction.args["data"]["alice.near"]["widget"] == {
            "only": {"": "code"}
        }
        assert transaction.deposit == NEW_ACCOUNT
        assert result.deployed == ["only"]

    def test_no_changes_skips_submit(self, engine, src, mock_remote, mock_submitter):
        mock_remote.fetch_records.return_value = {
            "a": Component(code="X"),
            "b": Component(code="Y"),
        }

        result = engine.deploy(src, "alice.near", SIGNER)

        assert result.stage == DeployStage.NO_CHANGES
        assert not result.has_changes
        assert result.deployed == []
        mock_submitter.submit.assert_not_called()
        mock_remote.is_write_permission_granted.assert_not_called()

    def test_empty_local_tree_skips_remote(
        self, engine, temp_dir, mock_remote, mock_submitter
    ):
        result = engine.deploy(temp_dir, "alice.near", SIGNER)

        assert result.stage == DeployStage.NO_CHANGES
        mock_remote.fetch_records.assert_not_called()
        mock_submitter.submit.assert_not_called()

    def test_metadata_change_is_deployed(
        self, engine, temp_dir, mock_remote, mock_submitter
    ):
        (temp_dir / "a.jsx").write_text("X")
        (temp_dir / "a.metadata.json").write_text('{"name": "A"}')
        mock_remote.fetch_records.return_value = {"a": Component(code="X")}
        mock_remote.is_write_permission_granted.return_value = True

        result = engine.deploy(temp_dir, "alice.near", SIGNER)

        [transaction] = mock_submitter.submit.call_args[0]
        assert transaction.args["data"]["alice.near"]["widget"]["a"] == {
            "": "X",
            "metadata": {"name": "A"},
        }
        assert result.deployed == ["a"]

    def test_local_error_stops_before_remote(self, engine, temp_dir, mock_remote):
        with pytest.raises(BosIoError):
            engine.deploy(temp_dir / "missing", "alice.near", SIGNER)

        mock_remote.fetch_records.assert_not_called()
        assert engine.stage == DeployStage.IDLE

    def test_rpc_error_stops_before_submit(
        self, engine, src, mock_remote, mock_submitter
    ):
        mock_remote.fetch_records.side_effect = BosNetworkError("down")

        with pytest.raises(BosNetworkError):
            engine.deploy(src, "alice.near", SIGNER)

        assert engine.stage == DeployStage.LOCAL_LOADED
        mock_submitter.submit.assert_not_called()

    def test_permission_denied_stops_before_submit(
        self, engine, src, mock_remote, mock_submitter
    ):
        """Writing into another owner's namespace without a grant is denied."""
        with pytest.raises(BosPermissionDeniedError):
            engine.deploy(src, "bob.near", SIGNER)

        assert engine.stage == DeployStage.PAYLOAD_BUILT
        mock_submitter.submit.assert_not_called()

    def test_restricted_key_cannot_pay_allocation(
        self, engine, src, mock_remote, mock_submitter
    ):
        mock_remote.is_write_permission_granted.return_value = True
        signer = SignerKey(
            account_id="alice.near",
            public_key="ed25519:key",
            permission=FunctionCallPermission(receiver_id="social.near"),
        )

        with pytest.raises(BosInsufficientKeyScopeError):
            engine.deploy(src, "alice.near", signer)

        mock_submitter.submit.assert_not_called()

    def test_permission_looked_up_when_missing(self, engine, src, mock_remote):
        mock_remote.get_access_key_permission.return_value = FullAccess()
        signer = SignerKey(account_id="alice.near", public_key="ed25519:key")

        engine.deploy(src, "alice.near", signer, dry_run=True)

        mock_remote.get_access_key_permission.assert_called_once_with(
            "alice.near", "ed25519:key"
        )

    def test_dry_run_does_not_submit(self, engine, src, mock_remote, mock_submitter):
        result = engine.deploy(src, "alice.near", SIGNER, dry_run=True)

        assert result.stage == DeployStage.DEPOSIT_COMPUTED
        assert result.dry_run
        assert result.transaction is not None
        assert result.deployed == []
        mock_submitter.submit.assert_not_called()

    def test_submit_failure_reports_status(
        self, engine, src, mock_remote, mock_submitter
    ):
        status = {"Failure": {"ActionError": {"kind": "FunctionCallError"}}}
        mock_submitter.submit.return_value = SubmitResult(success=False, status=status)

        with pytest.raises(BosSubmitError, match="deployment failed") as exc_info:
            engine.deploy(src, "alice.near", SIGNER)

        assert exc_info.value.status == status
        assert engine.stage == DeployStage.FAILED

    def test_submit_without_submitter_raises(self, mock_remote, mock_output, src):
        engine = DeployEngine(mock_remote, None, mock_output)

        with pytest.raises(ValueError, match="submitter"):
            engine.deploy(src, "alice.near", SIGNER)

    def test_result_to_dict(self, engine, src, mock_remote):
        mock_remote.fetch_records.return_value = {
            "a": Component(code="X", metadata=ComponentMetadata(name="a"))
        }
        mock_remote.is_write_permission_granted.return_value = True

        data = engine.deploy(src, "alice.near", SIGNER).to_dict()

        assert data["stage"] == "reported"
        assert data["decisions"] == {"a": "unchanged", "b": "new"}
        assert data["deployed"] == ["b"]
        assert data["deposit"] == "0"
        assert data["exported"] == []

    def test_unexpected_submit_error_marks_failed(
        self, engine, src, mock_remote, mock_submitter
    ):
        mock_submitter.submit.side_effect = RuntimeError("signer crashed")

        with pytest.raises(RuntimeError, match="signer crashed"):
            engine.deploy(src, "alice.near", SIGNER)

        assert engine.stage == DeployStage.FAILED

    def test_exported_transaction_is_not_reported_as_deployed(
        self, engine, src, mock_remote, mock_submitter
    ):
        mock_remote.fetch_records.return_value = {"a": Component(code="X")}
        mock_remote.is_write_permission_granted.return_value = True
        mock_submitter.submit.return_value = SubmitResult(
            success=True, status="exported", confirmed=False
        )

        result = engine.deploy(src, "alice.near", SIGNER)

        assert result.stage == DeployStage.SUBMITTED
        assert engine.stage == DeployStage.SUBMITTED
        assert result.deployed == []
        assert result.exported == ["b"]
        assert result.to_dict()["exported"] == ["b"]


class TestDeleteComponents:
    """Test DeployEngine.delete."""

    @pytest.fixture
    def mock_submitter(self):
        submitter = Mock()
        submitter.submit.return_value = SubmitResult(success=True, status="ok")
        return submitter

    @pytest.fixture
    def engine(self, mock_remote, mock_submitter, mock_output):
        return DeployEngine(
            mock_remote,
            mock_submitter,
            mock_output,
            minimal_deposit=1,
            new_account_deposit=NEW_ACCOUNT,
        )

    def test_deletes_existing_components(
        self, engine, mock_remote, mock_submitter, mock_output
    ):
        mock_remote.fetch_records.return_value = {
            "a": Component(code="X"),
            "b": Component(code="Y"),
        }
        mock_remote.is_write_permission_granted.return_value = True

        result = engine.delete("alice.near", ["b", "a", "gone"], SIGNER)

        owner, names = mock_remote.fetch_records.call_args[0]
        assert owner == "alice.near"
        assert list(names) == ["a", "b", "gone"]

        [transaction] = mock_submitter.submit.call_args[0]
        assert transaction.args == {
            "data": {
                "alice.near": {
                    "widget": {
                        "a": {"": None, "metadata": None},
                        "b": {"": None, "metadata": None},
                    }
                }
            }
        }
        assert transaction.deposit == 0
        assert result.operation == "delete"
        assert result.deleted == ["a", "b"]
        assert result.deployed == []
        assert result.stage == DeployStage.REPORTED
        mock_output.warning.assert_called_once()
        assert "<gone>" in mock_output.warning.call_args[0][0]

    def test_nothing_to_delete_skips_submit(
        self, engine, mock_remote, mock_submitter
    ):
        result = engine.delete("alice.near", ["gone"], SIGNER)

        assert result.stage == DeployStage.NO_CHANGES
        assert result.deleted == []
        mock_submitter.submit.assert_not_called()

    def test_delete_never_charges_account_allocation(
        self, engine, mock_remote, mock_submitter
    ):
        mock_remote.fetch_records.return_value = {"a": Component(code="X")}

        result = engine.delete("alice.near", ["a"], SIGNER, dry_run=True)

        assert result.stage == DeployStage.DEPOSIT_COMPUTED
        assert result.deposit == 1
        mock_submitter.submit.assert_not_called()

    def test_delete_without_grant_is_denied(
        self, engine, mock_remote, mock_submitter
    ):
        mock_remote.fetch_records.return_value = {"a": Component(code="X")}

        with pytest.raises(BosPermissionDeniedError):
            engine.delete("bob.near", ["a"], SIGNER)

        mock_submitter.submit.assert_not_called()

    def test_delete_failure_reports_status(
        self, engine, mock_remote, mock_submitter
    ):
        mock_remote.fetch_records.return_value = {"a": Component(code="X")}
        mock_remote.is_write_permission_granted.return_value = True
        mock_submitter.submit.return_value = SubmitResult(success=False, status="x")

        with pytest.raises(BosSubmitError, match="deletion failed"):
            engine.delete("alice.near", ["a"], SIGNER)

        assert engine.stage == DeployStage.FAILED
