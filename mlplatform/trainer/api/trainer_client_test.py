# Copyright 2026 The ML Platform Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unit tests for TrainerClient job submission, deletion and status lookup.
"""

from unittest.mock import Mock, patch

from kubernetes.client.rest import ApiException
import pytest

from mlplatform.trainer.api.trainer_client import TrainerClient
from mlplatform.trainer.backends.karmada.types import KarmadaBackendConfig
from mlplatform.trainer.constants import constants
from mlplatform.trainer.errors import JobNotFoundError, SubmissionError, ValidationError
from mlplatform.trainer.store.cluster import ClusterStatusStore
from mlplatform.trainer.store.database import DatabaseStatusStore
from mlplatform.trainer.store.memory import InMemoryStatusStore
from mlplatform.trainer.test.common import (
    DEFAULT_NAMESPACE,
    FAILED,
    SUCCESS,
    TestCase,
    get_job_spec_dict,
)
from mlplatform.trainer.types import types


def get_client(**kwargs) -> TrainerClient:
    with (
        patch("kubernetes.config.load_kube_config"),
        patch("kubernetes.client.ApiClient", return_value=Mock()),
        patch("kubernetes.client.CustomObjectsApi", return_value=Mock()),
        patch("kubernetes.client.CoreV1Api", return_value=Mock()),
    ):
        return TrainerClient(KarmadaBackendConfig(namespace=DEFAULT_NAMESPACE), **kwargs)


@pytest.fixture
def trainer_client():
    return get_client()


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="memory store by default",
            config={},
            expected_output=InMemoryStatusStore,
        ),
        TestCase(
            name="cluster store",
            config={"store": "cluster"},
            expected_output=ClusterStatusStore,
        ),
        TestCase(
            name="store instance",
            config={"store": InMemoryStatusStore()},
            expected_output=InMemoryStatusStore,
        ),
    ],
)
def test_store_selection(test_case):
    """Test TrainerClient store selection logic."""
    print("Executing test:", test_case.name)
    client = get_client(**test_case.config)
    assert type(client.store) is test_case.expected_output
    assert client.backend.__class__.__name__ == "KarmadaBackend"
    print("test execution complete")


def test_database_store_selection(tmp_path):
    client = get_client(store=f"sqlite:///{tmp_path / 'jobs.db'}")
    assert type(client.store) is DatabaseStatusStore


def test_invalid_backend_config():
    with pytest.raises(ValueError):
        TrainerClient(backend_config=object())


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="job id defaults to the job name",
            expected_status=SUCCESS,
            config={"spec": get_job_spec_dict()},
            expected_output="demo",
        ),
        TestCase(
            name="explicit job id",
            expected_status=SUCCESS,
            config={"spec": get_job_spec_dict(), "job_id": "demo-2"},
            expected_output="demo-2",
        ),
        TestCase(
            name="malformed spec",
            expected_status=FAILED,
            config={"spec": get_job_spec_dict(jobName="Bad Name")},
            expected_error=ValidationError,
        ),
    ],
)
def test_submit_job(trainer_client, test_case):
    """Test TrainerClient.submit_job records the job as Pending."""
    print("Executing test:", test_case.name)
    try:
        record = trainer_client.submit_job(
            test_case.config["spec"], job_id=test_case.config.get("job_id")
        )
        assert test_case.expected_status == SUCCESS
        assert record.job_id == test_case.expected_output
        assert record.phase == types.JobPhase.PENDING
        assert record.target_clusters == ["c1", "c2"]
        assert trainer_client.get_job_status(record.job_id).phase == types.JobPhase.PENDING

        custom_api = trainer_client.backend.custom_api
        assert custom_api.create_namespaced_custom_object.call_count == 2
        core_api = trainer_client.backend.core_api
        core_api.create_namespaced_persistent_volume_claim.assert_called_once()

    except Exception as e:
        assert type(e) is test_case.expected_error
        assert trainer_client.list_jobs() == []
        trainer_client.backend.custom_api.create_namespaced_custom_object.assert_not_called()
    print("test execution complete")


def test_submit_job_rejected(trainer_client):
    """Test a rejected job is recorded as Failed with the rejection as message."""
    trainer_client.backend.custom_api.create_namespaced_custom_object.side_effect = ApiException(
        status=422, reason="Unprocessable Entity"
    )

    with pytest.raises(SubmissionError):
        trainer_client.submit_job(get_job_spec_dict())

    record = trainer_client.get_job_status("demo")
    assert record.phase == types.JobPhase.FAILED
    assert "Failed to create RayJob" in record.message
    assert "Unprocessable Entity" in record.message
    assert record.completion_time is not None


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(name="succeeded job", config={"phase": types.JobPhase.SUCCEEDED}),
        TestCase(name="failed job", config={"phase": types.JobPhase.FAILED}),
        TestCase(name="running job", config={"phase": types.JobPhase.RUNNING}),
    ],
)
def test_resubmit_keeps_recorded_phase(trainer_client, test_case):
    """Test submitting a recorded job ID again does not move its phase back."""
    print("Executing test:", test_case.name)
    record = trainer_client.submit_job(get_job_spec_dict())
    trainer_client.store.advance(
        types.JobStatusRecord(
            job_id=record.job_id,
            namespace=record.namespace,
            phase=test_case.config["phase"],
            message="observed",
        )
    )
    custom_api = trainer_client.backend.custom_api
    custom_api.create_namespaced_custom_object.reset_mock()

    resubmitted = trainer_client.submit_job(get_job_spec_dict())

    assert resubmitted.phase == test_case.config["phase"]
    assert trainer_client.get_job_status("demo").phase == test_case.config["phase"]
    custom_api.create_namespaced_custom_object.assert_not_called()
    print("test execution complete")


def test_delete_job(trainer_client):
    """Test TrainerClient.delete_job stops the job and can be repeated."""
    trainer_client.submit_job(get_job_spec_dict())

    trainer_client.delete_job("demo")
    record = trainer_client.get_job_status("demo", DEFAULT_NAMESPACE)
    assert record.phase == types.JobPhase.STOPPED
    assert record.completion_time is not None

    trainer_client.delete_job("demo")
    assert trainer_client.backend.custom_api.delete_namespaced_custom_object.call_count == 4


def test_delete_job_with_cluster_store_drops_record():
    """Test a deleted job has no record left when records live on its RayJob."""
    trainer_client = get_client(store="cluster")
    custom_api = trainer_client.backend.custom_api
    deleted = []

    def get_rayjob(*args, **kwargs):
        if deleted:
            raise ApiException(status=404, reason="Not Found")
        rayjob = {"metadata": {"name": args[4], "namespace": args[2]}}
        return Mock(get=Mock(return_value=rayjob))

    custom_api.get_namespaced_custom_object.side_effect = get_rayjob
    custom_api.delete_namespaced_custom_object.side_effect = lambda *args, **kwargs: (
        deleted.append(kwargs["name"]) or Mock(get=Mock(return_value={}))
    )

    trainer_client.delete_job("demo")

    body = custom_api.patch_namespaced_custom_object.call_args.args[5]
    assert body["metadata"]["annotations"][constants.PHASE_ANNOTATION] == "Stopped"
    with pytest.raises(JobNotFoundError):
        trainer_client.get_job_status("demo")


def test_delete_job_with_missing_placement(trainer_client):
    """Test deleting a job whose placement was removed out of band succeeds."""
    trainer_client.submit_job(get_job_spec_dict())
    trainer_client.backend.custom_api.delete_namespaced_custom_object.side_effect = ApiException(
        status=404, reason="Not Found"
    )

    trainer_client.delete_job("demo")
    trainer_client.delete_job("unknown")


def test_delete_finished_job_keeps_phase(trainer_client):
    trainer_client.store.create(
        types.JobStatusRecord(
            job_id="done", namespace=DEFAULT_NAMESPACE, phase=types.JobPhase.SUCCEEDED
        )
    )
    trainer_client.delete_job("done")
    assert trainer_client.get_job_status("done").phase == types.JobPhase.SUCCEEDED


def test_get_job_status_not_found(trainer_client):
    with pytest.raises(JobNotFoundError):
        trainer_client.get_job_status("unknown")


def test_list_jobs(trainer_client):
    trainer_client.submit_job(get_job_spec_dict())
    trainer_client.submit_job(get_job_spec_dict(namespace="team-a"))

    assert [(r.namespace, r.job_id) for r in trainer_client.list_jobs()] == [
        (DEFAULT_NAMESPACE, "demo"),
        ("team-a", "demo"),
    ]
    assert [r.namespace for r in trainer_client.list_jobs("team-a")] == ["team-a"]


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="job reaches the expected phase",
            expected_status=SUCCESS,
            config={"phase": types.JobPhase.SUCCEEDED},
            expected_output=types.JobPhase.SUCCEEDED,
        ),
        TestCase(
            name="job fails",
            expected_status=FAILED,
            config={"phase": types.JobPhase.FAILED},
            expected_error=RuntimeError,
        ),
        TestCase(
            name="job never finishes",
            expected_status=FAILED,
            config={"phase": types.JobPhase.RUNNING, "timeout": 1, "polling_interval": 1},
            expected_error=TimeoutError,
        ),
        TestCase(
            name="polling interval longer than timeout",
            expected_status=FAILED,
            config={"phase": types.JobPhase.RUNNING, "timeout": 1, "polling_interval": 2},
            expected_error=ValueError,
        ),
    ],
)
def test_wait_for_job_status(trainer_client, test_case):
    """Test TrainerClient.wait_for_job_status with the stored phases."""
    print("Executing test:", test_case.name)
    trainer_client.store.create(
        types.JobStatusRecord(
            job_id="demo", namespace=DEFAULT_NAMESPACE, phase=test_case.config["phase"]
        )
    )
    try:
        with patch("time.sleep", return_value=None):
            record = trainer_client.wait_for_job_status(
                "demo",
                timeout=test_case.config.get("timeout", 600),
                polling_interval=test_case.config.get("polling_interval", 2),
            )
        assert test_case.expected_status == SUCCESS
        assert record.phase == test_case.expected_output
    except Exception as e:
        assert type(e) is test_case.expected_error
    print("test execution complete")


def test_cluster_queries_use_the_backend(trainer_client):
    trainer_client.backend = Mock(
        list_clusters=Mock(return_value=[types.MemberCluster(name="c1", ready=True)]),
        get_cluster_resources=Mock(return_value={"items": []}),
    )

    assert trainer_client.list_clusters() == [types.MemberCluster(name="c1", ready=True)]
    assert trainer_client.get_cluster_resources("c1", DEFAULT_NAMESPACE) == {"items": []}
    trainer_client.backend.get_cluster_resources.assert_called_once_with(
        "c1", DEFAULT_NAMESPACE, "pods"
    )


def test_start_and_stop_reconciler(trainer_client):
    trainer_client.reconciler = Mock()
    trainer_client.start_reconciler()
    trainer_client.stop_reconciler()
    trainer_client.reconciler.start.assert_called_once_with()
    trainer_client.reconciler.stop.assert_called_once_with()
