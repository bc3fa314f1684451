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

import pytest
import yaml

from mlplatform.trainer.constants import constants
from mlplatform.trainer.converter import converter
from mlplatform.trainer.errors import ConversionError, ValidationError
from mlplatform.trainer.test.common import FAILED, SUCCESS, TestCase, get_job_spec_dict
from mlplatform.trainer.types import types


def get_spec(**overrides) -> types.TrainingJobSpec:
    return types.TrainingJobSpec.from_dict(get_job_spec_dict(**overrides))


def get_resources(instance_count=2, cpu=2, memory=4, gpu=0, volume=10):
    return {
        "instanceResources": {"cpuCores": cpu, "memoryGiB": memory, "gpuCount": gpu},
        "instanceCount": instance_count,
        "volumeSizeGB": volume,
    }


def test_convert_two_worker_xgboost_job():
    """Test converter.convert with the basic two-worker XGBoost job."""
    print("Executing test: two-worker xgboost job")

    resource, claim = converter.convert(get_spec())
    doc = resource.to_dict()

    assert doc["apiVersion"] == "ray.io/v1"
    assert doc["kind"] == "RayJob"
    assert doc["metadata"] == {
        "name": "demo",
        "namespace": "default",
        "labels": {
            "app": "demo",
            "training-job-id": "demo",
            "algorithm": "xgboost",
            "app.kubernetes.io/managed-by": "ml-platform-training",
        },
        "annotations": {"training-job-id": "demo"},
    }

    spec = doc["spec"]
    assert spec["entrypoint"] == constants.DEFAULT_ENTRYPOINT

    head = spec["rayClusterSpec"]["headGroupSpec"]
    head_container = head["template"]["spec"]["containers"][0]
    assert head_container["resources"]["requests"] == {"cpu": "2", "memory": "4Gi"}
    assert head_container["resources"]["limits"] == {"cpu": "2", "memory": "4Gi"}
    assert [p["containerPort"] for p in head_container["ports"]] == [6379, 8265, 10001]
    assert head["template"]["metadata"]["annotations"] == {"sidecar.istio.io/inject": "false"}
    assert "replicas" not in head

    workers = spec["rayClusterSpec"]["workerGroupSpecs"]
    assert len(workers) == 1
    worker = workers[0]
    assert worker["groupName"] == "workers"
    assert (worker["replicas"], worker["minReplicas"], worker["maxReplicas"]) == (2, 1, 10)
    worker_container = worker["template"]["spec"]["containers"][0]
    assert worker_container["resources"]["limits"] == {"cpu": "2", "memory": "4Gi"}
    assert worker_container["volumeMounts"] == [
        {"mountPath": "/home/ray/result-storage", "name": "result-storage"}
    ]
    assert worker["template"]["spec"]["volumes"] == [
        {"name": "result-storage", "persistentVolumeClaim": {"claimName": "demo-pvc"}}
    ]

    payload = converter.decode_runtime_config(spec["runtimeEnvYAML"])
    assert payload["num_worker"] == 2
    assert payload["use_gpu"] is False
    assert payload["run_name"] == "demo"
    assert payload["label_column"] == "target"
    assert payload["storage_path"] == "/home/ray/result-storage"
    assert payload["s3"]["endpoint"] == "minio:9000"
    assert payload["s3"]["bucket"] == "data"
    assert payload["s3"]["train_key"] == "train.csv"
    assert payload["xgboost"]["num_boost_round"] == 300

    assert claim is not None
    claim_doc = claim.to_dict()
    assert claim_doc["metadata"]["name"] == "demo-pvc"
    assert claim_doc["spec"] == {
        "accessModes": ["ReadWriteMany"],
        "resources": {"requests": {"storage": "10Gi"}},
    }
    print("test execution complete")


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="no gpu key when gpu count is zero",
            config={"resources": get_resources(gpu=0)},
            expected_output=(False, False),
        ),
        TestCase(
            name="gpu set on workers only",
            config={"resources": get_resources(gpu=1)},
            expected_output=(False, True),
        ),
    ],
)
def test_convert_gpu_resources(test_case):
    """Test converter.convert places GPUs on worker containers only."""
    print("Executing test:", test_case.name)

    resource, _ = converter.convert(get_spec(**test_case.config))
    doc = resource.to_dict()["spec"]["rayClusterSpec"]
    head = doc["headGroupSpec"]["template"]["spec"]["containers"][0]["resources"]
    worker = doc["workerGroupSpecs"][0]["template"]["spec"]["containers"][0]["resources"]

    for quantities in (head["limits"], head["requests"], worker["limits"], worker["requests"]):
        assert "0" not in quantities.values()
    assert (constants.GPU_LABEL in head["limits"], constants.GPU_LABEL in worker["limits"]) == (
        test_case.expected_output
    )
    if test_case.expected_output[1]:
        assert worker["limits"][constants.GPU_LABEL] == "1"
        payload = converter.decode_runtime_config(resource.runtime_env_yaml)
        assert payload["use_gpu"] is True
    print("test execution complete")


def test_convert_omits_zero_memory():
    """Test converter.convert leaves memory out when none is requested."""
    resource, _ = converter.convert(get_spec(resources=get_resources(memory=0)))
    head = resource.head_group.container
    assert head.limits == {"cpu": "2"}
    assert head.requests == {"cpu": "2"}


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="single instance",
            config={"resources": get_resources(instance_count=1)},
            expected_output=(1, 1, 5),
        ),
        TestCase(
            name="zero instances promoted to one",
            config={"resources": get_resources(instance_count=0)},
            expected_output=(1, 1, 5),
        ),
        TestCase(
            name="four instances",
            config={"resources": get_resources(instance_count=4)},
            expected_output=(4, 1, 20),
        ),
    ],
)
def test_convert_worker_replicas(test_case):
    """Test converter.convert computes the worker replica bounds."""
    print("Executing test:", test_case.name)

    resource, _ = converter.convert(get_spec(**test_case.config))
    worker = resource.worker_groups[0]
    assert (worker.replicas, worker.min_replicas, worker.max_replicas) == test_case.expected_output
    assert converter.decode_runtime_config(resource.runtime_env_yaml)["num_worker"] == (
        test_case.expected_output[0]
    )
    print("test execution complete")


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="claim emitted for volume",
            config={"resources": get_resources(volume=10)},
            expected_output=("demo-pvc", "demo-pvc"),
        ),
        TestCase(
            name="no claim without volume",
            config={"resources": get_resources(volume=0)},
            expected_output=(None, constants.DEFAULT_PVC_NAME),
        ),
        TestCase(
            name="no claim when caller supplies one",
            config={"resources": get_resources(volume=10), "pvcName": "shared"},
            expected_output=(None, "shared"),
        ),
    ],
)
def test_convert_storage_claim(test_case):
    """Test converter.convert emits a storage claim and mounts the right claim."""
    print("Executing test:", test_case.name)

    resource, claim = converter.convert(get_spec(**test_case.config))
    assert (claim.name if claim else None) == test_case.expected_output[0]
    assert resource.head_group.claim_name == test_case.expected_output[1]
    assert resource.worker_groups[0].claim_name == test_case.expected_output[1]
    print("test execution complete")


def test_runtime_config_keeps_xgboost_types():
    """Test the payload round trip keeps every XGBoost hyperparameter type."""
    hyperparameters = {
        "xgboost": {
            "eta": 0.1,
            "max_depth": 8,
            "num_round": 50,
            "csv_weights": 1,
            "lambda": 2.5,
            "early_stopping_rounds": 10,
            "eval_metric": ["logloss", "auc"],
            "objective": "binary:logistic",
            "updater": "grow_colmaker,prune",
        }
    }
    resource, _ = converter.convert(get_spec(hyperparameters=hyperparameters))
    xgboost = converter.decode_runtime_config(resource.runtime_env_yaml)["xgboost"]

    assert xgboost["eta"] == 0.1 and isinstance(xgboost["eta"], float)
    assert xgboost["max_depth"] == 8 and isinstance(xgboost["max_depth"], int)
    assert xgboost["num_boost_round"] == 50
    assert xgboost["csv_weight"] == 1
    assert xgboost["lambda"] == 2.5
    assert xgboost["early_stopping_rounds"] == 10
    assert xgboost["eval_metric"] == ["logloss", "auc"]
    assert xgboost["objective"] == "binary:logistic"
    assert xgboost["updater"] == "grow_colmaker,prune"
    assert xgboost["gamma"] == 0.0 and isinstance(xgboost["gamma"], float)
    assert "num_round" not in xgboost
    assert "nthread" not in xgboost


def test_runtime_config_keeps_every_xgboost_field_type():
    """Test every forwarded XGBoost field decodes with the type it was declared with."""
    hyperparameters = types.XGBoostHyperparameters(
        num_round=50,
        csv_weights=1,
        lambda_=2.5,
        early_stopping_rounds=10,
        updater="grow_colmaker,prune",
        eval_metric=["logloss"],
    )
    original = hyperparameters.model_dump(by_alias=True)
    resource, _ = converter.convert(
        get_spec(hyperparameters={"xgboost": hyperparameters.model_dump()})
    )
    decoded = converter.decode_runtime_config(resource.runtime_env_yaml)["xgboost"]

    for name, field in types.XGBoostHyperparameters.model_fields.items():
        key = field.serialization_alias or field.alias or name
        if name == "nthread":
            assert key not in decoded
            continue
        assert key in decoded, key
        assert type(decoded[key]) is type(original[key]), key
        assert decoded[key] == original[key], key


def test_runtime_config_omits_unset_xgboost_fields():
    """Test unset early stopping, auto updater and empty metrics are not forwarded."""
    hyperparameters = {"xgboost": {"eval_metric": []}}
    resource, _ = converter.convert(get_spec(hyperparameters=hyperparameters))
    xgboost = converter.decode_runtime_config(resource.runtime_env_yaml)["xgboost"]

    assert "early_stopping_rounds" not in xgboost
    assert "updater" not in xgboost
    assert "eval_metric" not in xgboost


def test_runtime_config_is_deterministic():
    """Test converting the same spec twice gives byte-identical payloads."""
    first, _ = converter.convert(get_spec())
    second, _ = converter.convert(get_spec())
    assert first.runtime_env_yaml == second.runtime_env_yaml
    assert first.to_dict() == second.to_dict()


def test_runtime_config_channels():
    """Test the payload for an upload channel with a validation split."""
    channels = [
        {
            "channelName": "train",
            "sourceType": "upload",
            "uploadFileName": "iris.csv",
            "featureNames": ["a", "b"],
            "labelName": "species",
        },
        {
            "channelName": "validation",
            "sourceType": "object-storage",
            "bucket": "data",
            "prefix": "val.csv",
        },
    ]
    resource, _ = converter.convert(
        get_spec(
            inputDataConfig=channels,
            namespace="team-a",
            outputDataConfig={"artifactUri": "file:///mnt/results"},
            checkpointConfig={"checkpointUri": "file:///mnt/ckpt"},
            customHyperparameters={"seed": 7},
        )
    )
    payload = converter.decode_runtime_config(resource.runtime_env_yaml)

    assert payload["s3"]["bucket"] == "team-a"
    assert payload["s3"]["endpoint"] == constants.DEFAULT_S3_ENDPOINT
    assert payload["s3"]["train_key"] == "iris.csv"
    assert payload["s3"]["val_key"] == "val.csv"
    assert payload["label_column"] == "species"
    assert payload["feature_columns"] == ["a", "b"]
    assert payload["storage_path"] == "/mnt/results"
    assert payload["checkpoint_path"] == "/mnt/ckpt"
    assert payload["custom"] == {"seed": 7}


def test_container_algorithm():
    """Test a container algorithm runs its own image and is labeled custom."""
    resource, _ = converter.convert(
        get_spec(algorithm={"source": "container", "imageUri": "registry/train:1"})
    )
    assert resource.head_group.container.image == "registry/train:1"
    assert resource.worker_groups[0].container.image == "registry/train:1"
    assert resource.metadata.labels[constants.ALGORITHM_LABEL] == "custom"
    assert "xgboost" not in converter.decode_runtime_config(resource.runtime_env_yaml)


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="job name is not a dns label",
            expected_status=FAILED,
            config={"jobName": "Demo_Job"},
            expected_error=ValidationError,
        ),
        TestCase(
            name="job name with trailing newline",
            expected_status=FAILED,
            config={"jobName": "demo\n"},
            expected_error=ValidationError,
        ),
        TestCase(
            name="job name too long",
            expected_status=FAILED,
            config={"jobName": "a" * 64},
            expected_error=ValidationError,
        ),
        TestCase(
            name="unknown builtin algorithm",
            expected_status=FAILED,
            config={"algorithm": {"source": "builtin", "algorithmName": "lightgbm"}},
            expected_error=ValidationError,
        ),
        TestCase(
            name="container algorithm without image",
            expected_status=FAILED,
            config={"algorithm": {"source": "container"}},
            expected_error=ValidationError,
        ),
        TestCase(
            name="zero cpu cores",
            expected_status=FAILED,
            config={"resources": get_resources(cpu=0)},
            expected_error=ValidationError,
        ),
        TestCase(
            name="negative instance count",
            expected_status=FAILED,
            config={"resources": get_resources(instance_count=-1)},
            expected_error=ValidationError,
        ),
        TestCase(
            name="negative volume",
            expected_status=FAILED,
            config={"resources": get_resources(volume=-1)},
            expected_error=ValidationError,
        ),
        TestCase(
            name="no input channels",
            expected_status=FAILED,
            config={"inputDataConfig": []},
            expected_error=ValidationError,
        ),
        TestCase(
            name="object storage channel without bucket",
            expected_status=FAILED,
            config={"inputDataConfig": [{"sourceType": "object-storage", "prefix": "x"}]},
            expected_error=ValidationError,
        ),
        TestCase(
            name="valid job",
            expected_status=SUCCESS,
            config={},
        ),
    ],
)
def test_validate(test_case):
    """Test converter.validate rejects malformed specs."""
    print("Executing test:", test_case.name)
    try:
        converter.validate(get_spec(**test_case.config))
        assert test_case.expected_status == SUCCESS
    except Exception as e:
        assert type(e) is test_case.expected_error
    print("test execution complete")


def test_from_dict_rejects_wrong_types():
    """Test TrainingJobSpec.from_dict raises ValidationError on a malformed body."""
    with pytest.raises(ValidationError):
        types.TrainingJobSpec.from_dict({"jobName": "demo"})


def test_build_runtime_env_yaml_rejects_unserializable_payload():
    with pytest.raises(ConversionError):
        converter.build_runtime_env_yaml({"custom": {"value": object()}})


@pytest.mark.parametrize(
    "test_case",
    [
        TestCase(
            name="local path",
            config={"uri": "file:///data/out"},
            expected_output="/data/out",
        ),
        TestCase(
            name="object storage",
            config={"uri": "s3://bucket/out"},
            expected_output="/home/ray/result-storage",
        ),
        TestCase(
            name="empty",
            config={"uri": ""},
            expected_output="/home/ray/result-storage",
        ),
    ],
)
def test_derive_storage_path(test_case):
    print("Executing test:", test_case.name)
    assert converter.derive_storage_path(test_case.config["uri"]) == test_case.expected_output
    print("test execution complete")


def test_convert_iris_job_payload():
    """Test the runtime payload keeps numbers and lists as JSON values."""
    spec = get_spec(
        jobName="iris-test",
        resources=get_resources(instance_count=2, gpu=0),
        inputDataConfig=[
            {
                "channelName": "train",
                "sourceType": "object-storage",
                "bucket": "datasets",
                "prefix": "iris/train.csv",
            }
        ],
        hyperparameters={"xgboost": {"eta": 0.3, "max_depth": 6, "eval_metric": ["rmse", "mae"]}},
    )
    resource, _ = converter.convert(spec)

    assert resource.worker_groups[0].replicas == 2
    for group in (resource.head_group, *resource.worker_groups):
        assert constants.GPU_LABEL not in group.container.limits
        assert constants.GPU_LABEL not in group.container.requests

    runtime_env = yaml.safe_load(resource.runtime_env_yaml)
    payload = runtime_env["env_vars"][constants.RUNTIME_CONFIG_ENV]
    assert '"eta":0.3' in payload
    assert '"max_depth":6' in payload
    assert '"eval_metric":["rmse","mae"]' in payload
    assert runtime_env["env_vars"][f"{constants.RUNTIME_CONFIG_ENV}_VERSION"] == "1"
