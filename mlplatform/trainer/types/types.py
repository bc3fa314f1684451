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

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from mlplatform.trainer.constants import constants
from mlplatform.trainer.errors import ValidationError


class _RequestModel(BaseModel):
    """Base for the camelCase job request models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# Hyperparameters for the builtin XGBoost algorithm.
class XGBoostHyperparameters(BaseModel):
    """XGBoost hyperparameters. Every field keeps its declared type in the runtime
    configuration payload, so the training container can parse it as typed JSON.

    REF: https://xgboost.readthedocs.io/en/stable/parameter.html

    Fields are copied verbatim into the payload's `xgboost` block with these exceptions:
    `num_round` is renamed to `num_boost_round`, `csv_weights` to `csv_weight`,
    `early_stopping_rounds` is omitted when unset, `updater` is omitted when `auto`,
    `eval_metric` is omitted when empty and `nthread` is not forwarded.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Training control.
    early_stopping_rounds: Optional[int] = None
    csv_weights: Literal[0, 1] = Field(default=0, serialization_alias="csv_weight")
    num_round: int = Field(default=300, serialization_alias="num_boost_round")

    # General parameters.
    booster: Literal["gbtree", "gblinear", "dart"] = "gbtree"
    verbosity: Literal[0, 1, 2, 3] = 1
    nthread: Union[int, Literal["auto"]] = "auto"

    # Tree booster parameters.
    eta: float = 0.3
    gamma: float = 0.0
    max_depth: int = 6
    min_child_weight: float = 1.0
    max_delta_step: float = 0.0
    subsample: float = 1.0
    sampling_method: Literal["uniform", "gradient_based"] = "uniform"
    colsample_bytree: float = 1.0
    colsample_bylevel: float = 1.0
    colsample_bynode: float = 1.0
    lambda_: float = Field(default=1.0, alias="lambda")
    alpha: float = 0.0
    tree_method: Literal["auto", "exact", "approx", "hist"] = "auto"
    sketch_eps: float = 0.03
    scale_pos_weight: float = 1.0
    updater: str = "auto"
    dsplit: Literal["auto", "row", "col"] = "row"
    refresh_leaf: Literal[0, 1] = 1
    process_type: Literal["default", "update"] = "default"
    grow_policy: Literal["depthwise", "lossguide"] = "depthwise"
    max_leaves: int = 0
    max_bin: int = 256
    num_parallel_tree: int = 1

    # Dart booster parameters.
    sample_type: Literal["uniform", "weighted"] = "uniform"
    normalize_type: Literal["tree", "forest"] = "tree"
    rate_drop: float = 0.0
    one_drop: Literal[0, 1] = 0
    skip_drop: float = 0.0

    # Linear booster parameters.
    lambda_bias: float = 0.0

    # Learning task parameters.
    tweedie_variance_power: float = 1.5
    objective: Literal[
        "reg:squarederror",
        "reg:squaredlogerror",
        "reg:logistic",
        "reg:pseudohubererror",
        "reg:absoluteerror",
        "reg:quantileerror",
        "binary:logistic",
        "binary:logitraw",
        "binary:hinge",
        "count:poisson",
        "survival:cox",
        "survival:aft",
        "multi:softmax",
        "multi:softprob",
        "rank:ndcg",
        "rank:map",
        "rank:pairwise",
        "reg:gamma",
        "reg:tweedie",
    ] = "reg:squarederror"
    base_score: float = 0.5
    eval_metric: list[str] = Field(default_factory=lambda: ["rmse"])


class Hyperparameters(BaseModel):
    """Hyperparameter bags keyed by the builtin algorithm name."""

    model_config = ConfigDict(frozen=True)

    xgboost: Optional[XGBoostHyperparameters] = None


class Algorithm(_RequestModel):
    """The training algorithm.

    Args:
        source: `builtin` runs one of the builtin algorithms on the default images,
            `container` runs the given container image.
        algorithm_name: The builtin algorithm name, e.g. `xgboost`.
        image_uri: The container image for `container` algorithms.
    """

    source: Literal["builtin", "container"] = constants.ALGORITHM_SOURCE_BUILTIN
    algorithm_name: Optional[str] = None
    image_uri: Optional[str] = None


class InstanceResources(_RequestModel):
    cpu_cores: int
    memory_gib: int = Field(default=0, alias="memoryGiB")
    gpu_count: int = 0


class Resources(_RequestModel):
    """The compute resources of the job.

    Args:
        instance_resources: The resources of every training instance.
        instance_count: The number of worker instances.
        volume_size_gb: The size of the result storage claim. No claim is created when 0.
        distributed_training: Whether the user asked for distributed training.
    """

    instance_resources: InstanceResources
    instance_count: int = 1
    volume_size_gb: int = Field(default=0, alias="volumeSizeGB")
    distributed_training: Optional[bool] = None


class StoppingCondition(_RequestModel):
    max_runtime_seconds: int = 0


class Channel(_RequestModel):
    """An input data channel.

    Object storage channels point at `endpoint`/`bucket`/`prefix`. Upload channels point
    at a file that the upload helper stored in the namespace bucket, and may select the
    feature and label columns of a CSV file.
    """

    id: Optional[str] = None
    channel_name: str = "train"
    source_type: Literal["object-storage", "upload"] = constants.CHANNEL_SOURCE_OBJECT_STORAGE
    storage_provider: Optional[str] = None
    endpoint: Optional[str] = None
    bucket: Optional[str] = None
    prefix: Optional[str] = None
    upload_file_name: Optional[str] = None
    channel_type: Optional[Literal["train", "validation", "test"]] = None
    content_type: Optional[str] = None
    csv_columns: Optional[list[str]] = None
    feature_names: Optional[list[str]] = None
    label_name: Optional[str] = None


class OutputDataConfig(_RequestModel):
    artifact_uri: str = ""


class CheckpointConfig(_RequestModel):
    checkpoint_uri: Optional[str] = None


class TrainingJobSpec(_RequestModel):
    """The validated training job request.

    The job spec is immutable once accepted. Use `TrainingJobSpec.from_dict` to build it from
    the camelCase JSON request body.
    """

    job_name: str
    priority: int = 0
    algorithm: Algorithm
    resources: Resources
    stopping_condition: StoppingCondition = Field(default_factory=StoppingCondition)
    input_data_config: list[Channel] = Field(default_factory=list)
    output_data_config: OutputDataConfig = Field(default_factory=OutputDataConfig)
    checkpoint_config: Optional[CheckpointConfig] = None
    hyperparameters: Hyperparameters = Field(default_factory=Hyperparameters)
    custom_hyperparameters: dict[str, Any] = Field(default_factory=dict)
    target_clusters: list[str] = Field(default_factory=list)
    namespace: Optional[str] = None
    entrypoint: Optional[str] = None
    head_image: Optional[str] = None
    worker_image: Optional[str] = None
    pvc_name: Optional[str] = None

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "TrainingJobSpec":
        try:
            return cls.model_validate(obj)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid training job spec: {e}") from e

    @property
    def algorithm_name(self) -> str:
        if self.algorithm.source == constants.ALGORITHM_SOURCE_CONTAINER:
            return self.algorithm.algorithm_name or constants.CUSTOM_ALGORITHM
        return self.algorithm.algorithm_name or ""


class JobPhase(Enum):
    """The canonical phase of a training job."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    STOPPED = "Stopped"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_PHASES

    @property
    def rank(self) -> int:
        """Position in the partial order Pending < Running < terminal."""
        return _PHASE_RANK[self]


TERMINAL_PHASES = frozenset({JobPhase.SUCCEEDED, JobPhase.FAILED, JobPhase.STOPPED})

_PHASE_RANK = {
    JobPhase.PENDING: 0,
    JobPhase.RUNNING: 1,
    JobPhase.SUCCEEDED: 2,
    JobPhase.FAILED: 2,
    JobPhase.STOPPED: 2,
}


@dataclass
class JobStatusRecord:
    """The reconciled status of a training job.

    Args:
        job_id (`str`): The job ID. Equal to the RayJob name.
        namespace (`str`): The namespace of the job.
        phase (`JobPhase`): The canonical phase. Pending is the only initial value.
        message (`str`): Human-readable detail of the phase.
        start_time (`Optional[datetime]`): When the job started running.
        completion_time (`Optional[datetime]`): When the job reached a terminal phase.
        cluster_replicas (`dict[str, int]`): Available worker replicas per member cluster.
        target_clusters (`list[str]`): The requested member clusters. Empty means any
            ready cluster.
        created_at (`Optional[datetime]`): When the record was created.
        updated_at (`Optional[datetime]`): When the record was last written.
    """

    job_id: str
    namespace: str
    phase: JobPhase = JobPhase.PENDING
    message: str = ""
    start_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None
    cluster_replicas: dict[str, int] = field(default_factory=dict)
    target_clusters: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal


@dataclass
class MemberCluster:
    """A member cluster registered in the federation control plane."""

    name: str
    ready: bool = False
    region: Optional[str] = None
    zone: Optional[str] = None


@dataclass
class RayJobObservation:
    """The native status of a RayJob observed in a member cluster.

    Args:
        cluster (`str`): The member cluster the RayJob was read from.
        job_status (`str`): The native `jobStatus`, e.g. RUNNING. Empty when unset.
        deployment_status (`str`): The native `jobDeploymentStatus`. Empty when unset.
        message (`str`): The native status message.
        start_time (`Optional[datetime]`): The native `startTime`.
        end_time (`Optional[datetime]`): The native `endTime`.
        available_worker_replicas (`Optional[int]`): Available worker replicas of the
            Ray cluster.
    """

    cluster: str
    job_status: str = ""
    deployment_status: str = ""
    message: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    available_worker_replicas: Optional[int] = None
