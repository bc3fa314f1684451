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

import json
import logging
import re
from typing import Any, Optional

import yaml

from mlplatform.common import constants as common_constants
from mlplatform.trainer.constants import constants
from mlplatform.trainer.errors import ConversionError, ValidationError
from mlplatform.trainer.types import types
from mlplatform.trainer.types.resources import (
    ContainerSpec,
    GroupSpec,
    RayJobResource,
    ResourceMeta,
    StorageClaim,
)

logger = logging.getLogger(__name__)

_DNS_LABEL_RE = re.compile(constants.DNS_LABEL_PATTERN)


def convert(
    spec: types.TrainingJobSpec,
    job_id: Optional[str] = None,
    namespace: Optional[str] = None,
) -> tuple[RayJobResource, Optional[StorageClaim]]:
    """Convert a training job spec into a RayJob and an optional storage claim.

    The conversion does no I/O and is deterministic: the same spec and job ID always
    produce the same documents.

    Args:
        spec: The validated training job spec.
        job_id: The job ID used as the resource name. Defaults to the job name.
        namespace: The namespace used when the job spec does not set one.

    Returns:
        The RayJob resource and the storage claim, or None when no claim is needed.

    Raises:
        ValidationError: The job spec is malformed.
        ConversionError: The resources could not be built from a valid spec.
    """
    validate(spec)

    job_id = job_id or spec.job_name
    if not is_dns_label(job_id):
        raise ValidationError(f"Job ID {job_id!r} must be a DNS label")

    namespace = spec.namespace or namespace or common_constants.DEFAULT_NAMESPACE

    claim = build_storage_claim(spec, job_id, namespace)
    if spec.pvc_name:
        claim_name = spec.pvc_name
    elif claim is not None:
        claim_name = claim.name
    else:
        claim_name = constants.DEFAULT_PVC_NAME

    head_image, worker_image = get_images(spec)
    runtime_config = build_runtime_config(spec, namespace)

    resource = RayJobResource(
        metadata=ResourceMeta(
            name=job_id,
            namespace=namespace,
            labels={
                constants.APP_LABEL: spec.job_name,
                constants.JOB_ID_LABEL: job_id,
                constants.ALGORITHM_LABEL: spec.algorithm_name,
                constants.MANAGED_BY_LABEL: constants.MANAGED_BY,
            },
            annotations={constants.JOB_ID_LABEL: job_id},
        ),
        entrypoint=spec.entrypoint or constants.DEFAULT_ENTRYPOINT,
        runtime_env_yaml=build_runtime_env_yaml(runtime_config),
        head_group=get_head_group(spec, head_image, claim_name),
        worker_groups=[get_worker_group(spec, worker_image, claim_name)],
    )

    logger.debug(f"Converted job {spec.job_name} into {constants.RAYJOB_KIND} {namespace}/{job_id}")

    return resource, claim


def is_dns_label(value: str) -> bool:
    return len(value) <= constants.DNS_LABEL_MAX_LENGTH and bool(_DNS_LABEL_RE.fullmatch(value))


def validate(spec: types.TrainingJobSpec):
    """Check the job spec shape. Raises ValidationError before any resource is built."""

    if not is_dns_label(spec.job_name):
        raise ValidationError(
            f"Job name {spec.job_name!r} must be a DNS label: lowercase alphanumeric "
            f"characters or '-', at most {constants.DNS_LABEL_MAX_LENGTH} characters"
        )

    algorithm = spec.algorithm
    if algorithm.source == constants.ALGORITHM_SOURCE_CONTAINER:
        if not algorithm.image_uri:
            raise ValidationError("Container algorithm must set an image")
    elif algorithm.algorithm_name not in constants.BUILTIN_ALGORITHMS:
        raise ValidationError(
            f"Algorithm {algorithm.algorithm_name!r} is not a builtin algorithm: "
            f"{', '.join(constants.BUILTIN_ALGORITHMS)}"
        )

    resources = spec.resources
    if resources.instance_resources.cpu_cores <= 0:
        raise ValidationError("CPU cores must be positive")
    for name, value in (
        ("Instance count", resources.instance_count),
        ("Memory", resources.instance_resources.memory_gib),
        ("GPU count", resources.instance_resources.gpu_count),
        ("Volume size", resources.volume_size_gb),
    ):
        if value < 0:
            raise ValidationError(f"{name} must not be negative: {value}")

    if not spec.input_data_config:
        raise ValidationError("At least one input data channel is required")
    for channel in spec.input_data_config:
        if channel.source_type == constants.CHANNEL_SOURCE_UPLOAD:
            if not channel.upload_file_name:
                raise ValidationError(f"Upload channel {channel.channel_name} must set a file name")
        elif not (channel.bucket and channel.prefix):
            raise ValidationError(
                f"Object storage channel {channel.channel_name} must set a bucket and a prefix"
            )


def get_images(spec: types.TrainingJobSpec) -> tuple[str, str]:
    if spec.algorithm.source == constants.ALGORITHM_SOURCE_CONTAINER:
        default_head = default_worker = spec.algorithm.image_uri
    else:
        default_head, default_worker = constants.DEFAULT_HEAD_IMAGE, constants.DEFAULT_WORKER_IMAGE
    return spec.head_image or default_head, spec.worker_image or default_worker


def get_worker_replicas(spec: types.TrainingJobSpec) -> int:
    return max(spec.resources.instance_count, 1)


def get_resource_quantities(
    instance_resources: types.InstanceResources, with_gpu: bool
) -> dict[str, str]:
    """Get the container resource quantities, used for both requests and limits."""

    quantities = {constants.CPU_LABEL: str(instance_resources.cpu_cores)}
    if instance_resources.memory_gib > 0:
        quantities[constants.MEMORY_LABEL] = f"{instance_resources.memory_gib}Gi"
    # The GPU key must be absent, not "0", when no GPU is requested.
    if with_gpu and instance_resources.gpu_count > 0:
        quantities[constants.GPU_LABEL] = str(instance_resources.gpu_count)
    return quantities


def get_head_group(spec: types.TrainingJobSpec, image: str, claim_name: str) -> GroupSpec:
    quantities = get_resource_quantities(spec.resources.instance_resources, with_gpu=False)
    return GroupSpec(
        container=ContainerSpec(
            name=constants.RAY_HEAD_CONTAINER,
            image=image,
            requests=dict(quantities),
            limits=dict(quantities),
            ports=list(constants.RAY_HEAD_PORTS),
            volume_mounts={constants.RESULT_STORAGE_VOLUME: constants.DEFAULT_STORAGE_PATH},
        ),
        claim_name=claim_name,
        pod_annotations=dict(constants.POD_TEMPLATE_ANNOTATIONS),
    )


def get_worker_group(spec: types.TrainingJobSpec, image: str, claim_name: str) -> GroupSpec:
    replicas = get_worker_replicas(spec)
    quantities = get_resource_quantities(spec.resources.instance_resources, with_gpu=True)
    return GroupSpec(
        container=ContainerSpec(
            name=constants.RAY_WORKER_CONTAINER,
            image=image,
            requests=dict(quantities),
            limits=dict(quantities),
            volume_mounts={constants.RESULT_STORAGE_VOLUME: constants.DEFAULT_STORAGE_PATH},
        ),
        claim_name=claim_name,
        pod_annotations=dict(constants.POD_TEMPLATE_ANNOTATIONS),
        group_name=constants.WORKER_GROUP_NAME,
        replicas=replicas,
        min_replicas=1,
        max_replicas=max(
            constants.WORKER_MIN_MAX_REPLICAS, replicas * constants.WORKER_MAX_REPLICAS_FACTOR
        ),
    )


def build_storage_claim(
    spec: types.TrainingJobSpec, job_id: str, namespace: str
) -> Optional[StorageClaim]:
    """Get the result storage claim. None when no volume is requested or the caller
    supplied an existing claim."""

    if spec.resources.volume_size_gb <= 0 or spec.pvc_name:
        return None

    return StorageClaim(
        metadata=ResourceMeta(
            name=f"{job_id}{constants.PVC_SUFFIX}",
            namespace=namespace,
            labels={
                constants.APP_LABEL: spec.job_name,
                constants.JOB_ID_LABEL: job_id,
                constants.MANAGED_BY_LABEL: constants.MANAGED_BY,
            },
        ),
        storage=f"{spec.resources.volume_size_gb}Gi",
    )


def derive_storage_path(artifact_uri: str) -> str:
    """Local path references are used verbatim, anything else maps to the default path."""
    if artifact_uri.startswith(constants.LOCAL_PATH_SCHEME):
        return artifact_uri[len(constants.LOCAL_PATH_SCHEME) :]
    return constants.DEFAULT_STORAGE_PATH


def get_channel_location(channel: types.Channel, namespace: str) -> tuple[str, str, str]:
    """Get the (endpoint, bucket, key) of an input channel.

    Uploaded files live in the namespace bucket of the in-cluster object storage.
    """
    endpoint = channel.endpoint or constants.DEFAULT_S3_ENDPOINT
    if channel.source_type == constants.CHANNEL_SOURCE_UPLOAD:
        return endpoint, channel.bucket or namespace, channel.upload_file_name or ""
    return endpoint, channel.bucket or "", channel.prefix or ""


def build_s3_config(channels: list[types.Channel], namespace: str) -> dict[str, Any]:
    endpoint, bucket, train_key = get_channel_location(channels[0], namespace)
    s3_config: dict[str, Any] = {
        "endpoint": endpoint,
        "access_key": constants.DEFAULT_S3_ACCESS_KEY,
        "secret_key": constants.DEFAULT_S3_SECRET_KEY,
        "region": constants.DEFAULT_S3_REGION,
        "bucket": bucket,
        "train_key": train_key,
    }

    # A second channel is the validation split and only contributes its key.
    if len(channels) > 1:
        s3_config["val_key"] = get_channel_location(channels[1], namespace)[2]

    return s3_config


def build_xgboost_config(hyperparameters: types.XGBoostHyperparameters) -> dict[str, Any]:
    """Copy every XGBoost hyperparameter with its declared type."""

    config = hyperparameters.model_dump(by_alias=True, exclude={"nthread"})

    if config["early_stopping_rounds"] is None:
        del config["early_stopping_rounds"]
    if config["updater"] in ("", "auto"):
        del config["updater"]
    if not config["eval_metric"]:
        del config["eval_metric"]

    return config


def build_runtime_config(spec: types.TrainingJobSpec, namespace: str) -> dict[str, Any]:
    """Build the runtime configuration payload consumed by the training containers."""

    first_channel = spec.input_data_config[0]
    config: dict[str, Any] = {
        "num_worker": get_worker_replicas(spec),
        "use_gpu": spec.resources.instance_resources.gpu_count > 0,
        "label_column": first_channel.label_name or constants.DEFAULT_LABEL_COLUMN,
        "run_name": spec.job_name,
        "storage_path": derive_storage_path(spec.output_data_config.artifact_uri),
        "s3": build_s3_config(spec.input_data_config, namespace),
    }

    if first_channel.feature_names:
        config["feature_columns"] = list(first_channel.feature_names)

    if spec.checkpoint_config and spec.checkpoint_config.checkpoint_uri:
        config["checkpoint_path"] = derive_storage_path(spec.checkpoint_config.checkpoint_uri)

    xgboost = spec.hyperparameters.xgboost
    if xgboost is None and spec.algorithm_name == constants.XGBOOST:
        xgboost = types.XGBoostHyperparameters()
    if xgboost is not None:
        config[constants.XGBOOST] = build_xgboost_config(xgboost)

    if spec.custom_hyperparameters:
        config["custom"] = dict(spec.custom_hyperparameters)

    return config


def build_runtime_env_yaml(runtime_config: dict[str, Any]) -> str:
    """Serialize the payload as a single JSON object under the TUNING_CONFIG env var."""

    try:
        payload = json.dumps(runtime_config, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise ConversionError(f"Runtime configuration is not JSON serializable: {e}") from e

    runtime_env = {
        "env_vars": {
            constants.RUNTIME_CONFIG_ENV: payload,
            f"{constants.RUNTIME_CONFIG_ENV}_VERSION": str(constants.RUNTIME_CONFIG_VERSION),
        }
    }
    return yaml.safe_dump(runtime_env, sort_keys=True, default_flow_style=False, width=float("inf"))


def decode_runtime_config(runtime_env_yaml: str) -> dict[str, Any]:
    """Parse the runtime configuration payload back from a RayJob runtimeEnvYAML."""

    try:
        runtime_env = yaml.safe_load(runtime_env_yaml)
        return json.loads(runtime_env["env_vars"][constants.RUNTIME_CONFIG_ENV])
    except (yaml.YAMLError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise ConversionError(f"Invalid runtime environment: {e}") from e
