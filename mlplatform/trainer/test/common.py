# Shared test utilities and types for the training job engine tests.

from dataclasses import dataclass, field
from typing import Any, Optional

# Common status constants
SUCCESS = "success"
FAILED = "Failed"
DEFAULT_NAMESPACE = "default"
TIMEOUT = "timeout"
RUNTIME = "runtime"
NOT_FOUND = "not-found"
CONFLICT = "conflict"


@dataclass
class TestCase:
    name: str
    expected_status: str = SUCCESS
    config: dict[str, Any] = field(default_factory=dict)
    expected_output: Optional[Any] = None
    expected_error: Optional[type[Exception]] = None
    # Prevent pytest from collecting this dataclass as a test
    __test__ = False


def get_job_spec_dict(**overrides: Any) -> dict[str, Any]:
    """Get a camelCase job request body for a two-worker XGBoost job."""
    spec = {
        "jobName": "demo",
        "algorithm": {"source": "builtin", "algorithmName": "xgboost"},
        "resources": {
            "instanceResources": {"cpuCores": 2, "memoryGiB": 4, "gpuCount": 0},
            "instanceCount": 2,
            "volumeSizeGB": 10,
        },
        "inputDataConfig": [
            {
                "channelName": "train",
                "sourceType": "object-storage",
                "endpoint": "minio:9000",
                "bucket": "data",
                "prefix": "train.csv",
            }
        ],
        "outputDataConfig": {"artifactUri": "s3://out/"},
        "targetClusters": ["c1", "c2"],
        "namespace": DEFAULT_NAMESPACE,
    }
    spec.update(overrides)
    return spec
