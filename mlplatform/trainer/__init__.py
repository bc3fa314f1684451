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

# Import common types.
from mlplatform.common.types import KubernetesBackendConfig

# Import the training job client.
from mlplatform.trainer.api.trainer_client import TrainerClient
from mlplatform.trainer.backends.karmada.types import KarmadaBackendConfig

# Import the errors.
from mlplatform.trainer.errors import (
    ConversionError,
    JobNotFoundError,
    SubmissionError,
    TransientQueryError,
    ValidationError,
)
from mlplatform.trainer.reconciler.types import ReconcilerConfig

# Import the status stores.
from mlplatform.trainer.store.cluster import ClusterStatusStore
from mlplatform.trainer.store.database import DatabaseStatusStore
from mlplatform.trainer.store.memory import InMemoryStatusStore

# Import the training job types.
from mlplatform.trainer.types.types import (
    Algorithm,
    Channel,
    CheckpointConfig,
    Hyperparameters,
    InstanceResources,
    JobPhase,
    JobStatusRecord,
    MemberCluster,
    OutputDataConfig,
    Resources,
    StoppingCondition,
    TrainingJobSpec,
    XGBoostHyperparameters,
)

__all__ = [
    "Algorithm",
    "Channel",
    "CheckpointConfig",
    "ClusterStatusStore",
    "ConversionError",
    "DatabaseStatusStore",
    "Hyperparameters",
    "InMemoryStatusStore",
    "InstanceResources",
    "JobNotFoundError",
    "JobPhase",
    "JobStatusRecord",
    "KarmadaBackendConfig",
    "KubernetesBackendConfig",
    "MemberCluster",
    "OutputDataConfig",
    "ReconcilerConfig",
    "Resources",
    "StoppingCondition",
    "SubmissionError",
    "TrainerClient",
    "TrainingJobSpec",
    "TransientQueryError",
    "ValidationError",
    "XGBoostHyperparameters",
]
