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

from pydantic import BaseModel, Field

from mlplatform.trainer.constants import constants


class ReconcilerConfig(BaseModel):
    """Scheduling of the status reconciler.

    Args:
        interval: Seconds between two scans of the non-terminal jobs.
        query_timeout: Seconds to wait for the status query of one job.
        workers: The number of jobs queried concurrently within one scan.
    """

    interval: float = Field(default=constants.DEFAULT_RECONCILE_INTERVAL, gt=0)
    query_timeout: int = Field(default=constants.DEFAULT_QUERY_TIMEOUT, gt=0)
    workers: int = Field(default=constants.DEFAULT_RECONCILE_WORKERS, ge=1)
