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


class ValidationError(ValueError):
    """The job spec is malformed. Raised before any API call and never retried."""


class ConversionError(RuntimeError):
    """An internal invariant was violated while building the cluster resources."""


class SubmissionError(RuntimeError):
    """The control plane rejected a write during job submission."""


class TransientQueryError(RuntimeError):
    """A status query failed or timed out. The reconciler retries on the next tick."""


class JobNotFoundError(LookupError):
    """No status record exists for the requested job."""
