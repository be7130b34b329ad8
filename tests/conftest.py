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
# initially based on: https://bit.ly/3GDHDcI
import os

import numpy as np
import pytest
import torch

from metadata_arrays import MetadataArray, get_config, set_config
from metadata_arrays.utils.logging import rank_zero_only


@pytest.fixture(scope="function", autouse=True)
def preserve_global_rank_variable():
    """Ensures that the rank_zero_only.rank global variable gets reset in each test."""
    rank = getattr(rank_zero_only, "rank", None)
    yield
    if rank is not None:
        setattr(rank_zero_only, "rank", rank)


@pytest.fixture(scope="function", autouse=True)
def restore_env_variables():
    """Ensures that environment variables set during the test do not leak out."""
    env_backup = os.environ.copy()
    yield
    leaked_vars = os.environ.keys() - env_backup.keys()
    # restore environment as it was before running the test
    os.environ.clear()
    os.environ.update(env_backup)
    # these are currently known leakers - ideally these would not be allowed
    allowlist = {
        "CUBLAS_WORKSPACE_CONFIG",
        "CUDA_DEVICE_ORDER",
        "CUDA_MODULE_LOADING",  # leaked since PyTorch 1.13
        "KMP_INIT_AT_FORK",  # leaked since PyTorch 1.13
        "KMP_DUPLICATE_LIB_OK",  # leaked since PyTorch 1.13
    }
    leaked_vars.difference_update(allowlist)
    assert not leaked_vars, f"test is leaking environment variable(s): {set(leaked_vars)}"


@pytest.fixture(scope="function", autouse=True)
def restore_global_config():
    """Ensures that a test installing a global `MetadataArrayConfig` does not leak it into other tests."""
    cfg = get_config()
    yield
    set_config(cfg)


@pytest.fixture
def names_mda():
    names = ["John", "John", "Jane", "Louise"]
    groups = {"John": "Treatment", "Louise": "Placebo", "Jane": "Placebo"}
    return MetadataArray(names, groups=groups)


@pytest.fixture
def ndarray_mda():
    return MetadataArray(np.arange(12, dtype=np.float64).reshape(3, 4), units="m", source="sensor_a")


@pytest.fixture
def tensor_mda():
    return MetadataArray(torch.arange(6, dtype=torch.float32), units="s")
