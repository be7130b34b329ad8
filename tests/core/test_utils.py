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
from unittest.mock import patch
import logging
import operator
import os
from pathlib import Path
from typing import Any

import numpy as np
import pytest
import torch

from metadata_arrays import MetadataArray, MetadataStore, UndecidableStyleError, MissingMetadataKeyError
from metadata_arrays.styles import DefaultArrayStyle, TupleStyle
from metadata_arrays.utils import (
    _get_rank,
    rank_zero_only,
    rank_zero_debug,
    rank_zero_info,
    rank_zero_deprecation,
    _resolve_torch_dtype,
    package_available,
    compare_version,
    summarize_obj,
    metadata_summary,
)
from metadata_arrays.utils.warnings import _custom_format_warning


class TestClassUtils:

    def test_rank_zero_utils(self):
        with patch.dict(os.environ, {"RANK": "42"}):
            test_rank = _get_rank()
            assert test_rank == 42
        with patch.object(rank_zero_only, "rank", "13"):

            def rank_zero_default(*args: Any, stacklevel: int = 4, **kwargs: Any) -> None:
                pass

            rank_zero_default = rank_zero_only(rank_zero_default, default="test success")
            assert rank_zero_default() == "test success"
        with patch.object(rank_zero_only, "rank", None):

            @rank_zero_only
            def rank_zero_errtest(*args: Any, stacklevel: int = 4, **kwargs: Any) -> None:
                pass

            with pytest.raises(RuntimeError, match="needs to be set before use"):
                rank_zero_errtest()
        with pytest.warns(DeprecationWarning, match="Test deprecation msg"):
            rank_zero_deprecation("Test deprecation msg.")

    def test_rank_zero_logging(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="metadata_arrays"):
            rank_zero_debug("debug from rank zero")
            rank_zero_info("info from rank zero")
            with patch.object(rank_zero_only, "rank", 1):
                rank_zero_info("info from rank one")
        assert "debug from rank zero" in caplog.text
        assert "info from rank zero" in caplog.text
        assert "info from rank one" not in caplog.text

    def test_broadcast_debug_logging(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="metadata_arrays"):
            MetadataArray([1, 2, 3], units="m") + 1
        assert "Broadcasting `add` over 2 operand(s)" in caplog.text

    def test_compare_version(self, monkeypatch):
        assert not compare_version("torchnotfound", operator.ge, "2.2.0", use_base_version=True)
        assert compare_version("torch", operator.ge, "2.0.0", use_base_version=True)
        with patch.object(torch, "__version__", "not-a-version"):
            assert not compare_version("torch", operator.ge, "2.0.0", use_base_version=True)
        monkeypatch.delattr(np, "__version__")
        # falls back to the installed distribution metadata
        assert compare_version("numpy", operator.ge, "1.0")

    def test_package_available(self):
        assert package_available("numpy")
        assert not package_available("metadata_arrays_not_a_package")

    @pytest.mark.parametrize(
        "dtype, expected",
        [(torch.float16, torch.float16), ("float32", torch.float32), ("torch.bfloat16", torch.bfloat16),
         ("not_a_dtype", None), (np.float32, None)],
        ids=["torch_dtype", "str", "qualified_str", "unknown_str", "numpy_dtype"],
    )
    def test_resolve_torch_dtype(self, dtype, expected):
        assert _resolve_torch_dtype(dtype) == expected

    def test_custom_format_warning(self):
        pkg_file = str(Path(__file__).parents[2] / "src" / "metadata_arrays" / "core.py")
        assert _custom_format_warning("msg", UserWarning, pkg_file, 10) == f"{pkg_file}:10: msg\n"
        formatted = _custom_format_warning("msg", UserWarning, "/tmp/other.py", 10)
        assert "UserWarning" in formatted


class TestClassReprHelpers:

    def test_summarize_obj(self):
        assert summarize_obj(None) is None
        assert summarize_obj(3) == 3
        assert summarize_obj(torch.zeros(2, 3)) == "Tensor(shape=(2, 3), dtype=torch.float32, device=cpu)"
        assert summarize_obj(np.zeros(2)) == "ndarray(shape=(2,), dtype=float64)"
        assert summarize_obj({"a": 1, "b": 2}) == {"len": 2, "keys": ["a", "b"]}
        assert summarize_obj([1, 2, 3]) == "list(len=3)"
        assert summarize_obj(Path("/tmp/x")) == "/tmp/x"
        assert summarize_obj("a" * 40).endswith("...")
        assert summarize_obj(object()) == "object(...)"

    def test_metadata_summary(self):
        store = MetadataStore(units="m", scale=2, offset=0.5)
        assert metadata_summary(store) == "units='m', scale=2, offset=0.5"
        assert metadata_summary(store, max_keys=2) == "units='m', scale=2, ...(1 more)"
        assert metadata_summary(MetadataStore()) == ""


class TestClassExceptions:

    def test_missing_key_error(self):
        err = MissingMetadataKeyError("units", ("groups", "scale"))
        assert str(err) == "Metadata key 'units' not found, available keys: ('groups', 'scale')"
        assert isinstance(err, KeyError) and isinstance(err, AttributeError)
        assert MissingMetadataKeyError("units").available == ()

    def test_undecidable_style_error(self):
        err = UndecidableStyleError(DefaultArrayStyle(1), TupleStyle())
        assert "DefaultArrayStyle(ndim=1)" in str(err) and "TupleStyle()" in str(err)
        assert str(UndecidableStyleError(TupleStyle(), msg="custom")) == "custom"
