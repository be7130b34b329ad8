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
import numpy as np
import pytest
import torch

from metadata_arrays import (MetadataArray, MetadataArrayType, MetadataStore, MetadataSupport, MetadataVector,
                             MetadataUnsupportedError, MissingMetadataKeyError, can_change_size, can_setindex,
                             drop_metadata, dropmeta, element_type, has_metadata, is_forwarding_wrapper, metadata,
                             metadata_keys, metadata_support, parent, parent_type, similar, unwrap)
from tests.warns import DROPMETA_WARN, unmatched_warns


class TestClassMetadataAccess:

    def test_metadata_by_key(self, names_mda):
        assert metadata(names_mda, "groups") == {"John": "Treatment", "Louise": "Placebo", "Jane": "Placebo"}
        assert metadata(names_mda, "groups", style=True) == (names_mda.groups, "default")

    def test_whole_store(self, names_mda):
        store = metadata(names_mda)
        assert isinstance(store, MetadataStore)
        assert store is names_mda.metadata_store
        assert metadata_keys(names_mda) == ("groups",)
        assert metadata_keys([1, 2]) == ()

    def test_missing_key(self, names_mda):
        with pytest.raises(MissingMetadataKeyError) as excinfo:
            metadata(names_mda, "units")
        assert excinfo.value.key == "units"
        assert isinstance(excinfo.value, KeyError)
        assert metadata(names_mda, "units", "unknown") == "unknown"
        assert metadata(names_mda, "units", None, style=True) == (None, "default")

    def test_default_on_unsupported(self):
        assert metadata([1, 2], "units", "m") == "m"
        assert metadata(np.zeros(2), "units", None) is None
        assert metadata(torch.zeros(2), "units", 0, style=True) == (0, "default")
        with pytest.raises(MetadataUnsupportedError, match="list do not support metadata"):
            metadata([1, 2], "units")
        with pytest.raises(TypeError):
            metadata(np.zeros(2))

    def test_has_metadata(self, names_mda):
        assert has_metadata(names_mda, "groups")
        assert not has_metadata(names_mda, "units")
        assert not has_metadata(["groups"], "groups")

    @pytest.mark.parametrize(
        "obj, expected",
        [
            (MetadataArray([1]), MetadataSupport(read=True, write=False)),
            (MetadataArray, MetadataSupport(read=True, write=False)),
            (MetadataVector, MetadataSupport(read=True, write=False)),
            ([1], MetadataSupport(read=False, write=False)),
            (np.ndarray, MetadataSupport(read=False, write=False)),
        ],
        ids=["instance", "class", "array_type", "list", "ndarray_class"],
    )
    def test_metadata_support(self, obj, expected):
        assert metadata_support(obj) == expected


class TestClassDropMetadata:

    def test_drop_metadata(self, names_mda):
        stripped = drop_metadata(names_mda)
        assert stripped is names_mda.parent
        assert drop_metadata(stripped) is stripped
        assert drop_metadata(5) == 5
        assert parent(names_mda) is names_mda.parent
        assert unwrap(names_mda) is names_mda.parent
        assert parent("abc") == "abc"

    def test_dropmeta_deprecated(self, names_mda):
        with pytest.warns(DeprecationWarning) as rec:
            stripped = dropmeta(names_mda)
        assert stripped is names_mda.parent
        assert not unmatched_warns(rec_warns=list(rec), expected_warns=[DROPMETA_WARN])


class TestClassTypeTraits:

    def test_parent_and_element_type(self, names_mda, ndarray_mda):
        assert parent_type(names_mda) is list
        assert parent_type(ndarray_mda) is np.ndarray
        assert parent_type(MetadataArrayType(parent_type=tuple)) is tuple
        assert parent_type((1, 2)) is tuple
        with pytest.raises(TypeError, match="unconstrained"):
            parent_type(MetadataVector)
        assert element_type(ndarray_mda) == np.float64
        assert element_type(names_mda) is str
        assert element_type([1, 2.5]) is float
        assert element_type(MetadataArrayType(dtype=np.int64)) is np.int64

    @pytest.mark.parametrize(
        "obj, setindex, change_size",
        [
            (MetadataArray([1, 2]), True, True),
            (MetadataArray((1, 2)), False, False),
            (MetadataArray(range(3)), False, False),
            (MetadataArray(np.zeros(2)), True, False),
            (MetadataArray(torch.zeros(2)), True, False),
            (MetadataArrayType(parent_type=list), True, True),
            (tuple, False, False),
        ],
        ids=["list", "tuple", "range", "ndarray", "tensor", "array_type", "bare_type"],
    )
    def test_capabilities(self, obj, setindex, change_size):
        assert can_setindex(obj) is setindex
        assert can_change_size(obj) is change_size

    def test_is_forwarding_wrapper(self, names_mda):
        assert is_forwarding_wrapper(names_mda)
        assert is_forwarding_wrapper(MetadataArray)
        assert is_forwarding_wrapper(MetadataVector)
        assert not is_forwarding_wrapper([1])
        assert not is_forwarding_wrapper(np.ndarray)

    def test_similar(self, names_mda):
        assert similar([1, 2, 3]) == [None] * 3
        assert similar(np.zeros((2, 2)), np.int8).dtype == np.int8
        wrapped = similar(names_mda, shape=2)
        assert isinstance(wrapped, MetadataArray)
        assert wrapped.parent == [None, None]
        assert wrapped.metadata_store is names_mda.metadata_store
