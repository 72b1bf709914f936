"""numpy <-> WGSL type mapping."""

import numpy as np
import pytest

from ezwgpu.dtypes import as_device_array, device_dtype, wgsl_type


@pytest.mark.parametrize("dtype, expected", [
    (np.float32, "f32"),
    (np.int32, "i32"),
    (np.uint32, "u32"),
    (np.float16, "f16"),
    ("float32", "f32"),
])
def test_wgsl_type(dtype, expected):
    assert wgsl_type(dtype) == expected


@pytest.mark.parametrize("dtype", [np.float64, np.int8, np.complex64])
def test_wgsl_type_unsupported(dtype):
    with pytest.raises(TypeError):
        wgsl_type(dtype)


def test_device_dtype_narrows():
    assert device_dtype(np.float64) == np.float32
    assert device_dtype(np.int64) == np.int32
    assert device_dtype(np.float32) == np.float32


def test_device_dtype_rejects_unsupported():
    with pytest.raises(TypeError):
        device_dtype(np.int16)


def test_as_device_array_is_contiguous():
    arr = np.arange(12, dtype=np.float64).reshape(3, 4).T
    out = as_device_array(arr)
    assert out.dtype == np.float32
    assert out.flags.c_contiguous
    np.testing.assert_array_equal(out, arr)


def test_as_device_array_keeps_supported_array():
    arr = np.arange(4, dtype=np.uint32)
    assert as_device_array(arr) is arr
