"""numpy dtype <-> WGSL scalar type mapping."""

import numpy as np

WGSL_TYPES = {
    np.dtype(np.float32): "f32",
    np.dtype(np.int32): "i32",
    np.dtype(np.uint32): "u32",
    np.dtype(np.float16): "f16",
}

# GPU storage is 32-bit; wider host types are narrowed on upload
_NARROWING = {
    np.dtype(np.float64): np.dtype(np.float32),
    np.dtype(np.int64): np.dtype(np.int32),
    np.dtype(np.uint64): np.dtype(np.uint32),
    np.dtype(np.bool_): np.dtype(np.uint32),
}


def wgsl_type(dtype):
    """Return the WGSL scalar type name for a numpy dtype."""
    dtype = np.dtype(dtype)
    try:
        return WGSL_TYPES[dtype]
    except KeyError:
        raise TypeError(f"Unsupported dtype for GPU storage: {dtype}") from None


def device_dtype(dtype):
    """Return the dtype an array of ``dtype`` is stored as on the GPU."""
    dtype = np.dtype(dtype)
    dtype = _NARROWING.get(dtype, dtype)
    wgsl_type(dtype)
    return dtype


def as_device_array(arr):
    """Convert ``arr`` to a C-contiguous array with a GPU storage dtype."""
    arr = np.asarray(arr)
    target = device_dtype(arr.dtype)
    if arr.dtype != target:
        arr = arr.astype(target)
    return np.ascontiguousarray(arr)
