"""Minimal GPU tensor: a data buffer, its dtype and a shape buffer."""

import logging

import numpy as np

from ezwgpu.dtypes import as_device_array, device_dtype, wgsl_type
from ezwgpu.errors import TensorFreedError

logger = logging.getLogger(__name__)


class Tensor:
    """GPU tensor backed by two storage buffers.

    ``data`` holds the elements in C order. ``shape_buffer`` holds the
    dimensions as ``u32`` so kernels can read the shape, e.g.::

        @group(0) @binding(0) var<storage, read_write> data: array<f32>;
        @group(0) @binding(1) var<storage, read> shape: array<u32>;

        fn(workgroups, *tensor.buffers)
    """

    def __init__(self, gpu, array, shape=None):
        """Upload ``array`` to the GPU.

        Args:
            gpu: ezwgpu.GPU the buffers live on
            array: host data (anything numpy accepts)
            shape: optional shape to record instead of ``array.shape``;
                must describe the same number of elements
        """
        arr = as_device_array(array)
        if shape is None:
            shape = arr.shape
        # The shape buffer cannot be empty, scalars are stored as (1,)
        shape = tuple(int(s) for s in shape) or (1,)
        if int(np.prod(shape)) != arr.size:
            raise ValueError(f"Cannot view {arr.size} elements as shape {shape}")

        self.gpu = gpu
        self._shape = shape
        self.dtype = arr.dtype

        self.data = gpu.mem_alloc(max(arr.nbytes, arr.dtype.itemsize))
        shape_arr = np.array(shape, dtype=np.uint32)
        self.shape_buffer = None
        try:
            gpu.memcpy_htod(self.data, arr)
            self.shape_buffer = gpu.mem_alloc(shape_arr.nbytes)
            gpu.memcpy_htod(self.shape_buffer, shape_arr)
        except Exception:
            if self.shape_buffer is not None:
                gpu.free(self.shape_buffer)
            gpu.free(self.data)
            raise
        logger.debug("Uploaded tensor %s %s", self.dtype, shape)

    # ---- Factory Methods ----
    @classmethod
    def from_numpy(cls, gpu, arr):
        """Create a tensor from a numpy array."""
        return cls(gpu, arr)

    @classmethod
    def zeros(cls, gpu, shape, dtype=np.float32):
        """Create a tensor filled with zeros."""
        return cls(gpu, np.zeros(shape, dtype=device_dtype(dtype)))

    # ---- Properties ----
    @property
    def shape(self):
        return self._shape

    @property
    def ndim(self):
        return len(self._shape)

    def numel(self):
        """Total number of elements."""
        result = 1
        for s in self._shape:
            result *= s
        return result

    @property
    def nbytes(self):
        return self.numel() * self.dtype.itemsize

    @property
    def wgsl_type(self):
        """WGSL element type of ``data`` (e.g. "f32")."""
        return wgsl_type(self.dtype)

    @property
    def buffers(self):
        """``(data, shape_buffer)`` in binding order."""
        self._check_alive()
        return self.data, self.shape_buffer

    # ---- Data Transfer ----
    def _check_alive(self):
        if self.data is None:
            raise TensorFreedError("Tensor has been freed")

    def numpy(self):
        """Read tensor data back to the CPU."""
        self._check_alive()
        out = np.empty(self._shape, dtype=self.dtype)
        self.gpu.memcpy_dtoh(out, self.data)
        return out

    def print(self):
        self._check_alive()
        print(f"Tensor(dtype={self.dtype.name}, shape={self._shape},")
        print("data=", self.numpy().ravel().tolist())
        print(")")

    def free(self):
        """Release both device buffers."""
        self._check_alive()
        self.gpu.free(self.data)
        self.gpu.free(self.shape_buffer)
        self.data = None
        self.shape_buffer = None

    def __repr__(self):
        state = "" if self.data is not None else ", freed"
        return f"Tensor(shape={self._shape}, dtype={self.dtype.name}{state})"
