"""
ezwgpu: PyCUDA-style GPU compute on top of wgpu-py.

Wraps WebGPU buffer allocation, host/device copies, WGSL shader compilation
and compute dispatch behind a small surface modelled after PyCUDA's
``mem_alloc`` / ``memcpy_htod`` / ``SourceModule``.

Modules:
    gpu           - GPU device wrapper (allocation, copies, readback)
    source_module - WGSL module compilation and callable entry points
    tensor        - Minimal tensor bundling data, dtype and shape buffers
    dtypes        - numpy <-> WGSL scalar type mapping
    selftest      - Built-in sanity checks (python -m ezwgpu.selftest)
"""

from ezwgpu.errors import EzWgpuError, GPUInitError, TensorFreedError
from ezwgpu.gpu import GPU, DEFAULT_USAGE, STAGING_USAGE
from ezwgpu.source_module import SourceModule, workgroup_count
from ezwgpu.tensor import Tensor

__version__ = "0.1.0"

__all__ = [
    # Device
    "GPU", "DEFAULT_USAGE", "STAGING_USAGE",
    # Kernels
    "SourceModule", "workgroup_count",
    # Tensor
    "Tensor",
    # Errors
    "EzWgpuError", "GPUInitError", "TensorFreedError",
]
