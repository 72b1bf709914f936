"""Exception types raised by ezwgpu."""


class EzWgpuError(Exception):
    """Base class for ezwgpu errors."""


class GPUInitError(EzWgpuError, RuntimeError):
    """No usable adapter or device could be obtained."""


class TensorFreedError(EzWgpuError, RuntimeError):
    """A tensor was used after ``free()``."""
