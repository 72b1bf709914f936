"""GPU device wrapper with PyCUDA-style memory helpers.

Host data is numpy arrays, device data is ``wgpu.GPUBuffer``. Reading a
device buffer back goes through a temporary staging buffer:

    allocate staging (COPY_DST | MAP_READ) -> encode copy -> submit
    -> map for reading -> view as dtype

Typical use::

    gpu = GPU.init()
    a_gpu = gpu.mem_alloc(a.nbytes)
    gpu.memcpy_htod(a_gpu, a)
    ...
    gpu.memcpy_dtoh(a, a_gpu)
    gpu.free(a_gpu)
"""

import logging

import numpy as np
import wgpu
import wgpu.backends.wgpu_native  # noqa: F401

from ezwgpu import config
from ezwgpu.errors import GPUInitError
from ezwgpu.source_module import SourceModule

logger = logging.getLogger(__name__)

DEFAULT_USAGE = (
    wgpu.BufferUsage.STORAGE | wgpu.BufferUsage.COPY_DST | wgpu.BufferUsage.COPY_SRC
)
STAGING_USAGE = wgpu.BufferUsage.COPY_DST | wgpu.BufferUsage.MAP_READ

# Buffer copies and queue writes must be multiples of 4 bytes
COPY_ALIGNMENT = 4


def _align(nbytes, alignment=COPY_ALIGNMENT):
    return (nbytes + alignment - 1) // alignment * alignment


class GPU:
    """A wgpu device plus the memory helpers that operate on it."""

    def __init__(self, device, adapter=None):
        self.device = device
        self.adapter = adapter if adapter is not None else getattr(device, "adapter", None)

    # ---- Construction ----
    @classmethod
    def init(cls, power_preference=None, force_fallback_adapter=None, **device_kwargs):
        """Request an adapter and device synchronously.

        Args:
            power_preference: "high-performance" or "low-power"; defaults to
                ``EZWGPU_POWER_PREFERENCE`` or "high-performance"
            force_fallback_adapter: request the software adapter; defaults to
                ``EZWGPU_FORCE_FALLBACK_ADAPTER``
            **device_kwargs: forwarded to ``adapter.request_device_sync``
        """
        kwargs = config.adapter_kwargs(
            power_preference=power_preference,
            force_fallback_adapter=force_fallback_adapter,
        )
        adapter = wgpu.gpu.request_adapter_sync(**kwargs)
        if adapter is None:
            raise GPUInitError(f"No GPU adapter available ({kwargs})")
        device = adapter.request_device_sync(**device_kwargs)
        if device is None:
            raise GPUInitError("Adapter did not provide a device")
        logger.info("Using adapter: %s", adapter.summary)
        return cls(device, adapter)

    @classmethod
    async def init_async(cls, power_preference=None, force_fallback_adapter=None, **device_kwargs):
        """Awaitable variant of :meth:`init`."""
        kwargs = config.adapter_kwargs(
            power_preference=power_preference,
            force_fallback_adapter=force_fallback_adapter,
        )
        adapter = await wgpu.gpu.request_adapter_async(**kwargs)
        if adapter is None:
            raise GPUInitError(f"No GPU adapter available ({kwargs})")
        device = await adapter.request_device_async(**device_kwargs)
        if device is None:
            raise GPUInitError("Adapter did not provide a device")
        logger.info("Using adapter: %s", adapter.summary)
        return cls(device, adapter)

    def destroy(self):
        """Destroy the underlying device."""
        self.device.destroy()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()

    # ---- Allocation ----
    def mem_alloc(self, nbytes, usage=DEFAULT_USAGE):
        """Allocate a device buffer of at least ``nbytes`` bytes."""
        if nbytes <= 0:
            raise ValueError(f"Buffer size must be positive, got {nbytes}")
        size = _align(int(nbytes))
        buffer = self.device.create_buffer(size=size, usage=usage)
        logger.debug("Allocated %d bytes (usage=%s)", size, usage)
        return buffer

    def free(self, buffer):
        """Release a device buffer."""
        size = buffer.size
        buffer.destroy()
        logger.debug("Freed buffer of %d bytes", size)

    # ---- Host <-> Device ----
    def memcpy_htod(self, device_buffer, host_array):
        """Copy a host array into ``device_buffer`` starting at offset 0."""
        host = np.ascontiguousarray(host_array)
        if host.nbytes > device_buffer.size:
            raise ValueError(
                f"Host array ({host.nbytes} bytes) does not fit in device "
                f"buffer ({device_buffer.size} bytes)"
            )
        data = host
        if host.nbytes % COPY_ALIGNMENT:
            data = host.tobytes().ljust(_align(host.nbytes), b"\x00")
        self.device.queue.write_buffer(device_buffer, 0, data)

    def memcpy_dtoh(self, host_array, device_buffer):
        """Copy ``device_buffer`` into ``host_array`` in place.

        The buffer is interpreted with the host array's dtype; only as many
        elements as the host array holds are copied.
        """
        values = self.map_gpu_to_cpu(device_buffer, host_array.dtype)
        self._store(host_array, values)

    async def memcpy_dtoh_async(self, host_array, device_buffer):
        """Awaitable variant of :meth:`memcpy_dtoh`."""
        values = await self.map_gpu_to_cpu_async(device_buffer, host_array.dtype)
        self._store(host_array, values)

    @staticmethod
    def _store(host_array, values):
        if values.size < host_array.size:
            raise ValueError(
                f"Device buffer holds {values.size} elements, "
                f"host array needs {host_array.size}"
            )
        host_array[...] = values[: host_array.size].reshape(host_array.shape)

    # ---- Readback ----
    def _copy_to_staging(self, src_buffer, staging):
        encoder = self.device.create_command_encoder()
        encoder.copy_buffer_to_buffer(src_buffer, 0, staging, 0, src_buffer.size)
        self.device.queue.submit([encoder.finish()])

    @staticmethod
    def _view_mapped(staging, dtype):
        data = staging.read_mapped()
        dtype = np.dtype(dtype)
        count = len(data) // dtype.itemsize
        return np.frombuffer(data, dtype=dtype, count=count).copy()

    def map_gpu_to_cpu(self, buffer, dtype=np.float32):
        """Read the full contents of ``buffer`` as a new numpy array."""
        staging = self.mem_alloc(buffer.size, STAGING_USAGE)
        mapped = False
        try:
            self._copy_to_staging(buffer, staging)
            staging.map_sync(wgpu.MapMode.READ)
            mapped = True
            return self._view_mapped(staging, dtype)
        finally:
            if mapped:
                staging.unmap()
            staging.destroy()

    async def map_gpu_to_cpu_async(self, buffer, dtype=np.float32):
        """Awaitable variant of :meth:`map_gpu_to_cpu`."""
        staging = self.mem_alloc(buffer.size, STAGING_USAGE)
        mapped = False
        try:
            self._copy_to_staging(buffer, staging)
            await staging.map_async(wgpu.MapMode.READ)
            mapped = True
            return self._view_mapped(staging, dtype)
        finally:
            if mapped:
                staging.unmap()
            staging.destroy()

    # ---- Diagnostics ----
    def print_gpu_buffer(self, buffer, label="", dtype=np.float32):
        """Print the contents of a device buffer."""
        values = self.map_gpu_to_cpu(buffer, dtype)
        print(label, values.tolist())

    def print_device_info(self):
        """Print the adapter info as a two-column table."""
        info = dict(self.adapter.info)
        width = max((len(str(k)) for k in info), default=0)
        print(f"{'key':<{width}} | value")
        print("-" * width + "-+-" + "-" * 20)
        for key, value in info.items():
            print(f"{str(key):<{width}} | {value}")

    # ---- Kernels ----
    def source_module(self, kernel):
        """Compile-on-demand WGSL module bound to this GPU."""
        return SourceModule(self, kernel)
