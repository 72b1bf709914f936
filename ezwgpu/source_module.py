"""WGSL source modules with callable entry points::

    mod = gpu.source_module(WGSL)
    square = mod.get_function("square")
    square((workgroup_count(n),), data_buffer, length_buffer)

With ``explicit_bindings=True`` the returned function takes bind-group
entries instead of bare buffers::

    dot = mod.get_function("dot", explicit_bindings=True)
    dot([1], {"binding": 0, "resource": {"buffer": a}}, ...)
"""

import logging
import numbers

import wgpu

logger = logging.getLogger(__name__)


def workgroup_count(n, workgroup_size=256):
    """Number of workgroups needed to cover ``n`` invocations."""
    return (n + workgroup_size - 1) // workgroup_size


def _normalize_workgroups(workgroups):
    if workgroups is None:
        raise ValueError("workgroups must be given")
    if isinstance(workgroups, numbers.Integral):
        workgroups = (workgroups,)
    workgroups = tuple(int(w) for w in workgroups)
    if not 1 <= len(workgroups) <= 3:
        raise ValueError(f"workgroups must have 1 to 3 dimensions, got {workgroups}")
    if any(w < 1 for w in workgroups):
        raise ValueError(f"workgroup counts must be positive, got {workgroups}")
    return workgroups


def _normalize_entry(entry):
    """Fill in offset/size of a buffer bind-group entry."""
    resource = dict(entry["resource"])
    buffer = resource["buffer"]
    resource.setdefault("offset", 0)
    resource.setdefault("size", buffer.size)
    return {"binding": entry["binding"], "resource": resource}


class SourceModule:
    """A WGSL kernel compiled against a :class:`~ezwgpu.gpu.GPU`."""

    def __init__(self, gpu, kernel):
        self.gpu = gpu
        self.device = gpu.device
        self.kernel = kernel
        self._shader_module = None
        self._pipelines = {}

    @property
    def shader_module(self):
        """The compiled ``GPUShaderModule`` (compiled on first access)."""
        if self._shader_module is None:
            self._shader_module = self.device.create_shader_module(code=self.kernel)
            logger.debug("Compiled shader module (%d chars)", len(self.kernel))
        return self._shader_module

    def _pipeline(self, name):
        pipeline = self._pipelines.get(name)
        if pipeline is None:
            pipeline = self.device.create_compute_pipeline(
                layout=wgpu.AutoLayoutMode.auto,
                compute={"module": self.shader_module, "entry_point": name},
            )
            self._pipelines[name] = pipeline
            logger.debug("Created compute pipeline for entry point %r", name)
        return pipeline

    def get_function_explicit_bindings(self, name):
        """Callable for entry point ``name`` taking bind-group entries."""
        pipeline = self._pipeline(name)
        bind_group_layout = pipeline.get_bind_group_layout(0)
        device = self.device

        def gpu_func(workgroups, *bindings):
            workgroups = _normalize_workgroups(workgroups)
            bind_group = device.create_bind_group(
                layout=bind_group_layout,
                entries=[_normalize_entry(b) for b in bindings],
            )

            command_encoder = device.create_command_encoder()
            compute_pass = command_encoder.begin_compute_pass()
            compute_pass.set_pipeline(pipeline)
            compute_pass.set_bind_group(0, bind_group)
            compute_pass.dispatch_workgroups(*workgroups)
            compute_pass.end()
            device.queue.submit([command_encoder.finish()])
            logger.debug("Dispatched %r with workgroups %s", name, workgroups)

        gpu_func.__name__ = name
        return gpu_func

    def get_function_only_buffers(self, name):
        """Callable for entry point ``name`` taking buffers in binding order."""
        gpu_func = self.get_function_explicit_bindings(name)

        def buffers_func(workgroups, *buffers):
            bindings = [
                {"binding": binding, "resource": {"buffer": buffer}}
                for binding, buffer in enumerate(buffers)
            ]
            gpu_func(workgroups, *bindings)

        buffers_func.__name__ = name
        return buffers_func

    def get_function(self, name, explicit_bindings=False):
        """Return a callable GPU function for WGSL entry point ``name``.

        Args:
            name: entry point, e.g. "main" for ``fn main``
            explicit_bindings: if True the function takes bind-group entry
                dicts ``{"binding": n, "resource": {"buffer": buf}}``;
                otherwise it takes buffers and binds them by position

        The returned function's first argument is the workgroup count, an
        int or a sequence of up to three ints.
        """
        if explicit_bindings:
            return self.get_function_explicit_bindings(name)
        return self.get_function_only_buffers(name)
