#!/usr/bin/env python3
"""
Square every element of an array on the GPU.

Demonstrates: allocation, host -> device copy, compiling a WGSL kernel,
dispatching it with positional buffer bindings and copying the result back.

Usage:
    python -m ezwgpu.examples.square
"""

import numpy as np

from ezwgpu import GPU, workgroup_count

WGSL_SQUARE = """
@group(0) @binding(0) var<storage, read_write> data: array<f32>;
@group(0) @binding(1) var<storage, read> n: u32;

@compute @workgroup_size(256)
fn square(@builtin(global_invocation_id) gid: vec3<u32>) {
    if (gid.x < n) {
        data[gid.x] = data[gid.x] * data[gid.x];
    }
}
"""


def square(gpu, values):
    """Return ``values`` squared element-wise, computed on ``gpu``."""
    cpu_data = np.array(values, dtype=np.float32)
    cpu_length = np.array([cpu_data.size], dtype=np.uint32)

    gpu_data = gpu.mem_alloc(cpu_data.nbytes)
    gpu_length = gpu.mem_alloc(cpu_length.nbytes)
    gpu.memcpy_htod(gpu_data, cpu_data)
    gpu.memcpy_htod(gpu_length, cpu_length)

    module = gpu.source_module(WGSL_SQUARE)
    square_fn = module.get_function("square")
    square_fn([workgroup_count(cpu_data.size)], gpu_data, gpu_length)

    gpu.memcpy_dtoh(cpu_data, gpu_data)
    gpu.free(gpu_data)
    gpu.free(gpu_length)
    return cpu_data


def main():
    with GPU.init() as gpu:
        print(square(gpu, [1, 2, 3, 4]))  # [ 1.  4.  9. 16.]


if __name__ == "__main__":
    main()
