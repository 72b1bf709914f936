#!/usr/bin/env python3
"""Built-in sanity checks for ezwgpu.

Checks:
1. Host -> device -> host round trip of a float32 array
2. f32 dot product in a single workgroup (explicit bindings)
3. u32 dot product with the length passed in a buffer (positional bindings)
4. Tensor upload/readback including its shape buffer

Usage:
    python -m ezwgpu.selftest
"""

import sys

import numpy as np

from ezwgpu.gpu import GPU
from ezwgpu.tensor import Tensor

THREADS_PER_BLOCK = 256
# Both dot products run in one workgroup; `c +=` is not atomic across workgroups
DOT_F32_LENGTH = 128
DOT_U32_LENGTH = THREADS_PER_BLOCK

WGSL_DOT_F32 = """
@group(0) @binding(0) var<storage, read> a: array<f32>;
@group(0) @binding(1) var<storage, read> b: array<f32>;
@group(0) @binding(2) var<storage, read_write> c: f32;

var<workgroup> partial_sums: array<f32, {threads}>;

@compute @workgroup_size({threads})
fn dot_product(@builtin(global_invocation_id) gid: vec3<u32>, @builtin(local_invocation_id) lid: vec3<u32>) {{
    if (gid.x < {length}u) {{
        partial_sums[lid.x] = a[gid.x] * b[gid.x];
    }} else {{
        partial_sums[lid.x] = 0.0;
    }}
    workgroupBarrier();

    if (lid.x == 0u) {{
        var summed: f32 = 0.0;
        for (var i: u32 = 0u; i < {threads}u; i++) {{
            summed += partial_sums[i];
        }}
        c += summed;
    }}
}}
"""

WGSL_DOT_U32 = """
@group(0) @binding(0) var<storage, read> a: array<u32>;
@group(0) @binding(1) var<storage, read> b: array<u32>;
@group(0) @binding(2) var<storage, read_write> c: u32;
@group(0) @binding(3) var<storage, read> n: u32;

var<workgroup> partial_sums: array<u32, {threads}>;

@compute @workgroup_size({threads})
fn dot_product(@builtin(global_invocation_id) gid: vec3<u32>, @builtin(local_invocation_id) lid: vec3<u32>) {{
    if (gid.x < n) {{
        partial_sums[lid.x] = a[gid.x] * b[gid.x];
    }} else {{
        partial_sums[lid.x] = 0u;
    }}
    workgroupBarrier();

    if (lid.x == 0u) {{
        var summed: u32 = 0u;
        for (var i: u32 = 0u; i < {threads}u; i++) {{
            summed += partial_sums[i];
        }}
        c += summed;
    }}
}}
"""


def _report(name, ok, detail=""):
    status = "[OK]" if ok else "[FAIL]"
    print(f"  {name:<28} {status} {detail}".rstrip())
    return ok


def check_mem_alloc_and_copy(gpu):
    """Round-trip a float32 array through a device buffer."""
    c = np.array([1.0, 2.0, 3.0], dtype=np.float32)
    result = np.zeros_like(c)

    c_gpu = gpu.mem_alloc(c.nbytes)
    try:
        gpu.memcpy_htod(c_gpu, c)
        gpu.memcpy_dtoh(result, c_gpu)
    finally:
        gpu.free(c_gpu)

    return _report("mem_alloc_and_copy", np.array_equal(c, result))


def check_single_workgroup(gpu):
    """f32 dot product with the length baked into the kernel."""
    length = DOT_F32_LENGTH
    rng = np.random.default_rng(0)
    cpu_a = rng.random(length, dtype=np.float32)
    cpu_b = rng.random(length, dtype=np.float32)
    cpu_c = np.zeros(1, dtype=np.float32)

    buffers = [gpu.mem_alloc(arr.nbytes) for arr in (cpu_a, cpu_b, cpu_c)]
    try:
        for buf, arr in zip(buffers, (cpu_a, cpu_b, cpu_c)):
            gpu.memcpy_htod(buf, arr)

        mod = gpu.source_module(
            WGSL_DOT_F32.format(threads=THREADS_PER_BLOCK, length=length)
        )
        dot = mod.get_function("dot_product", explicit_bindings=True)
        dot(
            [1],
            *({"binding": i, "resource": {"buffer": buf}} for i, buf in enumerate(buffers)),
        )
        gpu.memcpy_dtoh(cpu_c, buffers[2])
    finally:
        for buf in buffers:
            gpu.free(buf)

    expected = float(np.dot(cpu_a.astype(np.float64), cpu_b))
    ok = bool(np.isclose(cpu_c[0], expected, rtol=1e-4))
    return _report("single_workgroup (f32)", ok, f"got {cpu_c[0]:.4f}, expected {expected:.4f}")


def check_other_types(gpu):
    """u32 dot product with the length passed in a buffer."""
    length = DOT_U32_LENGTH
    cpu_a = np.arange(length, dtype=np.uint32)
    cpu_b = np.ones(length, dtype=np.uint32)
    cpu_c = np.zeros(1, dtype=np.uint32)
    cpu_n = np.array([length], dtype=np.uint32)

    arrays = (cpu_a, cpu_b, cpu_c, cpu_n)
    buffers = [gpu.mem_alloc(arr.nbytes) for arr in arrays]
    try:
        for buf, arr in zip(buffers, arrays):
            gpu.memcpy_htod(buf, arr)

        mod = gpu.source_module(WGSL_DOT_U32.format(threads=THREADS_PER_BLOCK))
        dot = mod.get_function("dot_product")
        dot([1], *buffers)
        gpu.memcpy_dtoh(cpu_c, buffers[2])
    finally:
        for buf in buffers:
            gpu.free(buf)

    expected = int(np.dot(cpu_a.astype(np.uint64), cpu_b))
    ok = int(cpu_c[0]) == expected
    return _report("other_types (u32)", ok, f"got {int(cpu_c[0])}, expected {expected}")


def check_tensor(gpu):
    """Upload a tensor and read back its data and shape buffer."""
    arr = np.arange(6, dtype=np.float32).reshape(2, 3)
    t = Tensor(gpu, arr)
    try:
        data = t.numpy()
        shape = gpu.map_gpu_to_cpu(t.shape_buffer, np.uint32)
    finally:
        t.free()

    ok = np.array_equal(data, arr) and tuple(shape[:2].tolist()) == (2, 3)
    return _report("tensor", ok)


CHECKS = (
    check_mem_alloc_and_copy,
    check_single_workgroup,
    check_other_types,
    check_tensor,
)


def _run_checks(gpu):
    all_pass = True
    for check in CHECKS:
        all_pass &= check(gpu)
    return all_pass


def run_all(gpu=None):
    """Run every check; returns True if all pass.

    Without ``gpu`` a device is created for the run and destroyed afterwards.
    """
    if gpu is None:
        with GPU.init() as own_gpu:
            return _run_checks(own_gpu)
    return _run_checks(gpu)


def main():
    print("ezwgpu self test")
    print("=" * 60)
    with GPU.init() as gpu:
        print(f"Adapter: {gpu.adapter.summary}")
        ok = run_all(gpu)
    print("=" * 60)
    print(f"[RESULT] {'PASS' if ok else 'FAIL'}")
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
