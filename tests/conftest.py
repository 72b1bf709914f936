"""Shared fixtures.

Most tests run against ``FakeDevice`` (see fakedevice.py). Tests that need
real hardware use the ``gpu`` fixture, which skips when wgpu cannot
provide an adapter.
"""

import numpy as np
import pytest

from ezwgpu import GPU
from fakedevice import FakeDevice, dot_product_kernel, square_kernel


@pytest.fixture(autouse=True)
def predictable_random_numbers():
    np.random.seed(0)


@pytest.fixture
def fake_device():
    return FakeDevice(
        kernels={"square": square_kernel, "dot_product": dot_product_kernel}
    )


@pytest.fixture
def fake_gpu(fake_device):
    return GPU(fake_device)


@pytest.fixture(scope="session")
def gpu():
    """A real GPU; skips when wgpu cannot provide an adapter."""
    try:
        real_gpu = GPU.init()
    except Exception as exc:
        pytest.skip(f"No usable wgpu adapter: {exc}")
    yield real_gpu
    real_gpu.destroy()
