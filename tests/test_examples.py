"""Bundled examples."""

import numpy as np

from ezwgpu.examples import square


def test_square_example(fake_gpu, fake_device):
    result = square.square(fake_gpu, [1, 2, 3, 4])
    np.testing.assert_array_equal(result, [1, 4, 9, 16])
    assert all(buf.destroyed for buf in fake_device.buffers)
    assert fake_device.pipelines[0].entry_point == "square"
