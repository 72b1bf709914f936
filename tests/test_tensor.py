"""Tensor: data buffer, dtype and shape buffer."""

import numpy as np
import pytest

from ezwgpu import Tensor, TensorFreedError
from fakedevice import view


def test_tensor_uploads_data_and_shape(fake_gpu):
    arr = np.arange(6, dtype=np.float32).reshape(2, 3)
    t = Tensor(fake_gpu, arr)

    assert t.shape == (2, 3)
    assert t.ndim == 2
    assert t.numel() == 6
    assert t.nbytes == 24
    assert t.dtype == np.float32
    assert t.wgsl_type == "f32"
    np.testing.assert_array_equal(view(t.data, np.float32), arr.ravel())
    np.testing.assert_array_equal(view(t.shape_buffer, np.uint32), [2, 3])


def test_tensor_numpy_round_trip(fake_gpu):
    arr = np.random.randn(4, 5).astype(np.float32)
    np.testing.assert_array_equal(Tensor(fake_gpu, arr).numpy(), arr)


@pytest.mark.parametrize("src, dst, wgsl", [
    (np.float64, np.float32, "f32"),
    (np.int64, np.int32, "i32"),
    (np.uint64, np.uint32, "u32"),
    (np.bool_, np.uint32, "u32"),
    (np.int32, np.int32, "i32"),
])
def test_tensor_narrows_dtype(fake_gpu, src, dst, wgsl):
    t = Tensor(fake_gpu, np.ones(3, dtype=src))
    assert t.dtype == dst
    assert t.wgsl_type == wgsl
    np.testing.assert_array_equal(t.numpy(), np.ones(3, dtype=dst))


def test_tensor_unsupported_dtype(fake_gpu):
    with pytest.raises(TypeError):
        Tensor(fake_gpu, np.array(["a", "b"]))


def test_tensor_from_list(fake_gpu):
    t = Tensor(fake_gpu, [[1.0, 2.0], [3.0, 4.0]])
    assert t.shape == (2, 2)
    assert t.dtype == np.float32


def test_scalar_tensor_has_shape_one(fake_gpu):
    t = Tensor(fake_gpu, np.float32(7.0))
    assert t.shape == (1,)
    np.testing.assert_array_equal(t.numpy(), [7.0])


def test_explicit_shape(fake_gpu):
    t = Tensor(fake_gpu, np.arange(6, dtype=np.float32), shape=(3, 2))
    assert t.shape == (3, 2)
    np.testing.assert_array_equal(view(t.shape_buffer, np.uint32), [3, 2])
    assert t.numpy().shape == (3, 2)


def test_explicit_shape_mismatch(fake_gpu):
    with pytest.raises(ValueError):
        Tensor(fake_gpu, np.arange(6, dtype=np.float32), shape=(4, 2))


def test_explicit_empty_shape_stored_as_one(fake_gpu):
    t = Tensor(fake_gpu, np.float32(7.0), shape=())
    assert t.shape == (1,)
    np.testing.assert_array_equal(view(t.shape_buffer, np.uint32), [1])
    np.testing.assert_array_equal(t.numpy(), [7.0])


def test_data_buffer_freed_when_shape_upload_fails(fake_gpu, fake_device, monkeypatch):
    calls = []
    memcpy_htod = fake_gpu.memcpy_htod

    def failing_second_upload(device_buffer, host_array):
        calls.append(device_buffer)
        if len(calls) == 2:
            raise RuntimeError("upload failed")
        memcpy_htod(device_buffer, host_array)

    monkeypatch.setattr(fake_gpu, "memcpy_htod", failing_second_upload)
    with pytest.raises(RuntimeError):
        Tensor(fake_gpu, np.zeros(4, dtype=np.float32))

    assert len(fake_device.buffers) == 2
    assert all(buf.destroyed for buf in fake_device.buffers)


def test_zeros_and_from_numpy(fake_gpu):
    z = Tensor.zeros(fake_gpu, (2, 2), np.uint32)
    assert z.dtype == np.uint32
    np.testing.assert_array_equal(z.numpy(), np.zeros((2, 2)))

    arr = np.array([1.5, 2.5], dtype=np.float32)
    np.testing.assert_array_equal(Tensor.from_numpy(fake_gpu, arr).numpy(), arr)


def test_empty_tensor(fake_gpu):
    t = Tensor(fake_gpu, np.zeros(0, dtype=np.float32))
    assert t.shape == (0,)
    assert t.numpy().shape == (0,)


def test_buffers_in_binding_order(fake_gpu):
    t = Tensor(fake_gpu, np.zeros(4, dtype=np.float32))
    assert t.buffers == (t.data, t.shape_buffer)


def test_free_releases_both_buffers(fake_gpu):
    t = Tensor(fake_gpu, np.zeros(4, dtype=np.float32))
    data, shape_buffer = t.buffers
    t.free()

    assert data.destroyed and shape_buffer.destroyed
    assert t.data is None and t.shape_buffer is None
    assert "freed" in repr(t)


@pytest.mark.parametrize("use", [
    lambda t: t.numpy(),
    lambda t: t.buffers,
    lambda t: t.print(),
    lambda t: t.free(),
])
def test_use_after_free(fake_gpu, use):
    t = Tensor(fake_gpu, np.zeros(4, dtype=np.float32))
    t.free()
    with pytest.raises(TensorFreedError):
        use(t)


def test_print(fake_gpu, capsys):
    Tensor(fake_gpu, np.array([1, 2, 3], dtype=np.float32)).print()
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "Tensor(dtype=float32, shape=(3,),",
        "data= [1.0, 2.0, 3.0]",
        ")",
    ]


def test_print_skips_alignment_padding(fake_gpu, capsys):
    Tensor(fake_gpu, np.array([1, 2, 3], dtype=np.float16)).print()
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Tensor(dtype=float16, shape=(3,),"
    assert lines[1] == "data= [1.0, 2.0, 3.0]"


def test_print_empty_tensor(fake_gpu, capsys):
    Tensor(fake_gpu, np.zeros(0, dtype=np.float32)).print()
    lines = capsys.readouterr().out.splitlines()
    assert lines[1] == "data= []"


def test_repr(fake_gpu):
    t = Tensor(fake_gpu, np.zeros((2, 3), dtype=np.int32))
    assert repr(t) == "Tensor(shape=(2, 3), dtype=int32)"


def test_tensor_feeds_kernel(fake_gpu):
    t = Tensor(fake_gpu, np.array([1.0, 2.0, 3.0], dtype=np.float32))
    square = fake_gpu.source_module("// square").get_function("square")
    square([1], *t.buffers)
    np.testing.assert_array_equal(t.numpy(), [1.0, 4.0, 9.0])
