"""Runnable ezwgpu examples (``python -m ezwgpu.examples.<name>``)."""
