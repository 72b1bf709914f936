"""Environment-driven adapter configuration.

Adapter selection mirrors the usual wgpu setup of preferring the
high-performance GPU over a software rasterizer (llvmpipe):

    EZWGPU_POWER_PREFERENCE        high-performance (default) | low-power
    EZWGPU_FORCE_FALLBACK_ADAPTER  1/true/yes to request the fallback adapter
"""

import os

POWER_PREFERENCE_ENV = "EZWGPU_POWER_PREFERENCE"
FORCE_FALLBACK_ENV = "EZWGPU_FORCE_FALLBACK_ADAPTER"

DEFAULT_POWER_PREFERENCE = "high-performance"
POWER_PREFERENCES = ("high-performance", "low-power")

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name, environ):
    return environ.get(name, "").strip().lower() in _TRUTHY


def adapter_kwargs(environ=None, **overrides):
    """Build keyword arguments for ``wgpu.gpu.request_adapter_*``.

    Explicit ``overrides`` win over the environment. ``None`` values in
    ``overrides`` are ignored so callers can forward optional arguments.
    """
    environ = os.environ if environ is None else environ

    kwargs = {
        "power_preference": environ.get(POWER_PREFERENCE_ENV, "").strip()
        or DEFAULT_POWER_PREFERENCE,
        "force_fallback_adapter": _env_flag(FORCE_FALLBACK_ENV, environ),
    }
    kwargs.update({k: v for k, v in overrides.items() if v is not None})

    if kwargs["power_preference"] not in POWER_PREFERENCES:
        raise ValueError(
            f"Invalid power preference {kwargs['power_preference']!r}; "
            f"expected one of {POWER_PREFERENCES}"
        )
    return kwargs
