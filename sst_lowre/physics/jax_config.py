"""JAX configuration for the closure: 64-bit precision and device selection."""

import os
from typing import Optional

from loguru import logger

_device_configured = False


def select_device(device: Optional[str] = None) -> Optional[str]:
    """Pin JAX to a device before it is initialized.

    Parameters
    ----------
    device : str, optional
        None or "auto": leave the JAX default.
        "cpu": hide all GPUs.
        "0", "cuda:1", "gpu:0": pin a single GPU index.

    Returns
    -------
    visible : str or None
        The value written to CUDA_VISIBLE_DEVICES, or None if untouched.

    Notes
    -----
    Only effective before the first JAX computation; later calls are no-ops.
    """
    global _device_configured

    if _device_configured or device is None or device == "auto":
        _device_configured = True
        return None

    spec = device.lower()
    if spec == "cpu":
        os.environ['CUDA_VISIBLE_DEVICES'] = ''
        logger.info("Forcing CPU device")
        _device_configured = True
        return ''

    for prefix in ['cuda:', 'gpu:']:
        if spec.startswith(prefix):
            spec = spec[len(prefix):]
            break

    try:
        gpu_id = int(spec)
    except ValueError:
        raise ValueError(f"Invalid device specification: {device}. "
                         f"Use 'auto', 'cpu', or GPU index (e.g., '0', 'cuda:1')")

    os.environ['CUDA_VISIBLE_DEVICES'] = str(gpu_id)
    logger.info(f"Using GPU {gpu_id}")
    _device_configured = True
    return str(gpu_id)


import jax
import jax.numpy as jnp

jax.config.update("jax_enable_x64", True)


def get_device_info() -> str:
    """Get available JAX devices as string."""
    devices = jax.devices()
    device_strs = [f"{d.platform}:{d.id}" for d in devices]
    return f"JAX devices: {device_strs}"


__all__ = ['jax', 'jnp', 'get_device_info', 'select_device']
