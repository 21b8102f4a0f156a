"""Sample-level DSP for censoring."""

from batchcensor.dsp.transform import (
    fit_clip,
    mute,
    resample_linear,
    transform,
)

__all__ = [
    "fit_clip",
    "mute",
    "resample_linear",
    "transform",
]
