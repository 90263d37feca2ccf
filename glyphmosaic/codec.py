"""
codec.py
========

Grayscale raster decode/encode backed by Pillow.

Accepted inputs
---------------
- 8-bit grayscale ("L"): passed through unchanged.
- 8-bit RGBA ("RGBA"): converted to an alpha-premultiplied channel average

      gray = floor((R + G + B) * A / (255 * 3))

Every other mode (RGB, palette, LA, 1-bit, 16/32-bit integer, float) is a
fatal `CodecError`; the caller is expected to convert such images up front.

Output is always written as 8-bit grayscale.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Tuple, Union

import numpy as np
import torch
from PIL import Image, UnidentifiedImageError

from .errors import CodecError

Source = Union[str, Path, BinaryIO]

SUPPORTED_MODES = ("L", "RGBA")


def rgba_to_gray(rgba: np.ndarray) -> np.ndarray:
    """(H, W, 4) uint8 -> (H, W) uint8 premultiplied channel average."""
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"Expected (H, W, 4) RGBA array; got {rgba.shape}")
    px = rgba.astype(np.int64)
    total = px[..., 0] + px[..., 1] + px[..., 2]
    return ((total * px[..., 3]) // (255 * 3)).astype(np.uint8)


def decode_image(source: Source) -> Tuple[int, int, torch.Tensor]:
    """
    Decode an image into (width, height, buffer) with buffer a (H, W)
    uint8 tensor.
    """
    try:
        with Image.open(source) as img:
            img.load()
            mode = img.mode
            width, height = img.size
            arr = np.array(img)
    except FileNotFoundError as e:
        raise CodecError(f"Input image not found: {source}") from e
    except (UnidentifiedImageError, OSError) as e:
        raise CodecError(f"Cannot decode image {source}: {e}") from e

    if mode == "L":
        gray = arr.astype(np.uint8, copy=False)
    elif mode == "RGBA":
        gray = rgba_to_gray(arr)
    else:
        raise CodecError(
            f"Unsupported image mode '{mode}' for {source}; "
            f"expected one of {', '.join(SUPPORTED_MODES)}"
        )
    return width, height, torch.from_numpy(np.ascontiguousarray(gray))


def encode_image(destination: Source, buffer: torch.Tensor, width: int, height: int) -> None:
    """Write `buffer` ((H, W) uint8) as an 8-bit grayscale image."""
    if buffer.dtype != torch.uint8:
        raise ValueError(f"Output buffer must be uint8; got {buffer.dtype}")
    if tuple(buffer.shape) != (height, width):
        raise ValueError(
            f"Output buffer shape {tuple(buffer.shape)} does not match ({height}, {width})"
        )
    img = Image.fromarray(buffer.cpu().numpy())
    fmt = None
    if isinstance(destination, (str, Path)):
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if not dest.suffix:
            fmt = "PNG"
    else:
        fmt = "PNG"
    try:
        img.save(destination, format=fmt)
    except (OSError, ValueError) as e:
        raise CodecError(f"Cannot encode image to {destination}: {e}") from e
