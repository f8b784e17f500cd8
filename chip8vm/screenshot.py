"""
Framebuffer to image conversion.
"""

import logging
import os
from typing import Union

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


def framebuffer_to_image(framebuffer: np.ndarray, scale: int = 8) -> Image.Image:
    """Scale a 0/1 framebuffer into a grayscale PIL image (lit pixels white)"""
    if scale < 1:
        raise ValueError(f"scale must be positive, got {scale}")
    display_img = (np.asarray(framebuffer) * 255).astype(np.uint8)
    scaled_img = np.repeat(np.repeat(display_img, scale, axis=0), scale, axis=1)
    return Image.fromarray(scaled_img)  # uint8 2D -> mode 'L'


def save_png(framebuffer: np.ndarray, path: Union[str, os.PathLike], scale: int = 8):
    img = framebuffer_to_image(framebuffer, scale)
    img.save(path)
    logger.info("Saved display to %s (%dx%d)", path, img.width, img.height)
