"""
Image operations - functional architecture.

This package provides the image operations as pure functions over Rasters:
- colors: Hex parsing, named colors and contrast helpers
- orientation: EXIF orientation table and un-rotation
- transforms: Crop, rotate, scale, flip, draw, clip, tint and color filters
- codec: Pillow encode/decode adapter

All utilities are re-exported from this module for convenient access.
"""

# Color utilities
from core.image.colors import (
    BLACK,
    CLEAR,
    GRAY,
    WHITE,
    contrast_ratio,
    contrasting_text_color,
    hex_color,
    luminance,
    resolve_color,
    try_hex_color,
)

# Codec functions
from core.image.codec import decode_image, encode_raster, encode_rasters, reencode

# Orientation functions
from core.image.orientation import (
    apply_orientation,
    inverse_orientation_transform,
    orientation_transform,
    remove_orientation,
)

# Transformation functions
from core.image.transforms import (
    adjust_colors,
    apply_alpha,
    apply_clip,
    aspect_fill_rect,
    aspect_fit_rect,
    clip_to_path,
    composite_image,
    convert_to_cmyk,
    convert_to_rgba,
    crop_image,
    draw_border,
    draw_on_image,
    fill_path,
    fill_stroke_path,
    flip_image,
    grayscale_image,
    mask_image,
    rotate_image_by,
    rotate_image_to,
    scale_image,
    scale_image_by,
    stroke_path,
    tint_image,
)

__all__ = [
    # Color utilities
    "BLACK",
    "CLEAR",
    "GRAY",
    "WHITE",
    "hex_color",
    "try_hex_color",
    "resolve_color",
    "luminance",
    "contrast_ratio",
    "contrasting_text_color",
    # Codec functions
    "decode_image",
    "encode_raster",
    "encode_rasters",
    "reencode",
    # Orientation functions
    "orientation_transform",
    "inverse_orientation_transform",
    "remove_orientation",
    "apply_orientation",
    # Transformation functions
    "crop_image",
    "rotate_image_to",
    "rotate_image_by",
    "aspect_fit_rect",
    "aspect_fill_rect",
    "scale_image",
    "scale_image_by",
    "flip_image",
    "draw_on_image",
    "draw_border",
    "fill_path",
    "stroke_path",
    "fill_stroke_path",
    "clip_to_path",
    "apply_clip",
    "composite_image",
    "mask_image",
    "tint_image",
    "grayscale_image",
    "apply_alpha",
    "convert_to_cmyk",
    "convert_to_rgba",
    "adjust_colors",
]
