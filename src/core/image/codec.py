"""
Codec adapter over Pillow.

Maps library formats and compression values onto Pillow save options, writes
per-image properties (orientation, DPI, GPS, GIF timing) and re-encodes
decoded containers. Per-image properties use the dictionary layout of
FrameProperties.to_dict() (keys from PropertyKeys).
"""

import io
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageSequence, TiffImagePlugin, UnidentifiedImageError

from common.constants import ExifTagIds, GPSConstants, ImageConstants, PropertyKeys
from common.enums import ImageFormat
from common.exceptions import (
    CannotCreateDestinationError,
    InvalidCompressionError,
    InvalidImageError,
)
from core.raster import Raster

logger = logging.getLogger(__name__)

# Library format -> Pillow format name
PIL_FORMATS = {
    ImageFormat.PNG: "PNG",
    ImageFormat.JPEG: "JPEG",
    ImageFormat.TIFF: "TIFF",
    ImageFormat.HEIC: "HEIF",
    ImageFormat.GIF: "GIF",
    ImageFormat.BMP: "BMP",
}

# Pillow format name -> library format
_FORMATS_BY_PIL_NAME = {
    "PNG": ImageFormat.PNG,
    "JPEG": ImageFormat.JPEG,
    "MPO": ImageFormat.JPEG,
    "TIFF": ImageFormat.TIFF,
    "HEIF": ImageFormat.HEIC,
    "GIF": ImageFormat.GIF,
    "BMP": ImageFormat.BMP,
}

# Pillow modes each encoder accepts without conversion
_ACCEPTED_MODES = {
    ImageFormat.PNG: ("RGBA", "RGB", "L", "LA"),
    ImageFormat.JPEG: ("RGB", "L", "CMYK"),
    ImageFormat.TIFF: ("RGBA", "RGB", "L", "LA", "CMYK"),
    ImageFormat.HEIC: ("RGBA", "RGB"),
    ImageFormat.GIF: ("RGBA", "RGB", "L", "P"),
    ImageFormat.BMP: ("RGBA", "RGB", "L"),
}

EncodeItem = Tuple[Raster, Optional[Dict[str, Any]]]


# ==============================================================================
# Formats and compression
# ==============================================================================


def format_from_pil(name: Optional[str]) -> Optional[ImageFormat]:
    """Library format for a Pillow format name, None when unrecognised."""
    if not name:
        return None
    return _FORMATS_BY_PIL_NAME.get(name.upper())


def has_encoder(image_format: ImageFormat) -> bool:
    """True when the installed Pillow can write `image_format`."""
    Image.init()
    return PIL_FORMATS[ImageFormat(image_format)] in Image.SAVE


def validate_compression(compression: Optional[float]) -> Optional[float]:
    """
    Check an encode compression value.

    Raises:
        InvalidCompressionError: If compression is not None and outside [0, 1]
    """
    if compression is None:
        return None
    try:
        value = float(compression)
    except (TypeError, ValueError) as e:
        raise InvalidCompressionError(compression) from e
    if not (ImageConstants.MIN_COMPRESSION <= value <= ImageConstants.MAX_COMPRESSION):
        raise InvalidCompressionError(compression)
    return value


def quality_for(compression: float) -> int:
    """JPEG/HEIC quality (1-100) for a compression value in [0, 1]."""
    return max(1, int(round(compression * 100)))


def png_compress_level(compression: float) -> int:
    """zlib level for a compression value; higher quality compresses less."""
    return min(9, max(0, 9 - int(quality_for(compression) / 11)))


def resolve_format(image_format) -> ImageFormat:
    try:
        return ImageFormat(image_format)
    except ValueError as e:
        raise CannotCreateDestinationError(image_format, "unsupported format") from e


def check_destination(image_format: ImageFormat, image_count: int) -> None:
    if image_count == 0:
        raise CannotCreateDestinationError(image_format, "no images to encode")
    if image_count > 1 and image_format not in ImageConstants.MULTI_FRAME_FORMATS:
        logger.error(
            f"Cannot write {image_count} images into a single-image {image_format.value} container"
        )
        raise CannotCreateDestinationError(
            image_format, f"format does not support {image_count} images"
        )
    if not has_encoder(image_format):
        raise CannotCreateDestinationError(image_format, "no encoder available")


# ==============================================================================
# Decoding
# ==============================================================================


def decode_image(data: bytes) -> Image.Image:
    """
    Open encoded bytes with Pillow and load the first frame.

    Raises:
        InvalidImageError: If the bytes are not a decodable image
    """
    if not data:
        raise InvalidImageError("no image data")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        logger.error(f"Failed to decode {len(data)} bytes: {e}")
        raise InvalidImageError(str(e)) from e
    return image


def frame_count(image: Image.Image) -> int:
    return int(getattr(image, "n_frames", 1))


# ==============================================================================
# Metadata writing
# ==============================================================================


def _dms_rationals(value: float) -> Tuple[TiffImagePlugin.IFDRational, ...]:
    value = abs(value)
    degrees = int(value)
    minutes_full = (value - degrees) * 60.0
    minutes = int(minutes_full)
    seconds = (minutes_full - minutes) * 60.0
    return (
        TiffImagePlugin.IFDRational(degrees, 1),
        TiffImagePlugin.IFDRational(minutes, 1),
        TiffImagePlugin.IFDRational(int(round(seconds * 10000)), 10000),
    )


def gps_ifd(gps: Dict[str, Any]) -> Dict[int, Any]:
    """EXIF GPS IFD for a GPS property dictionary."""
    ifd: Dict[int, Any] = {0: b"\x02\x02\x00\x00"}

    latitude = gps.get(PropertyKeys.GPS_LATITUDE)
    if latitude is not None:
        ref = gps.get(PropertyKeys.GPS_LATITUDE_REF) or (
            GPSConstants.SOUTH if latitude < 0 else GPSConstants.NORTH
        )
        ifd[ExifTagIds.GPS_LATITUDE_REF] = ref
        ifd[ExifTagIds.GPS_LATITUDE] = _dms_rationals(latitude)

    longitude = gps.get(PropertyKeys.GPS_LONGITUDE)
    if longitude is not None:
        ref = gps.get(PropertyKeys.GPS_LONGITUDE_REF) or (
            GPSConstants.WEST if longitude < 0 else GPSConstants.EAST
        )
        ifd[ExifTagIds.GPS_LONGITUDE_REF] = ref
        ifd[ExifTagIds.GPS_LONGITUDE] = _dms_rationals(longitude)

    altitude = gps.get(PropertyKeys.GPS_ALTITUDE)
    if altitude is not None:
        ifd[ExifTagIds.GPS_ALTITUDE_REF] = int(gps.get(PropertyKeys.GPS_ALTITUDE_REF) or 0)
        ifd[ExifTagIds.GPS_ALTITUDE] = TiffImagePlugin.IFDRational(
            int(round(abs(altitude) * 100)), 100
        )

    status = gps.get(PropertyKeys.GPS_STATUS)
    if status:
        ifd[ExifTagIds.GPS_STATUS] = status
    return ifd


def build_exif(
    properties: Optional[Dict[str, Any]],
    base: Optional[Image.Exif] = None,
    exclude_gps: bool = False,
) -> Image.Exif:
    """
    EXIF block carrying orientation and GPS from a property dictionary.

    Args:
        properties: Property dictionary (may be None)
        base: Existing EXIF to update in place (a new block when None)
        exclude_gps: Drop any GPS IFD instead of writing one
    """
    exif = base if base is not None else Image.Exif()
    properties = properties or {}

    orientation = properties.get(PropertyKeys.ORIENTATION)
    if orientation is not None:
        exif[ExifTagIds.ORIENTATION] = int(orientation)

    gps = properties.get(PropertyKeys.GPS)
    if exclude_gps:
        if ExifTagIds.GPS_IFD in exif:
            del exif[ExifTagIds.GPS_IFD]
    elif gps:
        exif[ExifTagIds.GPS_IFD] = gps_ifd(gps)
    return exif


def _tiff_info(exif: Image.Exif) -> Dict[int, Any]:
    """Orientation and GPS tags as a TIFF directory; other tags are rewritten by the encoder."""
    info: Dict[int, Any] = {}
    if ExifTagIds.ORIENTATION in exif:
        info[ExifTagIds.ORIENTATION] = int(exif[ExifTagIds.ORIENTATION])
    if ExifTagIds.GPS_IFD in exif:
        gps = exif[ExifTagIds.GPS_IFD]
        if not isinstance(gps, dict):
            gps = dict(exif.get_ifd(ExifTagIds.GPS_IFD))
        if gps:
            info[ExifTagIds.GPS_IFD] = gps
    return info


def _dpi(properties: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    x = properties.get(PropertyKeys.DPI_WIDTH)
    y = properties.get(PropertyKeys.DPI_HEIGHT)
    if x is None and y is None:
        return None
    x = float(x if x is not None else y)
    y = float(y if y is not None else x)
    return (x, y)


def _save_options(
    image_format: ImageFormat,
    compression: Optional[float],
    properties: Dict[str, Any],
    exif: Optional[Image.Exif],
) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    dpi = _dpi(properties)
    if dpi is not None and image_format != ImageFormat.GIF:
        options["dpi"] = dpi

    if image_format in (ImageFormat.JPEG, ImageFormat.HEIC):
        if compression is not None:
            options["quality"] = quality_for(compression)
    elif image_format == ImageFormat.PNG:
        if compression is not None:
            options["compress_level"] = png_compress_level(compression)
    elif image_format == ImageFormat.TIFF:
        options["compression"] = ImageConstants.TIFF_COMPRESSION

    if exif is not None and len(exif) > 0:
        if image_format == ImageFormat.TIFF:
            info = _tiff_info(exif)
            options["tiffinfo"] = info
            if ExifTagIds.GPS_IFD in info:
                options["compression"] = ImageConstants.TIFF_NESTED_IFD_COMPRESSION
        elif image_format in (ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.HEIC):
            options["exif"] = exif.tobytes()
    return options


def _prepare(image: Image.Image, image_format: ImageFormat) -> Image.Image:
    """Convert to a mode the encoder accepts."""
    if image.mode in _ACCEPTED_MODES[image_format]:
        return image
    if image.mode == "LA" and "L" in _ACCEPTED_MODES[image_format]:
        return image.convert("RGBA") if "RGBA" in _ACCEPTED_MODES[image_format] else image.convert("L")
    has_alpha = "A" in image.getbands() or "transparency" in image.info
    if has_alpha and "RGBA" in _ACCEPTED_MODES[image_format]:
        return image.convert("RGBA")
    return image.convert("RGB")


def _gif_timing(items: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    durations = []
    loop = 0
    for i, properties in enumerate(items):
        gif = properties.get(PropertyKeys.GIF) or {}
        delay = gif.get(PropertyKeys.GIF_UNCLAMPED_DELAY_TIME, gif.get(PropertyKeys.GIF_DELAY_TIME))
        if delay is None:
            delay = ImageConstants.GIF_DEFAULT_DELAY
        durations.append(int(round(float(delay) * 1000)))
        if i == 0 and gif.get(PropertyKeys.GIF_LOOP_COUNT) is not None:
            loop = int(gif[PropertyKeys.GIF_LOOP_COUNT])
    return {"duration": durations if len(durations) > 1 else durations[0], "loop": loop}


def _check_distinct_frames(images: Sequence[Image.Image], image_format: ImageFormat) -> None:
    """
    Reject consecutive identical frames.

    Pillow's GIF writer folds a frame equal to its predecessor into the
    previous frame, which would change the frame count.

    Raises:
        CannotCreateDestinationError: If two consecutive frames are identical
    """
    for index in range(1, len(images)):
        previous, current = images[index - 1], images[index]
        if previous.size != current.size:
            continue
        if previous.convert("RGBA").tobytes() == current.convert("RGBA").tobytes():
            logger.error(
                f"Frame {index} repeats frame {index - 1}; "
                f"{image_format.value} would merge them"
            )
            raise CannotCreateDestinationError(
                image_format, f"frame {index} is identical to frame {index - 1}"
            )


# ==============================================================================
# Encoding
# ==============================================================================


def encode_rasters(
    items: Sequence[EncodeItem],
    image_format: ImageFormat,
    compression: Optional[float] = None,
    exclude_gps: bool = False,
) -> bytes:
    """
    Encode rasters, in order, into one container.

    Args:
        items: (raster, properties) pairs; a LossyCompressionQuality property
            overrides `compression` for that image
        image_format: Target container format
        compression: 0 (smallest) to 1 (best quality), None for the format default
        exclude_gps: Do not write GPS data

    Raises:
        InvalidCompressionError: If a compression value is outside [0, 1]
        CannotCreateDestinationError: If the format cannot hold the images
    """
    image_format = resolve_format(image_format)
    compression = validate_compression(compression)
    props = [dict(p or {}) for _, p in items]
    per_image = [
        validate_compression(p.get(PropertyKeys.LOSSY_COMPRESSION_QUALITY, compression))
        for p in props
    ]
    check_destination(image_format, len(items))

    images = [_prepare(raster.to_pil(), image_format) for raster, _ in items]
    first_props = props[0]
    exif = None
    if image_format not in (ImageFormat.GIF, ImageFormat.BMP):
        exif = build_exif(first_props, exclude_gps=exclude_gps)
    options = _save_options(image_format, per_image[0], first_props, exif)

    if image_format == ImageFormat.GIF:
        _check_distinct_frames(images, image_format)
        options.update(_gif_timing(props))
    if len(images) > 1:
        options["save_all"] = True
        options["append_images"] = images[1:]

    buffer = io.BytesIO()
    try:
        images[0].save(buffer, format=PIL_FORMATS[image_format], **options)
    except (OSError, ValueError, KeyError, RuntimeError) as e:
        logger.error(f"Failed to encode {len(images)} image(s) as {image_format.value}: {e}")
        raise CannotCreateDestinationError(image_format, str(e)) from e
    return buffer.getvalue()


def encode_raster(
    raster: Raster,
    image_format: ImageFormat,
    compression: Optional[float] = None,
    exclude_gps: bool = False,
    properties: Optional[Dict[str, Any]] = None,
) -> bytes:
    """Encode a single raster. See encode_rasters."""
    return encode_rasters([(raster, properties)], image_format, compression, exclude_gps)


def reencode(
    data: bytes,
    target_format: Optional[ImageFormat] = None,
    remove_gps: bool = False,
    compression: Optional[float] = None,
) -> bytes:
    """
    Re-encode every frame of an encoded container.

    Frames are taken from the decoded bytes (not from rasters), so metadata
    is carried over. Re-encoding a JPEG as JPEG keeps its quantisation tables
    unless a compression is given.

    Args:
        data: Encoded container
        target_format: Output format (None keeps the source format)
        remove_gps: Strip GPS data from every frame
        compression: Optional compression override

    Raises:
        InvalidImageError: If the data cannot be decoded
        CannotCreateDestinationError: If the target cannot be written
    """
    compression = validate_compression(compression)
    source = decode_image(data)
    source_format = format_from_pil(source.format)
    image_format = resolve_format(target_format if target_format is not None else source_format)
    count = frame_count(source)
    check_destination(image_format, count)

    frames: List[Image.Image] = []
    frame_props: List[Dict[str, Any]] = []
    for frame in ImageSequence.Iterator(source):
        duration = frame.info.get("duration")
        gif = {}
        if duration is not None:
            gif[PropertyKeys.GIF_UNCLAMPED_DELAY_TIME] = duration / 1000.0
        if "loop" in frame.info:
            gif[PropertyKeys.GIF_LOOP_COUNT] = frame.info["loop"]
        props: Dict[str, Any] = {PropertyKeys.GIF: gif}
        if "dpi" in frame.info:
            props[PropertyKeys.DPI_WIDTH], props[PropertyKeys.DPI_HEIGHT] = frame.info["dpi"]
        frame_props.append(props)
        frames.append(frame.copy())

    options: Dict[str, Any] = {}
    exif = None
    if image_format not in (ImageFormat.GIF, ImageFormat.BMP):
        exif = build_exif(None, base=source.getexif(), exclude_gps=remove_gps)
    options.update(_save_options(image_format, compression, frame_props[0], exif))

    keep_tables = (
        image_format == ImageFormat.JPEG
        and source_format == ImageFormat.JPEG
        and compression is None
        and count == 1
    )
    if keep_tables:
        target = source
        options["quality"] = "keep"
        options["subsampling"] = "keep"
    else:
        frames = [_prepare(f, image_format) for f in frames]
        target = frames[0]

    if image_format == ImageFormat.GIF:
        _check_distinct_frames(frames, image_format)
        options.update(_gif_timing(frame_props))
    if count > 1:
        options["save_all"] = True
        options["append_images"] = frames[1:]

    buffer = io.BytesIO()
    try:
        target.save(buffer, format=PIL_FORMATS[image_format], **options)
    except (OSError, ValueError, KeyError, RuntimeError) as e:
        logger.error(f"Failed to re-encode as {image_format.value}: {e}")
        raise CannotCreateDestinationError(image_format, str(e)) from e
    return buffer.getvalue()
