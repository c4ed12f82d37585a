"""Re-encode downloaded image bytes with Pillow."""

from io import BytesIO

from PIL import Image, UnidentifiedImageError

# Pillow format names per conversion token
PIL_FORMATS = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG", "gif": "GIF"}

# Modes each encoder writes directly; anything else is converted first
_JPEG_MODES = ("RGB", "L")
_PNG_MODES = ("1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA")
_GIF_MODES = ("1", "L", "LA", "P", "RGB", "RGBA")


class ConversionError(Exception):
    """Image bytes could not be decoded or re-encoded."""


def decode_image(data: bytes) -> Image.Image:
    """Decode bytes into a fully loaded Pillow image."""
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise ConversionError(f"cannot decode image: {e}") from e
    return img


def _has_alpha(img: Image.Image) -> bool:
    return "A" in img.getbands()


def _target_mode(img: Image.Image, pil_format: str) -> str | None:
    """Mode img must be converted to before saving as pil_format, or None if it can be written as is."""
    if pil_format == "JPEG":
        # JPEG has no alpha or palette
        return None if img.mode in _JPEG_MODES else "RGB"
    # CMYK, YCbCr and LAB cannot be written as PNG, nor quantized for GIF
    allowed = _PNG_MODES if pil_format == "PNG" else _GIF_MODES
    if img.mode in allowed:
        return None
    return "RGBA" if _has_alpha(img) else "RGB"


def convert_image(data: bytes, fmt: str, *, quality: int = 90) -> tuple[bytes, tuple[int, int]]:
    """
    Decode data and encode it as fmt (jpg/jpeg, png, gif). JPEG uses quality (1-100);
    PNG and GIF use encoder defaults. Returns (encoded_bytes, (width, height)).
    """
    pil_format = PIL_FORMATS.get(fmt.lower())
    if pil_format is None:
        raise ConversionError(f"unknown format '{fmt}'")
    source = decode_image(data)
    size = source.size
    out = BytesIO()
    img = source
    try:
        mode = _target_mode(source, pil_format)
        if mode is not None:
            img = source.convert(mode)
        if pil_format == "JPEG":
            img.save(out, format="JPEG", quality=quality)
        else:
            img.save(out, format=pil_format)
    except (OSError, ValueError, KeyError) as e:
        raise ConversionError(f"cannot encode {pil_format}: {e}") from e
    finally:
        if img is not source:
            img.close()
        source.close()
    return out.getvalue(), size
