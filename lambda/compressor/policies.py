"""
Encoding policies for the image compressor

Each supported format class has one policy exposing a uniform
encode(image, target_size) -> bytes. Resizing and orientation handling
are shared; only the encoder parameters differ per format.
"""

import io
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageOps

# Copies of config/constants.py values; the Lambda asset only bundles this directory
# Output dimensions relative to the source
SCALE_FACTOR = 0.5

JPEG_QUALITY = 50
JPEG_CHROMA_SUBSAMPLING = '4:2:0'

PNG_COMPRESS_LEVEL = 9
PNG_PALETTE_COLORS = 128

RESAMPLE = Image.Resampling.LANCZOS


def load_image(data: bytes) -> Image.Image:
    """
    Decode image bytes and bake EXIF orientation into the pixel data.

    Raises:
        PIL.UnidentifiedImageError: if the bytes are not a readable image
    """
    image = Image.open(io.BytesIO(data))
    image.load()
    return ImageOps.exif_transpose(image)


def probe_dimensions(image: Image.Image) -> Tuple[int, int]:
    """Return (width, height) in pixels"""
    width, height = image.size
    return width, height


def compute_target_size(width: int, height: int, scale_factor: float = SCALE_FACTOR) -> Tuple[int, int]:
    """
    Scale both axes by scale_factor, rounding half up.

    A target that rounds to zero on either axis is not resized to a
    1-pixel floor; it is reported as an error.
    """
    new_width = int(width * scale_factor + 0.5)
    new_height = int(height * scale_factor + 0.5)

    if new_width < 1 or new_height < 1:
        raise ValueError(
            f"Target size {new_width}x{new_height} computed from {width}x{height} is empty"
        )

    return new_width, new_height


def fit_inside(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    """
    Largest size with the aspect ratio of `size` that fits inside `box`.

    The constraining axis matches the box exactly; the other is scaled
    proportionally and never exceeds the box.
    """
    width, height = size
    box_width, box_height = box

    ratio = min(box_width / width, box_height / height)
    fitted_width = min(box_width, max(1, round(width * ratio)))
    fitted_height = min(box_height, max(1, round(height * ratio)))

    return fitted_width, fitted_height


def to_8bit(image: Image.Image) -> Image.Image:
    """
    Scale high bit depth greyscale down to 8-bit L.

    Converting I;16 or I straight to RGB or L clips every sample above 255,
    so the samples are rescaled first. PNG stores 16 bits per sample;
    float images are stretched over their own range.
    """
    if image.mode.startswith('I;16') or image.mode == 'I':
        image = image.convert('I')
        return image.point(lambda v: v * (1 / 256)).convert('L')

    if image.mode == 'F':
        low, high = image.getextrema()
        if high <= low:
            return Image.new('L', image.size, 0)
        scale = 255 / (high - low)
        return image.point(lambda v: v * scale - low * scale).convert('L')

    return image


def resize_to_fit(image: Image.Image, target_size: Tuple[int, int]) -> Image.Image:
    image = to_8bit(image)
    return image.resize(fit_inside(image.size, target_size), RESAMPLE)


@dataclass(frozen=True)
class JpegPolicy:
    quality: int = JPEG_QUALITY
    subsampling: str = JPEG_CHROMA_SUBSAMPLING

    format = 'JPEG'

    def encode(self, image: Image.Image, target_size: Tuple[int, int]) -> bytes:
        resized = resize_to_fit(image, target_size)

        # JPEG has no alpha or palette modes
        if resized.mode not in ('RGB', 'L', 'CMYK'):
            resized = resized.convert('RGB')

        buffer = io.BytesIO()
        resized.save(
            buffer,
            format=self.format,
            quality=self.quality,
            subsampling=self.subsampling,
        )
        return buffer.getvalue()


@dataclass(frozen=True)
class PngPolicy:
    compress_level: int = PNG_COMPRESS_LEVEL
    palette: bool = True
    colors: int = PNG_PALETTE_COLORS

    format = 'PNG'

    def encode(self, image: Image.Image, target_size: Tuple[int, int]) -> bytes:
        resized = resize_to_fit(image, target_size)

        if self.palette:
            has_alpha = 'A' in resized.getbands() or 'transparency' in resized.info
            resized = resized.convert('RGBA' if has_alpha else 'RGB')
            resized = resized.quantize(colors=self.colors)

        buffer = io.BytesIO()
        resized.save(
            buffer,
            format=self.format,
            compress_level=self.compress_level,
            optimize=True,
        )
        return buffer.getvalue()


POLICIES = {
    'jpg': JpegPolicy(),
    'jpeg': JpegPolicy(),
    'png': PngPolicy(),
}


def get_policy(extension: str):
    """
    Select the encoding policy for a classified extension.

    Only called after the extension has been checked against the supported
    set, so a miss here is a programming error.
    """
    try:
        return POLICIES[extension.lower()]
    except KeyError:
        raise ValueError(f"No encoding policy for extension: {extension}") from None
