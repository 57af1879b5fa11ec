"""Captcha handling for the ChatGPT login flow

The identity provider embeds its captcha as a base64 SVG data URL inside an
``<img alt="captcha">`` tag. SVG is awkward to show to a human in a
terminal, so the captcha is rasterized to a PNG five times the size of its
viewbox.
"""

import base64
import binascii
import io
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Tuple, Union

import cairosvg
from PIL import Image

from errors import CaptchaDecodeError


logger = logging.getLogger(__name__)

# Legacy fixed prefix length of "data:image/svg+xml;base64,"
SVG_DATA_URL_PREFIX = "data:image/svg+xml;base64,"
CAPTCHA_SCALE = 5
DEFAULT_CAPTCHA_FILE = "captcha.png"

# Size of an SVG replaced element without any intrinsic dimensions
_DEFAULT_VIEWBOX = (300.0, 150.0)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NAMESPACE)
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")

_LENGTH = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")


class Captcha(str):
    """Data URL of a captcha image; the empty string means no captcha"""

    @property
    def available(self) -> bool:
        """Whether a captcha has to be answered"""
        return self != ""

    def svg_bytes(self) -> bytes:
        """Decode the embedded SVG document

        Returns:
            Raw SVG bytes

        Raises:
            CaptchaDecodeError: If the captcha is empty or not valid base64
        """
        if not self:
            raise CaptchaDecodeError("empty captcha")

        header, sep, payload = self.partition(",")
        if not sep:
            # No comma: assume the fixed prefix the provider used to send
            payload = str(self)[len(SVG_DATA_URL_PREFIX):]
        elif not header.startswith("data:"):
            logger.warning(f"Unexpected captcha header: {header[:40]}")

        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CaptchaDecodeError(f"invalid captcha encoding: {e}") from e

    def to_png(self) -> bytes:
        """Rasterize the captcha to PNG at 5x its viewbox

        Returns:
            PNG encoded RGBA image

        Raises:
            CaptchaDecodeError: If the captcha cannot be decoded or rendered
        """
        root = _parse_svg(self.svg_bytes())
        view_width, view_height = viewbox_size(root)
        width = int(view_width) * CAPTCHA_SCALE
        height = int(view_height) * CAPTCHA_SCALE
        if width <= 0 or height <= 0:
            raise CaptchaDecodeError(f"captcha viewbox too small ({view_width}x{view_height})")

        # Pin the outer size so the renderer scales the drawing to the target
        if root.tag == "svg":
            root.set("xmlns", SVG_NAMESPACE)
        if _viewbox_attribute_size(root) is None:
            root.set("viewBox", f"0 0 {view_width:g} {view_height:g}")
        root.set("width", str(width))
        root.set("height", str(height))

        try:
            rendered = cairosvg.svg2png(
                bytestring=ET.tostring(root),
                output_width=width,
                output_height=height,
            )
        except (ValueError, ET.ParseError) as e:
            raise CaptchaDecodeError(f"failed to render captcha: {e}") from e

        image = Image.open(io.BytesIO(rendered)).convert("RGBA")
        if image.size != (width, height):
            image = image.resize((width, height))

        out = io.BytesIO()
        image.save(out, format="PNG")
        logger.debug(f"Rendered captcha to {width}x{height} PNG")
        return out.getvalue()

    def to_file(self, path: Union[str, Path] = DEFAULT_CAPTCHA_FILE) -> Path:
        """Convert the captcha to PNG and write it to disk

        Args:
            path: Destination file

        Returns:
            Path that was written
        """
        png = self.to_png()
        path = Path(path)
        path.write_bytes(png)
        logger.info(f"Captcha written to {path}")
        return path


def _parse_svg(data: bytes) -> ET.Element:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise CaptchaDecodeError(f"invalid captcha svg: {e}") from e

    if root.tag not in ("svg", f"{{{SVG_NAMESPACE}}}svg"):
        raise CaptchaDecodeError(f"captcha is not an svg document (root <{root.tag}>)")
    return root


def _parse_length(value) -> float:
    if value is None:
        return 0.0
    match = _LENGTH.match(value)
    if not match:
        return 0.0
    return float(match.group(1))


def _viewbox_attribute_size(root: ET.Element) -> Optional[Tuple[float, float]]:
    viewbox = root.get("viewBox")
    if not viewbox:
        return None
    parts = re.split(r"[\s,]+", viewbox.strip())
    if len(parts) != 4:
        return None
    try:
        width, height = float(parts[2]), float(parts[3])
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def viewbox_size(root: ET.Element) -> Tuple[float, float]:
    """Return the (width, height) of an SVG root's viewbox

    Falls back to the width/height attributes, then to 300x150.
    """
    size = _viewbox_attribute_size(root)
    if size is not None:
        return size

    width = _parse_length(root.get("width"))
    height = _parse_length(root.get("height"))
    if width > 0 and height > 0:
        return width, height

    return _DEFAULT_VIEWBOX
