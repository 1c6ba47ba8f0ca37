"""Certificate artwork.

Draws the fixed 1056x747 landscape certificate with Pillow.  The PDF
variant embeds the same raster as a single page, which is what learners
download and print.
"""

from __future__ import annotations

import io
from datetime import datetime

from PIL import Image, ImageDraw, ImageFont

from lms.models.certificate import Certificate

WIDTH, HEIGHT = 1056, 747

ISSUER = "Intellectual Oasis Fellowship"
SIGNATORY = "Olalekan L. Adeyinka, Director"

_NAVY = (26, 54, 93)
_GOLD = (184, 134, 11)
_GREY = (90, 90, 90)

_SERIF_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Bold.ttf"
_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"


def _font(path: str, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        return ImageFont.load_default(size)


def format_certificate_date(iso_value: str) -> str:
    """``2024-05-01T09:30:00.000Z`` -> ``May 1, 2024``."""
    moment = datetime.fromisoformat(iso_value.replace("Z", "+00:00"))
    return f"{moment:%B} {moment.day}, {moment.year}"


def render_certificate_png(cert: Certificate, verify_url: str) -> bytes:
    image = _draw(cert, verify_url)
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def render_certificate_pdf(cert: Certificate, verify_url: str) -> bytes:
    image = _draw(cert, verify_url)
    buf = io.BytesIO()
    image.save(buf, format="PDF", resolution=96.0)
    return buf.getvalue()


def _draw(cert: Certificate, verify_url: str) -> Image.Image:
    image = Image.new("RGB", (WIDTH, HEIGHT), "white")
    draw = ImageDraw.Draw(image)

    draw.rectangle([(20, 20), (WIDTH - 20, HEIGHT - 20)], outline=_NAVY, width=8)
    draw.rectangle([(36, 36), (WIDTH - 36, HEIGHT - 36)], outline=_GOLD, width=2)

    heading = _font(_SERIF_BOLD, 40)
    name_font = _font(_SERIF_BOLD, 44)
    course_font = _font(_SERIF_BOLD, 30)
    body = _font(_SANS, 20)
    small = _font(_SANS, 14)

    def centered(text: str, y: int, font, fill) -> None:
        draw.text((WIDTH / 2, y), text, fill=fill, font=font, anchor="mm")

    centered("VERIFIED CERTIFICATE", 100, heading, _NAVY)
    centered("WITH DISTINCTION", 148, body, _GOLD)
    centered(format_certificate_date(cert.completed_at), 200, body, _GREY)
    centered(cert.user_name, 290, name_font, _NAVY)
    centered("has successfully completed with distinction", 350, body, _GREY)
    centered(cert.course_name, 410, course_font, _NAVY)
    centered(f"an online course offered by {ISSUER}", 460, body, _GREY)

    draw.line([(WIDTH / 2 - 160, 560), (WIDTH / 2 + 160, 560)], fill=_GREY, width=1)
    centered(SIGNATORY, 585, body, _NAVY)

    centered(f"Verify at {verify_url}/{cert.verification_id}", 660, small, _GREY)
    centered(f"Certificate ID: {cert.verification_id}", 685, small, _GREY)
    return image
