from __future__ import annotations

import io
from datetime import tzinfo
from functools import lru_cache
from typing import List, Tuple

from PIL import Image, ImageDraw, ImageFont

from kontrak.domain.contracts import format_datetime_id
from kontrak.domain.models import ContractRecord
from kontrak.domain.money import format_idr


class PdfRenderError(RuntimeError):
    pass


# A4 at 150 dpi.
DPI = 150.0
PAGE_SIZE: Tuple[int, int] = (1240, 1754)
MARGIN = 104  # ~50pt
LINE_SPACING = 1.5

HEADING = "TradeStation Digital Contract"


@lru_cache(maxsize=None)
def _font(size: int) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def _line_height(draw: ImageDraw.ImageDraw, font) -> int:
    left, top, right, bottom = draw.textbbox((0, 0), "Ag", font=font)
    return int((bottom - top) * LINE_SPACING)


def _draw_left(draw: ImageDraw.ImageDraw, text: str, font, y: int) -> int:
    draw.text((MARGIN, y), text, fill="black", font=font)
    return y + _line_height(draw, font)


def _draw_centered(draw: ImageDraw.ImageDraw, text: str, font, y: int) -> int:
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    x = (PAGE_SIZE[0] - (right - left)) // 2
    draw.text((x, y), text, fill="black", font=font)
    return y + _line_height(draw, font)


def contract_summary_lines(contract: ContractRecord) -> List[str]:
    return [
        f"Contract Number: {contract.number}",
        f"Title: {contract.title}",
        f"Client: {contract.client_name}",
        f"Amount: {format_idr(contract.amount)}",
        f"Status: {contract.status.value}",
    ]


def render_contract_pdf(contract: ContractRecord, tz: tzinfo) -> bytes:
    """
    Render a one-page A4 summary of a contract and return the PDF bytes.

    Signed contracts get a centred "DIGITALLY SIGNED" stamp with the local
    signing time.
    """
    page = Image.new("RGB", PAGE_SIZE, "white")
    draw = ImageDraw.Draw(page)

    y = MARGIN
    y = _draw_centered(draw, HEADING, _font(40), y)
    y += _line_height(draw, _font(24))

    body = _font(24)
    for line in contract_summary_lines(contract):
        y = _draw_left(draw, line, body, y)

    if contract.signed_at is not None:
        y += _line_height(draw, body)
        y = _draw_centered(draw, "DIGITALLY SIGNED", _font(28), y)
        _draw_centered(draw, f"Signed on: {format_datetime_id(contract.signed_at, tz)}", _font(20), y)

    buf = io.BytesIO()
    try:
        page.save(buf, format="PDF", resolution=DPI)
    except (OSError, ValueError) as e:
        raise PdfRenderError(f"Could not render contract {contract.number}") from e
    return buf.getvalue()
