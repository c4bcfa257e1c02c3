"""QR code rendering for download page links."""

from __future__ import annotations

import segno

QR_SCALE = 6
QR_BORDER = 2


def render_qr_data_uri(url: str, *, scale: int = QR_SCALE) -> str:
    """Encode ``url`` as a PNG QR code and return it as a ``data:`` URI."""
    qr = segno.make(url, error='m')
    return qr.png_data_uri(scale=scale, border=QR_BORDER)
