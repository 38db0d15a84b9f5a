"""Login QR challenge display.

Prints the pairing QR code to the terminal and keeps an SVG copy on disk so
it can be scanned from another machine. The file is removed once the
session opens or closes.
"""

from __future__ import annotations

import logging
import os

import qrcode
import qrcode.image.svg

LOGGER = logging.getLogger(__name__)


class QRCodeDisplay:
    """Satisfies the core ChallengePresenter port."""

    def __init__(self, path: str, print_ascii: bool = True) -> None:
        self._path = path
        self._print_ascii = print_ascii

    def show(self, qr: str) -> None:
        try:
            if self._print_ascii:
                code = qrcode.QRCode(border=1)
                code.add_data(qr)
                code.make(fit=True)
                code.print_ascii(invert=True)
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            qrcode.make(qr, image_factory=qrcode.image.svg.SvgImage).save(self._path)
            LOGGER.info("QR code saved as %s", self._path)
        except Exception:
            LOGGER.exception("Error saving QR code")

    def clear(self) -> None:
        try:
            if os.path.exists(self._path):
                os.remove(self._path)
                LOGGER.info("QR code image deleted")
        except OSError:
            LOGGER.exception("Failed to delete QR code image")
