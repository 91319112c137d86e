"""
QR rendering of participant credential payloads.
"""

import io

import qrcode


def credential_qr_png(payload: str, box_size: int = 10, border: int = 4) -> bytes:
    """PNG bytes of a QR code carrying the encrypted credential payload."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
