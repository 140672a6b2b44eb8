"""
QR code rendering for gate passes.

The QR code only carries the pass's opaque token; the gate scanner posts it
back to the scan endpoint, which resolves the pass.
"""

import io
import base64

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from gatepass.core.exceptions import InvalidTransitionError
from gatepass.core.logging_config import logger
from gatepass.models.gate_pass import GatePass, QR_VISIBLE_STATUSES


def generate_qr_code(data: str, size: int = 256) -> str:
    """
    Generate QR code as base64-encoded PNG.

    Args:
        data: The data to encode in the QR code
        size: The size of the QR code image in pixels

    Returns:
        Base64-encoded PNG image string
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=2
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    img = img.resize((size, size))

    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return base64.b64encode(buffer.getvalue()).decode('utf-8')


def render_pass_qr(gate_pass: GatePass, size: int = 256) -> str:
    """Render the pass token for the holder to present at the gate"""
    if gate_pass.status not in QR_VISIBLE_STATUSES or not gate_pass.qr_token:
        raise InvalidTransitionError(
            gate_pass.status.value,
            "render_qr",
            "QR code is only available for approved passes",
        )

    image = generate_qr_code(gate_pass.qr_token, size)
    logger.info(f"Rendered QR code for pass {gate_pass.id}")
    return image
