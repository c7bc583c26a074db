import io

import qrcode
import qrcode.image.svg


# PUBLIC_INTERFACE
def render_qr_svg(url: str) -> bytes:
    """Return an SVG QR code pointing at ``url``."""
    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=8, border=4)
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(image_factory=qrcode.image.svg.SvgPathImage)
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()
