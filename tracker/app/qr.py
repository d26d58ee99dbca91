"""QR codes carrying a product id, for the scan-simulation flow."""
import io
from pathlib import Path

import qrcode

QR_PREFIX = "tracker:product:"


def qr_payload(product_id: str) -> str:
    return f"{QR_PREFIX}{product_id}"


def product_id_from_payload(payload: str) -> str:
    """Inverse of qr_payload; a bare product id is accepted as-is."""
    payload = payload.strip()
    if payload.startswith(QR_PREFIX):
        return payload[len(QR_PREFIX):]
    return payload


def qr_png(product_id: str) -> bytes:
    img = qrcode.make(qr_payload(product_id))
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()


def write_qr(product_id: str, out_dir: Path) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{product_id}.png"
    path.write_bytes(qr_png(product_id))
    return path
