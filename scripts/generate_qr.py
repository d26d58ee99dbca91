#!/usr/bin/env python3
"""
Write one QR code PNG per stored product.

Usage:
    python scripts/generate_qr.py --out qr_codes
    PRODUCTS_FILE=data/products.json python scripts/generate_qr.py
"""
import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tracker.app.qr import write_qr
from tracker.app.store import get_store


def main():
    parser = argparse.ArgumentParser(description="Generate product QR codes")
    parser.add_argument("--out", default="qr_codes", help="Output directory for PNG files")
    args = parser.parse_args()

    out = Path(args.out)
    products = get_store().list_products()
    for product in products:
        path = write_qr(product.id, out)
        print(f"  {product.id:16s}  {path}")
    print(f"\n{len(products)} QR codes -> {out}")


if __name__ == "__main__":
    main()
