#!/usr/bin/env python3
"""
Seed products (and optionally coupons) from a JSON catalogue.

The file may be a list of products or an object with "products" (or "items")
and an optional "coupons" list. Products are matched on slug, so running the
script twice updates rather than duplicates.

Usage:
    python scripts/seed_products.py --file catalogue.json
    python scripts/seed_products.py --demo
"""
import argparse
import json
import logging
import os
import sys
from decimal import Decimal, InvalidOperation

# allow running from backend/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.db import SessionLocal, init_db  # noqa: E402
from storefront.models.coupon import seed_coupons  # noqa: E402
from storefront.repositories.product_repo import ProductRepository  # noqa: E402
from storefront.utils.logging import configure_logging  # noqa: E402

log = logging.getLogger("storefront.scripts.seed_products")

DEMO_PRODUCTS = [
    {"slug": "green-tea", "name": "Green Tea 100g", "category": "drinks", "price": "4.99", "stock": 40},
    {"slug": "espresso-beans", "name": "Espresso Beans 1kg", "category": "drinks", "price": "21.50", "stock": 15},
    {"slug": "rye-bread", "name": "Rye Bread", "category": "bakery", "price": "3.25", "stock": 20},
    {"slug": "wild-honey", "name": "Wild Honey 500g", "category": "pantry", "price": "12.00", "stock": 12,
     "is_featured": True},
    {"slug": "olive-oil", "name": "Olive Oil 750ml", "category": "pantry", "price": "14.75", "stock": 8},
]

OPTIONAL_FIELDS = ("brand", "description", "is_featured")


def _normalize_entry(entry: dict):
    """Map a catalogue entry to create_or_update kwargs, or None when it cannot be used."""
    slug = entry.get("slug")
    name = entry.get("name") or entry.get("title")
    if not slug or not name:
        log.warning("skipping entry without slug/name: %r", entry)
        return None
    try:
        price = Decimal(str(entry.get("price", "0")))
    except InvalidOperation:
        log.warning("skipping %s: bad price %r", slug, entry.get("price"))
        return None
    if not price.is_finite() or price <= 0:
        log.warning("skipping %s: price must be positive, got %s", slug, price)
        return None

    fields = {
        "slug": slug,
        "name": name,
        "price": price,
        "category": entry.get("category") or "uncategorized",
        "stock": max(0, int(entry.get("stock", entry.get("countInStock", 0)) or 0)),
    }
    image = entry.get("image")
    if not image and isinstance(entry.get("images"), list) and entry["images"]:
        image = entry["images"][0]
    if image:
        fields["image"] = image
    for key in OPTIONAL_FIELDS:
        if entry.get(key) is not None:
            fields[key] = entry[key]
    return fields


def load_catalogue(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        return data, None
    if isinstance(data, dict):
        products = data.get("products") or data.get("items") or []
        return products, data.get("coupons")
    raise ValueError(f"unsupported catalogue format in {path}")


def seed(products, coupons=None) -> dict:
    db = SessionLocal()
    repo = ProductRepository(db)
    seeded = 0
    try:
        for entry in products:
            fields = _normalize_entry(entry)
            if fields is None:
                continue
            repo.create_or_update(**fields)
            seeded += 1
        coupons_added = seed_coupons(db, coupons)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    return {"products": seeded, "coupons": coupons_added}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the storefront catalogue.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", "-f", help="Path to a JSON catalogue")
    source.add_argument("--demo", action="store_true", help="Seed a small built-in catalogue")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    configure_logging()
    init_db(reset=args.reset)

    if args.demo:
        products, coupons = DEMO_PRODUCTS, None
    else:
        if not os.path.exists(args.file):
            log.error("file not found: %s", args.file)
            sys.exit(1)
        products, coupons = load_catalogue(args.file)

    result = seed(products, coupons)
    log.info("seeded %d products, added %d coupons", result["products"], result["coupons"])
