#!/usr/bin/env python3
"""
Seed tourism packages and demo profiles.

Products come from a JSON file (a list, or an object with an "items" list)
or from the built-in demo catalog when no file is given. Entries are
upserted by code, so the script can be re-run.

Usage:
    python scripts/seed_products.py
    python scripts/seed_products.py --file packages.json --no-profiles
"""
import argparse
import json
import logging
import os
import sys
from decimal import Decimal, InvalidOperation

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.db import SessionLocal, init_db
from storefront.models.email_setting import EmailSettingType
from storefront.models.profile import Role
from storefront.repositories.email_setting_repo import EmailSettingRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.profile_repo import ProfileRepository

log = logging.getLogger("seed")

DEMO_PACKAGES = [
    {"code": "PKG-CUSCO-5D", "name": "Cusco y Machu Picchu 5 días", "price": "1450.00",
     "description": "Tour guiado, hotel 3 estrellas y tren a Aguas Calientes.",
     "image_url": "https://images.pexels.com/photos/2929906/pexels-photo-2929906.jpeg"},
    {"code": "PKG-CARTAGENA-4D", "name": "Cartagena colonial 4 días", "price": "890.00",
     "description": "Ciudad amurallada, islas del Rosario y hotel boutique.",
     "image_url": "https://images.pexels.com/photos/3581916/pexels-photo-3581916.jpeg"},
    {"code": "PKG-PATAGONIA-7D", "name": "Patagonia y glaciares 7 días", "price": "2380.00",
     "description": "El Calafate, Perito Moreno y trekking en El Chaltén.",
     "image_url": "https://images.pexels.com/photos/1591373/pexels-photo-1591373.jpeg"},
    {"code": "PKG-CANCUN-6D", "name": "Cancún todo incluido 6 días", "price": "1720.00",
     "description": "Resort frente al mar con excursión a Chichén Itzá.",
     "image_url": "https://images.pexels.com/photos/1450353/pexels-photo-1450353.jpeg"},
]

DEMO_PROFILES = [
    {"user_id": "admin-1", "email": "admin@turismoportal.com", "full_name": "Administrador", "role": Role.ADMIN},
    {"user_id": "sales-1", "email": "ventas@turismoportal.com", "full_name": "Equipo de Ventas", "role": Role.SALES},
    {"user_id": "customer-1", "email": "cliente@example.com", "full_name": "Cliente Demo", "role": Role.CUSTOMER},
]


def _normalize_entry(entry):
    """Return a dict with keys: code, name, price, description, image_url, active"""
    code = entry.get("code") or entry.get("sku") or entry.get("id")
    try:
        price = Decimal(str(entry.get("price", 0) or 0))
    except InvalidOperation:
        price = Decimal("0")
    return {
        "code": code,
        "name": entry.get("name") or entry.get("title") or "",
        "price": price,
        "description": entry.get("description") or "",
        "image_url": entry.get("image_url") or entry.get("image") or "",
        "active": bool(entry.get("active", True)),
    }


def load_entries(path):
    if not path:
        return DEMO_PACKAGES
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return data.get("items") or list(data.values())
    return data if isinstance(data, list) else []


def seed(entries, with_profiles=True):
    db = SessionLocal()
    try:
        repo = ProductRepository(db)
        count = 0
        for entry in map(_normalize_entry, entries):
            if not entry["code"]:
                continue
            code = entry.pop("code")
            repo.create_or_update(code, **entry)
            count += 1
        if with_profiles:
            profiles = ProfileRepository(db)
            for p in DEMO_PROFILES:
                profiles.create_or_update(**p)
            emails = EmailSettingRepository(db)
            if not emails.list():
                emails.create(EmailSettingType.INTERNAL_NOTIFICATION, "ventas@turismoportal.com")
        db.commit()
        log.info("Seeded products: %d", count)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=None, help="Path to a JSON list of packages")
    parser.add_argument("--no-profiles", action="store_true", help="Skip demo profiles and email settings")
    args = parser.parse_args()
    if args.file and not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    init_db()
    seed(load_entries(args.file), with_profiles=not args.no_profiles)
