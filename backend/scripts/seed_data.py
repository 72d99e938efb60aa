#!/usr/bin/env python3
"""
Seed a development database

Creates an admin, an approved seller, a customer, a small category tree
and a few published products. Safe to run more than once: rows that
already exist (matched on email or slug) are skipped.

Usage:
    export DATABASE_URL="postgresql://..."
    python3 backend/scripts/seed_data.py
"""
import logging
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from buysell.core.auth import hash_password  # noqa: E402
from buysell.core.database import SessionLocal  # noqa: E402
from buysell.domain.category import slugify  # noqa: E402
from buysell.models import Category, Product, User  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("seed_data")

DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "Password123")

USERS = [
    {"email": "admin@buysell.local", "first_name": "Admin", "last_name": "Buysell", "role": "admin"},
    {
        "email": "seller@buysell.local", "first_name": "Awa", "last_name": "Diallo", "role": "seller",
        "seller_status": "approved", "store_name": "Awa Market",
    },
    {"email": "customer@buysell.local", "first_name": "Kofi", "last_name": "Mensah", "role": "customer"},
]

# (name, parent name)
CATEGORIES = [
    ("Electronics", None),
    ("Phones", "Electronics"),
    ("Accessories", "Electronics"),
    ("Fashion", None),
    ("Home", None),
]

PRODUCTS = [
    {"name": "Tecno Spark 20", "category": "Phones", "price": Decimal("85000"), "quantity": 25, "sku": "TEC-SPARK20"},
    {"name": "USB-C Charger 25W", "category": "Accessories", "price": Decimal("6500"), "quantity": 120, "sku": "ACC-USBC25"},
    {"name": "Wax Print Shirt", "category": "Fashion", "price": Decimal("12000"), "quantity": 40, "sku": "FSH-WAX01"},
    {"name": "Solar Lamp", "category": "Home", "price": Decimal("9500"), "quantity": 3, "sku": "HOM-SOLAR1"},
]


def seed_users(db) -> dict:
    users = {}
    for data in USERS:
        user = db.query(User).filter(User.email == data["email"]).first()
        if user:
            logger.info(f"User {data['email']} already exists")
        else:
            user = User(password_hash=hash_password(DEFAULT_PASSWORD), is_active=True, email_verified=True, **data)
            db.add(user)
            db.flush()
            logger.info(f"Created {data['role']} {data['email']}")
        users[data["role"]] = user
    return users


def seed_categories(db) -> dict:
    categories = {}
    for position, (name, parent_name) in enumerate(CATEGORIES):
        slug = slugify(name)
        category = db.query(Category).filter(Category.slug == slug).first()
        if not category:
            parent = categories.get(parent_name)
            category = Category(
                name=name,
                slug=slug,
                parent_id=parent.id if parent else None,
                sort_order=position,
                is_active=True,
            )
            db.add(category)
            db.flush()
            logger.info(f"Created category {name}")
        categories[name] = category
    return categories


def seed_products(db, seller: User, categories: dict) -> int:
    created = 0
    for data in PRODUCTS:
        slug = slugify(data["name"])
        if db.query(Product).filter(Product.slug == slug).first():
            continue

        db.add(Product(
            seller_id=seller.id,
            category_id=categories[data["category"]].id,
            name=data["name"],
            slug=slug,
            sku=data["sku"],
            price=data["price"],
            quantity=data["quantity"],
            description=f"{data['name']} from {seller.store_name}",
            images=[],
            tags=[data["category"].lower()],
            is_published=True,
            is_available=True,
        ))
        created += 1
    return created


def main():
    db = SessionLocal()
    try:
        users = seed_users(db)
        categories = seed_categories(db)
        created = seed_products(db, users["seller"], categories)
        db.commit()
        logger.info(f"Seed complete: {created} new product(s)")
    except Exception:
        db.rollback()
        logger.exception("Seed failed, rolled back")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
