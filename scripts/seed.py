"""
Garden Shop - Development Seeder
==================================
Seeds an admin, a customer and a small garden catalog,
then prints development tokens for both users.

Usage:
    python scripts/seed.py          # Seed (idempotent)
    python scripts/seed.py --reset  # Drop all tables and reseed
"""

import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.security import create_token
from modules.user.models import User
from modules.catalog.models import Product, ProductCategory
from modules.review.models import Review  # noqa
from modules.cart.models import Cart, CartItem  # noqa
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa


USERS = [
    {"email": "admin@gardenshop.dev", "full_name": "Shop Admin", "phone": "9000000001", "role": "admin"},
    {"email": "customer@gardenshop.dev", "full_name": "Asha Verma", "phone": "9000000002", "role": "user"},
]

PRODUCTS = [
    {"name": "Money Plant", "category": ProductCategory.PLANT, "sub_category": "Indoor",
     "price": "249.00", "old_price": "299.00", "stock": 40, "featured": True},
    {"name": "Snake Plant", "category": ProductCategory.PLANT, "sub_category": "Indoor",
     "price": "399.00", "old_price": None, "stock": 25, "trending": True},
    {"name": "Terracotta Vase 8in", "category": ProductCategory.VASE, "sub_category": "Clay",
     "price": "199.00", "old_price": "249.00", "stock": 60},
    {"name": "Tomato Seeds (50 pcs)", "category": ProductCategory.SEED, "sub_category": "Vegetable",
     "price": "49.00", "old_price": None, "stock": 200, "trending": True},
    {"name": "Marigold Bunch", "category": ProductCategory.FLOWER, "sub_category": "Seasonal",
     "price": "99.00", "old_price": None, "stock": 30, "featured": True},
    {"name": "Organic Spinach", "category": ProductCategory.VEGETABLES, "sub_category": "Leafy",
     "price": "39.00", "old_price": None, "stock": 80},
    {"name": "Vermicompost 5kg", "category": ProductCategory.FERTILIZER, "sub_category": "Organic",
     "price": "299.00", "old_price": "349.00", "stock": 50},
    {"name": "Hand Trowel", "category": ProductCategory.TOOLS, "sub_category": "Hand Tools",
     "price": "179.00", "old_price": None, "stock": 35},
]


def seed():
    db = SessionLocal()
    try:
        print("=" * 50)
        print("  Garden Shop - Development Seeder")
        print("=" * 50)

        Base.metadata.create_all(bind=engine)

        # ==========================================
        # 1. Users
        # ==========================================
        print("\n[1/2] Users")
        users = {}
        for data in USERS:
            existing = db.query(User).filter(User.email == data["email"]).first()
            if existing:
                users[data["role"]] = existing
                print(f"  = exists: {data['email']}")
                continue
            user = User(**data)
            db.add(user)
            users[data["role"]] = user
            print(f"  + {data['role']}: {data['email']}")
        db.flush()

        # ==========================================
        # 2. Products
        # ==========================================
        print("\n[2/2] Products")
        for data in PRODUCTS:
            if db.query(Product.id).filter(Product.name == data["name"]).first():
                print(f"  = exists: {data['name']}")
                continue
            db.add(Product(
                name=data["name"],
                description=f"{data['name']} for your garden",
                category=data["category"].value,
                sub_category=data["sub_category"],
                price=Decimal(data["price"]),
                old_price=Decimal(data["old_price"]) if data["old_price"] else None,
                stock=data["stock"],
                is_available=data["stock"] > 0,
                featured=data.get("featured", False),
                trending=data.get("trending", False),
            ))
            print(f"  + {data['name']} ({data['category'].value}, stock={data['stock']})")

        db.commit()

        print("\n--- Dev tokens (Authorization: Bearer <token>) ---")
        for role, user in users.items():
            print(f"  {role:8s}: {create_token({'sub': str(user.id)})}")

    except Exception as e:
        db.rollback()
        print(f"\nSeed failed: {e}")
        raise
    finally:
        db.close()


def reset_and_seed():
    """Drop all tables and recreate + seed."""
    Base.metadata.drop_all(bind=engine)
    print("All tables dropped")
    seed()


if __name__ == "__main__":
    if "--reset" in sys.argv:
        confirm = input("This will DELETE ALL DATA. Type 'yes' to confirm: ")
        if confirm.strip().lower() == "yes":
            reset_and_seed()
        else:
            print("Aborted.")
    else:
        seed()
