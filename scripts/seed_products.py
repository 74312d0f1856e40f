#!/usr/bin/env python3
"""
Seed sample catalog products for local development.

Products created here are not linked to Printful, so they show in the
admin catalog but are not purchasable until a sync links them.

Usage:
    python scripts/seed_products.py
"""

import asyncio
import os
import sys
from decimal import Decimal

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from dotenv import load_dotenv

load_dotenv(os.path.join(project_root, ".env"))

from sqlalchemy import select

from libs.db.config import AsyncSessionLocal
from services.store_service.models import (
    Product,
    ProductCategory,
    ProductImage,
    ProductVariant,
)

PRODUCTS = [
    {
        "name": "Palestine Flag T-Shirt",
        "slug": "palestine-flag-tshirt",
        "description": "Show your pride with this premium cotton t-shirt featuring the Palestinian flag.",
        "price": Decimal("29.99"),
        "compare_at_price": Decimal("39.99"),
        "category": ProductCategory.TSHIRTS,
        "tags": ["flag", "pride", "cotton"],
        "is_featured": True,
        "image": "https://via.placeholder.com/500x500/000000/FFFFFF?text=Palestine+Flag+Tee",
        "color": "Black",
        "sku": "PFT-BLK",
        "sizes": {"S": 50, "M": 100, "L": 75, "XL": 60, "2XL": 30},
    },
    {
        "name": "Free Palestine Hoodie",
        "slug": "free-palestine-hoodie",
        "description": "Stay warm and stand in solidarity with this comfortable Free Palestine hoodie.",
        "price": Decimal("54.99"),
        "compare_at_price": None,
        "category": ProductCategory.HOODIES,
        "tags": ["hoodie", "solidarity", "warm"],
        "is_featured": True,
        "image": "https://via.placeholder.com/500x500/1a1a1a/FFFFFF?text=Free+Palestine+Hoodie",
        "color": "Navy",
        "sku": "FPH-NVY",
        "sizes": {"S": 40, "M": 80, "L": 70, "XL": 50, "2XL": 25},
    },
    {
        "name": "Olive Tree Crewneck",
        "slug": "olive-tree-crewneck",
        "description": "Featuring the iconic Palestinian olive tree, this crewneck represents resilience and heritage.",
        "price": Decimal("44.99"),
        "compare_at_price": None,
        "category": ProductCategory.SWEATSHIRTS,
        "tags": ["olive tree", "heritage", "sweatshirt"],
        "is_featured": False,
        "image": "https://via.placeholder.com/500x500/2d5016/FFFFFF?text=Olive+Tree+Crew",
        "color": "Forest Green",
        "sku": "OTC-GRN",
        "sizes": {"S": 35, "M": 70, "L": 65, "XL": 45},
    },
    {
        "name": "Jerusalem Skyline Tee",
        "slug": "jerusalem-skyline-tee",
        "description": "Beautiful Jerusalem skyline design on premium cotton. A timeless piece.",
        "price": Decimal("32.99"),
        "compare_at_price": None,
        "category": ProductCategory.TSHIRTS,
        "tags": ["jerusalem", "skyline", "cotton"],
        "is_featured": False,
        "image": "https://via.placeholder.com/500x500/4a4a4a/FFD700?text=Jerusalem+Skyline",
        "color": "Charcoal",
        "sku": "JST-CHR",
        "sizes": {"S": 40, "M": 90, "L": 80, "XL": 50},
    },
]


async def seed_products():
    """Insert sample products, skipping slugs that already exist."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Product.slug))
        existing = set(result.scalars().all())

        created = 0
        for data in PRODUCTS:
            if data["slug"] in existing:
                print(f"⚠️  {data['slug']} already exists, skipping")
                continue

            product = Product(
                name=data["name"],
                slug=data["slug"],
                description=data["description"],
                price=data["price"],
                compare_at_price=data["compare_at_price"],
                category=data["category"],
                tags=data["tags"],
                is_active=True,
                is_featured=data["is_featured"],
                images=[
                    ProductImage(url=data["image"], alt=data["name"], is_primary=True, sort_order=0)
                ],
                variants=[
                    ProductVariant(
                        size=size,
                        color=data["color"],
                        sku=f"{data['sku']}-{size}",
                        stock=stock,
                        position=index,
                    )
                    for index, (size, stock) in enumerate(data["sizes"].items())
                ],
            )
            db.add(product)
            created += 1
            print(f"✅ {data['name']}")

        await db.commit()
        print(f"\nSeeded {created} product(s).")


if __name__ == "__main__":
    asyncio.run(seed_products())
