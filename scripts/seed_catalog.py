#!/usr/bin/env python3
"""Seed the database with sample categories, approved merchants and services."""
import sys
from decimal import Decimal
from pathlib import Path

# Add the parent directory to the path so we can import the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from werkzeug.security import generate_password_hash

from marketplace import create_app
from marketplace.extensions import db
from marketplace.models import Category, Merchant, Service

SAMPLE_PASSWORD = "Password123!"

SAMPLE_CATALOG = {
    "Home Services": [
        {
            "business_name": "Sparkle Cleaning Co.",
            "email": "sparkle@example.com",
            "description": "Residential and move-out cleaning",
            "rating": Decimal("4.70"),
            "services": [
                {"title": "Standard Home Clean", "price": Decimal("80.00"), "duration": 120},
                {"title": "Deep Clean", "price": Decimal("150.00"), "duration": 240},
            ],
        },
        {
            "business_name": "FixIt Plumbing",
            "email": "fixit@example.com",
            "description": "Leaks, clogs and installs",
            "rating": Decimal("4.20"),
            "services": [
                {"title": "Leak Repair", "price": Decimal("95.00"), "duration": 60},
            ],
        },
    ],
    "Beauty": [
        {
            "business_name": "Glow Studio",
            "email": "glow@example.com",
            "description": "Hair and skin care",
            "rating": Decimal("4.90"),
            "services": [
                {"title": "Haircut & Style", "price": Decimal("45.00"), "duration": 45},
                {"title": "Facial", "price": Decimal("70.00"), "duration": 60},
            ],
        },
    ],
    "Pet Care": [],
}


def seed_catalog():
    """Add the sample catalog, skipping merchants that already exist."""
    app = create_app()

    with app.app_context():
        for category_name, merchants in SAMPLE_CATALOG.items():
            category = Category.query.filter_by(category_name=category_name).first()
            if category is None:
                category = Category(category_name=category_name)
                db.session.add(category)
                db.session.flush()
                print(f"📂 Added category {category_name}")

            for merchant_data in merchants:
                if Merchant.query.filter_by(email=merchant_data["email"]).first():
                    print(f"⏭️  {merchant_data['business_name']} already exists. Skipping...")
                    continue

                merchant = Merchant(
                    business_name=merchant_data["business_name"],
                    email=merchant_data["email"],
                    password_hash=generate_password_hash(SAMPLE_PASSWORD),
                    category_id=category.category_id,
                    description=merchant_data["description"],
                    rating=merchant_data["rating"],
                    status="approved",
                )
                db.session.add(merchant)
                db.session.flush()
                print(f"🏪 Added merchant {merchant.business_name}")

                for service_data in merchant_data["services"]:
                    db.session.add(Service(merchant_id=merchant.merchant_id, **service_data))
                    print(f"  ✓ {service_data['title']} (${service_data['price']:.2f})")

        db.session.commit()
        print("\n✅ Catalog seeded successfully!")
        print(f"📊 {Merchant.query.count()} merchants, {Service.query.count()} services")


if __name__ == "__main__":
    seed_catalog()
