"""
Seed script to create the default investment plans (idempotent)

Usage:
    python -m scripts.seed_plans
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Import all models first to ensure relationships are resolved
import app.models  # noqa: F401

from sqlalchemy.orm import Session
from app.infrastructure.database import SessionLocal
from app.core.plans.models import InvestmentPlan

DEFAULT_PLANS = [
    {
        "name": "Steady Bot",
        "description": "Conservative growth",
        "strategy": "Market making on major pairs",
        "risk_level": "low",
        "daily_return_rate": Decimal("0.5000"),
        "minimum_investment": Decimal("100"),
        "duration_days": 30,
    },
    {
        "name": "Momentum Bot",
        "description": "Trend following",
        "strategy": "Momentum trading",
        "risk_level": "medium",
        "daily_return_rate": Decimal("1.5000"),
        "minimum_investment": Decimal("500"),
        "duration_days": 60,
    },
    {
        "name": "Alpha Bot",
        "description": "Aggressive trading",
        "strategy": "High-frequency arbitrage",
        "risk_level": "high",
        "daily_return_rate": Decimal("3.0000"),
        "minimum_investment": Decimal("1000"),
        "duration_days": 90,
    },
]


def seed_plans(db: Session) -> int:
    """Create missing default plans; existing plans (matched by name) are left untouched"""
    print("Seeding investment plans...")
    created = 0
    for fields in DEFAULT_PLANS:
        existing = db.query(InvestmentPlan).filter(InvestmentPlan.name == fields["name"]).first()
        if existing:
            print(f"  ✓ {fields['name']} already exists")
            continue
        db.add(InvestmentPlan(is_active=True, **fields))
        created += 1
        print(f"  ✓ Created {fields['name']} ({fields['daily_return_rate']}%/day, {fields['duration_days']} days)")

    db.commit()
    print("Investment plans seeding complete.")
    return created


if __name__ == "__main__":
    db = SessionLocal()
    try:
        seed_plans(db)
    finally:
        db.close()
