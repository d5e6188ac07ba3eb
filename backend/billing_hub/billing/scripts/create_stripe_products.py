"""Create the Stripe product and recurring prices in test mode.

Run once:
    python -m billing_hub.billing.scripts.create_stripe_products

Outputs price IDs to set in .env:
    STRIPE_MONTHLY_PRICE_ID=price_xxx
    STRIPE_SEMIANNUAL_PRICE_ID=price_xxx
    STRIPE_ANNUAL_PRICE_ID=price_xxx
"""

import asyncio

from billing_hub.billing.plans import PLANS, PlanType
from billing_hub.billing.stripe_client import get_stripe_client
from billing_hub.config import settings


async def main() -> None:
    if not settings.stripe_secret_key:
        print("ERROR: STRIPE_SECRET_KEY is not set in .env")
        return

    client = get_stripe_client()

    product = await client.v1.products.create_async(
        params={
            "name": settings.app_name,
            "description": "Full access with advanced analytics, export, and priority support",
        }
    )
    print(f"Created product: {product.name} ({product.id})")

    env_lines = []
    for plan in PLANS.values():
        if plan.plan_type is PlanType.TRIAL:
            continue
        price = await client.v1.prices.create_async(
            params={
                "product": product.id,
                "unit_amount": plan.price_cents,
                "currency": "usd",
                "recurring": {"interval": "month", "interval_count": plan.months},
                "nickname": plan.display_name,
            }
        )
        print(f"  {plan.display_name}: ${plan.price_cents / 100:.2f} every {plan.months} mo ({price.id})")
        env_lines.append(f"STRIPE_{plan.plan_type.value.upper()}_PRICE_ID={price.id}")

    print("\n--- Add these to your .env ---")
    for line in env_lines:
        print(line)


if __name__ == "__main__":
    asyncio.run(main())
