#!/usr/bin/env python3
"""Insert or update a listing so it can be booked locally.

Listings are owned by the listings service; this is a development helper.
"""

import argparse
import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.database import async_session_maker
from app.models.listing import Listing


async def seed_listing(
    listing_id: str,
    name: str,
    address: str,
    price: Decimal,
    agent_name: str,
    agent_phone: str,
) -> None:
    """Create the listing, or refresh its fields if it already exists."""
    async with async_session_maker() as session:
        result = await session.execute(select(Listing).where(Listing.id == listing_id))
        listing = result.scalar_one_or_none()

        if listing:
            listing.name = name
            listing.address = address
            listing.price = price
            listing.agent_name = agent_name
            listing.agent_phone = agent_phone
            print(f"Updated listing: {listing_id}")
        else:
            session.add(
                Listing(
                    id=listing_id,
                    name=name,
                    address=address,
                    price=price,
                    agent_name=agent_name,
                    agent_phone=agent_phone,
                )
            )
            print(f"Created listing: {listing_id}")
        await session.commit()

    print(f"Name: {name}")
    print(f"Monthly rent: KES {price:,.2f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a bookable listing")
    parser.add_argument("--id", default="qwetu-aparthotel", help="Listing id")
    parser.add_argument("--name", default="Qwetu Aparthotel", help="Listing name")
    parser.add_argument("--address", default="Ngong Road, Nairobi", help="Address")
    parser.add_argument("--price", type=Decimal, default=Decimal("20000"), help="Monthly rent (KES)")
    parser.add_argument("--agent-name", default="Jane Wanjiku", help="Agent name")
    parser.add_argument("--agent-phone", default="0712345678", help="Agent phone")
    args = parser.parse_args()

    asyncio.run(
        seed_listing(
            listing_id=args.id,
            name=args.name,
            address=args.address,
            price=args.price,
            agent_name=args.agent_name,
            agent_phone=args.agent_phone,
        )
    )
