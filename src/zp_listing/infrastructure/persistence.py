"""ListingRepository — concrete implementation of ListingRepositoryProtocol.

Transaction ownership: the CALLER commits (the initializer commits the record
together with the game initialization).
"""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.zp_listing.domain.models import ListingRecord

_UPSERT_SQL = text("""
    INSERT INTO listings
        (listing_ref, zpid, city, address, actual_price, displayed_price, payload)
    VALUES
        (:listing_ref, :zpid, :city, :address, :actual_price, :displayed_price,
         CAST(:payload AS JSONB))
    ON CONFLICT (listing_ref) DO UPDATE
        SET city = EXCLUDED.city,
            address = EXCLUDED.address,
            actual_price = EXCLUDED.actual_price,
            displayed_price = EXCLUDED.displayed_price,
            payload = EXCLUDED.payload,
            updated_at = NOW()
""")

_GET_SQL = text("""
    SELECT listing_ref, zpid, city, address, actual_price, displayed_price,
           payload, created_at, updated_at
    FROM listings
    WHERE listing_ref = :listing_ref
""")


class ListingRepository:
    async def upsert(self, db: AsyncSession, record: ListingRecord) -> None:
        await db.execute(
            _UPSERT_SQL,
            {
                "listing_ref": record.listing_ref,
                "zpid": record.zpid,
                "city": record.city,
                "address": record.address,
                "actual_price": record.actual_price,
                "displayed_price": record.displayed_price,
                "payload": json.dumps(record.payload),
            },
        )

    async def get(self, db: AsyncSession, listing_ref: str) -> ListingRecord | None:
        result = await db.execute(_GET_SQL, {"listing_ref": listing_ref})
        row = result.fetchone()
        if row is None:
            return None
        return ListingRecord(
            listing_ref=row.listing_ref,
            zpid=row.zpid,
            city=row.city,
            address=row.address,
            actual_price=row.actual_price,
            displayed_price=row.displayed_price,
            payload=row.payload or {},
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
