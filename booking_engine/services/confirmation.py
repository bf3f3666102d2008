"""Confirmation code generation"""

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.reservation import Reservation

# No 0/O, 1/I/L: codes are read aloud over the phone
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 20


def generate_confirmation_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


async def code_in_use(db: AsyncSession, code: str) -> bool:
    result = await db.execute(
        select(Reservation.id).where(Reservation.confirmation_code == code).limit(1)
    )
    return result.first() is not None


async def unused_confirmation_code(db: AsyncSession) -> str:
    """Draw codes until one is absent from the live reservation set"""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_confirmation_code()
        if not await code_in_use(db, code):
            return code
    raise RuntimeError("Could not allocate a unique confirmation code")
