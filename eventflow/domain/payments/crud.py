import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import PaymentMethod


async def get_payment_method(db: AsyncSession, payment_method_id: uuid.UUID) -> PaymentMethod | None:
    result = await db.execute(select(PaymentMethod).where(PaymentMethod.id == payment_method_id))
    return result.scalars().first()


async def lock_payment_methods(db: AsyncSession, payment_method_ids: set[uuid.UUID]) -> dict[uuid.UUID, PaymentMethod]:
    # Fixed lock order keeps two opposite transfers from deadlocking.
    result = await db.scalars(
        select(PaymentMethod)
        .where(PaymentMethod.id.in_(payment_method_ids))
        .order_by(PaymentMethod.id)
        .with_for_update()
    )
    return {pm.id: pm for pm in result.all()}


async def list_payment_methods(db: AsyncSession, account_id: uuid.UUID) -> list[PaymentMethod]:
    result = await db.scalars(
        select(PaymentMethod)
        .where(PaymentMethod.account_id == account_id)
        .order_by(PaymentMethod.created_at, PaymentMethod.id)
    )
    return list(result.all())


async def create_payment_method(db: AsyncSession, data: dict) -> PaymentMethod:
    payment_method = PaymentMethod(**data)
    db.add(payment_method)
    return payment_method
