import uuid
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.auditing import AuditSpan
from eventflow.domain.accounts import crud as accounts_crud
from eventflow.domain.exceptions import NotFound, InvalidInput
from eventflow.domain.payments import crud
from eventflow.domain.payments.models import PaymentMethod, PaymentMethodKind, PaymentTransfer
from eventflow.domain.payments.schemas import (
    PaymentMethodCreateDTO, CardCreateDTO, CardPaymentMethodReadDTO, GenericPaymentMethodReadDTO
)


def to_read_dto(payment_method: PaymentMethod) -> CardPaymentMethodReadDTO | GenericPaymentMethodReadDTO:
    if payment_method.kind == PaymentMethodKind.CARD:
        return CardPaymentMethodReadDTO.model_validate(payment_method)
    return GenericPaymentMethodReadDTO.model_validate(payment_method)


async def _require_account(db: AsyncSession, account_id: uuid.UUID) -> None:
    if not await accounts_crud.get_account_by_id(db, account_id):
        raise NotFound("Account not found", ctx={"account_id": account_id})


async def perform_transaction(
        db: AsyncSession,
        from_payment_method_id: uuid.UUID,
        to_payment_method_id: uuid.UUID,
        amount: Decimal
) -> PaymentTransfer | None:
    """
    Move ``amount`` from one payment method's balance to another's and record the transfer.
    Both rows are locked in id order; a zero amount only checks that both exist.
    """
    async with AuditSpan(
        scope="PAYMENTS",
        action="TRANSFER",
        object_type="payment_transfer",
        payment_method_id=from_payment_method_id,
        meta={"to_payment_method_id": to_payment_method_id, "amount": amount}
    ) as span:
        if amount < 0:
            raise InvalidInput("Amount must not be negative", ctx={"amount": amount})
        if from_payment_method_id == to_payment_method_id:
            raise InvalidInput(
                "Source and target payment methods must differ",
                ctx={"payment_method_id": from_payment_method_id}
            )

        locked = await crud.lock_payment_methods(db, {from_payment_method_id, to_payment_method_id})
        for pm_id in (from_payment_method_id, to_payment_method_id):
            if pm_id not in locked:
                raise NotFound("Payment method not found", ctx={"payment_method_id": pm_id})

        if amount == 0:
            span.meta["noop"] = True
            return None

        locked[from_payment_method_id].balance -= amount
        locked[to_payment_method_id].balance += amount
        transfer = PaymentTransfer(
            from_payment_method_id=from_payment_method_id,
            to_payment_method_id=to_payment_method_id,
            amount=amount
        )
        db.add(transfer)
        await db.flush()
        span.object_id = transfer.id
        return transfer


async def add_card(db: AsyncSession, account_id: uuid.UUID, schema: CardCreateDTO) -> PaymentMethod:
    async with AuditSpan(
        scope="PAYMENT_METHODS",
        action="ADD_CARD",
        object_type="payment_method",
        meta={"account_id": account_id}
    ) as span:
        await _require_account(db, account_id)
        payment_method = await crud.create_payment_method(db, {
            "account_id": account_id,
            "kind": PaymentMethodKind.CARD,
            "display_name": schema.display_name or f"Card {schema.number[-4:]}",
            "card_number": schema.number,
            "card_expiry": schema.expiry,
            "card_cvv": schema.cvv,
            "card_name": schema.name,
        })
        await db.flush()
        span.object_id = payment_method.id
        span.payment_method_id = payment_method.id
        return payment_method


async def add_payment_method(db: AsyncSession, account_id: uuid.UUID, schema: PaymentMethodCreateDTO) -> PaymentMethod:
    async with AuditSpan(
        scope="PAYMENT_METHODS",
        action="ADD_GENERIC",
        object_type="payment_method",
        meta={"account_id": account_id}
    ) as span:
        await _require_account(db, account_id)
        payment_method = await crud.create_payment_method(db, {
            "account_id": account_id,
            "kind": PaymentMethodKind.GENERIC,
            "display_name": schema.display_name,
        })
        await db.flush()
        span.object_id = payment_method.id
        span.payment_method_id = payment_method.id
        return payment_method


async def is_valid_payment_method(db: AsyncSession, payment_method_id: uuid.UUID, account_id: uuid.UUID) -> bool:
    payment_method = await crud.get_payment_method(db, payment_method_id)
    return payment_method is not None and payment_method.account_id == account_id


async def get_payment_methods(db: AsyncSession, account_id: uuid.UUID) -> list[PaymentMethod]:
    return await crud.list_payment_methods(db, account_id)


async def get_default_payment_method(db: AsyncSession, account_id: uuid.UUID) -> PaymentMethod | None:
    payment_methods = await crud.list_payment_methods(db, account_id)
    return payment_methods[0] if payment_methods else None
