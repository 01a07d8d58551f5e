import uuid
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from eventflow.domain.exceptions import InvalidInput, NotFound
from eventflow.domain.payments.models import PaymentMethod, PaymentMethodKind, PaymentTransfer
from eventflow.domain.payments.schemas import (
    CardCreateDTO, PaymentMethodCreateDTO, CardPaymentMethodReadDTO, GenericPaymentMethodReadDTO
)
from eventflow.services import payment_service


def make_pm(balance="0", kind=PaymentMethodKind.GENERIC, **kwargs) -> PaymentMethod:
    values = {
        "id": uuid.uuid4(),
        "account_id": uuid.uuid4(),
        "kind": kind,
        "display_name": "Wallet",
        "balance": Decimal(balance),
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    values.update(kwargs)
    return PaymentMethod(**values)


def _db(mocker):
    db = mocker.Mock()
    db.add = mocker.Mock()
    db.flush = mocker.AsyncMock()
    return db


def _patch_lock(mocker, *pms):
    return mocker.patch(
        "eventflow.services.payment_service.crud.lock_payment_methods",
        new=mocker.AsyncMock(return_value={pm.id: pm for pm in pms})
    )


@pytest.mark.asyncio
async def test_perform_transaction_moves_balance_and_records_transfer(mocker):
    db = _db(mocker)
    src, dst = make_pm("100.00"), make_pm("5.00")
    lock_spy = _patch_lock(mocker, src, dst)

    transfer = await payment_service.perform_transaction(db, src.id, dst.id, Decimal("30.00"))

    assert isinstance(transfer, PaymentTransfer)
    assert transfer.amount == Decimal("30.00")
    assert src.balance == Decimal("70.00")
    assert dst.balance == Decimal("35.00")
    assert lock_spy.await_args.args[1] == {src.id, dst.id}
    db.add.assert_called_once_with(transfer)
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_perform_transaction_may_overdraw(mocker):
    db = _db(mocker)
    src, dst = make_pm("10.00"), make_pm()
    _patch_lock(mocker, src, dst)

    await payment_service.perform_transaction(db, src.id, dst.id, Decimal("25.00"))

    assert src.balance == Decimal("-15.00")


@pytest.mark.asyncio
async def test_perform_transaction_zero_amount_checks_existence_only(mocker, auditspan_stub):
    db = _db(mocker)
    src, dst = make_pm("10.00"), make_pm()
    _patch_lock(mocker, src, dst)

    assert await payment_service.perform_transaction(db, src.id, dst.id, Decimal("0")) is None
    assert src.balance == Decimal("10.00")
    db.add.assert_not_called()
    assert auditspan_stub[0].meta["noop"] is True


@pytest.mark.asyncio
async def test_perform_transaction_unknown_method_raises(mocker):
    db = _db(mocker)
    src = make_pm("10.00")
    _patch_lock(mocker, src)

    with pytest.raises(NotFound):
        await payment_service.perform_transaction(db, src.id, uuid.uuid4(), Decimal("1"))

    assert src.balance == Decimal("10.00")


@pytest.mark.asyncio
async def test_perform_transaction_rejects_negative_and_self_transfer(mocker):
    db = _db(mocker)
    lock_spy = _patch_lock(mocker)
    pm_id = uuid.uuid4()

    with pytest.raises(InvalidInput):
        await payment_service.perform_transaction(db, uuid.uuid4(), pm_id, Decimal("-1"))
    with pytest.raises(InvalidInput):
        await payment_service.perform_transaction(db, pm_id, pm_id, Decimal("1"))

    lock_spy.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_card_defaults_display_name_to_last_digits(mocker):
    db = _db(mocker)
    mocker.patch(
        "eventflow.services.payment_service.accounts_crud.get_account_by_id",
        new=mocker.AsyncMock(return_value=mocker.Mock())
    )
    schema = CardCreateDTO(number="4242 4242 4242 4242", expiry="12/99", cvv="123", name="Ann Smith")

    pm = await payment_service.add_card(db, uuid.uuid4(), schema)

    assert pm.kind == PaymentMethodKind.CARD
    assert pm.display_name == "Card 4242"
    assert pm.card_number == "4242424242424242"
    db.add.assert_called_once_with(pm)


@pytest.mark.asyncio
async def test_add_payment_method_requires_account(mocker):
    db = _db(mocker)
    mocker.patch(
        "eventflow.services.payment_service.accounts_crud.get_account_by_id",
        new=mocker.AsyncMock(return_value=None)
    )

    with pytest.raises(NotFound):
        await payment_service.add_payment_method(db, uuid.uuid4(), PaymentMethodCreateDTO(display_name="Wallet"))

    db.add.assert_not_called()


@pytest.mark.asyncio
async def test_is_valid_payment_method_checks_ownership(mocker):
    pm = make_pm()
    mocker.patch(
        "eventflow.services.payment_service.crud.get_payment_method",
        new=mocker.AsyncMock(return_value=pm)
    )

    assert await payment_service.is_valid_payment_method(mocker.Mock(), pm.id, pm.account_id) is True
    assert await payment_service.is_valid_payment_method(mocker.Mock(), pm.id, uuid.uuid4()) is False


@pytest.mark.asyncio
async def test_get_default_payment_method_is_oldest_or_none(mocker):
    first, second = make_pm(), make_pm()
    list_spy = mocker.patch(
        "eventflow.services.payment_service.crud.list_payment_methods",
        new=mocker.AsyncMock(return_value=[first, second])
    )

    assert await payment_service.get_default_payment_method(mocker.Mock(), uuid.uuid4()) is first

    list_spy.return_value = []
    assert await payment_service.get_default_payment_method(mocker.Mock(), uuid.uuid4()) is None


def test_to_read_dto_dispatches_on_kind_and_masks_card():
    card = make_pm(
        kind=PaymentMethodKind.CARD,
        card_number="4242424242424242", card_expiry="12/99", card_cvv="123", card_name="Ann Smith"
    )

    card_dto = payment_service.to_read_dto(card)
    generic_dto = payment_service.to_read_dto(make_pm("3.50"))

    assert isinstance(card_dto, CardPaymentMethodReadDTO)
    assert card_dto.number.endswith("4242")
    assert "424242424242" not in card_dto.number
    assert isinstance(generic_dto, GenericPaymentMethodReadDTO)
    assert generic_dto.balance == Decimal("3.50")
