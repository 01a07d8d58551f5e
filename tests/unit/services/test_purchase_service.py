import uuid
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from eventflow.domain.exceptions import Forbidden, NotFound, InvalidInput
from eventflow.domain.tickets.schemas import PurchaseRequestDTO, PurchaseFailure, TicketReadDTO
from eventflow.services import purchase_service

MOD = "eventflow.services.purchase_service"


class Env:
    def __init__(self, mocker):
        self.mocker = mocker
        self.account_id = uuid.uuid4()
        self.option_id = uuid.uuid4()
        self.event = mocker.Mock(id=uuid.uuid4(), organizer_id=uuid.uuid4())
        self.event.name = "Summer Jam"
        self.buyer_pm = mocker.Mock(id=uuid.uuid4())
        self.organizer_pm = mocker.Mock(id=uuid.uuid4())
        self.db = mocker.Mock()

        self.attendee_exists = self.patch("accounts_crud.attendee_exists", True)
        self.available = self.patch("availability_service.is_ticket_option_available", True)
        self.get_event = self.patch("event_service.get_event_from_ticket_options", self.event)
        self.get_price = self.patch("availability_service.get_price", {self.option_id: Decimal("20.00")})
        self.valid_pm = self.patch("payment_service.is_valid_payment_method", True)
        self.default_pm = self.patch("payment_service.get_default_payment_method", self.organizer_pm)
        self.transfer = self.patch("payment_service.perform_transaction", None)
        self.notify = self.patch("notification_sender.send", None)
        self.create = self.mocker.patch(f"{MOD}.ticket_service.create_tickets", side_effect=self._create)

    def patch(self, target, value):
        return self.mocker.patch(f"{MOD}.{target}", new=self.mocker.AsyncMock(return_value=value))

    async def _create(self, db, drafts, on_created=None):
        self.drafts = drafts
        tickets = [
            TicketReadDTO(
                id=uuid.uuid4(),
                ticket_option_id=d.ticket_option_id,
                attendee_id=d.attendee_id,
                created_at=datetime(2025, 5, 1, tzinfo=timezone.utc),
                price=d.price,
                holder_name=d.holder_name,
                holder_email=d.holder_email,
                holder_phone=d.holder_phone,
                is_reviewed=False,
                payment_method_id=d.payment_method_id
            )
            for d in drafts
        ]
        return await on_created(tickets)

    def request(self, count=2, **kwargs):
        values = {"ticket_option_ids": [self.option_id] * count, "payment_method_id": self.buyer_pm.id}
        values.update(kwargs)
        return PurchaseRequestDTO(**values)


@pytest.fixture
def env(mocker):
    return Env(mocker)


@pytest.mark.asyncio
async def test_purchase_success_transfers_total_and_notifies_both_sides(env):
    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request(holder_name="Ann"))

    assert result.success is True
    assert result.reason is None
    assert result.total_price == Decimal("40.00")
    assert result.event_name == "Summer Jam"
    assert len(result.tickets) == 2
    assert all(t.holder_name == "Ann" for t in result.tickets)
    assert all(t.payment_method_id == env.buyer_pm.id for t in result.tickets)
    env.transfer.assert_awaited_once_with(env.db, env.buyer_pm.id, env.organizer_pm.id, Decimal("40.00"))
    recipients = [c.args[1] for c in env.notify.await_args_list]
    assert recipients == [env.account_id, env.event.organizer_id]


@pytest.mark.asyncio
async def test_purchase_requires_attendee(env):
    env.attendee_exists.return_value = False

    with pytest.raises(Forbidden):
        await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    env.create.assert_not_called()


@pytest.mark.asyncio
async def test_purchase_unavailable(env, auditspan_stub):
    env.available.return_value = False

    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    assert result.success is False
    assert result.reason == PurchaseFailure.UNAVAILABLE
    assert auditspan_stub[0].meta["rejected"] == "UNAVAILABLE"
    env.create.assert_not_called()


@pytest.mark.asyncio
async def test_purchase_across_events_is_unavailable(env):
    env.get_event.return_value = None

    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    assert result.reason == PurchaseFailure.UNAVAILABLE


@pytest.mark.asyncio
async def test_purchase_price_changed(env):
    result = await purchase_service.purchase_tickets(
        env.db, env.account_id, env.request(expected_total=Decimal("30.00"))
    )

    assert result.reason == PurchaseFailure.PRICE_CHANGED
    assert result.total_price == Decimal("40.00")
    env.create.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("payment_method_id, valid", [(None, True), (uuid.uuid4(), False)])
async def test_purchase_invalid_payment_method(env, payment_method_id, valid):
    env.valid_pm.return_value = valid

    result = await purchase_service.purchase_tickets(
        env.db, env.account_id, env.request(payment_method_id=payment_method_id)
    )

    assert result.reason == PurchaseFailure.INVALID_PAYMENT_METHOD


@pytest.mark.asyncio
async def test_purchase_organizer_without_payment_method_fails(env):
    env.default_pm.return_value = None

    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    assert result.reason == PurchaseFailure.PAYMENT_FAILED
    env.create.assert_not_called()


@pytest.mark.asyncio
async def test_purchase_free_tickets_skip_payment(env):
    env.get_price.return_value = {env.option_id: Decimal("0")}

    result = await purchase_service.purchase_tickets(
        env.db, env.account_id, env.request(payment_method_id=None)
    )

    assert result.success is True
    env.valid_pm.assert_not_awaited()
    env.transfer.assert_not_awaited()


@pytest.mark.asyncio
async def test_purchase_free_tickets_record_no_payment_method(env):
    env.get_price.return_value = {env.option_id: Decimal("0")}

    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    assert result.success is True
    assert [d.payment_method_id for d in env.drafts] == [None, None]


@pytest.mark.asyncio
async def test_purchase_transfer_error_undoes_tickets(env):
    env.transfer.side_effect = InvalidInput("boom")

    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    assert result.success is False
    assert result.reason == PurchaseFailure.PAYMENT_FAILED
    assert result.tickets == []
    env.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_purchase_lost_race_is_unavailable(env):
    env.create.side_effect = None
    env.create.return_value = False

    result = await purchase_service.purchase_tickets(env.db, env.account_id, env.request())

    assert result.reason == PurchaseFailure.UNAVAILABLE


def _snapshot(price="25.00", payment_method_id=None):
    return TicketReadDTO(
        id=uuid.uuid4(),
        ticket_option_id=uuid.uuid4(),
        attendee_id=uuid.uuid4(),
        created_at=datetime(2025, 5, 1, tzinfo=timezone.utc),
        price=Decimal(price),
        holder_name=None,
        holder_email=None,
        holder_phone=None,
        is_reviewed=False,
        payment_method_id=payment_method_id
    )


@pytest.mark.asyncio
async def test_refund_callback_moves_money_back_and_notifies(env):
    organizer_id = uuid.uuid4()
    attendee_pm = env.mocker.Mock(id=uuid.uuid4())
    env.default_pm.side_effect = [env.organizer_pm, attendee_pm]
    ticket = _snapshot()

    assert await purchase_service._refund_callback(env.db, organizer_id, "Summer Jam")(ticket) is True

    env.transfer.assert_awaited_once_with(env.db, env.organizer_pm.id, attendee_pm.id, Decimal("25.00"))
    env.notify.assert_awaited_once()
    assert env.notify.await_args.args[1] == ticket.attendee_id


@pytest.mark.asyncio
async def test_refund_callback_returns_money_to_paying_method(env):
    paid_with = uuid.uuid4()
    ticket = _snapshot(payment_method_id=paid_with)

    assert await purchase_service._refund_callback(env.db, uuid.uuid4(), "Summer Jam")(ticket) is True

    env.transfer.assert_awaited_once_with(env.db, env.organizer_pm.id, paid_with, Decimal("25.00"))
    env.default_pm.assert_awaited_once()


@pytest.mark.asyncio
async def test_refund_callback_without_payment_method_rejects(env):
    env.default_pm.side_effect = [env.organizer_pm, None]

    assert await purchase_service._refund_callback(env.db, uuid.uuid4(), "Summer Jam")(_snapshot()) is False
    env.transfer.assert_not_awaited()
    env.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_refund_callback_ledger_error_rejects(env):
    env.transfer.side_effect = NotFound("gone")

    assert await purchase_service._refund_callback(env.db, uuid.uuid4(), "Summer Jam")(_snapshot()) is False


@pytest.mark.asyncio
async def test_refund_callback_free_ticket_only_notifies(env):
    assert await purchase_service._refund_callback(env.db, uuid.uuid4(), "Summer Jam")(_snapshot("0")) is True
    env.default_pm.assert_not_awaited()
    env.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_cancel_ticket_not_found(env):
    env.patch("tickets_crud.get_event_id_for_ticket", None)

    with pytest.raises(NotFound):
        await purchase_service.cancel_ticket(env.db, env.account_id, uuid.uuid4())


@pytest.mark.asyncio
async def test_cancel_ticket_by_stranger_is_forbidden(env):
    env.patch("tickets_crud.get_event_id_for_ticket", env.event.id)
    env.patch("events_crud.get_event_by_id", env.event)
    env.patch("ticket_service.is_ticket_owner", False)
    delete_spy = env.patch("ticket_service.delete_ticket", True)

    with pytest.raises(Forbidden):
        await purchase_service.cancel_ticket(env.db, env.account_id, uuid.uuid4())

    delete_spy.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_ticket_by_owner_reports_refund_failure(env, auditspan_stub):
    ticket_id = uuid.uuid4()
    env.patch("tickets_crud.get_event_id_for_ticket", env.event.id)
    env.patch("events_crud.get_event_by_id", env.event)
    env.patch("ticket_service.is_ticket_owner", True)
    delete_spy = env.patch("ticket_service.delete_ticket", False)

    result = await purchase_service.cancel_ticket(env.db, env.account_id, ticket_id)

    assert result.success is False
    assert delete_spy.await_args.args[1] == ticket_id
    assert auditspan_stub[0].meta["rejected"] == "refund_failed"


@pytest.mark.asyncio
async def test_cancel_ticket_by_organizer_reports_event_name(env):
    env.patch("tickets_crud.get_event_id_for_ticket", env.event.id)
    env.patch("events_crud.get_event_by_id", env.event)
    env.patch("ticket_service.is_ticket_owner", False)
    delete_spy = env.patch("ticket_service.delete_ticket", True)

    result = await purchase_service.cancel_ticket(env.db, env.event.organizer_id, uuid.uuid4())

    assert result.success is True
    assert (result.event_id, result.event_name) == (env.event.id, "Summer Jam")
    delete_spy.assert_awaited_once()


@pytest.mark.asyncio
async def test_cancel_event_stops_on_failed_refund_and_keeps_event(env):
    env.db.delete = env.mocker.AsyncMock()
    env.db.flush = env.mocker.AsyncMock()
    env.patch("events_crud.get_event_by_id", env.event)
    env.patch("ticket_service.delete_tickets", False)

    assert await purchase_service.cancel_event(env.db, env.event.organizer_id, env.event.id) is False

    env.db.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_event_deletes_event_after_all_refunds(env):
    env.db.delete = env.mocker.AsyncMock()
    env.db.flush = env.mocker.AsyncMock()
    env.patch("events_crud.get_event_by_id", env.event)
    env.patch("ticket_service.delete_tickets", True)

    assert await purchase_service.cancel_event(env.db, env.event.organizer_id, env.event.id) is True

    env.db.delete.assert_awaited_once_with(env.event)


@pytest.mark.asyncio
async def test_cancel_event_of_other_organizer_is_forbidden(env):
    env.patch("events_crud.get_event_by_id", env.event)

    with pytest.raises(Forbidden):
        await purchase_service.cancel_event(env.db, uuid.uuid4(), env.event.id)
