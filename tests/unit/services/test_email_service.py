import smtplib
import pytest
from eventflow.services import email_service
from eventflow.services.email_service import LoggingEmailSender, SmtpEmailSender


@pytest.mark.asyncio
async def test_smtp_sender_delivers_multipart_message(mocker):
    smtp = mocker.patch("eventflow.services.email_service.smtplib.SMTP")
    server = smtp.return_value.__enter__.return_value
    sender = SmtpEmailSender("smtp.local", 587, "user", "secret", sender="from@eventflow.local")

    ok = await email_service.send_purchase_confirmation(sender, "ann@example.com", "Summer Jam", 2, "40.00")

    assert ok is True
    smtp.assert_called_once_with("smtp.local", 587)
    server.login.assert_called_once_with("user", "secret")
    from_addr, to_addr, body = server.sendmail.call_args.args
    assert (from_addr, to_addr) == ("from@eventflow.local", "ann@example.com")
    assert "Summer Jam" in body


@pytest.mark.asyncio
async def test_smtp_sender_failure_returns_false(mocker, caplog):
    smtp = mocker.patch("eventflow.services.email_service.smtplib.SMTP")
    smtp.return_value.__enter__.return_value.sendmail.side_effect = smtplib.SMTPException("rejected")

    with caplog.at_level("ERROR", logger="eventflow.email"):
        ok = await SmtpEmailSender("smtp.local", 587).send("ann@example.com", "s", "t")

    assert ok is False
    assert "Email send failed" in caplog.text


@pytest.mark.asyncio
async def test_logging_sender_only_logs(caplog):
    with caplog.at_level("INFO", logger="eventflow.email"):
        ok = await email_service.send_cancellation_notice(LoggingEmailSender(), "ann@example.com", "Summer Jam", "25.00")

    assert ok is True
    assert "Ticket cancelled: Summer Jam" in caplog.text


def test_get_email_sender_without_host(mocker):
    mocker.patch("eventflow.services.email_service.EMAIL_HOST", None)
    assert isinstance(email_service.get_email_sender(), LoggingEmailSender)
