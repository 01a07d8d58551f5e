import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from anyio import to_thread
from eventflow.core.config import EMAIL_HOST, EMAIL_PORT, EMAIL_USER, EMAIL_FROM, SMTP_PASSWORD

logger = logging.getLogger("eventflow.email")


class EmailSender:
    async def send(self, to: str, subject: str, text_body: str, html_body: str | None = None) -> bool:
        raise NotImplementedError


class LoggingEmailSender(EmailSender):
    """Used when no SMTP host is configured; the message only goes to the log."""

    async def send(self, to: str, subject: str, text_body: str, html_body: str | None = None) -> bool:
        logger.info("Email to=%s subject=%s body=%s", to, subject, text_body)
        return True


class SmtpEmailSender(EmailSender):
    def __init__(self, host: str, port: int, user: str | None = None, password: str | None = None,
                 sender: str = EMAIL_FROM):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender

    def _build_message(self, to: str, subject: str, text_body: str, html_body: str | None) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))
        return msg

    def _deliver(self, to: str, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.sender, to, msg.as_string())

    async def send(self, to: str, subject: str, text_body: str, html_body: str | None = None) -> bool:
        msg = self._build_message(to, subject, text_body, html_body)
        try:
            await to_thread.run_sync(self._deliver, to, msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Email send failed", extra={"to": to, "subject": subject})
            return False
        return True


def get_email_sender() -> EmailSender:
    if EMAIL_HOST:
        return SmtpEmailSender(EMAIL_HOST, EMAIL_PORT, EMAIL_USER, SMTP_PASSWORD)
    return LoggingEmailSender()


async def send_purchase_confirmation(sender: EmailSender, to: str, event_name: str, count: int, total: str) -> bool:
    return await sender.send(
        to,
        f"Your tickets for {event_name}",
        f"You bought {count} ticket(s) for {event_name}. Total paid: {total}.",
        f"<p>You bought <b>{count}</b> ticket(s) for <b>{event_name}</b>.</p><p>Total paid: {total}.</p>"
    )


async def send_cancellation_notice(sender: EmailSender, to: str, event_name: str, refund: str) -> bool:
    return await sender.send(
        to,
        f"Ticket cancelled: {event_name}",
        f"Your ticket for {event_name} was cancelled. Refunded: {refund}.",
        f"<p>Your ticket for <b>{event_name}</b> was cancelled.</p><p>Refunded: {refund}.</p>"
    )
