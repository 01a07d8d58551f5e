from .accounts.models import Account, Attendee, Organizer
from .events.models import Event, TicketOption, SavedEvent, Category, EventCategory
from .tickets.models import Ticket
from .payments.models import PaymentMethod, PaymentMethodKind, PaymentTransfer
from .notifications.models import Notification

__all__ = (
    "Account", "Attendee", "Organizer", "Event", "TicketOption", "SavedEvent", "Category", "EventCategory", "Ticket",
    "PaymentMethod", "PaymentMethodKind", "PaymentTransfer", "Notification"
)
