from .events import (
    EventListCreateView,
    EventDetailView,
    EventStatusView,
    CustomFieldListCreateView,
    CustomFieldDetailView,
)
from .registrations import (
    RegisterView,
    EventParticipantsView,
    ApprovePaymentView,
)
from .scan import CheckInView, TicketQRImageView
from .public import PublicEventListView, PublicEventDetailView, PublicTicketView
from .generics import api_error
