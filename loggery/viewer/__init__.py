from loggery.viewer.server import ViewerServer
from loggery.viewer.subscription import State, Subscription, Transport, TransportClosed, ViewerLimits

__all__ = [
    "State",
    "Subscription",
    "Transport",
    "TransportClosed",
    "ViewerLimits",
    "ViewerServer",
]
