from loggery.schemas.wire import LogBatch, RecordOut, Status, SubscriptionInfo, ViewerControl

__all__ = [
    "LogBatch",
    "RecordOut",
    "Status",
    "SubscriptionInfo",
    "ViewerControl",
]
