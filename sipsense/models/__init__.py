from .kv_record import KeyValueRecord
from .reminder import Reminder, ReminderSource

__all__ = [
    "KeyValueRecord",
    "Reminder",
    "ReminderSource",
]
