"""Services for checking, scheduling, recording and notifying."""
from .checker import CheckerService, CheckOutcome
from .scheduler import SchedulerService
from .recorder import ResultRecorder
from .notifier import TransitionNotifier
from .push_sender import PushSender
from .email_sender import EmailSenderService

__all__ = [
    "CheckerService",
    "CheckOutcome",
    "SchedulerService",
    "ResultRecorder",
    "TransitionNotifier",
    "PushSender",
    "EmailSenderService",
]
