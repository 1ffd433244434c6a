from .agencies import Agency
from .tills import Till, TillSession, DiscrepancyAlert, SESSION_OPEN, SESSION_CLOSED
from .tickets import Ticket
from .settings import AppSetting

__all__ = [
    'Agency',
    'Till', 'TillSession', 'DiscrepancyAlert', 'SESSION_OPEN', 'SESSION_CLOSED',
    'Ticket',
    'AppSetting',
]
