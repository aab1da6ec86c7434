from .assignment_service import AssignmentService
from .notifier import ChangeNotifier
from .store import Store

__all__ = ["AssignmentService", "ChangeNotifier", "Store"]
