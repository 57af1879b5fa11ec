"""Task dispatcher: one ordered queue and worker per user"""

from .task import RESET_COMMAND, RESET_REPLY, Task, TaskHandler
from .manager import TaskManager

__all__ = ["RESET_COMMAND", "RESET_REPLY", "Task", "TaskHandler", "TaskManager"]
