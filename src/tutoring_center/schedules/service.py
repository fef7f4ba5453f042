from __future__ import annotations

from ..classes.model import TutoringClass
from ..classes.repository import ClassRepository
from ..common.validators import require_id
from ..core.exceptions import NotFoundError
from .formatter import ScheduleView, format_schedule


class ScheduleService:
    def __init__(self, classes: ClassRepository):
        self._classes = classes

    def get_class(self, class_id: int) -> TutoringClass:
        cls = self._classes.get_by_id(require_id(class_id, "Class"))
        if not cls:
            raise NotFoundError("Class not found")
        return cls

    def expand_schedule(self, class_id: int) -> ScheduleView:
        cls = self.get_class(class_id)
        return format_schedule(cls.class_name, cls.schedule)
