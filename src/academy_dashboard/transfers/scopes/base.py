from __future__ import annotations

from abc import ABC, abstractmethod

from ...timetable.repository import AssignmentRepository, ScheduleRepository
from ..model import MoveCommand, MovePlan


class MoveScope(ABC):
    """Strategy Pattern: decide which assignments a move ends and which it creates."""

    @abstractmethod
    def plan(
        self,
        command: MoveCommand,
        *,
        assignments: AssignmentRepository,
        schedules: ScheduleRepository,
    ) -> MovePlan:
        raise NotImplementedError
