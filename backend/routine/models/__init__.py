from routine.models.room import Room, RoomType  # noqa: F401
from routine.models.routine_slot import (  # noqa: F401
    ClaimKind,
    ClassCategory,
    ClassType,
    RecurrenceType,
    RoutineSlot,
    RoutineSlotClaim,
    RoutineSlotSection,
    RoutineSlotTeacher,
    WeekParity,
)
from routine.models.teacher import Teacher  # noqa: F401
