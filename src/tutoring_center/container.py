from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceLedgerRepository
from .attendance.repository import AttendanceLedgerRepository
from .attendance.service import AttendanceService
from .classes.mysql_class_repository import MySQLClassRepository
from .classes.repository import ClassRepository
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_WRITE_RETRIES
from .database.connection import DBConfig, DatabaseConnection
from .schedules.service import ScheduleService
from .tuition.mysql_tuition_repository import MySQLTuitionRepository
from .tuition.repository import TuitionRepository
from .tuition.service import TuitionService
from .users.mysql_user_repository import MySQLTeacherRepository, MySQLUserDirectory
from .users.repository import TeacherRepository, UserDirectory
from .users.service import DirectoryService
from .wages.calculator.standard_calculator import PerLessonWageCalculator
from .wages.mysql_wage_repository import MySQLWageRepository
from .wages.repository import WageRepository
from .wages.service import WageService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    classes_repo: ClassRepository
    teachers_repo: TeacherRepository
    users_repo: UserDirectory
    ledgers_repo: AttendanceLedgerRepository
    tuition_repo: TuitionRepository
    wages_repo: WageRepository

    directory_service: DirectoryService
    schedule_service: ScheduleService
    tuition_service: TuitionService
    attendance_service: AttendanceService
    wage_service: WageService


def assemble(
    *,
    classes_repo: ClassRepository,
    teachers_repo: TeacherRepository,
    users_repo: UserDirectory,
    ledgers_repo: AttendanceLedgerRepository,
    tuition_repo: TuitionRepository,
    wages_repo: WageRepository,
    conn: Optional[DatabaseConnection] = None,
    write_retries: int = DEFAULT_WRITE_RETRIES,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Wire services on top of any repository implementations."""
    directory_service = DirectoryService(users_repo, teachers_repo)
    schedule_service = ScheduleService(classes_repo)
    tuition_service = TuitionService(tuition_repo)
    attendance_service = AttendanceService(
        ledgers_repo,
        classes_repo,
        directory_service,
        tuition_service,
        write_retries=write_retries,
    )
    wage_service = WageService(
        wages_repo,
        ledgers_repo,
        classes_repo,
        teachers_repo,
        directory_service,
        calculator=PerLessonWageCalculator(),
        write_retries=write_retries,
        clock=clock,
    )

    return Container(
        conn=conn,
        classes_repo=classes_repo,
        teachers_repo=teachers_repo,
        users_repo=users_repo,
        ledgers_repo=ledgers_repo,
        tuition_repo=tuition_repo,
        wages_repo=wages_repo,
        directory_service=directory_service,
        schedule_service=schedule_service,
        tuition_service=tuition_service,
        attendance_service=attendance_service,
        wage_service=wage_service,
    )


def build_container(*, db_config: dict, write_retries: int = DEFAULT_WRITE_RETRIES) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble(
        conn=conn,
        classes_repo=MySQLClassRepository(conn),
        teachers_repo=MySQLTeacherRepository(conn),
        users_repo=MySQLUserDirectory(conn),
        ledgers_repo=MySQLAttendanceLedgerRepository(conn),
        tuition_repo=MySQLTuitionRepository(conn),
        wages_repo=MySQLWageRepository(conn),
        write_retries=write_retries,
    )
