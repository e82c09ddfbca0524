"""Repository for task completion history."""

import logging
from datetime import datetime
from typing import List
from sqlalchemy.orm import Session

from pairplan.models.task_completion import TaskCompletionRecord
from pairplan.database.models import TaskCompletionHistoryDB, to_db_datetime

logger = logging.getLogger(__name__)


class TaskCompletionRepository:
    """Append-only log of task completion toggles."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, record: TaskCompletionRecord) -> TaskCompletionRecord:
        try:
            record_db = TaskCompletionHistoryDB.from_pydantic(record)
            self.db.add(record_db)
            self.db.commit()
            self.db.refresh(record_db)
            logger.debug(f"Recorded completion={record.is_completed} for task {record.task_id}")
            return record_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record completion for task {record.task_id}: {type(e).__name__}: {str(e)}")
            raise

    def get_for_task(self, task_id: str) -> List[TaskCompletionRecord]:
        """All records for a task, most recent first."""
        records_db = (
            self.db.query(TaskCompletionHistoryDB)
            .filter(TaskCompletionHistoryDB.task_id == task_id)
            .order_by(TaskCompletionHistoryDB.completed_date.desc())
            .all()
        )
        return [r.to_pydantic() for r in records_db]

    def get_for_period(self, task_id: str, start: datetime, end: datetime) -> List[TaskCompletionRecord]:
        """Records whose completed_date lies in [start, end], most recent first."""
        records_db = (
            self.db.query(TaskCompletionHistoryDB)
            .filter(
                TaskCompletionHistoryDB.task_id == task_id,
                TaskCompletionHistoryDB.completed_date >= to_db_datetime(start),
                TaskCompletionHistoryDB.completed_date <= to_db_datetime(end),
            )
            .order_by(TaskCompletionHistoryDB.completed_date.desc())
            .all()
        )
        return [r.to_pydantic() for r in records_db]

    def get_missed_for_period(self, start: datetime, end: datetime) -> dict:
        """Map task id -> dates on which a completed cycle was reopened, within [start, end]."""
        records_db = (
            self.db.query(TaskCompletionHistoryDB)
            .filter(
                TaskCompletionHistoryDB.is_completed.is_(False),
                TaskCompletionHistoryDB.completed_date >= to_db_datetime(start),
                TaskCompletionHistoryDB.completed_date <= to_db_datetime(end),
            )
            .order_by(TaskCompletionHistoryDB.completed_date)
            .all()
        )
        missed: dict = {}
        for r in records_db:
            missed.setdefault(r.task_id, []).append(r.to_pydantic().completed_date)
        return missed
