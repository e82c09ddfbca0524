"""Repository for HouseholdTask database operations."""

import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from pairplan.models.household_task import HouseholdTask
from pairplan.database.models import HouseholdTaskDB, TaskCompletionHistoryDB, to_db_datetime, weekdays_to_db

logger = logging.getLogger(__name__)


class HouseholdTaskRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, task: HouseholdTask) -> HouseholdTask:
        try:
            task_db = HouseholdTaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created household task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create household task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, task_id: str) -> Optional[HouseholdTask]:
        task_db = self.db.query(HouseholdTaskDB).filter(HouseholdTaskDB.id == task_id).first()
        return task_db.to_pydantic() if task_db else None

    def get_all(self) -> List[HouseholdTask]:
        """All tasks in manual sort order, oldest first within a position."""
        tasks_db = (
            self.db.query(HouseholdTaskDB)
            .order_by(HouseholdTaskDB.position, HouseholdTaskDB.created_at)
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_completed_recurring(self) -> List[HouseholdTask]:
        """Completed tasks whose frequency is recurring (reactivation candidates)."""
        tasks_db = (
            self.db.query(HouseholdTaskDB)
            .filter(
                HouseholdTaskDB.completed.is_(True),
                HouseholdTaskDB.frequency.notin_(["once", "never", ""]),
            )
            .all()
        )
        return [task_db.to_pydantic() for task_db in tasks_db]

    def update(self, task: HouseholdTask) -> HouseholdTask:
        task_db = self.db.query(HouseholdTaskDB).filter(HouseholdTaskDB.id == task.id).first()
        if not task_db:
            raise ValueError(f"Household task {task.id} not found")

        task_db.title = task.title
        task_db.description = task.description
        task_db.frequency = task.frequency
        task_db.weekdays = weekdays_to_db(task.weekdays)
        task_db.month_day = task.month_day
        task_db.assigned_to = task.assigned_to
        task_db.due_date = to_db_datetime(task.due_date)
        task_db.completed = task.completed
        task_db.completed_at = to_db_datetime(task.completed_at)
        task_db.next_due_date = to_db_datetime(task.next_due_date)
        task_db.recurrence_rule = task.recurrence_rule
        task_db.priority = task.priority
        task_db.position = task.position

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated household task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update household task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, task_id: str) -> bool:
        task_db = self.db.query(HouseholdTaskDB).filter(HouseholdTaskDB.id == task_id).first()
        if not task_db:
            return False
        try:
            # History rows go with the task
            self.db.query(TaskCompletionHistoryDB).filter(TaskCompletionHistoryDB.task_id == task_id).delete()
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted household task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete household task {task_id}: {type(e).__name__}: {str(e)}")
            raise
