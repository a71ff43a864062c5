from typing import Optional

import redis
from rq import Queue

from portfolio_manager.core.config import REDIS_URL
from portfolio_manager.core.log import logger

RECONCILE_PORTFOLIO_TASK = "portfolio_manager.tasks.portfolio_tasks.reconcile_portfolio"
EXPIRE_INVITATIONS_TASK = "portfolio_manager.tasks.portfolio_tasks.expire_invitations"
DETACH_COLLABORATOR_TASK = "portfolio_manager.tasks.portfolio_tasks.detach_removed_collaborator"


class QueueController:
    _instance: Optional["QueueController"] = None
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        # Only initialize once
        if not self._initialized:
            self.redis_conn = redis.from_url(REDIS_URL)
            self.default_queue = Queue(connection=self.redis_conn)
            self._initialized = True

    def add_task(self, func_name: str, *args, **kwargs) -> str:
        """Add a task and return task ID"""
        job = self.default_queue.enqueue(func_name, *args, **kwargs)
        return job.id


def schedule_portfolio_reconciliation(portfolio_id) -> Optional[str]:
    """Queue a repair pass for a portfolio; never raises"""
    try:
        job_id = QueueController().add_task(RECONCILE_PORTFOLIO_TASK, str(portfolio_id))
    except redis.exceptions.RedisError as e:
        logger.error(f"Failed to queue reconciliation for portfolio {portfolio_id}: {e}")
        return None

    logger.info(f"Queued reconciliation job {job_id} for portfolio {portfolio_id}")
    return job_id


def schedule_collaborator_detach(user_id) -> Optional[str]:
    """Queue cleanup for a collaborator whose removal left stale rows; never raises"""
    try:
        job_id = QueueController().add_task(DETACH_COLLABORATOR_TASK, str(user_id))
    except redis.exceptions.RedisError as e:
        logger.error(f"Failed to queue detach for collaborator {user_id}: {e}")
        return None

    logger.info(f"Queued detach job {job_id} for collaborator {user_id}")
    return job_id
