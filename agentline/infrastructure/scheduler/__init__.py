"""Scheduler module for the periodic job queue pass."""

from agentline.infrastructure.scheduler.scheduler import (
    get_scheduler,
    get_scheduler_status,
    queue_pass_job,
    schedule_queue_worker,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "get_scheduler",
    "get_scheduler_status",
    "queue_pass_job",
    "schedule_queue_worker",
    "start_scheduler",
    "stop_scheduler",
]
