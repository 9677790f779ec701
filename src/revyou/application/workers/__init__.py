"""Background workers."""

from revyou.application.workers.import_job_runner import ImportJobRunner
from revyou.application.workers.scheduled_import import ScheduledImportRunner

__all__ = ["ImportJobRunner", "ScheduledImportRunner"]
