"""Observability: logging setup and job-scoped log context."""

from .logging import configure_logging, get_job_id, job_id_var, set_job_id

__all__ = ["configure_logging", "get_job_id", "job_id_var", "set_job_id"]
