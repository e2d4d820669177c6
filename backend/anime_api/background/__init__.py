from .runner import Job, JobRunner, JobStatus

__all__ = ["Job", "JobRunner", "JobStatus"]
