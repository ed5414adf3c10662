"""AutoCV: tailored application documents from a job-posting screenshot."""

__version__ = "0.1.0"
