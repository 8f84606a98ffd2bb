"""Process module for supervised child processes."""

from commonbin.process.supervisor import ProcessSupervisor

__all__ = ["ProcessSupervisor"]
