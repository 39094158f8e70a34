"""
Step actions for the installation plans.

Every action takes a StepContext, is safe to run again after a partial or
complete earlier attempt, and raises StepExecutionError (or returns False)
on failure.
"""
