"""Digital Audit - Worker Package.

The audit pipeline and the stages it runs. Imports are kept explicit:
    from worker.tasks.audit import AuditPipeline, build_pipeline
    from worker.status import StatusStore
"""
