"""
Module ORM Registry (``claims_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` holds the full schema before ``create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Called lazily by
``claims_kernel.db.engine.create_tables``; MUST NOT be imported at module
level by the kernel.
"""


def import_all_orm_models() -> None:
    """Import every ``claims_modules.*.orm`` module.  Idempotent."""
    import claims_modules.assessment.orm  # noqa: F401
    import claims_modules.frc.orm  # noqa: F401
