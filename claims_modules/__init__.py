"""
Business modules of the claims core.

Each module follows one layout: ``models.py`` (frozen DTOs), ``orm.py``
(SQLAlchemy tables), ``service.py`` (session-bound operations) and, where
the module owns a state machine, ``workflows.py``.
"""
