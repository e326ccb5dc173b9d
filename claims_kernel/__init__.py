"""
Claims Kernel

Core of the assessment workflow and final repair costing (FRC) system:
- Declarative, exhaustive stage transition table
- Version-stamped optimistic concurrency on every mutation
- Idempotent snapshot merge of estimate lines and additionals
- Fixed-point decimal totals with rounding only at the output boundary
"""

__version__ = "0.1.0"
