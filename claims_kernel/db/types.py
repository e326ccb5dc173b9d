"""
Module: claims_kernel.db.types
Responsibility: Annotated type aliases for column types.  Centralizes
    precision so that every model uses identical definitions.
Architecture position: Kernel > DB.  MUST NOT import from models or services.

Invariants enforced:
    CRITICAL: No floats anywhere in the claims kernel.  All monetary amounts
    use Decimal stored as Numeric(38, 9).
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Percentage (VAT, markup): 9 digits total, 4 decimal places
Percentage = Annotated[Decimal, Numeric(9, 4)]

# Workflow stage / status codes
StateCode = Annotated[str, String(50)]

# Short identifier strings
ShortCode = Annotated[str, String(100)]

# Long text for notes
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 9
