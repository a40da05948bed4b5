"""
Services Layer

Box league engine components. Each one:
- Receives a Ledger at construction (never a global session)
- Validates everything before the first write
- Wraps every multi-entity write in one Ledger batch
"""
