"""
Services Layer

Contest core services that:
- Accept a Session plus ids or plain inputs
- Return models or plain dicts (never HTTP objects)
- Raise popcontest.services.errors exceptions on rejected operations
- Commit their own writes; a failed operation leaves nothing half-written
"""
