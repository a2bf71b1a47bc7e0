"""
Services Layer: the group stage engine

Operations that:
- Accept an explicit Session plus ids and plain values
- Run as exactly one transaction each (see transactions.atomic)
- Return ids, counts or read-only projections
- Raise GroupStageError subclasses, never HTTP errors
"""
