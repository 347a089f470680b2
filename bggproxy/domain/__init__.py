"""Domain Layer: records, value objects, interfaces and events.

Has no dependencies on infrastructure; everything here is pure Python.
"""
