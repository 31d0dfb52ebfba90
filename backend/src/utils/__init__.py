"""
Stateless helpers for clinic-zone time handling, minute intervals and phones.
"""
